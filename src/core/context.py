"""
Application Context

Contenedor de dependencias del orquestador: proveedor de sesiones, motor
de transiciones, slot filling, agente y router. La API y el bot lo
reciben armado; los tests lo arman sobre una base en memoria y un
modelo de lenguaje falso.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from config.settings import settings, Settings
from src.database.connection import DatabaseProvider, SessionProvider, db_provider
from src.services.agent_loop import AgentLoop
from src.services.llm_client import LLMClient
from src.services.order_updates import OrderUpdateService
from src.services.session_router import SessionRouter
from src.services.session_store import SessionStore
from src.services.slot_filling import SlotFillingOrchestrator
from src.services.tools import ToolRegistry, build_registry
from src.services.transition_engine import TransitionEngine
from src.utils.logger import get_logger
from src.utils.rate_limiter import RateLimiter


# ============================================================================
# APPLICATION CONTEXT
# ============================================================================

@dataclass
class AppContext:
    """
    Contenedor de contexto de aplicación.

    Uso:
        ctx = AppContext.create()
        await ctx.initialize()
        reply = await ctx.router.handle(chat_input)
    """

    session_provider: SessionProvider
    engine: TransitionEngine
    store: SessionStore
    slots: SlotFillingOrchestrator
    registry: ToolRegistry
    llm: Any
    agent: AgentLoop
    router: SessionRouter
    updates: OrderUpdateService
    rate_limiter: Optional[RateLimiter]
    config: Settings = field(default_factory=lambda: settings)
    db: Optional[DatabaseProvider] = None
    _logger: Any = field(default=None, repr=False)
    _initialized: bool = field(default=False, repr=False)

    @property
    def logger(self):
        """Logger con lazy initialization."""
        if self._logger is None:
            self._logger = get_logger("app")
        return self._logger

    async def initialize(self) -> None:
        """Inicializa la base de datos si el contexto la administra."""
        if not self._initialized:
            if self.db is not None:
                await self.db.initialize()
            self._initialized = True
            self.logger.info("AppContext inicializado")

    async def shutdown(self) -> None:
        """Cierra el cliente del modelo y las conexiones."""
        if hasattr(self.llm, "aclose"):
            await self.llm.aclose()
        if self.db is not None:
            await self.db.close()
        self._initialized = False
        self.logger.info("AppContext cerrado")

    @classmethod
    def build(
        cls,
        session_provider: SessionProvider,
        llm: Any,
        config: Settings = settings,
        store: Optional[SessionStore] = None,
        rate_limiter: Optional[RateLimiter] = None,
        db: Optional[DatabaseProvider] = None
    ) -> "AppContext":
        """
        Arma todas las piezas sobre un proveedor de sesiones y un modelo.

        Args:
            session_provider: Fábrica de sesiones transaccionales
            llm: Cliente del modelo (LLMClient o un doble con complete())
            config: Configuración
            store: Store de sesiones (por defecto, con el timeout configurado)
            rate_limiter: Límite de mensajes del chat (opcional)
            db: Proveedor de base a inicializar y cerrar con el contexto
        """
        store = store if store is not None else SessionStore.from_settings(config)
        engine = TransitionEngine(session_provider, config=config)
        slots = SlotFillingOrchestrator(engine, store, session_provider, config=config)
        registry = build_registry(session_provider)
        agent = AgentLoop(llm, registry, config=config)
        router = SessionRouter(engine, slots, agent, session_provider, rate_limiter=rate_limiter)

        return cls(
            session_provider=session_provider,
            engine=engine,
            store=store,
            slots=slots,
            registry=registry,
            llm=llm,
            agent=agent,
            router=router,
            updates=OrderUpdateService(session_provider, config=config),
            rate_limiter=rate_limiter,
            config=config,
            db=db,
        )

    @classmethod
    def create(cls, config: Settings = settings) -> "AppContext":
        """
        Contexto de producción: base configurada, modelo real y rate limit.
        """
        return cls.build(
            session_provider=db_provider.get_session,
            llm=LLMClient.from_settings(config),
            config=config,
            rate_limiter=RateLimiter.from_settings(config),
            db=db_provider,
        )

    @classmethod
    def create_for_testing(
        cls,
        session_provider: SessionProvider,
        llm: Any = None,
        config: Settings = settings,
        store: Optional[SessionStore] = None,
        rate_limiter: Optional[RateLimiter] = None
    ) -> "AppContext":
        """
        Contexto para tests, sobre una base ya creada.

        Args:
            session_provider: Proveedor sobre la base de test
            llm: Doble del modelo de lenguaje
            store: Store con reloj controlado (opcional)
            rate_limiter: Sin límite si no se indica
        """
        return cls.build(
            session_provider=session_provider,
            llm=llm,
            config=config,
            store=store,
            rate_limiter=rate_limiter,
        )


# ============================================================================
# SINGLETON GLOBAL
# ============================================================================

_app_context: Optional[AppContext] = None


def get_app_context() -> AppContext:
    """Obtiene la instancia global del contexto de aplicación."""
    global _app_context
    if _app_context is None:
        _app_context = AppContext.create()
    return _app_context


async def initialize_app_context() -> AppContext:
    """Inicializa y retorna el contexto de aplicación."""
    ctx = get_app_context()
    await ctx.initialize()
    return ctx


async def shutdown_app_context() -> None:
    """Cierra el contexto de aplicación."""
    global _app_context
    if _app_context is not None:
        await _app_context.shutdown()
        _app_context = None


def set_app_context(ctx: Optional[AppContext]) -> None:
    """Establece el contexto global. Útil para testing."""
    global _app_context
    _app_context = ctx
