"""
Pytest Configuration and Fixtures

Configuración global de pytest y fixtures compartidos: base SQLite en
memoria, servicios del orquestador armados sobre ella, un modelo de
lenguaje guionado y un cliente HTTP contra la API.
"""

import os

# Entorno de test: antes de importar config.settings
os.environ["ENVIRONMENT"] = "development"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["TELEGRAM_BOT_TOKEN"] = ""
os.environ["TELEGRAM_ACCOUNTING_CHAT_IDS"] = ""
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["AGENT_PROMPT_FILE"] = ""

from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from config.settings import settings
from src.api.app import create_app
from src.core.context import AppContext
from src.database import models  # noqa: F401
from src.database.connection import Base, make_session_provider
from src.services.session_store import SessionStore
from src.services.slot_filling import SlotFillingOrchestrator
from src.services.transition_engine import TransitionEngine
from tests.factories import OrderFactory, PaymentMethodFactory, ScriptedLLM, save


class FakeClock:
    """Reloj monotónico controlado por el test."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ============================================================================
# DATABASE FIXTURES
# ============================================================================

@pytest.fixture(scope="function")
async def db_engine():
    """Engine async en memoria, compartido por todas las sesiones del test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine) -> async_sessionmaker:
    return async_sessionmaker(
        bind=db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
def session_provider(session_factory):
    """Proveedor de unidades de trabajo sobre la base de test."""
    return make_session_provider(session_factory)


@pytest.fixture
def seed(session_provider):
    """Persiste instancias construidas con las factories."""
    async def _seed(*instances):
        return await save(session_provider, *instances)
    return _seed


# ============================================================================
# SAMPLE DATA FIXTURES
# ============================================================================

@pytest.fixture
async def payment_methods(seed):
    """Catálogo de métodos de pago, en el orden en que se ofrecen."""
    methods = [
        PaymentMethodFactory(id=1, nombre="Efectivo"),
        PaymentMethodFactory(id=2, nombre="Transferencia"),
        PaymentMethodFactory(id=3, nombre="Tarjeta de débito"),
        PaymentMethodFactory(id=4, nombre="Tarjeta de crédito"),
    ]
    await seed(*methods)
    return methods


@pytest.fixture
def make_order(seed):
    """
    Crea y persiste una orden.

    Uso:
        order = await make_order(id=5001, presupuestado=True)
    """
    async def _make(**kwargs):
        order = OrderFactory(**kwargs)
        await seed(order)
        return order
    return _make


# ============================================================================
# SERVICE FIXTURES
# ============================================================================

@pytest.fixture
def test_settings():
    return settings


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock, test_settings) -> SessionStore:
    return SessionStore(timeout_seconds=test_settings.get_session_timeout_seconds(), clock=clock)


@pytest.fixture
def transition_engine(session_provider, test_settings) -> TransitionEngine:
    return TransitionEngine(session_provider, config=test_settings)


@pytest.fixture
def slots(transition_engine, store, session_provider, test_settings) -> SlotFillingOrchestrator:
    return SlotFillingOrchestrator(transition_engine, store, session_provider, config=test_settings)


@pytest.fixture
def llm() -> ScriptedLLM:
    return ScriptedLLM()


@pytest.fixture
def app_context(session_provider, llm, store, test_settings) -> AppContext:
    return AppContext.create_for_testing(
        session_provider,
        llm=llm,
        config=test_settings,
        store=store,
    )


@pytest.fixture
async def api_client(app_context) -> AsyncGenerator[AsyncClient, None]:
    """Cliente HTTP contra la aplicación, sin levantar un servidor."""
    app = create_app(app_context)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
