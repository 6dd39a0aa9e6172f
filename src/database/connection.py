"""
Conexión a Base de Datos

Gestiona conexiones async a SQLite (desarrollo) o PostgreSQL (producción).
Incluye connection pooling y el context manager transaccional que usan
el motor de transiciones y las herramientas del agente.
"""

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Callable, AsyncContextManager

# Base para los modelos
Base = declarative_base()

# Variables globales - Async (para la aplicación)
async_engine = None
AsyncSessionLocal = None

# Tipo de los proveedores de sesión inyectados en los servicios
SessionProvider = Callable[[], AsyncContextManager[AsyncSession]]


def init_async_db() -> None:
    """
    Inicializa la conexión asincrónica a la base de datos.
    Usado para operaciones en la aplicación.
    """
    global async_engine, AsyncSessionLocal

    from config.settings import settings

    database_url = settings.get_async_database_url()

    if "aiosqlite" in database_url:
        db_path = database_url.replace("sqlite+aiosqlite:///", "")
        if db_path and not db_path.startswith(":memory:"):
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        async_engine = create_async_engine(
            database_url,
            echo=settings.DATABASE_ECHO,
            connect_args={"check_same_thread": False}
        )
    else:
        # PostgreSQL async con connection pooling
        async_engine = create_async_engine(
            database_url,
            echo=settings.DATABASE_ECHO,
            pool_size=settings.DATABASE_POOL_SIZE,
            max_overflow=settings.DATABASE_MAX_OVERFLOW,
            pool_recycle=settings.DATABASE_POOL_RECYCLE,
            pool_pre_ping=True
        )

    AsyncSessionLocal = async_sessionmaker(
        bind=async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False
    )


async def create_tables_async() -> None:
    """Crea todas las tablas en la base de datos (async)."""
    if async_engine is None:
        init_async_db()

    # Importar modelos para registrarlos
    from src.database import models  # noqa

    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@asynccontextmanager
async def session_scope(
    factory: async_sessionmaker
) -> AsyncGenerator[AsyncSession, None]:
    """
    Unidad de trabajo sobre una fábrica de sesiones.

    Todo lo escrito dentro del bloque se confirma junto al salir; cualquier
    excepción hace rollback y se propaga, de modo que nada parcial queda
    visible.

    Uso:
        async with session_scope(AsyncSessionLocal) as db:
            ...
    """
    session = factory()
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()


@asynccontextmanager
async def get_async_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Context manager asincrónico para sesiones de base de datos.

    Uso:
        async with get_async_db() as db:
            result = await db.execute(query)
    """
    if AsyncSessionLocal is None:
        init_async_db()

    async with session_scope(AsyncSessionLocal) as session:
        yield session


def make_session_provider(factory: async_sessionmaker) -> SessionProvider:
    """
    Crea un proveedor de sesiones ligado a una fábrica concreta.

    Los servicios reciben un proveedor en lugar de importar get_async_db,
    lo que permite inyectar una base en memoria en los tests.
    """
    def provider() -> AsyncContextManager[AsyncSession]:
        return session_scope(factory)

    return provider


async def close_async_db() -> None:
    """Cierra las conexiones async de la base de datos."""
    global async_engine, AsyncSessionLocal

    if async_engine is not None:
        await async_engine.dispose()
        async_engine = None
        AsyncSessionLocal = None


class DatabaseProvider:
    """
    Proveedor de base de datos para dependency injection.

    Uso:
        db_provider = DatabaseProvider()
        async with db_provider.get_session() as session:
            ...
    """

    def __init__(self):
        self._initialized = False

    async def initialize(self, create_tables: bool = False) -> None:
        """Inicializa las conexiones de base de datos."""
        if not self._initialized:
            init_async_db()
            if create_tables:
                await create_tables_async()
            self._initialized = True

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Obtiene una sesión de base de datos."""
        if not self._initialized:
            await self.initialize()

        async with get_async_db() as session:
            yield session

    async def health_check(self) -> bool:
        """Verifica que la base responda."""
        from sqlalchemy import text

        async with self.get_session() as session:
            await session.execute(text("SELECT 1"))
        return True

    async def close(self) -> None:
        """Cierra las conexiones."""
        await close_async_db()
        self._initialized = False


# Instancia global del proveedor (para DI)
db_provider = DatabaseProvider()
