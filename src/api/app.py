"""
FastAPI Application

Aplicación principal de la API REST del orquestador.
Incluye todos los routers y configuración.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config.settings import settings
from src.api.chat import chat_router
from src.api.health import HealthChecker, health_router
from src.api.orders import orders_router
from src.core.context import AppContext
from src.utils.errors import OrchestratorError, log_orchestrator_error
from src.utils.logger import clear_context, bind_context, get_logger, new_correlation_id

logger = get_logger(__name__)


def create_app(context: Optional[AppContext] = None) -> FastAPI:
    """
    Crea y configura la aplicación FastAPI.

    Args:
        context: AppContext ya armado (tests). Si no se indica se crea el
            de producción, que se inicializa y cierra con la aplicación.
    """
    owns_context = context is None
    ctx = context or AppContext.create()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("API iniciando...")
        if owns_context:
            await ctx.initialize()
        logger.info("API lista")
        yield
        logger.info("API cerrando...")
        if owns_context:
            await ctx.shutdown()
        logger.info("API cerrada")

    is_production = settings.is_production()

    app = FastAPI(
        title="Order Action Orchestrator API",
        description="""
## API del Orquestador de Órdenes de Reparación

### Características
- **Acciones**: una ruta por acción de negocio, validada por el motor de transiciones
- **Chat**: slot filling de acciones y agente con herramientas de búsqueda
- **Errores**: siempre `{success: false, message, context}`
        """,
        version=settings.VERSION,
        docs_url=None if is_production else "/docs",
        redoc_url=None if is_production else "/redoc",
        lifespan=lifespan,
        openapi_tags=[
            {"name": "health", "description": "Health checks y estado del sistema"},
            {"name": "chat", "description": "Mensajes del chat"},
            {"name": "orders", "description": "Acciones, datos y novedades de órdenes"},
        ],
    )
    app.state.context = ctx
    app.state.health_checker = HealthChecker(ctx)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # =========================================================================
    # MIDDLEWARE
    # =========================================================================

    @app.middleware("http")
    async def add_request_context(request: Request, call_next):
        """Correlation ID y tiempo de respuesta en cada request."""
        correlation_id = request.headers.get("X-Correlation-ID") or new_correlation_id()
        bind_context(correlation_id=correlation_id)

        start_time = datetime.utcnow()
        try:
            response = await call_next(request)
            duration = (datetime.utcnow() - start_time).total_seconds() * 1000
            logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({duration:.0f}ms)")
        finally:
            clear_context()

        response.headers["X-Correlation-ID"] = correlation_id
        response.headers["X-Response-Time"] = f"{duration:.2f}ms"
        return response

    # =========================================================================
    # ERROR HANDLERS
    # =========================================================================

    @app.exception_handler(OrchestratorError)
    async def orchestrator_error_handler(request: Request, exc: OrchestratorError):
        """Errores de negocio con su código HTTP y payload uniforme."""
        level = logging.ERROR if exc.http_status >= 500 else logging.WARNING
        log_orchestrator_error(exc, f"{request.method} {request.url.path}", level)
        return JSONResponse(status_code=exc.http_status, content=exc.to_payload())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        """Body o parámetros mal formados."""
        errors = [
            {
                "field": ".".join(str(part) for part in error["loc"] if part != "body"),
                "reason": error["msg"],
            }
            for error in exc.errors()
        ]
        return JSONResponse(
            status_code=422,
            content={
                "success": False,
                "message": "Datos inválidos en la solicitud",
                "context": {"errors": errors},
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Maneja excepciones no capturadas."""
        logger.error(f"Excepción no manejada en {request.url.path}: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "message": "Error interno" if is_production else str(exc),
            },
        )

    # =========================================================================
    # ROUTERS
    # =========================================================================

    app.include_router(health_router)
    app.include_router(chat_router, prefix="/api")
    app.include_router(orders_router, prefix="/api")

    @app.get("/")
    async def root():
        """Endpoint raíz."""
        return {
            "name": settings.PROJECT_NAME,
            "version": settings.VERSION,
            "status": "running",
            "docs": None if is_production else "/docs",
        }

    return app


def run_api(host: Optional[str] = None, port: Optional[int] = None, reload: bool = False):
    """
    Ejecuta el servidor de la API.

    Args:
        host: Host para escuchar
        port: Puerto para escuchar
        reload: Recarga automática (desarrollo)
    """
    import uvicorn

    host = host or settings.API_HOST
    port = port or settings.API_PORT

    logger.info(f"Iniciando API en http://{host}:{port}")
    uvicorn.run(
        "src.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level=settings.LOG_LEVEL.lower(),
    )
