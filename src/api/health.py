"""
Health Check Endpoints

Endpoints para verificar el estado de la aplicación y sus dependencias.
Compatible con Kubernetes, Docker y balanceadores de carga.
"""

import time
import asyncio
from datetime import datetime
from typing import Dict, Any, Optional
from dataclasses import dataclass, field

import aiohttp
import psutil
from fastapi import APIRouter, Request, Response
from sqlalchemy import text

from config.settings import settings
from src.utils.logger import get_logger

logger = get_logger(__name__)

MEMORY_DEGRADED_PERCENT = 90


# ============================================================================
# HEALTH CHECK MODELS
# ============================================================================

@dataclass
class ComponentHealth:
    """Estado de salud de un componente."""
    name: str
    status: str  # "up", "down", "degraded"
    latency_ms: Optional[float] = None
    message: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "name": self.name,
            "status": self.status,
        }
        if self.latency_ms is not None:
            result["latency_ms"] = round(self.latency_ms, 2)
        if self.message:
            result["message"] = self.message
        if self.details:
            result["details"] = self.details
        return result


@dataclass
class HealthResponse:
    """Respuesta de health check."""
    status: str  # "healthy", "unhealthy", "degraded"
    timestamp: str
    version: str
    environment: str
    components: Dict[str, ComponentHealth] = field(default_factory=dict)
    uptime_seconds: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "timestamp": self.timestamp,
            "version": self.version,
            "environment": self.environment,
            "components": {k: v.to_dict() for k, v in self.components.items()},
            "uptime_seconds": round(self.uptime_seconds, 2) if self.uptime_seconds else None,
        }


def overall_status(components: Dict[str, ComponentHealth]) -> str:
    """
    Estado general a partir de los componentes.

    Sin base de datos el orquestador no puede ejecutar nada: unhealthy.
    Cualquier otro componente caído solo degrada.
    """
    statuses = [c.status for c in components.values()]
    if all(s == "up" for s in statuses):
        return "healthy"
    database = components.get("database")
    if database is not None and database.status == "down":
        return "unhealthy"
    return "degraded"


# ============================================================================
# HEALTH CHECKER
# ============================================================================

class HealthChecker:
    """
    Verificador de salud del sistema.

    Recibe el AppContext para revisar la misma base y el mismo cliente
    del modelo que usa el orquestador.
    """

    def __init__(self, context, config=settings):
        self._context = context
        self._config = config
        self._start_time = time.time()

    @property
    def uptime(self) -> float:
        """Tiempo de actividad en segundos."""
        return time.time() - self._start_time

    async def check_database(self) -> ComponentHealth:
        """Verifica la conexión a la base de datos."""
        start = time.time()
        try:
            async with self._context.session_provider() as session:
                await session.execute(text("SELECT 1"))

            return ComponentHealth(
                name="database",
                status="up",
                latency_ms=(time.time() - start) * 1000,
            )

        except Exception as e:
            logger.error(f"Health check de base de datos falló: {e}")
            return ComponentHealth(
                name="database",
                status="down",
                latency_ms=(time.time() - start) * 1000,
                message=str(e),
            )

    async def check_llm(self) -> ComponentHealth:
        """
        Estado del circuit breaker del modelo de lenguaje.

        No hace requests: un circuito abierto indica que las últimas
        llamadas fallaron.
        """
        http = getattr(self._context.llm, "http", None)
        if http is None:
            return ComponentHealth(name="llm", status="up", message="Cliente sin circuit breaker")

        circuit = http.get_circuit_status()
        status = {"closed": "up", "half_open": "degraded"}.get(circuit["state"], "down")
        return ComponentHealth(name="llm", status=status, details=circuit)

    async def check_telegram(self) -> ComponentHealth:
        """Verifica la conexión a Telegram API."""
        if not self._config.TELEGRAM_BOT_TOKEN:
            return ComponentHealth(
                name="telegram",
                status="up",
                message="Telegram no configurado (opcional)",
            )

        start = time.time()
        url = f"https://api.telegram.org/bot{self._config.TELEGRAM_BOT_TOKEN}/getMe"
        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(url, timeout=aiohttp.ClientTimeout(total=5)) as response:
                    latency = (time.time() - start) * 1000

                    if response.status == 200:
                        data = await response.json()
                        return ComponentHealth(
                            name="telegram",
                            status="up",
                            latency_ms=latency,
                            details={"bot_username": data.get("result", {}).get("username")},
                        )
                    return ComponentHealth(
                        name="telegram",
                        status="down",
                        latency_ms=latency,
                        message=f"Status: {response.status}",
                    )

        except asyncio.TimeoutError:
            return ComponentHealth(
                name="telegram",
                status="degraded",
                latency_ms=(time.time() - start) * 1000,
                message="Timeout",
            )
        except aiohttp.ClientError as e:
            return ComponentHealth(
                name="telegram",
                status="down",
                latency_ms=(time.time() - start) * 1000,
                message=str(e),
            )

    async def check_memory(self) -> ComponentHealth:
        """Uso de memoria del host."""
        memory = psutil.virtual_memory()
        details = {
            "total_mb": round(memory.total / (1024 * 1024), 2),
            "available_mb": round(memory.available / (1024 * 1024), 2),
            "percent_used": memory.percent,
        }
        if memory.percent < MEMORY_DEGRADED_PERCENT:
            return ComponentHealth(name="memory", status="up", details=details)
        return ComponentHealth(
            name="memory",
            status="degraded",
            message=f"Memoria alta ({memory.percent}% usado)",
            details=details,
        )

    async def check_all(self) -> HealthResponse:
        """
        Ejecuta todos los health checks en paralelo.

        Returns:
            HealthResponse con el estado de todos los componentes
        """
        checks = await asyncio.gather(
            self.check_database(),
            self.check_llm(),
            self.check_telegram(),
            self.check_memory(),
            return_exceptions=True,
        )

        components: Dict[str, ComponentHealth] = {}
        for name, check in zip(("database", "llm", "telegram", "memory"), checks):
            if isinstance(check, Exception):
                components[name] = ComponentHealth(name=name, status="down", message=str(check))
            else:
                components[check.name] = check

        return HealthResponse(
            status=overall_status(components),
            timestamp=datetime.utcnow().isoformat() + "Z",
            version=self._config.VERSION,
            environment=self._config.ENVIRONMENT.value,
            components=components,
            uptime_seconds=self.uptime,
        )

    async def liveness(self) -> Dict[str, Any]:
        """
        Liveness probe.

        Solo verifica que la aplicación esté corriendo.
        """
        return {
            "status": "alive",
            "timestamp": datetime.utcnow().isoformat() + "Z",
        }

    async def readiness(self) -> Dict[str, Any]:
        """
        Readiness probe.

        Lista para recibir tráfico si la base responde.
        """
        db_check = await self.check_database()
        result: Dict[str, Any] = {
            "status": "ready" if db_check.status == "up" else "not_ready",
            "timestamp": datetime.utcnow().isoformat() + "Z",
        }
        if db_check.status != "up":
            result["reason"] = db_check.message
        return result


# ============================================================================
# ROUTER
# ============================================================================

health_router = APIRouter(prefix="/health", tags=["health"])


def get_health_checker(request: Request) -> HealthChecker:
    """Health checker guardado en el estado de la app."""
    return request.app.state.health_checker


@health_router.get(
    "",
    summary="Health check completo",
    description="Base de datos, modelo de lenguaje, Telegram y memoria",
    responses={
        200: {"description": "Sistema saludable o degradado"},
        503: {"description": "Sistema no saludable"}
    }
)
async def health_check(request: Request, response: Response):
    """Health check completo del sistema."""
    result = await get_health_checker(request).check_all()
    if result.status == "unhealthy":
        response.status_code = 503
    return result.to_dict()


@health_router.get(
    "/live",
    summary="Liveness probe",
    description="Verifica que la aplicación está viva"
)
async def liveness_check(request: Request):
    """No verifica dependencias externas."""
    return await get_health_checker(request).liveness()


@health_router.get(
    "/ready",
    summary="Readiness probe",
    description="Verifica que la aplicación puede recibir tráfico",
    responses={
        200: {"description": "Aplicación lista"},
        503: {"description": "Aplicación no lista"}
    }
)
async def readiness_check(request: Request, response: Response):
    """Requiere conexión a base de datos."""
    result = await get_health_checker(request).readiness()
    if result["status"] != "ready":
        response.status_code = 503
    return result
