"""
Servicio de Rate Limiting

Limita la cantidad de mensajes por identidad de conversación para que
un cliente del canal de chat no sature el modelo de lenguaje.

Los límites se configuran en settings, no hardcodeados.

Uso:
    from src.utils.rate_limiter import RateLimiter

    limiter = RateLimiter.from_settings(settings)
    if not limiter.allow(session_id):
        return limiter.message
"""

import time
from collections import defaultdict, deque
from typing import Callable, Deque, Dict, Optional

from src.utils.logger import get_logger

logger = get_logger(__name__)


class RateLimiter:
    """
    Rate limiter de ventana deslizante en memoria.

    Cada clave conserva los timestamps de sus últimos requests; los que
    salen de la ventana se descartan al consultar.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: int,
        enabled: bool = True,
        clock: Callable[[], float] = time.monotonic,
        message: str = ""
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.enabled = enabled
        self._clock = clock
        self._requests: Dict[str, Deque[float]] = defaultdict(deque)
        self.message = message or (
            "Demasiados mensajes seguidos.\n"
            f"Esperá unos segundos (máximo {max_requests} cada {window_seconds}s)."
        )

    @classmethod
    def from_settings(cls, settings) -> "RateLimiter":
        """Crea el limiter de mensajes desde la configuración."""
        return cls(
            max_requests=settings.RATE_LIMIT_MESSAGE_MAX,
            window_seconds=settings.RATE_LIMIT_MESSAGE_WINDOW,
            enabled=settings.RATE_LIMIT_ENABLED,
        )

    def _cleanup(self, key: str, now: float) -> Deque[float]:
        """Descarta timestamps fuera de la ventana."""
        timestamps = self._requests[key]
        while timestamps and now - timestamps[0] >= self.window_seconds:
            timestamps.popleft()
        return timestamps

    def allow(self, key: str) -> bool:
        """
        Registra un request y dice si está dentro del límite.

        Args:
            key: Identidad de la conversación

        Returns:
            True si el request puede procesarse
        """
        if not self.enabled:
            return True

        now = self._clock()
        timestamps = self._cleanup(key, now)

        if len(timestamps) >= self.max_requests:
            logger.warning(f"Rate limit excedido para {key}")
            return False

        timestamps.append(now)
        return True

    def remaining(self, key: str) -> int:
        """Requests disponibles en la ventana actual."""
        timestamps = self._cleanup(key, self._clock())
        return max(0, self.max_requests - len(timestamps))

    def reset(self, key: Optional[str] = None) -> None:
        """Resetea una clave o todas."""
        if key is None:
            self._requests.clear()
        else:
            self._requests.pop(key, None)
