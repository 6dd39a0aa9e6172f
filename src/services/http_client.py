"""
Cliente HTTP con Retry y Circuit Breaker

Cliente para el modelo de lenguaje:
- Retry automático con backoff exponencial ante timeouts, errores de
  conexión, 429 y 5xx
- Circuit breaker para no insistir contra un proveedor caído
- Un único httpx.AsyncClient reutilizado (se cierra con aclose)

Uso:
    client = ResilientHTTPClient(base_timeout=45.0, max_retries=2)
    response = await client.post(url, json=payload, headers=headers)
"""

import asyncio
import random
import httpx
from typing import Optional, Dict, Any
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from src.utils.logger import get_logger

logger = get_logger(__name__)

# Códigos que vale la pena reintentar
RETRYABLE_STATUS = frozenset({429, 500, 502, 503, 504})


class CircuitState(Enum):
    """Estados del circuit breaker."""
    CLOSED = "closed"      # Funcionando normal
    OPEN = "open"          # Circuito abierto, rechaza requests
    HALF_OPEN = "half_open"  # Probando si el servicio se recuperó


@dataclass
class CircuitBreaker:
    """
    Circuit breaker del proveedor del modelo.

    Luego de `failure_threshold` fallos seguidos rechaza llamadas durante
    `recovery_timeout` segundos; después deja pasar una prueba.
    """
    failure_threshold: int = 5
    recovery_timeout: int = 60  # segundos
    half_open_max_calls: int = 1

    state: CircuitState = field(default=CircuitState.CLOSED)
    failure_count: int = field(default=0)
    success_count: int = field(default=0)
    last_failure_time: Optional[datetime] = field(default=None)
    half_open_calls: int = field(default=0)

    def record_success(self):
        """Registra una llamada exitosa."""
        if self.state == CircuitState.HALF_OPEN:
            self.success_count += 1
            if self.success_count >= self.half_open_max_calls:
                self._close()
        elif self.state == CircuitState.CLOSED:
            self.failure_count = 0

    def record_failure(self):
        """Registra una llamada fallida."""
        self.failure_count += 1
        self.last_failure_time = datetime.utcnow()

        if self.state == CircuitState.HALF_OPEN or self.failure_count >= self.failure_threshold:
            self._open()

    def can_execute(self) -> bool:
        """Verifica si se puede ejecutar una llamada."""
        if self.state == CircuitState.CLOSED:
            return True

        if self.state == CircuitState.OPEN:
            if self._should_try_reset():
                self._half_open()
                self.half_open_calls += 1
                return True
            return False

        if self.half_open_calls < self.half_open_max_calls:
            self.half_open_calls += 1
            return True
        return False

    def _open(self):
        if self.state != CircuitState.OPEN:
            logger.warning(f"Circuit breaker ABIERTO después de {self.failure_count} fallos")
        self.state = CircuitState.OPEN

    def _close(self):
        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self.success_count = 0
        self.half_open_calls = 0
        logger.info("Circuit breaker CERRADO - servicio recuperado")

    def _half_open(self):
        self.state = CircuitState.HALF_OPEN
        self.half_open_calls = 0
        self.success_count = 0
        logger.info("Circuit breaker HALF-OPEN - probando servicio")

    def _should_try_reset(self) -> bool:
        if not self.last_failure_time:
            return True
        elapsed = (datetime.utcnow() - self.last_failure_time).total_seconds()
        return elapsed >= self.recovery_timeout


@dataclass
class RetryConfig:
    """Configuración de reintentos."""
    max_retries: int = 2
    base_delay: float = 1.0  # segundos
    max_delay: float = 10.0  # segundos
    exponential_base: float = 2.0
    jitter: bool = True

    def get_delay(self, attempt: int) -> float:
        """Calcula delay con backoff exponencial."""
        delay = min(
            self.base_delay * (self.exponential_base ** attempt),
            self.max_delay
        )
        if self.jitter:
            delay = delay * (0.5 + random.random())
        return delay


class CircuitBreakerOpen(Exception):
    """Excepción cuando el circuit breaker está abierto."""
    pass


class ResilientHTTPClient:
    """
    Cliente HTTP resiliente con retry y circuit breaker.

    Los errores 4xx distintos de 429 se devuelven sin reintentar: son
    problemas del request, no del proveedor.
    """

    def __init__(
        self,
        base_timeout: float = 45.0,
        max_retries: int = 2,
        circuit_breaker_threshold: int = 5,
        circuit_breaker_recovery: int = 60,
        retry_config: Optional[RetryConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Inicializa el cliente.

        Args:
            base_timeout: Timeout base en segundos
            max_retries: Número máximo de reintentos
            circuit_breaker_threshold: Fallos antes de abrir circuito
            circuit_breaker_recovery: Segundos antes de probar recuperación
            retry_config: Reemplaza la configuración de reintentos
            transport: Transporte httpx (los tests usan httpx.MockTransport)
        """
        self.timeout = base_timeout
        self.retry_config = retry_config or RetryConfig(max_retries=max_retries)
        self.circuit_breaker = CircuitBreaker(
            failure_threshold=circuit_breaker_threshold,
            recovery_timeout=circuit_breaker_recovery
        )
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self._client

    async def post(
        self,
        url: str,
        json: Dict[str, Any] = None,
        headers: Dict[str, str] = None,
        params: Dict[str, str] = None,
        timeout: float = None
    ) -> httpx.Response:
        """
        Realiza POST con retry y circuit breaker.

        Args:
            url: URL destino
            json: Datos JSON a enviar
            headers: Headers HTTP
            params: Query string
            timeout: Timeout opcional (usa default si no se especifica)

        Returns:
            httpx.Response (puede ser 4xx; el llamador decide)

        Raises:
            CircuitBreakerOpen: Si el circuito está abierto
            httpx.HTTPError: Si todos los reintentos fallan
        """
        if not self.circuit_breaker.can_execute():
            raise CircuitBreakerOpen(
                f"Circuit breaker abierto para {url}. Reintentando en "
                f"{self.circuit_breaker.recovery_timeout}s"
            )

        client = self._get_client()
        last_exception: Optional[Exception] = None

        for attempt in range(self.retry_config.max_retries + 1):
            try:
                response = await client.post(
                    url,
                    json=json,
                    params=params,
                    headers=headers or {"Content-Type": "application/json"},
                    timeout=timeout or self.timeout,
                )

                if response.status_code in RETRYABLE_STATUS:
                    raise httpx.HTTPStatusError(
                        f"Server error {response.status_code}",
                        request=response.request,
                        response=response
                    )

                self.circuit_breaker.record_success()
                return response

            except (httpx.TimeoutException, httpx.ConnectError, httpx.HTTPStatusError) as e:
                last_exception = e
                self.circuit_breaker.record_failure()

                if attempt < self.retry_config.max_retries and self.circuit_breaker.can_execute():
                    delay = self.retry_config.get_delay(attempt)
                    logger.warning(
                        f"Intento {attempt + 1}/{self.retry_config.max_retries + 1} "
                        f"falló para {url}: {e}. Reintentando en {delay:.1f}s"
                    )
                    await asyncio.sleep(delay)
                else:
                    logger.error(f"Todos los reintentos fallaron para {url}: {e}")
                    break

            except httpx.HTTPError as e:
                self.circuit_breaker.record_failure()
                logger.error(f"Error inesperado en request a {url}: {e}")
                raise

        raise last_exception

    def get_circuit_status(self) -> Dict[str, Any]:
        """Retorna estado actual del circuit breaker."""
        return {
            "state": self.circuit_breaker.state.value,
            "failure_count": self.circuit_breaker.failure_count,
            "last_failure": self.circuit_breaker.last_failure_time.isoformat()
            if self.circuit_breaker.last_failure_time else None
        }

    async def aclose(self) -> None:
        """Cierra el cliente httpx subyacente."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
