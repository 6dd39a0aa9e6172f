"""
Almacén de Sesiones de Conversación

Sesiones de slot filling en memoria del proceso, una por identidad de
conversación ("tg:123", "web:abc"). No sobreviven a un reinicio.

Cada identidad tiene su propio asyncio.Lock. Un mensaje que llega
mientras otro de la misma identidad todavía se procesa se rechaza con
SessionConflictError en lugar de esperar.

Uso:
    store = SessionStore.from_settings(settings)
    async with store.lock("tg:123"):
        session = store.get("tg:123")
"""

import asyncio
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Callable, Dict, List, Optional, Tuple

from config.constants import ActionKind
from src.utils.errors import SessionConflictError
from src.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class ConversationSession:
    """
    Acción pendiente de una conversación.

    Attributes:
        session_id: Identidad de la conversación
        kind: Acción que se está completando
        order_number: Orden sobre la que se ejecuta
        steps: Campos a pedir, en orden
        step_index: Posición del paso actual en steps
        values: Valores ya recolectados (nombre de campo -> valor)
        defaults: Valores ofrecidos por defecto (se aceptan con "si")
        payment_options: Métodos de pago ofrecidos (id, nombre)
        usuario_id: Usuario que firma la novedad
    """
    session_id: str
    kind: ActionKind
    order_number: int
    steps: List[str]
    step_index: int = 0
    values: Dict[str, Any] = field(default_factory=dict)
    defaults: Dict[str, Any] = field(default_factory=dict)
    payment_options: List[Tuple[int, str]] = field(default_factory=list)
    usuario_id: Optional[int] = None
    touched_at: float = 0.0

    @property
    def current_step(self) -> Optional[str]:
        """Campo que se está pidiendo, o None si no quedan pasos."""
        if self.step_index < len(self.steps):
            return self.steps[self.step_index]
        return None

    @property
    def is_complete(self) -> bool:
        return self.step_index >= len(self.steps)

    def fill(self, value: Any) -> None:
        """Guarda el valor del paso actual y avanza al siguiente."""
        self.values[self.steps[self.step_index]] = value
        self.step_index += 1


class SessionStore:
    """
    Sesiones activas con timeout de inactividad.

    Las sesiones vencidas se descartan al consultarlas y en
    purge_expired(), que el propio store corre cada timeout_seconds al
    tomar un lock. El lock de una identidad se libera al soltarlo si no le
    queda sesión.
    """

    def __init__(
        self,
        timeout_seconds: float,
        clock: Callable[[], float] = time.monotonic
    ):
        self.timeout_seconds = timeout_seconds
        self._clock = clock
        self._sessions: Dict[str, ConversationSession] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._last_purge = clock()

    @classmethod
    def from_settings(cls, settings) -> "SessionStore":
        """Crea el store con el timeout configurado."""
        return cls(timeout_seconds=settings.get_session_timeout_seconds())

    def __len__(self) -> int:
        return len(self._sessions)

    # ------------------------------------------------------------------------
    # Exclusión mutua por identidad
    # ------------------------------------------------------------------------

    @asynccontextmanager
    async def lock(self, session_id: str) -> AsyncIterator[None]:
        """
        Toma el lock de la identidad.

        Raises:
            SessionConflictError: Otro mensaje de la misma identidad lo tiene
        """
        self._purge_if_due()

        lock = self._locks.setdefault(session_id, asyncio.Lock())
        if lock.locked():
            logger.warning(f"Mensaje concurrente rechazado para la sesión {session_id}")
            raise SessionConflictError(session_id)

        try:
            async with lock:
                yield
        finally:
            if session_id not in self._sessions and self._locks.get(session_id) is lock:
                del self._locks[session_id]

    def is_locked(self, session_id: str) -> bool:
        lock = self._locks.get(session_id)
        return lock is not None and lock.locked()

    @property
    def lock_count(self) -> int:
        """Identidades con lock registrado."""
        return len(self._locks)

    # ------------------------------------------------------------------------
    # Sesiones
    # ------------------------------------------------------------------------

    def _expired(self, session: ConversationSession, now: float) -> bool:
        return now - session.touched_at >= self.timeout_seconds

    def get(self, session_id: str) -> Optional[ConversationSession]:
        """Sesión activa de la identidad, o None si no hay o venció."""
        session = self._sessions.get(session_id)
        if session is None:
            return None
        if self._expired(session, self._clock()):
            logger.info(f"Sesión {session_id} vencida ({session.kind.value} orden {session.order_number})")
            del self._sessions[session_id]
            return None
        return session

    def has_active(self, session_id: str) -> bool:
        return self.get(session_id) is not None

    def save(self, session: ConversationSession) -> None:
        """Guarda la sesión y renueva su timeout."""
        session.touched_at = self._clock()
        self._sessions[session.session_id] = session

    def pop(self, session_id: str) -> Optional[ConversationSession]:
        """Quita la sesión y la devuelve (aunque haya vencido)."""
        return self._sessions.pop(session_id, None)

    def purge_expired(self) -> int:
        """
        Descarta sesiones vencidas y locks sin uso.

        Returns:
            Cantidad de sesiones descartadas
        """
        now = self._clock()
        self._last_purge = now
        expired = [sid for sid, s in self._sessions.items() if self._expired(s, now)]
        for sid in expired:
            del self._sessions[sid]

        for sid in [sid for sid, lock in self._locks.items() if not lock.locked() and sid not in self._sessions]:
            del self._locks[sid]

        if expired:
            logger.info(f"{len(expired)} sesiones vencidas descartadas")
        return len(expired)

    def _purge_if_due(self) -> None:
        if self._clock() - self._last_purge >= self.timeout_seconds:
            self.purge_expired()
