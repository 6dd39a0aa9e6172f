"""
Modelos Pydantic del Chat

Entrada y salida del router de sesiones: un mensaje entrante con su
historial y permisos, y la respuesta con la ruta que lo atendió.
"""

from enum import Enum
from typing import Any, List, Optional

from pydantic import Field

from config.constants import ActionKind
from src.models.actions import ActionParams, CamelModel


class ChatRoute(str, Enum):
    """Quién atendió el mensaje"""
    CANCEL = "cancel"
    SESSION = "session"
    LOOKUP = "lookup"
    ACTION = "action"
    AGENT = "agent"
    RATE_LIMITED = "rate_limited"
    CONFLICT = "conflict"
    ERROR = "error"


class HistoryMessage(CamelModel):
    """Mensaje previo de la conversación"""
    role: str
    content: str


class SelectedOrder(CamelModel):
    """Orden que el usuario tiene abierta en pantalla"""
    order_number: int
    status: Optional[str] = None
    customer_name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    device_brand: Optional[str] = None
    device_type: Optional[str] = None
    device_model: Optional[str] = None
    presupuesto: Optional[float] = None


class StructuredAction(CamelModel):
    """Acción pedida desde un botón: tipo, orden y parámetros conocidos"""
    kind: ActionKind
    order_number: Optional[int] = None
    params: ActionParams = Field(default_factory=ActionParams)


class ChatInput(CamelModel):
    """Mensaje entrante"""
    session_id: str = Field(..., min_length=1, max_length=100)
    message: str = Field("", max_length=4000)
    history: List[HistoryMessage] = Field(default_factory=list, alias="conversationHistory")
    can_access_accounting: bool = False
    selected_order: Optional[SelectedOrder] = None
    action: Optional[StructuredAction] = None
    user_id: Optional[int] = None


class ChatReply(CamelModel):
    """Respuesta al mensaje"""
    message: str
    route: ChatRoute
    data: Optional[Any] = None
