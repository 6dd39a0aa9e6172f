"""
Sistema Centralizado de Manejo de Errores

Proporciona:
- Taxonomía de errores del orquestador (NotFound, Validation, AccessDenied,
  Upstream, Persistence, SessionConflict)
- Mensajes amigables para usuarios
- Payload estructurado {success: false, message, context}
- Correlation IDs para soporte técnico
- Decorador para manejo automático en handlers del canal de chat
"""

import logging
from enum import Enum
from functools import wraps
from typing import Optional, Callable, Any, Dict
from dataclasses import dataclass, field

from src.utils.logger import (
    get_logger,
    new_correlation_id,
    get_correlation_id,
    LogContext,
)

logger = get_logger(__name__)


# ============================================================================
# ERROR CATEGORIES
# ============================================================================

class ErrorCategory(str, Enum):
    """Categorías de error para clasificación."""
    NOT_FOUND = "NOT_FOUND"
    VALIDATION = "VALIDATION"
    AUTHORIZATION = "AUTHORIZATION"
    EXTERNAL_API = "EXTERNAL_API"
    DATABASE = "DATABASE"
    CONFLICT = "CONFLICT"
    INTERNAL = "INTERNAL"


class ErrorSeverity(str, Enum):
    """Severidad del error para priorización."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


HTTP_STATUS = {
    ErrorCategory.NOT_FOUND: 404,
    ErrorCategory.VALIDATION: 422,
    ErrorCategory.AUTHORIZATION: 403,
    ErrorCategory.EXTERNAL_API: 502,
    ErrorCategory.DATABASE: 503,
    ErrorCategory.CONFLICT: 409,
    ErrorCategory.INTERNAL: 500,
}


# ============================================================================
# USER-FRIENDLY MESSAGES
# ============================================================================

USER_MESSAGES = {
    ErrorCategory.NOT_FOUND: "No encontré lo que buscás.",
    ErrorCategory.VALIDATION: (
        "Los datos ingresados no son válidos.\n"
        "Revisalos e intentá nuevamente."
    ),
    ErrorCategory.AUTHORIZATION: (
        "No tenés permisos para realizar esta acción."
    ),
    ErrorCategory.EXTERNAL_API: (
        "El asistente no está respondiendo en este momento.\n"
        "Intentá nuevamente en unos minutos."
    ),
    ErrorCategory.DATABASE: (
        "Hubo un problema al guardar la información.\n"
        "La acción no se registró; volvé a iniciarla."
    ),
    ErrorCategory.CONFLICT: (
        "Todavía estoy procesando tu mensaje anterior.\n"
        "Esperá un momento y volvé a enviarlo."
    ),
    ErrorCategory.INTERNAL: (
        "Ocurrió un error inesperado.\n"
        "Nuestro equipo ha sido notificado."
    ),
}


# ============================================================================
# ERROR CONTEXT
# ============================================================================

@dataclass
class ErrorContext:
    """Contexto adicional para un error."""
    session_id: Optional[str] = None
    operation: Optional[str] = None
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)


# ============================================================================
# CUSTOM EXCEPTIONS
# ============================================================================

class OrchestratorError(Exception):
    """
    Excepción base del orquestador de órdenes.

    Incluye categoría, severidad, mensaje amigable y se serializa siempre
    como {success: false, message, context}.
    """

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.INTERNAL,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        user_message: Optional[str] = None,
        context: Optional[ErrorContext] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.severity = severity
        self.user_message = user_message or USER_MESSAGES.get(
            category, USER_MESSAGES[ErrorCategory.INTERNAL]
        )
        self.context = context or ErrorContext()
        self.original_error = original_error
        self.correlation_id = get_correlation_id() or new_correlation_id()

    @property
    def http_status(self) -> int:
        """Código HTTP equivalente."""
        return HTTP_STATUS.get(self.category, 500)

    def get_user_message(self, include_reference: bool = True) -> str:
        """Obtiene el mensaje para mostrar al usuario."""
        if include_reference and self.severity in (
            ErrorSeverity.HIGH, ErrorSeverity.CRITICAL
        ):
            return f"{self.user_message}\n\nReferencia: {self.correlation_id[:8]}"
        return self.user_message

    def payload_context(self) -> Dict[str, Any]:
        """Datos de contexto visibles para el cliente."""
        data = dict(self.context.extra)
        if self.context.entity_type:
            data["entity"] = self.context.entity_type
        if self.context.entity_id:
            data["id"] = self.context.entity_id
        return data

    def to_payload(self) -> Dict[str, Any]:
        """Payload de error para API, herramientas y canal de chat."""
        payload: Dict[str, Any] = {
            "success": False,
            "message": self.get_user_message(),
        }
        context = self.payload_context()
        if context:
            payload["context"] = context
        return payload

    def to_dict(self) -> Dict[str, Any]:
        """Convierte el error a diccionario para logging."""
        return {
            "message": self.message,
            "category": self.category.value,
            "severity": self.severity.value,
            "correlation_id": self.correlation_id,
            "context": {
                "session_id": self.context.session_id,
                "operation": self.context.operation,
                "entity_type": self.context.entity_type,
                "entity_id": self.context.entity_id,
                "extra": self.context.extra,
            },
            "original_error": str(self.original_error) if self.original_error else None,
        }


class NotFoundError(OrchestratorError):
    """Orden, cliente o método de pago inexistente."""

    def __init__(
        self,
        entity: str,
        identifier: Any,
        user_message: Optional[str] = None,
        **kwargs
    ):
        self.entity = entity
        self.identifier = identifier
        kwargs.setdefault(
            "context",
            ErrorContext(entity_type=entity, entity_id=str(identifier))
        )
        super().__init__(
            message=f"{entity} {identifier} no encontrado",
            category=ErrorCategory.NOT_FOUND,
            severity=ErrorSeverity.LOW,
            user_message=user_message or f"No se encontró {entity} {identifier}.",
            **kwargs
        )


class ValidationError(OrchestratorError):
    """
    Campo faltante o mal formado.

    `field` y `reason` viajan en el contexto del payload para que el
    cliente pueda marcar el campo.
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        reason: Optional[str] = None,
        user_message: Optional[str] = None,
        **kwargs
    ):
        self.field = field
        self.reason = reason or message
        context = kwargs.pop("context", None) or ErrorContext()
        if field:
            context.extra.setdefault("field", field)
        context.extra.setdefault("reason", self.reason)
        super().__init__(
            message=message,
            category=ErrorCategory.VALIDATION,
            severity=ErrorSeverity.LOW,
            user_message=user_message or message,
            context=context,
            **kwargs
        )


class InvalidPaymentMethodError(ValidationError):
    """Método de pago inexistente en el catálogo."""

    def __init__(self, payment_method_id: Any, **kwargs):
        self.payment_method_id = payment_method_id
        super().__init__(
            message=f"El método de pago {payment_method_id} no existe",
            field="metodo_pago_id",
            reason="método de pago inválido",
            **kwargs
        )


class AccessDeniedError(OrchestratorError):
    """Operación restringida por permisos del llamador."""

    def __init__(
        self,
        message: str,
        user_message: Optional[str] = None,
        **kwargs
    ):
        super().__init__(
            message=message,
            category=ErrorCategory.AUTHORIZATION,
            severity=ErrorSeverity.LOW,
            user_message=user_message,
            **kwargs
        )


class UpstreamError(OrchestratorError):
    """Fallo del modelo de lenguaje u otro servicio externo."""

    def __init__(
        self,
        message: str,
        service: str = "llm",
        status_code: Optional[int] = None,
        category: ErrorCategory = ErrorCategory.EXTERNAL_API,
        **kwargs
    ):
        self.service = service
        self.status_code = status_code
        super().__init__(
            message=message,
            category=category,
            severity=kwargs.pop("severity", ErrorSeverity.MEDIUM),
            **kwargs
        )


class PersistenceError(UpstreamError):
    """Fallo al escribir en la base de datos. No se reintenta."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message=message,
            service="database",
            category=ErrorCategory.DATABASE,
            severity=ErrorSeverity.HIGH,
            **kwargs
        )


class SessionConflictError(OrchestratorError):
    """Mensaje concurrente sobre una sesión que ya está procesando otro."""

    def __init__(self, session_id: str, **kwargs):
        self.session_id = session_id
        super().__init__(
            message=f"Sesión {session_id} ocupada",
            category=ErrorCategory.CONFLICT,
            severity=ErrorSeverity.LOW,
            context=ErrorContext(session_id=session_id),
            **kwargs
        )


class OrderConflictError(OrchestratorError):
    """La orden cambió en otra transacción mientras se procesaba la acción."""

    def __init__(self, order_number: int, **kwargs):
        self.order_number = order_number
        super().__init__(
            message=f"Orden {order_number} modificada concurrentemente",
            category=ErrorCategory.CONFLICT,
            severity=ErrorSeverity.MEDIUM,
            user_message=(
                f"La orden #{order_number} cambió mientras se registraba la acción. "
                f"Consultala y volvé a intentar."
            ),
            context=ErrorContext(entity_type="order", entity_id=str(order_number)),
            **kwargs
        )


# ============================================================================
# ERROR HANDLER DECORATOR
# ============================================================================

def handle_errors(
    user_message: Optional[str] = None,
    log_level: int = logging.ERROR,
    reraise: bool = False,
    notify_user: bool = True,
    default_return: Any = None
) -> Callable:
    """
    Decorador para manejo automático de errores en handlers de chat.

    Args:
        user_message: Mensaje personalizado para el usuario
        log_level: Nivel de logging para errores inesperados
        reraise: Si relanzar la excepción después de manejarla
        notify_user: Si notificar al usuario del error
        default_return: Valor a retornar en caso de error

    Usage:
        @handle_errors(user_message="No pude procesar tu mensaje")
        async def handle_text_message(update, context):
            ...
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def async_wrapper(*args, **kwargs) -> Any:
            correlation_id = get_correlation_id() or new_correlation_id()

            try:
                with LogContext(correlation_id=correlation_id):
                    return await func(*args, **kwargs)

            except OrchestratorError as e:
                level = log_level if e.severity in (
                    ErrorSeverity.HIGH, ErrorSeverity.CRITICAL
                ) else logging.WARNING
                log_orchestrator_error(e, func.__name__, level)

                if notify_user:
                    await _notify_user_of_error(args, e.get_user_message())

                if reraise:
                    raise
                return default_return

            except Exception as e:
                error = OrchestratorError(
                    message=f"Error inesperado en {func.__name__}: {str(e)}",
                    category=ErrorCategory.INTERNAL,
                    severity=ErrorSeverity.HIGH,
                    original_error=e
                )

                log_orchestrator_error(error, func.__name__, log_level, exc_info=True)

                if notify_user:
                    msg = user_message or error.get_user_message()
                    await _notify_user_of_error(args, msg)

                if reraise:
                    raise error from e
                return default_return

        return async_wrapper

    return decorator


def log_orchestrator_error(
    error: OrchestratorError,
    function_name: str,
    log_level: int,
    exc_info: bool = False
) -> None:
    """Loggea un OrchestratorError con contexto completo."""
    error_dict = error.to_dict()
    error_dict["function"] = function_name

    logger.log(
        log_level,
        f"[{error.correlation_id[:8]}] {error.category.value}: {error.message}",
        extra={"extra_data": error_dict},
        exc_info=exc_info
    )


async def _notify_user_of_error(args: tuple, message: str) -> None:
    """Intenta notificar al usuario del error."""
    update = None

    for arg in args:
        if hasattr(arg, 'effective_message'):
            update = arg
            break

    if update is None or update.effective_message is None:
        return

    try:
        await update.effective_message.reply_text(message)
    except Exception as notify_error:
        logger.warning(f"No se pudo notificar error al usuario: {notify_error}")


# ============================================================================
# ERROR CONVERSION UTILITIES
# ============================================================================

def wrap_external_error(
    error: Exception,
    service: str = "llm",
    operation: Optional[str] = None,
    status_code: Optional[int] = None
) -> UpstreamError:
    """Envuelve un error de servicio externo en UpstreamError."""
    return UpstreamError(
        message=f"Error en {service}: {str(error)}",
        service=service,
        status_code=status_code,
        original_error=error,
        context=ErrorContext(operation=operation)
    )


def wrap_database_error(
    error: Exception,
    operation: Optional[str] = None,
    entity_type: Optional[str] = None
) -> PersistenceError:
    """Envuelve un error de base de datos."""
    return PersistenceError(
        message=f"Error de base de datos: {str(error)}",
        original_error=error,
        context=ErrorContext(
            operation=operation,
            entity_type=entity_type
        )
    )


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    # Categories & Severity
    "ErrorCategory",
    "ErrorSeverity",
    "HTTP_STATUS",
    # Exceptions
    "OrchestratorError",
    "NotFoundError",
    "ValidationError",
    "InvalidPaymentMethodError",
    "AccessDeniedError",
    "UpstreamError",
    "PersistenceError",
    "SessionConflictError",
    "OrderConflictError",
    "ErrorContext",
    # Decorator
    "handle_errors",
    "log_orchestrator_error",
    # Utilities
    "wrap_external_error",
    "wrap_database_error",
    # Messages
    "USER_MESSAGES",
]
