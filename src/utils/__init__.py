"""
Utilidades del Sistema

Módulo que exporta todas las utilidades:
- Logger: Logging estructurado con contexto
- Validators: Parseo de montos, notas, opciones y contacto
- Errors: Taxonomía de errores del orquestador
- Rate limiter: Límite de mensajes por conversación
"""

# Logger
from src.utils.logger import (
    get_logger,
    setup_logging,
    bind_context,
    clear_context,
    new_correlation_id,
    get_correlation_id,
    LogContext,
    AuditLogger,
    audit_logger,
    log_exception,
    log_performance,
)

# Validators
from src.utils.validators import (
    ValidationResult,
    ValidationLimits,
    MoneyValidator,
    TextValidator,
    SelectionValidator,
    ContactValidator,
    AFFIRMATION_TOKENS,
    CANCEL_TOKENS,
    NO_NOTE_TOKENS,
)

# Errors
from src.utils.errors import (
    ErrorCategory,
    ErrorSeverity,
    ErrorContext,
    OrchestratorError,
    NotFoundError,
    ValidationError,
    InvalidPaymentMethodError,
    AccessDeniedError,
    UpstreamError,
    PersistenceError,
    SessionConflictError,
    OrderConflictError,
    handle_errors,
    wrap_external_error,
    wrap_database_error,
)

# Rate limiting
from src.utils.rate_limiter import RateLimiter

__all__ = [
    # Logger
    "get_logger",
    "setup_logging",
    "bind_context",
    "clear_context",
    "new_correlation_id",
    "get_correlation_id",
    "LogContext",
    "AuditLogger",
    "audit_logger",
    "log_exception",
    "log_performance",
    # Validators
    "ValidationResult",
    "ValidationLimits",
    "MoneyValidator",
    "TextValidator",
    "SelectionValidator",
    "ContactValidator",
    "AFFIRMATION_TOKENS",
    "CANCEL_TOKENS",
    "NO_NOTE_TOKENS",
    # Errors
    "ErrorCategory",
    "ErrorSeverity",
    "ErrorContext",
    "OrchestratorError",
    "NotFoundError",
    "ValidationError",
    "InvalidPaymentMethodError",
    "AccessDeniedError",
    "UpstreamError",
    "PersistenceError",
    "SessionConflictError",
    "OrderConflictError",
    "handle_errors",
    "wrap_external_error",
    "wrap_database_error",
    # Rate limiting
    "RateLimiter",
]
