"""
Sistema de Logging Estructurado

Configura el logging para toda la aplicación con:
- Salida a consola (colores en desarrollo, JSON en producción)
- Archivo rotativo para logs generales
- Archivo rotativo para errores
- Archivo de auditoría para transiciones de órdenes
- Soporte para contexto (correlation ID, sesión de chat, usuario, acción)
"""

import logging
import json
import uuid
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from datetime import datetime
from typing import Optional, Dict, Any
from contextvars import ContextVar

# Context variables para información de contexto
correlation_id_var: ContextVar[Optional[str]] = ContextVar('correlation_id', default=None)
session_id_var: ContextVar[Optional[str]] = ContextVar('session_id', default=None)
user_id_var: ContextVar[Optional[str]] = ContextVar('user_id', default=None)
action_var: ContextVar[Optional[str]] = ContextVar('action', default=None)


# ============================================================================
# FORMATTERS
# ============================================================================

class ColoredFormatter(logging.Formatter):
    """
    Formatter con colores para desarrollo.
    """

    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
    }
    RESET = '\033[0m'

    def format(self, record: logging.LogRecord) -> str:
        record.correlation_id = (correlation_id_var.get() or '-')[:8]
        record.session_id = session_id_var.get() or '-'

        # Copia para no contaminar el levelname de otros handlers
        record = logging.makeLogRecord(record.__dict__)
        color = self.COLORS.get(record.levelname, '')
        record.levelname = f"{color}{record.levelname}{self.RESET}"

        return super().format(record)


class JSONFormatter(logging.Formatter):
    """
    Formatter JSON para producción.

    Genera logs estructurados fáciles de procesar por herramientas
    como ELK Stack, Datadog, etc.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        context = {
            "correlation_id": correlation_id_var.get(),
            "session_id": session_id_var.get(),
            "user_id": user_id_var.get(),
            "action": action_var.get(),
        }
        log_data.update({k: v for k, v in context.items() if v})

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
            }

        if hasattr(record, 'extra_data'):
            log_data["extra"] = record.extra_data

        return json.dumps(log_data, ensure_ascii=False, default=str)


# ============================================================================
# LOGGER CONFIGURATION
# ============================================================================

_configured = False
_log_level = logging.INFO


def setup_logging(
    environment: str = "development",
    log_level: str = "INFO",
    log_dir: str = "logs"
) -> None:
    """
    Configura el sistema de logging según el entorno.

    Args:
        environment: Entorno (development, staging, production)
        log_level: Nivel de log (DEBUG, INFO, WARNING, ERROR)
        log_dir: Directorio para archivos de log
    """
    global _configured, _log_level

    if _configured:
        return

    _log_level = getattr(logging, log_level.upper(), logging.INFO)

    logs_path = Path(log_dir)
    logs_path.mkdir(exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(_log_level)

    if environment == "production":
        console_handler.setFormatter(JSONFormatter())
    else:
        console_handler.setFormatter(ColoredFormatter(
            '%(asctime)s | %(levelname)-8s | %(correlation_id)s | %(name)s:%(lineno)d | %(message)s',
            datefmt='%H:%M:%S'
        ))

    root_logger.addHandler(console_handler)

    # Handler de archivo general (siempre JSON para procesamiento)
    file_handler = RotatingFileHandler(
        logs_path / "app.log",
        maxBytes=50*1024*1024,  # 50MB
        backupCount=10,
        encoding='utf-8'
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(JSONFormatter())
    root_logger.addHandler(file_handler)

    error_handler = RotatingFileHandler(
        logs_path / "errors.log",
        maxBytes=50*1024*1024,  # 50MB
        backupCount=10,
        encoding='utf-8'
    )
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(JSONFormatter())
    root_logger.addHandler(error_handler)

    # Auditoría de transiciones: se conserva más tiempo
    audit_handler = RotatingFileHandler(
        logs_path / "audit.log",
        maxBytes=100*1024*1024,  # 100MB
        backupCount=30,
        encoding='utf-8'
    )
    audit_handler.setLevel(logging.INFO)
    audit_handler.setFormatter(JSONFormatter())
    audit_handler.addFilter(lambda r: r.name.startswith('audit'))
    root_logger.addHandler(audit_handler)

    # httpx loggea cada request en INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)

    _configured = True

    root_logger.info(
        f"Logging configurado: environment={environment}, level={log_level}"
    )


def get_logger(name: str) -> logging.Logger:
    """
    Obtiene un logger configurado para el módulo especificado.

    Args:
        name: Nombre del módulo (típicamente __name__)

    Returns:
        Logger configurado
    """
    if not _configured:
        try:
            from config.settings import settings
            setup_logging(
                environment=settings.ENVIRONMENT.value,
                log_level=settings.LOG_LEVEL,
                log_dir=settings.LOG_DIR
            )
        except Exception:
            # Configuración por defecto si falla
            setup_logging()

    return logging.getLogger(name)


# ============================================================================
# CONTEXT MANAGEMENT
# ============================================================================

def bind_context(
    correlation_id: str = None,
    session_id: str = None,
    user_id: str = None,
    action: str = None
) -> None:
    """
    Establece variables de contexto para logging.

    Args:
        correlation_id: ID de correlación para tracking
        session_id: Identidad de la conversación
        user_id: ID de usuario
        action: Acción actual
    """
    if correlation_id:
        correlation_id_var.set(correlation_id)
    if session_id:
        session_id_var.set(session_id)
    if user_id:
        user_id_var.set(str(user_id))
    if action:
        action_var.set(action)


def clear_context() -> None:
    """Limpia todas las variables de contexto."""
    correlation_id_var.set(None)
    session_id_var.set(None)
    user_id_var.set(None)
    action_var.set(None)


def new_correlation_id() -> str:
    """
    Genera y establece un nuevo correlation ID.

    Returns:
        El correlation ID generado
    """
    cid = str(uuid.uuid4())
    correlation_id_var.set(cid)
    return cid


def get_correlation_id() -> Optional[str]:
    """Obtiene el correlation ID actual."""
    return correlation_id_var.get()


class LogContext:
    """
    Context manager para establecer contexto de logging temporalmente.

    Uso:
        with LogContext(session_id="tg:123", action="Retira"):
            logger.info("Este log incluirá el contexto")
    """

    def __init__(
        self,
        correlation_id: str = None,
        session_id: str = None,
        user_id: str = None,
        action: str = None,
        auto_correlation: bool = True
    ):
        self.correlation_id = correlation_id
        self.session_id = session_id
        self.user_id = user_id
        self.action = action
        self.auto_correlation = auto_correlation
        self._tokens = []

    def __enter__(self):
        if self.correlation_id:
            self._tokens.append((correlation_id_var, correlation_id_var.set(self.correlation_id)))
        elif self.auto_correlation and not correlation_id_var.get():
            self._tokens.append((correlation_id_var, correlation_id_var.set(str(uuid.uuid4()))))

        if self.session_id:
            self._tokens.append((session_id_var, session_id_var.set(self.session_id)))
        if self.user_id:
            self._tokens.append((user_id_var, user_id_var.set(str(self.user_id))))
        if self.action:
            self._tokens.append((action_var, action_var.set(self.action)))

        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        for var, token in reversed(self._tokens):
            var.reset(token)
        self._tokens = []
        return False


# ============================================================================
# AUDIT LOGGER
# ============================================================================

class AuditLogger:
    """
    Logger especializado para auditoría.

    Registra transiciones de órdenes, actualizaciones de campos y
    herramientas ejecutadas por el agente.
    """

    def __init__(self, name: str = "orders"):
        self.logger = logging.getLogger(f"audit.{name}")

    def log(
        self,
        action: str,
        entity_type: str = None,
        entity_id: str = None,
        user_id: str = None,
        details: Dict[str, Any] = None,
        old_values: Dict[str, Any] = None,
        new_values: Dict[str, Any] = None,
        status: str = "success"
    ) -> None:
        """
        Registra una acción de auditoría.

        Args:
            action: Tipo de acción (ver config.constants.AuditAction)
            entity_type: Tipo de entidad afectada
            entity_id: ID de la entidad
            user_id: ID del usuario (si no se proporciona, usa el contexto)
            details: Detalles adicionales
            old_values: Valores anteriores
            new_values: Valores nuevos
            status: Estado de la acción (success, failure)
        """
        audit_data = {
            "action": action,
            "status": status,
            "timestamp": datetime.utcnow().isoformat() + "Z",
        }

        user = user_id or user_id_var.get()
        if user:
            audit_data["user_id"] = str(user)
        if session_id_var.get():
            audit_data["session_id"] = session_id_var.get()
        if correlation_id_var.get():
            audit_data["correlation_id"] = correlation_id_var.get()

        if entity_type:
            audit_data["entity_type"] = entity_type
        if entity_id:
            audit_data["entity_id"] = str(entity_id)
        if details:
            audit_data["details"] = details
        if old_values:
            audit_data["old_values"] = old_values
        if new_values:
            audit_data["new_values"] = new_values

        self.logger.info(
            f"AUDIT: {action} on {entity_type or 'unknown'}",
            extra={"extra_data": audit_data}
        )

    def transition(
        self,
        order_number: int,
        kind: str,
        previous_status: str,
        new_status: str,
        user_id: Optional[int] = None,
        details: Dict[str, Any] = None
    ) -> None:
        """Registra una transición de estado ejecutada."""
        self.log(
            action="TRANSICION_EJECUTADA",
            entity_type="order",
            entity_id=str(order_number),
            user_id=str(user_id) if user_id else None,
            details={"kind": kind, **(details or {})},
            old_values={"estado": previous_status},
            new_values={"estado": new_status},
        )

    def rejected(self, order_number: int, kind: str, reason: str) -> None:
        """Registra una transición rechazada por validación."""
        self.log(
            action="TRANSICION_RECHAZADA",
            entity_type="order",
            entity_id=str(order_number),
            details={"kind": kind, "reason": reason},
            status="failure",
        )

    def fields_updated(
        self,
        order_number: int,
        old_values: Dict[str, Any],
        new_values: Dict[str, Any]
    ) -> None:
        """Registra una actualización de campos de cliente o equipo."""
        self.log(
            action="CAMPOS_ACTUALIZADOS",
            entity_type="order",
            entity_id=str(order_number),
            old_values=old_values,
            new_values=new_values,
        )

    def tool_call(self, tool_name: str, success: bool) -> None:
        """Registra una herramienta ejecutada por el agente."""
        self.log(
            action="HERRAMIENTA_EJECUTADA",
            entity_type="tool",
            entity_id=tool_name,
            status="success" if success else "failure",
        )


# Instancia global del audit logger
audit_logger = AuditLogger()


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def log_exception(logger: logging.Logger, message: str, exc: Exception) -> None:
    """
    Loggea una excepción con contexto completo.

    Args:
        logger: Logger a usar
        message: Mensaje descriptivo
        exc: Excepción a loggear
    """
    logger.error(
        f"{message}: {type(exc).__name__}: {str(exc)}",
        exc_info=exc,
        extra={
            "extra_data": {
                "exception_type": type(exc).__name__,
                "exception_message": str(exc),
            }
        }
    )


def log_performance(logger: logging.Logger, operation: str, duration_ms: float) -> None:
    """
    Loggea métricas de rendimiento.

    Args:
        logger: Logger a usar
        operation: Nombre de la operación
        duration_ms: Duración en milisegundos
    """
    logger.info(
        f"Performance: {operation} completed in {duration_ms:.2f}ms",
        extra={
            "extra_data": {
                "metric_type": "performance",
                "operation": operation,
                "duration_ms": duration_ms,
            }
        }
    )
