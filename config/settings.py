"""
Configuración centralizada del sistema

Carga variables de entorno y proporciona acceso a configuración
en todo el proyecto.

Uso:
    from config.settings import settings

    timeout = settings.LLM_TIMEOUT_SECONDS
    max_iter = settings.AGENT_MAX_ITERATIONS
"""

from pydantic_settings import BaseSettings
from pydantic import SecretStr, field_validator
from typing import Optional, List

from config.constants import InvoiceStrictness
from config.environments import Environment, get_config


class Settings(BaseSettings):
    """
    Configuración del sistema con soporte multi-entorno.

    Todas las configuraciones se cargan desde variables de entorno
    o archivo .env, con valores por defecto sensatos para desarrollo.
    """

    # =========================================================================
    # ENTORNO
    # =========================================================================
    ENVIRONMENT: Environment = Environment.DEVELOPMENT
    DEBUG: bool = False

    # =========================================================================
    # INFORMACIÓN DEL PROYECTO
    # =========================================================================
    PROJECT_NAME: str = "Repair Order Orchestrator"
    VERSION: str = "1.0.0"
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000

    # =========================================================================
    # BASE DE DATOS
    # =========================================================================
    DATABASE_URL: str = "sqlite+aiosqlite:///repair_orders.db"
    DATABASE_ECHO: bool = False
    DATABASE_POOL_SIZE: int = 5
    DATABASE_MAX_OVERFLOW: int = 10
    DATABASE_POOL_RECYCLE: int = 1800  # Reciclar conexiones cada 30 min

    # Usuario que firma novedades cuando el canal no identifica a nadie
    DEFAULT_USER_ID: Optional[int] = None

    # =========================================================================
    # MODELO DE LENGUAJE (chat completions compatible OpenAI)
    # =========================================================================
    LLM_PROVIDER: str = "openai"  # openai o azure
    LLM_BASE_URL: str = "https://api.openai.com/v1"
    LLM_API_KEY: SecretStr = SecretStr("")
    LLM_MODEL: str = "gpt-4o-mini"  # En Azure es el nombre del deployment
    LLM_API_VERSION: str = "2024-06-01"  # Solo Azure
    LLM_TEMPERATURE: float = 0.2
    LLM_TIMEOUT_SECONDS: float = 45.0
    LLM_MAX_RETRIES: int = 2
    LLM_CIRCUIT_BREAKER_THRESHOLD: int = 5
    LLM_CIRCUIT_BREAKER_RECOVERY: int = 60

    # =========================================================================
    # AGENTE
    # =========================================================================
    AGENT_MAX_ITERATIONS: int = 8
    AGENT_HISTORY_LIMIT: int = 20
    AGENT_PROMPT_FILE: Optional[str] = None  # Reemplaza el prompt base

    # =========================================================================
    # CONVERSACIÓN
    # =========================================================================
    SESSION_TIMEOUT_MINUTES: int = 10

    # =========================================================================
    # REGLAS DE VALIDACIÓN DE ACCIONES
    # =========================================================================
    RECHAZAR_NOTE_MIN_LENGTH: int = 5
    ESPERA_REPUESTO_NOTE_MIN_LENGTH: int = 3
    REINGRESO_NOTE_MIN_LENGTH: int = 1
    INVOICE_STRICTNESS: InvoiceStrictness = InvoiceStrictness.WARN

    # =========================================================================
    # RATE LIMITING - Mensajes de chat
    # =========================================================================
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_MESSAGE_MAX: int = 30
    RATE_LIMIT_MESSAGE_WINDOW: int = 60

    # =========================================================================
    # TELEGRAM (canal de chat opcional)
    # =========================================================================
    TELEGRAM_BOT_TOKEN: str = ""
    TELEGRAM_ACCOUNTING_CHAT_IDS: str = ""  # IDs separados por coma
    TELEGRAM_HISTORY_LIMIT: int = 10

    # =========================================================================
    # LOGGING
    # =========================================================================
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"

    @field_validator("DATABASE_URL")
    @classmethod
    def validate_database_url(cls, v: str, info) -> str:
        """Valida que no se use SQLite en producción"""
        values = info.data
        if values.get("ENVIRONMENT") == Environment.PRODUCTION:
            if "sqlite" in v.lower():
                raise ValueError("SQLite no está permitido en producción. Use PostgreSQL.")
        return v

    @field_validator("LLM_API_KEY")
    @classmethod
    def validate_llm_api_key(cls, v: SecretStr, info) -> SecretStr:
        """Valida que la API key del modelo esté configurada en producción"""
        values = info.data
        if values.get("ENVIRONMENT") == Environment.PRODUCTION:
            if not v.get_secret_value():
                raise ValueError("LLM_API_KEY es obligatoria en producción")
        return v

    @field_validator("LLM_PROVIDER")
    @classmethod
    def validate_llm_provider(cls, v: str) -> str:
        """Solo se soportan los dialectos openai y azure"""
        v = v.lower().strip()
        if v not in ("openai", "azure"):
            raise ValueError("LLM_PROVIDER debe ser 'openai' o 'azure'")
        return v

    @field_validator("AGENT_MAX_ITERATIONS", "SESSION_TIMEOUT_MINUTES")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Los límites del agente y de la sesión deben ser positivos"""
        if v < 1:
            raise ValueError("El valor debe ser mayor o igual a 1")
        return v

    def get_async_database_url(self) -> str:
        """Retorna la URL de base de datos para async"""
        url = self.DATABASE_URL

        if url.startswith("postgresql://"):
            return url.replace("postgresql://", "postgresql+asyncpg://")
        elif url.startswith("sqlite:///"):
            return url.replace("sqlite:///", "sqlite+aiosqlite:///")

        return url

    def get_sync_database_url(self) -> str:
        """Retorna la URL de base de datos para sync (migraciones)"""
        url = self.DATABASE_URL

        if "asyncpg" in url:
            return url.replace("postgresql+asyncpg://", "postgresql://")
        elif "aiosqlite" in url:
            return url.replace("sqlite+aiosqlite:///", "sqlite:///")

        return url

    def get_accounting_chat_ids(self) -> List[int]:
        """Retorna los chats de Telegram con acceso a contabilidad."""
        return [
            int(chat_id.strip())
            for chat_id in self.TELEGRAM_ACCOUNTING_CHAT_IDS.split(",")
            if chat_id.strip()
        ]

    def get_session_timeout_seconds(self) -> float:
        """Retorna el timeout de inactividad de sesión en segundos."""
        return self.SESSION_TIMEOUT_MINUTES * 60.0

    def get_llm_attempt_timeout(self) -> float:
        """
        Timeout de cada intento HTTP al modelo.

        LLM_TIMEOUT_SECONDS acota la llamada completa (todos los intentos),
        así que cada intento recibe una parte para que los reintentos
        alcancen a correr.
        """
        return self.LLM_TIMEOUT_SECONDS / (self.LLM_MAX_RETRIES + 1)

    def is_production(self) -> bool:
        """Verifica si está en producción."""
        return self.ENVIRONMENT == Environment.PRODUCTION

    def is_development(self) -> bool:
        """Verifica si está en desarrollo."""
        return self.ENVIRONMENT == Environment.DEVELOPMENT

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


# Instancia única de configuración
settings = Settings()

# Aplicar configuración del entorno
env_config = get_config(settings.ENVIRONMENT)
if not settings.DEBUG:
    settings.DEBUG = env_config.DEBUG
