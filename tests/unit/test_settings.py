"""
Tests para la configuración de la aplicación.
"""

import pytest
from pydantic import ValidationError

from config.constants import InvoiceStrictness
from config.settings import Settings


def make_settings(**values) -> Settings:
    return Settings(_env_file=None, **values)


class TestSettingsDefaults:
    """Tests para los valores por defecto de las reglas de acciones."""

    def test_reglas_por_defecto(self):
        config = make_settings()

        assert config.RECHAZAR_NOTE_MIN_LENGTH == 5
        assert config.ESPERA_REPUESTO_NOTE_MIN_LENGTH == 3
        assert config.REINGRESO_NOTE_MIN_LENGTH == 1
        assert config.INVOICE_STRICTNESS == InvoiceStrictness.WARN
        assert config.AGENT_MAX_ITERATIONS == 8

    def test_timeout_de_sesion_en_segundos(self):
        assert make_settings(SESSION_TIMEOUT_MINUTES=10).get_session_timeout_seconds() == 600

    def test_timeout_por_intento_del_modelo(self):
        config = make_settings(LLM_TIMEOUT_SECONDS=30, LLM_MAX_RETRIES=2)

        assert config.get_llm_attempt_timeout() == 10


class TestSettingsValidation:
    """Tests para los validadores."""

    def test_proveedor_normalizado(self):
        assert make_settings(LLM_PROVIDER=" Azure ").LLM_PROVIDER == "azure"

    def test_proveedor_desconocido(self):
        with pytest.raises(ValidationError):
            make_settings(LLM_PROVIDER="anthropic-vertex")

    def test_iteraciones_positivas(self):
        with pytest.raises(ValidationError):
            make_settings(AGENT_MAX_ITERATIONS=0)

    def test_sqlite_prohibido_en_produccion(self):
        with pytest.raises(ValidationError):
            make_settings(
                ENVIRONMENT="production",
                DATABASE_URL="sqlite:///repair_orders.db",
                LLM_API_KEY="sk-prod",
            )

    def test_api_key_obligatoria_en_produccion(self):
        with pytest.raises(ValidationError):
            make_settings(ENVIRONMENT="production", DATABASE_URL="postgresql://u:p@db/orders")


class TestSettingsHelpers:
    """Tests para los helpers de URLs e IDs."""

    def test_urls_async_y_sync(self):
        config = make_settings(DATABASE_URL="postgresql://u:p@db/orders")

        assert config.get_async_database_url() == "postgresql+asyncpg://u:p@db/orders"
        assert config.get_sync_database_url() == "postgresql://u:p@db/orders"

    def test_url_sqlite_sync(self):
        config = make_settings(DATABASE_URL="sqlite+aiosqlite:///orders.db")
        assert config.get_sync_database_url() == "sqlite:///orders.db"

    def test_chats_de_contabilidad(self):
        config = make_settings(TELEGRAM_ACCOUNTING_CHAT_IDS=" 12, -100345 ,,")
        assert config.get_accounting_chat_ids() == [12, -100345]
