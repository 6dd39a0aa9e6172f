"""
Tests para el almacén de sesiones de conversación.
"""

import pytest

from config.constants import ActionKind
from src.services.session_store import ConversationSession, SessionStore
from src.utils.errors import SessionConflictError


def make_session(session_id: str = "tg:1", **kwargs) -> ConversationSession:
    data = dict(
        session_id=session_id,
        kind=ActionKind.RETIRA,
        order_number=5001,
        steps=["monto", "metodo_pago_id"],
    )
    data.update(kwargs)
    return ConversationSession(**data)


# ============================================================================
# SESSION TESTS
# ============================================================================

class TestConversationSession:
    """Tests para el avance de pasos."""

    def test_paso_actual(self):
        session = make_session()
        assert session.current_step == "monto"
        assert session.is_complete is False

    def test_fill_avanza(self):
        session = make_session()
        session.fill(20000)

        assert session.values == {"monto": 20000}
        assert session.current_step == "metodo_pago_id"

    def test_completa(self):
        session = make_session()
        session.fill(20000)
        session.fill(1)

        assert session.is_complete is True
        assert session.current_step is None


# ============================================================================
# STORE TESTS
# ============================================================================

class TestSessionStore:
    """Tests para guardado, lectura y vencimiento."""

    def test_save_y_get(self, store):
        session = make_session()
        store.save(session)

        assert store.get("tg:1") is session
        assert store.has_active("tg:1") is True
        assert len(store) == 1

    def test_get_inexistente(self, store):
        assert store.get("tg:999") is None

    def test_una_sesion_por_identidad(self, store):
        """Guardar otra sesión para la misma identidad reemplaza la anterior."""
        store.save(make_session())
        store.save(make_session(kind=ActionKind.SENA))

        assert len(store) == 1
        assert store.get("tg:1").kind == ActionKind.SENA

    def test_sesion_vence_por_inactividad(self, store, clock):
        store.save(make_session())
        clock.advance(store.timeout_seconds)

        assert store.get("tg:1") is None
        assert len(store) == 0

    def test_save_renueva_timeout(self, store, clock):
        session = make_session()
        store.save(session)
        clock.advance(store.timeout_seconds - 1)
        store.save(session)
        clock.advance(store.timeout_seconds - 1)

        assert store.get("tg:1") is session

    def test_pop(self, store):
        session = make_session()
        store.save(session)

        assert store.pop("tg:1") is session
        assert store.pop("tg:1") is None
        assert store.has_active("tg:1") is False

    def test_purge_expired(self, store, clock):
        store.save(make_session("tg:1"))
        clock.advance(store.timeout_seconds / 2)
        store.save(make_session("tg:2"))
        clock.advance(store.timeout_seconds / 2)

        assert store.purge_expired() == 1
        assert store.get("tg:1") is None
        assert store.get("tg:2") is not None

    def test_from_settings(self, test_settings):
        store = SessionStore.from_settings(test_settings)
        assert store.timeout_seconds == test_settings.get_session_timeout_seconds()


# ============================================================================
# LOCK TESTS
# ============================================================================

class TestSessionLock:
    """Tests para la exclusión mutua por identidad."""

    @pytest.mark.asyncio
    async def test_mensaje_concurrente_rechazado(self, store):
        async with store.lock("tg:1"):
            assert store.is_locked("tg:1") is True
            with pytest.raises(SessionConflictError) as exc_info:
                async with store.lock("tg:1"):
                    pass

        assert exc_info.value.session_id == "tg:1"
        assert store.is_locked("tg:1") is False

    @pytest.mark.asyncio
    async def test_identidades_independientes(self, store):
        async with store.lock("tg:1"):
            async with store.lock("tg:2"):
                assert store.is_locked("tg:2") is True

    @pytest.mark.asyncio
    async def test_lock_se_libera_con_error(self, store):
        with pytest.raises(RuntimeError):
            async with store.lock("tg:1"):
                raise RuntimeError("boom")

        async with store.lock("tg:1"):
            pass

    @pytest.mark.asyncio
    async def test_lock_sin_sesion_se_descarta_al_soltarlo(self, store):
        async with store.lock("tg:1"):
            assert store.lock_count == 1

        assert store.lock_count == 0

    @pytest.mark.asyncio
    async def test_lock_con_sesion_se_conserva(self, store):
        async with store.lock("tg:1"):
            store.save(make_session("tg:1"))

        assert store.lock_count == 1

    @pytest.mark.asyncio
    async def test_purge_descarta_locks_sin_uso(self, store):
        async with store.lock("tg:1"):
            store.save(make_session("tg:1"))
        store.pop("tg:1")

        store.purge_expired()

        assert store.lock_count == 0

    @pytest.mark.asyncio
    async def test_purga_periodica_al_tomar_un_lock(self, store, clock):
        """Las sesiones abandonadas se descartan sin que su identidad vuelva a escribir."""
        async with store.lock("tg:1"):
            store.save(make_session("tg:1"))
        clock.advance(store.timeout_seconds)

        async with store.lock("tg:2"):
            assert len(store) == 0
            assert store.lock_count == 1

    @pytest.mark.asyncio
    async def test_sin_purga_antes_de_tiempo(self, store, clock):
        store.save(make_session("tg:1"))
        clock.advance(store.timeout_seconds / 2)

        async with store.lock("tg:2"):
            pass

        assert len(store) == 1
