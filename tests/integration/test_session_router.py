"""
Tests de integración del router de sesiones.

Cada mensaje pasa por router.handle, como lo recibe desde el bot o la API.
"""

import asyncio

import pytest

from config.constants import ActionKind
from src.models.actions import ActionParams
from src.models.chat import ChatInput, ChatRoute, SelectedOrder, StructuredAction
from src.services.messages import MENSAJES
from src.services.session_router import SessionRouter
from src.utils.errors import UpstreamError
from src.utils.rate_limiter import RateLimiter
from tests.factories import text_reply, tool_reply

SESSION = "web:abc"


@pytest.fixture
def router(app_context):
    return app_context.router


@pytest.fixture
def send(router):
    """Envía un mensaje de texto por el router."""
    async def _send(message: str, **kwargs):
        return await router.handle(ChatInput(session_id=SESSION, message=message, **kwargs))
    return _send


def action(kind, order_number=None, **params):
    return StructuredAction(kind=kind, order_number=order_number, params=ActionParams(**params))


# ============================================================================
# CANCELACIÓN Y BÚSQUEDA RÁPIDA
# ============================================================================

class TestRouterShortcuts:
    """Tests para cancelar y para la búsqueda "#número"."""

    @pytest.mark.asyncio
    async def test_cancelar_sin_accion(self, send):
        reply = await send("cancelar")

        assert reply.route == ChatRoute.CANCEL
        assert reply.message == MENSAJES['sin_accion_en_curso']

    @pytest.mark.asyncio
    async def test_busqueda_rapida(self, send, make_order, llm):
        await make_order(id=5001, reparado=True)

        reply = await send("#5001")

        assert reply.route == ChatRoute.LOOKUP
        assert reply.message.startswith("```json\n")
        assert reply.data[0]["orderNumber"] == 5001
        assert reply.data[0]["status"] == "REPARADO"
        assert llm.calls == []

    @pytest.mark.asyncio
    async def test_busqueda_rapida_sin_resultado(self, send):
        reply = await send("# 9999")

        assert reply.route == ChatRoute.LOOKUP
        assert reply.data == []
        assert reply.message == "No encontré la orden #9999."


# ============================================================================
# ACCIONES
# ============================================================================

class TestRouterActions:
    """Tests para acciones estructuradas y comandos escritos."""

    @pytest.mark.asyncio
    async def test_accion_completa(self, router, make_order, payment_methods, order_state):
        await make_order(id=5001, reparado=True)

        reply = await router.handle(ChatInput(
            session_id=SESSION,
            action=action(ActionKind.RETIRA, 5001, monto=20000, metodo_pago_id=1),
            user_id=7,
        ))
        state = await order_state(5001)

        assert reply.route == ChatRoute.ACTION
        assert reply.data["newStatus"] == "RETIRADO"
        assert reply.data["monto"] == 20000.0
        assert state.novedades[0].usuario_id == 7

    @pytest.mark.asyncio
    async def test_accion_incompleta_abre_sesion(self, router, send, make_order, payment_methods):
        await make_order(id=5001, reparado=True)

        reply = await router.handle(ChatInput(session_id=SESSION, action=action(ActionKind.RETIRA, 5001, monto=20000)))
        assert reply.route == ChatRoute.SESSION
        assert reply.message.startswith("Elegí el método de pago")

        reply = await send("efectivo")
        assert reply.route == ChatRoute.SESSION
        assert reply.data["newStatus"] == "RETIRADO"

    @pytest.mark.asyncio
    async def test_accion_completa_reemplaza_sesion(self, router, app_context, make_order, payment_methods):
        await make_order(id=5001, reparado=True)
        await make_order(id=5002)
        await router.handle(ChatInput(session_id=SESSION, message="retira 5001"))

        await router.handle(ChatInput(
            session_id=SESSION, action=action(ActionKind.RECHAZAR, 5002, nota="Placa quemada"),
        ))

        assert app_context.slots.has_session(SESSION) is False

    @pytest.mark.asyncio
    async def test_accion_usa_orden_seleccionada(self, router, make_order):
        await make_order(id=5001)

        reply = await router.handle(ChatInput(
            session_id=SESSION,
            action=action(ActionKind.REPARADO),
            selected_order=SelectedOrder(order_number=5001),
        ))

        assert reply.route == ChatRoute.ACTION
        assert reply.data["orderNumber"] == 5001

    @pytest.mark.asyncio
    async def test_accion_sin_orden(self, router):
        reply = await router.handle(ChatInput(session_id=SESSION, action=action(ActionKind.REPARADO)))

        assert reply.route == ChatRoute.ACTION
        assert reply.message == MENSAJES['falta_orden']

    @pytest.mark.asyncio
    async def test_comando_escrito(self, send, make_order, payment_methods):
        await make_order(id=5001, presupuestado=True)

        reply = await send("seña #5001")
        assert reply.route == ChatRoute.SESSION
        assert reply.message == "Ingresá el monto de la seña de la orden #5001"

        await send("5000")
        reply = await send("2")
        assert reply.data["newStatus"] == "PRESUPUESTADO"
        assert reply.message == "Seña en la orden #5001. Venta por $5,000.00 (Transferencia)"

    @pytest.mark.asyncio
    async def test_comando_con_orden_seleccionada(self, send, make_order):
        await make_order(id=5001)

        reply = await send("rechazar", selected_order=SelectedOrder(order_number=5001))

        assert reply.route == ChatRoute.SESSION
        assert reply.message.startswith("Ingresá el motivo por el que no se puede reparar")

    @pytest.mark.asyncio
    async def test_comando_sin_orden(self, send):
        reply = await send("retira")

        assert reply.route == ChatRoute.SESSION
        assert reply.message == MENSAJES['falta_orden']

    @pytest.mark.asyncio
    async def test_sesion_tiene_prioridad_sobre_el_agente(self, send, make_order, payment_methods, llm):
        await make_order(id=5001, reparado=True)
        await send("retira 5001")

        reply = await send("¿cuánto era?")

        assert reply.route == ChatRoute.SESSION
        assert reply.message.startswith("Formato de monto inválido")
        assert llm.calls == []

    @pytest.mark.asyncio
    async def test_cancelar_sesion(self, send, make_order):
        await make_order(id=5001)
        await send("rechazar 5001")

        reply = await send("Cancelar")

        assert reply.route == ChatRoute.CANCEL
        assert reply.message == "Acción cancelada."

    @pytest.mark.asyncio
    async def test_orden_inexistente(self, send):
        reply = await send("retira 9999")

        assert reply.route == ChatRoute.ERROR
        assert reply.message == "No se encontró la orden 9999."
        assert reply.data["success"] is False

    @pytest.mark.asyncio
    async def test_estado_invalido(self, router, make_order, order_state):
        await make_order(id=5001, retirado=True)

        reply = await router.handle(ChatInput(
            session_id=SESSION, action=action(ActionKind.ARMADO, 5001),
        ))
        state = await order_state(5001)

        assert reply.route == ChatRoute.ERROR
        assert reply.data["context"]["field"] == "estado"
        assert state.novedades == []


# ============================================================================
# AGENTE
# ============================================================================

class TestRouterAgent:
    """Tests para los mensajes que atiende el agente."""

    @pytest.mark.asyncio
    async def test_consulta_libre(self, send, llm, make_order):
        await make_order(id=5001)
        llm.push(
            tool_reply(("SearchOrderByNumber", {"orderNumber": 5001})),
            text_reply("La 5001 está ingresada."),
        )

        reply = await send("¿en qué está la orden 5001?")

        assert reply.route == ChatRoute.AGENT
        assert reply.message == "La 5001 está ingresada."
        assert reply.data == {"iterations": 2, "toolCalls": ["SearchOrderByNumber"]}

    @pytest.mark.asyncio
    async def test_permiso_de_contabilidad_en_el_prompt(self, send, llm):
        llm.push(text_reply("ok"))

        await send("ventas de hoy", can_access_accounting=True)

        assert "- Datos contables y ventas del negocio" in llm.last_messages[0]["content"]

    @pytest.mark.asyncio
    async def test_mensaje_vacio(self, send, llm):
        reply = await send("   ")

        assert reply.route == ChatRoute.AGENT
        assert reply.message == MENSAJES['mensaje_vacio']
        assert llm.calls == []

    @pytest.mark.asyncio
    async def test_error_del_modelo(self, send, llm):
        llm.push(UpstreamError("HTTP 500", status_code=500))

        reply = await send("hola")

        assert reply.route == ChatRoute.ERROR
        assert reply.data["success"] is False


# ============================================================================
# LÍMITES Y CONCURRENCIA
# ============================================================================

class TestRouterLimits:
    """Tests para rate limit y mensajes concurrentes."""

    @pytest.mark.asyncio
    async def test_rate_limit(self, app_context, clock, llm):
        limiter = RateLimiter(max_requests=1, window_seconds=60, clock=clock)
        router = SessionRouter(
            app_context.engine, app_context.slots, app_context.agent,
            app_context.session_provider, rate_limiter=limiter,
        )

        first = await router.handle(ChatInput(session_id=SESSION, message="hola"))
        second = await router.handle(ChatInput(session_id=SESSION, message="hola"))
        other = await router.handle(ChatInput(session_id="web:otro", message="hola"))

        assert first.route == ChatRoute.AGENT
        assert second.route == ChatRoute.RATE_LIMITED
        assert second.message == limiter.message
        assert other.route == ChatRoute.AGENT
        assert len(llm.calls) == 2

    @pytest.mark.asyncio
    async def test_mensaje_concurrente(self, router, store, llm):
        async with store.lock(SESSION):
            reply = await router.handle(ChatInput(session_id=SESSION, message="hola"))

        assert reply.route == ChatRoute.CONFLICT
        assert llm.calls == []

    def test_contexto_usa_el_store_recibido(self, app_context, store):
        """Un store vacío también se respeta: el router y el slot filling comparten el del test."""
        assert len(store) == 0
        assert app_context.store is store
        assert app_context.slots.store is store

    @pytest.mark.asyncio
    async def test_accion_completa_simultanea_en_la_misma_sesion(
        self, router, make_order, payment_methods, order_state
    ):
        await make_order(id=5001, reparado=True)
        chat = ChatInput(
            session_id=SESSION, action=action(ActionKind.RETIRA, 5001, monto=20000, metodo_pago_id=1),
        )

        first, second = await asyncio.gather(router.handle(chat), router.handle(chat))
        state = await order_state(5001)

        assert first.route == ChatRoute.ACTION
        assert second.route == ChatRoute.CONFLICT
        assert len(state.novedades) == 1
        assert len(state.ventas) == 1

    @pytest.mark.asyncio
    async def test_accion_simultanea_desde_otra_sesion(
        self, router, make_order, payment_methods, order_state
    ):
        await make_order(id=5001, reparado=True)
        retira = action(ActionKind.RETIRA, 5001, monto=20000, metodo_pago_id=1)

        first, second = await asyncio.gather(
            router.handle(ChatInput(session_id=SESSION, action=retira)),
            router.handle(ChatInput(session_id="web:otro", action=retira)),
        )
        state = await order_state(5001)

        assert first.route == ChatRoute.ACTION
        assert second.route == ChatRoute.ERROR
        assert second.data["context"]["field"] == "estado"
        assert len(state.ventas) == 1

    @pytest.mark.asyncio
    async def test_locks_de_identidades_sin_sesion_no_se_acumulan(self, router, store):
        for i in range(50):
            await router.handle(ChatInput(session_id=f"web:{i}", message="#1"))

        assert store.lock_count == 0

    @pytest.mark.asyncio
    async def test_sesiones_abandonadas_se_purgan(self, router, store, clock, make_order):
        await make_order(id=5001)
        await router.handle(ChatInput(session_id=SESSION, message="rechazar 5001"))
        assert len(store) == 1

        clock.advance(store.timeout_seconds)
        await router.handle(ChatInput(session_id="web:otro", message="#5001"))

        assert len(store) == 0
        assert store.lock_count == 0
