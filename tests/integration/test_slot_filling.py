"""
Tests de integración del slot filling.

Conversaciones completas sobre la base en memoria: preguntas, respuestas
inválidas, cancelación, vencimiento y ejecución final.
"""

from decimal import Decimal

import pytest

from config.constants import ActionKind
from src.models.actions import ActionParams
from src.services.slot_filling import SlotFillingOrchestrator
from src.utils.errors import NotFoundError, ValidationError

SESSION = "tg:100"


# ============================================================================
# FLUJOS COMPLETOS
# ============================================================================

class TestSlotFillingFlow:
    """Tests para conversaciones que terminan en una transición."""

    @pytest.mark.asyncio
    async def test_reparacion_en_domicilio(self, slots, make_order, payment_methods, order_state):
        await make_order(id=5001, estado="ACEPTADO")

        reply = await slots.begin(SESSION, ActionKind.REP_DOMICILIO, 5001)
        assert reply.session_active is True
        assert reply.message == "Ingresá el monto cobrado en domicilio por la orden #5001"

        reply = await slots.advance(SESSION, "20000")
        assert reply.message == (
            "Elegí el método de pago (número o nombre):\n"
            "1. Efectivo\n2. Transferencia\n3. Tarjeta de débito\n4. Tarjeta de crédito"
        )

        reply = await slots.advance(SESSION, "2")
        state = await order_state(5001)

        assert reply.completed is True
        assert reply.session_active is False
        assert reply.result.new_status == "REP. EN DOMICILIO"
        assert reply.message.endswith("Venta por $20,000.00 (Transferencia)")
        assert state.ventas[0].monto == Decimal("20000.00")
        assert state.ventas[0].metodo_pago_id == 2
        assert slots.has_session(SESSION) is False

    @pytest.mark.asyncio
    async def test_retiro_acepta_presupuesto(self, slots, make_order, payment_methods):
        await make_order(id=5001, reparado=True)

        reply = await slots.begin(SESSION, ActionKind.RETIRA, 5001)
        assert reply.message == (
            'Ingresá el monto cobrado por la orden #5001 (respondé "si" para usar $20,000.00)'
        )

        await slots.advance(SESSION, "si")
        reply = await slots.advance(SESSION, "efectivo")

        assert reply.result.monto == Decimal("20000.00")
        assert reply.result.metodo_pago == "Efectivo"

    @pytest.mark.asyncio
    async def test_sena_no_ofrece_presupuesto(self, slots, make_order, payment_methods):
        await make_order(id=5001, presupuestado=True)

        reply = await slots.begin(SESSION, ActionKind.SENA, 5001)

        assert reply.message == "Ingresá el monto de la seña de la orden #5001"

    @pytest.mark.asyncio
    async def test_informar_presupuesto(self, slots, make_order):
        await make_order(id=5001, presupuestado=True)

        reply = await slots.begin(SESSION, ActionKind.INFORMAR_PRESUPUESTO, 5001)
        assert "1. acepta" in reply.message

        reply = await slots.advance(SESSION, "acepta")
        assert reply.message.endswith('(respondé "si" para usar $45,000.00)')

        reply = await slots.advance(SESSION, "si")
        assert reply.result.new_status == "ACEPTADO"

    @pytest.mark.asyncio
    async def test_rechaza_presupuesto_sin_nota(self, slots, make_order, order_state):
        await make_order(id=5001, presupuestado=True)

        reply = await slots.begin(SESSION, ActionKind.RECHAZA_PRESUPUESTO, 5001)
        assert reply.message.endswith('(o respondé "no" para omitirla)')

        reply = await slots.advance(SESSION, "no")
        state = await order_state(5001)

        assert reply.result.new_status == "RECHAZO PRESUP."
        assert state.novedades[0].observacion is None

    @pytest.mark.asyncio
    async def test_archivar(self, slots, make_order, order_state):
        await make_order(id=5001, estado="RECHAZADO")

        await slots.begin(SESSION, ActionKind.ARCHIVAR, 5001)
        await slots.advance(SESSION, "Depósito, estante 3")
        reply = await slots.advance(SESSION, "n")
        state = await order_state(5001)

        assert reply.result.new_status == "ARCHIVADO"
        assert state.order.detail.ubicacion == "Depósito, estante 3"
        assert state.novedades[0].observacion == "Archivado en Depósito, estante 3"

    @pytest.mark.asyncio
    async def test_datos_conocidos_ejecuta_directo(self, slots, store, make_order, payment_methods):
        """Si no falta ningún dato, no se crea sesión."""
        await make_order(id=5001, reparado=True)

        reply = await slots.begin(
            SESSION, ActionKind.RETIRA, 5001, ActionParams(monto=15000, metodo_pago_id=1)
        )

        assert reply.completed is True
        assert reply.result.new_status == "RETIRADO"
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_datos_conocidos_se_saltean(self, slots, make_order, payment_methods):
        await make_order(id=5001, reparado=True)

        reply = await slots.begin(SESSION, ActionKind.RETIRA, 5001, ActionParams(monto=15000))

        assert reply.message.startswith("Elegí el método de pago")

    @pytest.mark.asyncio
    async def test_advertencias_en_el_mensaje(self, slots, make_order, payment_methods):
        await make_order(id=5001, reparado=True)

        await slots.begin(SESSION, ActionKind.RETIRA, 5001, ActionParams(facturado=True))
        await slots.advance(SESSION, "20000")
        reply = await slots.advance(SESSION, "1")

        assert reply.message.endswith(
            "\nAtención: Venta marcada como facturada sin tipo_factura ni numero_factura"
        )

    @pytest.mark.asyncio
    async def test_ida_y_vuelta_igual_a_llamada_directa(
        self, slots, transition_engine, make_order, payment_methods, order_state
    ):
        """Completar por conversación deja lo mismo que ejecutar con los datos."""
        await make_order(id=5001, reparado=True)
        await make_order(id=5002, reparado=True)

        await slots.begin(SESSION, ActionKind.RETIRA, 5001)
        await slots.advance(SESSION, "$18.500")
        via_slots = (await slots.advance(SESSION, "Transferencia")).result

        direct = await transition_engine.execute(
            5002, ActionKind.RETIRA, ActionParams(monto=Decimal("18500"), metodo_pago_id=2)
        )
        slot_state = await order_state(5001)
        direct_state = await order_state(5002)

        assert via_slots.new_status == direct.new_status
        assert via_slots.monto == direct.monto
        assert via_slots.metodo_pago == direct.metodo_pago
        assert slot_state.order.precio == direct_state.order.precio
        assert [n.tipo_id for n in slot_state.novedades] == [n.tipo_id for n in direct_state.novedades]
        assert slot_state.ventas[0].monto == direct_state.ventas[0].monto


# ============================================================================
# RESPUESTAS INVÁLIDAS Y CANCELACIÓN
# ============================================================================

class TestSlotFillingInput:
    """Tests para respuestas que no completan el paso."""

    @pytest.mark.asyncio
    async def test_monto_invalido_repregunta(self, slots, store, make_order, payment_methods):
        await make_order(id=5001, reparado=True)
        await slots.begin(SESSION, ActionKind.SENA, 5001)

        reply = await slots.advance(SESSION, "mucho")

        assert reply.session_active is True
        assert reply.message == "Formato de monto inválido. Ingresá el monto de la seña de la orden #5001"
        assert store.get(SESSION).step_index == 0

    @pytest.mark.asyncio
    async def test_monto_cero_repregunta(self, slots, make_order, payment_methods):
        await make_order(id=5001, presupuestado=True)
        await slots.begin(SESSION, ActionKind.SENA, 5001)

        reply = await slots.advance(SESSION, "0")

        assert reply.message.startswith("El monto debe ser positivo. ")
        assert reply.session_active is True

    @pytest.mark.asyncio
    async def test_metodo_ambiguo_repregunta(self, slots, store, make_order, payment_methods):
        await make_order(id=5001, reparado=True)
        await slots.begin(SESSION, ActionKind.RETIRA, 5001)
        await slots.advance(SESSION, "20000")

        reply = await slots.advance(SESSION, "tarjeta")

        assert "coincide con más de una opción" in reply.message
        assert store.get(SESSION).current_step == "metodo_pago_id"

    @pytest.mark.asyncio
    async def test_nota_corta_repregunta(self, slots, make_order, test_settings):
        await make_order(id=5001)
        await slots.begin(SESSION, ActionKind.RECHAZAR, 5001)

        reply = await slots.advance(SESSION, "x")

        minimo = test_settings.RECHAZAR_NOTE_MIN_LENGTH
        assert reply.message.startswith(f"La nota debe tener al menos {minimo} caracteres. ")
        assert reply.session_active is True

    @pytest.mark.parametrize("respuestas", [[], ["20000"]])
    @pytest.mark.asyncio
    async def test_cancelar_en_cualquier_paso(
        self, slots, make_order, payment_methods, order_state, respuestas
    ):
        await make_order(id=5001, reparado=True)
        await slots.begin(SESSION, ActionKind.RETIRA, 5001)
        for texto in respuestas:
            await slots.advance(SESSION, texto)

        reply = await slots.advance(SESSION, "/cancelar")
        state = await order_state(5001)

        assert reply.cancelled is True
        assert reply.message == "Acción cancelada."
        assert slots.has_session(SESSION) is False
        assert state.order.estado == "REPARADO"
        assert state.novedades == []

    @pytest.mark.asyncio
    async def test_cancel_directo(self, slots, make_order):
        await make_order(id=5001)
        await slots.begin(SESSION, ActionKind.RECHAZAR, 5001)

        assert slots.cancel(SESSION) is True
        assert slots.cancel(SESSION) is False

    @pytest.mark.asyncio
    async def test_sin_sesion(self, slots):
        assert await slots.advance(SESSION, "20000") is None


# ============================================================================
# INICIO Y FIN DE SESIÓN
# ============================================================================

class TestSlotFillingLifecycle:
    """Tests para inicio, reemplazo, vencimiento y fallos del motor."""

    @pytest.mark.asyncio
    async def test_orden_inexistente_no_crea_sesion(self, slots, store):
        with pytest.raises(NotFoundError):
            await slots.begin(SESSION, ActionKind.RETIRA, 9999)

        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_estado_invalido_no_crea_sesion(self, slots, store, make_order):
        await make_order(id=5001, retirado=True)

        with pytest.raises(ValidationError) as exc_info:
            await slots.begin(SESSION, ActionKind.REPARADO, 5001)

        assert exc_info.value.reason == "la orden ya salió del taller"
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_sin_metodos_de_pago(self, slots, store, make_order):
        await make_order(id=5001, reparado=True)

        with pytest.raises(ValidationError) as exc_info:
            await slots.begin(SESSION, ActionKind.RETIRA, 5001)

        assert exc_info.value.field == "metodo_pago_id"
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_nueva_accion_reemplaza_la_anterior(self, slots, store, make_order, payment_methods):
        await make_order(id=5001, reparado=True)
        await make_order(id=5002)

        await slots.begin(SESSION, ActionKind.RETIRA, 5001)
        await slots.begin(SESSION, ActionKind.RECHAZAR, 5002)

        session = store.get(SESSION)
        assert session.kind == ActionKind.RECHAZAR
        assert session.order_number == 5002

    @pytest.mark.asyncio
    async def test_sesion_vencida(self, slots, clock, store, make_order, payment_methods):
        await make_order(id=5001, reparado=True)
        await slots.begin(SESSION, ActionKind.RETIRA, 5001)

        clock.advance(store.timeout_seconds)

        assert await slots.advance(SESSION, "20000") is None

    @pytest.mark.asyncio
    async def test_actividad_renueva_timeout(self, slots, clock, store, make_order, payment_methods):
        await make_order(id=5001, reparado=True)
        await slots.begin(SESSION, ActionKind.RETIRA, 5001)

        clock.advance(store.timeout_seconds - 1)
        await slots.advance(SESSION, "20000")
        clock.advance(store.timeout_seconds - 1)

        reply = await slots.advance(SESSION, "1")
        assert reply.completed is True

    @pytest.mark.asyncio
    async def test_fallo_del_motor_termina_la_sesion(
        self, slots, transition_engine, make_order, payment_methods
    ):
        """Si la orden cambió mientras se completaban datos, la acción no se registra."""
        await make_order(id=5001, reparado=True)
        await slots.begin(SESSION, ActionKind.SENA, 5001)
        await slots.advance(SESSION, "5000")

        await transition_engine.execute(5001, ActionKind.RETIRA, ActionParams(monto=20000, metodo_pago_id=1))
        reply = await slots.advance(SESSION, "1")

        assert reply.completed is False
        assert reply.session_active is False
        assert reply.message.endswith("\nLa acción no se registró. Volvé a iniciarla.")
        assert slots.has_session(SESSION) is False

    @pytest.mark.asyncio
    async def test_nota_de_reparacion(self, slots, make_order, order_state):
        await make_order(id=5001)

        await slots.begin(SESSION, ActionKind.REPARADO, 5001)
        reply = await slots.advance(SESSION, "Cambio de fuente")
        state = await order_state(5001)

        assert reply.result.new_status == "REPARADO"
        assert state.order.detail.reparacion_desc == "Cambio de fuente"

    @pytest.mark.asyncio
    async def test_lectura_de_la_orden_sin_el_lock(
        self, transition_engine, store, session_provider, test_settings, make_order, payment_methods
    ):
        await make_order(id=5001, reparado=True)
        locked_while_reading = []

        def recording_provider():
            locked_while_reading.append(store.is_locked(SESSION))
            return session_provider()

        slots = SlotFillingOrchestrator(transition_engine, store, recording_provider, config=test_settings)
        await slots.begin(SESSION, ActionKind.RETIRA, 5001)

        assert locked_while_reading == [False]
        assert store.has_active(SESSION) is True
