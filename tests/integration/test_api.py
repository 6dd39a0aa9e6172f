"""
Tests de integración de la API REST.

Requests contra la aplicación FastAPI con httpx (ASGITransport), sobre
la base en memoria.
"""

import asyncio

import pytest

from config.constants import ActionKind, NovedadTipo


# ============================================================================
# ACCIONES
# ============================================================================

class TestActionEndpoints:
    """Tests para POST /api/orders/{n}/{acción}."""

    @pytest.mark.parametrize("kind", list(ActionKind))
    @pytest.mark.asyncio
    async def test_una_ruta_por_accion(self, api_client, kind):
        response = await api_client.post(f"/api/orders/9999/{kind.slug}", json={})

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_retira(self, api_client, make_order, payment_methods, order_state):
        await make_order(id=5001, reparado=True)

        response = await api_client.post(
            "/api/orders/5001/retira", json={"monto": 20000, "metodoPagoId": 1}
        )
        state = await order_state(5001)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Retiro en la orden #5001: REPARADO → RETIRADO. Venta por $20,000.00 (Efectivo)"
        assert body["previousStatus"] == "REPARADO"
        assert body["newStatus"] == "RETIRADO"
        assert body["ventaId"] == state.ventas[0].id

    @pytest.mark.asyncio
    async def test_sin_cuerpo(self, api_client, make_order):
        await make_order(id=5001)

        response = await api_client.post("/api/orders/5001/armado")

        assert response.status_code == 200
        assert response.json()["newStatus"] == "ARMADO"

    @pytest.mark.asyncio
    async def test_monto_faltante(self, api_client, make_order, payment_methods):
        await make_order(id=5001, reparado=True)

        response = await api_client.post("/api/orders/5001/retira", json={"metodoPagoId": 1})

        assert response.status_code == 422
        assert response.json() == {
            "success": False,
            "message": "El monto es obligatorio",
            "context": {"field": "monto", "reason": "es obligatorio"},
        }

    @pytest.mark.asyncio
    async def test_metodo_de_pago_inexistente(self, api_client, make_order, payment_methods, order_state):
        await make_order(id=5001, reparado=True)

        response = await api_client.post(
            "/api/orders/5001/retira", json={"monto": 20000, "metodoPagoId": 99}
        )
        state = await order_state(5001)

        assert response.status_code == 422
        assert response.json()["context"]["field"] == "metodo_pago_id"
        assert state.order.estado == "REPARADO"
        assert state.ventas == []

    @pytest.mark.asyncio
    async def test_orden_inexistente(self, api_client):
        response = await api_client.post("/api/orders/9999/reparado", json={})

        assert response.status_code == 404
        assert response.json() == {
            "success": False,
            "message": "No se encontró la orden 9999.",
            "context": {"entity": "la orden", "id": "9999"},
        }

    @pytest.mark.asyncio
    async def test_retiros_simultaneos(self, api_client, make_order, payment_methods, order_state):
        await make_order(id=5001, reparado=True)
        body = {"monto": 20000, "metodoPagoId": 1}

        responses = await asyncio.gather(
            api_client.post("/api/orders/5001/retira", json=body),
            api_client.post("/api/orders/5001/retira", json=body),
        )
        state = await order_state(5001)

        assert sorted(r.status_code for r in responses) == [200, 422]
        assert len(state.novedades) == 1
        assert len(state.ventas) == 1

    @pytest.mark.asyncio
    async def test_cuerpo_mal_formado(self, api_client, make_order):
        await make_order(id=5001)

        response = await api_client.post("/api/orders/5001/presupuestar", json={"monto": "mucho"})

        assert response.status_code == 422
        body = response.json()
        assert body["success"] is False
        assert body["context"]["errors"][0]["field"] == "monto"


# ============================================================================
# ORDEN Y NOVEDADES
# ============================================================================

class TestOrderEndpoints:
    """Tests para lectura, edición y novedades."""

    @pytest.mark.asyncio
    async def test_obtener_orden(self, api_client, make_order):
        await make_order(id=5001, presupuestado=True)

        response = await api_client.get("/api/orders/5001")

        body = response.json()
        assert body["orderNumber"] == 5001
        assert body["status"] == "PRESUPUESTADO"
        assert body["presupuesto"] == 45000.0
        assert body["customer"]["fullName"]

    @pytest.mark.asyncio
    async def test_patch(self, api_client, make_order, order_state):
        await make_order(id=5001)

        response = await api_client.patch(
            "/api/orders/5001", json={"serie": "SN-9981", "usuarioId": 2}
        )
        state = await order_state(5001)

        assert response.status_code == 200
        assert response.json()["data"]["updated"] == {"serie": "SN-9981"}
        assert state.order.detail.serie == "SN-9981"
        assert state.novedades[0].usuario_id == 2

    @pytest.mark.asyncio
    async def test_patch_vacio(self, api_client, make_order):
        await make_order(id=5001)

        response = await api_client.patch("/api/orders/5001", json={})

        assert response.status_code == 422
        assert response.json()["context"]["field"] == "campos"

    @pytest.mark.asyncio
    async def test_patch_valor_invalido(self, api_client, make_order):
        await make_order(id=5001)

        response = await api_client.patch("/api/orders/5001", json={"email": "sin-arroba"})

        assert response.status_code == 422
        assert response.json()["context"]["field"] == "email"

    @pytest.mark.asyncio
    async def test_agregar_y_listar_novedades(self, api_client, make_order):
        await make_order(id=5001)

        created = await api_client.post(
            "/api/orders/5001/novedades", json={"nota": "Cliente llamó para consultar"}
        )
        listed = await api_client.get("/api/orders/5001/novedades")

        assert created.status_code == 201
        assert created.json()["message"] == "Nota agregada a la orden #5001"
        assert listed.json()[0]["id"] == created.json()["novedadId"]
        assert listed.json()[0]["tipoId"] == NovedadTipo.NOTA
        assert listed.json()[0]["observacion"] == "Cliente llamó para consultar"

    @pytest.mark.asyncio
    async def test_nota_vacia(self, api_client, make_order):
        await make_order(id=5001)

        response = await api_client.post("/api/orders/5001/novedades", json={"nota": "  "})

        assert response.status_code == 422
        assert response.json()["context"]["field"] == "nota"

    @pytest.mark.asyncio
    async def test_novedades_de_orden_inexistente(self, api_client):
        response = await api_client.get("/api/orders/9999/novedades")

        assert response.status_code == 404


# ============================================================================
# CATÁLOGOS, CHAT Y SALUD
# ============================================================================

class TestCatalogEndpoints:
    """Tests para métodos de pago y estados."""

    @pytest.mark.asyncio
    async def test_metodos_de_pago(self, api_client, payment_methods):
        response = await api_client.get("/api/payment-methods")

        assert [m["nombre"] for m in response.json()] == [
            "Efectivo", "Transferencia", "Tarjeta de débito", "Tarjeta de crédito",
        ]

    @pytest.mark.asyncio
    async def test_estados(self, api_client):
        response = await api_client.get("/api/statuses")

        statuses = {s["status"]: s for s in response.json()["statuses"]}
        assert statuses["RETIRADO"]["terminal"] is True
        assert statuses["REPARADO"]["terminal"] is False


class TestChatEndpoint:
    """Tests para POST /api/chat."""

    @pytest.mark.asyncio
    async def test_accion_por_chat(self, api_client, make_order, payment_methods):
        await make_order(id=5001, reparado=True)

        first = await api_client.post("/api/chat", json={"sessionId": "web:1", "message": "retira 5001"})
        await api_client.post("/api/chat", json={"sessionId": "web:1", "message": "si"})
        last = await api_client.post("/api/chat", json={"sessionId": "web:1", "message": "1"})

        assert first.json()["route"] == "session"
        assert "data" not in first.json()
        assert last.json()["route"] == "session"
        assert last.json()["data"]["newStatus"] == "RETIRADO"

    @pytest.mark.asyncio
    async def test_error_con_status_200(self, api_client):
        response = await api_client.post("/api/chat", json={"sessionId": "web:1", "message": "retira 9999"})

        assert response.status_code == 200
        assert response.json()["route"] == "error"

    @pytest.mark.asyncio
    async def test_historial_y_permisos(self, api_client, llm):
        response = await api_client.post("/api/chat", json={
            "sessionId": "web:1",
            "message": "¿y la otra?",
            "conversationHistory": [{"role": "user", "content": "buscá la 5001"}],
            "canAccessAccounting": True,
        })

        assert response.json()["route"] == "agent"
        assert llm.last_messages[1] == {"role": "user", "content": "buscá la 5001"}

    @pytest.mark.asyncio
    async def test_sin_session_id(self, api_client):
        response = await api_client.post("/api/chat", json={"message": "hola"})

        assert response.status_code == 422


class TestHealthEndpoints:
    """Tests para las probes y la raíz."""

    @pytest.mark.asyncio
    async def test_liveness(self, api_client):
        response = await api_client.get("/health/live")

        assert response.json()["status"] == "alive"

    @pytest.mark.asyncio
    async def test_readiness(self, api_client):
        response = await api_client.get("/health/ready")

        assert response.status_code == 200
        assert response.json()["status"] == "ready"

    @pytest.mark.asyncio
    async def test_raiz(self, api_client):
        response = await api_client.get("/")

        assert response.json()["status"] == "running"
        assert response.headers["X-Correlation-ID"]
