"""
Tests de integración del loop del agente.

El modelo es un guion (ScriptedLLM); las herramientas corren contra la
base en memoria.
"""

import asyncio
import json

import pytest

from src.models.chat import HistoryMessage, SelectedOrder
from src.services.agent_loop import AgentLoop
from src.services.messages import MENSAJES
from src.services.tools import ACCOUNTING_DENIED_MESSAGE, build_registry
from src.utils.errors import UpstreamError
from tests.factories import ScriptedLLM, text_reply, tool_reply


@pytest.fixture
def make_agent(session_provider, test_settings):
    def _make(llm, **overrides):
        config = test_settings.model_copy(update=overrides) if overrides else test_settings
        return AgentLoop(llm, build_registry(session_provider), config=config)
    return _make


class SlowLLM:
    async def complete(self, messages, tools=None):
        await asyncio.sleep(1)


# ============================================================================
# MENSAJES AL MODELO
# ============================================================================

class TestBuildMessages:
    """Tests para la conversación que recibe el modelo."""

    def test_system_usuario(self, make_agent):
        messages = make_agent(ScriptedLLM()).build_messages("hola")

        assert [m["role"] for m in messages] == ["system", "user"]
        assert messages[-1]["content"] == "hola"

    def test_historial_filtrado_y_recortado(self, make_agent):
        history = [
            HistoryMessage(role="user", content="uno"),
            HistoryMessage(role="system", content="ignorar"),
            HistoryMessage(role="assistant", content="dos"),
            HistoryMessage(role="user", content="   "),
            HistoryMessage(role="user", content="tres"),
        ]

        messages = make_agent(ScriptedLLM(), AGENT_HISTORY_LIMIT=2).build_messages("cuatro", history)

        assert [m["content"] for m in messages[1:]] == ["dos", "tres", "cuatro"]

    def test_sin_historial_si_el_limite_es_cero(self, make_agent):
        history = [HistoryMessage(role="user", content="uno")]

        messages = make_agent(ScriptedLLM(), AGENT_HISTORY_LIMIT=0).build_messages("dos", history)

        assert len(messages) == 2

    def test_orden_seleccionada_en_el_prompt(self, make_agent):
        selected = SelectedOrder(order_number=5001, status="REPARADO")

        messages = make_agent(ScriptedLLM()).build_messages("¿cuánto sale?", selected_order=selected)

        assert "5001" in messages[0]["content"]


# ============================================================================
# LOOP
# ============================================================================

class TestAgentLoop:
    """Tests para la ejecución de herramientas y el tope de iteraciones."""

    @pytest.mark.asyncio
    async def test_respuesta_directa(self, make_agent):
        llm = ScriptedLLM(text_reply("Hola, ¿en qué te ayudo?"))

        reply = await make_agent(llm).run("hola")

        assert reply.message == "Hola, ¿en qué te ayudo?"
        assert reply.iterations == 1
        assert reply.tool_calls == []
        assert llm.calls[0]["tools"]

    @pytest.mark.asyncio
    async def test_ejecuta_herramienta_y_devuelve_resultado(self, make_agent, make_order):
        await make_order(id=5001, reparado=True)
        llm = ScriptedLLM(
            tool_reply(("SearchOrderByNumber", {"orderNumber": 5001})),
            text_reply("La orden 5001 está reparada."),
        )

        reply = await make_agent(llm).run("¿cómo está la 5001?")

        assert reply.message == "La orden 5001 está reparada."
        assert reply.iterations == 2
        assert reply.tool_calls == ["SearchOrderByNumber"]

        assistant, tool = llm.last_messages[-2:]
        assert assistant["tool_calls"][0]["function"]["name"] == "SearchOrderByNumber"
        assert tool["role"] == "tool"
        assert tool["tool_call_id"] == "call_1"
        assert json.loads(tool["content"])["data"]["status"] == "REPARADO"

    @pytest.mark.asyncio
    async def test_varias_herramientas_en_un_turno(self, make_agent, make_order):
        await make_order(id=5001)
        llm = ScriptedLLM(
            tool_reply(
                ("SearchOrderByNumber", {"orderNumber": 5001}),
                ("SearchOrderByNumber", {"orderNumber": 9999}),
            ),
            text_reply("Encontré una sola."),
        )

        reply = await make_agent(llm).run("buscá 5001 y 9999")

        tool_messages = [m for m in llm.last_messages if m["role"] == "tool"]
        assert [m["tool_call_id"] for m in tool_messages] == ["call_1", "call_2"]
        assert json.loads(tool_messages[1]["content"])["success"] is False
        assert reply.tool_calls == ["SearchOrderByNumber", "SearchOrderByNumber"]

    @pytest.mark.asyncio
    async def test_contabilidad_sin_permiso(self, make_agent):
        llm = ScriptedLLM(tool_reply(("GetSalesSummary", {})), text_reply("No tenés acceso."))

        await make_agent(llm).run("¿cuánto vendimos hoy?", can_access_accounting=False)

        tool = llm.last_messages[-1]
        assert json.loads(tool["content"])["message"] == ACCOUNTING_DENIED_MESSAGE

    @pytest.mark.asyncio
    async def test_tope_de_iteraciones(self, make_agent):
        llm = ScriptedLLM(tool_reply(("GetAllStatuses", {})))

        reply = await make_agent(llm, AGENT_MAX_ITERATIONS=3).run("estados")

        assert reply.exhausted is True
        assert reply.iterations == 3
        assert reply.message == MENSAJES['agente_sin_respuesta']
        assert len(llm.calls) == 3

    @pytest.mark.asyncio
    async def test_respuesta_vacia(self, make_agent):
        reply = await make_agent(ScriptedLLM(text_reply("   "))).run("hola")

        assert reply.message == MENSAJES['agente_sin_respuesta']
        assert reply.exhausted is False

    @pytest.mark.asyncio
    async def test_error_del_modelo_se_propaga(self, make_agent):
        llm = ScriptedLLM(UpstreamError("HTTP 503", status_code=503))

        with pytest.raises(UpstreamError):
            await make_agent(llm).run("hola")

    @pytest.mark.asyncio
    async def test_timeout_del_modelo(self, make_agent):
        with pytest.raises(UpstreamError) as exc_info:
            await make_agent(SlowLLM(), LLM_TIMEOUT_SECONDS=0.01).run("hola")

        assert exc_info.value.service == "llm"
