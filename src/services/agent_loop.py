"""
Loop del Agente con Herramientas

Para los mensajes que no son una acción ni una búsqueda rápida: se manda
la conversación al modelo con las herramientas declaradas, se ejecutan
las que pida y se repite hasta que conteste con texto.

El loop tiene tope de iteraciones (AGENT_MAX_ITERATIONS) y cada llamada
al modelo un timeout (LLM_TIMEOUT_SECONDS).
"""

import asyncio
import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from config.settings import settings as default_settings
from src.models.chat import HistoryMessage, SelectedOrder
from src.services.llm_client import ChatCompletionResult, LLMClient
from src.services.messages import MENSAJES
from src.services.prompts import build_system_prompt
from src.services.tools.registry import ToolRegistry
from src.utils.errors import UpstreamError
from src.utils.logger import get_logger

logger = get_logger(__name__)

HISTORY_ROLES = ("user", "assistant")


@dataclass
class AgentReply:
    """
    Respuesta final del agente.

    Attributes:
        message: Texto para el usuario
        iterations: Llamadas al modelo realizadas
        tool_calls: Herramientas ejecutadas, en orden
        exhausted: Si se cortó por el tope de iteraciones
    """
    message: str
    iterations: int
    tool_calls: List[str] = field(default_factory=list)
    exhausted: bool = False


class AgentLoop:
    """
    Conversación con el modelo y ejecución de herramientas.

    Uso:
        agent = AgentLoop(llm, registry)
        reply = await agent.run("¿qué órdenes tiene Pérez?")
    """

    def __init__(
        self,
        llm: LLMClient,
        registry: ToolRegistry,
        config=default_settings
    ):
        self._llm = llm
        self._registry = registry
        self._config = config

    def build_messages(
        self,
        message: str,
        history: Sequence[HistoryMessage] = (),
        can_access_accounting: bool = False,
        selected_order: Optional[SelectedOrder] = None
    ) -> List[Dict[str, Any]]:
        """System prompt + últimos mensajes del historial + mensaje actual."""
        messages: List[Dict[str, Any]] = [{
            "role": "system",
            "content": build_system_prompt(can_access_accounting, selected_order),
        }]

        previous = [
            item for item in history
            if item.role in HISTORY_ROLES and item.content and item.content.strip()
        ]
        limit = self._config.AGENT_HISTORY_LIMIT
        if limit > 0:
            for item in previous[-limit:]:
                messages.append({"role": item.role, "content": item.content})

        messages.append({"role": "user", "content": message})
        return messages

    async def _call_model(self, messages: List[Dict[str, Any]], tools: List[Dict[str, Any]]) -> ChatCompletionResult:
        # Acota la llamada completa, reintentos incluidos
        timeout = self._config.LLM_TIMEOUT_SECONDS
        try:
            return await asyncio.wait_for(self._llm.complete(messages, tools), timeout=timeout)
        except asyncio.TimeoutError as e:
            logger.error(f"El modelo no respondió en {timeout}s")
            raise UpstreamError(
                f"Timeout de {timeout}s esperando al modelo",
                service="llm",
                original_error=e,
            )

    async def run(
        self,
        message: str,
        history: Sequence[HistoryMessage] = (),
        can_access_accounting: bool = False,
        selected_order: Optional[SelectedOrder] = None
    ) -> AgentReply:
        """
        Resuelve un mensaje con el modelo y las herramientas.

        Raises:
            UpstreamError: El modelo falló o no respondió a tiempo
        """
        messages = self.build_messages(message, history, can_access_accounting, selected_order)
        tools = self._registry.declarations()
        executed: List[str] = []
        max_iterations = self._config.AGENT_MAX_ITERATIONS

        for iteration in range(1, max_iterations + 1):
            result = await self._call_model(messages, tools)

            if not result.wants_tools:
                content = (result.content or "").strip()
                logger.info(f"Agente respondió en {iteration} iteración(es), herramientas: {executed}")
                return AgentReply(
                    message=content or MENSAJES['agente_sin_respuesta'],
                    iterations=iteration,
                    tool_calls=executed,
                )

            messages.append(result.assistant_message())
            for call in result.tool_calls:
                logger.debug(f"Herramienta pedida: {call.name}({call.arguments})")
                payload = await self._registry.execute(call.name, call.arguments, can_access_accounting)
                executed.append(call.name)
                messages.append({
                    "role": "tool",
                    "tool_call_id": call.id,
                    "content": json.dumps(payload, ensure_ascii=False, default=str),
                })

        logger.warning(f"Agente cortado tras {max_iterations} iteraciones, herramientas: {executed}")
        return AgentReply(
            message=MENSAJES['agente_sin_respuesta'],
            iterations=max_iterations,
            tool_calls=executed,
            exhausted=True,
        )
