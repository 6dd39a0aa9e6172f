"""
Cliente del Modelo de Lenguaje

Llama a un endpoint de chat completions compatible con OpenAI (OpenAI o
Azure OpenAI) con declaración de herramientas, sobre el cliente HTTP
resiliente. Cualquier fallo del proveedor se convierte en UpstreamError.
"""

import json
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from config.settings import settings as default_settings
from src.services.http_client import CircuitBreakerOpen, ResilientHTTPClient
from src.utils.errors import UpstreamError, wrap_external_error
from src.utils.logger import get_logger, log_performance

logger = get_logger(__name__)


@dataclass
class ToolCall:
    """Pedido del modelo de ejecutar una herramienta"""
    id: str
    name: str
    arguments: str = "{}"


@dataclass
class ChatCompletionResult:
    """Respuesta del modelo: texto final o herramientas a ejecutar"""
    content: Optional[str] = None
    tool_calls: List[ToolCall] = field(default_factory=list)
    finish_reason: Optional[str] = None

    @property
    def wants_tools(self) -> bool:
        return bool(self.tool_calls)

    def assistant_message(self) -> Dict[str, Any]:
        """Mensaje 'assistant' para agregar al historial antes de los resultados."""
        message: Dict[str, Any] = {"role": "assistant", "content": self.content}
        if self.tool_calls:
            message["tool_calls"] = [
                {
                    "id": call.id,
                    "type": "function",
                    "function": {"name": call.name, "arguments": call.arguments},
                }
                for call in self.tool_calls
            ]
        return message


class LLMClient:
    """
    Cliente de chat completions.

    Uso:
        llm = LLMClient.from_settings(settings)
        result = await llm.complete(messages, tools)
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str = "https://api.openai.com/v1",
        provider: str = "openai",
        api_version: str = "2024-06-01",
        temperature: float = 0.2,
        http_client: Optional[ResilientHTTPClient] = None
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.provider = provider.lower()
        self.api_version = api_version
        self.temperature = temperature
        self.http = http_client or ResilientHTTPClient()

    @classmethod
    def from_settings(cls, config=default_settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> "LLMClient":
        """Crea el cliente con la configuración de la aplicación."""
        http_client = ResilientHTTPClient(
            base_timeout=config.get_llm_attempt_timeout(),
            max_retries=config.LLM_MAX_RETRIES,
            circuit_breaker_threshold=config.LLM_CIRCUIT_BREAKER_THRESHOLD,
            circuit_breaker_recovery=config.LLM_CIRCUIT_BREAKER_RECOVERY,
            transport=transport,
        )
        return cls(
            api_key=config.LLM_API_KEY.get_secret_value(),
            model=config.LLM_MODEL,
            base_url=config.LLM_BASE_URL,
            provider=config.LLM_PROVIDER,
            api_version=config.LLM_API_VERSION,
            temperature=config.LLM_TEMPERATURE,
            http_client=http_client,
        )

    # ------------------------------------------------------------------------
    # Request
    # ------------------------------------------------------------------------

    def _endpoint(self) -> str:
        if self.provider == "azure":
            return f"{self.base_url}/openai/deployments/{self.model}/chat/completions"
        return f"{self.base_url}/chat/completions"

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.provider == "azure":
            headers["api-key"] = self.api_key
        else:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _params(self) -> Optional[Dict[str, str]]:
        if self.provider == "azure":
            return {"api-version": self.api_version}
        return None

    def build_payload(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None
    ) -> Dict[str, Any]:
        """Arma el cuerpo del request."""
        payload: Dict[str, Any] = {
            "messages": messages,
            "temperature": self.temperature,
        }
        if self.provider != "azure":
            payload["model"] = self.model
        if tools:
            payload["tools"] = tools
            payload["tool_choice"] = "auto"
        return payload

    async def complete(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None
    ) -> ChatCompletionResult:
        """
        Envía la conversación al modelo.

        Args:
            messages: Historial en formato chat completions
            tools: Declaraciones de herramientas (JSON schema)

        Returns:
            ChatCompletionResult

        Raises:
            UpstreamError: Error HTTP, circuito abierto o respuesta inválida
        """
        start = time.perf_counter()
        try:
            response = await self.http.post(
                self._endpoint(),
                json=self.build_payload(messages, tools),
                headers=self._headers(),
                params=self._params(),
            )
        except CircuitBreakerOpen as e:
            raise UpstreamError(str(e), service="llm", original_error=e)
        except httpx.HTTPStatusError as e:
            raise wrap_external_error(e, service="llm", operation="chat_completion",
                                      status_code=e.response.status_code)
        except httpx.HTTPError as e:
            raise wrap_external_error(e, service="llm", operation="chat_completion")
        finally:
            log_performance(logger, "llm.chat_completion", (time.perf_counter() - start) * 1000)

        if response.status_code >= 400:
            logger.error(f"El modelo respondió {response.status_code}: {response.text[:500]}")
            raise UpstreamError(
                f"El modelo respondió {response.status_code}",
                service="llm",
                status_code=response.status_code,
            )

        try:
            return self.parse_response(response.json())
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise wrap_external_error(e, service="llm", operation="parse_response")

    @staticmethod
    def parse_response(data: Dict[str, Any]) -> ChatCompletionResult:
        """Interpreta el JSON de chat completions."""
        choice = data["choices"][0]
        message = choice.get("message") or {}

        tool_calls = [
            ToolCall(
                id=call.get("id", ""),
                name=call["function"]["name"],
                arguments=call["function"].get("arguments") or "{}",
            )
            for call in message.get("tool_calls") or []
        ]
        return ChatCompletionResult(
            content=message.get("content"),
            tool_calls=tool_calls,
            finish_reason=choice.get("finish_reason"),
        )

    async def aclose(self) -> None:
        await self.http.aclose()


def parse_arguments(raw: str) -> Dict[str, Any]:
    """Decodifica los argumentos JSON de una llamada a herramienta."""
    if not raw:
        return {}
    value = json.loads(raw)
    if not isinstance(value, dict):
        raise ValueError("Los argumentos deben ser un objeto JSON")
    return value
