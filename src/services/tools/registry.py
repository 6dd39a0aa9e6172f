"""
Registro de Herramientas del Agente

Cada herramienta se declara con un modelo pydantic de argumentos: el
JSON schema que ve el modelo de lenguaje se genera desde ese modelo y
los argumentos recibidos se validan con el mismo, así declaración y
handler no pueden desincronizarse.
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Type

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.connection import SessionProvider
from src.services.llm_client import parse_arguments
from src.services.tools.responses import error
from src.utils.errors import OrchestratorError
from src.utils.logger import audit_logger, get_logger, log_exception

logger = get_logger(__name__)

ACCOUNTING_DENIED_MESSAGE = "No tenés permisos para acceder a la información de contabilidad."

ToolHandler = Callable[[AsyncSession, Any], Awaitable[Dict[str, Any]]]


@dataclass(frozen=True)
class ToolSpec:
    """
    Herramienta invocable por el modelo.

    Attributes:
        name: Nombre que usa el modelo (SearchOrderByNumber...)
        description: Descripción para el modelo
        args_model: Modelo pydantic de argumentos (alias camelCase)
        handler: Corrutina (db, args) -> payload
        requires_accounting: Si requiere permiso de contabilidad
    """
    name: str
    description: str
    args_model: Type[BaseModel]
    handler: ToolHandler
    requires_accounting: bool = False

    def parameters_schema(self) -> Dict[str, Any]:
        """JSON schema de los argumentos, con nombres camelCase."""
        schema = self.args_model.model_json_schema(by_alias=True)
        schema.pop("title", None)
        for prop in schema.get("properties", {}).values():
            prop.pop("title", None)
        schema.setdefault("properties", {})
        return schema

    def declaration(self) -> Dict[str, Any]:
        """Declaración en formato chat completions."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters_schema(),
            },
        }


class ToolRegistry:
    """
    Ejecuta herramientas por nombre.

    Nunca deja escapar una excepción: todo termina en un payload
    {success: false, ...} que el modelo puede explicar al usuario.
    """

    def __init__(self, tools: Iterable[ToolSpec], session_provider: SessionProvider):
        self._tools: Dict[str, ToolSpec] = {}
        for tool in tools:
            if tool.name in self._tools:
                raise ValueError(f"Herramienta duplicada: {tool.name}")
            self._tools[tool.name] = tool
        self._session_provider = session_provider

    @property
    def names(self) -> List[str]:
        return list(self._tools)

    def get(self, name: str) -> Optional[ToolSpec]:
        return self._tools.get(name)

    def declarations(self) -> List[Dict[str, Any]]:
        """Declaraciones de todas las herramientas."""
        return [tool.declaration() for tool in self._tools.values()]

    async def execute(
        self,
        name: str,
        raw_arguments: Any,
        can_access_accounting: bool = False
    ) -> Dict[str, Any]:
        """
        Ejecuta una herramienta.

        Args:
            name: Nombre de la herramienta
            raw_arguments: JSON (str) o dict con los argumentos
            can_access_accounting: Permiso del usuario

        Returns:
            Payload para devolver al modelo
        """
        tool = self._tools.get(name)
        if tool is None:
            return error(f"Unknown function: {name}")

        if tool.requires_accounting and not can_access_accounting:
            logger.info(f"Herramienta {name} rechazada: sin permiso de contabilidad")
            audit_logger.tool_call(name, False)
            return error(ACCOUNTING_DENIED_MESSAGE)

        payload = await self._run(tool, raw_arguments)
        audit_logger.tool_call(name, bool(payload.get("success")))
        return payload

    async def _run(self, tool: ToolSpec, raw_arguments: Any) -> Dict[str, Any]:
        try:
            data = parse_arguments(raw_arguments) if isinstance(raw_arguments, str) else (raw_arguments or {})
            args = tool.args_model.model_validate(data)
        except PydanticValidationError as e:
            return error(
                f"Argumentos inválidos para {tool.name}",
                context={"errors": [
                    {"field": ".".join(str(p) for p in err["loc"]), "reason": err["msg"]}
                    for err in e.errors()
                ]},
            )
        except (ValueError, TypeError) as e:
            return error(f"Argumentos inválidos para {tool.name}: {e}")

        try:
            async with self._session_provider() as db:
                return await tool.handler(db, args)
        except OrchestratorError as e:
            logger.warning(f"Herramienta {tool.name} falló: {e.message}")
            return e.to_payload()
        except Exception as e:
            log_exception(logger, f"Error ejecutando herramienta {tool.name}", e)
            return error(f"Error ejecutando {tool.name}: {e}")
