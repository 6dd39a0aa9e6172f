"""
Herramientas del Agente

Conjunto fijo de operaciones que el modelo de lenguaje puede invocar.
"""

from typing import List

from src.database.connection import SessionProvider
from src.services.tools.accounting import ACCOUNTING_TOOLS
from src.services.tools.customers import CUSTOMER_TOOLS
from src.services.tools.order_search import ORDER_SEARCH_TOOLS
from src.services.tools.registry import ACCOUNTING_DENIED_MESSAGE, ToolRegistry, ToolSpec
from src.services.tools.updates import UPDATE_TOOLS


def build_default_tools() -> List[ToolSpec]:
    """Todas las herramientas, en el orden en que se declaran al modelo."""
    return [*ORDER_SEARCH_TOOLS, *UPDATE_TOOLS, *CUSTOMER_TOOLS, *ACCOUNTING_TOOLS]


def build_registry(session_provider: SessionProvider) -> ToolRegistry:
    """Registro con todas las herramientas sobre un proveedor de sesiones."""
    return ToolRegistry(build_default_tools(), session_provider)


__all__ = [
    "ACCOUNTING_DENIED_MESSAGE",
    "ToolRegistry",
    "ToolSpec",
    "build_default_tools",
    "build_registry",
]
