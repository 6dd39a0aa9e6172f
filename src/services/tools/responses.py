"""
Respuestas de Herramientas

Formato uniforme de lo que devuelve cada herramienta al modelo:
{success, message, data} o {success: false, message, criteria, count: 0}.
"""

from typing import Any, Dict, List, Optional

from src.models.orders import summarize_orders


def ok(message: str, data: Any = None, count: Optional[int] = None) -> Dict[str, Any]:
    """Respuesta exitosa."""
    payload: Dict[str, Any] = {"success": True, "message": message}
    if count is not None:
        payload["count"] = count
    payload["data"] = data
    return payload


def error(message: str, context: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Respuesta de error."""
    payload: Dict[str, Any] = {"success": False, "message": message}
    if context:
        payload["context"] = context
    return payload


def not_found(entity: str, criteria: Dict[str, Any]) -> Dict[str, Any]:
    """Búsqueda sin resultados."""
    return {
        "success": False,
        "message": f"No se encontró {entity} con esos criterios",
        "criteria": criteria,
        "count": 0,
    }


def orders_found(orders: List[Any], criteria: Dict[str, Any]) -> Dict[str, Any]:
    """Lista de órdenes como resúmenes, o not_found si está vacía."""
    if not orders:
        return not_found("ninguna orden", criteria)
    return ok(
        f"Se encontraron {len(orders)} orden(es)",
        data=summarize_orders(orders),
        count=len(orders),
    )
