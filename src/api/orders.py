"""
Order Endpoints

Acciones directas sobre órdenes (una ruta por acción), lectura y
edición de la orden, novedades y catálogos.

Las acciones pasan por el mismo motor de transiciones que el chat: los
errores vuelven como {success: false, message, context} con el código
HTTP de su categoría.
"""

from typing import Any, Dict, List, Optional, Type

from fastapi import APIRouter, Depends, Query, Request

from config.constants import ActionKind, OrderStatus, STATUS_DESCRIPTIONS, TERMINAL_STATUSES
from src.api.schemas import (
    ACTION_BODIES,
    ActionBody,
    ErrorResponse,
    NoteCreate,
    OrderFieldsUpdate,
    StatusInfo,
    StatusListResponse,
)
from src.core.context import AppContext
from src.database.queries import get_novedades_by_order_async, get_payment_methods_async
from src.database.repository import OrderRepository
from src.models.actions import ActionParams
from src.models.orders import NovedadView, OrderView, PaymentMethodView
from src.utils.errors import ValidationError
from src.utils.logger import get_logger

logger = get_logger(__name__)

ERROR_RESPONSES = {
    404: {"model": ErrorResponse, "description": "Orden inexistente"},
    422: {"model": ErrorResponse, "description": "Dato faltante o inválido"},
    503: {"model": ErrorResponse, "description": "Falló la escritura; no quedó nada registrado"},
}


def get_context(request: Request) -> AppContext:
    """AppContext de la aplicación."""
    return request.app.state.context


orders_router = APIRouter(tags=["orders"], responses=ERROR_RESPONSES)


# ============================================================================
# ACCIONES
# ============================================================================

def _action_endpoint(kind: ActionKind, body_model: Type[ActionBody]):
    """Crea el endpoint de una acción con su cuerpo específico."""

    async def endpoint(
        order_number: int,
        body: Optional[body_model] = None,
        ctx: AppContext = Depends(get_context),
    ) -> Dict[str, Any]:
        params = body.to_params() if body is not None else ActionParams()
        result = await ctx.engine.execute(order_number, kind, params)
        return result.model_dump(by_alias=True, mode="json")

    endpoint.__name__ = f"action_{kind.slug.replace('-', '_')}"
    return endpoint


for _kind, _body in ACTION_BODIES.items():
    orders_router.add_api_route(
        f"/orders/{{order_number}}/{_kind.slug}",
        _action_endpoint(_kind, _body),
        methods=["POST"],
        summary=f"Acción {_kind.value}",
        description=f"Ejecuta {_kind.value} sobre la orden.",
    )


# ============================================================================
# ORDEN
# ============================================================================

@orders_router.get("/orders/{order_number}", summary="Obtener orden")
async def get_order(order_number: int, ctx: AppContext = Depends(get_context)) -> Dict[str, Any]:
    """Orden completa con cliente y equipo."""
    async with ctx.session_provider() as db:
        order = await OrderRepository(db).get_order(order_number)
        view = OrderView.from_order(order)
    return view.model_dump(by_alias=True, mode="json")


@orders_router.patch("/orders/{order_number}", summary="Actualizar datos de la orden")
async def update_order(
    order_number: int,
    body: OrderFieldsUpdate,
    ctx: AppContext = Depends(get_context),
) -> Dict[str, Any]:
    """
    Edita contacto del cliente, datos del equipo o montos.

    Deja una novedad con los valores anteriores y nuevos.
    """
    changes = body.changes()
    if not changes:
        raise ValidationError(
            "No se indicó ningún campo para actualizar",
            field="campos",
            reason="sin cambios",
        )
    result = await ctx.updates.update(order_number, changes, usuario_id=body.usuario_id)
    return {"success": True, "message": result.message, "data": result.to_dict()}


@orders_router.get("/orders/{order_number}/novedades", summary="Novedades de la orden")
async def list_novedades(
    order_number: int,
    limit: int = Query(100, ge=1, le=500),
    ctx: AppContext = Depends(get_context),
) -> List[Dict[str, Any]]:
    """Historial de la orden en orden cronológico."""
    async with ctx.session_provider() as db:
        order = await OrderRepository(db).get_order(order_number)
        novedades = await get_novedades_by_order_async(db, order.id, limit=limit)
        views = [NovedadView.from_novedad(n) for n in novedades]
    return [v.model_dump(by_alias=True, mode="json") for v in views]


@orders_router.post("/orders/{order_number}/novedades", status_code=201, summary="Agregar nota")
async def add_novedad(
    order_number: int,
    body: NoteCreate,
    ctx: AppContext = Depends(get_context),
) -> Dict[str, Any]:
    """Nota libre; no cambia el estado."""
    result = await ctx.engine.add_note(order_number, body.nota, usuario_id=body.usuario_id)
    return result.model_dump(by_alias=True)


# ============================================================================
# CATÁLOGOS
# ============================================================================

@orders_router.get("/payment-methods", summary="Métodos de pago activos")
async def list_payment_methods(ctx: AppContext = Depends(get_context)) -> List[Dict[str, Any]]:
    async with ctx.session_provider() as db:
        methods = await get_payment_methods_async(db)
        views = [PaymentMethodView(id=m.id, nombre=m.nombre) for m in methods]
    return [v.model_dump(by_alias=True) for v in views]


@orders_router.get("/statuses", summary="Estados de orden", response_model=StatusListResponse)
async def list_statuses() -> StatusListResponse:
    return StatusListResponse(statuses=[
        StatusInfo(
            status=status.value,
            description=STATUS_DESCRIPTIONS[status],
            terminal=status in TERMINAL_STATUSES,
        )
        for status in OrderStatus
    ])
