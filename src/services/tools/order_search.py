"""
Herramientas de Búsqueda de Órdenes

Búsquedas de solo lectura por número, cliente, DNI, dirección, equipo,
modelo y estado.
"""

from typing import List, Optional

from pydantic import Field
from sqlalchemy.ext.asyncio import AsyncSession

from config.constants import OrderStatus, STATUS_DESCRIPTIONS
from src.database.queries import (
    count_orders_by_status_async,
    get_order_async,
    search_orders_by_address_async,
    search_orders_by_customer_name_async,
    search_orders_by_device_async,
    search_orders_by_dni_async,
    search_orders_by_model_async,
    search_orders_by_status_async,
)
from src.models.actions import CamelModel
from src.models.orders import OrderView
from src.services.tools.registry import ToolSpec
from src.services.tools.responses import error, not_found, ok, orders_found


# ============================================================================
# ARGUMENTOS
# ============================================================================

class OrderNumberArgs(CamelModel):
    order_number: int = Field(..., description="Número de orden", gt=0)


class CustomerNameArgs(CamelModel):
    customer_name: str = Field(..., description="Nombre o apellido del cliente", min_length=2)
    max_results: int = Field(10, description="Máximo de resultados", ge=1, le=50)


class StatusArgs(CamelModel):
    status: str = Field(..., description="Estado de la orden (ver GetAllStatuses)")
    max_results: int = Field(20, description="Máximo de resultados", ge=1, le=50)


class DniArgs(CamelModel):
    dni: str = Field(..., description="DNI del cliente", min_length=5)


class AddressArgs(CamelModel):
    address: str = Field(..., description="Dirección o localidad del cliente", min_length=3)
    max_results: int = Field(15, description="Máximo de resultados", ge=1, le=50)


class DeviceArgs(CamelModel):
    brand: Optional[str] = Field(None, description="Marca del equipo")
    device_type: Optional[str] = Field(None, description="Tipo de equipo (TV, microondas, notebook...)")
    max_results: int = Field(15, description="Máximo de resultados", ge=1, le=50)


class ModelArgs(CamelModel):
    model: str = Field(..., description="Modelo del equipo", min_length=2)
    status: Optional[str] = Field(None, description="Filtrar por estado")
    max_results: int = Field(20, description="Máximo de resultados", ge=1, le=50)


class NoArgs(CamelModel):
    pass


# ============================================================================
# HANDLERS
# ============================================================================

async def search_order_by_number(db: AsyncSession, args: OrderNumberArgs):
    order = await get_order_async(db, args.order_number)
    if order is None:
        return not_found(f"la orden #{args.order_number}", {"orderNumber": args.order_number})
    return ok(
        f"Orden #{order.id} encontrada",
        data=OrderView.from_order(order).model_dump(by_alias=True, mode="json"),
    )


async def search_orders_by_customer(db: AsyncSession, args: CustomerNameArgs):
    orders = await search_orders_by_customer_name_async(db, args.customer_name, args.max_results)
    return orders_found(orders, {"customerName": args.customer_name})


def _match_status(raw: str) -> Optional[OrderStatus]:
    value = raw.strip().upper()
    for status in OrderStatus:
        if status.value == value or status.name == value.replace(" ", "_"):
            return status
    return None


async def search_orders_by_status(db: AsyncSession, args: StatusArgs):
    status = _match_status(args.status)
    if status is None:
        return error(
            f"Estado '{args.status}' desconocido",
            context={"validStatuses": [s.value for s in OrderStatus]},
        )
    orders = await search_orders_by_status_async(db, status.value, args.max_results)
    return orders_found(orders, {"status": status.value})


async def search_orders_by_dni(db: AsyncSession, args: DniArgs):
    orders = await search_orders_by_dni_async(db, args.dni)
    return orders_found(orders, {"dni": args.dni})


async def search_orders_by_address(db: AsyncSession, args: AddressArgs):
    orders = await search_orders_by_address_async(db, args.address, args.max_results)
    return orders_found(orders, {"address": args.address})


async def search_orders_by_device(db: AsyncSession, args: DeviceArgs):
    if not args.brand and not args.device_type:
        return error("Indicá la marca, el tipo de equipo o ambos")
    orders = await search_orders_by_device_async(
        db, dispositivo=args.device_type, marca=args.brand, limit=args.max_results
    )
    return orders_found(orders, {"brand": args.brand, "deviceType": args.device_type})


async def search_orders_by_model(db: AsyncSession, args: ModelArgs):
    estado = None
    if args.status:
        status = _match_status(args.status)
        estado = status.value if status else args.status
    orders = await search_orders_by_model_async(db, args.model, estado, args.max_results)
    return orders_found(orders, {"model": args.model, "status": args.status})


async def get_all_statuses(db: AsyncSession, args: NoArgs):
    counts = await count_orders_by_status_async(db)
    data = [
        {
            "status": status.value,
            "description": STATUS_DESCRIPTIONS[status],
            "count": counts.get(status.value, 0),
        }
        for status in OrderStatus
    ]
    return ok(f"{len(data)} estados de reparación", data=data)


# ============================================================================
# DECLARACIONES
# ============================================================================

ORDER_SEARCH_TOOLS: List[ToolSpec] = [
    ToolSpec("SearchOrderByNumber", "Busca una orden por su número", OrderNumberArgs, search_order_by_number),
    ToolSpec(
        "SearchOrdersByCustomer",
        "Busca órdenes por nombre o apellido del cliente (búsqueda parcial)",
        CustomerNameArgs,
        search_orders_by_customer,
    ),
    ToolSpec("SearchOrdersByStatus", "Busca órdenes en un estado", StatusArgs, search_orders_by_status),
    ToolSpec("SearchOrdersByDNI", "Busca órdenes por DNI del cliente", DniArgs, search_orders_by_dni),
    ToolSpec(
        "SearchOrdersByAddress",
        "Busca órdenes por dirección o localidad del cliente (búsqueda parcial)",
        AddressArgs,
        search_orders_by_address,
    ),
    ToolSpec(
        "SearchOrdersByDevice",
        "Busca órdenes por marca y/o tipo de equipo",
        DeviceArgs,
        search_orders_by_device,
    ),
    ToolSpec(
        "SearchOrdersByModel",
        "Busca órdenes por modelo del equipo, con filtro opcional por estado",
        ModelArgs,
        search_orders_by_model,
    ),
    ToolSpec("GetAllStatuses", "Lista los estados de reparación con su cantidad de órdenes", NoArgs, get_all_statuses),
]
