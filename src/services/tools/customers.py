"""
Herramientas de Clientes

Búsqueda de clientes, historial de órdenes y estadísticas.
"""

from typing import List

from pydantic import Field
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.queries import (
    get_customer_by_dni_async,
    get_customer_by_id_async,
    get_customer_stats_async,
    get_orders_by_customer_async,
    search_customers_by_name_async,
)
from src.models.actions import CamelModel
from src.models.orders import CustomerView, summarize_orders
from src.services.tools.registry import ToolSpec
from src.services.tools.responses import not_found, ok


class CustomerSearchArgs(CamelModel):
    name: str = Field(..., description="Nombre o apellido del cliente", min_length=2)
    max_results: int = Field(10, description="Máximo de resultados", ge=1, le=50)


class CustomerDniArgs(CamelModel):
    dni: str = Field(..., description="DNI del cliente", min_length=5)


class CustomerIdArgs(CamelModel):
    customer_id: int = Field(..., description="ID del cliente", gt=0)


class CustomerHistoryArgs(CamelModel):
    customer_id: int = Field(..., description="ID del cliente", gt=0)
    max_results: int = Field(20, description="Máximo de órdenes", ge=1, le=100)


def _customer_data(customer) -> dict:
    return CustomerView.from_customer(customer).model_dump(by_alias=True)


async def search_customer_by_name(db: AsyncSession, args: CustomerSearchArgs):
    customers = await search_customers_by_name_async(db, args.name, args.max_results)
    if not customers:
        return not_found("ningún cliente", {"name": args.name})
    return ok(
        f"Se encontraron {len(customers)} cliente(s)",
        data=[_customer_data(c) for c in customers],
        count=len(customers),
    )


async def get_customer_by_dni(db: AsyncSession, args: CustomerDniArgs):
    customer = await get_customer_by_dni_async(db, args.dni)
    if customer is None:
        return not_found("el cliente", {"dni": args.dni})
    return ok(f"Cliente {customer.nombre_completo}", data=_customer_data(customer))


async def get_customer_by_id(db: AsyncSession, args: CustomerIdArgs):
    customer = await get_customer_by_id_async(db, args.customer_id)
    if customer is None:
        return not_found("el cliente", {"customerId": args.customer_id})
    return ok(f"Cliente {customer.nombre_completo}", data=_customer_data(customer))


async def get_customer_order_history(db: AsyncSession, args: CustomerHistoryArgs):
    customer = await get_customer_by_id_async(db, args.customer_id)
    if customer is None:
        return not_found("el cliente", {"customerId": args.customer_id})

    orders = await get_orders_by_customer_async(db, args.customer_id, args.max_results)
    return ok(
        f"{customer.nombre_completo} tiene {len(orders)} orden(es)",
        data={"customer": _customer_data(customer), "orders": summarize_orders(orders)},
        count=len(orders),
    )


async def get_customer_stats(db: AsyncSession, args: CustomerIdArgs):
    customer = await get_customer_by_id_async(db, args.customer_id)
    if customer is None:
        return not_found("el cliente", {"customerId": args.customer_id})

    stats = await get_customer_stats_async(db, args.customer_id)
    ultima_visita = stats["ultima_visita"]
    return ok(
        f"Estadísticas de {customer.nombre_completo}",
        data={
            "customerId": customer.id,
            "fullName": customer.nombre_completo,
            "totalOrders": stats["total_ordenes"],
            "lastOrder": stats["ultima_orden"],
            "lastVisit": ultima_visita.strftime("%Y-%m-%d") if ultima_visita else None,
            "totalPaid": float(stats["total_pagado"]),
        },
    )


CUSTOMER_TOOLS: List[ToolSpec] = [
    ToolSpec("SearchCustomerByName", "Busca clientes por nombre", CustomerSearchArgs, search_customer_by_name),
    ToolSpec("GetCustomerByDNI", "Obtiene un cliente por DNI", CustomerDniArgs, get_customer_by_dni),
    ToolSpec("GetCustomerById", "Obtiene los datos completos de un cliente", CustomerIdArgs, get_customer_by_id),
    ToolSpec(
        "GetCustomerOrderHistory",
        "Historial de órdenes de un cliente",
        CustomerHistoryArgs,
        get_customer_order_history,
    ),
    ToolSpec(
        "GetCustomerStats",
        "Estadísticas de un cliente: órdenes, última visita y total pagado",
        CustomerIdArgs,
        get_customer_stats,
    ),
]
