"""
Queries de Cliente

Funciones async para consultar clientes y sus estadísticas.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_, func
from typing import Optional, List, Dict, Any

from src.database.models import Customer, Order, Venta
from src.utils.logger import get_logger

logger = get_logger(__name__)


async def get_customer_by_id_async(
    db: AsyncSession,
    customer_id: int
) -> Optional[Customer]:
    """
    Busca un cliente por su ID.

    Args:
        db: AsyncSession de base de datos
        customer_id: ID del cliente

    Returns:
        Cliente encontrado o None
    """
    result = await db.execute(select(Customer).where(Customer.id == customer_id))
    return result.scalar_one_or_none()


async def get_customer_by_dni_async(
    db: AsyncSession,
    dni: str
) -> Optional[Customer]:
    """Busca un cliente por DNI exacto."""
    result = await db.execute(
        select(Customer).where(Customer.dni == dni.strip()).limit(1)
    )
    return result.scalar_one_or_none()


async def search_customers_by_name_async(
    db: AsyncSession,
    nombre: str,
    limit: int = 20
) -> List[Customer]:
    """
    Busca clientes por nombre o apellido.

    Cada palabra del término debe aparecer en el nombre o en el apellido.
    """
    query = select(Customer)
    for word in nombre.split():
        pattern = f"%{word}%"
        query = query.where(or_(Customer.nombre.ilike(pattern), Customer.apellido.ilike(pattern)))

    result = await db.execute(query.order_by(Customer.apellido, Customer.nombre).limit(limit))
    return list(result.scalars().all())


async def get_customer_stats_async(
    db: AsyncSession,
    customer_id: int
) -> Dict[str, Any]:
    """
    Estadísticas de un cliente: órdenes, última visita y total pagado.

    Args:
        db: AsyncSession de base de datos
        customer_id: ID del cliente

    Returns:
        Diccionario con total_ordenes, ultima_orden, ultima_visita y total_pagado
    """
    orders_result = await db.execute(
        select(
            func.count(Order.id),
            func.max(Order.id),
            func.max(Order.created_at),
        ).where(Order.cliente_id == customer_id)
    )
    total_ordenes, ultima_orden, ultima_visita = orders_result.one()

    ventas_result = await db.execute(
        select(func.coalesce(func.sum(Venta.monto), 0)).where(Venta.cliente_id == customer_id)
    )

    return {
        "total_ordenes": total_ordenes or 0,
        "ultima_orden": ultima_orden,
        "ultima_visita": ultima_visita,
        "total_pagado": ventas_result.scalar() or 0,
    }
