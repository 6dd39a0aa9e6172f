"""
Queries de Método de Pago

Catálogo de métodos de pago que se ofrecen al cobrar.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import Optional, List

from src.database.models import PaymentMethod


async def get_payment_methods_async(
    db: AsyncSession,
    only_active: bool = True
) -> List[PaymentMethod]:
    """
    Lista los métodos de pago ordenados por ID.

    El orden es estable: el slot filling ofrece las opciones numeradas
    en este mismo orden.
    """
    query = select(PaymentMethod)
    if only_active:
        query = query.where(PaymentMethod.activo == True)  # noqa: E712
    result = await db.execute(query.order_by(PaymentMethod.id))
    return list(result.scalars().all())


async def get_payment_method_by_id_async(
    db: AsyncSession,
    payment_method_id: int
) -> Optional[PaymentMethod]:
    """Busca un método de pago activo por ID."""
    result = await db.execute(
        select(PaymentMethod).where(
            PaymentMethod.id == payment_method_id,
            PaymentMethod.activo == True  # noqa: E712
        )
    )
    return result.scalar_one_or_none()
