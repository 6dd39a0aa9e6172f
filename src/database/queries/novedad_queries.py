"""
Queries de Novedad

Alta y lectura de novedades (audit log de la orden). Las novedades no
se modifican desde este sistema.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from decimal import Decimal
from typing import Optional, List

from src.database.models import Novedad
from src.utils.logger import get_logger

logger = get_logger(__name__)


async def create_novedad_async(
    db: AsyncSession,
    orden_id: int,
    tipo_id: int,
    monto: Optional[Decimal] = None,
    observacion: Optional[str] = None,
    usuario_id: Optional[int] = None
) -> Novedad:
    """
    Agrega una novedad a la orden.

    No hace commit: la novedad se confirma junto con el resto de la
    unidad de trabajo.

    Returns:
        Novedad con id asignado
    """
    novedad = Novedad(
        orden_id=orden_id,
        tipo_id=int(tipo_id),
        monto=monto,
        observacion=observacion,
        usuario_id=usuario_id,
    )
    db.add(novedad)
    await db.flush()
    logger.debug(f"Novedad {novedad.id} tipo {tipo_id} para orden {orden_id}")
    return novedad


async def get_novedades_by_order_async(
    db: AsyncSession,
    orden_id: int,
    limit: int = 100
) -> List[Novedad]:
    """Novedades de una orden en orden cronológico."""
    result = await db.execute(
        select(Novedad)
        .where(Novedad.orden_id == orden_id)
        .order_by(Novedad.id)
        .limit(limit)
    )
    return list(result.scalars().all())


async def count_novedades_async(db: AsyncSession, orden_id: int) -> int:
    """Cantidad de novedades de una orden."""
    result = await db.execute(
        select(func.count(Novedad.id)).where(Novedad.orden_id == orden_id)
    )
    return result.scalar() or 0
