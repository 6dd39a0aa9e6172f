"""
Queries de Venta

Alta de ventas y consultas contables (resúmenes por período y por
método de pago) que usan las herramientas de contabilidad.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, case
from sqlalchemy.orm import selectinload
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional, List

from src.database.models import Venta, PaymentMethod
from src.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class SalesSummary:
    """Totales de ventas de un período"""
    cantidad: int
    total: Decimal
    total_facturado: Decimal
    total_no_facturado: Decimal


@dataclass
class PaymentMethodTotal:
    """Total vendido con un método de pago"""
    metodo_pago_id: int
    metodo_pago: str
    cantidad: int
    total: Decimal


def _period_filters(query, desde: Optional[datetime], hasta: Optional[datetime]):
    if desde is not None:
        query = query.where(Venta.fecha >= desde)
    if hasta is not None:
        query = query.where(Venta.fecha < hasta)
    return query


async def create_venta_async(
    db: AsyncSession,
    monto: Decimal,
    metodo_pago_id: int,
    orden_id: Optional[int] = None,
    cliente_id: Optional[int] = None,
    vendedor_id: Optional[int] = None,
    descripcion: Optional[str] = None,
    facturado: bool = False,
    tipo_factura: Optional[str] = None,
    numero_factura: Optional[str] = None
) -> Venta:
    """
    Registra una venta.

    No hace commit: la venta se confirma junto con la transición que la
    originó.

    Returns:
        Venta con id asignado
    """
    venta = Venta(
        monto=monto,
        metodo_pago_id=metodo_pago_id,
        orden_id=orden_id,
        cliente_id=cliente_id,
        vendedor_id=vendedor_id,
        descripcion=descripcion,
        facturado=facturado,
        tipo_factura=tipo_factura,
        numero_factura=numero_factura,
    )
    db.add(venta)
    await db.flush()
    logger.debug(f"Venta {venta.id} por ${monto} (orden {orden_id})")
    return venta


async def get_ventas_by_order_async(db: AsyncSession, orden_id: int) -> List[Venta]:
    """Ventas asociadas a una orden."""
    result = await db.execute(
        select(Venta).where(Venta.orden_id == orden_id).order_by(Venta.id)
    )
    return list(result.scalars().all())


async def get_sales_summary_async(
    db: AsyncSession,
    desde: Optional[datetime] = None,
    hasta: Optional[datetime] = None
) -> SalesSummary:
    """
    Resumen de ventas de un período.

    Args:
        db: AsyncSession de base de datos
        desde: Inicio inclusive (opcional)
        hasta: Fin exclusivo (opcional)

    Returns:
        SalesSummary con cantidad y totales
    """
    query = select(
        func.count(Venta.id),
        func.coalesce(func.sum(Venta.monto), 0),
        func.coalesce(func.sum(case((Venta.facturado == True, Venta.monto), else_=0)), 0),  # noqa: E712
    )
    result = await db.execute(_period_filters(query, desde, hasta))
    cantidad, total, facturado = result.one()

    total = Decimal(str(total))
    facturado = Decimal(str(facturado))
    return SalesSummary(
        cantidad=cantidad or 0,
        total=total,
        total_facturado=facturado,
        total_no_facturado=total - facturado,
    )


async def get_sales_for_period_async(
    db: AsyncSession,
    desde: Optional[datetime] = None,
    hasta: Optional[datetime] = None,
    limit: int = 100
) -> List[Venta]:
    """Ventas de un período, las más recientes primero."""
    query = select(Venta).options(selectinload(Venta.metodo_pago))
    query = _period_filters(query, desde, hasta)
    result = await db.execute(query.order_by(Venta.fecha.desc(), Venta.id.desc()).limit(limit))
    return list(result.scalars().all())


async def get_sales_by_payment_method_async(
    db: AsyncSession,
    desde: Optional[datetime] = None,
    hasta: Optional[datetime] = None
) -> List[PaymentMethodTotal]:
    """
    Totales de ventas agrupados por método de pago.

    Returns:
        Lista de PaymentMethodTotal ordenada por total descendente
    """
    query = (
        select(
            PaymentMethod.id,
            PaymentMethod.nombre,
            func.count(Venta.id),
            func.coalesce(func.sum(Venta.monto), 0),
        )
        .join(PaymentMethod, Venta.metodo_pago_id == PaymentMethod.id)
        .group_by(PaymentMethod.id, PaymentMethod.nombre)
    )
    result = await db.execute(_period_filters(query, desde, hasta))

    totals = [
        PaymentMethodTotal(
            metodo_pago_id=metodo_id,
            metodo_pago=nombre,
            cantidad=cantidad,
            total=Decimal(str(total)),
        )
        for metodo_id, nombre, cantidad, total in result.all()
    ]
    return sorted(totals, key=lambda t: t.total, reverse=True)


async def get_recent_sales_async(
    db: AsyncSession,
    limit: int = 20,
    facturado: Optional[bool] = None
) -> List[Venta]:
    """Últimas ventas registradas, opcionalmente solo facturadas o no facturadas."""
    query = select(Venta).options(selectinload(Venta.metodo_pago))
    if facturado is not None:
        query = query.where(Venta.facturado == facturado)
    result = await db.execute(query.order_by(Venta.fecha.desc(), Venta.id.desc()).limit(limit))
    return list(result.scalars().all())
