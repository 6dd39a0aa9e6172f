"""
Queries de Orden

Funciones async para leer y modificar órdenes de reparación.
Todas las lecturas cargan cliente y detalle con selectinload, porque en
contexto async no hay lazy loading.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_, func
from sqlalchemy.orm import selectinload
from typing import Optional, List, Dict

from src.database.models import Order, OrderDetail, Customer
from src.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_LIMIT = 20


def _order_query():
    """Select base de órdenes con sus relaciones de lectura."""
    return select(Order).options(
        selectinload(Order.customer),
        selectinload(Order.detail),
    )


# ============================================================================
# LECTURA
# ============================================================================

async def get_order_async(
    db: AsyncSession,
    order_id: int
) -> Optional[Order]:
    """
    Obtiene una orden por su número.

    Args:
        db: AsyncSession de base de datos
        order_id: Número de orden

    Returns:
        Orden con cliente y detalle cargados, o None
    """
    result = await db.execute(_order_query().where(Order.id == order_id))
    return result.scalar_one_or_none()


async def search_orders_by_customer_name_async(
    db: AsyncSession,
    nombre: str,
    limit: int = DEFAULT_LIMIT
) -> List[Order]:
    """
    Busca órdenes por nombre o apellido del cliente.

    Cada palabra del término debe aparecer en el nombre o en el apellido.
    """
    query = _order_query().join(Customer, Order.cliente_id == Customer.id)
    for word in nombre.split():
        pattern = f"%{word}%"
        query = query.where(or_(Customer.nombre.ilike(pattern), Customer.apellido.ilike(pattern)))

    result = await db.execute(query.order_by(Order.id.desc()).limit(limit))
    return list(result.scalars().all())


async def search_orders_by_status_async(
    db: AsyncSession,
    estado: str,
    limit: int = DEFAULT_LIMIT
) -> List[Order]:
    """Busca órdenes en un estado dado, las más recientes primero."""
    result = await db.execute(
        _order_query()
        .where(func.upper(Order.estado) == estado.strip().upper())
        .order_by(Order.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def search_orders_by_dni_async(
    db: AsyncSession,
    dni: str,
    limit: int = DEFAULT_LIMIT
) -> List[Order]:
    """Busca órdenes por DNI exacto del cliente."""
    result = await db.execute(
        _order_query()
        .join(Customer, Order.cliente_id == Customer.id)
        .where(Customer.dni == dni.strip())
        .order_by(Order.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def search_orders_by_address_async(
    db: AsyncSession,
    direccion: str,
    limit: int = DEFAULT_LIMIT
) -> List[Order]:
    """Busca órdenes por dirección o localidad del cliente."""
    pattern = f"%{direccion.strip()}%"
    result = await db.execute(
        _order_query()
        .join(Customer, Order.cliente_id == Customer.id)
        .where(or_(Customer.direccion.ilike(pattern), Customer.localidad.ilike(pattern)))
        .order_by(Order.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def search_orders_by_device_async(
    db: AsyncSession,
    dispositivo: Optional[str] = None,
    marca: Optional[str] = None,
    limit: int = DEFAULT_LIMIT
) -> List[Order]:
    """
    Busca órdenes por tipo de dispositivo, marca o ambos.

    Args:
        db: AsyncSession de base de datos
        dispositivo: Tipo de equipo ("TV", "microondas", ...)
        marca: Marca a filtrar
        limit: Máximo de resultados
    """
    query = _order_query().join(OrderDetail, Order.id == OrderDetail.orden_id)
    if dispositivo:
        query = query.where(OrderDetail.tipo_dispositivo.ilike(f"%{dispositivo.strip()}%"))
    if marca:
        query = query.where(OrderDetail.marca.ilike(f"%{marca.strip()}%"))

    result = await db.execute(query.order_by(Order.id.desc()).limit(limit))
    return list(result.scalars().all())


async def search_orders_by_model_async(
    db: AsyncSession,
    modelo: str,
    estado: Optional[str] = None,
    limit: int = DEFAULT_LIMIT
) -> List[Order]:
    """Busca órdenes por modelo del equipo, opcionalmente en un estado."""
    query = (
        _order_query()
        .join(OrderDetail, Order.id == OrderDetail.orden_id)
        .where(OrderDetail.modelo.ilike(f"%{modelo.strip()}%"))
    )
    if estado:
        query = query.where(func.upper(Order.estado) == estado.strip().upper())
    result = await db.execute(query.order_by(Order.id.desc()).limit(limit))
    return list(result.scalars().all())


async def get_orders_by_customer_async(
    db: AsyncSession,
    cliente_id: int,
    limit: int = 50
) -> List[Order]:
    """Historial de órdenes de un cliente."""
    result = await db.execute(
        _order_query()
        .where(Order.cliente_id == cliente_id)
        .order_by(Order.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def count_orders_by_status_async(
    db: AsyncSession,
    cliente_id: Optional[int] = None
) -> Dict[str, int]:
    """
    Cuenta órdenes agrupadas por estado.

    Args:
        db: AsyncSession de base de datos
        cliente_id: Limitar a un cliente (opcional)

    Returns:
        Diccionario estado -> cantidad
    """
    query = select(Order.estado, func.count(Order.id)).group_by(Order.estado)
    if cliente_id is not None:
        query = query.where(Order.cliente_id == cliente_id)

    result = await db.execute(query)
    return {estado: count for estado, count in result.all()}


# ============================================================================
# ESCRITURA
# ============================================================================

async def get_or_create_detail_async(
    db: AsyncSession,
    order: Order
) -> OrderDetail:
    """
    Devuelve el detalle de la orden, creándolo si todavía no existe.

    La orden debe venir de get_order_async (detalle ya cargado).
    """
    if order.detail is None:
        order.detail = OrderDetail(orden_id=order.id)
        db.add(order.detail)
        await db.flush()
    return order.detail
