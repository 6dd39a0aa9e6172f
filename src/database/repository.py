"""
Repositorio de Órdenes

Contrato de persistencia que consume el motor de transiciones:
leer la orden, cambiar estado y montos, agregar la novedad, registrar
la venta y consultar métodos de pago.

Una instancia está ligada a una AsyncSession, y por lo tanto a una
única transacción: nada de lo escrito es visible hasta que el
session_scope que la creó hace commit.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional, List, Dict, Any

from sqlalchemy.ext.asyncio import AsyncSession

from src.database.models import Order, OrderDetail, Novedad, Venta, PaymentMethod
from src.database.queries import (
    get_order_async,
    get_or_create_detail_async,
    create_novedad_async,
    create_venta_async,
    get_payment_methods_async,
    get_payment_method_by_id_async,
)
from src.utils.errors import NotFoundError
from src.utils.logger import get_logger

logger = get_logger(__name__)


class OrderRepository:
    """
    Acceso a órdenes, novedades y ventas dentro de una transacción.

    Uso:
        async with session_scope(factory) as db:
            repo = OrderRepository(db)
            order = await repo.get_order(5001)
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_order(self, order_id: int) -> Order:
        """
        Obtiene la orden o lanza NotFoundError.

        Args:
            order_id: Número de orden

        Returns:
            Orden con cliente y detalle cargados
        """
        order = await get_order_async(self.db, order_id)
        if order is None:
            raise NotFoundError("la orden", order_id)
        return order

    async def update_order_status(
        self,
        order: Order,
        new_status: Optional[str] = None,
        amounts: Optional[Dict[str, Any]] = None
    ) -> Order:
        """
        Cambia estado y campos de montos/fechas de la orden.

        Args:
            order: Orden obtenida con get_order
            new_status: Estado destino (None deja el actual)
            amounts: Campos de la orden a asignar (presupuesto, precio,
                presupuesto_fecha, informado_en, fecha_entrega)
        """
        if new_status is not None:
            order.estado = new_status
        for field_name, value in (amounts or {}).items():
            setattr(order, field_name, value)
        order.updated_at = datetime.utcnow()
        await self.db.flush()
        return order

    async def update_detail(self, order: Order, **fields) -> OrderDetail:
        """Asigna campos del detalle de la orden (lo crea si falta)."""
        detail = await get_or_create_detail_async(self.db, order)
        for field_name, value in fields.items():
            setattr(detail, field_name, value)
        await self.db.flush()
        return detail

    async def append_audit_event(
        self,
        order_id: int,
        tipo_id: int,
        monto: Optional[Decimal] = None,
        observacion: Optional[str] = None,
        usuario_id: Optional[int] = None
    ) -> Novedad:
        """Agrega la novedad de la transición."""
        return await create_novedad_async(
            self.db,
            orden_id=order_id,
            tipo_id=tipo_id,
            monto=monto,
            observacion=observacion,
            usuario_id=usuario_id,
        )

    async def create_accounting_entry(self, **fields) -> Venta:
        """Registra la venta de la transición."""
        return await create_venta_async(self.db, **fields)

    async def list_payment_methods(self) -> List[PaymentMethod]:
        """Métodos de pago activos, en el orden en que se ofrecen."""
        return await get_payment_methods_async(self.db)

    async def get_payment_method(self, payment_method_id: int) -> Optional[PaymentMethod]:
        """Método de pago activo por ID, o None."""
        return await get_payment_method_by_id_async(self.db, payment_method_id)
