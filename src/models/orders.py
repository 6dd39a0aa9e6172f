"""
Modelos Pydantic de Órdenes

Vistas de lectura de órdenes, clientes, novedades y ventas que devuelven
la API, las herramientas del agente y la búsqueda rápida por número.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional, List

from pydantic import field_serializer

from src.models.actions import CamelModel


def _to_float(value: Optional[Decimal]) -> Optional[float]:
    return float(value) if value is not None else None


class OrderSummary(CamelModel):
    """Resumen de una orden (formato de las búsquedas)"""
    order_number: int
    customer_name: str
    model: Optional[str] = None
    status: str
    entry_date: Optional[str] = None

    @classmethod
    def from_order(cls, order) -> "OrderSummary":
        detail = order.detail
        return cls(
            order_number=order.id,
            customer_name=order.customer.nombre_completo if order.customer else "",
            model=detail.modelo if detail else None,
            status=order.estado,
            entry_date=order.created_at.strftime("%Y-%m-%d") if order.created_at else None,
        )


class CustomerView(CamelModel):
    """Datos de contacto de un cliente"""
    customer_id: int
    full_name: str
    dni: Optional[str] = None
    email: Optional[str] = None
    telefono: Optional[str] = None
    telefono2: Optional[str] = None
    direccion: Optional[str] = None
    localidad: Optional[str] = None

    @classmethod
    def from_customer(cls, customer) -> "CustomerView":
        return cls(
            customer_id=customer.id,
            full_name=customer.nombre_completo,
            dni=customer.dni,
            email=customer.email,
            telefono=customer.telefono,
            telefono2=customer.telefono2,
            direccion=customer.direccion,
            localidad=customer.localidad,
        )


class DeviceView(CamelModel):
    """Datos del equipo"""
    marca: Optional[str] = None
    tipo_dispositivo: Optional[str] = None
    modelo: Optional[str] = None
    serie: Optional[str] = None
    ubicacion: Optional[str] = None
    accesorios: Optional[str] = None
    falla: Optional[str] = None
    reparacion_desc: Optional[str] = None


class OrderView(CamelModel):
    """Orden completa: cliente, equipo, estado y montos"""
    order_number: int
    status: str
    presupuesto: Optional[Decimal] = None
    precio: Optional[Decimal] = None
    es_domicilio: bool = False
    es_garantia: bool = False
    entry_date: Optional[datetime] = None
    presupuesto_fecha: Optional[datetime] = None
    informado_en: Optional[datetime] = None
    fecha_entrega: Optional[datetime] = None
    customer: Optional[CustomerView] = None
    device: DeviceView

    @field_serializer("presupuesto", "precio")
    def serialize_montos(self, value: Optional[Decimal]) -> Optional[float]:
        return _to_float(value)

    @classmethod
    def from_order(cls, order) -> "OrderView":
        detail = order.detail
        device = DeviceView()
        if detail is not None:
            device = DeviceView(
                marca=detail.marca,
                tipo_dispositivo=detail.tipo_dispositivo,
                modelo=detail.modelo,
                serie=detail.serie,
                ubicacion=detail.ubicacion,
                accesorios=detail.accesorios,
                falla=detail.falla,
                reparacion_desc=detail.reparacion_desc,
            )
        return cls(
            order_number=order.id,
            status=order.estado,
            presupuesto=order.presupuesto,
            precio=order.precio,
            es_domicilio=order.es_domicilio,
            es_garantia=order.es_garantia,
            entry_date=order.created_at,
            presupuesto_fecha=order.presupuesto_fecha,
            informado_en=order.informado_en,
            fecha_entrega=order.fecha_entrega,
            customer=CustomerView.from_customer(order.customer) if order.customer else None,
            device=device,
        )


class NovedadView(CamelModel):
    """Novedad de una orden"""
    id: int
    tipo_id: int
    monto: Optional[Decimal] = None
    observacion: Optional[str] = None
    usuario_id: Optional[int] = None
    created_at: datetime

    @field_serializer("monto")
    def serialize_monto(self, value: Optional[Decimal]) -> Optional[float]:
        return _to_float(value)

    @classmethod
    def from_novedad(cls, novedad) -> "NovedadView":
        return cls(
            id=novedad.id,
            tipo_id=novedad.tipo_id,
            monto=novedad.monto,
            observacion=novedad.observacion,
            usuario_id=novedad.usuario_id,
            created_at=novedad.created_at,
        )


class SaleView(CamelModel):
    """Venta registrada"""
    id: int
    fecha: datetime
    monto: Decimal
    metodo_pago: Optional[str] = None
    facturado: bool
    tipo_factura: Optional[str] = None
    numero_factura: Optional[str] = None
    orden_id: Optional[int] = None
    descripcion: Optional[str] = None

    @field_serializer("monto")
    def serialize_monto(self, value: Decimal) -> float:
        return float(value)

    @classmethod
    def from_venta(cls, venta) -> "SaleView":
        return cls(
            id=venta.id,
            fecha=venta.fecha,
            monto=venta.monto,
            metodo_pago=venta.metodo_pago.nombre if venta.metodo_pago else None,
            facturado=venta.facturado,
            tipo_factura=venta.tipo_factura,
            numero_factura=venta.numero_factura,
            orden_id=venta.orden_id,
            descripcion=venta.descripcion,
        )


class PaymentMethodView(CamelModel):
    """Método de pago"""
    id: int
    nombre: str


def summarize_orders(orders) -> List[dict]:
    """Lista de resúmenes listos para serializar a JSON."""
    return [OrderSummary.from_order(o).model_dump(by_alias=True) for o in orders]
