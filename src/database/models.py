"""
Modelos de Base de Datos

Define las tablas del taller usando SQLAlchemy: personal, clientes,
órdenes de reparación con su detalle, novedades (audit log de la orden),
métodos de pago y ventas.
"""

from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Text, Numeric,
    ForeignKey, Index, CheckConstraint
)
from sqlalchemy.orm import relationship
from datetime import datetime

from src.database.connection import Base
from src.database.mixins import TimestampMixin
from config.constants import OrderStatus, UserRole


def _in_clause(column: str, values) -> str:
    quoted = ", ".join(f"'{v.value}'" for v in values)
    return f"{column} IN ({quoted})"


class User(Base, TimestampMixin):
    """Personal del taller: técnicos, responsables y administración"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    nombre = Column(String(100), nullable=False)
    apellido = Column(String(100), nullable=True)
    email = Column(String(255), index=True, nullable=True)
    rol = Column(String(20), default=UserRole.TECNICO.value, nullable=False)
    activo = Column(Boolean, default=True, nullable=False)

    __table_args__ = (
        CheckConstraint(_in_clause("rol", UserRole), name="ck_users_rol_valid"),
    )

    @property
    def nombre_completo(self) -> str:
        return f"{self.nombre} {self.apellido or ''}".strip()

    def __repr__(self):
        return f"<User {self.id} {self.nombre}>"


class Customer(Base, TimestampMixin):
    """
    Modelo de Cliente.

    Datos de contacto editables desde el chat (teléfonos, email,
    dirección y localidad).
    """
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True)
    nombre = Column(String(100), nullable=False)
    apellido = Column(String(100), nullable=True)
    dni = Column(String(20), nullable=True, index=True)
    email = Column(String(254), nullable=True)
    telefono = Column(String(20), nullable=True)
    telefono2 = Column(String(20), nullable=True)
    direccion = Column(String(200), nullable=True)
    localidad = Column(String(100), nullable=True)

    # Relaciones
    orders = relationship("Order", back_populates="customer")

    __table_args__ = (
        Index('ix_customers_apellido_nombre', 'apellido', 'nombre'),
    )

    @property
    def nombre_completo(self) -> str:
        return f"{self.nombre} {self.apellido or ''}".strip()

    def __repr__(self):
        return f"<Customer {self.id} {self.nombre_completo}>"


class Order(Base, TimestampMixin):
    """
    Orden de reparación.

    El id es el número de orden que ve el cliente. Estado y montos solo
    los modifica el motor de transiciones; los campos editables del
    cliente y del equipo pasan por el servicio de actualización.
    """
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)

    estado = Column(String(30), default=OrderStatus.INGRESADO.value, nullable=False)

    # Montos
    presupuesto = Column(Numeric(12, 2), nullable=True)
    precio = Column(Numeric(12, 2), nullable=True)

    es_domicilio = Column(Boolean, default=False, nullable=False)
    es_garantia = Column(Boolean, default=False, nullable=False)

    # Referencias
    cliente_id = Column(Integer, ForeignKey("customers.id"), nullable=False, index=True)
    tecnico_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    responsable_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    # Fechas del circuito
    presupuesto_fecha = Column(DateTime, nullable=True)
    informado_en = Column(DateTime, nullable=True)
    fecha_entrega = Column(DateTime, nullable=True)

    # Bloqueo optimista: un UPDATE con una versión vieja no afecta filas
    version = Column(Integer, nullable=False, default=1)

    # Relaciones
    customer = relationship("Customer", back_populates="orders")
    tecnico = relationship("User", foreign_keys=[tecnico_id])
    responsable = relationship("User", foreign_keys=[responsable_id])
    detail = relationship(
        "OrderDetail",
        back_populates="order",
        uselist=False,
        cascade="all, delete-orphan"
    )
    novedades = relationship("Novedad", back_populates="order", order_by="Novedad.id")
    ventas = relationship("Venta", back_populates="order")

    __table_args__ = (
        Index('ix_orders_estado', 'estado'),
        Index('ix_orders_cliente_created', 'cliente_id', 'created_at'),
        CheckConstraint("presupuesto IS NULL OR presupuesto >= 0", name="ck_orders_presupuesto_min"),
        CheckConstraint("precio IS NULL OR precio >= 0", name="ck_orders_precio_min"),
        CheckConstraint(_in_clause("estado", OrderStatus), name="ck_orders_estado_valid"),
    )

    __mapper_args__ = {"version_id_col": version}

    @property
    def status(self) -> OrderStatus:
        return OrderStatus(self.estado)

    def __repr__(self):
        return f"<Order {self.id} {self.estado}>"


class OrderDetail(Base):
    """Datos del equipo y de la reparación de una orden"""
    __tablename__ = "order_details"

    orden_id = Column(
        Integer,
        ForeignKey("orders.id", ondelete="CASCADE"),
        primary_key=True
    )

    marca = Column(String(100), nullable=True)
    tipo_dispositivo = Column(String(100), nullable=True)
    modelo = Column(String(100), nullable=True, index=True)
    serie = Column(String(100), nullable=True)
    ubicacion = Column(String(100), nullable=True)
    accesorios = Column(String(500), nullable=True)
    falla = Column(Text, nullable=True)
    reparacion_desc = Column(Text, nullable=True)

    order = relationship("Order", back_populates="detail")

    def __repr__(self):
        return f"<OrderDetail {self.orden_id}>"


class Novedad(Base):
    """
    Novedad de una orden.

    Registro inmutable de lo que pasó con la orden: quién, cuándo, con
    qué monto y qué observación. Se crea exactamente una por transición.
    """
    __tablename__ = "novedades"

    id = Column(Integer, primary_key=True, index=True)
    orden_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    tipo_id = Column(Integer, nullable=False)
    monto = Column(Numeric(12, 2), nullable=True)
    observacion = Column(Text, nullable=True)
    usuario_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    order = relationship("Order", back_populates="novedades")

    __table_args__ = (
        Index('ix_novedades_orden_tipo', 'orden_id', 'tipo_id'),
    )

    def __repr__(self):
        return f"<Novedad {self.id} orden={self.orden_id} tipo={self.tipo_id}>"


class PaymentMethod(Base):
    """Método de pago (efectivo, transferencia, tarjeta...)"""
    __tablename__ = "payment_methods"

    id = Column(Integer, primary_key=True, index=True)
    nombre = Column(String(50), nullable=False, unique=True)
    activo = Column(Boolean, default=True, nullable=False)

    def __repr__(self):
        return f"<PaymentMethod {self.id} {self.nombre}>"


class Venta(Base):
    """
    Venta (asiento contable).

    Se crea una sola vez cuando una acción cobra dinero: seña, retiro o
    cobro de reparación en domicilio. Este sistema nunca la modifica.
    """
    __tablename__ = "ventas"

    id = Column(Integer, primary_key=True, index=True)
    monto = Column(Numeric(12, 2), nullable=False)

    # Facturación
    facturado = Column(Boolean, default=False, nullable=False)
    tipo_factura = Column(String(5), nullable=True)
    numero_factura = Column(String(30), nullable=True)

    descripcion = Column(String(500), nullable=True)

    metodo_pago_id = Column(Integer, ForeignKey("payment_methods.id"), nullable=False)
    cliente_id = Column(Integer, ForeignKey("customers.id"), nullable=True, index=True)
    orden_id = Column(Integer, ForeignKey("orders.id"), nullable=True, index=True)
    vendedor_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    fecha = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    # Relaciones
    order = relationship("Order", back_populates="ventas")
    metodo_pago = relationship("PaymentMethod")
    customer = relationship("Customer")

    __table_args__ = (
        Index('ix_ventas_fecha_metodo', 'fecha', 'metodo_pago_id'),
        CheckConstraint("monto > 0", name="ck_ventas_monto_min"),
    )

    def __repr__(self):
        return f"<Venta {self.id} ${self.monto}>"
