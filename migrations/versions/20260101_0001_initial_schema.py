"""Initial schema: personal, clientes, órdenes, novedades, métodos de pago y ventas

Revision ID: 0001
Revises:
Create Date: 2026-01-01

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

from config.constants import OrderStatus, UserRole

# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _in_clause(column: str, values) -> str:
    quoted = ", ".join(f"'{v.value}'" for v in values)
    return f"{column} IN ({quoted})"


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    """Create the repair shop schema."""

    # Users (personal del taller)
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('nombre', sa.String(100), nullable=False),
        sa.Column('apellido', sa.String(100), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('rol', sa.String(20), nullable=False, server_default=UserRole.TECNICO.value),
        sa.Column('activo', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.CheckConstraint(_in_clause('rol', UserRole), name='ck_users_rol_valid'),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_email', 'users', ['email'])
    op.create_index('ix_users_created_at', 'users', ['created_at'])

    # Customers
    op.create_table(
        'customers',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('nombre', sa.String(100), nullable=False),
        sa.Column('apellido', sa.String(100), nullable=True),
        sa.Column('dni', sa.String(20), nullable=True),
        sa.Column('email', sa.String(254), nullable=True),
        sa.Column('telefono', sa.String(20), nullable=True),
        sa.Column('telefono2', sa.String(20), nullable=True),
        sa.Column('direccion', sa.String(200), nullable=True),
        sa.Column('localidad', sa.String(100), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_customers_id', 'customers', ['id'])
    op.create_index('ix_customers_dni', 'customers', ['dni'])
    op.create_index('ix_customers_created_at', 'customers', ['created_at'])
    op.create_index('ix_customers_apellido_nombre', 'customers', ['apellido', 'nombre'])

    # Orders
    op.create_table(
        'orders',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('estado', sa.String(30), nullable=False, server_default=OrderStatus.INGRESADO.value),
        sa.Column('presupuesto', sa.Numeric(12, 2), nullable=True),
        sa.Column('precio', sa.Numeric(12, 2), nullable=True),
        sa.Column('es_domicilio', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('es_garantia', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('cliente_id', sa.Integer(), sa.ForeignKey('customers.id'), nullable=False),
        sa.Column('tecnico_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('responsable_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('presupuesto_fecha', sa.DateTime(), nullable=True),
        sa.Column('informado_en', sa.DateTime(), nullable=True),
        sa.Column('fecha_entrega', sa.DateTime(), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        *_timestamps(),
        sa.CheckConstraint('presupuesto IS NULL OR presupuesto >= 0', name='ck_orders_presupuesto_min'),
        sa.CheckConstraint('precio IS NULL OR precio >= 0', name='ck_orders_precio_min'),
        sa.CheckConstraint(_in_clause('estado', OrderStatus), name='ck_orders_estado_valid'),
    )
    op.create_index('ix_orders_id', 'orders', ['id'])
    op.create_index('ix_orders_cliente_id', 'orders', ['cliente_id'])
    op.create_index('ix_orders_created_at', 'orders', ['created_at'])
    op.create_index('ix_orders_estado', 'orders', ['estado'])
    op.create_index('ix_orders_cliente_created', 'orders', ['cliente_id', 'created_at'])

    # Order details (equipo)
    op.create_table(
        'order_details',
        sa.Column('orden_id', sa.Integer(), sa.ForeignKey('orders.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('marca', sa.String(100), nullable=True),
        sa.Column('tipo_dispositivo', sa.String(100), nullable=True),
        sa.Column('modelo', sa.String(100), nullable=True),
        sa.Column('serie', sa.String(100), nullable=True),
        sa.Column('ubicacion', sa.String(100), nullable=True),
        sa.Column('accesorios', sa.String(500), nullable=True),
        sa.Column('falla', sa.Text(), nullable=True),
        sa.Column('reparacion_desc', sa.Text(), nullable=True),
    )
    op.create_index('ix_order_details_modelo', 'order_details', ['modelo'])

    # Novedades (audit log de la orden)
    op.create_table(
        'novedades',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('orden_id', sa.Integer(), sa.ForeignKey('orders.id'), nullable=False),
        sa.Column('tipo_id', sa.Integer(), nullable=False),
        sa.Column('monto', sa.Numeric(12, 2), nullable=True),
        sa.Column('observacion', sa.Text(), nullable=True),
        sa.Column('usuario_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_novedades_id', 'novedades', ['id'])
    op.create_index('ix_novedades_orden_id', 'novedades', ['orden_id'])
    op.create_index('ix_novedades_created_at', 'novedades', ['created_at'])
    op.create_index('ix_novedades_orden_tipo', 'novedades', ['orden_id', 'tipo_id'])

    # Payment methods
    op.create_table(
        'payment_methods',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('nombre', sa.String(50), nullable=False, unique=True),
        sa.Column('activo', sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.create_index('ix_payment_methods_id', 'payment_methods', ['id'])

    # Ventas (asientos contables)
    op.create_table(
        'ventas',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('monto', sa.Numeric(12, 2), nullable=False),
        sa.Column('facturado', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('tipo_factura', sa.String(5), nullable=True),
        sa.Column('numero_factura', sa.String(30), nullable=True),
        sa.Column('descripcion', sa.String(500), nullable=True),
        sa.Column('metodo_pago_id', sa.Integer(), sa.ForeignKey('payment_methods.id'), nullable=False),
        sa.Column('cliente_id', sa.Integer(), sa.ForeignKey('customers.id'), nullable=True),
        sa.Column('orden_id', sa.Integer(), sa.ForeignKey('orders.id'), nullable=True),
        sa.Column('vendedor_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('fecha', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('monto > 0', name='ck_ventas_monto_min'),
    )
    op.create_index('ix_ventas_id', 'ventas', ['id'])
    op.create_index('ix_ventas_cliente_id', 'ventas', ['cliente_id'])
    op.create_index('ix_ventas_orden_id', 'ventas', ['orden_id'])
    op.create_index('ix_ventas_fecha', 'ventas', ['fecha'])
    op.create_index('ix_ventas_fecha_metodo', 'ventas', ['fecha', 'metodo_pago_id'])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table('ventas')
    op.drop_table('payment_methods')
    op.drop_table('novedades')
    op.drop_table('order_details')
    op.drop_table('orders')
    op.drop_table('customers')
    op.drop_table('users')
