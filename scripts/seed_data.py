"""
Script para cargar datos iniciales

Crea las tablas y carga personal, métodos de pago y algunas órdenes de
ejemplo para probar el chat en desarrollo. Es idempotente: lo que ya
existe no se vuelve a crear.

Uso:
    python -m scripts.seed_data
"""

import asyncio
from decimal import Decimal

from sqlalchemy import select

from config.constants import OrderStatus, UserRole
from src.database.connection import close_async_db, create_tables_async, get_async_db
from src.database.models import Customer, Order, OrderDetail, PaymentMethod, User


PAYMENT_METHODS = ["Efectivo", "Transferencia", "Tarjeta de débito", "Tarjeta de crédito", "Mercado Pago"]

USERS = [
    {"nombre": "Sistema", "apellido": None, "rol": UserRole.ADMIN.value},
    {"nombre": "Laura", "apellido": "Gómez", "rol": UserRole.GERENTE.value},
    {"nombre": "Diego", "apellido": "Pereyra", "rol": UserRole.TECNICO.value},
]

SAMPLE_ORDERS = [
    {
        "customer": {"nombre": "Juan", "apellido": "Pérez", "dni": "30111222", "telefono": "11 5555-1234",
                     "direccion": "Av. Rivadavia 1234", "localidad": "CABA"},
        "order": {"id": 5001, "estado": OrderStatus.INGRESADO.value},
        "detail": {"marca": "Samsung", "tipo_dispositivo": "Lavarropas", "modelo": "WW90",
                   "falla": "No centrifuga"},
    },
    {
        "customer": {"nombre": "María", "apellido": "López", "dni": "28999888", "telefono": "11 4444-9876",
                     "email": "maria.lopez@example.com", "direccion": "Calle 50 nro 820", "localidad": "La Plata"},
        "order": {"id": 5002, "estado": OrderStatus.PRESUPUESTADO.value, "presupuesto": Decimal("45000")},
        "detail": {"marca": "LG", "tipo_dispositivo": "Heladera", "modelo": "GT32", "falla": "No enfría"},
    },
    {
        "customer": {"nombre": "Carlos", "apellido": "Díaz", "dni": "35444333", "telefono": "11 3333-2222",
                     "direccion": "Mitre 455", "localidad": "Quilmes"},
        "order": {"id": 5003, "estado": OrderStatus.REPARADO.value, "presupuesto": Decimal("20000")},
        "detail": {"marca": "Philips", "tipo_dispositivo": "Televisor", "modelo": "50PUD", "ubicacion": "Estante B2"},
    },
]


async def seed() -> None:
    print("Creando tablas...")
    await create_tables_async()

    async with get_async_db() as db:
        existing = set((await db.execute(select(PaymentMethod.nombre))).scalars())
        for nombre in PAYMENT_METHODS:
            if nombre in existing:
                print(f"  Método de pago {nombre} ya existe, omitiendo...")
                continue
            db.add(PaymentMethod(nombre=nombre, activo=True))
            print(f"  Creado método de pago: {nombre}")

        if (await db.execute(select(User.id).limit(1))).first() is None:
            for data in USERS:
                db.add(User(**data))
                print(f"  Creado usuario: {data['nombre']} ({data['rol']})")

        for sample in SAMPLE_ORDERS:
            if await db.get(Order, sample["order"]["id"]) is not None:
                print(f"  Orden {sample['order']['id']} ya existe, omitiendo...")
                continue
            customer = Customer(**sample["customer"])
            db.add(customer)
            await db.flush()
            order = Order(cliente_id=customer.id, **sample["order"])
            order.detail = OrderDetail(**sample["detail"])
            db.add(order)
            print(f"  Creada orden #{order.id} ({order.estado})")

    await close_async_db()
    print("\nDatos iniciales cargados.")


if __name__ == "__main__":
    asyncio.run(seed())
