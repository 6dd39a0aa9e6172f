"""
Factories para Órdenes

Clientes, órdenes de reparación con su detalle y métodos de pago.
"""

from decimal import Decimal

import factory
from factory import Faker, LazyFunction, Sequence, SubFactory

from config.constants import OrderStatus
from src.database.models import Customer, Order, OrderDetail, PaymentMethod
from tests.factories.base import (
    BaseFactory,
    generate_direccion,
    generate_dni,
    generate_localidad,
    generate_phone,
)


class CustomerFactory(BaseFactory):
    """
    Factory para clientes.

    Ejemplos:
        customer = CustomerFactory()
        customer = CustomerFactory(nombre="Juan", apellido="Pérez")
    """

    class Meta:
        model = Customer

    nombre = Faker("first_name", locale="es_ES")
    apellido = Faker("last_name", locale="es_ES")
    dni = LazyFunction(generate_dni)
    telefono = LazyFunction(generate_phone)
    email = None
    direccion = LazyFunction(generate_direccion)
    localidad = LazyFunction(generate_localidad)


class OrderDetailFactory(BaseFactory):
    """Factory para el equipo de una orden."""

    class Meta:
        model = OrderDetail

    marca = factory.Iterator(["Samsung", "LG", "Philips", "Sony", "BGH", "Noblex"])
    tipo_dispositivo = factory.Iterator(["Televisor", "Microondas", "Notebook", "Lavarropas"])
    modelo = Sequence(lambda n: f"MOD-{100 + n}")
    serie = Sequence(lambda n: f"SN{100000 + n}")
    falla = "No enciende"


class OrderFactory(BaseFactory):
    """
    Factory para órdenes de reparación.

    El id es el número de orden; conviene fijarlo en los tests que lo
    usan en mensajes o rutas.

    Ejemplos:
        # Orden recién ingresada
        order = OrderFactory(id=5001)

        # Orden presupuestada en $45.000
        order = OrderFactory(id=5002, presupuestado=True)

        # Orden ya retirada (solo admite reingreso)
        order = OrderFactory(retirado=True)
    """

    class Meta:
        model = Order

    id = Sequence(lambda n: 5001 + n)
    estado = OrderStatus.INGRESADO.value
    presupuesto = None
    precio = None
    es_domicilio = False
    es_garantia = False
    customer = SubFactory(CustomerFactory)
    detail = SubFactory(OrderDetailFactory)

    class Params:
        presupuestado = factory.Trait(
            estado=OrderStatus.PRESUPUESTADO.value,
            presupuesto=Decimal("45000.00"),
        )

        reparado = factory.Trait(
            estado=OrderStatus.REPARADO.value,
            presupuesto=Decimal("20000.00"),
        )

        retirado = factory.Trait(
            estado=OrderStatus.RETIRADO.value,
            precio=Decimal("20000.00"),
        )

        domicilio = factory.Trait(es_domicilio=True)

        sin_detalle = factory.Trait(detail=None)


class PaymentMethodFactory(BaseFactory):
    """Factory para métodos de pago."""

    class Meta:
        model = PaymentMethod

    id = Sequence(lambda n: n + 1)
    nombre = Sequence(lambda n: f"Método {n + 1}")
    activo = True
