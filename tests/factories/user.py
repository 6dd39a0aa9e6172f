"""
Factory para User

Personal del taller: técnicos, responsables y administración.
"""

import factory
from factory import Faker, LazyAttribute, Sequence

from config.constants import UserRole
from src.database.models import User
from tests.factories.base import BaseFactory


class UserFactory(BaseFactory):
    """
    Factory para crear personal del taller.

    Ejemplos:
        # Técnico
        user = UserFactory()

        # Gerente
        gerente = UserFactory(gerente=True)

        # Usuario inactivo
        user = UserFactory(inactive=True)
    """

    class Meta:
        model = User

    id = Sequence(lambda n: n + 1)
    nombre = Faker("first_name", locale="es_ES")
    apellido = Faker("last_name", locale="es_ES")
    email = LazyAttribute(lambda o: f"{o.nombre.lower()}.{o.id}@taller.test")
    rol = UserRole.TECNICO.value
    activo = True

    class Params:
        gerente = factory.Trait(rol=UserRole.GERENTE.value)

        admin = factory.Trait(rol=UserRole.ADMIN.value)

        inactive = factory.Trait(activo=False)
