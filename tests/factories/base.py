"""
Base Factory Configuration

Las factories construyen instancias de los modelos sin sesión; se
persisten con save(), que las agrega en una unidad de trabajo del
proveedor de sesiones de test.
"""

import random

import factory

from src.database.connection import SessionProvider


class BaseFactory(factory.Factory):
    """
    Factory base para modelos SQLAlchemy.

    Construye instancias sin tocar la base: en contexto async la sesión
    la aporta el test.

    Uso:
        order = OrderFactory(id=5001)
        await save(session_provider, order)
    """

    class Meta:
        abstract = True


async def save(session_provider: SessionProvider, *instances):
    """
    Persiste instancias construidas por las factories.

    Returns:
        Las mismas instancias, con IDs asignados
    """
    async with session_provider() as db:
        db.add_all(instances)
    return instances


# ============================================================================
# HELPER FUNCTIONS PARA DATOS ARGENTINOS
# ============================================================================

def generate_dni() -> str:
    """Genera un DNI argentino de 8 dígitos."""
    return str(random.randint(20000000, 45999999))


def generate_phone() -> str:
    """Genera un celular del AMBA."""
    return f"11 {random.randint(2000, 6999)}-{random.randint(1000, 9999)}"


def generate_localidad() -> str:
    """Retorna una localidad aleatoria."""
    localidades = [
        "CABA", "La Plata", "Quilmes", "Avellaneda", "Lanús",
        "Lomas de Zamora", "Morón", "San Isidro", "Tigre", "Vicente López",
    ]
    return random.choice(localidades)


def generate_direccion() -> str:
    """Genera una dirección de calle y altura."""
    calles = ["Av. Rivadavia", "Mitre", "Belgrano", "San Martín", "Calle 50", "Av. Corrientes"]
    return f"{random.choice(calles)} {random.randint(100, 5999)}"
