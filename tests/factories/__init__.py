"""
Factories para Tests

Factories de factory-boy para el personal, clientes, órdenes y métodos
de pago, más el modelo de lenguaje guionado del agente.

Uso:
    from tests.factories import OrderFactory, save

    # Construir sin persistir
    order = OrderFactory(id=5001, presupuestado=True)

    # Persistir en la base de test
    await save(session_provider, order)
"""

from tests.factories.base import save
from tests.factories.user import UserFactory
from tests.factories.order import (
    CustomerFactory,
    OrderDetailFactory,
    OrderFactory,
    PaymentMethodFactory,
)
from tests.factories.llm import ScriptedLLM, text_reply, tool_reply

__all__ = [
    "save",

    # Personal
    "UserFactory",

    # Órdenes
    "CustomerFactory",
    "OrderDetailFactory",
    "OrderFactory",
    "PaymentMethodFactory",

    # Modelo de lenguaje
    "ScriptedLLM",
    "text_reply",
    "tool_reply",
]
