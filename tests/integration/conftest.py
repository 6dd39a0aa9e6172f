"""
Fixtures de integración: lectura del estado persistido de una orden.
"""

from types import SimpleNamespace

import pytest

from src.database.queries import get_novedades_by_order_async, get_order_async, get_ventas_by_order_async


@pytest.fixture
def order_state(session_provider):
    """
    Lee la orden, sus novedades y sus ventas en una sesión nueva.

    Uso:
        state = await order_state(5001)
        assert state.order.estado == "RETIRADO"
    """
    async def _read(order_number: int) -> SimpleNamespace:
        async with session_provider() as db:
            return SimpleNamespace(
                order=await get_order_async(db, order_number),
                novedades=await get_novedades_by_order_async(db, order_number),
                ventas=await get_ventas_by_order_async(db, order_number),
            )
    return _read
