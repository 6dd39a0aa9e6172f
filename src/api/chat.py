"""
Chat Endpoint

Entrada conversacional de la app web: cada mensaje pasa por el router
de sesiones, que decide si es un dato de una acción en curso, una
búsqueda rápida, una acción o una consulta para el agente.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends

from src.api.orders import get_context
from src.core.context import AppContext
from src.models.chat import ChatInput

chat_router = APIRouter(tags=["chat"])


@chat_router.post(
    "/chat",
    summary="Mensaje del chat",
    description="Devuelve {message, route, data}. Los errores del orquestador "
                "vuelven con status 200 y route=error para que el chat los muestre.",
)
async def chat(body: ChatInput, ctx: AppContext = Depends(get_context)) -> Dict[str, Any]:
    reply = await ctx.router.handle(body)
    return reply.model_dump(by_alias=True, mode="json", exclude_none=True)
