"""
Router de Sesiones

Punto de entrada de cada mensaje del chat. Decide quién lo atiende:

1. "cancelar" sin acción en curso: respuesta neutra.
2. Sesión de slot filling activa: el mensaje es el próximo dato.
3. "#12345": lectura directa de la orden, sin pasar por el modelo.
4. Acción estructurada completa: motor de transiciones, con el lock de la
   identidad tomado para que un mensaje simultáneo no la repita.
5. Acción estructurada incompleta o comando ("retira 5001"): slot filling.
6. Cualquier otra cosa: agente con herramientas.
"""

import json
import re
from typing import Optional, Tuple

from config.constants import ACTION_ALIASES, ActionKind
from src.database.connection import SessionProvider
from src.database.queries import get_order_async
from src.models.actions import ActionParams
from src.models.chat import ChatInput, ChatReply, ChatRoute
from src.models.orders import OrderSummary
from src.services.agent_loop import AgentLoop
from src.services.messages import MENSAJES
from src.services.slot_filling import SlotFillingOrchestrator, SlotReply
from src.services.transition_engine import TransitionEngine, missing_fields
from src.utils.errors import OrchestratorError, OrderConflictError, SessionConflictError
from src.utils.logger import LogContext, get_logger
from src.utils.rate_limiter import RateLimiter
from src.utils.validators import SelectionValidator

logger = get_logger(__name__)

ORDER_LOOKUP_RE = re.compile(r"^\s*#\s*(\d+)\s*$")
ACTION_COMMAND_RE = re.compile(r"^\s*(?P<alias>[a-záéíóúñ ]+?)\s*(?:#\s*)?(?P<number>\d+)?\s*$")


def parse_order_lookup(text: str) -> Optional[int]:
    """Número de orden de una búsqueda rápida "#12345"."""
    match = ORDER_LOOKUP_RE.match(text or "")
    return int(match.group(1)) if match else None


def parse_action_command(text: str) -> Optional[Tuple[ActionKind, Optional[int]]]:
    """
    Interpreta un comando de acción escrito.

    "retira 5001" -> (Retira, 5001); "seña #5001" -> (Sena, 5001);
    "reparado" -> (Reparado, None). Devuelve None si no es un comando.
    """
    match = ACTION_COMMAND_RE.match((text or "").lower())
    if not match:
        return None
    alias = " ".join(match.group("alias").split())
    kind = ACTION_ALIASES.get(alias)
    if kind is None:
        return None
    number = match.group("number")
    return kind, int(number) if number else None


def format_lookup(summary: OrderSummary) -> str:
    """Bloque JSON con el mismo formato que usa el modelo para búsquedas."""
    body = json.dumps([summary.model_dump(by_alias=True)], ensure_ascii=False, indent=2)
    return f"```json\n{body}\n```"


class SessionRouter:
    """
    Despacho de mensajes del chat.

    Uso:
        router = SessionRouter(engine, slots, agent, session_provider)
        reply = await router.handle(ChatInput(session_id="tg:1", message="retira 5001"))
    """

    def __init__(
        self,
        engine: TransitionEngine,
        slots: SlotFillingOrchestrator,
        agent: AgentLoop,
        session_provider: SessionProvider,
        rate_limiter: Optional[RateLimiter] = None
    ):
        self._engine = engine
        self._slots = slots
        self._agent = agent
        self._session_provider = session_provider
        self._rate_limiter = rate_limiter

    async def handle(self, chat: ChatInput) -> ChatReply:
        """
        Atiende un mensaje.

        Los errores del orquestador vuelven como respuesta con su mensaje
        para el usuario; nunca se propagan al canal.
        """
        with LogContext(session_id=chat.session_id, user_id=chat.user_id):
            if self._rate_limiter is not None and not self._rate_limiter.allow(chat.session_id):
                return ChatReply(message=self._rate_limiter.message, route=ChatRoute.RATE_LIMITED)

            try:
                return await self._dispatch(chat)
            except (SessionConflictError, OrderConflictError) as e:
                return ChatReply(message=e.get_user_message(), route=ChatRoute.CONFLICT, data=e.to_payload())
            except OrchestratorError as e:
                logger.warning(f"Mensaje de {chat.session_id} terminó en error: {e.message}")
                return ChatReply(message=e.get_user_message(), route=ChatRoute.ERROR, data=e.to_payload())

    async def _dispatch(self, chat: ChatInput) -> ChatReply:
        text = chat.message.strip()

        if chat.action is None:
            if SelectionValidator.is_cancel(text) and not self._slots.has_session(chat.session_id):
                return ChatReply(message=MENSAJES['sin_accion_en_curso'], route=ChatRoute.CANCEL)

            slot_reply = await self._slots.advance(chat.session_id, text)
            if slot_reply is not None:
                return self._slot_reply(slot_reply)

            order_number = parse_order_lookup(text)
            if order_number is not None:
                return await self._lookup(order_number)

        if chat.action is not None:
            return await self._structured_action(chat)

        command = parse_action_command(text)
        if command is not None:
            kind, order_number = command
            if order_number is None and chat.selected_order is not None:
                order_number = chat.selected_order.order_number
            if order_number is None:
                return ChatReply(message=MENSAJES['falta_orden'], route=ChatRoute.SESSION)
            reply = await self._slots.begin(
                chat.session_id, kind, order_number, ActionParams(), usuario_id=chat.user_id
            )
            return self._slot_reply(reply)

        if not text:
            return ChatReply(message=MENSAJES['mensaje_vacio'], route=ChatRoute.AGENT)

        reply = await self._agent.run(
            text,
            history=chat.history,
            can_access_accounting=chat.can_access_accounting,
            selected_order=chat.selected_order,
        )
        return ChatReply(
            message=reply.message,
            route=ChatRoute.AGENT,
            data={"iterations": reply.iterations, "toolCalls": reply.tool_calls},
        )

    async def _lookup(self, order_number: int) -> ChatReply:
        async with self._session_provider() as db:
            order = await get_order_async(db, order_number)
            summary = OrderSummary.from_order(order) if order is not None else None

        if summary is None:
            return ChatReply(
                message=MENSAJES['orden_no_encontrada'].format(order_number=order_number),
                route=ChatRoute.LOOKUP,
                data=[],
            )
        return ChatReply(
            message=format_lookup(summary),
            route=ChatRoute.LOOKUP,
            data=[summary.model_dump(by_alias=True)],
        )

    async def _structured_action(self, chat: ChatInput) -> ChatReply:
        action = chat.action
        order_number = action.order_number
        if order_number is None and chat.selected_order is not None:
            order_number = chat.selected_order.order_number
        if order_number is None:
            return ChatReply(message=MENSAJES['falta_orden'], route=ChatRoute.ACTION)

        params = action.params.merged(usuario_id=chat.user_id)
        if missing_fields(action.kind, params):
            reply = await self._slots.begin(chat.session_id, action.kind, order_number, params)
            return self._slot_reply(reply)

        # Un botón con todos los datos reemplaza cualquier acción a medias
        async with self._slots.store.lock(chat.session_id):
            self._slots.cancel(chat.session_id)
            result = await self._engine.execute(order_number, action.kind, params)
        return ChatReply(
            message=result.message,
            route=ChatRoute.ACTION,
            data=result.model_dump(by_alias=True, mode="json"),
        )

    @staticmethod
    def _slot_reply(reply: SlotReply) -> ChatReply:
        data = None
        if reply.result is not None:
            data = reply.result.model_dump(by_alias=True, mode="json")
        route = ChatRoute.CANCEL if reply.cancelled else ChatRoute.SESSION
        return ChatReply(message=reply.message, route=route, data=data)
