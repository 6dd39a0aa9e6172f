"""
Handlers del Chat

Cada mensaje de texto de Telegram se reenvía al router de sesiones con
la identidad "tg:<chat_id>". El historial corto de la conversación vive
en chat_data y se manda al agente junto con cada consulta.
"""

from typing import Any, Dict, List, MutableMapping

from telegram import Update
from telegram.ext import ContextTypes

from config.settings import settings
from src.core.context import get_app_context
from src.models.chat import ChatInput, ChatRoute, HistoryMessage
from src.utils.errors import handle_errors
from src.utils.logger import bind_context, get_logger

logger = get_logger(__name__)

TELEGRAM_MAX_LENGTH = 4096
HISTORY_KEY = "history"

# Rutas cuyo intercambio se guarda en el historial del agente
HISTORY_ROUTES = (ChatRoute.AGENT, ChatRoute.LOOKUP)


MENSAJES = {
    'bienvenida': (
        "Hola, soy el asistente del taller.\n\n"
        "Podés consultarme por órdenes, clientes o equipos, o registrar acciones:\n"
        "  #5001 - ver la orden\n"
        "  retira 5001 - registrar el retiro\n"
        "  presupuestar 5001 - cargar el presupuesto\n\n"
        "Escribí /cancelar para abandonar una acción en curso."
    ),
    'error_generico': "No pude procesar tu mensaje. Intentá de nuevo.",
}


# ============================================================================
# UTILIDADES
# ============================================================================

def session_id_for(chat_id: int) -> str:
    """Identidad de sesión de un chat de Telegram."""
    return f"tg:{chat_id}"


def get_history(chat_data: MutableMapping[str, Any]) -> List[Dict[str, str]]:
    return chat_data.setdefault(HISTORY_KEY, [])


def remember(chat_data: MutableMapping[str, Any], role: str, content: str, limit: int) -> None:
    """Agrega un mensaje al historial y descarta los más viejos."""
    history = get_history(chat_data)
    history.append({"role": role, "content": content})
    if limit > 0 and len(history) > limit:
        del history[:len(history) - limit]


def build_chat_input(
    chat_id: int,
    text: str,
    chat_data: MutableMapping[str, Any],
    config=settings
) -> ChatInput:
    """Arma la entrada del router para un mensaje de Telegram."""
    return ChatInput(
        session_id=session_id_for(chat_id),
        message=text,
        history=[HistoryMessage(**item) for item in get_history(chat_data)],
        can_access_accounting=chat_id in config.get_accounting_chat_ids(),
        user_id=config.DEFAULT_USER_ID,
    )


def split_message(text: str, limit: int = TELEGRAM_MAX_LENGTH) -> List[str]:
    """Parte un texto largo en bloques que Telegram acepta, cortando en saltos de línea."""
    if len(text) <= limit:
        return [text]

    chunks: List[str] = []
    current = ""
    for line in text.splitlines(keepends=True):
        while len(line) > limit:
            if current:
                chunks.append(current)
                current = ""
            chunks.append(line[:limit])
            line = line[limit:]
        if len(current) + len(line) > limit:
            chunks.append(current)
            current = ""
        current += line
    if current:
        chunks.append(current)
    return chunks


async def _reply(update: Update, text: str) -> None:
    for chunk in split_message(text):
        await update.message.reply_text(chunk)


# ============================================================================
# HANDLERS
# ============================================================================

async def start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Comando /start: bienvenida y limpieza del historial."""
    context.chat_data[HISTORY_KEY] = []
    await update.message.reply_text(MENSAJES['bienvenida'])


@handle_errors(user_message=MENSAJES['error_generico'])
async def cancelar(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Comando /cancelar: abandona la acción en curso."""
    chat_input = build_chat_input(update.effective_chat.id, "cancelar", context.chat_data)
    reply = await get_app_context().router.handle(chat_input)
    await update.message.reply_text(reply.message)


@handle_errors(user_message=MENSAJES['error_generico'])
async def handle_text(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Mensaje de texto: se resuelve en el router de sesiones."""
    chat_id = update.effective_chat.id
    text = update.message.text or ""
    bind_context(session_id=session_id_for(chat_id))

    chat_input = build_chat_input(chat_id, text, context.chat_data)
    reply = await get_app_context().router.handle(chat_input)
    logger.debug(f"Chat {chat_id}: ruta {reply.route.value}")

    if reply.route in HISTORY_ROUTES:
        limit = settings.TELEGRAM_HISTORY_LIMIT
        remember(context.chat_data, "user", text, limit)
        remember(context.chat_data, "assistant", reply.message, limit)

    await _reply(update, reply.message)
