"""
Punto de entrada del Bot de Telegram

Configura e inicia el bot que atiende el chat del taller. Todos los
mensajes de texto pasan por el router de sesiones del AppContext.
"""

from telegram import Update
from telegram.ext import Application, CommandHandler, MessageHandler, filters

from config.settings import settings
from src.bot.handlers.chat import MENSAJES, cancelar, handle_text, start
from src.core.context import initialize_app_context, shutdown_app_context
from src.utils.logger import get_logger

logger = get_logger(__name__)


async def post_init(application: Application) -> None:
    """Inicializa el contexto de aplicación y la base de datos."""
    logger.info("Inicializando contexto de aplicación...")
    await initialize_app_context()
    logger.info("Contexto de aplicación inicializado")


async def post_shutdown(application: Application) -> None:
    """Cierra conexiones y limpia recursos."""
    logger.info("Cerrando contexto de aplicación...")
    await shutdown_app_context()
    logger.info("Contexto de aplicación cerrado")


async def error_handler(update: object, context) -> None:
    """
    Handler global de errores.

    Captura errores que no manejó el propio handler.
    """
    logger.error(f"Error no manejado: {context.error}", exc_info=context.error)

    if isinstance(update, Update) and update.effective_message:
        await update.effective_message.reply_text(MENSAJES['error_generico'])


def build_application(token: str) -> Application:
    """Aplicación de Telegram con sus handlers y hooks."""
    application = (
        Application.builder()
        .token(token)
        .post_init(post_init)
        .post_shutdown(post_shutdown)
        .build()
    )

    application.add_handler(CommandHandler("start", start))
    application.add_handler(CommandHandler("cancelar", cancelar))
    application.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, handle_text))
    application.add_error_handler(error_handler)
    return application


def main():
    """Función principal que inicia el bot."""
    if not settings.TELEGRAM_BOT_TOKEN:
        logger.error("TELEGRAM_BOT_TOKEN no está configurado en .env")
        return

    logger.info(f"Proyecto: {settings.PROJECT_NAME} v{settings.VERSION}")
    logger.info(f"Entorno: {settings.ENVIRONMENT.value}")
    logger.info(f"Chats con contabilidad: {settings.get_accounting_chat_ids() or 'ninguno'}")

    application = build_application(settings.TELEGRAM_BOT_TOKEN)
    logger.info("Bot iniciado, esperando mensajes...")
    application.run_polling(allowed_updates=Update.ALL_TYPES)


if __name__ == '__main__':
    main()
