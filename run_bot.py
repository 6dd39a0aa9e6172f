"""
Script de inicio del bot

Ejecuta el bot de Telegram desde la raíz del proyecto.
"""

from src.bot.main import main

if __name__ == '__main__':
    main()
