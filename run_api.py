"""
Script de inicio de la API

Ejecuta la API REST desde la raíz del proyecto.
"""

import argparse

from src.api.app import run_api


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description="API del orquestador de órdenes")
    parser.add_argument("--host", default=None)
    parser.add_argument("--port", type=int, default=None)
    parser.add_argument("--reload", action="store_true", help="Recarga automática (desarrollo)")
    args = parser.parse_args()

    run_api(host=args.host, port=args.port, reload=args.reload)
