"""
API Module

Endpoints HTTP del orquestador.

Endpoints:
- Health: /health, /health/live, /health/ready
- Chat: /api/chat
- Órdenes: /api/orders/{n}/{acción}, /api/orders/{n}, /api/orders/{n}/novedades
- Catálogos: /api/payment-methods, /api/statuses

Documentación:
- Swagger UI: /docs
- ReDoc: /redoc
- OpenAPI JSON: /openapi.json
"""

# Health
from src.api.health import health_router, HealthChecker

# Chat y órdenes
from src.api.chat import chat_router
from src.api.orders import orders_router

# App
from src.api.app import create_app, run_api

__all__ = [
    "health_router",
    "HealthChecker",
    "chat_router",
    "orders_router",
    "create_app",
    "run_api",
]
