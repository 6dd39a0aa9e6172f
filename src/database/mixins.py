"""
Database Mixins

Mixins reutilizables para modelos de base de datos.
Las órdenes y sus novedades nunca se borran desde este sistema, por eso
no hay soft delete.
"""

from sqlalchemy import Column, DateTime
from datetime import datetime


class TimestampMixin:
    """
    Mixin para timestamps automáticos.

    Agrega created_at y updated_at a los modelos.
    """
    created_at = Column(
        DateTime,
        default=datetime.utcnow,
        nullable=False,
        index=True
    )
    updated_at = Column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False
    )
