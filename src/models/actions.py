"""
Modelos Pydantic de Acciones

Parámetros de entrada y resultado de una transición de orden. Los
nombres JSON públicos son camelCase (metodoPagoId, orderNumber...).
"""

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel

from config.constants import ActionKind
from src.utils.validators import MoneyValidator


class CamelModel(BaseModel):
    """Base con alias camelCase y carga por nombre de campo."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class ActionParams(CamelModel):
    """
    Bolsa de parámetros de una acción.

    Ningún campo es obligatorio acá: qué se exige depende de la acción y
    lo resuelve el motor de transiciones, que informa campo y motivo.
    """
    monto: Optional[Decimal] = None
    metodo_pago_id: Optional[int] = None
    nota: Optional[str] = Field(None, description="Observación de la novedad")
    accion: Optional[str] = Field(None, description="acepta | rechaza | pendiente")
    ubicacion: Optional[str] = None
    facturado: bool = False
    tipo_factura: Optional[str] = None
    numero_factura: Optional[str] = None
    usuario_id: Optional[int] = None

    @field_validator("monto", mode="before")
    @classmethod
    def parse_monto_text(cls, value: Any) -> Any:
        """Acepta montos escritos como texto local ("$20.000", "1.234,50")."""
        if isinstance(value, str):
            normalized = MoneyValidator.normalize(value)
            if normalized is None:
                raise ValueError("Formato de monto inválido")
            try:
                return Decimal(normalized)
            except InvalidOperation:
                raise ValueError("Formato de monto inválido")
        return value

    def merged(self, **values) -> "ActionParams":
        """Copia con los valores dados sobreescritos (los None se ignoran)."""
        update = {k: v for k, v in values.items() if v is not None}
        return self.model_copy(update=update)


class TransitionResult(CamelModel):
    """Resultado de una transición ejecutada"""
    success: bool = True
    message: str
    order_number: int
    action: ActionKind
    previous_status: str
    new_status: str
    monto: Optional[Decimal] = None
    metodo_pago: Optional[str] = None
    facturado: Optional[bool] = None
    novedad_id: int
    venta_id: Optional[int] = None
    warnings: List[str] = Field(default_factory=list)
    processed_at: datetime = Field(default_factory=datetime.utcnow)

    @field_serializer("monto")
    def serialize_monto(self, monto: Optional[Decimal]) -> Optional[float]:
        return float(monto) if monto is not None else None


class NoteResult(CamelModel):
    """Resultado de agregar una nota a la orden"""
    success: bool = True
    message: str
    order_number: int
    novedad_id: int
