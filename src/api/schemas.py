"""
API Schemas

Schemas Pydantic documentados para la API REST del orquestador.
Los cuerpos de cada acción declaran qué datos pide; la validación de
negocio (monto positivo, método de pago existente, nota mínima) la hace
el motor de transiciones y vuelve como {success: false, message, context}.

Uso:
    from src.api.schemas import ACTION_BODIES, OrderFieldsUpdate
"""

from decimal import Decimal
from typing import Any, Dict, List, Optional, Type

from pydantic import ConfigDict, Field

from config.constants import ActionKind
from src.models.actions import ActionParams, CamelModel
from src.services.transition_engine import check_exhaustive


# ============================================================================
# ERROR SCHEMAS
# ============================================================================

class ErrorResponse(CamelModel):
    """Respuesta de error estándar."""
    success: bool = Field(False, description="Siempre false")
    message: str = Field(..., description="Mensaje para el usuario")
    context: Optional[Dict[str, Any]] = Field(
        None,
        description="Campo y motivo en errores de validación; entidad e ID en no encontrados"
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "success": False,
                "message": "El monto debe ser positivo",
                "context": {"field": "monto", "reason": "debe ser positivo"}
            }
        }
    )


# ============================================================================
# ACTION BODIES
# ============================================================================

class ActionBody(CamelModel):
    """Base de los cuerpos de acción."""
    usuario_id: Optional[int] = Field(None, description="Usuario que registra la acción")

    def to_params(self) -> ActionParams:
        return ActionParams.model_validate(self.model_dump(exclude_none=True))


class NotaOpcionalBody(ActionBody):
    """Reparado, RechazaPresupuesto, Armado."""
    nota: Optional[str] = Field(None, description="Observación (opcional)")


class NotaObligatoriaBody(ActionBody):
    """Rechazar, EsperaRepuesto, Reingreso."""
    nota: Optional[str] = Field(None, description="Motivo, obligatorio")


class PresupuestarBody(ActionBody):
    monto: Optional[Decimal] = Field(None, description="Monto del presupuesto")

    model_config = ConfigDict(json_schema_extra={"example": {"monto": 45000}})


class CobroBody(ActionBody):
    """Retira, RepDomicilio y Sena: registran una venta."""
    monto: Optional[Decimal] = Field(None, description="Monto cobrado")
    metodo_pago_id: Optional[int] = Field(None, description="ID del método de pago")
    facturado: bool = Field(False, description="Si la venta se factura")
    tipo_factura: Optional[str] = Field(None, description="A, B o C")
    numero_factura: Optional[str] = None
    nota: Optional[str] = None

    model_config = ConfigDict(
        json_schema_extra={"example": {"monto": 20000, "metodoPagoId": 2}}
    )


class InformarPresupuestoBody(ActionBody):
    accion: Optional[str] = Field(None, description="acepta | rechaza | pendiente")
    monto: Optional[Decimal] = Field(None, description="Monto informado al cliente")
    nota: Optional[str] = None


class ArchivarBody(ActionBody):
    ubicacion: Optional[str] = Field(None, description="Dónde queda el equipo")
    nota: Optional[str] = None


ACTION_BODIES: Dict[ActionKind, Type[ActionBody]] = {
    ActionKind.PRESUPUESTAR: PresupuestarBody,
    ActionKind.REPARADO: NotaOpcionalBody,
    ActionKind.RECHAZAR: NotaObligatoriaBody,
    ActionKind.ESPERA_REPUESTO: NotaObligatoriaBody,
    ActionKind.REP_DOMICILIO: CobroBody,
    ActionKind.RETIRA: CobroBody,
    ActionKind.SENA: CobroBody,
    ActionKind.INFORMAR_PRESUPUESTO: InformarPresupuestoBody,
    ActionKind.REINGRESO: NotaObligatoriaBody,
    ActionKind.RECHAZA_PRESUPUESTO: NotaOpcionalBody,
    ActionKind.ARMADO: NotaOpcionalBody,
    ActionKind.ARCHIVAR: ArchivarBody,
}
check_exhaustive(ACTION_BODIES, "ACTION_BODIES")


# ============================================================================
# ORDER SCHEMAS
# ============================================================================

class OrderFieldsUpdate(CamelModel):
    """Campos editables de una orden (PATCH)."""
    telefono: Optional[str] = None
    telefono2: Optional[str] = None
    email: Optional[str] = None
    direccion: Optional[str] = None
    localidad: Optional[str] = None
    modelo: Optional[str] = None
    serie: Optional[str] = None
    accesorios: Optional[str] = None
    ubicacion: Optional[str] = None
    presupuesto: Optional[Decimal] = None
    precio: Optional[Decimal] = None
    usuario_id: Optional[int] = None

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True, exclude={"usuario_id"})


class NoteCreate(CamelModel):
    """Nota libre sobre una orden."""
    nota: str = Field(..., description="Texto de la nota")
    usuario_id: Optional[int] = None


class StatusInfo(CamelModel):
    """Estado de orden con su descripción."""
    status: str
    description: str
    terminal: bool


class StatusListResponse(CamelModel):
    statuses: List[StatusInfo]
