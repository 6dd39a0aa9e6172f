"""
Servicio de Actualización de Órdenes

Edición de datos de contacto del cliente, datos del equipo y montos de
una orden, sin cambio de estado. Lo usan las herramientas de escritura
del agente y el PATCH de la API, con la misma validación y la misma
novedad de auditoría.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError
from sqlalchemy.ext.asyncio import AsyncSession

from config.constants import NovedadTipo
from config.settings import settings as default_settings
from src.database.connection import SessionProvider
from src.database.repository import OrderRepository
from src.utils.errors import OrderConflictError, ValidationError, wrap_database_error
from src.utils.logger import audit_logger, get_logger
from src.utils.validators import (
    ContactValidator,
    MoneyValidator,
    TextValidator,
    ValidationLimits,
    ValidationResult,
)

logger = get_logger(__name__)


# ============================================================================
# CAMPOS EDITABLES
# ============================================================================

# Nombres con que se pide cada campo -> nombre canónico
FIELD_ALIASES: Dict[str, str] = {
    "telefono": "telefono", "telefono1": "telefono", "phone": "telefono",
    "cel": "telefono", "celular": "telefono",
    "telefono2": "telefono2", "phone2": "telefono2", "tel2": "telefono2",
    "email": "email", "mail": "email", "correo": "email",
    "direccion": "direccion", "domicilio": "direccion", "address": "direccion",
    "localidad": "localidad", "ciudad": "localidad", "city": "localidad",
    "modelo": "modelo", "model": "modelo",
    "serie": "serie", "serial": "serie", "nroserie": "serie",
    "accesorios": "accesorios", "accessories": "accesorios",
    "ubicacion": "ubicacion", "location": "ubicacion",
    "presupuesto": "presupuesto", "budget": "presupuesto",
    "precio": "precio", "monto": "precio", "price": "precio",
}

CUSTOMER_FIELDS = ("telefono", "telefono2", "email", "direccion", "localidad")
DEVICE_FIELDS = ("modelo", "serie", "accesorios", "ubicacion")
ORDER_FIELDS = ("presupuesto", "precio")

VALID_FIELDS_TEXT = ", ".join(CUSTOMER_FIELDS + DEVICE_FIELDS + ORDER_FIELDS)


def resolve_field(name: str) -> str:
    """
    Nombre canónico de un campo editable.

    Raises:
        ValidationError: Campo no reconocido
    """
    key = (name or "").strip().lower().replace(" ", "").replace("_", "")
    canonical = FIELD_ALIASES.get(key)
    if canonical is None:
        raise ValidationError(
            f"Campo '{name}' no reconocido. Campos válidos: {VALID_FIELDS_TEXT}",
            field="field",
            reason="campo no reconocido",
        )
    return canonical


def _validate_value(canonical: str, raw: Any) -> Any:
    """Valida y normaliza el valor de un campo canónico."""
    text = "" if raw is None else str(raw)

    if canonical in ("telefono", "telefono2"):
        result: ValidationResult = ContactValidator.validate_telefono(text)
    elif canonical == "email":
        result = ContactValidator.validate_email(text)
    elif canonical == "direccion":
        result = ContactValidator.validate_direccion(text)
    elif canonical == "localidad":
        result = ContactValidator.validate_direccion(text, ValidationLimits.LOCALIDAD_MAX_LENGTH)
    elif canonical in ORDER_FIELDS:
        result = MoneyValidator.parse_monto(text, allow_zero=True)
    else:
        limits = {
            "modelo": ValidationLimits.MODELO_MAX_LENGTH,
            "serie": ValidationLimits.SERIE_MAX_LENGTH,
            "accesorios": ValidationLimits.ACCESORIOS_MAX_LENGTH,
            "ubicacion": ValidationLimits.UBICACION_MAX_LENGTH,
        }
        result = TextValidator.validate_short_text(text, limits[canonical])

    if not result:
        raise ValidationError(
            f"Valor inválido para {canonical}: {result.error}",
            field=canonical,
            reason=result.error,
        )
    return result.sanitized


@dataclass
class UpdateResult:
    """Resultado de una actualización de campos"""
    order_number: int
    updated: Dict[str, Any] = field(default_factory=dict)
    previous: Dict[str, Any] = field(default_factory=dict)
    novedad_id: Optional[int] = None

    @property
    def message(self) -> str:
        if not self.updated:
            return f"La orden #{self.order_number} no tenía cambios para aplicar"
        campos = ", ".join(self.updated)
        return f"Orden #{self.order_number} actualizada: {campos}"

    def to_dict(self) -> Dict[str, Any]:
        def plain(values: Dict[str, Any]) -> Dict[str, Any]:
            return {k: float(v) if isinstance(v, Decimal) else v for k, v in values.items()}

        return {
            "orderNumber": self.order_number,
            "updated": plain(self.updated),
            "previous": plain(self.previous),
            "novedadId": self.novedad_id,
        }


# ============================================================================
# SERVICIO
# ============================================================================

class OrderUpdateService:
    """
    Actualiza campos de cliente, equipo y montos de una orden.

    Uso:
        service = OrderUpdateService(session_provider)
        result = await service.update(5001, {"celular": "11 5555-1234"})
    """

    def __init__(self, session_provider: Optional[SessionProvider] = None, config=default_settings):
        self._session_provider = session_provider
        self._config = config

    def normalize_changes(self, changes: Dict[str, Any]) -> Dict[str, Any]:
        """
        Resuelve alias y valida todos los valores antes de escribir.

        Los valores None se ignoran.
        """
        normalized: Dict[str, Any] = {}
        for name, value in changes.items():
            if value is None:
                continue
            canonical = resolve_field(name)
            normalized[canonical] = _validate_value(canonical, value)
        return normalized

    async def apply(
        self,
        db: AsyncSession,
        order_number: int,
        changes: Dict[str, Any],
        usuario_id: Optional[int] = None
    ) -> UpdateResult:
        """
        Aplica los cambios dentro de la sesión recibida.

        Deja una novedad NOTA con los campos modificados. No hace commit.

        Raises:
            NotFoundError: La orden no existe
            ValidationError: Campo desconocido o valor inválido
        """
        normalized = self.normalize_changes(changes)
        repo = OrderRepository(db)
        order = await repo.get_order(order_number)

        result = UpdateResult(order_number=order_number)
        if not normalized:
            return result

        customer_changes, device_changes, order_changes = self._split(normalized)

        if customer_changes:
            if order.customer is None:
                raise ValidationError(
                    f"La orden #{order_number} no tiene cliente asociado",
                    field="cliente",
                    reason="orden sin cliente",
                )
            for name, value in customer_changes:
                result.previous[name] = getattr(order.customer, name)
                setattr(order.customer, name, value)
                result.updated[name] = value

        if device_changes:
            previous = {name: getattr(order.detail, name, None) for name, _ in device_changes}
            await repo.update_detail(order, **dict(device_changes))
            result.previous.update(previous)
            result.updated.update(dict(device_changes))

        if order_changes:
            for name, _ in order_changes:
                result.previous[name] = getattr(order, name)
            await repo.update_order_status(order, None, dict(order_changes))
            result.updated.update(dict(order_changes))

        detalle = ", ".join(
            f"{name}: {result.previous.get(name) or '-'} → {value}"
            for name, value in result.updated.items()
        )
        novedad = await repo.append_audit_event(
            order_number,
            NovedadTipo.NOTA,
            observacion=f"Datos actualizados. {detalle}",
            usuario_id=usuario_id if usuario_id is not None else self._config.DEFAULT_USER_ID,
        )
        result.novedad_id = novedad.id
        return result

    async def update(
        self,
        order_number: int,
        changes: Dict[str, Any],
        usuario_id: Optional[int] = None
    ) -> UpdateResult:
        """Aplica los cambios en su propia transacción."""
        if self._session_provider is None:
            raise RuntimeError("OrderUpdateService sin proveedor de sesiones")

        try:
            async with self._session_provider() as db:
                result = await self.apply(db, order_number, changes, usuario_id)
        except StaleDataError as e:
            raise OrderConflictError(order_number, original_error=e)
        except SQLAlchemyError as e:
            raise wrap_database_error(e, operation="update_fields", entity_type="order")

        self.log_result(result)
        return result

    @staticmethod
    def log_result(result: UpdateResult) -> None:
        if result.updated:
            audit_logger.fields_updated(
                result.order_number,
                {k: str(v) for k, v in result.previous.items()},
                {k: str(v) for k, v in result.updated.items()},
            )
            logger.info(f"Orden {result.order_number}: campos actualizados {list(result.updated)}")

    @staticmethod
    def _split(
        normalized: Dict[str, Any]
    ) -> Tuple[List[Tuple[str, Any]], List[Tuple[str, Any]], List[Tuple[str, Any]]]:
        customer = [(k, v) for k, v in normalized.items() if k in CUSTOMER_FIELDS]
        device = [(k, v) for k, v in normalized.items() if k in DEVICE_FIELDS]
        order = [(k, v) for k, v in normalized.items() if k in ORDER_FIELDS]
        return customer, device, order
