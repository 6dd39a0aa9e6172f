"""
Motor de Transiciones de Órdenes

Valida y ejecuta una acción de negocio sobre una orden: cambio de estado,
novedad y, si la acción cobra dinero, la venta. Es el único camino que
modifica estado y montos de una orden; la API directa, el slot filling y
el router pasan todos por acá.

Toda la validación ocurre antes de la primera escritura, y las escrituras
comparten una sesión que se confirma junta: si algo falla, no queda nada
visible.

Las acciones sobre una misma orden se ejecutan de a una dentro del
proceso; la segunda relee la orden ya modificada. Entre procesos, la
columna version de la orden hace fallar la escritura que llegó tarde
(OrderConflictError).
"""

import asyncio
import weakref
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from config.constants import (
    ActionKind,
    InformeAccion,
    InvoiceStrictness,
    NovedadTipo,
    OrderStatus,
    TERMINAL_STATUSES,
)
from config.settings import settings as default_settings
from src.database.connection import SessionProvider
from src.database.models import Order
from src.database.repository import OrderRepository
from src.models.actions import ActionParams, NoteResult, TransitionResult
from src.utils.errors import (
    InvalidPaymentMethodError,
    OrderConflictError,
    ValidationError,
    wrap_database_error,
)
from src.utils.logger import audit_logger, get_logger
from src.utils.validators import MoneyValidator, TextValidator, ValidationLimits

logger = get_logger(__name__)


# ============================================================================
# TABLA DE REGLAS
# ============================================================================

@dataclass(frozen=True)
class ActionRule:
    """
    Regla de una acción.

    Attributes:
        label: Nombre para mensajes ("Retiro", "Seña"...)
        required: Campos que deben venir para poder ejecutar
        audit_kind: Tipo de novedad que se registra
        takes_payment: Si exige método de pago
    """
    label: str
    required: Tuple[str, ...]
    audit_kind: NovedadTipo
    takes_payment: bool = False


ACTION_RULES: Dict[ActionKind, ActionRule] = {
    ActionKind.PRESUPUESTAR: ActionRule("Presupuesto", ("monto",), NovedadTipo.PRESUPUESTADO),
    ActionKind.REPARADO: ActionRule("Reparado", (), NovedadTipo.REPARADO),
    ActionKind.RECHAZAR: ActionRule("Rechazo", ("nota",), NovedadTipo.RECHAZA),
    ActionKind.ESPERA_REPUESTO: ActionRule("Espera de repuesto", ("nota",), NovedadTipo.ESPERA_REPUESTO),
    ActionKind.REP_DOMICILIO: ActionRule(
        "Reparación en domicilio", ("monto", "metodo_pago_id"), NovedadTipo.REP_DOMICILIO, takes_payment=True
    ),
    ActionKind.RETIRA: ActionRule(
        "Retiro", ("monto", "metodo_pago_id"), NovedadTipo.RETIRA, takes_payment=True
    ),
    ActionKind.SENA: ActionRule(
        "Seña", ("monto", "metodo_pago_id"), NovedadTipo.SENA, takes_payment=True
    ),
    ActionKind.INFORMAR_PRESUPUESTO: ActionRule(
        "Presupuesto informado", ("accion",), NovedadTipo.PRESUPUESTO_INFORMADO
    ),
    ActionKind.REINGRESO: ActionRule("Reingreso", ("nota",), NovedadTipo.REINGRESO),
    ActionKind.RECHAZA_PRESUPUESTO: ActionRule(
        "Rechazo de presupuesto", (), NovedadTipo.RECHAZA_PRESUPUESTO
    ),
    ActionKind.ARMADO: ActionRule("Armado", (), NovedadTipo.ARMADO),
    ActionKind.ARCHIVAR: ActionRule("Archivo", ("ubicacion",), NovedadTipo.ARCHIVADO),
}


def check_exhaustive(table: Dict[ActionKind, Any], name: str) -> None:
    """Falla al importar si alguna acción no tiene entrada en la tabla."""
    missing = set(ActionKind) - set(table)
    if missing:
        names = ", ".join(sorted(k.value for k in missing))
        raise RuntimeError(f"{name} no cubre las acciones: {names}")


check_exhaustive(ACTION_RULES, "ACTION_RULES")


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def missing_fields(kind: ActionKind, params: ActionParams) -> List[str]:
    """
    Campos requeridos que todavía faltan para ejecutar la acción.

    Solo mira presencia, no validez: un monto 0 cuenta como presente y lo
    rechaza después la validación.
    """
    rule = ACTION_RULES[ActionKind(kind)]
    return [name for name in rule.required if is_blank(getattr(params, name))]


# ============================================================================
# PLAN DE LA TRANSICIÓN
# ============================================================================

@dataclass
class TransitionPlan:
    """Todo lo que se va a escribir, calculado antes de escribir nada."""
    kind: ActionKind
    previous_status: str
    new_status: str
    order_fields: Dict[str, Any] = field(default_factory=dict)
    detail_fields: Dict[str, Any] = field(default_factory=dict)
    novedad_monto: Optional[Decimal] = None
    observacion: Optional[str] = None
    sale_monto: Optional[Decimal] = None
    metodo_pago_id: Optional[int] = None
    metodo_pago: Optional[str] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def books_sale(self) -> bool:
        return self.sale_monto is not None


def _invalid(field_name: str, reason: str, label: Optional[str] = None) -> ValidationError:
    """ValidationError con mensaje legible: 'El monto debe ser positivo'."""
    subject = label or {
        "monto": "El monto",
        "nota": "La nota",
        "accion": "La respuesta del cliente",
        "ubicacion": "La ubicación",
        "metodo_pago_id": "El método de pago",
    }.get(field_name, field_name)
    return ValidationError(f"{subject} {reason}", field=field_name, reason=reason)


# ============================================================================
# MOTOR
# ============================================================================

class TransitionEngine:
    """
    Ejecuta acciones de negocio sobre órdenes.

    Uso:
        engine = TransitionEngine(session_provider)
        result = await engine.execute(5001, ActionKind.SENA, ActionParams(monto=5000, metodo_pago_id=1))
    """

    def __init__(
        self,
        session_provider: SessionProvider,
        config=default_settings,
        clock: Callable[[], datetime] = datetime.utcnow
    ):
        self._session_provider = session_provider
        self._config = config
        self._clock = clock
        self._order_locks: "weakref.WeakValueDictionary[int, asyncio.Lock]" = weakref.WeakValueDictionary()
        self._planners: Dict[ActionKind, Callable[[Order, ActionParams, TransitionPlan], None]] = {
            ActionKind.PRESUPUESTAR: self._plan_presupuestar,
            ActionKind.REPARADO: self._plan_reparado,
            ActionKind.RECHAZAR: self._plan_rechazar,
            ActionKind.ESPERA_REPUESTO: self._plan_espera_repuesto,
            ActionKind.REP_DOMICILIO: self._plan_entrega,
            ActionKind.RETIRA: self._plan_entrega,
            ActionKind.SENA: self._plan_sena,
            ActionKind.INFORMAR_PRESUPUESTO: self._plan_informar_presupuesto,
            ActionKind.REINGRESO: self._plan_reingreso,
            ActionKind.RECHAZA_PRESUPUESTO: self._plan_rechaza_presupuesto,
            ActionKind.ARMADO: self._plan_armado,
            ActionKind.ARCHIVAR: self._plan_archivar,
        }
        check_exhaustive(self._planners, "TransitionEngine")

    # ------------------------------------------------------------------------
    # API pública
    # ------------------------------------------------------------------------

    async def execute(
        self,
        order_number: int,
        kind: ActionKind,
        params: Optional[ActionParams] = None
    ) -> TransitionResult:
        """
        Valida y ejecuta una acción.

        Args:
            order_number: Número de orden
            kind: Acción a ejecutar
            params: Parámetros de la acción

        Returns:
            TransitionResult con estados, montos e IDs creados

        Raises:
            NotFoundError: La orden no existe
            ValidationError: Campo faltante o inválido (incluye estado no permitido)
            InvalidPaymentMethodError: Método de pago inexistente
            OrderConflictError: Otra transacción modificó la orden
            PersistenceError: Falló la escritura; no quedó nada escrito
        """
        kind = ActionKind(kind)
        params = params or ActionParams()

        try:
            async with self._order_lock(order_number):
                async with self._session_provider() as db:
                    repo = OrderRepository(db)
                    order = await repo.get_order(order_number)

                    try:
                        plan = self.plan(order, kind, params)
                        if ACTION_RULES[kind].takes_payment:
                            method = await repo.get_payment_method(plan.metodo_pago_id)
                            if method is None:
                                raise InvalidPaymentMethodError(plan.metodo_pago_id)
                            plan.metodo_pago = method.nombre
                    except ValidationError as e:
                        audit_logger.rejected(order_number, kind.value, e.reason)
                        raise

                    result = await self._apply(repo, order, plan, params)

        except StaleDataError as e:
            logger.warning(f"{kind.value} en orden {order_number} descartado: la orden cambió en otra transacción")
            raise OrderConflictError(order_number, original_error=e)
        except SQLAlchemyError as e:
            logger.error(f"Error de base de datos ejecutando {kind.value} en orden {order_number}: {e}")
            raise wrap_database_error(e, operation=kind.value, entity_type="order")

        audit_logger.transition(
            order_number,
            kind.value,
            result.previous_status,
            result.new_status,
            user_id=params.usuario_id,
            details={
                "novedad_id": result.novedad_id,
                "venta_id": result.venta_id,
                "monto": str(result.monto) if result.monto is not None else None,
            },
        )
        for warning in result.warnings:
            logger.warning(f"Orden {order_number} ({kind.value}): {warning}")

        logger.info(
            f"{kind.value} ejecutado en orden {order_number}: "
            f"{result.previous_status} -> {result.new_status}"
        )
        return result

    async def add_note(
        self,
        order_number: int,
        nota: str,
        usuario_id: Optional[int] = None
    ) -> NoteResult:
        """
        Agrega una nota a la orden sin cambiar su estado.

        Raises:
            NotFoundError: La orden no existe
            ValidationError: Nota vacía
        """
        check = TextValidator.validate_nota(nota, min_length=1)
        if not check:
            raise _invalid("nota", check.error)

        try:
            async with self._session_provider() as db:
                repo = OrderRepository(db)
                await repo.get_order(order_number)
                novedad = await repo.append_audit_event(
                    order_number,
                    NovedadTipo.NOTA,
                    observacion=check.sanitized,
                    usuario_id=self._usuario(usuario_id),
                )
                novedad_id = novedad.id
        except SQLAlchemyError as e:
            raise wrap_database_error(e, operation="add_note", entity_type="order")

        logger.info(f"Nota agregada a la orden {order_number}")
        return NoteResult(
            message=f"Nota agregada a la orden #{order_number}",
            order_number=order_number,
            novedad_id=novedad_id,
        )

    def _order_lock(self, order_number: int) -> asyncio.Lock:
        lock = self._order_locks.get(order_number)
        if lock is None:
            lock = asyncio.Lock()
            self._order_locks[order_number] = lock
        return lock

    def plan(self, order: Order, kind: ActionKind, params: ActionParams) -> TransitionPlan:
        """
        Valida la acción contra la orden y calcula las escrituras.

        No toca la base. Lanza ValidationError ante el primer problema.
        """
        kind = ActionKind(kind)
        self.check_status(order, kind)

        plan = TransitionPlan(
            kind=kind,
            previous_status=order.estado,
            new_status=order.estado,
        )
        self._planners[kind](order, params, plan)

        if ACTION_RULES[kind].takes_payment:
            if params.metodo_pago_id is None:
                raise _invalid("metodo_pago_id", "es obligatorio")
            plan.metodo_pago_id = params.metodo_pago_id

        if plan.books_sale:
            self._check_invoice(params, plan)

        return plan

    # ------------------------------------------------------------------------
    # Validaciones comunes
    # ------------------------------------------------------------------------

    def check_status(self, order: Order, kind: ActionKind) -> None:
        """Desde un estado de salida solo se permite el reingreso, y viceversa."""
        terminal = order.estado in {s.value for s in TERMINAL_STATUSES}

        if kind == ActionKind.REINGRESO and not terminal:
            raise ValidationError(
                f"La orden #{order.id} está {order.estado}; solo se reingresan órdenes "
                f"retiradas, reparadas en domicilio o archivadas",
                field="estado",
                reason="la orden no salió del taller",
            )
        if kind != ActionKind.REINGRESO and terminal:
            raise ValidationError(
                f"La orden #{order.id} está {order.estado}; solo admite reingreso",
                field="estado",
                reason="la orden ya salió del taller",
            )

    @staticmethod
    def _monto(params: ActionParams, allow_zero: bool = False) -> Decimal:
        if params.monto is None:
            raise _invalid("monto", "es obligatorio")
        check = MoneyValidator.validate_monto(params.monto, allow_zero=allow_zero)
        if not check:
            raise _invalid("monto", check.error)
        return check.sanitized

    @staticmethod
    def _nota_obligatoria(params: ActionParams, min_length: int) -> str:
        check = TextValidator.validate_nota(params.nota, min_length=min_length)
        if not check:
            raise _invalid("nota", check.error)
        return check.sanitized

    def _check_invoice(self, params: ActionParams, plan: TransitionPlan) -> None:
        """Una venta facturada debería traer tipo y número de factura."""
        if not params.facturado:
            return

        faltantes = [
            name for name in ("tipo_factura", "numero_factura")
            if is_blank(getattr(params, name))
        ]
        if not faltantes:
            return

        if self._config.INVOICE_STRICTNESS == InvoiceStrictness.STRICT:
            raise ValidationError(
                "Una venta facturada necesita tipo y número de factura",
                field=faltantes[0],
                reason="es obligatorio si la venta está facturada",
            )
        plan.warnings.append(
            f"Venta marcada como facturada sin {' ni '.join(faltantes)}"
        )

    # ------------------------------------------------------------------------
    # Planes por acción
    # ------------------------------------------------------------------------

    def _plan_presupuestar(self, order: Order, params: ActionParams, plan: TransitionPlan) -> None:
        monto = self._monto(params)
        plan.new_status = (
            OrderStatus.PRESUPUESTADO_DOMICILIO.value if order.es_domicilio
            else OrderStatus.PRESUPUESTADO.value
        )
        plan.order_fields = {"presupuesto": monto, "presupuesto_fecha": self._clock()}
        plan.novedad_monto = monto
        plan.observacion = TextValidator.normalize_optional_nota(params.nota)

    def _plan_reparado(self, order: Order, params: ActionParams, plan: TransitionPlan) -> None:
        nota = TextValidator.normalize_optional_nota(params.nota)
        plan.new_status = OrderStatus.REPARADO.value
        plan.observacion = nota
        if nota:
            plan.detail_fields = {"reparacion_desc": nota}

    def _plan_rechazar(self, order: Order, params: ActionParams, plan: TransitionPlan) -> None:
        plan.observacion = self._nota_obligatoria(params, self._config.RECHAZAR_NOTE_MIN_LENGTH)
        plan.new_status = OrderStatus.RECHAZADO.value

    def _plan_espera_repuesto(self, order: Order, params: ActionParams, plan: TransitionPlan) -> None:
        plan.observacion = self._nota_obligatoria(params, self._config.ESPERA_REPUESTO_NOTE_MIN_LENGTH)
        plan.new_status = OrderStatus.ESPERA_REPUESTO.value

    def _plan_entrega(self, order: Order, params: ActionParams, plan: TransitionPlan) -> None:
        """Retiro del equipo o cobro de la reparación en domicilio."""
        monto = self._monto(params, allow_zero=True)
        plan.new_status = (
            OrderStatus.RETIRADO.value if plan.kind == ActionKind.RETIRA
            else OrderStatus.REPARADO_DOMICILIO.value
        )
        plan.order_fields = {"precio": monto, "fecha_entrega": self._clock()}
        plan.novedad_monto = monto
        plan.observacion = TextValidator.normalize_optional_nota(params.nota)
        if monto > 0:
            plan.sale_monto = monto

    def _plan_sena(self, order: Order, params: ActionParams, plan: TransitionPlan) -> None:
        monto = self._monto(params)
        plan.novedad_monto = monto
        plan.sale_monto = monto
        plan.observacion = TextValidator.normalize_optional_nota(params.nota)

    def _plan_informar_presupuesto(self, order: Order, params: ActionParams, plan: TransitionPlan) -> None:
        raw = (params.accion or "").strip().lower()
        try:
            accion = InformeAccion(raw)
        except ValueError:
            raise _invalid("accion", "debe ser acepta, rechaza o pendiente")

        if params.monto is None and order.presupuesto is None:
            raise _invalid("monto", "es obligatorio: la orden no tiene presupuesto")
        monto = self._monto(params.merged(monto=params.monto if params.monto is not None else order.presupuesto))

        if accion == InformeAccion.ACEPTA:
            plan.new_status = OrderStatus.ACEPTADO.value
        elif accion == InformeAccion.RECHAZA:
            plan.new_status = OrderStatus.RECHAZO_PRESUPUESTO.value

        plan.order_fields = {"presupuesto": monto, "informado_en": self._clock()}
        plan.novedad_monto = monto
        plan.observacion = (
            TextValidator.normalize_optional_nota(params.nota)
            or f"Presupuesto informado: {accion.value}"
        )

    def _plan_reingreso(self, order: Order, params: ActionParams, plan: TransitionPlan) -> None:
        plan.observacion = self._nota_obligatoria(params, self._config.REINGRESO_NOTE_MIN_LENGTH)
        plan.new_status = OrderStatus.REINGRESADO.value
        plan.order_fields = {"fecha_entrega": None}

    def _plan_rechaza_presupuesto(self, order: Order, params: ActionParams, plan: TransitionPlan) -> None:
        plan.observacion = TextValidator.normalize_optional_nota(params.nota)
        plan.new_status = OrderStatus.RECHAZO_PRESUPUESTO.value

    def _plan_armado(self, order: Order, params: ActionParams, plan: TransitionPlan) -> None:
        plan.observacion = TextValidator.normalize_optional_nota(params.nota)
        plan.new_status = OrderStatus.ARMADO.value

    def _plan_archivar(self, order: Order, params: ActionParams, plan: TransitionPlan) -> None:
        check = TextValidator.validate_short_text(params.ubicacion, ValidationLimits.UBICACION_MAX_LENGTH)
        if not check:
            raise _invalid("ubicacion", check.error)
        plan.new_status = OrderStatus.ARCHIVADO.value
        plan.detail_fields = {"ubicacion": check.sanitized}
        plan.observacion = (
            TextValidator.normalize_optional_nota(params.nota)
            or f"Archivado en {check.sanitized}"
        )

    # ------------------------------------------------------------------------
    # Escritura
    # ------------------------------------------------------------------------

    def _usuario(self, usuario_id: Optional[int]) -> Optional[int]:
        return usuario_id if usuario_id is not None else self._config.DEFAULT_USER_ID

    async def _apply(
        self,
        repo: OrderRepository,
        order: Order,
        plan: TransitionPlan,
        params: ActionParams
    ) -> TransitionResult:
        """Escribe el plan. Corre dentro de la transacción de execute."""
        rule = ACTION_RULES[plan.kind]
        usuario_id = self._usuario(params.usuario_id)

        status_change = plan.new_status if plan.new_status != plan.previous_status else None
        await repo.update_order_status(order, status_change, plan.order_fields)
        if plan.detail_fields:
            await repo.update_detail(order, **plan.detail_fields)

        novedad = await repo.append_audit_event(
            order.id,
            rule.audit_kind,
            monto=plan.novedad_monto,
            observacion=plan.observacion,
            usuario_id=usuario_id,
        )

        venta = None
        if plan.books_sale:
            venta = await repo.create_accounting_entry(
                monto=plan.sale_monto,
                metodo_pago_id=plan.metodo_pago_id,
                orden_id=order.id,
                cliente_id=order.cliente_id,
                vendedor_id=usuario_id,
                descripcion=f"{rule.label} orden #{order.id}",
                facturado=params.facturado,
                tipo_factura=params.tipo_factura,
                numero_factura=params.numero_factura,
            )

        return TransitionResult(
            message=self._message(order.id, plan, rule),
            order_number=order.id,
            action=plan.kind,
            previous_status=plan.previous_status,
            new_status=plan.new_status,
            monto=plan.novedad_monto,
            metodo_pago=plan.metodo_pago,
            facturado=venta.facturado if venta is not None else None,
            novedad_id=novedad.id,
            venta_id=venta.id if venta is not None else None,
            warnings=list(plan.warnings),
            processed_at=self._clock(),
        )

    @staticmethod
    def _message(order_number: int, plan: TransitionPlan, rule: ActionRule) -> str:
        text = f"{rule.label} en la orden #{order_number}"
        if plan.new_status != plan.previous_status:
            text += f": {plan.previous_status} → {plan.new_status}"
        if plan.books_sale:
            text += f". Venta por ${plan.sale_monto:,.2f} ({plan.metodo_pago})"
        return text
