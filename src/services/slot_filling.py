"""
Slot Filling de Acciones

Completa por conversación los datos que le faltan a una acción, un
mensaje a la vez, y al terminar la ejecuta con el motor de transiciones.

Reglas de cada turno:
- "cancelar" se revisa antes que cualquier otra cosa.
- Un valor inválido repregunta sin avanzar el paso.
- En el último paso la sesión se quita del store bajo el lock y el motor
  corre después de liberarlo; falle o no, la sesión ya no existe.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from config.constants import ActionKind, InformeAccion
from config.settings import settings as default_settings
from src.database.connection import SessionProvider
from src.database.repository import OrderRepository
from src.models.actions import ActionParams, TransitionResult
from src.services.messages import (
    MENSAJES,
    PROMPTS,
    SUFIJO_DEFAULT,
    SUFIJO_MINIMO,
    SUFIJO_OPCIONAL,
)
from src.services.session_store import ConversationSession, SessionStore
from src.services.transition_engine import TransitionEngine, check_exhaustive, is_blank
from src.utils.errors import OrchestratorError, ValidationError
from src.utils.logger import LogContext, audit_logger, get_logger
from src.utils.validators import (
    MoneyValidator,
    SelectionValidator,
    TextValidator,
    ValidationLimits,
    ValidationResult,
)

logger = get_logger(__name__)


# ============================================================================
# PASOS
# ============================================================================

class StepType(str, Enum):
    """Cómo se interpreta la respuesta a un paso"""
    CURRENCY = "currency"
    PAYMENT_METHOD = "payment_method"
    CHOICE = "choice"
    REQUIRED_TEXT = "required_text"
    OPTIONAL_TEXT = "optional_text"


@dataclass(frozen=True)
class SlotStep:
    """
    Un dato a pedir.

    Attributes:
        field: Campo de ActionParams que completa
        type: Tipo de respuesta esperada
        prompt: Clave en PROMPTS
        offer_presupuesto: Ofrecer el presupuesto de la orden por defecto
        min_length_setting: Setting con la longitud mínima de la nota
    """
    field: str
    type: StepType
    prompt: str
    offer_presupuesto: bool = False
    min_length_setting: Optional[str] = None


_METODO_PAGO = SlotStep("metodo_pago_id", StepType.PAYMENT_METHOD, "metodo_pago")

ACTION_STEPS: Dict[ActionKind, Tuple[SlotStep, ...]] = {
    ActionKind.PRESUPUESTAR: (
        SlotStep("monto", StepType.CURRENCY, "monto_presupuesto", offer_presupuesto=True),
    ),
    ActionKind.REPARADO: (
        SlotStep("nota", StepType.OPTIONAL_TEXT, "nota_reparacion"),
    ),
    ActionKind.RECHAZAR: (
        SlotStep("nota", StepType.REQUIRED_TEXT, "motivo_rechazo", min_length_setting="RECHAZAR_NOTE_MIN_LENGTH"),
    ),
    ActionKind.ESPERA_REPUESTO: (
        SlotStep("nota", StepType.REQUIRED_TEXT, "repuesto", min_length_setting="ESPERA_REPUESTO_NOTE_MIN_LENGTH"),
    ),
    ActionKind.REP_DOMICILIO: (
        SlotStep("monto", StepType.CURRENCY, "monto_domicilio", offer_presupuesto=True),
        _METODO_PAGO,
    ),
    ActionKind.RETIRA: (
        SlotStep("monto", StepType.CURRENCY, "monto_cobrado", offer_presupuesto=True),
        _METODO_PAGO,
    ),
    ActionKind.SENA: (
        SlotStep("monto", StepType.CURRENCY, "monto_sena"),
        _METODO_PAGO,
    ),
    ActionKind.INFORMAR_PRESUPUESTO: (
        SlotStep("accion", StepType.CHOICE, "respuesta_cliente"),
        SlotStep("monto", StepType.CURRENCY, "monto_informado", offer_presupuesto=True),
    ),
    ActionKind.REINGRESO: (
        SlotStep("nota", StepType.REQUIRED_TEXT, "motivo_reingreso", min_length_setting="REINGRESO_NOTE_MIN_LENGTH"),
    ),
    ActionKind.RECHAZA_PRESUPUESTO: (
        SlotStep("nota", StepType.OPTIONAL_TEXT, "motivo_rechazo_presupuesto"),
    ),
    ActionKind.ARMADO: (
        SlotStep("nota", StepType.OPTIONAL_TEXT, "nota_armado"),
    ),
    ActionKind.ARCHIVAR: (
        SlotStep("ubicacion", StepType.REQUIRED_TEXT, "ubicacion"),
        SlotStep("nota", StepType.OPTIONAL_TEXT, "nota_archivo"),
    ),
}

check_exhaustive(ACTION_STEPS, "ACTION_STEPS")

INFORME_OPTIONS = [(accion.value, accion.value) for accion in InformeAccion]


@dataclass
class SlotReply:
    """
    Respuesta de un turno de slot filling.

    Attributes:
        message: Texto para el usuario
        session_active: Si queda una sesión esperando el próximo dato
        result: Resultado de la transición, si se ejecutó
        cancelled: Si el usuario canceló
    """
    message: str
    session_active: bool
    result: Optional[TransitionResult] = None
    cancelled: bool = False

    @property
    def completed(self) -> bool:
        return self.result is not None


def _step_for(session: ConversationSession) -> SlotStep:
    steps = {step.field: step for step in ACTION_STEPS[session.kind]}
    return steps[session.current_step]


# ============================================================================
# ORQUESTADOR
# ============================================================================

class SlotFillingOrchestrator:
    """
    Sesiones de slot filling sobre el motor de transiciones.

    Uso:
        reply = await slots.begin("tg:1", ActionKind.RETIRA, 5001)
        reply = await slots.advance("tg:1", "20000")
        reply = await slots.advance("tg:1", "2")
    """

    def __init__(
        self,
        engine: TransitionEngine,
        store: SessionStore,
        session_provider: SessionProvider,
        config=default_settings
    ):
        self._engine = engine
        self._store = store
        self._session_provider = session_provider
        self._config = config

    @property
    def store(self) -> SessionStore:
        return self._store

    def has_session(self, session_id: str) -> bool:
        return self._store.has_active(session_id)

    # ------------------------------------------------------------------------
    # Inicio
    # ------------------------------------------------------------------------

    async def begin(
        self,
        session_id: str,
        kind: ActionKind,
        order_number: int,
        known: Optional[ActionParams] = None,
        usuario_id: Optional[int] = None
    ) -> SlotReply:
        """
        Inicia una acción.

        Lee la orden, siembra los valores conocidos y pregunta el primer
        dato faltante. Si no falta ninguno, ejecuta directamente sin
        crear sesión. Una sesión previa de la misma identidad se descarta.

        Raises:
            NotFoundError: La orden no existe (no se crea sesión)
            ValidationError: La orden no admite la acción en su estado
            SessionConflictError: Otro mensaje de la identidad en curso
        """
        kind = ActionKind(kind)
        known = known or ActionParams()

        session = ConversationSession(
            session_id=session_id,
            kind=kind,
            order_number=order_number,
            steps=[
                step.field for step in ACTION_STEPS[kind]
                if is_blank(getattr(known, step.field))
            ],
            values=known.model_dump(exclude_none=True),
            usuario_id=usuario_id if usuario_id is not None else known.usuario_id,
        )
        # La lectura de la orden va fuera del lock de la identidad
        await self._load_order_data(session)

        async with self._store.lock(session_id):
            previous = self._store.pop(session_id)
            if previous is not None:
                logger.info(
                    f"Sesión {session_id}: {previous.kind.value} orden {previous.order_number} "
                    f"reemplazada por {kind.value}"
                )

            if not session.is_complete:
                self._store.save(session)
                logger.info(f"Sesión {session_id}: {kind.value} orden {order_number}, pasos {session.steps}")
                return SlotReply(self._prompt(session), session_active=True)

        return await self._execute(session)

    async def _load_order_data(self, session: ConversationSession) -> None:
        """Valida la orden y toma lo que se ofrece en los pasos: presupuesto y métodos de pago."""
        async with self._session_provider() as db:
            repo = OrderRepository(db)
            order = await repo.get_order(session.order_number)
            self._engine.check_status(order, session.kind)

            pending = [step for step in ACTION_STEPS[session.kind] if step.field in session.steps]
            if order.presupuesto is not None and order.presupuesto > 0:
                for step in pending:
                    if step.offer_presupuesto:
                        session.defaults[step.field] = Decimal(order.presupuesto)

            if any(step.type == StepType.PAYMENT_METHOD for step in pending):
                methods = await repo.list_payment_methods()
                if not methods:
                    raise ValidationError(MENSAJES['sin_metodos_pago'], field="metodo_pago_id",
                                          reason="sin métodos de pago")
                session.payment_options = [(m.id, m.nombre) for m in methods]

    # ------------------------------------------------------------------------
    # Turnos
    # ------------------------------------------------------------------------

    async def advance(self, session_id: str, text: str) -> Optional[SlotReply]:
        """
        Procesa la respuesta del usuario al paso actual.

        Returns:
            SlotReply, o None si la identidad no tiene sesión activa

        Raises:
            SessionConflictError: Otro mensaje de la identidad en curso
        """
        async with self._store.lock(session_id):
            session = self._store.get(session_id)
            if session is None:
                return None

            if SelectionValidator.is_cancel(text):
                self._store.pop(session_id)
                audit_logger.log(
                    action="SESION_CANCELADA",
                    entity_type="order",
                    entity_id=str(session.order_number),
                    details={"kind": session.kind.value, "step": session.current_step},
                )
                logger.info(f"Sesión {session_id} cancelada en el paso {session.current_step}")
                return SlotReply(MENSAJES['accion_cancelada'], session_active=False, cancelled=True)

            step = _step_for(session)
            outcome = self._parse(step, session, text)
            if not outcome:
                self._store.save(session)
                return SlotReply(f"{outcome.error}. {self._prompt(session)}", session_active=True)

            session.fill(outcome.sanitized)
            if not session.is_complete:
                self._store.save(session)
                return SlotReply(self._prompt(session), session_active=True)

            self._store.pop(session_id)

        return await self._execute(session)

    def cancel(self, session_id: str) -> bool:
        """Descarta la sesión de la identidad. True si había una."""
        return self._store.pop(session_id) is not None

    # ------------------------------------------------------------------------
    # Interpretación de respuestas
    # ------------------------------------------------------------------------

    def _parse(self, step: SlotStep, session: ConversationSession, text: str) -> ValidationResult:
        if step.type == StepType.CURRENCY:
            if step.field in session.defaults and SelectionValidator.is_affirmation(text):
                return ValidationResult(valid=True, sanitized=session.defaults[step.field])
            result = MoneyValidator.parse_monto(text)
            if not result and result.error == "debe ser positivo":
                return ValidationResult(valid=False, error="El monto debe ser positivo")
            return result

        if step.type == StepType.PAYMENT_METHOD:
            return SelectionValidator.match_option(text, session.payment_options)

        if step.type == StepType.CHOICE:
            return SelectionValidator.match_option(text, INFORME_OPTIONS)

        if step.type == StepType.REQUIRED_TEXT:
            if step.min_length_setting:
                result = TextValidator.validate_nota(text, min_length=self._min_length(step))
            else:
                result = TextValidator.validate_short_text(text, ValidationLimits.UBICACION_MAX_LENGTH)
            if not result:
                subject = "La nota" if step.field == "nota" else "La ubicación"
                return ValidationResult(valid=False, error=f"{subject} {result.error}")
            return result

        return ValidationResult(valid=True, sanitized=TextValidator.normalize_optional_nota(text))

    def _min_length(self, step: SlotStep) -> int:
        return getattr(self._config, step.min_length_setting)

    def _prompt(self, session: ConversationSession) -> str:
        step = _step_for(session)
        text = PROMPTS[step.prompt].format(order_number=session.order_number)

        if step.type == StepType.CURRENCY and step.field in session.defaults:
            text += SUFIJO_DEFAULT.format(valor=session.defaults[step.field])
        elif step.type == StepType.PAYMENT_METHOD:
            text += "\n" + "\n".join(
                f"{i}. {nombre}" for i, (_, nombre) in enumerate(session.payment_options, start=1)
            )
        elif step.type == StepType.CHOICE:
            text += "\n" + "\n".join(
                f"{i}. {nombre}" for i, (_, nombre) in enumerate(INFORME_OPTIONS, start=1)
            )
        elif step.type == StepType.REQUIRED_TEXT and step.min_length_setting:
            minimo = self._min_length(step)
            if minimo > 1:
                text += SUFIJO_MINIMO.format(minimo=minimo)
        elif step.type == StepType.OPTIONAL_TEXT:
            text += SUFIJO_OPCIONAL
        return text

    # ------------------------------------------------------------------------
    # Ejecución
    # ------------------------------------------------------------------------

    def build_params(self, session: ConversationSession) -> ActionParams:
        """Parámetros finales de la acción a partir de lo recolectado."""
        values: Dict[str, Any] = dict(session.values)
        if session.usuario_id is not None:
            values["usuario_id"] = session.usuario_id
        return ActionParams(**values)

    async def _execute(self, session: ConversationSession) -> SlotReply:
        """Ejecuta la acción. Los errores terminan el intento: no se reabre la sesión."""
        params = self.build_params(session)
        with LogContext(session_id=session.session_id, action=session.kind.value):
            try:
                result = await self._engine.execute(session.order_number, session.kind, params)
            except OrchestratorError as e:
                logger.warning(
                    f"Sesión {session.session_id}: {session.kind.value} orden "
                    f"{session.order_number} falló: {e.message}"
                )
                return SlotReply(
                    f"{e.get_user_message()}\n{MENSAJES['reintentar_accion']}",
                    session_active=False,
                )

        message = result.message
        if result.warnings:
            message += "\n" + "\n".join(f"Atención: {w}" for w in result.warnings)
        return SlotReply(message, session_active=False, result=result)
