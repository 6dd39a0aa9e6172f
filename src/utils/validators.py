"""
Validadores de Entrada

Módulo centralizado para validación y parseo de datos del usuario:
montos en formato local, notas con longitud mínima, selección de
opciones por índice o texto y datos de contacto del cliente.

Todas las funciones devuelven ValidationResult; nunca lanzan excepciones,
para que el slot filling pueda repreguntar y la API convertir el error
en un ValidationError con campo y motivo.
"""

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Optional, Any, List, Sequence, Tuple

from src.utils.logger import get_logger

logger = get_logger(__name__)


# ============================================================================
# TIPOS DE RESULTADO
# ============================================================================

@dataclass
class ValidationResult:
    """
    Resultado de una validación.

    Attributes:
        valid: True si la validación pasó
        error: Mensaje de error (vacío si es válido)
        sanitized: Valor sanitizado/parseado (opcional)
    """
    valid: bool
    error: str = ""
    sanitized: Optional[Any] = None

    def __bool__(self) -> bool:
        return self.valid


# ============================================================================
# CONSTANTES DE VALIDACIÓN
# ============================================================================

class ValidationLimits:
    """
    Límites de validación.

    Las longitudes mínimas de notas por acción viven en Settings;
    aquí quedan los topes que protegen las columnas de la base.
    """
    # Montos
    MONTO_MAX = Decimal("9999999999.99")

    # Texto
    NOTA_MAX_LENGTH = 1000
    UBICACION_MAX_LENGTH = 100
    MODELO_MAX_LENGTH = 100
    SERIE_MAX_LENGTH = 100
    ACCESORIOS_MAX_LENGTH = 500

    # Contacto
    TELEFONO_MIN_LENGTH = 6
    TELEFONO_MAX_LENGTH = 20
    EMAIL_MAX_LENGTH = 254
    DIRECCION_MAX_LENGTH = 200
    LOCALIDAD_MAX_LENGTH = 100


# Respuestas que aceptan el valor ofrecido por defecto
AFFIRMATION_TOKENS = frozenset({"si", "sí", "s", "yes", "1"})

# Respuestas que significan "sin nota"
NO_NOTE_TOKENS = frozenset({"no", "n"})

# Comandos de cancelación del slot filling
CANCEL_TOKENS = frozenset({"cancelar", "/cancelar", "cancel", "/cancel"})


# ============================================================================
# VALIDADORES BASE
# ============================================================================

class BaseValidator:
    """Clase base para validadores."""

    @staticmethod
    def _ok(value: Any = None) -> ValidationResult:
        """Retorna resultado válido."""
        return ValidationResult(valid=True, sanitized=value)

    @staticmethod
    def _error(message: str) -> ValidationResult:
        """Retorna resultado con error."""
        return ValidationResult(valid=False, error=message)


# ============================================================================
# VALIDADOR DE MONTOS
# ============================================================================

class MoneyValidator(BaseValidator):
    """
    Validador de montos en pesos.

    Acepta los formatos que escribe la gente en el mostrador:
    "$20.000", "20000", "1.234,50", "1,5", "$ 1,234.50".
    """

    @staticmethod
    def normalize(raw: str) -> Optional[str]:
        """
        Normaliza un monto a notación con punto decimal.

        Reglas:
        - Se descartan símbolos y espacios; se conservan dígitos, '.', ',' y '-'.
        - Con ambos separadores, el último que aparece es el decimal.
        - Con un único separador repetido, es separador de miles.
        - Con un único separador seguido de exactamente tres dígitos, es de miles.
        - En cualquier otro caso es el separador decimal.

        Returns:
            String numérico normalizado o None si no quedan dígitos
        """
        cleaned = re.sub(r"[^\d.,\-]", "", raw or "")
        if not re.search(r"\d", cleaned):
            return None

        negative = cleaned.startswith("-")
        cleaned = cleaned.replace("-", "")

        last_dot = cleaned.rfind(".")
        last_comma = cleaned.rfind(",")

        if last_dot >= 0 and last_comma >= 0:
            decimal_sep = "." if last_dot > last_comma else ","
            thousands_sep = "," if decimal_sep == "." else "."
            cleaned = cleaned.replace(thousands_sep, "").replace(decimal_sep, ".")
        elif last_dot >= 0 or last_comma >= 0:
            sep = "." if last_dot >= 0 else ","
            parts = cleaned.split(sep)
            if len(parts) > 2 or len(parts[-1]) == 3:
                cleaned = cleaned.replace(sep, "")
            else:
                cleaned = cleaned.replace(sep, ".")

        return f"-{cleaned}" if negative else cleaned

    @classmethod
    def parse_monto(cls, raw: str, allow_zero: bool = False) -> ValidationResult:
        """
        Parsea un monto ingresado como texto.

        Args:
            raw: Texto del usuario
            allow_zero: Si un monto 0 es aceptable

        Returns:
            ValidationResult con Decimal en sanitized
        """
        normalized = cls.normalize(raw)
        if normalized is None:
            return cls._error("Formato de monto inválido")

        try:
            monto = Decimal(normalized)
        except InvalidOperation:
            return cls._error("Formato de monto inválido")

        return cls.validate_monto(monto, allow_zero=allow_zero)

    @classmethod
    def validate_monto(cls, monto: Any, allow_zero: bool = False) -> ValidationResult:
        """
        Valida un monto ya numérico.

        Args:
            monto: Valor a validar (Decimal, int, float o str numérico)
            allow_zero: Si un monto 0 es aceptable

        Returns:
            ValidationResult con Decimal cuantizado a centavos
        """
        try:
            value = Decimal(str(monto))
        except (InvalidOperation, ValueError):
            return cls._error("Formato de monto inválido")

        if not value.is_finite():
            return cls._error("Formato de monto inválido")

        if value < 0 or (value == 0 and not allow_zero):
            return cls._error("debe ser positivo" if not allow_zero else "no puede ser negativo")

        if value > ValidationLimits.MONTO_MAX:
            return cls._error("El monto excede el máximo permitido")

        return cls._ok(value.quantize(Decimal("0.01")))


# ============================================================================
# VALIDADOR DE TEXTO
# ============================================================================

class TextValidator(BaseValidator):
    """Validador de notas y textos libres."""

    @classmethod
    def validate_nota(
        cls,
        nota: Optional[str],
        min_length: int = 1,
        max_length: int = ValidationLimits.NOTA_MAX_LENGTH
    ) -> ValidationResult:
        """
        Valida una nota obligatoria.

        Args:
            nota: Texto a validar
            min_length: Longitud mínima luego de quitar espacios
            max_length: Longitud máxima

        Returns:
            ValidationResult con el texto normalizado
        """
        sanitized = re.sub(r"\s+", " ", (nota or "").strip())

        if not sanitized:
            return cls._error("es obligatoria")

        if len(sanitized) < min_length:
            return cls._error(f"debe tener al menos {min_length} caracteres")

        if len(sanitized) > max_length:
            return cls._error(f"no puede superar {max_length} caracteres")

        return cls._ok(sanitized)

    @classmethod
    def normalize_optional_nota(cls, nota: Optional[str]) -> Optional[str]:
        """
        Normaliza una nota opcional.

        "no" / "n" (en cualquier capitalización) y el texto vacío significan
        que el usuario no quiere dejar nota.
        """
        if nota is None:
            return None
        sanitized = re.sub(r"\s+", " ", nota.strip())
        if not sanitized or sanitized.lower() in NO_NOTE_TOKENS:
            return None
        return sanitized[:ValidationLimits.NOTA_MAX_LENGTH]

    @classmethod
    def validate_short_text(cls, value: Optional[str], max_length: int) -> ValidationResult:
        """Valida un texto corto obligatorio (ubicación, modelo, serie)."""
        sanitized = re.sub(r"\s+", " ", (value or "").strip())
        if not sanitized:
            return cls._error("es un dato obligatorio")
        if len(sanitized) > max_length:
            return cls._error(f"no puede superar {max_length} caracteres")
        return cls._ok(sanitized)


# ============================================================================
# VALIDADOR DE SELECCIÓN
# ============================================================================

class SelectionValidator(BaseValidator):
    """Interpreta respuestas del usuario frente a una lista de opciones."""

    @staticmethod
    def is_affirmation(text: str) -> bool:
        """True si el texto acepta el valor ofrecido."""
        return (text or "").strip().lower() in AFFIRMATION_TOKENS

    @staticmethod
    def is_cancel(text: str) -> bool:
        """True si el texto es un comando de cancelación."""
        return (text or "").strip().lower() in CANCEL_TOKENS

    @classmethod
    def match_option(
        cls,
        text: str,
        options: Sequence[Tuple[Any, str]]
    ) -> ValidationResult:
        """
        Elige una opción por índice (1-based) o por substring del nombre.

        Args:
            text: Respuesta del usuario
            options: Pares (valor, nombre) en el orden en que se ofrecieron

        Returns:
            ValidationResult con el valor elegido; error si no hay
            coincidencia o si es ambigua
        """
        answer = (text or "").strip().lower()
        if not answer:
            return cls._error("Elegí una de las opciones")

        if answer.isdigit():
            index = int(answer)
            if 1 <= index <= len(options):
                return cls._ok(options[index - 1][0])
            return cls._error(f"No hay una opción {index}")

        exact = [value for value, name in options if name.lower() == answer]
        if len(exact) == 1:
            return cls._ok(exact[0])

        matches: List[Any] = [value for value, name in options if answer in name.lower()]
        if len(matches) == 1:
            return cls._ok(matches[0])
        if not matches:
            return cls._error(f"No encontré '{text.strip()}' entre las opciones")
        return cls._error(f"'{text.strip()}' coincide con más de una opción")


# ============================================================================
# VALIDADOR DE CONTACTO
# ============================================================================

class ContactValidator(BaseValidator):
    """
    Validador para datos de contacto del cliente.

    Valida: teléfonos, emails, direcciones y localidades.
    """

    @classmethod
    def validate_telefono(
        cls,
        telefono: str,
        min_length: int = ValidationLimits.TELEFONO_MIN_LENGTH,
        max_length: int = ValidationLimits.TELEFONO_MAX_LENGTH
    ) -> ValidationResult:
        """
        Valida número de teléfono.

        Args:
            telefono: Teléfono a validar
            min_length: Longitud mínima de dígitos
            max_length: Longitud máxima de dígitos

        Returns:
            ValidationResult
        """
        digits_only = re.sub(r'\D', '', telefono or '')

        if len(digits_only) < min_length:
            return cls._error(f"Mínimo {min_length} dígitos")

        if len(digits_only) > max_length:
            return cls._error(f"Máximo {max_length} dígitos")

        # Sanitizar: permitir dígitos, +, -, (), espacios
        sanitized = re.sub(r'[^\d+\-() ]', '', telefono.strip())

        return cls._ok(sanitized)

    @classmethod
    def validate_email(
        cls,
        email: str,
        max_length: int = ValidationLimits.EMAIL_MAX_LENGTH
    ) -> ValidationResult:
        """
        Valida dirección de email.

        Args:
            email: Email a validar
            max_length: Longitud máxima

        Returns:
            ValidationResult
        """
        sanitized = (email or "").strip().lower()

        if len(sanitized) > max_length:
            return cls._error(f"Máximo {max_length} caracteres")

        pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
        if not re.match(pattern, sanitized):
            return cls._error("Formato de email inválido")

        return cls._ok(sanitized)

    @classmethod
    def validate_direccion(
        cls,
        direccion: str,
        max_length: int = ValidationLimits.DIRECCION_MAX_LENGTH
    ) -> ValidationResult:
        """
        Valida dirección física o localidad.

        Args:
            direccion: Dirección a validar
            max_length: Longitud máxima

        Returns:
            ValidationResult
        """
        sanitized = re.sub(r'\s+', ' ', (direccion or "").strip())

        if not sanitized:
            return cls._error("No puede estar vacía")

        if len(sanitized) > max_length:
            return cls._error(f"Máximo {max_length} caracteres")

        return cls._ok(sanitized)
