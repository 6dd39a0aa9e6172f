"""
Constantes del sistema

Define valores que no cambian durante la ejecución: estados de orden,
acciones del taller y catálogo de tipos de novedad.
"""

from enum import Enum, IntEnum


class OrderStatus(str, Enum):
    """Estados posibles de una orden de reparación"""
    INGRESADO = "INGRESADO"
    PRESUPUESTADO = "PRESUPUESTADO"
    PRESUPUESTADO_DOMICILIO = "PRESUP. EN DOMICILIO"
    ACEPTADO = "ACEPTADO"
    RECHAZO_PRESUPUESTO = "RECHAZO PRESUP."
    ESPERA_REPUESTO = "ESP. REPUESTO"
    A_CONTROLAR = "A CONTROLAR"
    VERIFICAR = "VERIFICAR"
    REPARADO = "REPARADO"
    REPARADO_DOMICILIO = "REP. EN DOMICILIO"
    RECHAZADO = "RECHAZADO"
    ARMADO = "ARMADO"
    RETIRADO = "RETIRADO"
    REINGRESADO = "REINGRESADO"
    ARCHIVADO = "ARCHIVADO"


# Estados de salida del taller: solo se abandonan con un reingreso
TERMINAL_STATUSES = frozenset({
    OrderStatus.RETIRADO,
    OrderStatus.REPARADO_DOMICILIO,
    OrderStatus.ARCHIVADO,
})

STATUS_DESCRIPTIONS = {
    OrderStatus.INGRESADO: "Recién ingresada, pendiente de diagnóstico",
    OrderStatus.PRESUPUESTADO: "Presupuesto cargado, esperando respuesta del cliente",
    OrderStatus.PRESUPUESTADO_DOMICILIO: "Presupuesto de reparación en domicilio",
    OrderStatus.ACEPTADO: "El cliente aceptó el presupuesto",
    OrderStatus.RECHAZO_PRESUPUESTO: "El cliente rechazó el presupuesto",
    OrderStatus.ESPERA_REPUESTO: "Esperando repuesto",
    OrderStatus.A_CONTROLAR: "Reparación a controlar",
    OrderStatus.VERIFICAR: "Verificar con el cliente",
    OrderStatus.REPARADO: "Reparado, listo para retirar",
    OrderStatus.REPARADO_DOMICILIO: "Reparado y cobrado en domicilio",
    OrderStatus.RECHAZADO: "Sin reparación posible",
    OrderStatus.ARMADO: "Equipo rechazado armado para devolver",
    OrderStatus.RETIRADO: "Retirado por el cliente",
    OrderStatus.REINGRESADO: "Reingresado al taller",
    OrderStatus.ARCHIVADO: "Archivado en depósito",
}


class ActionKind(str, Enum):
    """Acciones de negocio que transicionan una orden"""
    PRESUPUESTAR = "Presupuestar"
    REPARADO = "Reparado"
    RECHAZAR = "Rechazar"
    ESPERA_REPUESTO = "EsperaRepuesto"
    REP_DOMICILIO = "RepDomicilio"
    RETIRA = "Retira"
    SENA = "Sena"
    INFORMAR_PRESUPUESTO = "InformarPresupuesto"
    REINGRESO = "Reingreso"
    RECHAZA_PRESUPUESTO = "RechazaPresupuesto"
    ARMADO = "Armado"
    ARCHIVAR = "Archivar"

    @property
    def slug(self) -> str:
        """Segmento de URL del endpoint directo."""
        return ACTION_SLUGS[self]


ACTION_SLUGS = {
    ActionKind.PRESUPUESTAR: "presupuestar",
    ActionKind.REPARADO: "reparado",
    ActionKind.RECHAZAR: "rechazar",
    ActionKind.ESPERA_REPUESTO: "espera-repuesto",
    ActionKind.REP_DOMICILIO: "rep-domicilio",
    ActionKind.RETIRA: "retira",
    ActionKind.SENA: "sena",
    ActionKind.INFORMAR_PRESUPUESTO: "informar-presupuesto",
    ActionKind.REINGRESO: "reingreso",
    ActionKind.RECHAZA_PRESUPUESTO: "rechaza-presupuesto",
    ActionKind.ARMADO: "armado",
    ActionKind.ARCHIVAR: "archivar",
}

# Cómo se nombra cada acción en el chat ("retira 5001", "seña #5001")
ACTION_ALIASES = {
    "presupuestar": ActionKind.PRESUPUESTAR,
    "presupuesto": ActionKind.PRESUPUESTAR,
    "reparado": ActionKind.REPARADO,
    "rechazar": ActionKind.RECHAZAR,
    "rechazado": ActionKind.RECHAZAR,
    "espera repuesto": ActionKind.ESPERA_REPUESTO,
    "esperarepuesto": ActionKind.ESPERA_REPUESTO,
    "rep domicilio": ActionKind.REP_DOMICILIO,
    "repdomicilio": ActionKind.REP_DOMICILIO,
    "reparado en domicilio": ActionKind.REP_DOMICILIO,
    "retira": ActionKind.RETIRA,
    "retiro": ActionKind.RETIRA,
    "sena": ActionKind.SENA,
    "seña": ActionKind.SENA,
    "informar presupuesto": ActionKind.INFORMAR_PRESUPUESTO,
    "informarpresupuesto": ActionKind.INFORMAR_PRESUPUESTO,
    "informar": ActionKind.INFORMAR_PRESUPUESTO,
    "reingreso": ActionKind.REINGRESO,
    "reingresar": ActionKind.REINGRESO,
    "rechaza presupuesto": ActionKind.RECHAZA_PRESUPUESTO,
    "rechazapresupuesto": ActionKind.RECHAZA_PRESUPUESTO,
    "armado": ActionKind.ARMADO,
    "armar": ActionKind.ARMADO,
    "archivar": ActionKind.ARCHIVAR,
}


class NovedadTipo(IntEnum):
    """Tipos de novedad (audit log de la orden)"""
    INGRESO = 1
    PRESUPUESTADO = 2
    ACEPTA = 3
    REPARADO = 4
    RETIRA = 5
    RECHAZA = 6
    ENTREGA = 12
    ESPERA_REPUESTO = 16
    NOTA = 17
    RECHAZA_PRESUPUESTO = 23
    REINGRESO = 24
    SENA = 26
    PRESUPUESTO_INFORMADO = 31
    A_CONTROLAR = 33
    VERIFICAR = 39
    REP_DOMICILIO = 40
    LLAMADO = 43
    ARMADO = 44
    ARCHIVADO = 45


class InformeAccion(str, Enum):
    """Respuesta del cliente al presupuesto informado"""
    ACEPTA = "acepta"
    RECHAZA = "rechaza"
    PENDIENTE = "pendiente"


class InvoiceStrictness(str, Enum):
    """Qué hacer si una venta facturada llega sin datos de factura"""
    STRICT = "strict"
    WARN = "warn"


class UserRole(str, Enum):
    """Roles del personal del taller"""
    GERENTE = "GERENTE"
    ADMIN = "ADMIN"
    TECNICO = "TECNICO"


class AuditAction(str, Enum):
    """Acciones registradas en audit trail"""
    TRANSICION_EJECUTADA = "TRANSICION_EJECUTADA"
    TRANSICION_RECHAZADA = "TRANSICION_RECHAZADA"
    NOTA_AGREGADA = "NOTA_AGREGADA"
    CAMPOS_ACTUALIZADOS = "CAMPOS_ACTUALIZADOS"
    HERRAMIENTA_EJECUTADA = "HERRAMIENTA_EJECUTADA"
    SESION_CANCELADA = "SESION_CANCELADA"
