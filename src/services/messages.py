"""
Mensajes de la Conversación

Textos fijos que el router y el slot filling devuelven al usuario.
"""


# ============================================================================
# MENSAJES DEL SISTEMA
# ============================================================================

MENSAJES = {
    'accion_cancelada': "Acción cancelada.",
    'sin_accion_en_curso': "No hay ninguna acción en curso.",
    'falta_orden': (
        "Indicá el número de orden.\n"
        "Por ejemplo: retira 5001"
    ),
    'reintentar_accion': "La acción no se registró. Volvé a iniciarla.",
    'sin_metodos_pago': "No hay métodos de pago activos para registrar el cobro.",
    'agente_sin_respuesta': (
        "Disculpá, no pude completar la consulta.\n"
        "Probá reformularla o hacerla más específica."
    ),
    'orden_no_encontrada': "No encontré la orden #{order_number}.",
    'mensaje_vacio': "Escribí tu consulta o el número de orden.",
}


# ============================================================================
# PROMPTS DEL SLOT FILLING
# ============================================================================

PROMPTS = {
    'monto_presupuesto': "Ingresá el monto del presupuesto de la orden #{order_number}",
    'monto_cobrado': "Ingresá el monto cobrado por la orden #{order_number}",
    'monto_domicilio': "Ingresá el monto cobrado en domicilio por la orden #{order_number}",
    'monto_sena': "Ingresá el monto de la seña de la orden #{order_number}",
    'monto_informado': "Ingresá el monto informado al cliente",
    'metodo_pago': "Elegí el método de pago (número o nombre):",
    'respuesta_cliente': "¿Qué respondió el cliente sobre el presupuesto de la orden #{order_number}?",
    'nota_reparacion': "Describí la reparación realizada",
    'motivo_rechazo': "Ingresá el motivo por el que no se puede reparar",
    'repuesto': "Indicá qué repuesto se espera",
    'motivo_reingreso': "Ingresá el motivo del reingreso",
    'motivo_rechazo_presupuesto': "Ingresá el motivo del rechazo del presupuesto",
    'nota_armado': "Agregá una nota del armado",
    'ubicacion': "Indicá dónde queda archivado el equipo",
    'nota_archivo': "Agregá una nota del archivo",
}

SUFIJO_DEFAULT = " (respondé \"si\" para usar ${valor:,.2f})"
SUFIJO_OPCIONAL = " (o respondé \"no\" para omitirla)"
SUFIJO_MINIMO = " (mínimo {minimo} caracteres)"
