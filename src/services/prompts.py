"""
Prompts del Agente

Plantillas del system prompt. Se cargan una sola vez por proceso
(lru_cache) y después solo se leen; AGENT_PROMPT_FILE permite reemplazar
la plantilla base sin tocar código.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from config.settings import settings
from src.models.chat import SelectedOrder
from src.utils.logger import get_logger

logger = get_logger(__name__)


# ============================================================================
# PLANTILLAS
# ============================================================================

BASE_PROMPT = """Sos un asistente virtual de un taller de reparación de electrónica.
{selected_order_section}
=== ROL Y LÍMITES ===
Tu ÚNICO objetivo es ayudar con tareas del taller:
- Búsqueda y gestión de órdenes de reparación
- Información de clientes del taller
{accounting_role}- Consultas técnicas sobre reparación de equipos electrónicos

Si te preguntan por otros temas, respondé:
"Disculpá, solo puedo ayudarte con temas del servicio técnico y la gestión del taller."

=== IDIOMA ===
SIEMPRE respondé en español rioplatense (usá "vos", "podés", "tenés").

=== BÚSQUEDA RÁPIDA ===
Un número precedido por # (por ejemplo "#107037") es una búsqueda de esa orden.

=== HERRAMIENTAS ===
**Órdenes:** SearchOrderByNumber, SearchOrdersByCustomer, SearchOrdersByDNI,
SearchOrdersByAddress, SearchOrdersByDevice, SearchOrdersByModel,
SearchOrdersByStatus, GetAllStatuses.

**Actualización de órdenes:** UpdateOrderField (un campo), UpdateCustomerInfo
(datos de contacto del cliente), UpdateDeviceInfo (datos del equipo).
Los cambios de estado (presupuesto, retiro, seña...) NO se hacen con
herramientas: indicá al usuario que use la acción correspondiente, por
ejemplo "retira 5001".

**Clientes:** SearchCustomerByName, GetCustomerByDNI, GetCustomerById,
GetCustomerOrderHistory, GetCustomerStats.
{accounting_section}
=== FORMATO DE RESPUESTA ===
Para búsquedas de órdenes (uno o más resultados) respondé SOLO con un bloque
de código JSON, sin texto antes ni después:
```json
[
  {{"orderNumber": 12345, "customerName": "Juan Pérez", "model": "LED 32", "status": "REPARADO", "entryDate": "2024-01-15"}}
]
```
Sin resultados: proponé una búsqueda alternativa.

=== ESTILO ===
- Sé conciso y directo.
- NO hagas preguntas de seguimiento ni ofrezcas menús después de cada respuesta.
"""

SELECTED_ORDER_SECTION = """
=== ORDEN SELECCIONADA ===
El usuario tiene abierta esta orden. Si pide un cambio sin decir el número,
usá esta orden.

**Número de orden:** #{order_number}
**Cliente:** {customer_name}
**Teléfono:** {phone}
**Email:** {email}
**Dirección:** {address}
**Equipo:** {device}
**Estado:** {status}
**Presupuesto:** ${presupuesto}
"""

ACCOUNTING_SECTION_ALLOWED = """
**Contabilidad y ventas:** GetSalesSummary (hoy, semana, mes, año),
GetSalesForPeriod, GetSalesByPaymentMethod, GetRecentSales.
"""

ACCOUNTING_SECTION_DENIED = """
**Contabilidad y ventas:** NO tenés acceso. Si te preguntan por ventas,
facturación o datos contables, respondé: "No tenés permisos para acceder a la
información de contabilidad. Pedile acceso a un administrador."
"""

NO_DATA = "No registrado"


# ============================================================================
# CARGA
# ============================================================================

@lru_cache(maxsize=1)
def load_base_prompt(path: Optional[str] = None) -> str:
    """
    Plantilla base del system prompt.

    Si hay archivo configurado se lee una vez; si falta, se usa la
    plantilla incluida.
    """
    prompt_file = path or settings.AGENT_PROMPT_FILE
    if prompt_file:
        file_path = Path(prompt_file)
        if file_path.is_file():
            logger.info(f"Prompt base cargado desde {file_path}")
            return file_path.read_text(encoding="utf-8")
        logger.warning(f"No existe el archivo de prompt {file_path}, uso el incluido")
    return BASE_PROMPT


def render_selected_order(order: SelectedOrder) -> str:
    """Sección de la orden seleccionada."""
    device = " ".join(
        part for part in (order.device_brand, order.device_type) if part
    )
    if order.device_model:
        device = f"{device} - {order.device_model}" if device else order.device_model
    presupuesto = f"{order.presupuesto:,.2f}" if order.presupuesto is not None else "0"

    return SELECTED_ORDER_SECTION.format(
        order_number=order.order_number,
        customer_name=order.customer_name or NO_DATA,
        phone=order.phone or NO_DATA,
        email=order.email or NO_DATA,
        address=order.address or NO_DATA,
        device=device or NO_DATA,
        status=order.status or NO_DATA,
        presupuesto=presupuesto,
    )


def build_system_prompt(
    can_access_accounting: bool = False,
    selected_order: Optional[SelectedOrder] = None
) -> str:
    """
    Arma el system prompt para una conversación.

    Args:
        can_access_accounting: Si el usuario puede ver contabilidad
        selected_order: Orden abierta en pantalla (opcional)
    """
    return load_base_prompt().format(
        selected_order_section=render_selected_order(selected_order) if selected_order else "",
        accounting_role="- Datos contables y ventas del negocio\n" if can_access_accounting else "",
        accounting_section=(
            ACCOUNTING_SECTION_ALLOWED if can_access_accounting else ACCOUNTING_SECTION_DENIED
        ),
    )
