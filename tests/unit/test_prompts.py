"""
Tests para el system prompt del agente.
"""

from src.models.chat import SelectedOrder
from src.services.prompts import (
    ACCOUNTING_SECTION_ALLOWED,
    BASE_PROMPT,
    build_system_prompt,
    load_base_prompt,
    render_selected_order,
)


class TestSystemPrompt:
    """Tests para el armado del prompt según permisos y orden abierta."""

    def test_con_contabilidad(self):
        prompt = build_system_prompt(can_access_accounting=True)

        assert ACCOUNTING_SECTION_ALLOWED in prompt
        assert "GetSalesSummary" in prompt
        assert "NO tenés acceso" not in prompt

    def test_sin_contabilidad(self):
        prompt = build_system_prompt(can_access_accounting=False)

        assert "NO tenés acceso" in prompt
        assert "GetSalesSummary" not in prompt

    def test_sin_orden_seleccionada(self):
        assert "ORDEN SELECCIONADA" not in build_system_prompt()

    def test_con_orden_seleccionada(self):
        order = SelectedOrder(order_number=5001, customer_name="Ana Gómez", status="REPARADO")
        prompt = build_system_prompt(selected_order=order)

        assert "**Número de orden:** #5001" in prompt
        assert "**Cliente:** Ana Gómez" in prompt

    def test_llaves_del_ejemplo_json(self):
        """El ejemplo de formato conserva sus llaves luego de format()."""
        assert '{"orderNumber": 12345' in build_system_prompt()


class TestSelectedOrder:
    """Tests para la sección de la orden abierta."""

    def test_datos_faltantes(self):
        section = render_selected_order(SelectedOrder(order_number=7))

        assert "**Teléfono:** No registrado" in section
        assert "**Equipo:** No registrado" in section
        assert "**Presupuesto:** $0" in section

    def test_equipo_y_presupuesto(self):
        order = SelectedOrder(
            order_number=7,
            device_brand="Samsung",
            device_type="TV",
            device_model="UN32",
            presupuesto=45000,
        )
        section = render_selected_order(order)

        assert "**Equipo:** Samsung TV - UN32" in section
        assert "**Presupuesto:** $45,000.00" in section


class TestLoadBasePrompt:
    """Tests para la plantilla base configurable."""

    def test_plantilla_incluida(self):
        assert load_base_prompt() == BASE_PROMPT

    def test_archivo_configurado(self, tmp_path):
        path = tmp_path / "prompt.txt"
        path.write_text("Prompt propio {selected_order_section}", encoding="utf-8")

        assert load_base_prompt(str(path)) == "Prompt propio {selected_order_section}"

    def test_archivo_inexistente(self, tmp_path):
        assert load_base_prompt(str(tmp_path / "no-existe.txt")) == BASE_PROMPT
