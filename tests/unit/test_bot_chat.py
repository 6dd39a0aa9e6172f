"""
Tests para las utilidades del canal de Telegram.
"""

from types import SimpleNamespace

from src.bot.handlers.chat import (
    HISTORY_KEY,
    build_chat_input,
    remember,
    session_id_for,
    split_message,
)


def make_config(accounting_ids=(), user_id=None):
    return SimpleNamespace(
        get_accounting_chat_ids=lambda: list(accounting_ids),
        DEFAULT_USER_ID=user_id,
    )


class TestSplitMessage:
    """Tests para el corte de mensajes largos."""

    def test_mensaje_corto(self):
        assert split_message("hola") == ["hola"]

    def test_corta_en_saltos_de_linea(self):
        text = "a" * 6 + "\n" + "b" * 6 + "\n" + "c" * 3
        chunks = split_message(text, limit=10)

        assert chunks == ["aaaaaa\n", "bbbbbb\nccc"]
        assert "".join(chunks) == text

    def test_linea_mas_larga_que_el_limite(self):
        chunks = split_message("x" * 25, limit=10)

        assert chunks == ["x" * 10, "x" * 10, "x" * 5]
        assert all(len(c) <= 10 for c in chunks)


class TestHistory:
    """Tests para el historial corto del chat."""

    def test_remember_respeta_limite(self):
        chat_data = {}
        for i in range(5):
            remember(chat_data, "user", f"m{i}", limit=3)

        assert [m["content"] for m in chat_data[HISTORY_KEY]] == ["m2", "m3", "m4"]

    def test_remember_sin_limite(self):
        chat_data = {}
        for i in range(5):
            remember(chat_data, "user", f"m{i}", limit=0)
        assert len(chat_data[HISTORY_KEY]) == 5


class TestBuildChatInput:
    """Tests para la entrada del router."""

    def test_identidad_e_historial(self):
        chat_data = {HISTORY_KEY: [{"role": "user", "content": "#5001"}]}
        chat = build_chat_input(123, "retira 5001", chat_data, config=make_config(user_id=4))

        assert chat.session_id == session_id_for(123) == "tg:123"
        assert chat.message == "retira 5001"
        assert chat.history[0].content == "#5001"
        assert chat.user_id == 4
        assert chat.can_access_accounting is False

    def test_chat_de_contabilidad(self):
        chat = build_chat_input(99, "ventas del mes", {}, config=make_config(accounting_ids=[99]))
        assert chat.can_access_accounting is True
