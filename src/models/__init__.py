"""Modelos Pydantic para validación"""
from src.models.actions import CamelModel, ActionParams, TransitionResult, NoteResult
from src.models.orders import (
    OrderSummary, OrderView, CustomerView, DeviceView, NovedadView, SaleView, PaymentMethodView,
    summarize_orders,
)
from src.models.chat import (
    ChatRoute, HistoryMessage, SelectedOrder, StructuredAction, ChatInput, ChatReply,
)
