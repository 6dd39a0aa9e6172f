"""
Herramientas de Contabilidad

Resúmenes de ventas por período y por método de pago. Todas requieren
permiso de contabilidad; el registro las rechaza antes de ejecutarlas
si el usuario no lo tiene.
"""

from calendar import monthrange
from collections import OrderedDict
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Callable, Dict, List, Optional, Tuple

from pydantic import Field, field_validator
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.queries import (
    get_recent_sales_async,
    get_sales_by_payment_method_async,
    get_sales_for_period_async,
    get_sales_summary_async,
)
from src.database.queries.sale_queries import SalesSummary
from src.models.actions import CamelModel
from src.models.orders import SaleView
from src.services.tools.registry import ToolSpec
from src.services.tools.responses import error, ok

# Reloj de referencia de los períodos ("hoy", "esta semana")
clock: Callable[[], datetime] = datetime.utcnow

PERIODS = ("day", "week", "month", "year")

PERIOD_LABELS = {
    "day": "hoy",
    "week": "esta semana",
    "month": "el mes",
    "year": "el año",
}

# Tope de ventas que se leen para armar el desglose de un período
MAX_PERIOD_SALES = 5000


# ============================================================================
# PERÍODOS
# ============================================================================

def period_range(
    period: str,
    today: date,
    year: Optional[int] = None,
    month: Optional[int] = None
) -> Tuple[datetime, datetime]:
    """
    Rango [desde, hasta) de un período.

    Args:
        period: day, week, month o year
        today: Fecha de referencia
        year: Año (month y year)
        month: Mes 1-12 (solo month)

    Returns:
        (desde inclusive, hasta exclusivo)
    """
    if period == "day":
        start = today
        end = today + timedelta(days=1)
    elif period == "week":
        start = today - timedelta(days=today.weekday())
        end = start + timedelta(days=7)
    elif period == "month":
        y = year or today.year
        m = month or today.month
        start = date(y, m, 1)
        end = start + timedelta(days=monthrange(y, m)[1])
    elif period == "year":
        y = year or today.year
        start = date(y, 1, 1)
        end = date(y + 1, 1, 1)
    else:
        raise ValueError(f"Período desconocido: {period}")

    return datetime.combine(start, time.min), datetime.combine(end, time.min)


def _bucket(period: str, fecha: datetime) -> str:
    """Etiqueta del desglose: hora para un día, día para semana/mes, mes para el año."""
    if period == "day":
        return fecha.strftime("%H:00")
    if period == "year":
        return fecha.strftime("%Y-%m")
    return fecha.strftime("%Y-%m-%d")


def _summary_data(summary: SalesSummary) -> Dict[str, float]:
    return {
        "count": summary.cantidad,
        "withInvoice": float(summary.total_facturado),
        "withoutInvoice": float(summary.total_no_facturado),
        "total": float(summary.total),
    }


# ============================================================================
# ARGUMENTOS
# ============================================================================

class NoArgs(CamelModel):
    pass


class PeriodArgs(CamelModel):
    period: str = Field(..., description="Período: day (por hora), week, month (por día) o year (por mes)")
    year: Optional[int] = Field(None, description="Año (por defecto el actual)", ge=2000, le=2100)
    month: Optional[int] = Field(None, description="Mes 1-12 para period=month (por defecto el actual)", ge=1, le=12)

    @field_validator("period", mode="before")
    @classmethod
    def normalize_period(cls, value):
        """Acepta también la inicial (d, w, m, y)."""
        text = str(value or "").strip().lower()
        for period in PERIODS:
            if text == period or (text and text[0] == period[0]):
                return period
        raise ValueError("El período debe ser day, week, month o year")


class DateRangeArgs(CamelModel):
    start_date: Optional[date] = Field(None, description="Fecha inicial YYYY-MM-DD (por defecto, inicio del mes)")
    end_date: Optional[date] = Field(None, description="Fecha final YYYY-MM-DD inclusive (por defecto, hoy)")


class RecentSalesArgs(CamelModel):
    count: int = Field(20, description="Cantidad de ventas", ge=1, le=100)
    invoiced: Optional[bool] = Field(None, description="true solo facturadas, false solo no facturadas")


# ============================================================================
# HANDLERS
# ============================================================================

async def get_sales_summary(db: AsyncSession, args: NoArgs):
    today = clock().date()
    data = {}
    for period in PERIODS:
        desde, hasta = period_range(period, today)
        summary = await get_sales_summary_async(db, desde, hasta)
        data[period] = _summary_data(summary)
    return ok("Resumen de ventas de hoy, la semana, el mes y el año", data=data)


async def get_sales_for_period(db: AsyncSession, args: PeriodArgs):
    today = clock().date()
    try:
        desde, hasta = period_range(args.period, today, args.year, args.month)
    except ValueError as e:
        return error(str(e), context={"period": args.period})

    summary = await get_sales_summary_async(db, desde, hasta)
    sales = await get_sales_for_period_async(db, desde, hasta, limit=MAX_PERIOD_SALES)

    breakdown: "OrderedDict[str, Dict[str, Decimal]]" = OrderedDict()
    for venta in sorted(sales, key=lambda v: v.fecha):
        bucket = breakdown.setdefault(
            _bucket(args.period, venta.fecha),
            {"withInvoice": Decimal("0"), "withoutInvoice": Decimal("0")},
        )
        bucket["withInvoice" if venta.facturado else "withoutInvoice"] += venta.monto

    return ok(
        f"Ventas de {PERIOD_LABELS[args.period]}",
        data={
            "period": args.period,
            "from": desde.strftime("%Y-%m-%d"),
            "to": (hasta - timedelta(days=1)).strftime("%Y-%m-%d"),
            "summary": _summary_data(summary),
            "breakdown": [
                {
                    "label": label,
                    "withInvoice": float(values["withInvoice"]),
                    "withoutInvoice": float(values["withoutInvoice"]),
                }
                for label, values in breakdown.items()
            ],
        },
    )


async def get_sales_by_payment_method(db: AsyncSession, args: DateRangeArgs):
    today = clock().date()
    start = args.start_date or today.replace(day=1)
    end = args.end_date or today
    if end < start:
        return error(
            "La fecha final no puede ser anterior a la inicial",
            context={"startDate": start.isoformat(), "endDate": end.isoformat()},
        )

    desde = datetime.combine(start, time.min)
    hasta = datetime.combine(end + timedelta(days=1), time.min)
    totals = await get_sales_by_payment_method_async(db, desde, hasta)
    summary = await get_sales_summary_async(db, desde, hasta)

    return ok(
        f"Ventas por método de pago del {start.isoformat()} al {end.isoformat()}",
        data={
            "startDate": start.isoformat(),
            "endDate": end.isoformat(),
            "total": float(summary.total),
            "byPaymentMethod": [
                {
                    "paymentMethodId": t.metodo_pago_id,
                    "paymentMethod": t.metodo_pago,
                    "count": t.cantidad,
                    "total": float(t.total),
                }
                for t in totals
            ],
        },
        count=len(totals),
    )


async def get_recent_sales(db: AsyncSession, args: RecentSalesArgs):
    ventas = await get_recent_sales_async(db, limit=args.count, facturado=args.invoiced)
    sales = [SaleView.from_venta(v).model_dump(by_alias=True, mode="json") for v in ventas]
    return ok(
        f"Últimas {len(sales)} ventas",
        data={"sales": sales, "total": float(sum((v.monto for v in ventas), Decimal("0")))},
        count=len(sales),
    )


ACCOUNTING_TOOLS: List[ToolSpec] = [
    ToolSpec(
        "GetSalesSummary",
        "Totales de ventas de hoy, esta semana, este mes y este año, con y sin factura",
        NoArgs,
        get_sales_summary,
        requires_accounting=True,
    ),
    ToolSpec(
        "GetSalesForPeriod",
        "Ventas de un período con desglose (por hora, día o mes)",
        PeriodArgs,
        get_sales_for_period,
        requires_accounting=True,
    ),
    ToolSpec(
        "GetSalesByPaymentMethod",
        "Ventas agrupadas por método de pago en un rango de fechas",
        DateRangeArgs,
        get_sales_by_payment_method,
        requires_accounting=True,
    ),
    ToolSpec(
        "GetRecentSales",
        "Últimas ventas registradas",
        RecentSalesArgs,
        get_recent_sales,
        requires_accounting=True,
    ),
]
