"""
Queries de Base de Datos

Módulo que exporta todas las funciones de consulta a la base de datos.
Todas son async y reciben la AsyncSession de la unidad de trabajo.
"""

# Queries de orden
from src.database.queries.order_queries import (
    get_order_async,
    search_orders_by_customer_name_async,
    search_orders_by_status_async,
    search_orders_by_dni_async,
    search_orders_by_address_async,
    search_orders_by_device_async,
    search_orders_by_model_async,
    get_orders_by_customer_async,
    count_orders_by_status_async,
    get_or_create_detail_async,
)

# Queries de cliente
from src.database.queries.customer_queries import (
    get_customer_by_id_async,
    get_customer_by_dni_async,
    search_customers_by_name_async,
    get_customer_stats_async,
)

# Queries de novedad
from src.database.queries.novedad_queries import (
    create_novedad_async,
    get_novedades_by_order_async,
    count_novedades_async,
)

# Queries de venta
from src.database.queries.sale_queries import (
    SalesSummary,
    PaymentMethodTotal,
    create_venta_async,
    get_ventas_by_order_async,
    get_sales_summary_async,
    get_sales_for_period_async,
    get_sales_by_payment_method_async,
    get_recent_sales_async,
)

# Queries de método de pago
from src.database.queries.payment_method_queries import (
    get_payment_methods_async,
    get_payment_method_by_id_async,
)

__all__ = [
    # Orden
    "get_order_async",
    "search_orders_by_customer_name_async",
    "search_orders_by_status_async",
    "search_orders_by_dni_async",
    "search_orders_by_address_async",
    "search_orders_by_device_async",
    "search_orders_by_model_async",
    "get_orders_by_customer_async",
    "count_orders_by_status_async",
    "get_or_create_detail_async",
    # Cliente
    "get_customer_by_id_async",
    "get_customer_by_dni_async",
    "search_customers_by_name_async",
    "get_customer_stats_async",
    # Novedad
    "create_novedad_async",
    "get_novedades_by_order_async",
    "count_novedades_async",
    # Venta
    "SalesSummary",
    "PaymentMethodTotal",
    "create_venta_async",
    "get_ventas_by_order_async",
    "get_sales_summary_async",
    "get_sales_for_period_async",
    "get_sales_by_payment_method_async",
    "get_recent_sales_async",
    # Método de pago
    "get_payment_methods_async",
    "get_payment_method_by_id_async",
]
