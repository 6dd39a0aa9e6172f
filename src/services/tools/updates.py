"""
Herramientas de Actualización

Únicas herramientas que escriben: datos de contacto del cliente, datos
del equipo y montos. Pasan por OrderUpdateService, igual que el PATCH de
la API, así que validan y dejan la misma novedad.
"""

from typing import List, Optional

from pydantic import Field
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.actions import CamelModel
from src.services.order_updates import OrderUpdateService, VALID_FIELDS_TEXT
from src.services.tools.registry import ToolSpec
from src.services.tools.responses import error, ok

_service = OrderUpdateService()


class UpdateFieldArgs(CamelModel):
    order_number: int = Field(..., description="Número de orden", gt=0)
    field: str = Field(..., description=f"Campo a modificar: {VALID_FIELDS_TEXT}")
    new_value: str = Field(..., description="Nuevo valor")


class CustomerInfoArgs(CamelModel):
    order_number: int = Field(..., description="Número de orden", gt=0)
    telefono: Optional[str] = Field(None, description="Teléfono principal")
    telefono2: Optional[str] = Field(None, description="Teléfono alternativo")
    email: Optional[str] = Field(None, description="Email")
    direccion: Optional[str] = Field(None, description="Dirección")
    localidad: Optional[str] = Field(None, description="Localidad")


class DeviceInfoArgs(CamelModel):
    order_number: int = Field(..., description="Número de orden", gt=0)
    modelo: Optional[str] = Field(None, description="Modelo del equipo")
    serie: Optional[str] = Field(None, description="Número de serie")
    ubicacion: Optional[str] = Field(None, description="Ubicación física en el taller")
    accesorios: Optional[str] = Field(None, description="Accesorios entregados")


async def _apply(db: AsyncSession, order_number: int, changes: dict):
    if not any(value is not None for value in changes.values()):
        return error("No se indicó ningún campo para actualizar")

    result = await _service.apply(db, order_number, changes)
    _service.log_result(result)
    return ok(result.message, data=result.to_dict())


async def update_order_field(db: AsyncSession, args: UpdateFieldArgs):
    return await _apply(db, args.order_number, {args.field: args.new_value})


async def update_customer_info(db: AsyncSession, args: CustomerInfoArgs):
    return await _apply(db, args.order_number, args.model_dump(exclude={"order_number"}))


async def update_device_info(db: AsyncSession, args: DeviceInfoArgs):
    return await _apply(db, args.order_number, args.model_dump(exclude={"order_number"}))


UPDATE_TOOLS: List[ToolSpec] = [
    ToolSpec(
        "UpdateOrderField",
        "Actualiza un campo de la orden: datos de contacto del cliente, del equipo o montos",
        UpdateFieldArgs,
        update_order_field,
    ),
    ToolSpec(
        "UpdateCustomerInfo",
        "Actualiza datos de contacto del cliente de una orden",
        CustomerInfoArgs,
        update_customer_info,
    ),
    ToolSpec(
        "UpdateDeviceInfo",
        "Actualiza datos del equipo de una orden",
        DeviceInfoArgs,
        update_device_info,
    ),
]
