"""Customer and vehicle data models collected during a conversation.

Field names on the wire are the Spanish camelCase keys the model emits
(``piezaNecesaria``, ``año``, ``numeroSerie``); attributes are snake_case
aliases of them so both spellings validate.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class VehicleInfo(BaseModel):
    """Vehicle the requested part is for."""

    model_config = ConfigDict(populate_by_name=True)

    marca: Optional[str] = None
    modelo: Optional[str] = None
    anio: Optional[int] = Field(default=None, alias="año")
    litraje: Optional[str] = None
    numero_serie: Optional[str] = Field(default=None, alias="numeroSerie")
    modelo_especial: Optional[str] = Field(default=None, alias="modeloEspecial")

    def is_empty(self) -> bool:
        return not any(_has_value(getattr(self, name)) for name in type(self).model_fields)


class ClientInfo(BaseModel):
    """Structured record filled in incrementally from the chat."""

    model_config = ConfigDict(populate_by_name=True)

    nombre: Optional[str] = None
    pieza_necesaria: Optional[str] = Field(default=None, alias="piezaNecesaria")
    vehiculo: Optional[VehicleInfo] = None

    def is_empty(self) -> bool:
        return (
            not _has_value(self.nombre)
            and not _has_value(self.pieza_necesaria)
            and (self.vehiculo is None or self.vehiculo.is_empty())
        )

    def to_wire(self) -> dict[str, Any]:
        """Dump with wire aliases, omitting unset fields."""
        return self.model_dump(by_alias=True, exclude_none=True)


def _has_value(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (int, float)):
        return value != 0
    return True


def _merge_fields(current: BaseModel, update: BaseModel, names: list[str]) -> dict[str, Any]:
    merged: dict[str, Any] = {}
    for name in names:
        new_value = getattr(update, name)
        merged[name] = new_value if _has_value(new_value) else getattr(current, name)
    return merged


def merge_vehicle_info(
    current: Optional[VehicleInfo], update: Optional[VehicleInfo]
) -> Optional[VehicleInfo]:
    """Additively merge two vehicle records; empty values never clear a field."""
    if update is None:
        return current
    if current is None:
        current = VehicleInfo()
    names = list(VehicleInfo.model_fields)
    return VehicleInfo(**_merge_fields(current, update, names))


def merge_client_info(current: ClientInfo, update: Optional[ClientInfo]) -> ClientInfo:
    """Additively merge ``update`` over ``current``.

    A non-empty value in ``update`` overwrites; ``None``, blank strings and a
    zero year leave the existing value untouched.
    """
    if update is None:
        return current.model_copy(deep=True)
    merged = _merge_fields(current, update, ["nombre", "pieza_necesaria"])
    vehiculo = merge_vehicle_info(current.vehiculo, update.vehiculo)
    merged["vehiculo"] = vehiculo.model_copy() if vehiculo is not None else None
    return ClientInfo(**merged)
