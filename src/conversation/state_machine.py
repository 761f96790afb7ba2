"""
Data-collection progress derived from what has been gathered so far.

Status is never set by hand: after every successful field update it is
recomputed from ClientInfo completeness in a fixed priority order. The only
exceptions are ``greeting`` (a freshly created session) and
``generating_quote`` (entered through an explicit quote result).

Usage:
    info = ClientInfo(nombre="Juan")
    assert derive_status(info) == DataCollectionStatus.COLLECTING_PART
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from src.schemas.client_schema import ClientInfo
from src.schemas.conversation_schema import DataCollectionStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequiredField:
    """A field that must be collected, in priority order."""

    name: str
    status: DataCollectionStatus
    friendly_name: str


REQUIRED_FIELDS: list[RequiredField] = [
    RequiredField("nombre", DataCollectionStatus.COLLECTING_NAME, "tu nombre"),
    RequiredField("pieza", DataCollectionStatus.COLLECTING_PART, "qué repuesto necesitas"),
    RequiredField("marca", DataCollectionStatus.COLLECTING_BRAND, "la marca del vehículo"),
    RequiredField("modelo", DataCollectionStatus.COLLECTING_MODEL, "el modelo del vehículo"),
    RequiredField("año", DataCollectionStatus.COLLECTING_YEAR, "el año del vehículo"),
    RequiredField("litraje", DataCollectionStatus.COLLECTING_ENGINE, "el litraje del motor"),
    RequiredField(
        "numeroSerie", DataCollectionStatus.COLLECTING_SERIAL, "el número de serie del motor"
    ),
]

_STATUS_BY_FIELD: dict[str, DataCollectionStatus] = {
    f.name: f.status for f in REQUIRED_FIELDS
}
_STATUS_BY_FIELD["modeloEspecial"] = DataCollectionStatus.COLLECTING_SPECIAL


def _field_values(client_info: ClientInfo) -> dict[str, Any]:
    vehiculo = client_info.vehiculo
    return {
        "nombre": client_info.nombre,
        "pieza": client_info.pieza_necesaria,
        "marca": vehiculo.marca if vehiculo else None,
        "modelo": vehiculo.modelo if vehiculo else None,
        "año": vehiculo.anio if vehiculo else None,
        "litraje": vehiculo.litraje if vehiculo else None,
        "numeroSerie": vehiculo.numero_serie if vehiculo else None,
    }


def _is_present(value: Any) -> bool:
    if isinstance(value, str):
        return bool(value.strip())
    return bool(value)


def get_missing_fields(client_info: ClientInfo) -> list[str]:
    """Return required field names still missing, in priority order."""
    values = _field_values(client_info)
    return [f.name for f in REQUIRED_FIELDS if not _is_present(values[f.name])]


def get_completed_fields(client_info: ClientInfo) -> list[str]:
    values = _field_values(client_info)
    return [f.name for f in REQUIRED_FIELDS if _is_present(values[f.name])]


def status_for_field(field_name: str) -> DataCollectionStatus:
    """Map a field name to the status that collects it."""
    return _STATUS_BY_FIELD.get(field_name, DataCollectionStatus.COLLECTING_NAME)


def derive_status(client_info: ClientInfo) -> DataCollectionStatus:
    """Status for the first missing field, or DATA_COMPLETE when none are missing."""
    missing = get_missing_fields(client_info)
    if not missing:
        return DataCollectionStatus.DATA_COMPLETE
    return status_for_field(missing[0])


def is_client_info_complete(client_info: ClientInfo) -> bool:
    return not get_missing_fields(client_info)


def friendly_field_name(field_name: str) -> str:
    for f in REQUIRED_FIELDS:
        if f.name == field_name:
            return f.friendly_name
    return field_name


def calculate_progress(client_info: ClientInfo) -> dict[str, int]:
    """Collection progress as percentage plus completed/total counts."""
    total = len(REQUIRED_FIELDS)
    completed = total - len(get_missing_fields(client_info))
    return {
        "percentage": round(completed / total * 100),
        "completed": completed,
        "total": total,
    }


def build_progress_summary(client_info: ClientInfo) -> str:
    """One-line progress description injected into the system prompt."""
    progress = calculate_progress(client_info)
    completed = ", ".join(get_completed_fields(client_info))
    missing = ", ".join(get_missing_fields(client_info))
    return (
        f"{progress['percentage']}% completado. "
        f"Tenemos: [{completed}]. Falta: [{missing}]"
    )


def next_status_after_update(
    previous: DataCollectionStatus,
    client_info: ClientInfo,
    suggested: Optional[DataCollectionStatus] = None,
) -> DataCollectionStatus:
    """Resolve the status after a successful function result."""
    new_status = suggested or derive_status(client_info)
    if new_status != previous:
        logger.debug("Collection status: %s -> %s", previous.value, new_status.value)
    return new_status
