"""
Slot validation and additive merge for client and vehicle fields.

Every field arriving from a function call goes through its own validator.
A field that fails is dropped and recorded as REJECTED; the rest of the
call still applies. Accepted values are merged over the current ClientInfo
without ever clearing a previously collected field.

Usage:
    manager = SlotManager()
    updated, outcomes = manager.apply({"marca": "vw", "año": 2018}, ClientInfo())
    assert updated.vehiculo.marca == "Volkswagen"
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Iterable, Mapping, Optional

from src.schemas.client_schema import ClientInfo, VehicleInfo, merge_client_info
from src.schemas.function_schema import FieldOutcome, FieldStatus
from src.utils import normalize_brand, normalize_engine_size

logger = logging.getLogger(__name__)

# Validation thresholds
MIN_NAME_LENGTH = 2
MIN_PART_LENGTH = 3
MIN_SERIAL_LENGTH = 5
MIN_VEHICLE_YEAR = 1990


class FieldValidationError(ValueError):
    """Raised by a slot validator when a value cannot be accepted."""


def max_vehicle_year() -> int:
    """Latest accepted model year: next calendar year."""
    return datetime.now().year + 1


def _require_text(value: Any) -> str:
    if not isinstance(value, str):
        raise FieldValidationError(f"expected text, got {type(value).__name__}")
    text = " ".join(value.split())
    if not text:
        raise FieldValidationError("empty value")
    return text


def _validate_name(value: Any) -> str:
    text = _require_text(value)
    if len(text) < MIN_NAME_LENGTH:
        raise FieldValidationError(f"name shorter than {MIN_NAME_LENGTH} characters")
    return text


def _validate_part(value: Any) -> str:
    text = _require_text(value)
    if len(text) < MIN_PART_LENGTH:
        raise FieldValidationError(f"part description shorter than {MIN_PART_LENGTH} characters")
    return text


def _validate_brand(value: Any) -> str:
    return normalize_brand(_require_text(value))


def _validate_year(value: Any) -> int:
    if isinstance(value, bool):
        raise FieldValidationError("expected a year, got a boolean")
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError:
            raise FieldValidationError(f"not a year: {value!r}") from None
    if not isinstance(value, int):
        raise FieldValidationError(f"expected a year, got {type(value).__name__}")
    upper = max_vehicle_year()
    if not MIN_VEHICLE_YEAR <= value <= upper:
        raise FieldValidationError(f"year {value} outside {MIN_VEHICLE_YEAR}..{upper}")
    return value


def _validate_engine(value: Any) -> str:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        value = str(value)
    normalized = normalize_engine_size(_require_text(value))
    if normalized is None:
        raise FieldValidationError(f"unrecognized engine size: {value!r}")
    return normalized


def _validate_serial(value: Any) -> str:
    text = _require_text(value)
    if len(text) < MIN_SERIAL_LENGTH:
        raise FieldValidationError(f"serial number shorter than {MIN_SERIAL_LENGTH} characters")
    return text


@dataclass(frozen=True)
class SlotDefinition:
    """Schema for a single collectable field."""

    name: str
    attribute: str
    on_vehicle: bool
    validator: Callable[[Any], Any]
    display_name: str


class SlotManager:
    """
    Validates function-call arguments field by field and merges the
    accepted ones into a ClientInfo.

    ``allowed`` restricts which argument names this manager will look at,
    so the client-only and vehicle-only save functions ignore the rest.
    """

    SLOT_DEFINITIONS: list[SlotDefinition] = [
        SlotDefinition("nombre", "nombre", False, _validate_name, "nombre"),
        SlotDefinition("pieza", "pieza_necesaria", False, _validate_part, "refacción"),
        SlotDefinition("marca", "marca", True, _validate_brand, "marca"),
        SlotDefinition("modelo", "modelo", True, _require_text, "modelo"),
        SlotDefinition("año", "anio", True, _validate_year, "año"),
        SlotDefinition("litraje", "litraje", True, _validate_engine, "litraje"),
        SlotDefinition("numeroSerie", "numero_serie", True, _validate_serial, "numeroSerie"),
        SlotDefinition("modeloEspecial", "modelo_especial", True, _require_text, "modeloEspecial"),
    ]

    CLIENT_SLOTS: tuple[str, ...] = ("nombre", "pieza")
    VEHICLE_SLOTS: tuple[str, ...] = (
        "marca", "modelo", "año", "litraje", "numeroSerie", "modeloEspecial",
    )

    def __init__(self, allowed: Optional[Iterable[str]] = None) -> None:
        names = set(allowed) if allowed is not None else None
        self._definitions = [
            d for d in self.SLOT_DEFINITIONS if names is None or d.name in names
        ]

    @classmethod
    def known_slot_names(cls) -> list[str]:
        return [d.name for d in cls.SLOT_DEFINITIONS]

    def get_definition(self, name: str) -> SlotDefinition:
        for defn in self._definitions:
            if defn.name == name:
                return defn
        raise ValueError(f"Unknown slot: {name}")

    def validate(self, name: str, value: Any) -> Any:
        """Return the normalized value or raise FieldValidationError."""
        return self.get_definition(name).validator(value)

    def apply(
        self, args: Mapping[str, Any], current: ClientInfo
    ) -> tuple[ClientInfo, list[FieldOutcome]]:
        """
        Validate every known field present in ``args`` and merge the valid ones.

        Returns:
            (merged ClientInfo, one FieldOutcome per field that was supplied)
        """
        client_values: dict[str, Any] = {}
        vehicle_values: dict[str, Any] = {}
        outcomes: list[FieldOutcome] = []

        for defn in self._definitions:
            if defn.name not in args or args[defn.name] is None:
                continue
            raw = args[defn.name]
            try:
                value = defn.validator(raw)
            except FieldValidationError as exc:
                logger.debug("Slot '%s' rejected (%r): %s", defn.name, raw, exc)
                outcomes.append(
                    FieldOutcome(
                        field=defn.name, status=FieldStatus.REJECTED, value=raw, reason=str(exc)
                    )
                )
                continue

            target = vehicle_values if defn.on_vehicle else client_values
            target[defn.attribute] = value
            outcomes.append(FieldOutcome(field=defn.name, status=FieldStatus.APPLIED, value=value))

        update = ClientInfo(
            **client_values,
            vehiculo=VehicleInfo(**vehicle_values) if vehicle_values else None,
        )
        return merge_client_info(current, update), outcomes

    def apply_one(
        self, name: str, value: Any, current: ClientInfo
    ) -> tuple[ClientInfo, FieldOutcome]:
        """Single-field variant used by the legacy (campo, valor) function."""
        self.get_definition(name)
        updated, outcomes = self.apply({name: value}, current)
        if not outcomes:
            outcome = FieldOutcome(field=name, status=FieldStatus.REJECTED, reason="empty value")
            return updated, outcome
        return updated, outcomes[0]

    def display_names(self, outcomes: Iterable[FieldOutcome]) -> list[str]:
        names = []
        for outcome in outcomes:
            if outcome.status == FieldStatus.APPLIED:
                names.append(self.get_definition(outcome.field).display_name)
        return names
