"""
Auto-parts function handlers exposed to the model.

Each handler receives the decoded arguments and a FunctionContext snapshot
of the session, and returns a FunctionResult. Handlers never mutate the
session: updated ClientInfo travels back in ``result.client_info`` and the
orchestrator merges it.
"""

import logging
from typing import Any, Mapping, Optional

from pydantic import ValidationError

from src.conversation.slot_manager import (
    MIN_VEHICLE_YEAR,
    SlotManager,
    max_vehicle_year,
)
from src.conversation.state_machine import (
    calculate_progress,
    derive_status,
    get_missing_fields,
    status_for_field,
)
from src.schemas.client_schema import ClientInfo, merge_client_info
from src.schemas.conversation_schema import DataCollectionStatus
from src.schemas.function_schema import FieldStatus, FunctionContext, FunctionResult
from src.tools import quotes
from src.tools.registry import FunctionRegistry

logger = logging.getLogger(__name__)

MIN_ENGINE_LITERS = 0.8
MAX_ENGINE_LITERS = 8.0

_all_slots = SlotManager()
_client_slots = SlotManager(SlotManager.CLIENT_SLOTS)
_vehicle_slots = SlotManager(SlotManager.VEHICLE_SLOTS)

# Per-field messages for the single-field legacy function.
_REJECTION_MESSAGES: dict[str, tuple[str, str]] = {
    "nombre": ("El nombre debe tener al menos 2 caracteres", "Por favor proporciona un nombre válido."),
    "pieza": (
        "La descripción de la pieza es muy corta",
        "Por favor describe mejor qué refacción necesitas.",
    ),
    "año": ("Año inválido", "Por favor proporciona un año válido entre 1990 y el año actual."),
    "litraje": (
        "Litraje inválido",
        "Por favor especifica el litraje del motor (ej: 1.6L, 2.0L, 3.5L).",
    ),
    "numeroSerie": (
        "Número de serie muy corto",
        "El número de serie del motor debe tener al menos 5 caracteres.",
    ),
}


# ---------------------------------------------------------------------- #
# Declarations
# ---------------------------------------------------------------------- #

_VEHICLE_PROPERTIES: dict[str, Any] = {
    "marca": {"type": "string", "description": "Marca del vehículo (Toyota, Honda, Ford, etc.)"},
    "modelo": {"type": "string", "description": "Modelo del vehículo (Corolla, Civic, Focus, etc.)"},
    "año": {"type": "number", "description": "Año del vehículo"},
    "litraje": {"type": "string", "description": "Litraje del motor (1.6L, 2.0L, etc.)"},
    "numeroSerie": {"type": "string", "description": "Número de serie del motor"},
    "modeloEspecial": {
        "type": "string",
        "description": "Variante especial (Sport, Turbo, Hybrid, etc.)",
    },
}

_CLIENT_PROPERTIES: dict[str, Any] = {
    "nombre": {"type": "string", "description": "Nombre del cliente"},
    "pieza": {"type": "string", "description": "Qué refacción o pieza necesita"},
}

_CLIENT_INFO_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "nombre": {"type": "string"},
        "piezaNecesaria": {"type": "string"},
        "vehiculo": {
            "type": "object",
            "properties": {name: {"type": prop["type"]} for name, prop in _VEHICLE_PROPERTIES.items()},
        },
    },
}

GUARDAR_INFORMACION = {
    "name": "guardar_informacion",
    "description": "Guarda cualquier información del cliente y/o vehículo que se proporcione",
    "parameters": {
        "type": "object",
        "properties": {**_CLIENT_PROPERTIES, **_VEHICLE_PROPERTIES},
    },
}

GUARDAR_INFO_CLIENTE = {
    "name": "guardar_info_cliente",
    "description": "Guarda la información básica del cliente",
    "parameters": {"type": "object", "properties": dict(_CLIENT_PROPERTIES)},
}

GUARDAR_INFO_VEHICULO = {
    "name": "guardar_info_vehiculo",
    "description": (
        "Guarda toda la información del vehículo que el cliente proporcione. "
        "Puedes enviar los campos que tengas disponibles."
    ),
    "parameters": {"type": "object", "properties": dict(_VEHICLE_PROPERTIES)},
}

RECOPILAR_DATO_CLIENTE = {
    "name": "recopilar_dato_cliente",
    "description": "Guarda un solo dato del cliente o del vehículo",
    "parameters": {
        "type": "object",
        "properties": {
            "campo": {"type": "string", "enum": SlotManager.known_slot_names()},
            "valor": {"type": "string"},
        },
        "required": ["campo", "valor"],
    },
}

VALIDAR_DATOS_VEHICULO = {
    "name": "validar_datos_vehiculo",
    "description": "Valida que los datos del vehículo sean coherentes entre sí",
    "parameters": {
        "type": "object",
        "properties": {
            "vehiculo": {
                "type": "object",
                "properties": _CLIENT_INFO_SCHEMA["properties"]["vehiculo"]["properties"],
                "required": ["marca", "modelo", "año"],
            }
        },
        "required": ["vehiculo"],
    },
}

GENERAR_COTIZACION = {
    "name": "generar_cotizacion",
    "description": (
        "Genera una cotización preliminar de refacciones basada en la información recopilada"
    ),
    "parameters": {
        "type": "object",
        "properties": {
            "clientInfo": _CLIENT_INFO_SCHEMA,
            "includeAlternatives": {
                "type": "boolean",
                "description": "Si incluir repuestos alternativos en la cotización",
            },
        },
        "required": ["clientInfo"],
    },
}

DETERMINAR_PROXIMO_PASO = {
    "name": "determinar_proximo_paso",
    "description": "Determina qué información falta recopilar del cliente",
    "parameters": {
        "type": "object",
        "properties": {"clientInfo": _CLIENT_INFO_SCHEMA},
        "required": ["clientInfo"],
    },
}


# ---------------------------------------------------------------------- #
# Helpers
# ---------------------------------------------------------------------- #


def _save_result(
    manager: SlotManager,
    args: Mapping[str, Any],
    context: FunctionContext,
    prefix: str,
    error: str,
    message: str,
    extra_model: Optional[str] = None,
) -> FunctionResult:
    updated, outcomes = manager.apply(args, context.current_client_info)
    labels = manager.display_names(outcomes)

    if extra_model and not (updated.vehiculo and updated.vehiculo.modelo):
        updated, _ = _all_slots.apply({"modelo": extra_model}, updated)
        labels.append("modelo (inferido)")

    if not labels:
        return FunctionResult(
            success=False, error=error, message=message, field_outcomes=outcomes
        )

    return FunctionResult(
        success=True,
        data={"updatedFields": labels, "clientInfo": updated.to_wire()},
        client_info=updated,
        next_step=derive_status(updated),
        message=f"✅ {prefix}: {', '.join(labels)}",
        field_outcomes=outcomes,
    )


def _client_info_arg(
    args: Mapping[str, Any], context: FunctionContext
) -> tuple[Optional[ClientInfo], Optional[str]]:
    """Parse ``args["clientInfo"]`` and merge it over the session's data."""
    raw = args.get("clientInfo")
    if not isinstance(raw, dict):
        return None, "clientInfo es requerido"
    try:
        supplied = ClientInfo.model_validate(raw)
    except ValidationError as exc:
        return None, f"clientInfo inválido: {exc.error_count()} error(es)"
    return merge_client_info(context.current_client_info, supplied), None


def _engine_liters(litraje: Any) -> Optional[float]:
    try:
        return float(str(litraje).upper().replace("L", "").strip())
    except ValueError:
        return None


# ---------------------------------------------------------------------- #
# Handlers
# ---------------------------------------------------------------------- #


async def guardar_informacion(args: Mapping[str, Any], context: FunctionContext) -> FunctionResult:
    """Save any subset of client and vehicle fields in one call."""
    extra = args.get("extra")
    extra_model = extra.strip() if isinstance(extra, str) and extra.strip() else None
    return _save_result(
        _all_slots,
        args,
        context,
        prefix="Información guardada",
        error="No se proporcionó información válida",
        message="Por favor proporciona información válida del cliente o vehículo.",
        extra_model=extra_model,
    )


async def guardar_info_cliente(args: Mapping[str, Any], context: FunctionContext) -> FunctionResult:
    return _save_result(
        _client_slots,
        args,
        context,
        prefix="Información del cliente guardada",
        error="No se proporcionó información válida del cliente",
        message="Por favor proporciona un nombre válido y/o describe qué refacción necesitas.",
    )


async def guardar_info_vehiculo(args: Mapping[str, Any], context: FunctionContext) -> FunctionResult:
    return _save_result(
        _vehicle_slots,
        args,
        context,
        prefix="Información del vehículo guardada",
        error="No se proporcionó información válida del vehículo",
        message="Por favor proporciona datos válidos del vehículo.",
    )


async def recopilar_dato_cliente(args: Mapping[str, Any], context: FunctionContext) -> FunctionResult:
    """Legacy single (campo, valor) save, kept for older prompts."""
    campo = args.get("campo")
    valor = args.get("valor")

    if not isinstance(campo, str) or not campo.strip():
        return FunctionResult(
            success=False,
            error="Campo requerido no especificado",
            message="Error interno: no se especificó qué campo recopilar.",
        )
    campo = campo.strip()
    if campo not in SlotManager.known_slot_names():
        return FunctionResult(success=False, error=f"Campo '{campo}' no reconocido")
    if not isinstance(valor, str) or not valor.strip():
        return FunctionResult(
            success=False,
            error="Valor requerido no especificado o vacío",
            message="Por favor proporciona un valor válido.",
        )

    updated, outcome = _all_slots.apply_one(campo, valor, context.current_client_info)
    if outcome.status == FieldStatus.REJECTED:
        error, message = _REJECTION_MESSAGES.get(
            campo, (outcome.reason or "Valor inválido", "Por favor proporciona un valor válido.")
        )
        return FunctionResult(success=False, error=error, message=message, field_outcomes=[outcome])

    return FunctionResult(
        success=True,
        data={"campo": campo, "valor": outcome.value, "clientInfo": updated.to_wire()},
        client_info=updated,
        next_step=derive_status(updated),
        message=f"✅ {campo} guardado: {outcome.value}",
        field_outcomes=[outcome],
    )


async def validar_datos_vehiculo(args: Mapping[str, Any], context: FunctionContext) -> FunctionResult:
    """Coherence checks on a vehicle description; does not save anything."""
    vehiculo = args.get("vehiculo")
    if not isinstance(vehiculo, dict):
        return FunctionResult(success=False, error="Datos del vehículo requeridos")

    missing = [name for name in ("marca", "modelo", "año") if not vehiculo.get(name)]
    if missing:
        return FunctionResult(
            success=False,
            error=f"Faltan datos del vehículo: {', '.join(missing)}",
            message="Necesito la marca, el modelo y el año del vehículo para validarlo.",
        )

    problems: list[str] = []
    try:
        year = int(vehiculo["año"])
    except (TypeError, ValueError):
        problems.append(f"El año {vehiculo['año']} no es válido")
    else:
        if year > max_vehicle_year():
            problems.append(f"El año {year} es futuro")
        elif year < MIN_VEHICLE_YEAR:
            problems.append(f"El año {year} es muy antiguo para nuestro sistema")

    litraje = vehiculo.get("litraje")
    if litraje:
        liters = _engine_liters(litraje)
        if liters is None or not MIN_ENGINE_LITERS <= liters <= MAX_ENGINE_LITERS:
            problems.append(f"Litraje {litraje} fuera de rango común")

    if problems:
        return FunctionResult(
            success=False,
            error="; ".join(problems),
            message=f"⚠️ Hay inconsistencias en los datos: {', '.join(problems)}",
        )

    return FunctionResult(
        success=True,
        data={"vehiculo": dict(vehiculo)},
        message="✅ Datos del vehículo validados correctamente",
    )


async def generar_cotizacion(args: Mapping[str, Any], context: FunctionContext) -> FunctionResult:
    """Preliminary quote from the collected part and vehicle."""
    client_info, problem = _client_info_arg(args, context)
    if client_info is None:
        return FunctionResult(success=False, error=problem)

    if not client_info.pieza_necesaria or client_info.vehiculo is None or client_info.vehiculo.is_empty():
        return FunctionResult(
            success=False,
            error="Información insuficiente para generar cotización",
            message="Necesito más información del vehículo para generar la cotización.",
        )

    quote = quotes.create_quote(client_info, bool(args.get("includeAlternatives", False)))
    return FunctionResult(
        success=True,
        data=dict(quote),
        next_step=DataCollectionStatus.GENERATING_QUOTE,
        message=f"📋 Cotización generada para {client_info.nombre or 'el cliente'}",
    )


async def determinar_proximo_paso(args: Mapping[str, Any], context: FunctionContext) -> FunctionResult:
    """Report which field to ask for next."""
    client_info, problem = _client_info_arg(args, context)
    if client_info is None:
        return FunctionResult(success=False, error=problem)

    missing = get_missing_fields(client_info)
    if not missing:
        return FunctionResult(
            success=True,
            next_step=DataCollectionStatus.DATA_COMPLETE,
            data={"allFieldsComplete": True},
            message="✅ Información completa, listo para cotizar",
        )

    next_field = missing[0]
    return FunctionResult(
        success=True,
        next_step=status_for_field(next_field),
        data={
            "allFieldsComplete": False,
            "missingFields": missing,
            "nextField": next_field,
            "progress": calculate_progress(client_info),
        },
        message=f"Siguiente: recopilar {next_field}",
    )


def build_default_registry() -> FunctionRegistry:
    """Registry with every auto-parts function registered."""
    registry = FunctionRegistry()
    registry.register("guardar_info_vehiculo", guardar_info_vehiculo, GUARDAR_INFO_VEHICULO)
    registry.register("guardar_info_cliente", guardar_info_cliente, GUARDAR_INFO_CLIENTE)
    registry.register("guardar_informacion", guardar_informacion, GUARDAR_INFORMACION)
    registry.register(
        "recopilar_dato_cliente", recopilar_dato_cliente, RECOPILAR_DATO_CLIENTE, exposed=False
    )
    registry.register("validar_datos_vehiculo", validar_datos_vehiculo, VALIDAR_DATOS_VEHICULO)
    registry.register("generar_cotizacion", generar_cotizacion, GENERAR_COTIZACION)
    registry.register("determinar_proximo_paso", determinar_proximo_paso, DETERMINAR_PROXIMO_PASO)
    return registry
