"""Dynamic prompt construction and fallback replies."""

import json
from typing import Any

from src.conversation.state_machine import build_progress_summary, friendly_field_name
from src.prompts.system_prompts import AUTOPARTS_SYSTEM_PROMPT
from src.schemas.client_schema import ClientInfo
from src.schemas.conversation_schema import DataCollectionStatus
from src.schemas.function_schema import FunctionResult


def build_client_context(client_info: ClientInfo, status: DataCollectionStatus) -> str:
    """System prompt plus a snapshot of what has been collected so far."""
    parts = [AUTOPARTS_SYSTEM_PROMPT]
    if not client_info.is_empty():
        snapshot = json.dumps(client_info.to_wire(), ensure_ascii=False, indent=2)
        parts.append(f"\nINFORMACIÓN ACTUAL DEL CLIENTE:\n{snapshot}")
    parts.append(f"\nESTADO ACTUAL: {status.value}")
    parts.append(f"PROGRESO: {build_progress_summary(client_info)}")
    return "\n".join(parts)


def format_quote(quote: dict[str, Any]) -> str:
    """Customer-facing quote summary."""
    precio = quote.get("precio", 0)
    lines = [
        "📋 *Cotización generada*",
        "",
        f"*Cliente:* {quote.get('cliente', '')}",
        f"*Vehículo:* {quote.get('vehiculo', '')}",
        f"*Pieza:* {quote.get('pieza', '')}",
        f"*Precio:* ${precio:,}",
        f"*Disponibilidad:* {quote.get('disponibilidad', '')}",
        f"*Garantía:* {quote.get('garantia', '')}",
        f"*Tiempo de entrega:* {quote.get('tiempoEntrega', '')}",
    ]
    if quote.get("referencia"):
        lines.append(f"*Referencia:* {quote['referencia']}")
    for alt in quote.get("alternativas") or []:
        lines.append(f"  • {alt['marca']} ({alt['calidad']}): ${alt['precio']:,}")
    lines.extend(["", "¿Te interesa alguna de estas opciones?"])
    return "\n".join(lines)


_DEFAULT_SUCCESS: dict[str, str] = {
    "recopilar_dato_cliente": "✅ Información guardada correctamente.",
    "guardar_info_vehiculo": "✅ Información del vehículo guardada correctamente.",
    "guardar_info_cliente": "✅ Información del cliente guardada correctamente.",
    "guardar_informacion": "✅ Información guardada correctamente.",
    "validar_datos_vehiculo": "✅ Datos del vehículo validados.",
}


def build_fallback_response(function_name: str, result: FunctionResult) -> str:
    """Reply used when the follow-up model call fails after a function ran."""
    if not result.success:
        return f"❌ Error: {result.error or 'Ocurrió un problema procesando tu solicitud.'}"

    if function_name == "generar_cotizacion":
        if result.data:
            return format_quote(result.data)
        return "✅ Cotización generada correctamente."

    if function_name == "determinar_proximo_paso":
        data = result.data or {}
        if data.get("allFieldsComplete"):
            return (
                "🎉 ¡Perfecto! Tengo toda la información necesaria. "
                "Procedamos a generar tu cotización."
            )
        if data.get("nextField"):
            return f"Perfecto. Ahora necesito saber {friendly_field_name(data['nextField'])}."
        return "👍 Continuemos recopilando la información."

    return result.message or _DEFAULT_SUCCESS.get(function_name, "✅ Operación completada.")
