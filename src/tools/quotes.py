"""
Mock preliminary quote generator.

In production, this would query a parts catalog / inventory API for real
prices and stock. Prices here come from a keyword table adjusted by the
vehicle's model year.
"""

import logging
import unicodedata
import uuid
from datetime import datetime, timezone
from typing import Optional, TypedDict

from src.schemas.client_schema import ClientInfo

logger = logging.getLogger(__name__)

DEFAULT_BASE_PRICE = 50000

BASE_PRICES: dict[str, int] = {
    "filtro": 25000,
    "aceite": 35000,
    "pastilla": 85000,
    "disco": 120000,
    "bateria": 180000,
    "llanta": 250000,
    "amortiguador": 150000,
}

# (brand label, price multiplier, quality grade)
ALTERNATIVE_TIERS: list[tuple[str, float, str]] = [
    ("Original", 1.3, "OEM"),
    ("Genérico Premium", 0.8, "Aftermarket"),
    ("Económico", 0.6, "Compatible"),
]


class QuoteAlternative(TypedDict):
    marca: str
    precio: int
    calidad: str


class QuoteRecord(TypedDict):
    """Preliminary quote shown to the customer."""

    referencia: str
    cliente: str
    vehiculo: str
    pieza: str
    precio: int
    disponibilidad: str
    garantia: str
    tiempoEntrega: str
    fecha: str
    alternativas: list[QuoteAlternative]


_quotes: dict[str, QuoteRecord] = {}


def year_factor(year: Optional[int]) -> float:
    """Newer vehicles cost more, clamped to 0.8..1.5."""
    if not year:
        return 1.0
    return max(0.8, min(1.5, (year - 1990) / 30))


def _fold_accents(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(c for c in decomposed if not unicodedata.combining(c))


def calculate_base_price(part: str, year: Optional[int] = None) -> int:
    """Price from the first keyword found in the part description, adjusted by year."""
    price = DEFAULT_BASE_PRICE
    lowered = _fold_accents(part.lower())
    for keyword, value in BASE_PRICES.items():
        if keyword in lowered:
            price = value
            break
    return round(price * year_factor(year))


def _describe_vehicle(client_info: ClientInfo) -> str:
    vehiculo = client_info.vehiculo
    if vehiculo is None:
        return ""
    parts = [vehiculo.marca, vehiculo.modelo, vehiculo.anio, vehiculo.litraje]
    return " ".join(str(p) for p in parts if p)


def create_quote(client_info: ClientInfo, include_alternatives: bool = False) -> QuoteRecord:
    """Generate and store a quote. Caller guarantees part and vehicle are present."""
    part = client_info.pieza_necesaria or ""
    year = client_info.vehiculo.anio if client_info.vehiculo else None
    price = calculate_base_price(part, year)

    alternatives: list[QuoteAlternative] = []
    if include_alternatives:
        alternatives = [
            {"marca": label, "precio": round(price * factor), "calidad": grade}
            for label, factor, grade in ALTERNATIVE_TIERS
        ]

    ref = f"COT-{uuid.uuid4().hex[:6].upper()}"
    quote: QuoteRecord = {
        "referencia": ref,
        "cliente": client_info.nombre or "",
        "vehiculo": _describe_vehicle(client_info),
        "pieza": part,
        "precio": price,
        "disponibilidad": "En stock",
        "garantia": "6 meses",
        "tiempoEntrega": "24-48 horas",
        "fecha": datetime.now(timezone.utc).date().isoformat(),
        "alternativas": alternatives,
    }

    _quotes[ref] = quote
    logger.info("Quote created: %s for %r (%s) at %d", ref, part, quote["vehiculo"], price)
    return quote


def get_quote(ref: str) -> Optional[QuoteRecord]:
    """Retrieve a quote by reference number."""
    return _quotes.get(ref)


def reset() -> None:
    """Clear all quotes. Used by test fixtures for isolation."""
    _quotes.clear()
