"""Field normalizers shared by the function handlers and the channel bridge."""

import re
from typing import Optional

BRAND_ALIASES: dict[str, str] = {
    "toyota": "Toyota",
    "honda": "Honda",
    "ford": "Ford",
    "chevrolet": "Chevrolet",
    "chevy": "Chevrolet",
    "nissan": "Nissan",
    "hyundai": "Hyundai",
    "kia": "Kia",
    "mazda": "Mazda",
    "volkswagen": "Volkswagen",
    "vw": "Volkswagen",
    "bmw": "BMW",
    "mercedes": "Mercedes-Benz",
    "mercedes benz": "Mercedes-Benz",
    "mercedes-benz": "Mercedes-Benz",
    "audi": "Audi",
    "seat": "SEAT",
    "gmc": "GMC",
    "mitsubishi": "Mitsubishi",
    "suzuki": "Suzuki",
}

# Tried in order; "16" must hit the two-digit form before anything else.
_ENGINE_PATTERNS = (
    re.compile(r"^(\d)\.(\d)l?$"),
    re.compile(r"^(\d)(\d)l?$"),
    re.compile(r"^(\d)\.?l?$"),
)


def normalize_phone(value: str) -> str:
    """Normalize a phone number by stripping everything except digits and a leading +.

    Examples:
        >>> normalize_phone("55 1234 5678")
        '5512345678'
        >>> normalize_phone("+52 (55) 1234-5678")
        '+525512345678'
    """
    value = value.strip()
    if value.startswith("+"):
        return "+" + re.sub(r"[^\d]", "", value[1:])
    return re.sub(r"[^\d]", "", value)


def normalize_brand(value: str) -> str:
    """Canonicalize a vehicle brand, title-casing anything not in the alias table.

    Examples:
        >>> normalize_brand("vw")
        'Volkswagen'
        >>> normalize_brand("  CHEVY ")
        'Chevrolet'
        >>> normalize_brand("land rover")
        'Land Rover'
    """
    cleaned = " ".join(value.split())
    return BRAND_ALIASES.get(cleaned.lower(), cleaned.title())


def normalize_engine_size(value: str) -> Optional[str]:
    """Normalize an engine displacement to ``"<d.d>L"``, or None if unrecognized.

    Examples:
        >>> normalize_engine_size("1.6")
        '1.6L'
        >>> normalize_engine_size("16")
        '1.6L'
        >>> normalize_engine_size("2.0 litros")
        '2.0L'
        >>> normalize_engine_size("abc") is None
        True
    """
    cleaned = re.sub(r"[^0-9.l]", "", value.lower())
    for index, pattern in enumerate(_ENGINE_PATTERNS):
        match = pattern.match(cleaned)
        if not match:
            continue
        if index == 2:
            return f"{match.group(1)}.0L"
        return f"{match.group(1)}.{match.group(2)}L"
    return None
