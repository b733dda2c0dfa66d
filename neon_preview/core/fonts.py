"""
Font Lookup
===========

Static mapping from the font ids used by the storefront configurator to
Google Fonts family names.
"""

from typing import Dict, Optional
from urllib.parse import quote_plus

DEFAULT_FONT_FAMILY = "Audiowide"

GOOGLE_FONTS_CSS_URL = "https://fonts.googleapis.com/css2"

FONT_MAP: Dict[str, str] = {
    "audiowide": "Audiowide",
    "bungee": "Bungee",
    "russoone": "Russo One",
    "fredokaone": "Fredoka One",
    "knewave": "Knewave",
    "monoton": "Monoton",
    "orbitron": "Orbitron",
    "blackopsone": "Black Ops One",
    "geostar": "Geostar",
    "kranky": "Kranky",
    "righteous": "Righteous",
    "chewy": "Chewy",
    "staatliches": "Staatliches",
    "tiltneon": "Tilt Neon",
    "luckiestguy": "Luckiest Guy",
    "creepster": "Creepster",
    "bebasneue": "Bebas Neue",
}

# Families loaded with an explicit weight axis
FONT_WEIGHTS: Dict[str, str] = {
    "Orbitron": "wght@400;600;700",
}


def resolve_font_family(font_id: Optional[str]) -> str:
    """
    Resolve a font id to its font family name.

    Args:
        font_id: Font identifier, matched case-insensitively

    Returns:
        Font family name, or the default family for unknown ids
    """
    if not font_id:
        return DEFAULT_FONT_FAMILY
    return FONT_MAP.get(font_id.strip().lower(), DEFAULT_FONT_FAMILY)


def list_fonts() -> Dict[str, str]:
    """Return a copy of the font id to family table."""
    return dict(FONT_MAP)


def google_fonts_url() -> str:
    """Build a single Google Fonts stylesheet URL covering every known family."""
    families = []
    for family in FONT_MAP.values():
        spec = quote_plus(family)
        if family in FONT_WEIGHTS:
            spec = f"{spec}:{FONT_WEIGHTS[family]}"
        families.append(f"family={spec}")
    return f"{GOOGLE_FONTS_CSS_URL}?{'&'.join(families)}&display=swap"
