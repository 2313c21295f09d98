"""Land zoning codes and their display names."""

ZONE_CODE_TO_LABEL: dict[str, str] = {
    "R1": "General Residential",
    "R2": "Low Density Residential",
    "R3": "Medium Density Residential",
    "R4": "High Density Residential",
    "R5": "Large Lot Residential",
    "RU1": "Primary Production",
    "RU2": "Rural Landscape",
    "RU3": "Forestry",
    "RU4": "Primary Production Small Lots",
    "RU5": "Village",
    "RU6": "Transition",
    "B1": "Neighbourhood Centre",
    "B2": "Local Centre",
    "B4": "Mixed Use",
    "RE1": "Public Recreation",
    "RE2": "Private Recreation",
    "SP2": "Infrastructure",
    "E2": "Environmental Conservation",
    "E3": "Environmental Management",
    "E4": "Environmental Living",
    "UNKNOWN": "Unknown zone",
}


def zone_code(zone: str | None) -> str:
    """Reduce a zone value to its code.

    'R1 General Residential' → 'R1'
    ' r2 ' → 'R2'
    '' → 'UNKNOWN'
    """
    tokens = str(zone or "").strip().upper().split()
    return tokens[0] if tokens else "UNKNOWN"


def zone_friendly_name(code: str | None) -> str:
    """Display name for a zone code, 'Unknown zone' when not in the table."""
    key = str(code or "").strip().upper()
    if not key:
        return "Unknown zone"
    return ZONE_CODE_TO_LABEL.get(key, "Unknown zone")
