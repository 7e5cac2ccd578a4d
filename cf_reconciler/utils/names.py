from __future__ import annotations

from typing import Iterable, List, Optional

APEX_MARKER = "@"


def normalize_zone_name(zone_name: Optional[str]) -> str:
    if not zone_name or not zone_name.strip():
        return ""
    return zone_name.strip().rstrip(".")


def is_root_record_name(record_name: Optional[str], zone_name: Optional[str]) -> bool:
    zone = normalize_zone_name(zone_name)
    if not zone:
        return False
    if not record_name or not record_name.strip():
        return True
    name = record_name.strip()
    if name == APEX_MARKER:
        return True
    return name.rstrip(".").lower() == zone.lower()


def normalize_record_name(record_name: Optional[str], zone_name: Optional[str]) -> str:
    """
    Return the fully-qualified name of a record under its zone.

    "@", blank and the bare zone name all map to the zone apex; names already
    ending in ".<zone>" are kept; anything else gets ".<zone>" appended.
    Applying it twice gives the same result.
    """
    zone = normalize_zone_name(zone_name)

    if not record_name or not record_name.strip() or record_name.strip() == APEX_MARKER:
        return zone

    trimmed = record_name.strip().rstrip(".")

    if trimmed.lower() == zone.lower():
        return zone

    if zone and trimmed.lower().endswith(f".{zone.lower()}"):
        return trimmed

    return f"{trimmed}.{zone}" if zone else trimmed


def unique_casefold(values: Iterable[str]) -> List[str]:
    """Drop blanks and case-insensitive duplicates, keeping first-seen order."""
    seen = set()
    out: List[str] = []
    for value in values:
        if not value:
            continue
        key = value.lower()
        if key in seen:
            continue
        seen.add(key)
        out.append(value)
    return out


def record_lookup_names(record_name: Optional[str], zone_name: Optional[str]) -> List[str]:
    """
    Candidate names for finding an existing record, most specific first:
    the canonical name, the raw input without its trailing dot, and the
    bare zone for apex records.
    """
    zone = normalize_zone_name(zone_name)
    candidates = [normalize_record_name(record_name, zone_name)]

    if record_name and record_name.strip():
        candidates.append(record_name.strip().rstrip("."))

    if is_root_record_name(record_name, zone_name):
        candidates.append(zone)

    return unique_casefold(candidates)


def security_rule_reference(reference: Optional[str], name: Optional[str]) -> str:
    if reference and reference.strip():
        return reference.strip()
    if name and name.strip():
        return name.strip()
    return ""


def security_rule_descriptions(name: Optional[str], description: Optional[str]) -> List[str]:
    return unique_casefold(
        value.strip() for value in (name, description) if value and value.strip()
    )
