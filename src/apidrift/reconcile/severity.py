from __future__ import annotations

import re
from typing import Any, Optional

_TAXONOMY: dict[str, str] = {
    "missing_endpoint": "HIGH",
    "extra_endpoint": "HIGH",
    "method_mismatch": "HIGH",
    "schema_mismatch": "HIGH",
    "missing_field": "MEDIUM",
    "type_mismatch": "MEDIUM",
    "validation_missing": "MEDIUM",
    "minor_difference": "LOW",
}

# longest first so "missing_endpoint" wins over shorter names it might contain
_BY_LENGTH = sorted(_TAXONOMY, key=len, reverse=True)

_SEPARATORS = re.compile(r"[\s\-./]+")


def _label_key(label: str) -> str:
    return _SEPARATORS.sub("_", label.strip().lower()).strip("_")


def classify_type(label: Any) -> str:
    """
    Map an oracle divergence label onto a known type.

    Exact match first, then a known type name contained in the label
    ("missing_field_in_body" -> "missing_field"). Anything else is a minor_difference.
    """
    key = _label_key(str(label or ""))
    if key in _TAXONOMY:
        return key
    for known in _BY_LENGTH:
        if known in key:
            return known
    return "minor_difference"


def severity_for(divergence_type: str) -> str:
    return _TAXONOMY.get(divergence_type, "LOW")


def coerce_severity(value: Any) -> Optional[str]:
    """Return HIGH/MEDIUM/LOW for an explicit oracle severity, None when absent or unusable."""
    if not isinstance(value, str):
        return None
    s = value.strip().upper()
    return s if s in ("HIGH", "MEDIUM", "LOW") else None
