"""
Deed date input.

Dates are stored as ISO `yyyy-mm-dd` or NULL ("Nil"). Users type
`dd-mm-yyyy`; ISO input is accepted as well.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

NIL = "Nil"
_INPUT_FORMATS = ("%d-%m-%Y", "%Y-%m-%d")


def parse_date_input(text: str) -> Optional[str]:
    """Return the ISO date for user input, or None when it is not a valid date."""
    value = text.strip()
    for fmt in _INPUT_FORMATS:
        try:
            return datetime.strptime(value, fmt).date().isoformat()
        except ValueError:
            continue
    return None


__all__ = ["NIL", "parse_date_input"]
