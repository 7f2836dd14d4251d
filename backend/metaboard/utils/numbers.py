"""Lenient numeric parsing for values coming from Meta and Google Sheets.

Meta returns metrics as strings ("5.50"). Sheets cells are read unformatted,
so numeric cells arrive as numbers, but cells typed in as text may still hold
formatted values ("1,234", "2.5%", "S/ 5.50", "5,5"). Everything that cannot
be read as a finite number counts as 0 so that totals never turn into NaN.

Separators:
    "1,234" / "1,234.56"   comma groups thousands
    "5,5" / "12,50"        a lone comma before 1-2 trailing digits is a decimal mark
    "1.234,56"             dot groups thousands, comma is the decimal mark
"""

import math
import re
from typing import Any

_NOT_NUMERIC = re.compile(r"[^0-9.,\-]")
_DECIMAL_COMMA = re.compile(r"^-?\d+,\d{1,2}$")


def _normalize_separators(text: str) -> str:
    if "," not in text:
        return text
    if "." in text:
        if text.rfind(",") > text.rfind("."):
            return text.replace(".", "").replace(",", ".")
        return text.replace(",", "")
    if _DECIMAL_COMMA.match(text):
        return text.replace(",", ".")
    return text.replace(",", "")


def parse_number(value: Any) -> float:
    """Return value as a finite float, or 0.0 when it is missing or not numeric."""
    if value is None or isinstance(value, bool):
        return 0.0

    if isinstance(value, (int, float)):
        number = float(value)
    else:
        # Drops currency symbols/codes, percent signs and spaces
        text = _normalize_separators(_NOT_NUMERIC.sub("", str(value)))
        if not text:
            return 0.0
        try:
            number = float(text)
        except ValueError:
            return 0.0

    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def to_int(value: Any) -> int:
    return int(parse_number(value))


def to_float(value: Any, ndigits: int = 2) -> float:
    return round(parse_number(value), ndigits)
