"""Input normalizers for loosely typed form and JSON fields."""

import json
from typing import Any


def array_formatter(value: Any) -> list[str]:
    """Normalize an id list sent in any of the accepted shapes.

    Accepts a list (``["a", "b"]``), a JSON-encoded list (``'["a", "b"]'``)
    or a comma-separated string (``"a,b"``). Items are stringified and
    stripped, blanks are dropped.

    Examples:
        >>> array_formatter('["a", "b"]')
        ['a', 'b']
        >>> array_formatter("a, b,")
        ['a', 'b']
        >>> array_formatter(None)
        []
    """
    if value is None:
        return []

    if isinstance(value, (list, tuple, set)):
        items = list(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return []
        try:
            parsed = json.loads(text)
        except ValueError:
            parsed = None
        if isinstance(parsed, list):
            items = parsed
        else:
            items = text.split(",")
    else:
        items = [value]

    return [str(item).strip() for item in items if item is not None and str(item).strip()]
