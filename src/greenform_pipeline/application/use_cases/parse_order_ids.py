from __future__ import annotations

import re

from greenform_pipeline.domain.errors import ValidationError

# Commas, spaces and newlines all separate identifiers
_DELIMITERS = re.compile(r"[,\s]+")


def parse_order_ids(raw_input: str | None) -> list[str]:
    """Splits free-form batch input into order identifiers.

    Empty entries are dropped and repeated identifiers are kept once, at the
    position of their first occurrence. Identifiers are case-sensitive and not
    otherwise validated.

    Raises:
        ValidationError: if no identifier remains.
    """
    tokens = (t.strip() for t in _DELIMITERS.split(raw_input or ""))
    order_ids = list(dict.fromkeys(t for t in tokens if t))
    if not order_ids:
        raise ValidationError("Please enter at least one valid Order ID")
    return order_ids
