"""Parsing of user-supplied quiz identifiers."""

from __future__ import annotations

import re
from typing import Optional

from .errors import MissingParameter, NotANumber

_LEADING_INT = re.compile(r"\s*([+-]?[0-9]+)")


def validate_id(raw: Optional[str]) -> int:
    """Return the integer at the start of ``raw``.

    Anything after the leading digits is ignored, so ``"7.9"`` and ``"7th"``
    both give ``7``.
    """

    if raw is None:
        raise MissingParameter("id")
    match = _LEADING_INT.match(raw)
    if match is None:
        raise NotANumber(raw)
    return int(match.group(1))
