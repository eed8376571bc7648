"""
Submission validation - checks and coerces an incoming delta map.

A submission is ``{site, data}`` where ``data`` maps counter keys to
number-like values. Validation is pure: it either returns a
:class:`Submission` with the normalized site and numeric deltas, or raises
:class:`~tally.core.errors.ValidationError` listing every violation.

Rules:
    - ``site`` must be a non-empty string (after trimming).
    - ``data`` must be a non-empty mapping of key → value.
    - Every value is coerced to a number and must be finite and > 0.
    - No key may start with the reserved ``__`` prefix.

Coercion follows loose ``Number(value)`` semantics so clients that send
``"3"`` or ``true`` keep working:

    ==============  ===================
    Input           Coerced
    ==============  ===================
    ``True``        ``1``
    ``False``       ``0``  (rejected)
    ``None``        ``0``  (rejected)
    ``" 2.5 "``     ``2.5``
    ``""``          ``0``  (rejected)
    ``"0x10"``      ``16``
    ``"1e3"``       ``1000.0``
    ``"1_000"``     ``nan`` (rejected)
    ``"abc"``       ``nan`` (rejected)
    ``"1" * 400``   ``inf`` (rejected)
    ``[1]``         ``nan`` (rejected)
    ==============  ===================

Examples:
    >>> validate_submission(" Blog ", {"views": "2"})
    Submission(site='blog', deltas={'views': 2})
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from tally.core.errors import FieldIssue, ValidationError
from tally.core.models.counters import RESERVED_PREFIX, CounterMap, Number, normalize_site

_INTEGER = re.compile(r"[+-]?[0-9]+")
_RADIX_INTEGER = re.compile(r"0(?:[xX][0-9a-fA-F]+|[oO][0-7]+|[bB][01]+)")
_DECIMAL = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")
_INFINITY = re.compile(r"[+-]?Infinity")


@dataclass(frozen=True, slots=True)
class Submission:
    """A validated submission ready to be merged."""

    site: str
    deltas: CounterMap = field(default_factory=dict)


def _int_or_infinity(number: int) -> Number:
    """Integers beyond float range count as infinite, like any float would."""
    try:
        float(number)
    except OverflowError:
        return math.inf if number > 0 else -math.inf
    return number


def coerce_number(value: Any) -> Number:
    """Coerce *value* to ``int`` / ``float``; ``nan`` when not number-like."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return _int_or_infinity(value)
    if isinstance(value, float):
        return value
    if value is None:
        return 0
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0
        if _INTEGER.fullmatch(text):
            try:
                return _int_or_infinity(int(text))
            except ValueError:
                # too many digits for int(); float() still parses it
                return float(text)
        if _RADIX_INTEGER.fullmatch(text):
            return _int_or_infinity(int(text, 0))
        if _DECIMAL.fullmatch(text) or _INFINITY.fullmatch(text):
            return float(text)
        return math.nan
    return math.nan


def validate_site(site: Any) -> str:
    """Return the normalized site or raise :class:`ValidationError`."""
    if not isinstance(site, str) or not site.strip():
        raise ValidationError("site is required", field="site", value=site)
    return normalize_site(site)


def validate_deltas(data: Any) -> CounterMap:
    """Coerce and check every value of *data*.

    Raises:
        ValidationError: With one :class:`FieldIssue` per offending key.
    """
    if not isinstance(data, Mapping) or not data:
        raise ValidationError("data must be a non-empty object", field="data")

    issues: list[FieldIssue] = []
    deltas: CounterMap = {}

    for key, raw in data.items():
        path = f"data.{key}"
        if not isinstance(key, str) or not key:
            issues.append(FieldIssue(path, "counter key must be a non-empty string"))
            continue
        if key.startswith(RESERVED_PREFIX):
            issues.append(
                FieldIssue(path, f"keys starting with {RESERVED_PREFIX!r} are reserved", "RESERVED_KEY")
            )
            continue

        number = coerce_number(raw)
        if not math.isfinite(number):
            issues.append(FieldIssue(path, "value is not a finite number", "NOT_A_NUMBER"))
        elif number <= 0:
            issues.append(FieldIssue(path, "value must be greater than 0", "NOT_POSITIVE"))
        else:
            deltas[key] = number

    if issues:
        raise ValidationError(
            f"Invalid data: {len(issues)} rejected value(s)",
            field="data",
            issues=issues,
        )
    return deltas


def validate_submission(site: Any, data: Any) -> Submission:
    """Validate a raw ``{site, data}`` pair.

    Site and data problems are reported together so a caller fixes
    everything in one round trip.
    """
    issues: list[FieldIssue] = []
    normalized = ""
    deltas: CounterMap = {}

    try:
        normalized = validate_site(site)
    except ValidationError as exc:
        issues.extend(exc.issues)
    try:
        deltas = validate_deltas(data)
    except ValidationError as exc:
        issues.extend(exc.issues)

    if issues:
        raise ValidationError("Invalid data!", issues=issues)
    return Submission(site=normalized, deltas=deltas)


__all__ = [
    "Submission",
    "coerce_number",
    "validate_site",
    "validate_deltas",
    "validate_submission",
]
