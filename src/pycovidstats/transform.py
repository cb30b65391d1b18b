"""Value transform commands.

A transform command post-processes a single value before it is written
to the store. Commands are matched by prefix, case-insensitively:

* ``multiply(N)``, ``divide(N)``, ``add(N)``, ``substract(N)``
  (``subtract(N)`` is accepted as well) for arithmetic,
* ``round(N)`` rounds half-up to ``N`` decimal places,
* ``custom:<expr>`` evaluates a restricted expression against ``value``
  (see :mod:`pycovidstats._expression`),
* ``UPPERCASE`` / ``LOWERCASE`` / ``UCFIRST`` change the case of text.

Anything else leaves the value unchanged. Transforms are best-effort:
on failure the error is logged and the original value is returned.
"""

from __future__ import annotations

import logging
import operator
import re
from collections.abc import Callable
from typing import Any

from pycovidstats._expression import evaluate_expression, round_half_up
from pycovidstats.exceptions import TransformError
from pycovidstats.models._base import is_number

_logger = logging.getLogger(__name__)

_CUSTOM_RE = re.compile(r"^custom:", re.IGNORECASE)
_ARGUMENT_RE = re.compile(r"\(\s*([-+]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][-+]?\d+)?)\s*\)")


def _argument(command: str) -> int | float:
    """Extract the numeric argument between the command's brackets."""
    match = _ARGUMENT_RE.search(command)
    if match is None:
        raise TransformError(f"Missing numeric argument in {command!r}")
    text = match.group(1)
    if any(ch in text for ch in ".eE"):
        return float(text)
    return int(text)


def _to_number(value: Any) -> int | float:
    """Numeric coercion used by the arithmetic commands."""
    if is_number(value):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            return float(text)
        except ValueError as exc:
            raise TransformError(f"Value {value!r} is not numeric") from exc
    raise TransformError(f"Value {value!r} is not numeric")


def _arithmetic(op: Callable[[Any, Any], Any]) -> Callable[[str, Any], Any]:
    def apply(command: str, value: Any) -> Any:
        return op(_to_number(value), _argument(command))

    return apply


def _round(command: str, value: Any) -> Any:
    places = int(_argument(command))
    return round_half_up(_to_number(value), places)


def _custom(command: str, value: Any) -> Any:
    return evaluate_expression(_CUSTOM_RE.sub("", command, count=1), value)


def _ucfirst(text: str) -> str:
    return text[:1].upper() + text[1:].lower()


_PREFIX_COMMANDS: list[tuple[re.Pattern[str], Callable[[str, Any], Any]]] = [
    (_CUSTOM_RE, _custom),
    (re.compile(r"^multiply\(", re.IGNORECASE), _arithmetic(operator.mul)),
    (re.compile(r"^divide\(", re.IGNORECASE), _arithmetic(operator.truediv)),
    (re.compile(r"^round\(", re.IGNORECASE), _round),
    (re.compile(r"^add\(", re.IGNORECASE), _arithmetic(operator.add)),
    # "substract" is the historical spelling found in existing configurations.
    (re.compile(r"^(?:substract|subtract)\(", re.IGNORECASE), _arithmetic(operator.sub)),
]

_CASE_COMMANDS: dict[str, Callable[[str], str]] = {
    "UPPERCASE": str.upper,
    "LOWERCASE": str.lower,
    "UCFIRST": _ucfirst,
}


def transform(command: str, value: Any) -> Any:
    """Apply transform *command* to *value*.

    Returns the transformed value, or *value* unchanged when the command
    is unknown, does not apply to the value's type, or fails.
    """
    _logger.debug("Transform %r on value %r", command, value)
    try:
        for pattern, handler in _PREFIX_COMMANDS:
            if pattern.match(command):
                return handler(command, value)

        case_handler = _CASE_COMMANDS.get(command.strip().upper())
        if case_handler is not None and isinstance(value, str):
            return case_handler(value)
        return value
    except Exception as exc:  # noqa: BLE001
        _logger.error("[transform] %r failed for value %r: %s", command, value, exc)
        return value
