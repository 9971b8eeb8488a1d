"""Pluggable evaluation of conditional-node and edge-guard expressions."""

from __future__ import annotations

import logging
import re
from typing import Any, Callable, Mapping, Protocol

logger = logging.getLogger(__name__)

_CONTAINS = re.compile(r"""^contains\(\s*([\w.]+)\s*,\s*["'](.*)["']\s*\)$""", re.IGNORECASE)
_EXISTS = re.compile(r"^exists\(\s*([\w.]+)\s*\)$", re.IGNORECASE)
_COMPARE = re.compile(r"""^([\w.]+)\s*(==|!=)\s*(?:["'](.*)["']|(\S+))$""")


class ConditionEvaluator(Protocol):
    """Decides whether a condition holds for the current variables."""

    def evaluate(self, expression: str, variables: Mapping[str, Any]) -> bool:
        ...


class ExpressionConditionEvaluator:
    """Evaluate the small built-in expression language.

    Supported forms::

        true | false
        contains(var, "text")      # case-insensitive substring
        exists(var)
        var == "text" | var != "text"
        not <expression>

    Anything else evaluates to ``False`` and logs a warning.
    """

    def evaluate(self, expression: str, variables: Mapping[str, Any]) -> bool:
        expr = expression.strip()
        lowered = expr.lower()

        if lowered == "true":
            return True
        if lowered == "false":
            return False
        if lowered.startswith("not "):
            return not self.evaluate(expr[4:], variables)

        match = _CONTAINS.match(expr)
        if match:
            value = variables.get(match.group(1))
            return value is not None and match.group(2).lower() in str(value).lower()

        match = _EXISTS.match(expr)
        if match:
            return variables.get(match.group(1)) is not None

        match = _COMPARE.match(expr)
        if match:
            name, op, quoted, bare = match.groups()
            expected = quoted if quoted is not None else bare
            value = variables.get(name)
            equal = value is not None and str(value) == expected
            return equal if op == "==" else not equal

        logger.warning(f"Unrecognized condition expression '{expression}', treating as false")
        return False


class CallableConditionEvaluator:
    """Adapt a plain ``(expression, variables) -> bool`` function."""

    def __init__(self, func: Callable[[str, Mapping[str, Any]], bool]) -> None:
        self._func = func

    def evaluate(self, expression: str, variables: Mapping[str, Any]) -> bool:
        return bool(self._func(expression, variables))
