"""
Condition operators and the registry that resolves them by name.

Every operator has the shape ``operator(resolved, compare=MISSING) -> bool``
where ``resolved`` is the value read from the context store (MISSING when the
path does not exist) and ``compare`` is the leaf's ``value``. Host-supplied
operators may also return an awaitable.

Built-in operators never raise for mismatched types; they return False.
The only exception is an invalid regular expression, which surfaces as
``re.error`` like any other failure inside a host operator.
"""

import json
import math
import operator as op
import re
from collections.abc import Callable, Mapping
from typing import Any

from ruleflow.runtime.context_store import MISSING

ConditionOperator = Callable[..., Any]

ISO_UTC_DATE = re.compile(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d+)?Z")
INDEX_KEY = re.compile(r"0|[1-9]\d*")


# ---------------------------------------------------------------------------
# Value helpers
# ---------------------------------------------------------------------------


def _is_number(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def strict_equal(a: Any, b: Any) -> bool:
    """Type-aware structural equality (``True`` never equals ``1``)."""
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    if _is_number(a) and _is_number(b):
        return a == b
    if a is b:
        return True
    if isinstance(a, dict) and isinstance(b, dict):
        return a.keys() == b.keys() and all(strict_equal(a[k], b[k]) for k in a)
    if isinstance(a, list | tuple) and isinstance(b, list | tuple):
        return len(a) == len(b) and all(strict_equal(x, y) for x, y in zip(a, b, strict=True))
    return type(a) is type(b) and a == b


def type_tag(value: Any) -> str:
    """JSON-style runtime type name used by the ``type`` operators."""
    if value is MISSING:
        return "undefined"
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if _is_number(value):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list | tuple):
        return "array"
    if callable(value):
        return "function"
    return "object"


def _text(value: Any) -> str:
    if value is MISSING:
        return "undefined"
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _includes(collection: Any, value: Any) -> bool:
    if isinstance(collection, str):
        return isinstance(value, str) and value in collection
    if isinstance(collection, dict):
        collection = list(collection.values())
    if isinstance(collection, list | tuple | set | frozenset):
        return any(strict_equal(item, value) for item in collection)
    return False


def _compare(a: Any, b: Any, fn: Callable[[Any, Any], bool]) -> bool:
    try:
        return bool(fn(a, b))
    except TypeError:
        return False


def _length(value: Any) -> int | None:
    # Mappings have no length
    if isinstance(value, str | list | tuple):
        return len(value)
    return None


def _bounds(value: Any) -> tuple[Any, Any] | None:
    if isinstance(value, list | tuple) and len(value) == 2:
        return value[0], value[1]
    return None


def is_match(obj: Any, source: Any) -> bool:
    """Partial deep match: every key of ``source`` must match in ``obj``.

    Nested dicts match as subsets and nested lists match when each expected
    element is found somewhere in the actual list (order ignored).
    """
    if isinstance(source, dict):
        if not isinstance(obj, dict):
            return False
        return all(key in obj and is_match(obj[key], value) for key, value in source.items())
    if isinstance(source, list | tuple):
        if not isinstance(obj, list | tuple) or len(source) > len(obj):
            return False
        return all(any(is_match(item, expected) for item in obj) for expected in source)
    return strict_equal(obj, source)


def _parse_json(value: Any) -> tuple[bool, Any]:
    """Parse ``value`` as JSON text; scalars are parsed from their text form."""
    if value is MISSING or isinstance(value, dict | list | tuple):
        return False, None
    if not isinstance(value, str | bytes | bytearray):
        value = _text(value)
    try:
        return True, json.loads(value)
    except ValueError:
        return False, None


def _truthy(value: Any) -> bool:
    """Falsy values are MISSING, None, False, zero, NaN and the empty string.

    Empty lists and dicts are truthy.
    """
    if value is MISSING or value is None:
        return False
    if isinstance(value, bool):
        return value
    if _is_number(value):
        return value != 0 and not (isinstance(value, float) and math.isnan(value))
    if isinstance(value, str):
        return value != ""
    return True


# ---------------------------------------------------------------------------
# Built-in operators
# ---------------------------------------------------------------------------


def _has_property(a: Any, b: Any = MISSING) -> bool:
    if isinstance(a, dict):
        try:
            return b in a or _text(b) in a
        except TypeError:
            return False
    if isinstance(a, str | list | tuple):
        key = _text(b)
        if key == "length":
            return True
        return INDEX_KEY.fullmatch(key) is not None and int(key) < len(a)
    return False


def _regex(a: Any, b: Any = MISSING) -> bool:
    if a is MISSING or a is None or not isinstance(b, str):
        return False
    return re.search(b, _text(a)) is not None


def _starts_with(a: Any, b: Any = MISSING) -> bool:
    text = "" if a is MISSING or a is None else _text(a)
    target = "" if b is MISSING or b is None else _text(b)
    return text.startswith(target)


def _ends_with(a: Any, b: Any = MISSING) -> bool:
    text = "" if a is MISSING or a is None else _text(a)
    target = "" if b is MISSING or b is None else _text(b)
    return text.endswith(target)


def _between(a: Any, b: Any = MISSING) -> bool:
    bounds = _bounds(b)
    if bounds is None:
        return False
    low, high = bounds
    return _compare(a, low, op.ge) and _compare(a, high, op.le)


def _notbetween(a: Any, b: Any = MISSING) -> bool:
    bounds = _bounds(b)
    if bounds is None:
        return False
    low, high = bounds
    return _compare(a, low, op.lt) or _compare(a, high, op.gt)


def _length_compare(fn: Callable[[Any, Any], bool]) -> ConditionOperator:
    def check(a: Any, b: Any = MISSING) -> bool:
        size = _length(a)
        return size is not None and _is_number(b) and _compare(size, b, fn)

    return check


def _json(a: Any, b: Any = MISSING) -> bool:
    parsed, obj = _parse_json(a)
    if not parsed:
        return False
    if b is MISSING or b is None:
        return True
    return is_match(obj, b)


def _contains_all(a: Any, b: Any = MISSING) -> bool:
    if not isinstance(b, list | tuple):
        return False
    return all(_includes(a, item) for item in b)


def _contains_any(a: Any, b: Any = MISSING) -> bool:
    if not isinstance(b, list | tuple):
        return False
    return any(_includes(a, item) for item in b)


def _array_equal(a: Any, b: Any = MISSING) -> bool:
    # Containment only: [1, 1, 2] equals [1, 2, 2].
    if not isinstance(a, list | tuple) or not isinstance(b, list | tuple):
        return False
    return len(a) == len(b) and all(_includes(b, item) for item in a)


BUILTIN_OPERATORS: dict[str, ConditionOperator] = {
    # equality
    "eq": lambda a, b=MISSING: strict_equal(a, b),
    "neq": lambda a, b=MISSING: not strict_equal(a, b),
    "ieq": lambda a, b=MISSING: _text(a).lower() == _text(b).lower(),
    # ordering
    "gt": lambda a, b=MISSING: _compare(a, b, op.gt),
    "gte": lambda a, b=MISSING: _compare(a, b, op.ge),
    "lt": lambda a, b=MISSING: _compare(a, b, op.lt),
    "lte": lambda a, b=MISSING: _compare(a, b, op.le),
    "between": _between,
    "notbetween": _notbetween,
    # string
    "contains": lambda a, b=MISSING: _includes(a, b),
    "notcontains": lambda a, b=MISSING: not _includes(a, b),
    "icontains": lambda a, b=MISSING: _text(b).lower() in _text(a).lower(),
    "startsWith": _starts_with,
    "endsWith": _ends_with,
    "regex": _regex,
    "matches": _regex,
    "empty": lambda a, b=MISSING: isinstance(a, str) and a == "",
    "notempty": lambda a, b=MISSING: not (isinstance(a, str) and a == ""),
    "isUpperCase": lambda a, b=MISSING: isinstance(a, str) and a == a.upper(),
    "isLowerCase": lambda a, b=MISSING: isinstance(a, str) and a == a.lower(),
    "isDate": lambda a, b=MISSING: isinstance(a, str) and ISO_UTC_DATE.fullmatch(a) is not None,
    "isjson": lambda a, b=MISSING: _parse_json(a)[0],
    # membership
    "in": lambda a, b=MISSING: _includes(b, a),
    "nin": lambda a, b=MISSING: not _includes(b, a),
    "containsAll": _contains_all,
    "containsAny": _contains_any,
    "arrayEqual": _array_equal,
    # type / nullness
    "type": lambda a, b=MISSING: type_tag(a) == b,
    "nottype": lambda a, b=MISSING: type_tag(a) != b,
    "null": lambda a, b=MISSING: a is None,
    "notnull": lambda a, b=MISSING: a is not None,
    "defined": lambda a, b=MISSING: a is not MISSING,
    "notdefined": lambda a, b=MISSING: a is MISSING,
    "truthy": lambda a, b=MISSING: _truthy(a),
    "falsy": lambda a, b=MISSING: not _truthy(a),
    # length
    "length": _length_compare(op.eq),
    "lengthgt": _length_compare(op.gt),
    "lengthgte": _length_compare(op.ge),
    "lengthlt": _length_compare(op.lt),
    "lengthlte": _length_compare(op.le),
    # structural
    "deepEqual": lambda a, b=MISSING: strict_equal(a, b),
    "hasProperty": _has_property,
    "json": _json,
    # boolean
    "true": lambda a, b=MISSING: a is True,
    "false": lambda a, b=MISSING: a is False,
}


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


def _check_entry(name: Any, operator: Any) -> None:
    if not isinstance(name, str) or not name.strip():
        raise ValueError(f"Operator name must be a non-empty string, got {name!r}")
    if not callable(operator):
        raise ValueError(f"Operator '{name}' is not callable")


class OperatorRegistry:
    """
    Name-keyed condition operators.

    ``register`` refuses duplicates; ``override`` is how host operators
    replace or extend the built-ins.

    Example:
        registry = OperatorRegistry.with_builtins({"even": lambda a, b=None: a % 2 == 0})
        registry.get("even")(4)  # True
    """

    def __init__(self, operators: Mapping[str, ConditionOperator] | None = None):
        self._operators: dict[str, ConditionOperator] = {}
        for name, operator in (operators or {}).items():
            self.register(name, operator)

    @classmethod
    def with_builtins(
        cls, custom: Mapping[str, ConditionOperator] | None = None
    ) -> "OperatorRegistry":
        """Built-in operators with ``custom`` layered on top by name."""
        registry = cls(BUILTIN_OPERATORS)
        for name, operator in (custom or {}).items():
            registry.override(name, operator)
        return registry

    def register(self, name: str, operator: ConditionOperator) -> None:
        _check_entry(name, operator)
        if name in self._operators:
            raise ValueError(f"Operator '{name}' is already registered")
        self._operators[name] = operator

    def override(self, name: str, operator: ConditionOperator) -> None:
        _check_entry(name, operator)
        self._operators[name] = operator

    def get(self, name: str) -> ConditionOperator | None:
        return self._operators.get(name)

    def names(self) -> list[str]:
        return list(self._operators)

    def __contains__(self, name: object) -> bool:
        return name in self._operators

    def __len__(self) -> int:
        return len(self._operators)
