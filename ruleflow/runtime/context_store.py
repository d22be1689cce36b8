"""
Context Store - the mutable data scope threaded through one workflow run.

The store wraps a plain nested dict and adds dotted-path access:

    store = ContextStore({"user": {"tags": ["a", "b"]}})
    store.resolve("user.tags[1]")        # "b"
    store.resolve("user.missing.deep")   # MISSING
    store.assign("profile.emails[0]", "x@example.com")
    # -> {"profile": {"emails": ["x@example.com"]}}

Two sub-namespaces are reserved for the engine:
- ``__templates[node_id][key]``   rendered template output of action nodes
- ``__actionResults[node_id]``    return value of the action executor
"""

import copy
import re
from collections.abc import Iterator, MutableMapping
from typing import Any

TEMPLATES_KEY = "__templates"
ACTION_RESULTS_KEY = "__actionResults"

# foo, [0], ["quoted.key"] / ['quoted.key']
_PATH_TOKEN = re.compile(r"\[(\d+)\]|\[\"([^\"]*)\"\]|\['([^']*)'\]|([^.\[\]]+)")


class _Missing:
    """Marker for a path that does not resolve (the ``undefined`` of the context)."""

    _instance: "_Missing | None" = None

    def __new__(cls) -> "_Missing":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "MISSING"

    def __copy__(self) -> "_Missing":
        return self

    def __deepcopy__(self, memo: dict) -> "_Missing":
        return self


MISSING: Any = _Missing()


def parse_path(path: str) -> list[str | int]:
    """Split a dotted path into keys and list indices.

    ``"a.b[0].c"`` yields ``["a", "b", 0, "c"]``; ``"a.b.0.c"`` yields
    ``["a", "b", "0", "c"]``. Bare digit segments stay strings and act as
    indices only when the container they address is a list.
    """
    tokens: list[str | int] = []
    for match in _PATH_TOKEN.finditer(path):
        index, double_quoted, single_quoted, name = match.groups()
        if index is not None:
            tokens.append(int(index))
        elif double_quoted is not None:
            tokens.append(double_quoted)
        elif single_quoted is not None:
            tokens.append(single_quoted)
        else:
            tokens.append(name)
    return tokens


def _is_index(token: str | int) -> bool:
    return isinstance(token, int) or (isinstance(token, str) and token.isdigit())


def _step(container: Any, token: str | int) -> Any:
    if isinstance(container, dict):
        return container.get(token if isinstance(token, str) else str(token), MISSING)
    if isinstance(container, list | tuple):
        if not _is_index(token):
            return MISSING
        position = int(token)
        return container[position] if position < len(container) else MISSING
    return MISSING


def resolve_path(data: Any, path: str) -> Any:
    """Read ``path`` from ``data``; any missing segment yields MISSING."""
    tokens = parse_path(path)
    if not tokens:
        return MISSING
    current = data
    for token in tokens:
        current = _step(current, token)
        if current is MISSING:
            return MISSING
    return current


def _put(container: dict | list, token: str | int, value: Any) -> None:
    if isinstance(container, dict):
        container[token if isinstance(token, str) else str(token)] = value
        return
    if not _is_index(token):
        raise TypeError(f"Cannot set key {token!r} on a list")
    position = int(token)
    if position >= len(container):
        container.extend([None] * (position + 1 - len(container)))
    container[position] = value


def assign_path(data: dict, path: str, value: Any) -> None:
    """Write ``value`` at ``path``, creating intermediate dicts/lists as needed.

    A list is created when the next segment is an index, a dict otherwise.
    Existing scalars on the way are replaced by the new container.
    """
    tokens = parse_path(path)
    if not tokens:
        raise ValueError(f"Invalid context path: {path!r}")

    current: dict | list = data
    for token, next_token in zip(tokens, tokens[1:], strict=False):
        child = _step(current, token)
        if not isinstance(child, dict | list):
            child = [] if _is_index(next_token) else {}
            _put(current, token, child)
        current = child
    _put(current, tokens[-1], value)


class ContextStore(MutableMapping):
    """
    Mutable key-value scope for a single run.

    Behaves like a dict at the top level (executors may index it directly) and
    offers ``resolve``/``assign`` for dotted paths. The initial context is
    deep-copied so the caller's data is never mutated.
    """

    def __init__(self, initial: dict[str, Any] | None = None):
        self._data: dict[str, Any] = copy.deepcopy(dict(initial or {}))
        self._data[TEMPLATES_KEY] = {}
        self._data[ACTION_RESULTS_KEY] = {}

    # MutableMapping protocol

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self._data[key] = value

    def __delitem__(self, key: str) -> None:
        del self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"ContextStore({self._data!r})"

    # Path access

    def resolve(self, path: str) -> Any:
        """Return the value at ``path`` or MISSING."""
        return resolve_path(self._data, path)

    def assign(self, path: str, value: Any) -> None:
        """Set the value at ``path``, auto-creating intermediate containers."""
        assign_path(self._data, path, value)

    # Reserved namespaces

    def set_templates(self, node_id: str, rendered: dict[str, str]) -> None:
        self._data[TEMPLATES_KEY][node_id] = rendered

    def set_action_result(self, node_id: str, result: Any) -> None:
        self._data[ACTION_RESULTS_KEY][node_id] = result

    def get_template(self, node_id: str, key: str) -> Any:
        """Rendered template ``key`` of a previously executed action node."""
        templates = self._data.get(TEMPLATES_KEY) or {}
        return (templates.get(node_id) or {}).get(key, MISSING)

    def get_result(self, node_id: str) -> Any:
        """Executor result of a previously executed action node."""
        results = self._data.get(ACTION_RESULTS_KEY) or {}
        return results.get(node_id, MISSING)

    # Views

    @property
    def data(self) -> dict[str, Any]:
        """The live underlying dict."""
        return self._data

    def snapshot(self) -> dict[str, Any]:
        """Deep copy of the current state."""
        return copy.deepcopy(self._data)
