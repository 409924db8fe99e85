# app/utils/bounded.py
# Size-bounded JSON for diagnostics: squeeze an arbitrary nested value under a
# character budget so it fits in a chat message, keeping the keys that matter.
#
# NOTE: every mutation re-serializes the whole document, so the cost is
# quadratic in the size of the value. Fine for the ~1 KB budgets used for
# error replies; revisit before using it on large payloads.

from __future__ import annotations

import copy
import json
from typing import Any, Iterable, List, Optional

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1

DEFAULT_MAX_LENGTH = 1000
DEFAULT_PRESERVE_KEYS = ("title", "description", "$schema", "configuration")
DEFAULT_DEPRIORITIZED_KEYS = ("description",)


def big_int_safe(value: Any) -> Any:
    """Return `value` with integers outside the int64 range replaced by their decimal string."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return str(value) if value < INT64_MIN or value > INT64_MAX else value
    if isinstance(value, dict):
        return {k: big_int_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [big_int_safe(v) for v in value]
    return value


def dumps(value: Any, *, indent: Optional[str] = "\t") -> str:
    """JSON text the way artifacts and diagnostics are written (tab indented, unicode kept)."""
    if indent is None:
        return json.dumps(big_int_safe(value), ensure_ascii=False, default=str, separators=(",", ":"))
    return json.dumps(big_int_safe(value), ensure_ascii=False, default=str, indent=indent)


def serialized_length(value: Any) -> int:
    return len(dumps(value))


class _Truncator:
    def __init__(self, root: Any, max_length: int, preserve_keys: Iterable[str], deprioritized_keys: Iterable[str]):
        self.root = root
        self.max_length = max_length
        self.preserve = set(preserve_keys)
        self.deprioritized = set(deprioritized_keys)
        self.length = serialized_length(root)

    def fits(self) -> bool:
        return self.length <= self.max_length

    def _remeasure(self) -> None:
        self.length = serialized_length(self.root)

    def walk(self, container: Any, depth: int) -> None:
        if isinstance(container, dict):
            self._walk_dict(container, depth)
        elif isinstance(container, list):
            self._walk_list(container, depth)

    def _walk_dict(self, obj: dict, depth: int) -> None:
        for key in list(obj.keys()):
            if self.fits():
                return
            if key in self.preserve:
                continue
            if depth > 0 and key in self.deprioritized and not preserved_items(obj[key], self.preserve):
                del obj[key]
                self._remeasure()
                continue
            if self._reduce(obj, key, depth) == "deleted" or self._emptied(obj[key]):
                del obj[key]
            self._remeasure()

    def _walk_list(self, items: list, depth: int) -> None:
        i = 0
        while i < len(items):
            if self.fits():
                return
            if self._reduce(items, i, depth) == "deleted" or self._emptied(items[i]):
                del items[i]
                self._remeasure()
                continue
            self._remeasure()
            i += 1

    def _emptied(self, value: Any) -> bool:
        # reduced as far as it goes and still over: drop it unless it carries a preserved key
        self._remeasure()
        return not self.fits() and not preserved_items(value, self.preserve)

    def _reduce(self, parent: Any, key: Any, depth: int) -> Optional[str]:
        value = parent[key]
        if isinstance(value, str):
            excess = self.length - self.max_length
            parent[key] = value[: max(0, len(value) - excess)]
            return None
        if isinstance(value, (dict, list)):
            # the subtree only has to give back what the whole document is still over by
            self.walk(value, depth + 1)
            return None
        return "deleted"


def truncate_object(
    value: Any,
    max_length: int = DEFAULT_MAX_LENGTH,
    preserve_keys: Iterable[str] = (),
    deprioritized_keys: Iterable[str] = (),
) -> Any:
    """
    Reduce `value` until its tab-indented JSON form is at most `max_length` characters.

    Fields are visited in insertion order and the walk stops as soon as the
    budget is met. Preserved keys are never touched (at any depth);
    deprioritized keys are dropped outright below the top level; strings lose
    exactly the overflowing suffix; nested containers are reduced recursively;
    any other scalar is dropped. A field that has been reduced as far as it
    goes while the document is still over budget is removed, unless it
    contains a preserved key. If the preserved content alone is too large
    the result is returned over budget rather than failing.

    The input is not modified. Re-applying with the same arguments is a no-op.
    """
    if serialized_length(value) <= max_length:
        return value

    if isinstance(value, str):
        excess = serialized_length(value) - max_length
        return value[: max(0, len(value) - excess)]

    if not isinstance(value, (dict, list)):
        return value

    root = copy.deepcopy(value)
    _Truncator(root, max_length, preserve_keys, deprioritized_keys).walk(root, 0)
    return root


def to_json_code_fence(
    value: Any,
    max_length: int = DEFAULT_MAX_LENGTH,
    preserve_keys: Iterable[str] = DEFAULT_PRESERVE_KEYS,
    deprioritized_keys: Iterable[str] = DEFAULT_DEPRIORITIZED_KEYS,
) -> str:
    """Bounded JSON dump wrapped in a ```json fence, ready to drop into a message."""
    reduced = truncate_object(value, max_length, preserve_keys, deprioritized_keys)
    return "\n".join(["```json", dumps(reduced), "```"])


def preserved_items(value: Any, preserve_keys: Iterable[str]) -> List[tuple]:
    """(path, value) for every preserved key found anywhere in `value`."""
    keys = set(preserve_keys)
    out: List[tuple] = []

    def _visit(node: Any, path: tuple) -> None:
        if isinstance(node, dict):
            for k, v in node.items():
                if k in keys:
                    out.append((path + (k,), v))
                else:
                    _visit(v, path + (k,))
        elif isinstance(node, list):
            for i, v in enumerate(node):
                _visit(v, path + (i,))

    _visit(value, ())
    return out
