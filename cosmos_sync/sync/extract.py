"""Field extraction from heterogeneous upstream payloads.

Upstream APIs name the same logical field differently, so each field is
declared with a prioritized list of candidate keys and the first present,
non-empty value wins. Nested values are addressed with dotted paths
(``"details.suffix"``) walked to a fixed depth; payload trees are never
scanned recursively.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Literal, Mapping, Sequence

MAX_PATH_DEPTH = 4

_MISSING = object()

FieldKind = Literal["str", "float", "list", "timestamp"]


def resolve_path(doc: Any, path: str | None) -> Any:
    """Return the value at dotted ``path`` or ``None`` when any segment is missing."""

    if not path:
        return doc
    parts = path.split(".")
    if len(parts) > MAX_PATH_DEPTH:
        raise ValueError(f"path '{path}' deeper than {MAX_PATH_DEPTH} segments")
    current = doc
    for part in parts:
        if not isinstance(current, Mapping) or part not in current:
            return None
        current = current[part]
    return current


def collect_items(doc: Any, path: str | None) -> List[Mapping[str, Any]]:
    """Return the mapping items at ``path``.

    A ``[]`` marker flattens one level of nesting: ``"rows[].cells"`` gathers
    the ``cells`` list of every element of ``rows``. A missing or non-list
    step yields no items.
    """

    head, marker, rest = (path or "").partition("[]")
    found = resolve_path(doc, head.strip(".") or None)
    if not isinstance(found, list):
        return []
    elements = [element for element in found if isinstance(element, Mapping)]
    rest = rest.strip(".")
    if not marker or not rest:
        return elements
    items: List[Mapping[str, Any]] = []
    for element in elements:
        items.extend(collect_items(element, rest))
    return items


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or value == [] or value == {}


def first_present(doc: Any, *keys: str) -> Any:
    for key in keys:
        value = resolve_path(doc, key)
        if not _is_empty(value):
            return value
    return None


def first_string(doc: Any, *keys: str) -> str:
    """First candidate holding a non-empty string (integers are stringified)."""

    for key in keys:
        value = resolve_path(doc, key)
        if isinstance(value, bool):
            continue
        if isinstance(value, str) and value.strip():
            return value
        if isinstance(value, int):
            return str(value)
    return ""


def coerce_float(value: Any) -> float:
    """Accept int, float and numeric strings; everything else is 0.0."""

    if isinstance(value, bool) or value is None:
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return 0.0
    return 0.0


def first_float(doc: Any, *keys: str) -> float:
    return coerce_float(first_present(doc, *keys))


def parse_timestamp(value: Any) -> datetime | None:
    """Parse RFC 3339 / ISO strings or epoch seconds into an aware UTC datetime."""

    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)
    return None


def first_timestamp(doc: Any, *keys: str) -> datetime | None:
    for key in keys:
        parsed = parse_timestamp(resolve_path(doc, key))
        if parsed is not None:
            return parsed
    return None


@dataclass(slots=True, frozen=True)
class FieldSpec:
    """One logical field: candidate paths in priority order plus its kind.

    ``suffixes`` restricts string candidates to values ending with one of them
    (case-insensitive). ``item_key`` picks a key out of dict elements when the
    field is a list of objects.
    """

    name: str
    candidates: tuple[str, ...]
    kind: FieldKind = "str"
    required: bool = False
    suffixes: tuple[str, ...] = ()
    item_key: str | None = None

    def extract(self, item: Mapping[str, Any]) -> Any:
        if self.kind == "float":
            value = first_present(item, *self.candidates)
            return _MISSING if value is None else coerce_float(value)
        if self.kind == "timestamp":
            parsed = first_timestamp(item, *self.candidates)
            return _MISSING if parsed is None else parsed
        if self.kind == "list":
            return self._extract_list(item)
        return self._extract_string(item)

    def empty(self) -> Any:
        return {"str": "", "float": 0.0, "list": [], "timestamp": None}[self.kind]

    def _extract_string(self, item: Mapping[str, Any]) -> Any:
        for key in self.candidates:
            value = first_string(item, key)
            if not value:
                continue
            if self.suffixes and not value.lower().endswith(self.suffixes):
                continue
            return value
        return _MISSING

    def _extract_list(self, item: Mapping[str, Any]) -> Any:
        for key in self.candidates:
            value = resolve_path(item, key)
            if not isinstance(value, list):
                continue
            values: List[str] = []
            for element in value:
                if isinstance(element, Mapping) and self.item_key:
                    element = element.get(self.item_key)
                if isinstance(element, str) and element:
                    values.append(element)
            if values:
                return values
        return _MISSING


@dataclass(slots=True)
class PayloadSchema:
    """Declared shape of one upstream integration.

    ``items_path`` is the exact dotted path to the list of items (``None``
    when the payload itself is the item list); ``[]`` inside the path
    flattens nested lists (see :func:`collect_items`). Items missing a
    required field are dropped; a missing or non-list ``items_path`` yields
    no items.
    """

    name: str
    fields: Sequence[FieldSpec]
    items_path: str | None = None
    finalize: Callable[[Dict[str, Any]], Dict[str, Any]] | None = field(default=None, repr=False)

    def items(self, payload: Any) -> List[Mapping[str, Any]]:
        return collect_items(payload, self.items_path)

    def match_item(self, item: Mapping[str, Any]) -> Dict[str, Any] | None:
        matched: Dict[str, Any] = {}
        for spec in self.fields:
            value = spec.extract(item)
            if value is _MISSING:
                if spec.required:
                    return None
                value = spec.empty()
            matched[spec.name] = value
        if self.finalize is not None:
            matched = self.finalize(matched)
        return matched

    def match(self, payload: Any) -> List[Dict[str, Any]]:
        results = []
        for item in self.items(payload):
            matched = self.match_item(item)
            if matched is not None:
                results.append(matched)
        return results


__all__ = [
    "FieldSpec",
    "MAX_PATH_DEPTH",
    "PayloadSchema",
    "coerce_float",
    "collect_items",
    "first_float",
    "first_present",
    "first_string",
    "first_timestamp",
    "parse_timestamp",
    "resolve_path",
]
