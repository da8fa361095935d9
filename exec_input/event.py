"""
Structured events produced from command output.

Fields are addressed either by a bare name ("message") or by a bracketed
field reference ("[process][exit_code]"). The "@metadata" subtree travels
with the event but is left out of its serialized form.
"""

import copy
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from exec_input.errors import ExecInputError

TIMESTAMP_FIELD = "@timestamp"
METADATA_FIELD = "@metadata"
MESSAGE_FIELD = "message"
TAGS_FIELD = "tags"

_REFERENCE_PART = re.compile(r"\[([^\[\]]+)\]")


def parse_field_reference(reference: str) -> List[str]:
    """
    Split a field reference into its path components.

    Args:
        reference: "name" or "[outer][inner]" style reference

    Returns:
        List of keys from the outermost to the innermost field

    Raises:
        ExecInputError: If the reference is empty or malformed
    """
    if not reference:
        raise ExecInputError("Field reference cannot be empty")

    if not reference.startswith("["):
        if "[" in reference or "]" in reference:
            raise ExecInputError(f"Invalid field reference: {reference}")
        return [reference]

    parts = _REFERENCE_PART.findall(reference)
    if not parts or "".join(f"[{p}]" for p in parts) != reference:
        raise ExecInputError(f"Invalid field reference: {reference}")
    return parts


class Event:
    """A single structured event, backed by a nested dict."""

    def __init__(self, data: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = dict(data or {})
        self._data.setdefault(
            TIMESTAMP_FIELD,
            datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
        )
        self._data.setdefault(METADATA_FIELD, {})

    def get(self, reference: str, default: Any = None) -> Any:
        node: Any = self._data
        for key in parse_field_reference(reference):
            if not isinstance(node, dict) or key not in node:
                return default
            node = node[key]
        return node

    def set(self, reference: str, value: Any):
        path = parse_field_reference(reference)
        node = self._data
        for key in path[:-1]:
            child = node.get(key)
            if not isinstance(child, dict):
                child = {}
                node[key] = child
            node = child
        node[path[-1]] = value

    def include(self, reference: str) -> bool:
        """Check whether the referenced field is present (even if None)."""
        node: Any = self._data
        for key in parse_field_reference(reference):
            if not isinstance(node, dict) or key not in node:
                return False
            node = node[key]
        return True

    def remove(self, reference: str) -> Any:
        path = parse_field_reference(reference)
        node: Any = self._data
        for key in path[:-1]:
            if not isinstance(node, dict) or key not in node:
                return None
            node = node[key]
        if isinstance(node, dict):
            return node.pop(path[-1], None)
        return None

    def tag(self, value: str):
        """Append a tag, keeping tags unique."""
        tags = self._data.get(TAGS_FIELD)
        if not isinstance(tags, list):
            tags = [] if tags is None else [tags]
            self._data[TAGS_FIELD] = tags
        if value not in tags:
            tags.append(value)

    def to_dict(self) -> Dict[str, Any]:
        """Serializable copy of the event without its metadata."""
        data = copy.deepcopy(self._data)
        data.pop(METADATA_FIELD, None)
        return data

    def __contains__(self, reference: str) -> bool:
        return self.include(reference)

    def __repr__(self):
        return f"Event({self._data!r})"
