"""
Field naming strategy.

Annotation fields land in different places depending on whether ECS
compatibility is enabled. Paths are resolved once, before the input starts
running, and handed to the run executor as a FieldPaths value.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from exec_input.errors import ConfigurationError


class EcsCompatibility(str, Enum):
    """Supported ECS compatibility modes."""
    DISABLED = "disabled"
    V1 = "v1"

    @classmethod
    def from_setting(cls, value) -> "EcsCompatibility":
        """
        Resolve a configured mode name.

        "v8" is accepted as an alias of "v1" since the exec fields did not
        change between the two schema versions.
        """
        if isinstance(value, cls):
            return value
        name = str(value or "disabled").strip().lower()
        if name == "v8":
            name = "v1"
        try:
            return cls(name)
        except ValueError:
            raise ConfigurationError(
                f"Unsupported ecs_compatibility '{value}' "
                f"(expected one of: disabled, v1, v8)"
            )


@dataclass(frozen=True)
class FieldPaths:
    """Where each annotation is written; None means not written at all."""
    host_name: str
    command_line: str
    exit_code: str
    elapsed_time_nanos: Optional[str]
    legacy_duration: Optional[str]


_FIELD_PATHS = {
    EcsCompatibility.DISABLED: FieldPaths(
        host_name="host",
        command_line="command",
        exit_code="[@metadata][exit_status]",
        elapsed_time_nanos=None,
        legacy_duration="[@metadata][duration]",
    ),
    EcsCompatibility.V1: FieldPaths(
        host_name="[host][name]",
        command_line="[process][command_line]",
        exit_code="[process][exit_code]",
        elapsed_time_nanos="[@metadata][input][exec][process][elapsed_time]",
        legacy_duration=None,
    ),
}


def resolve_field_paths(mode) -> FieldPaths:
    """Get the annotation field paths for an ECS compatibility setting."""
    return _FIELD_PATHS[EcsCompatibility.from_setting(mode)]
