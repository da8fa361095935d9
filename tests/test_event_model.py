import pytest

from exec_input.ecs import EcsCompatibility, FieldPaths, resolve_field_paths
from exec_input.errors import ConfigurationError, ExecInputError
from exec_input.event import Event, parse_field_reference


def test_parse_field_reference():
    assert parse_field_reference("message") == ["message"]
    assert parse_field_reference("[process][exit_code]") == ["process", "exit_code"]
    assert parse_field_reference("[@metadata][duration]") == ["@metadata", "duration"]


@pytest.mark.parametrize("reference", ["", "[a]b", "a[b]", "[a][b", "[]"])
def test_parse_field_reference_rejects_malformed(reference):
    with pytest.raises(ExecInputError):
        parse_field_reference(reference)


def test_set_and_get_nested():
    event = Event()
    event.set("[process][exit_code]", 3)
    assert event.get("[process][exit_code]") == 3
    assert event.get("[process]") == {"exit_code": 3}
    assert event.get("[process][pid]", "none") == "none"


def test_include_counts_none_values():
    event = Event()
    event.set("[@metadata][exit_status]", None)
    assert event.include("[@metadata][exit_status]")
    assert "[@metadata][exit_status]" in event
    assert not event.include("[@metadata][duration]")


def test_set_replaces_scalar_parent():
    event = Event({"host": "plain"})
    event.set("[host][name]", "box")
    assert event.get("host") == {"name": "box"}


def test_to_dict_hides_metadata():
    event = Event({"message": "hi"})
    event.set("[@metadata][duration]", 1.5)
    data = event.to_dict()
    assert data["message"] == "hi"
    assert "@timestamp" in data
    assert "@metadata" not in data


def test_tags_are_unique():
    event = Event()
    event.tag("a")
    event.tag("a")
    event.tag("b")
    assert event.get("tags") == ["a", "b"]


def test_remove():
    event = Event({"message": "x"})
    assert event.remove("message") == "x"
    assert not event.include("message")
    assert event.remove("[no][such]") is None


class TestFieldPaths:

    def test_disabled(self):
        paths = resolve_field_paths("disabled")
        assert paths == FieldPaths(
            host_name="host",
            command_line="command",
            exit_code="[@metadata][exit_status]",
            elapsed_time_nanos=None,
            legacy_duration="[@metadata][duration]",
        )

    def test_v1(self):
        paths = resolve_field_paths("v1")
        assert paths.host_name == "[host][name]"
        assert paths.command_line == "[process][command_line]"
        assert paths.exit_code == "[process][exit_code]"
        assert paths.elapsed_time_nanos == "[@metadata][input][exec][process][elapsed_time]"
        assert paths.legacy_duration is None

    def test_v8_is_v1(self):
        assert EcsCompatibility.from_setting("v8") is EcsCompatibility.V1
        assert resolve_field_paths("V8") == resolve_field_paths("v1")

    def test_default_is_disabled(self):
        assert EcsCompatibility.from_setting(None) is EcsCompatibility.DISABLED

    def test_unknown_mode(self):
        with pytest.raises(ConfigurationError):
            resolve_field_paths("v2")
