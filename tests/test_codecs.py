import pytest

from exec_input.codecs import (
    JSON_PARSE_FAILURE_TAG,
    JsonCodec,
    LineCodec,
    PlainCodec,
    get_codec
)
from exec_input.errors import ConfigurationError, DecodeError


def test_plain_keeps_whole_output():
    events = list(PlainCodec().decode(b"line one\nline two\n"))
    assert len(events) == 1
    assert events[0].get("message") == "line one\nline two\n"


def test_plain_empty_output_still_yields_event():
    events = list(PlainCodec().decode(b""))
    assert [e.get("message") for e in events] == [""]


def test_plain_replaces_undecodable_bytes():
    events = list(PlainCodec().decode(b"caf\xe9"))
    assert events[0].get("message") == "caf�"


def test_unknown_charset_raises_decode_error():
    codec = PlainCodec(charset="no-such-charset")
    with pytest.raises(DecodeError, match="no-such-charset"):
        list(codec.decode(b"hello"))


def test_line_splits_output():
    events = list(LineCodec().decode(b"a\nb\n\nc"))
    assert [e.get("message") for e in events] == ["a", "b", "", "c"]


def test_line_empty_output():
    assert list(LineCodec().decode(b"")) == []


def test_json_object():
    events = list(JsonCodec().decode(b'{"load": 0.5, "message": "ok"}'))
    assert len(events) == 1
    assert events[0].get("load") == 0.5
    assert events[0].get("message") == "ok"


def test_json_array():
    events = list(JsonCodec().decode(b'[{"n": 1}, {"n": 2}]'))
    assert [e.get("n") for e in events] == [1, 2]


def test_json_parse_failure_is_tagged():
    events = list(JsonCodec().decode(b"not json"))
    assert len(events) == 1
    assert events[0].get("message") == "not json"
    assert events[0].get("tags") == [JSON_PARSE_FAILURE_TAG]


def test_json_scalar_is_tagged():
    events = list(JsonCodec().decode(b"42"))
    assert events[0].get("message") == "42"
    assert JSON_PARSE_FAILURE_TAG in events[0].get("tags")


def test_json_blank_output():
    assert list(JsonCodec().decode(b"  \n")) == []


def test_decode_is_lazy():
    decoded = LineCodec().decode(b"a\nb\n")
    assert next(decoded).get("message") == "a"


def test_get_codec():
    assert isinstance(get_codec("plain"), PlainCodec)
    assert isinstance(get_codec("LINE"), LineCodec)
    assert isinstance(get_codec(None), PlainCodec)
    assert get_codec("json", charset="latin-1").charset == "latin-1"
    with pytest.raises(ConfigurationError):
        get_codec("xml")
