"""
Decoders that turn captured command output into events.

Each codec exposes decode(data: bytes) as a generator so events are
produced lazily, one at a time, as the run executor consumes them.
"""

import json
import logging
from typing import Iterator

from exec_input.errors import ConfigurationError, DecodeError
from exec_input.event import Event, MESSAGE_FIELD

logger = logging.getLogger(__name__)

JSON_PARSE_FAILURE_TAG = "_jsonparsefailure"


class PlainCodec:
    """Whole output as a single event in the message field."""

    name = "plain"

    def __init__(self, charset: str = "utf-8"):
        self.charset = charset

    def _text(self, data: bytes) -> str:
        try:
            return data.decode(self.charset, errors="replace")
        except LookupError as e:
            raise DecodeError(f"Unknown charset '{self.charset}'") from e

    def decode(self, data: bytes) -> Iterator[Event]:
        yield Event({MESSAGE_FIELD: self._text(data)})


class LineCodec(PlainCodec):
    """One event per line of output."""

    name = "line"

    def __init__(self, charset: str = "utf-8", delimiter: str = "\n"):
        super().__init__(charset)
        self.delimiter = delimiter

    def decode(self, data: bytes) -> Iterator[Event]:
        lines = self._text(data).split(self.delimiter)
        # Trailing delimiter leaves an empty fragment that is not a line
        if lines and lines[-1] == "":
            lines.pop()
        for line in lines:
            yield Event({MESSAGE_FIELD: line})


class JsonCodec(PlainCodec):
    """
    Output parsed as JSON.

    An object becomes one event and an array one event per element.
    Unparseable output (or scalars) is kept as the message of a single
    event tagged with _jsonparsefailure.
    """

    name = "json"

    def decode(self, data: bytes) -> Iterator[Event]:
        text = self._text(data)
        if not text.strip():
            return

        try:
            parsed = json.loads(text)
        except json.JSONDecodeError as e:
            logger.warning(f"JSON parse error, original data now in message field: {e}")
            yield self._failure(text)
            return

        items = parsed if isinstance(parsed, list) else [parsed]
        for item in items:
            if isinstance(item, dict):
                yield Event(item)
            else:
                logger.warning(f"JSON value is not an object: {item!r}")
                yield self._failure(json.dumps(item))

    def _failure(self, text: str) -> Event:
        event = Event({MESSAGE_FIELD: text})
        event.tag(JSON_PARSE_FAILURE_TAG)
        return event


CODECS = {
    PlainCodec.name: PlainCodec,
    LineCodec.name: LineCodec,
    JsonCodec.name: JsonCodec,
}


def get_codec(name: str, charset: str = "utf-8"):
    """
    Build a codec by name.

    Raises:
        ConfigurationError: If no codec has that name
    """
    codec_class = CODECS.get((name or "plain").lower())
    if codec_class is None:
        raise ConfigurationError(
            f"Unknown codec '{name}' (expected one of: {', '.join(sorted(CODECS))})"
        )
    return codec_class(charset=charset)
