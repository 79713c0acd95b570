"""Typed events for the article token stream and their `data:` line encoding."""

from __future__ import annotations

from typing import Any, Literal

import msgspec

Stage = Literal["hook", "section", "conclusion", "saving", "complete"]

DATA_PREFIX = b"data: "
EVENT_SEPARATOR = b"\n\n"


class StreamEvent(msgspec.Struct, tag_field="type", rename="camel", omit_defaults=True, kw_only=True):
  """Base for every event; `type` carries the event kind on the wire."""


class ProgressEvent(StreamEvent, tag="progress"):
  stage: Stage
  message: str
  percent: int
  section: int | None = None
  total: int | None = None
  section_title: str | None = None


class TokenEvent(StreamEvent, tag="token"):
  stage: Stage
  content: str
  section: int | None = None


class CompleteMetadata(msgspec.Struct, rename="camel", kw_only=True):
  word_count: int
  reading_time: int
  sections_written: int
  saved: bool


class CompleteEvent(StreamEvent, tag="complete"):
  article: dict[str, Any]
  metadata: CompleteMetadata
  percent: int


class ErrorEvent(StreamEvent, tag="error"):
  message: str


class WarningEvent(StreamEvent, tag="warning"):
  message: str


AnyStreamEvent = ProgressEvent | TokenEvent | CompleteEvent | ErrorEvent | WarningEvent

EVENT_KINDS: frozenset[str] = frozenset({"progress", "token", "complete", "error", "warning"})

_encoder = msgspec.json.Encoder()
_decoder = msgspec.json.Decoder(AnyStreamEvent)


def encode_event(event: StreamEvent) -> bytes:
  """Encode one event as a `data:` line followed by a blank line."""
  return DATA_PREFIX + _encoder.encode(event) + EVENT_SEPARATOR


def decode_event(payload: bytes | str) -> AnyStreamEvent:
  """Decode and validate a JSON payload against the event union."""
  return _decoder.decode(payload)
