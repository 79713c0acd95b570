"""Client-side reconstruction of an article from its `data:` event stream."""

from __future__ import annotations

import codecs
import logging
from collections.abc import AsyncIterable

import msgspec

from app.streaming.events import EVENT_KINDS, AnyStreamEvent, CompleteEvent, ErrorEvent, ProgressEvent, TokenEvent, WarningEvent, decode_event

logger = logging.getLogger(__name__)


class StreamProtocolError(Exception):
  """Raised in strict mode for malformed lines or unknown event kinds."""


class _Envelope(msgspec.Struct):
  type: str


class StreamReceiver:
  """Rebuild hook, sections and conclusion from token events.

  Network reads may split a line (or a UTF-8 character) anywhere, so input is
  buffered until a newline arrives. Unknown event kinds are skipped unless
  `strict` is set. Once a `complete` or `error` event is seen the receiver is
  done and ignores further input.
  """

  def __init__(self, *, strict: bool = False) -> None:
    self.strict = strict
    self.hook = ""
    self.sections: list[str] = []
    self.conclusion = ""
    self.current_section: int | None = None
    self.progress: ProgressEvent | None = None
    self.result: CompleteEvent | None = None
    self.error: str | None = None
    self.warnings: list[str] = []
    self._buffer = ""
    self._decoder = codecs.getincrementaldecoder("utf-8")()

  @property
  def done(self) -> bool:
    return self.result is not None or self.error is not None

  def feed(self, chunk: bytes | str) -> list[AnyStreamEvent]:
    """Consume one network read and return the events completed by it."""
    if self.done:
      return []
    text = self._decoder.decode(chunk) if isinstance(chunk, bytes) else chunk
    self._buffer += text
    *lines, self._buffer = self._buffer.split("\n")
    return self._handle_lines(lines)

  def finish(self) -> list[AnyStreamEvent]:
    """Flush a trailing line that arrived without its newline."""
    if self.done:
      return []
    remainder = self._buffer + self._decoder.decode(b"", final=True)
    self._buffer = ""
    return self._handle_lines([remainder])

  async def consume(self, chunks: AsyncIterable[bytes | str]) -> CompleteEvent | None:
    """Feed an entire stream and return the final result, if any."""
    async for chunk in chunks:
      self.feed(chunk)
      if self.done:
        break
    else:
      self.finish()
    return self.result

  def _handle_lines(self, lines: list[str]) -> list[AnyStreamEvent]:
    events: list[AnyStreamEvent] = []
    for raw_line in lines:
      if self.done:
        break
      event = self._parse_line(raw_line.rstrip("\r"))
      if event is None:
        continue
      self._apply(event)
      events.append(event)
    return events

  def _parse_line(self, line: str) -> AnyStreamEvent | None:
    # Blank separators and comments carry no events.
    if not line.startswith("data:"):
      return None
    payload = line[len("data:") :].strip()
    if not payload:
      return None
    try:
      kind = msgspec.json.decode(payload, type=_Envelope).type
    except msgspec.MsgspecError as exc:
      if self.strict:
        raise StreamProtocolError(f"Malformed stream line: {exc}") from exc
      logger.warning("Skipping malformed stream line")
      return None
    if kind not in EVENT_KINDS:
      if self.strict:
        raise StreamProtocolError(f"Unknown stream event kind: {kind}")
      return None
    try:
      return decode_event(payload)
    except msgspec.MsgspecError as exc:
      if self.strict:
        raise StreamProtocolError(f"Invalid {kind} event: {exc}") from exc
      logger.warning("Skipping invalid %s event", kind)
      return None

  def _section_slot(self, index: int) -> int:
    while len(self.sections) <= index:
      self.sections.append("")
    return index

  def _apply(self, event: AnyStreamEvent) -> None:
    if isinstance(event, ProgressEvent):
      self.progress = event
      if event.stage == "section" and event.section is not None:
        self.current_section = self._section_slot(event.section)
    elif isinstance(event, TokenEvent):
      if event.stage == "hook":
        self.hook += event.content
      elif event.stage == "section":
        index = event.section if event.section is not None else self.current_section
        if index is None:
          index = len(self.sections)
        self.sections[self._section_slot(index)] += event.content
      elif event.stage == "conclusion":
        self.conclusion += event.content
    elif isinstance(event, CompleteEvent):
      # The server's result is canonical; drop the partial copies.
      self.result = event
      self.hook = ""
      self.sections = []
      self.conclusion = ""
      self.current_section = None
    elif isinstance(event, ErrorEvent):
      self.error = event.message
    elif isinstance(event, WarningEvent):
      self.warnings.append(event.message)
