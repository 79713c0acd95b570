"""Token streaming for article generation."""

from app.streaming.events import AnyStreamEvent, CompleteEvent, ErrorEvent, ProgressEvent, TokenEvent, WarningEvent, decode_event, encode_event
from app.streaming.generator import ArticleStreamGenerator
from app.streaming.receiver import StreamProtocolError, StreamReceiver

__all__ = [
  "AnyStreamEvent",
  "ArticleStreamGenerator",
  "CompleteEvent",
  "ErrorEvent",
  "ProgressEvent",
  "StreamProtocolError",
  "StreamReceiver",
  "TokenEvent",
  "WarningEvent",
  "decode_event",
  "encode_event",
]
