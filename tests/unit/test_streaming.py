"""Stream encoding, client-side reassembly and the request-scoped article generator."""

from __future__ import annotations

import json

import pytest

from app.ai.agents.writer import assemble_article
from app.core.cancellation import CancellationToken
from app.jobs.errors import NotFoundError, UpstreamError, ValidationError
from app.storage.content_repo import OutlineRecord
from app.streaming import ArticleStreamGenerator, CompleteEvent, ErrorEvent, ProgressEvent, StreamProtocolError, StreamReceiver, TokenEvent, WarningEvent, encode_event
from app.streaming.events import CompleteMetadata
from app.streaming.generator import section_percent
from tests.conftest import OUTLINE_STRUCTURE, OWNER_ID, FakeModel, InMemoryContentRepository

FULL_STREAMS = [["Hook ", "line."], ["Section one ", "body."], ["Section two ", "body."], ["## Conclusion\n\n", "Wrap up."]]


async def _collect(generator: ArticleStreamGenerator, token: CancellationToken, outline_id: str = "outline-1") -> list:
  plan = await generator.prepare(owner_id=OWNER_ID, outline_id=outline_id)
  return [event async for event in generator.events(plan, cancel_token=token)]


def test_encode_event_uses_data_lines_and_camel_case() -> None:
  encoded = encode_event(ProgressEvent(stage="section", message="Writing section 1 of 2...", percent=25, section=0, total=2, section_title="Intro"))
  assert encoded.startswith(b"data: ")
  assert encoded.endswith(b"\n\n")
  payload = json.loads(encoded[len(b"data: ") :])
  assert payload == {"type": "progress", "stage": "section", "message": "Writing section 1 of 2...", "percent": 25, "section": 0, "total": 2, "sectionTitle": "Intro"}


def test_encode_event_omits_unset_fields() -> None:
  payload = json.loads(encode_event(TokenEvent(stage="hook", content="Hi"))[len(b"data: ") :])
  assert payload == {"type": "token", "stage": "hook", "content": "Hi"}

  complete = json.loads(encode_event(CompleteEvent(article={"id": "a-1"}, metadata=CompleteMetadata(word_count=3, reading_time=1, sections_written=2, saved=True), percent=100))[len(b"data: ") :])
  assert complete["metadata"] == {"wordCount": 3, "readingTime": 1, "sectionsWritten": 2, "saved": True}


def test_section_percent_leaves_room_for_hook_and_conclusion() -> None:
  assert [section_percent(index, 2) for index in range(3)] == [25, 50, 75]
  assert section_percent(0, 1) == 33


def test_receiver_handles_reads_split_mid_line_and_mid_character() -> None:
  stream = b"".join(
    [
      encode_event(ProgressEvent(stage="hook", message="Writing introduction...", percent=0)),
      encode_event(TokenEvent(stage="hook", content="Café ")),
      encode_event(ProgressEvent(stage="section", message="Writing section 1 of 1...", percent=33, section=0, total=1)),
      encode_event(TokenEvent(stage="section", content="Body", section=0)),
      encode_event(TokenEvent(stage="conclusion", content="End.")),
    ]
  )
  receiver = StreamReceiver()
  # Split inside the two-byte encoding of the accented character.
  split_at = stream.index("é".encode()) + 1
  events = receiver.feed(stream[:split_at]) + receiver.feed(stream[split_at:])

  assert len(events) == 5
  assert receiver.hook == "Café "
  assert receiver.sections == ["Body"]
  assert receiver.conclusion == "End."
  assert receiver.progress is not None and receiver.progress.percent == 33


def test_receiver_skips_unknown_kinds_unless_strict() -> None:
  line = b'data: {"type": "heartbeat"}\n\n'
  lenient = StreamReceiver()
  assert lenient.feed(line + b": keep-alive comment\n\n") == []
  assert lenient.feed(b"data: not-json\n\n") == []

  strict = StreamReceiver(strict=True)
  with pytest.raises(StreamProtocolError):
    strict.feed(line)


def test_receiver_stops_after_error_event() -> None:
  receiver = StreamReceiver()
  receiver.feed(encode_event(ErrorEvent(message="Backend timed out.")))
  assert receiver.done
  assert receiver.error == "Backend timed out."
  assert receiver.feed(encode_event(TokenEvent(stage="hook", content="late"))) == []


@pytest.mark.anyio
async def test_receiver_consume_flushes_trailing_line_without_newline() -> None:
  async def chunks():
    yield encode_event(TokenEvent(stage="hook", content="Hello"))
    yield encode_event(WarningEvent(message="Not saved")).rstrip(b"\n")

  receiver = StreamReceiver()
  assert await receiver.consume(chunks()) is None
  assert receiver.hook == "Hello"
  assert receiver.warnings == ["Not saved"]


@pytest.mark.anyio
async def test_stream_emits_ordered_events_and_persists(content_repo: InMemoryContentRepository, approved_outline: OutlineRecord) -> None:
  model = FakeModel(streams=[list(chunks) for chunks in FULL_STREAMS])
  generator = ArticleStreamGenerator(content_repo=content_repo, model=model)

  events = await _collect(generator, CancellationToken())

  percents = [event.percent for event in events if isinstance(event, ProgressEvent | CompleteEvent)]
  assert percents == [0, 25, 50, 75, 95, 100]
  assert [event.stage for event in events if isinstance(event, ProgressEvent)] == ["hook", "section", "section", "conclusion", "saving"]
  assert [event.content for event in events if isinstance(event, TokenEvent) and event.stage == "section"] == ["Section one ", "body.", "Section two ", "body."]

  complete = events[-1]
  assert isinstance(complete, CompleteEvent)
  expected = assemble_article(OUTLINE_STRUCTURE["title"], "Hook line.", ["Section one body.", "Section two body."], "## Conclusion\n\nWrap up.")
  assert complete.article["content"] == expected
  assert complete.metadata.saved is True
  assert complete.metadata.sections_written == 2

  assert [article.content for article in content_repo.articles.values()] == [expected]
  assert len(content_repo.versions) == 1
  assert content_repo.topics["topic-1"].status == "used"

  # A client reading the wire format gets the same article back.
  receiver = StreamReceiver(strict=True)
  receiver.feed(b"".join(encode_event(event) for event in events))
  assert receiver.result is not None
  assert receiver.result.article["content"] == expected


@pytest.mark.anyio
async def test_cancelled_stream_persists_nothing(content_repo: InMemoryContentRepository, approved_outline: OutlineRecord) -> None:
  model = FakeModel(streams=[list(chunks) for chunks in FULL_STREAMS])
  generator = ArticleStreamGenerator(content_repo=content_repo, model=model)
  token = CancellationToken()
  plan = await generator.prepare(owner_id=OWNER_ID, outline_id="outline-1")

  events = []
  async for event in generator.events(plan, cancel_token=token):
    events.append(event)
    if isinstance(event, TokenEvent) and event.stage == "section":
      # The client goes away after the first section token.
      token.cancel()

  assert not any(isinstance(event, CompleteEvent | ErrorEvent) for event in events)
  assert content_repo.articles == {}
  assert content_repo.versions == []
  assert model.streams_opened == 2
  assert model.streams_closed == model.streams_opened


@pytest.mark.anyio
async def test_disconnect_after_saving_event_skips_persistence_inside_throttle_window(content_repo: InMemoryContentRepository, approved_outline: OutlineRecord) -> None:
  generator = ArticleStreamGenerator(content_repo=content_repo, model=FakeModel(streams=[list(chunks) for chunks in FULL_STREAMS]))
  disconnected = False

  async def is_disconnected() -> bool:
    return disconnected

  # Built like the writer route's token, with a window long enough that only a forced check sees the disconnect.
  token = CancellationToken(is_disconnected, reason="Client disconnected.", min_interval=3600)
  plan = await generator.prepare(owner_id=OWNER_ID, outline_id="outline-1")

  events = []
  async for event in generator.events(plan, cancel_token=token):
    events.append(event)
    if isinstance(event, ProgressEvent) and event.stage == "saving":
      disconnected = True

  assert isinstance(events[-1], ProgressEvent)
  assert events[-1].stage == "saving"
  assert token.cancelled is True
  assert content_repo.articles == {}
  assert content_repo.versions == []
  assert content_repo.topics["topic-1"].status == "pending"


@pytest.mark.anyio
async def test_upstream_failure_yields_single_error_event(content_repo: InMemoryContentRepository, approved_outline: OutlineRecord) -> None:
  model = FakeModel(streams=[["Hook."], ["Partial ", UpstreamError("Backend timed out.")]])
  generator = ArticleStreamGenerator(content_repo=content_repo, model=model)

  events = await _collect(generator, CancellationToken())

  errors = [event for event in events if isinstance(event, ErrorEvent)]
  assert [error.message for error in errors] == ["Backend timed out."]
  assert events[-1] is errors[0]
  assert not any(isinstance(event, CompleteEvent) for event in events)
  assert content_repo.articles == {}


@pytest.mark.anyio
async def test_save_failure_warns_then_completes_unsaved(content_repo: InMemoryContentRepository, approved_outline: OutlineRecord) -> None:
  content_repo.fail_article_writes = True
  model = FakeModel(streams=[list(chunks) for chunks in FULL_STREAMS])
  generator = ArticleStreamGenerator(content_repo=content_repo, model=model)

  events = await _collect(generator, CancellationToken())

  assert isinstance(events[-2], WarningEvent)
  assert "not fully saved" in events[-2].message
  complete = events[-1]
  assert isinstance(complete, CompleteEvent)
  assert complete.metadata.saved is False
  assert complete.article["title"] == OUTLINE_STRUCTURE["title"]
  assert content_repo.topics["topic-1"].status == "pending"


@pytest.mark.anyio
async def test_prepare_rejects_missing_and_unapproved_outlines(content_repo: InMemoryContentRepository, topic) -> None:
  generator = ArticleStreamGenerator(content_repo=content_repo, model=FakeModel())
  with pytest.raises(NotFoundError) as missing:
    await generator.prepare(owner_id=OWNER_ID, outline_id="missing")
  assert missing.value.code == "OUTLINE_NOT_FOUND"

  content_repo.add_outline(OutlineRecord(id="draft", user_id=OWNER_ID, topic_id=topic.id, structure=dict(OUTLINE_STRUCTURE), article_type="blog", target_length="short", tone="casual"))
  with pytest.raises(ValidationError) as unapproved:
    await generator.prepare(owner_id=OWNER_ID, outline_id="draft")
  assert unapproved.value.code == "OUTLINE_NOT_APPROVED"
