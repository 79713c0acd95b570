from __future__ import annotations

import json

import pytest

from app.ai.agents.outliner import parse_outline
from app.ai.agents.writer import remove_em_dashes
from app.ai.json_parser import parse_json_with_fallback
from app.ai.pipeline.contracts import TopicCandidate
from app.jobs.errors import UnsupportedOperation, UpstreamError, ValidationError
from app.jobs.inputs import normalize_job_input
from app.utils.text import InternalLink, LinkCandidate, extract_internal_links, make_excerpt, markdown_to_html, reading_time_minutes, slugify
from tests.conftest import OUTLINE_STRUCTURE


def test_slugify_strips_punctuation_and_collapses_separators() -> None:
  assert slugify("Hello, World!  Async & Python") == "hello-world-async-python"
  assert slugify("  --Already-slugged--  ") == "already-slugged"


def test_reading_time_rounds_up() -> None:
  assert [reading_time_minutes(words) for words in (0, 1, 200, 201)] == [0, 1, 1, 2]


def test_excerpt_skips_title_and_strips_markdown() -> None:
  content = "# Title\n\n**Bold** start of [the body](https://example.com).\n\nMore."
  assert make_excerpt(content) == "Bold start of the body."
  assert make_excerpt("x" * 200) == "x" * 160 + "..."
  assert make_excerpt("") == ""


def test_markdown_to_html_renders_writer_subset() -> None:
  rendered = markdown_to_html("# Title\n\nSome *text* & more.\n\n- one\n- **two**\n\n## Head\nBody line")
  assert rendered.split("\n") == ["<h1>Title</h1>", "<p>Some <em>text</em> &amp; more.</p>", "<ul><li>one</li><li><strong>two</strong></li></ul>", "<h2>Head</h2>", "<p>Body line</p>"]


def test_extract_internal_links_matches_titles_once() -> None:
  content = "Read Event Loops Explained first. Then read event loops explained again!"
  candidates = [LinkCandidate(article_id="a-1", title="Event Loops Explained", slug="event-loops-explained"), LinkCandidate(article_id="a-2", title="Missing Article", slug="missing-article")]
  assert extract_internal_links(content, candidates) == [InternalLink(target_article_id="a-1", anchor_text="Event Loops Explained", context="Read Event Loops Explained first")]


def test_remove_em_dashes_replaces_every_form() -> None:
  assert remove_em_dashes("fast — and cheap&mdash;mostly&#8212;yes") == "fast, and cheap, mostly, yes"


def test_parse_json_with_fallback_recovers_chatty_output() -> None:
  assert parse_json_with_fallback('Sure! Here it is: {"a": [1, 2,],} hope that helps') == {"a": [1, 2]}
  with pytest.raises(json.JSONDecodeError):
    parse_json_with_fallback("no json here")


def test_parse_outline_accepts_fenced_json_and_rejects_bad_shapes() -> None:
  outline = parse_outline("```json\n" + json.dumps(OUTLINE_STRUCTURE) + "\n```")
  assert outline.title == OUTLINE_STRUCTURE["title"]
  assert [section.heading for section in outline.sections] == ["Event loops in practice", "Backpressure"]
  assert outline.conclusion.call_to_action == "Profile one endpoint this week."

  with pytest.raises(UpstreamError):
    parse_outline("[1, 2, 3]")
  with pytest.raises(UpstreamError):
    parse_outline(json.dumps({"title": "No sections", "sections": []}))


def test_topic_candidate_normalizes_percent_scores() -> None:
  assert TopicCandidate.model_validate({"title": "A", "relevanceScore": 85}).relevance_score == pytest.approx(0.85)
  assert TopicCandidate.model_validate({"title": "B", "relevanceScore": 0.4}).relevance_score == pytest.approx(0.4)


def test_normalize_job_input_returns_camel_case_payload() -> None:
  payload = normalize_job_input("generate_outline", {"topic_id": "t-1", "article_type": "tutorial", "target_length": "long", "tone": "friendly"})
  assert payload == {"topicId": "t-1", "articleType": "tutorial", "targetLength": "long", "tone": "friendly"}
  assert normalize_job_input("edit_article", {"articleId": "a-1"}) == {"articleId": "a-1"}


@pytest.mark.parametrize(
  ("job_type", "payload"),
  [
    ("research_topics", {"keywords": ["  "]}),
    ("research_topics", {"industry": "fintech", "maxTopics": 50}),
    ("write_article", {"outlineId": "o-1", "unexpected": True}),
    ("write_article", {"outlineId": "o-1", "customInstructions": "x" * 2001}),
    ("write_article", ["o-1"]),
    ("edit_article", {"articleId": ""}),
  ],
)
def test_normalize_job_input_rejects_invalid_payloads(job_type: str, payload: object) -> None:
  with pytest.raises(ValidationError) as exc_info:
    normalize_job_input(job_type, payload)
  assert exc_info.value.code == "INVALID_JOB_INPUT"


def test_normalize_job_input_rejects_unknown_type() -> None:
  with pytest.raises(UnsupportedOperation):
    normalize_job_input("publish_article", {})
