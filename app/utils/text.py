"""Text metrics and lightweight markdown helpers for generated articles."""

from __future__ import annotations

import html
import math
import re
from collections.abc import Iterable
from dataclasses import dataclass

WORDS_PER_MINUTE = 200
EXCERPT_MAX_CHARS = 160

_SLUG_STRIP_RE = re.compile(r"[^\w\s-]")
_SLUG_SPACE_RE = re.compile(r"[\s_]+")
_SLUG_DASH_RE = re.compile(r"-+")
_HEADING_RE = re.compile(r"^(#{1,6})\s+(.*)$")
_BOLD_RE = re.compile(r"\*\*(.+?)\*\*")
_ITALIC_RE = re.compile(r"\*(.+?)\*")
_LINK_RE = re.compile(r"\[([^\]]+)\]\(([^)\s]+)\)")
_HEADING_PREFIX_RE = re.compile(r"^#+\s+", re.MULTILINE)
_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")


@dataclass(frozen=True)
class LinkCandidate:
  """An article whose title may be referenced by newly written text."""

  article_id: str
  title: str
  slug: str


@dataclass(frozen=True)
class InternalLink:
  """A detected reference from generated text to an existing article."""

  target_article_id: str
  anchor_text: str
  context: str


def count_words(text: str) -> int:
  """Count whitespace-delimited tokens."""
  return len(text.split())


def reading_time_minutes(word_count: int) -> int:
  """Return reading time in whole minutes at 200 words per minute."""
  if word_count <= 0:
    return 0
  return math.ceil(word_count / WORDS_PER_MINUTE)


def slugify(title: str) -> str:
  """Convert a title into a URL-safe slug."""
  lowered = _SLUG_STRIP_RE.sub("", title.lower())
  dashed = _SLUG_SPACE_RE.sub("-", lowered.strip())
  return _SLUG_DASH_RE.sub("-", dashed).strip("-")


def strip_markdown(content: str) -> str:
  """Remove headings, emphasis and link syntax while keeping the visible text."""
  plain = _HEADING_PREFIX_RE.sub("", content)
  plain = _BOLD_RE.sub(r"\1", plain)
  plain = _ITALIC_RE.sub(r"\1", plain)
  return _LINK_RE.sub(r"\1", plain)


def make_excerpt(content: str, max_length: int = EXCERPT_MAX_CHARS) -> str:
  """Build a short plain-text excerpt from the first meaningful paragraph."""
  plain = strip_markdown(content)
  paragraphs = [paragraph.strip() for paragraph in plain.split("\n\n") if paragraph.strip()]
  if not paragraphs:
    return ""

  # Skip a lone title line so the excerpt starts with body text.
  first = paragraphs[0]
  if len(paragraphs) > 1 and content.lstrip().startswith("# "):
    first = paragraphs[1]

  if len(first) <= max_length:
    return first
  return first[:max_length].rstrip() + "..."


def _render_inline(text: str) -> str:
  escaped = html.escape(text, quote=False)
  escaped = _LINK_RE.sub(lambda match: f'<a href="{html.escape(match.group(2))}">{match.group(1)}</a>', escaped)
  escaped = _BOLD_RE.sub(r"<strong>\1</strong>", escaped)
  return _ITALIC_RE.sub(r"<em>\1</em>", escaped)


def markdown_to_html(markdown: str) -> str:
  """Render the small markdown subset produced by the writer into HTML."""
  blocks: list[str] = []
  for raw_block in markdown.split("\n\n"):
    block = raw_block.strip()
    if not block:
      continue

    lines = block.splitlines()
    heading = _HEADING_RE.match(lines[0])
    if heading and len(lines) == 1:
      level = len(heading.group(1))
      blocks.append(f"<h{level}>{_render_inline(heading.group(2).strip())}</h{level}>")
      continue

    if all(line.lstrip().startswith(("- ", "* ")) for line in lines):
      items = "".join(f"<li>{_render_inline(line.lstrip()[2:].strip())}</li>" for line in lines)
      blocks.append(f"<ul>{items}</ul>")
      continue

    # A heading followed by body text in one block renders as two elements.
    if heading:
      level = len(heading.group(1))
      blocks.append(f"<h{level}>{_render_inline(heading.group(2).strip())}</h{level}>")
      lines = lines[1:]

    blocks.append(f"<p>{'<br>'.join(_render_inline(line) for line in lines)}</p>")

  return "\n".join(blocks)


def extract_internal_links(content: str, candidates: Iterable[LinkCandidate]) -> list[InternalLink]:
  """Find existing article titles mentioned in generated text."""
  sentences = [sentence.strip() for sentence in _SENTENCE_SPLIT_RE.split(content)]
  links: list[InternalLink] = []
  seen: set[str] = set()
  for candidate in candidates:
    title = candidate.title.strip()
    if not title or candidate.article_id in seen:
      continue

    match = re.search(rf"\b{re.escape(title)}\b", content, flags=re.IGNORECASE)
    if match is None:
      continue

    lowered_title = title.lower()
    context = next((sentence for sentence in sentences if lowered_title in sentence.lower()), "")
    links.append(InternalLink(target_article_id=candidate.article_id, anchor_text=match.group(0), context=context))
    seen.add(candidate.article_id)

  return links
