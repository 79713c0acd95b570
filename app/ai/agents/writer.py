"""Writer agent: turns an approved outline into article text."""

from __future__ import annotations

import logging
import re
from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass, field

from app.ai.agents.prompts import render_conclusion_prompt, render_hook_prompt, render_section_prompt, writer_system_prompt
from app.ai.pipeline.contracts import OutlineStructure, RelatedArticle, TopicSource
from app.ai.providers.base import AIModel
from app.core.cancellation import CancellationToken

logger = logging.getLogger(__name__)

_EM_DASH_RE = re.compile(r"\s*(?:—|&mdash;|&#8212;)\s*")


def remove_em_dashes(text: str) -> str:
  """Replace em dashes with commas."""
  return _EM_DASH_RE.sub(", ", text)


def render_conclusion(outline: OutlineStructure) -> str:
  """Render the outline's conclusion without a backend call."""
  parts = ["## Conclusion"]
  if outline.conclusion.summary:
    parts.append(outline.conclusion.summary)
  if outline.conclusion.call_to_action:
    parts.append(outline.conclusion.call_to_action)
  return "\n\n".join(parts)


def assemble_article(title: str, hook: str, sections: Sequence[str], conclusion: str) -> str:
  """Join the article parts in reading order."""
  return f"# {title}\n\n{hook}\n\n" + "\n\n".join(sections) + f"\n\n{conclusion}"


@dataclass
class WriterContext:
  """Per-article inputs shared by every section call."""

  outline: OutlineStructure
  article_type: str
  tone: str
  sources: list[TopicSource] = field(default_factory=list)
  allowed_links: list[RelatedArticle] = field(default_factory=list)
  custom_instructions: str | None = None

  @property
  def system_prompt(self) -> str:
    return writer_system_prompt(article_type=self.article_type, tone=self.tone)


class WriterAgent:
  """Writes an article section by section."""

  name = "writer"

  def __init__(self, model: AIModel) -> None:
    self._model = model

  def _section_prompt(self, ctx: WriterContext, index: int, previous_sections: Sequence[str]) -> str:
    # The last two sections are enough context for transitions.
    previous_context = "\n\n".join(previous_sections[-2:])
    return render_section_prompt(ctx.outline.sections[index], previous_context=previous_context, sources=ctx.sources, allowed_links=ctx.allowed_links, custom_instructions=ctx.custom_instructions)

  async def write_section(self, ctx: WriterContext, index: int, previous_sections: Sequence[str], *, cancel_token: CancellationToken | None = None) -> str:
    """Write one section with a single backend call."""
    prompt = self._section_prompt(ctx, index, previous_sections)
    response = await self._model.generate(prompt, system=ctx.system_prompt, cancel_token=cancel_token)
    logger.debug("Wrote section %d/%d (%d chars)", index + 1, len(ctx.outline.sections), len(response.content))
    return response.content.strip()

  def stream_hook(self, ctx: WriterContext, *, cancel_token: CancellationToken | None = None) -> AsyncIterator[str]:
    return self._model.stream(render_hook_prompt(ctx.outline), system=ctx.system_prompt, cancel_token=cancel_token)

  def stream_section(self, ctx: WriterContext, index: int, previous_sections: Sequence[str], *, cancel_token: CancellationToken | None = None) -> AsyncIterator[str]:
    return self._model.stream(self._section_prompt(ctx, index, previous_sections), system=ctx.system_prompt, cancel_token=cancel_token)

  def stream_conclusion(self, ctx: WriterContext, *, cancel_token: CancellationToken | None = None) -> AsyncIterator[str]:
    return self._model.stream(render_conclusion_prompt(ctx.outline), system=ctx.system_prompt, cancel_token=cancel_token)
