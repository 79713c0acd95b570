"""Request-scoped article generation that forwards backend deltas as stream events."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass

from app.ai.agents.writer import WriterAgent, WriterContext, assemble_article
from app.ai.providers.base import AIModel
from app.core.cancellation import CancellationRequested, CancellationToken
from app.jobs.errors import InkwellError, ValidationError
from app.jobs.handlers.base import related_articles, require_owned
from app.jobs.handlers.writer import RELATED_ARTICLES_LIMIT, load_outline_structure, topic_sources
from app.storage.content_repo import ArticleRecord, ContentRepository, OutlineRecord, TopicRecord, VersionRecord
from app.streaming.events import AnyStreamEvent, CompleteEvent, CompleteMetadata, ErrorEvent, ProgressEvent, TokenEvent, WarningEvent
from app.utils.ids import generate_entity_id
from app.utils.text import count_words, make_excerpt, markdown_to_html, reading_time_minutes, slugify

logger = logging.getLogger(__name__)

SAVING_PERCENT = 95


def section_percent(index: int, total: int) -> int:
  """Percent announced before section `index`; hook and conclusion count as one slot each."""
  return round((index + 1) / (total + 2) * 100)


@dataclass
class StreamPlan:
  """Everything validated up front, before the response starts."""

  owner_id: str
  outline: OutlineRecord
  topic: TopicRecord | None
  context: WriterContext


class ArticleStreamGenerator:
  """Stream an article hook, sections and conclusion, then persist it once complete."""

  def __init__(self, *, content_repo: ContentRepository, model: AIModel) -> None:
    self._content_repo = content_repo
    self._agent = WriterAgent(model)

  async def prepare(self, *, owner_id: str, outline_id: str, custom_instructions: str | None = None) -> StreamPlan:
    """Load and check the outline; errors here map to HTTP responses, not stream events."""
    outline = require_owned(await self._content_repo.get_outline(outline_id), owner_id=owner_id, kind="outline", entity_id=outline_id)
    if not outline.approved:
      raise ValidationError("Outline must be approved before writing.", code="OUTLINE_NOT_APPROVED", details={"outlineId": outline.id})
    structure = load_outline_structure(outline)
    topic = await self._content_repo.get_topic(outline.topic_id)
    related = await self._content_repo.list_related_articles(user_id=owner_id, limit=RELATED_ARTICLES_LIMIT)
    context = WriterContext(outline=structure, article_type=outline.article_type, tone=outline.tone, sources=topic_sources(topic), allowed_links=related_articles(related), custom_instructions=custom_instructions)
    return StreamPlan(owner_id=owner_id, outline=outline, topic=topic, context=context)

  async def events(self, plan: StreamPlan, *, cancel_token: CancellationToken) -> AsyncIterator[AnyStreamEvent]:
    """Yield events in backend order; nothing is persisted unless generation finishes."""
    structure = plan.context.outline
    total = len(structure.sections)
    sections: list[str] = []
    try:
      yield ProgressEvent(stage="hook", message="Writing introduction...", percent=0)
      hook_parts: list[str] = []
      async for delta in self._agent.stream_hook(plan.context, cancel_token=cancel_token):
        hook_parts.append(delta)
        yield TokenEvent(stage="hook", content=delta)

      for index, section in enumerate(structure.sections):
        await cancel_token.check()
        yield ProgressEvent(stage="section", message=f"Writing section {index + 1} of {total}...", percent=section_percent(index, total), section=index, total=total, section_title=section.heading)
        parts: list[str] = []
        async for delta in self._agent.stream_section(plan.context, index, sections, cancel_token=cancel_token):
          parts.append(delta)
          yield TokenEvent(stage="section", content=delta, section=index)
        sections.append("".join(parts))

      await cancel_token.check()
      yield ProgressEvent(stage="conclusion", message="Writing conclusion...", percent=section_percent(total, total))
      conclusion_parts: list[str] = []
      async for delta in self._agent.stream_conclusion(plan.context, cancel_token=cancel_token):
        conclusion_parts.append(delta)
        yield TokenEvent(stage="conclusion", content=delta)

      # Last chance for a disconnect to stop the write; the probe must run even inside the throttle window.
      await cancel_token.check(force=True)
      yield ProgressEvent(stage="saving", message="Saving article...", percent=SAVING_PERCENT)
      await cancel_token.check(force=True)
    except CancellationRequested:
      logger.info("Article stream for outline %s cancelled after %d/%d sections", plan.outline.id, len(sections), total)
      return
    except InkwellError as exc:
      logger.warning("Article stream for outline %s failed: %s", plan.outline.id, exc.message)
      yield ErrorEvent(message=exc.message)
      return
    except Exception:  # noqa: BLE001
      logger.error("Article stream for outline %s crashed", plan.outline.id, exc_info=True)
      yield ErrorEvent(message="Article generation failed.")
      return

    content = assemble_article(structure.title, "".join(hook_parts), sections, "".join(conclusion_parts))
    word_count = count_words(content)
    reading_time = reading_time_minutes(word_count)
    draft = ArticleRecord(
      id=generate_entity_id(),
      user_id=plan.owner_id,
      outline_id=plan.outline.id,
      title=structure.title,
      slug=slugify(structure.title),
      content=content,
      content_html=markdown_to_html(content),
      excerpt=make_excerpt(content),
      article_type=plan.outline.article_type,
      status="draft",
      word_count=word_count,
      reading_time=reading_time,
      seo_keywords=list(structure.seo_keywords),
    )

    saved = False
    article_payload = draft.to_api()
    try:
      article = await self._content_repo.create_article(draft)
      saved = True
      article_payload = article.to_api()
      await self._content_repo.add_version(VersionRecord(entity_type="article", entity_id=article.id, user_id=plan.owner_id, snapshot={"title": article.title, "content": content}, edited_by="ai", change_summary="Initial draft generated by streaming writer"))
      if plan.topic is not None:
        await self._content_repo.update_topic_status(plan.topic.id, "used")
    except InkwellError as exc:
      logger.warning("Streamed article for outline %s was not fully saved: %s", plan.outline.id, exc.message)
      yield WarningEvent(message=f"Article generated but not fully saved: {exc.message}")

    metadata = CompleteMetadata(word_count=word_count, reading_time=reading_time, sections_written=len(sections), saved=saved)
    yield CompleteEvent(article=article_payload, metadata=metadata, percent=100)
