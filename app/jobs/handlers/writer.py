"""Job handler that writes a full article from an approved outline."""

from __future__ import annotations

import logging
from typing import Any, cast

from pydantic import ValidationError as PydanticValidationError

from app.ai.agents.writer import WriterAgent, WriterContext, assemble_article, remove_em_dashes, render_conclusion
from app.ai.pipeline.contracts import OutlineStructure, TopicSource
from app.ai.providers.base import AIModel
from app.jobs.errors import ValidationError
from app.jobs.handlers.base import link_candidates, related_articles, require_owned
from app.jobs.inputs import WriteArticleInput, parse_job_input
from app.jobs.models import JobRecord
from app.jobs.progress import JobProgressTracker
from app.storage.content_repo import ArticleLinkRecord, ArticleRecord, ContentRepository, OutlineRecord, TopicRecord, VersionRecord
from app.utils.ids import generate_entity_id
from app.utils.text import count_words, extract_internal_links, make_excerpt, markdown_to_html, reading_time_minutes, slugify

logger = logging.getLogger(__name__)

RELATED_ARTICLES_LIMIT = 15
SECTIONS_START = 30
SECTIONS_END = 70


def load_outline_structure(outline: OutlineRecord) -> OutlineStructure:
  """Validate the stored outline structure before any generation."""
  try:
    return OutlineStructure.model_validate(outline.structure)
  except PydanticValidationError as exc:
    raise ValidationError(f"Outline {outline.id} has an invalid structure.", code="INVALID_OUTLINE", details={"errors": exc.error_count()}) from exc


def topic_sources(topic: TopicRecord | None) -> list[TopicSource]:
  if topic is None:
    return []
  sources: list[TopicSource] = []
  for raw in topic.sources:
    if isinstance(raw, dict) and raw.get("url"):
      sources.append(TopicSource.model_validate(raw))
  return sources


class WriteArticleHandler:
  """Write an article section by section, then persist it with links and history."""

  failure_code = "ARTICLE_WRITING_FAILED"

  def __init__(self, *, content_repo: ContentRepository, model: AIModel) -> None:
    self._content_repo = content_repo
    self._agent = WriterAgent(model)

  async def run(self, job: JobRecord, tracker: JobProgressTracker) -> dict[str, Any]:
    params = cast(WriteArticleInput, parse_job_input("write_article", job.input))

    await tracker.report(0, "Fetching outline...")
    outline = require_owned(await self._content_repo.get_outline(params.outline_id), owner_id=job.owner_id, kind="outline", entity_id=params.outline_id)
    if not outline.approved:
      raise ValidationError("Outline must be approved before writing.", code="OUTLINE_NOT_APPROVED", details={"outlineId": outline.id})
    structure = load_outline_structure(outline)
    topic = await self._content_repo.get_topic(outline.topic_id)

    await tracker.report(10, "Fetching related articles...")
    related = await self._content_repo.list_related_articles(user_id=job.owner_id, limit=RELATED_ARTICLES_LIMIT)

    await tracker.report(20, "Initializing AI writer...")
    ctx = WriterContext(outline=structure, article_type=outline.article_type, tone=outline.tone, sources=topic_sources(topic), allowed_links=related_articles(related), custom_instructions=params.custom_instructions)

    sections: list[str] = []
    total_sections = len(structure.sections)
    for index, section in enumerate(structure.sections):
      await tracker.report_span(index, total_sections, "Generating article content...", start=SECTIONS_START, end=SECTIONS_END, metadata={"sectionsCompleted": index, "currentSection": section.heading})
      sections.append(await self._agent.write_section(ctx, index, sections, cancel_token=tracker.token))

    await tracker.report(SECTIONS_END, "Processing article content...", metadata={"sectionsCompleted": total_sections, "currentSection": None})
    content = remove_em_dashes(assemble_article(structure.title, structure.hook, sections, render_conclusion(structure)))
    word_count = count_words(content)
    reading_time = reading_time_minutes(word_count)

    await tracker.report(85, "Saving article to database...", metadata={"wordCount": word_count})
    article = await self._content_repo.create_article(
      ArticleRecord(
        id=generate_entity_id(),
        user_id=job.owner_id,
        outline_id=outline.id,
        title=structure.title,
        slug=slugify(structure.title),
        content=content,
        content_html=markdown_to_html(content),
        excerpt=make_excerpt(content),
        article_type=outline.article_type,
        status="draft",
        word_count=word_count,
        reading_time=reading_time,
        seo_keywords=list(structure.seo_keywords),
      )
    )

    await tracker.report(90, "Saving internal links and version history...")
    links = extract_internal_links(content, link_candidates(related))
    await self._content_repo.save_links([ArticleLinkRecord(source_article_id=article.id, target_article_id=link.target_article_id, anchor_text=link.anchor_text, context=link.context) for link in links])
    await self._content_repo.add_version(VersionRecord(entity_type="article", entity_id=article.id, user_id=job.owner_id, snapshot={"title": article.title, "content": content}, edited_by="ai", change_summary="Initial draft generated by AI writer"))
    if topic is not None:
      await self._content_repo.update_topic_status(topic.id, "used")

    await tracker.complete("Article completed successfully!")
    logger.info("Job %s wrote article %s (%d words, %d links)", job.job_id, article.id, word_count, len(links))
    return {"articleId": article.id, "article": article.to_api(), "metadata": {"wordCount": word_count, "readingTime": reading_time, "sectionsWritten": total_sections}}
