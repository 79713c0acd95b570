"""Job handler that drafts an outline for a discovered topic."""

from __future__ import annotations

from typing import Any, cast

from app.ai.agents.outliner import OutlineAgent
from app.ai.providers.base import AIModel
from app.jobs.handlers.base import related_articles, require_owned
from app.jobs.inputs import GenerateOutlineInput, parse_job_input
from app.jobs.models import JobRecord
from app.jobs.progress import JobProgressTracker
from app.storage.content_repo import ContentRepository, OutlineRecord, VersionRecord
from app.utils.ids import generate_entity_id

DEFAULT_TONE = "professional"


class GenerateOutlineHandler:
  """Draft an outline and store it unapproved, awaiting review."""

  failure_code = "OUTLINE_GENERATION_FAILED"

  def __init__(self, *, content_repo: ContentRepository, model: AIModel) -> None:
    self._content_repo = content_repo
    self._agent = OutlineAgent(model)

  async def run(self, job: JobRecord, tracker: JobProgressTracker) -> dict[str, Any]:
    params = cast(GenerateOutlineInput, parse_job_input("generate_outline", job.input))

    await tracker.report(0, "Fetching topic...")
    topic = require_owned(await self._content_repo.get_topic(params.topic_id), owner_id=job.owner_id, kind="topic", entity_id=params.topic_id)

    await tracker.report(15, "Fetching related articles...")
    related = await self._content_repo.list_related_articles(user_id=job.owner_id)

    await tracker.report(30, "Generating outline...")
    tone = params.tone or DEFAULT_TONE
    structure = await self._agent.create_outline(
      title=topic.title,
      summary=topic.summary,
      sources=topic.sources,
      article_type=params.article_type,
      target_length=params.target_length,
      tone=tone,
      related=related_articles(related),
      custom_instructions=params.custom_instructions,
      cancel_token=tracker.token,
    )

    await tracker.report(75, "Saving outline...", metadata={"sectionCount": len(structure.sections)})
    outline = await self._content_repo.create_outline(OutlineRecord(id=generate_entity_id(), user_id=job.owner_id, topic_id=topic.id, structure=structure.to_storage(), article_type=params.article_type, target_length=params.target_length, tone=tone, approved=False))

    await tracker.report(90, "Saving version history...")
    await self._content_repo.add_version(VersionRecord(entity_type="outline", entity_id=outline.id, user_id=job.owner_id, snapshot=outline.structure, edited_by="ai", change_summary="Outline generated by AI outliner"))

    await tracker.complete("Outline generated successfully!")
    return {"outlineId": outline.id, "outline": outline.to_api()}
