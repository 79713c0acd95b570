"""Job handler that discovers new article topics."""

from __future__ import annotations

from typing import Any, cast

from app.ai.agents.researcher import ResearchAgent
from app.ai.providers.base import AIModel
from app.jobs.inputs import ResearchTopicsInput, parse_job_input
from app.jobs.models import JobRecord
from app.jobs.progress import JobProgressTracker
from app.storage.content_repo import ContentRepository, TopicRecord, VersionRecord
from app.utils.ids import generate_entity_id

EXISTING_ARTICLES_LIMIT = 50


class ResearchTopicsHandler:
  """Discover topics and store them as pending candidates."""

  failure_code = "TOPIC_RESEARCH_FAILED"

  def __init__(self, *, content_repo: ContentRepository, model: AIModel) -> None:
    self._content_repo = content_repo
    self._agent = ResearchAgent(model)

  async def run(self, job: JobRecord, tracker: JobProgressTracker) -> dict[str, Any]:
    params = cast(ResearchTopicsInput, parse_job_input("research_topics", job.input))
    keywords = [keyword.strip() for keyword in params.keywords if keyword.strip()]

    await tracker.report(0, "Preparing research...")
    existing = await self._content_repo.list_related_articles(user_id=job.owner_id, limit=EXISTING_ARTICLES_LIMIT)

    await tracker.report(20, "Researching topics...")
    candidates = await self._agent.discover_topics(industry=params.industry, keywords=keywords, article_type=params.article_type, max_topics=params.max_topics, existing_titles=[article.title for article in existing], cancel_token=tracker.token)

    await tracker.report(70, "Saving discovered topics...", metadata={"topicsFound": len(candidates)})
    topics = await self._content_repo.create_topics(
      [
        TopicRecord(
          id=generate_entity_id(),
          user_id=job.owner_id,
          title=candidate.title,
          summary=candidate.summary,
          industry=params.industry,
          sources=[source.model_dump(mode="json", exclude_none=True) for source in candidate.sources],
          relevance_score=candidate.relevance_score,
          status="pending",
          metadata={"angle": candidate.angle, "hook": candidate.hook, "articleType": params.article_type, "keywords": keywords},
        )
        for candidate in candidates
      ]
    )

    await tracker.report(90, "Saving version history...")
    for topic in topics:
      await self._content_repo.add_version(VersionRecord(entity_type="topic", entity_id=topic.id, user_id=job.owner_id, snapshot=topic.to_api(), edited_by="ai", change_summary="Topic discovered by AI research"))

    await tracker.complete("Topic research completed successfully!")
    return {"topicIds": [topic.id for topic in topics], "topics": [topic.to_api() for topic in topics]}
