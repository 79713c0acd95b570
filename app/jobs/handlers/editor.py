"""Job handler that runs an editing pass over an existing article."""

from __future__ import annotations

from typing import Any, cast

from app.ai.agents.editor import EditorAgent
from app.ai.providers.base import AIModel
from app.jobs.errors import NotFoundError
from app.jobs.handlers.base import require_owned
from app.jobs.inputs import EditArticleInput, parse_job_input
from app.jobs.models import JobRecord
from app.jobs.progress import JobProgressTracker
from app.storage.content_repo import ContentRepository, VersionRecord
from app.utils.text import count_words, make_excerpt, markdown_to_html, reading_time_minutes


class EditArticleHandler:
  """Edit an article in place and record the new version."""

  failure_code = "ARTICLE_EDITING_FAILED"

  def __init__(self, *, content_repo: ContentRepository, model: AIModel) -> None:
    self._content_repo = content_repo
    self._agent = EditorAgent(model)

  async def run(self, job: JobRecord, tracker: JobProgressTracker) -> dict[str, Any]:
    params = cast(EditArticleInput, parse_job_input("edit_article", job.input))

    await tracker.report(0, "Fetching article...")
    article = require_owned(await self._content_repo.get_article(params.article_id), owner_id=job.owner_id, kind="article", entity_id=params.article_id)
    source_content = params.content or article.content

    await tracker.report(20, "Editing article...")
    result = await self._agent.edit(source_content, article_type=article.article_type, cancel_token=tracker.token)

    await tracker.report(70, "Processing edited content...")
    word_count = count_words(result.content)
    reading_time = reading_time_minutes(word_count)

    await tracker.report(85, "Saving article to database...", metadata={"wordCount": word_count})
    updated = await self._content_repo.update_article(article.id, content=result.content, content_html=markdown_to_html(result.content), excerpt=make_excerpt(result.content), word_count=word_count, reading_time=reading_time)
    if updated is None:
      raise NotFoundError(f"Article {article.id} not found.", code="ARTICLE_NOT_FOUND", details={"entity": "article", "id": article.id})

    await tracker.report(90, "Saving version history...")
    await self._content_repo.add_version(VersionRecord(entity_type="article", entity_id=article.id, user_id=job.owner_id, snapshot={"title": updated.title, "content": result.content}, edited_by="ai", change_summary="AI editing pass: " + "; ".join(result.changes_made)))

    await tracker.complete("Article edited successfully!")
    return {"articleId": updated.id, "article": updated.to_api(), "metadata": {"wordCount": word_count, "changesMade": result.changes_made}}
