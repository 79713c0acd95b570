"""Editor agent: a review pass followed by a verification pass."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from app.ai.agents.prompts import EDITOR_VERIFY_PROMPT, editor_system_prompt
from app.ai.agents.writer import remove_em_dashes
from app.ai.providers.base import AIModel
from app.core.cancellation import CancellationToken
from app.jobs.errors import UpstreamError
from app.utils.text import count_words

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EditResult:
  """Edited text plus a human-readable list of what changed."""

  content: str
  changes_made: list[str]


def _paragraphs(text: str) -> list[str]:
  return [block.strip() for block in text.split("\n\n") if block.strip()]


def summarize_changes(original: str, edited: str) -> list[str]:
  """Describe the difference between two versions of an article."""
  changes: list[str] = []
  removed_dashes = original.count("—") - edited.count("—")
  if removed_dashes > 0:
    changes.append(f"Removed {removed_dashes} em dash(es)")

  before = _paragraphs(original)
  after = _paragraphs(edited)
  untouched = set(before) & set(after)
  rewritten = len([block for block in after if block not in untouched])
  if rewritten:
    changes.append(f"Revised {rewritten} paragraph(s)")
  if len(after) < len(before):
    changes.append(f"Removed {len(before) - len(after)} duplicate or redundant paragraph(s)")

  words_before = count_words(original)
  words_after = count_words(edited)
  if words_before != words_after:
    changes.append(f"Word count {words_before} -> {words_after}")
  if not changes:
    changes.append("No changes needed")
  return changes


class EditorAgent:
  """Edits an article to read naturally while preserving structure and links."""

  name = "editor"

  def __init__(self, model: AIModel) -> None:
    self._model = model

  async def edit(self, content: str, *, article_type: str | None, tone: str | None = None, cancel_token: CancellationToken | None = None) -> EditResult:
    review = await self._model.generate(f"Article to edit:\n\n{content}", system=editor_system_prompt(article_type=article_type, tone=tone), cancel_token=cancel_token)
    reviewed = review.content.strip()
    if not reviewed:
      raise UpstreamError("Editor returned an empty article.", details={"stage": "review"})

    verified = await self._model.generate(f"Final review pass, only fix remaining issues:\n\n{reviewed}", system=EDITOR_VERIFY_PROMPT, cancel_token=cancel_token)
    final = remove_em_dashes(verified.content.strip() or reviewed)
    logger.info("Edited article: %d -> %d words", count_words(content), count_words(final))
    return EditResult(content=final, changes_made=summarize_changes(content, final))
