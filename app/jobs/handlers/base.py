"""Helpers shared by job handlers."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, TypeVar

from app.ai.pipeline.contracts import RelatedArticle
from app.jobs.errors import AuthError, NotFoundError
from app.storage.content_repo import ArticleRecord
from app.utils.text import LinkCandidate


class _Owned(Protocol):
  user_id: str


OwnedT = TypeVar("OwnedT", bound=_Owned)


def require_owned(entity: OwnedT | None, *, owner_id: str, kind: str, entity_id: str) -> OwnedT:
  """Return the entity when it exists and belongs to the job owner."""
  if entity is None:
    raise NotFoundError(f"{kind.capitalize()} {entity_id} not found.", code=f"{kind.upper()}_NOT_FOUND", details={"entity": kind, "id": entity_id})
  if entity.user_id != owner_id:
    raise AuthError(f"{kind.capitalize()} {entity_id} does not belong to this user.", details={"entity": kind, "id": entity_id})
  return entity


def related_articles(articles: Sequence[ArticleRecord]) -> list[RelatedArticle]:
  return [RelatedArticle(article_id=article.id, title=article.title, slug=article.slug) for article in articles]


def link_candidates(articles: Sequence[ArticleRecord]) -> list[LinkCandidate]:
  return [LinkCandidate(article_id=article.id, title=article.title, slug=article.slug) for article in articles]
