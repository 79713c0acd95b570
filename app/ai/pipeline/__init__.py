"""Pipeline contracts shared by agents, handlers and the stream generator."""

from app.ai.pipeline.contracts import OutlineConclusion, OutlineSection, OutlineStructure, RelatedArticle, SuggestedLink, TopicCandidate, TopicSource

__all__ = ["OutlineConclusion", "OutlineSection", "OutlineStructure", "RelatedArticle", "SuggestedLink", "TopicCandidate", "TopicSource"]
