"""Schema package exports."""

from .content import Article, ArticleLink, ContentVersion, Outline, Topic
from .jobs import Job

__all__ = ["Article", "ArticleLink", "ContentVersion", "Job", "Outline", "Topic"]
