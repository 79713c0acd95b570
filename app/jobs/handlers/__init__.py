"""Job handlers, one per job type."""

from app.jobs.handlers.editor import EditArticleHandler
from app.jobs.handlers.outline import GenerateOutlineHandler
from app.jobs.handlers.research import ResearchTopicsHandler
from app.jobs.handlers.writer import WriteArticleHandler

__all__ = ["EditArticleHandler", "GenerateOutlineHandler", "ResearchTopicsHandler", "WriteArticleHandler"]
