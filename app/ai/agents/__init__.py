"""Agent implementations."""

from app.ai.agents.editor import EditorAgent
from app.ai.agents.outliner import OutlineAgent
from app.ai.agents.researcher import ResearchAgent
from app.ai.agents.writer import WriterAgent

__all__ = ["EditorAgent", "OutlineAgent", "ResearchAgent", "WriterAgent"]
