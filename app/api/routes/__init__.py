from . import jobs, tasks, writer

__all__ = ["jobs", "tasks", "writer"]
