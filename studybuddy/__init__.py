"""Study Buddy: AI study assistant, schedule, tasks and calendar backend."""

__version__ = "0.1.0"
