"""Relational storage for profiles, courses, tasks, shared answers and chats."""

from studybuddy.storage.db import Base, create_session_factory
from studybuddy.storage.repository import Storage

__all__ = ["Base", "Storage", "create_session_factory"]
