"""Textual user interface for repo-health."""

from .app import RepoHealthApp

__all__ = ["RepoHealthApp"]
