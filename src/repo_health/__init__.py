"""repo-health - terminal dashboard for repository health."""

__version__ = "0.1.0"
