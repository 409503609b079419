"""Business-idea-to-launch content pipeline orchestration."""

__version__ = "0.1.0"
