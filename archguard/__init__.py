"""ArchGuard - detects drift between source code and architectural decision records."""

__version__ = "0.3.0"
