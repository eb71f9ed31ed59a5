"""MindEase session core - support-chat sessions, context assembly and summaries."""

__version__ = "1.0.0"
