"""OfficeFlow - conversation-driven task orchestration."""

__version__ = "1.0.0"
