"""AdvanceWeekly: scheduled weekly reflection drafting with tracked async operations."""

__version__ = "0.1.0"
