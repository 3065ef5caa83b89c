"""Desktop perception and task orchestration engine."""

__version__ = "1.0.0"
