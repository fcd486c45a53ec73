"""StudyBuddy memory & embedding retrieval engine."""

__version__ = "0.1.0"
