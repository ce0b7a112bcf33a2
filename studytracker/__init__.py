"""StudyTracker - subjects, study log, focus timer and weekly goals"""

__version__ = "1.0.0"
