"""
Domain errors.

Every error is raised before any state is changed, so callers can show the
message to the user and retry.
"""


class StudyTrackerError(Exception):
    """Base class for all domain errors"""


class ValidationError(StudyTrackerError):
    """Malformed user input (subjects text, filter bounds, goal hours...)"""


class NotFoundError(StudyTrackerError):
    """An operation referenced a subject, topic, goal or filter that does not exist"""

    def __init__(self, kind: str, entity_id: str):
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind.capitalize()} {entity_id} not found")


class InvariantViolation(StudyTrackerError):
    """A record would break a data invariant (e.g. more correct than resolved answers)"""
