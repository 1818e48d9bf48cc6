"""Exception types raised by the relationship store and consistency checks."""

from enum import Enum


class ValidationReason(str, Enum):
    """Why an edit was rejected."""

    THIRD_PARENT = "third_parent"
    SELF_REFERENCE = "self_reference"
    CYCLE = "cycle"
    SIBLING_WITHOUT_PARENTS = "sibling_without_parents"
    DUPLICATE_ID = "duplicate_id"
    DEATH_BEFORE_BIRTH = "death_before_birth"
    INVALID_FIELD = "invalid_field"


class KinTreeError(Exception):
    """Base class for kintree errors."""


class ValidationError(KinTreeError, ValueError):
    """A blocking rule violation. The store is left unmodified."""

    def __init__(
        self,
        message: str,
        reason: ValidationReason,
        person_id: str | None = None,
        related_id: str | None = None,
    ):
        super().__init__(message)
        self.reason = reason
        self.person_id = person_id
        self.related_id = related_id


class PersonNotFoundError(KinTreeError, ValueError):
    """An operation referenced an id that is not in the store."""

    def __init__(self, person_id: str):
        super().__init__(f"Person ID {person_id} not found in store")
        self.person_id = person_id
