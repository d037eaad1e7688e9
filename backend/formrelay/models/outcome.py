"""
Result type returned by every field validator.

Validators never raise for bad input: they return a ValidationOutcome and
the pipeline decides what to do with the first rejection. This keeps each
validator a pure function that is trivial to test on its own.
"""

from dataclasses import dataclass
from typing import Optional

from formrelay.errors import SubmissionError


@dataclass(frozen=True)
class ValidationOutcome:
    """
    Either Ok (``error is None``) or Rejected (``error`` set).

    Attributes:
        error: The SubmissionError describing the rejection, if any
    """

    error: Optional[SubmissionError] = None

    @classmethod
    def accept(cls) -> "ValidationOutcome":
        return _OK

    @classmethod
    def reject(cls, error: SubmissionError) -> "ValidationOutcome":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def status_code(self) -> int:
        return 200 if self.error is None else self.error.status_code

    @property
    def message(self) -> str:
        return "" if self.error is None else self.error.message

    def __repr__(self) -> str:
        """Human-readable representation for logging."""
        if self.ok:
            return "ValidationOutcome(ok=True)"
        return f"ValidationOutcome(ok=False, status={self.status_code}, message={self.message!r})"


_OK = ValidationOutcome()
