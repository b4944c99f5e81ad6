class MalformedInterval(ValueError):
    """Interval with start >= end (or naive datetimes). Always a caller bug."""


class AccessDenied(Exception):
    pass


class ImpersonationStateInconsistent(Exception):
    """
    The impersonation target stored in the admin session no longer exists.
    Never degrade to the unscoped admin view; the admin must pick a new target.
    """

    def __init__(self, org_id: str):
        super().__init__(f"Impersonated organization {org_id} no longer exists")
        self.org_id = org_id


# Matching error codes are returned in results, not raised
NO_OVERLAPPING_PROPOSAL = "no_overlapping_proposal"


class DurationMismatch:
    """Warning attached to an accepted selection whose length differs from the job."""

    def __init__(self, expected_minutes: int, selected_minutes: int):
        self.expected_minutes = expected_minutes
        self.selected_minutes = selected_minutes

    def __eq__(self, other):
        if not isinstance(other, DurationMismatch):
            return NotImplemented
        return (self.expected_minutes, self.selected_minutes) == (
            other.expected_minutes,
            other.selected_minutes,
        )

    def __repr__(self):
        return f"DurationMismatch(expected={self.expected_minutes}, selected={self.selected_minutes})"

    def as_dict(self) -> dict:
        return {
            "expected_minutes": self.expected_minutes,
            "selected_minutes": self.selected_minutes,
        }
