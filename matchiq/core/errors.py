"""Engine-level exceptions.

Only two kinds of failure ever leave the matching pipeline: an unknown
entity (the caller asked about something that does not exist) and a
malformed nested field (raised at the coercion boundary and swallowed per
pair by the rescan loop).
"""


class MatchingError(Exception):
    """Base class for matching engine errors."""


class ProspectNotFoundError(MatchingError, LookupError):
    def __init__(self, kind: str, prospect_id: int) -> None:
        self.kind = kind
        self.prospect_id = prospect_id
        super().__init__(f"{kind.capitalize()} {prospect_id} not found")


class MatchNotFoundError(MatchingError, LookupError):
    def __init__(self, match_id: int) -> None:
        self.match_id = match_id
        super().__init__(f"Match {match_id} not found")


class MalformedFieldError(MatchingError, ValueError):
    """A nested profile field has a shape the coercion step cannot read."""

    def __init__(self, field: str, value: object, reason: str) -> None:
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Malformed field {field!r}: {reason}")
