class StatsError(Exception):
    """Base class for errors raised by the stats update path."""


class MalformedPatchError(StatsError):
    """The incoming patch does not have the category -> {date, attributes} shape."""


class MalformedDocumentError(StatsError):
    """A stored stats document is not a valid three-level mapping."""


class ConflictError(StatsError):
    """The stored version changed between load and conditional store."""

    def __init__(self, user_id: str, expected_version, actual_version=None):
        self.user_id = user_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Stats for user {user_id} changed: expected version {expected_version}, "
            f"found {actual_version}"
        )


class ConcurrentUpdateExceededError(StatsError):
    """Every attempt allowed by the retry ceiling hit a conflict."""

    def __init__(self, user_id: str, attempts: int):
        self.user_id = user_id
        self.attempts = attempts
        super().__init__(
            f"Stats update for user {user_id} gave up after {attempts} conflicting attempts"
        )


class StatsUpdateTimeoutError(StatsError):
    """A single load/merge/store attempt ran past its deadline."""

    def __init__(self, user_id: str, timeout: float):
        self.user_id = user_id
        self.timeout = timeout
        super().__init__(f"Stats update for user {user_id} timed out after {timeout}s")
