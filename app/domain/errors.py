class MatchingError(Exception):
    pass


class MatchingRunInProgress(MatchingError):
    """Raised when a run is requested while another one holds the lock."""


class MatchingRunError(MatchingError):
    """A run failed for infrastructure reasons (not because of matching policy)."""
