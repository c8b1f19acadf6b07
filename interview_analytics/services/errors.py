class AnalyticsError(Exception):
    """Base class for analytics engine errors."""


class InvalidInput(AnalyticsError):
    """Caller passed mismatched or malformed records. Never coerced."""


class NotFound(AnalyticsError):
    pass


class StoreUnavailable(AnalyticsError):
    """Transient failure talking to the database or Redis. Retried by the scheduler."""


class Inconsistent(AnalyticsError):
    """A record violates a structural invariant of the store (e.g. orphan question)."""
