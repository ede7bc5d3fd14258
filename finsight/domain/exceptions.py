"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class DataUnavailable(DomainException):
    """Record store is unreachable, timed out, or returned unusable data"""

    pass


class InvalidRecordError(DomainException):
    """A financial record violates one of its invariants"""

    pass


class QueryCancelled(DomainException):
    """Caller cancelled the query before aggregation completed"""

    pass
