# prahestate/errors.py
"""Error taxonomy for the sync pipeline."""


class PrahEstateError(Exception):
    """Base exception for the estate sync service."""
    pass


class TransportError(PrahEstateError):
    """Catalog request failed (network error, non-2xx status or unreadable body)."""

    def __init__(self, message, page=None, status_code=None):
        super().__init__(message)
        self.page = page
        self.status_code = status_code


class AlreadyRunningError(PrahEstateError):
    """A sync cycle is already in progress."""
    pass


class ItemProcessingError(PrahEstateError):
    """A single listing could not be normalized or stored."""

    def __init__(self, message, sreality_id=None):
        super().__init__(message)
        self.sreality_id = sreality_id


class RepositoryError(PrahEstateError):
    """Storage failure that invalidates the whole cycle."""
    pass
