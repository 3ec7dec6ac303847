from __future__ import annotations


class InstacartError(RuntimeError):
    """Base class for everything the comparison engine raises on purpose."""


class TransportError(InstacartError):
    """Network failure or non-success HTTP status."""


class BackendError(InstacartError):
    """The backend answered, but with an ``errors`` payload."""


class ParseError(InstacartError):
    """Response (or cached value) did not have the expected shape."""


class CacheError(InstacartError):
    """The cache store could not be read or written."""


class RunInProgressError(InstacartError):
    """A comparison run was started while another one is still in flight."""
