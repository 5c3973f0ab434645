from __future__ import annotations


# PUBLIC_INTERFACE
class StoreFailure(Exception):
    """
    Raised by a record store when the underlying storage is unreachable or
    rejects a statement. Fatal for the current request; never retried.
    """
