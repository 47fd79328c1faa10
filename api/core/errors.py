"""
Catalog error taxonomy.

Services raise these; `main.py` maps them to HTTP responses. Each error
carries a machine-checkable `kind` and a human message that is safe to show
to clients.
"""

from __future__ import annotations


class CatalogError(RuntimeError):
    kind = "internal"
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(CatalogError):
    kind = "not_found"
    status_code = 404


class ConflictError(CatalogError):
    kind = "conflict"
    status_code = 409


class InvalidStateError(CatalogError):
    kind = "invalid_state"
    status_code = 400


class BadRequestError(CatalogError):
    kind = "bad_request"
    status_code = 400


class AuthError(CatalogError):
    kind = "auth"
    status_code = 401


class StoreError(CatalogError):
    """
    Transient storage failure. Safe for the caller to retry; never retried here.
    """

    kind = "store"
    status_code = 503
