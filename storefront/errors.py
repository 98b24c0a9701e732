# storefront/errors.py
"""Error taxonomy shared by services and routes.

Services raise these; the handlers registered in ``storefront.main`` turn them
into ``{"success": false, "message": ...}`` responses with the matching status.
"""
from __future__ import annotations


class StoreError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(StoreError):
    status_code = 400


class CartEmptyError(ValidationError):
    pass


class ConflictError(StoreError):
    # duplicates and in-use deletes surface as plain 400s
    status_code = 400


class NotFoundError(StoreError):
    status_code = 404


class AuthenticationError(StoreError):
    status_code = 401


class AuthorizationError(StoreError):
    status_code = 403
