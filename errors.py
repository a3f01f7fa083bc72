"""Errors raised by the capture, rally and crowning operations.

None of these are retried; the caller has to change its input.
"""

from __future__ import annotations


class RallyError(Exception):
    status_code = 500

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class NotFound(RallyError):
    status_code = 404


class InvalidState(RallyError):
    status_code = 400


class Conflict(RallyError):
    status_code = 409


class Forbidden(RallyError):
    status_code = 403
