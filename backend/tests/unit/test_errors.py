"""Unit tests for service error categories."""

import pytest

from core.errors import (
    BadRequestError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
    code_for_status,
)


@pytest.mark.parametrize(
    "error,status_code,code",
    [
        (UnauthorizedError(), 401, "UNAUTHORIZED"),
        (ForbiddenError("no"), 403, "FORBIDDEN"),
        (NotFoundError("missing"), 404, "NOT_FOUND"),
        (BadRequestError("bad"), 400, "BAD_REQUEST"),
        (ConflictError("dup"), 409, "CONFLICT"),
    ],
)
def test_error_categories(error, status_code, code):
    assert error.status_code == status_code
    assert error.code == code


def test_unauthorized_sets_challenge_header():
    assert UnauthorizedError().headers == {"WWW-Authenticate": "Bearer"}


@pytest.mark.parametrize(
    "status_code,code",
    [(404, "NOT_FOUND"), (422, "BAD_REQUEST"), (429, "RATE_LIMITED"), (500, "INTERNAL_SERVER_ERROR")],
)
def test_code_for_status(status_code, code):
    assert code_for_status(status_code) == code
