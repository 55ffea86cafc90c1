"""Error hierarchy tests — HTTP kinds and the response envelope."""

from lanpapp.core.errors import (
    AlreadyFinalizedError, BadRequestError, ConcurrencyError, ConflictError,
    ErrorContext, ForbiddenError, IdentityProviderError, IllegalTransitionError,
    ResourceNotFoundError, UnauthorizedError, VotingClosedError,
)


def test_http_status_per_kind():
    assert BadRequestError("x").http_status == 400
    assert UnauthorizedError().http_status == 401
    assert ForbiddenError().http_status == 403
    assert ResourceNotFoundError("Lanpa", "1").http_status == 404
    assert ConflictError("x").http_status == 409
    assert IdentityProviderError("down").http_status == 503


def test_specialised_errors_keep_parent_kind():
    assert isinstance(IllegalTransitionError("draft", "completed"), BadRequestError)
    assert isinstance(VotingClosedError("closed"), BadRequestError)
    assert isinstance(AlreadyFinalizedError(), BadRequestError)
    assert isinstance(ConcurrencyError("race"), ConflictError)


def test_response_envelope():
    err = ForbiddenError("nope", ErrorContext(lanpa_id="L1"))
    body = err.to_response()["error"]
    assert body["code"] == "FORBIDDEN"
    assert body["message"] == "nope"
    assert body["category"] == "authorization"
    assert body["context"]["lanpa_id"] == "L1"


def test_identity_error_carries_retry_after():
    err = IdentityProviderError("rate limited", retry_after_ms=3000)
    assert err.to_response()["error"]["context"]["retry_after_ms"] == 3000
