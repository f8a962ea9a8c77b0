import pytest
from fastapi import HTTPException

from src.api.routers.negotiation_http_errors import raise_negotiation_http_exception
from src.core.negotiation import (
    NegotiationNotFoundError,
    NegotiationStateConflictError,
    NegotiationValidationError,
)


@pytest.mark.parametrize(
    ("exc", "expected_status", "expected_detail"),
    [
        (
            NegotiationNotFoundError("PROPOSAL_NOT_FOUND", "proposal 5 does not exist"),
            404,
            {"code": "PROPOSAL_NOT_FOUND", "message": "proposal 5 does not exist"},
        ),
        (
            NegotiationStateConflictError(
                "PROPOSAL_ALREADY_RESOLVED",
                "proposal is already accepted",
                current_status="accepted",
            ),
            409,
            {
                "code": "PROPOSAL_ALREADY_RESOLVED",
                "message": "proposal is already accepted",
                "current_status": "accepted",
            },
        ),
        (
            NegotiationValidationError(
                "DECLINE_REASON_REQUIRED", "a reason is required", field="message"
            ),
            400,
            {
                "code": "DECLINE_REASON_REQUIRED",
                "message": "a reason is required",
                "field": "message",
            },
        ),
    ],
)
def test_raise_negotiation_http_exception_maps_domain_errors(
    exc: Exception, expected_status: int, expected_detail: dict
) -> None:
    with pytest.raises(HTTPException) as caught:
        raise_negotiation_http_exception(exc)
    assert caught.value.status_code == expected_status
    assert caught.value.detail == expected_detail


def test_raise_negotiation_http_exception_reraises_unknown_error() -> None:
    with pytest.raises(RuntimeError, match="boom"):
        raise_negotiation_http_exception(RuntimeError("boom"))


def test_negotiation_error_string_includes_code_and_message() -> None:
    assert str(NegotiationNotFoundError("BOOKING_NOT_FOUND", "booking 4 does not exist")) == (
        "BOOKING_NOT_FOUND: booking 4 does not exist"
    )
    assert str(NegotiationNotFoundError("BOOKING_NOT_FOUND")) == "BOOKING_NOT_FOUND"
