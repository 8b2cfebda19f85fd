"""
Subscription endpoints.

Endpoints:
- POST /subscriptions - Subscribe (form fields: name, email)
- GET /subscriptions/confirm - Confirm via subscription_token
- GET /subscriptions/revoke - Unsubscribe via subscription_token

Status codes: 200 success, 400 missing or malformed input, 401 unknown
token (confirm/revoke only), 500 unexpected failure.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Form, HTTPException, status
from pydantic import BaseModel, Field

from src.api.deps import get_subscription_workflow
from src.components.subscriptions import (
    ConfirmInput,
    ErrorKind,
    RevokeInput,
    SubscribeInput,
    SubscriptionWorkflow,
    WorkflowError,
)

router = APIRouter()

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.UNEXPECTED: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

UNEXPECTED_DETAIL = "Something went wrong, please try again later"


# --- Request/Response Models ---


class SubscriptionResponse(BaseModel):
    """Response for a successful subscription operation."""

    success: bool = Field(..., description="Whether the request was processed successfully")
    message: str = Field(..., description="Human-readable message")


class ErrorResponse(BaseModel):
    """Error response."""

    detail: str


ERROR_RESPONSES: dict[int | str, dict[str, object]] = {
    400: {"model": ErrorResponse, "description": "Missing or malformed input"},
    500: {"model": ErrorResponse, "description": "Unexpected failure"},
}

TOKEN_ERROR_RESPONSES: dict[int | str, dict[str, object]] = {
    **ERROR_RESPONSES,
    401: {"model": ErrorResponse, "description": "Token does not match any subscriber"},
}


# --- Helper Functions ---


def raise_for_error(error: WorkflowError | None) -> None:
    """Map a workflow error to an HTTP error; unexpected causes are not exposed."""
    if error is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=UNEXPECTED_DETAIL
        )
    detail = UNEXPECTED_DETAIL if error.kind == ErrorKind.UNEXPECTED else error.reason
    raise HTTPException(status_code=STATUS_BY_KIND[error.kind], detail=detail)


def require(value: str | None, field: str) -> str:
    if value is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=f"Missing field: {field}"
        )
    return value


# --- Subscribe Endpoint ---


@router.post(
    "/subscriptions",
    response_model=SubscriptionResponse,
    responses=ERROR_RESPONSES,
    summary="Subscribe to the mailing list",
    description="Start the double opt-in flow. Sends an email with confirm and revoke links.",
)
def subscribe(
    name: str | None = Form(None),
    email: str | None = Form(None),
    workflow: SubscriptionWorkflow = Depends(get_subscription_workflow),
) -> SubscriptionResponse:
    """
    Subscribe a new email, or resend the links for one already on record.

    Re-subscribing never creates a second row and never resets a
    confirmed subscriber back to pending.
    """
    result = workflow.subscribe(
        SubscribeInput(email=require(email, "email"), name=require(name, "name"))
    )
    if not result.success:
        raise_for_error(result.error)

    return SubscriptionResponse(
        success=True,
        message="Please check your email to confirm your subscription",
    )


# --- Confirm Endpoint ---


@router.get(
    "/subscriptions/confirm",
    response_model=SubscriptionResponse,
    responses=TOKEN_ERROR_RESPONSES,
    summary="Confirm a pending subscription",
)
def confirm(
    subscription_token: str | None = None,
    workflow: SubscriptionWorkflow = Depends(get_subscription_workflow),
) -> SubscriptionResponse:
    """Idempotent: confirming twice succeeds twice."""
    result = workflow.confirm(
        ConfirmInput(token=require(subscription_token, "subscription_token"))
    )
    if not result.success:
        raise_for_error(result.error)

    return SubscriptionResponse(success=True, message="Thanks for confirming your subscription!")


# --- Revoke Endpoint ---


@router.get(
    "/subscriptions/revoke",
    response_model=SubscriptionResponse,
    responses=TOKEN_ERROR_RESPONSES,
    summary="Revoke a subscription",
)
def revoke(
    subscription_token: str | None = None,
    workflow: SubscriptionWorkflow = Depends(get_subscription_workflow),
) -> SubscriptionResponse:
    """Deletes the subscriber and its token; the token is unusable afterwards."""
    result = workflow.revoke(RevokeInput(token=require(subscription_token, "subscription_token")))
    if not result.success:
        raise_for_error(result.error)

    return SubscriptionResponse(success=True, message="You have been unsubscribed")
