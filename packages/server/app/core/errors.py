"""
Typed failures and their HTTP rendering.

Order rejections carry the reason that blocked the order. Store and identity
failures are passed through to the caller unchanged; nothing here retries.
Every typed error renders with the same envelope the CSRF middleware uses:

    {"error": {"code": ..., "message": ..., "status": ...}}
"""

from __future__ import annotations

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from fabledrop_shared.schemas.common import RejectionReason

log = structlog.get_logger()


def error_body(code: str, message: str, status: int) -> dict:
    return {"error": {"code": code, "message": message, "status": status}}


# ---------------------------------------------------------------------------
# Order rejections
# ---------------------------------------------------------------------------

class OrderRejected(Exception):
    """An order could not be accepted under the subscription rules."""

    reason: RejectionReason
    status_code = 409
    default_message = "Order rejected."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NoActiveSubscription(OrderRejected):
    reason = RejectionReason.NO_ACTIVE_SUBSCRIPTION
    default_message = "No active subscription found."


class QuotaExhausted(OrderRejected):
    reason = RejectionReason.QUOTA_EXHAUSTED
    default_message = "No months remaining on this subscription."


class LifetimeCapReached(OrderRejected):
    reason = RejectionReason.LIFETIME_CAP_REACHED
    default_message = "You have reached the maximum number of books for your subscription period."


class AlreadyOrderedThisCycle(OrderRejected):
    reason = RejectionReason.ALREADY_ORDERED_THIS_CYCLE
    default_message = (
        "You can only order 1 book per month. "
        "Please wait until next month to order another book."
    )


REJECTIONS: dict[RejectionReason, type[OrderRejected]] = {
    cls.reason: cls
    for cls in (NoActiveSubscription, QuotaExhausted, LifetimeCapReached, AlreadyOrderedThisCycle)
}


def rejection_for(reason: RejectionReason) -> OrderRejected:
    return REJECTIONS[reason]()


# ---------------------------------------------------------------------------
# Collaborator failures
# ---------------------------------------------------------------------------

class StoreUnavailable(Exception):
    """The order/subscription store could not be reached or answered badly."""

    status_code = 503


class SubscriptionExists(Exception):
    """A different subscription is already stored for this email."""

    status_code = 409


class IdentityError(Exception):
    """The identity provider rejected the token or could not be reached."""

    status_code = 401


class AccessDenied(Exception):
    """Authenticated, but the account is not allowed to use the application."""

    status_code = 403


# ---------------------------------------------------------------------------
# FastAPI wiring
# ---------------------------------------------------------------------------

async def _order_rejected_handler(request: Request, exc: OrderRejected) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.reason.value, exc.message, exc.status_code),
    )


async def _store_unavailable_handler(request: Request, exc: StoreUnavailable) -> JSONResponse:
    log.error("store.unavailable", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(
            "STORE_UNAVAILABLE",
            "Order storage is temporarily unavailable. Please try again later.",
            exc.status_code,
        ),
    )


async def _identity_error_handler(request: Request, exc: IdentityError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body("AUTHENTICATION_FAILED", str(exc) or "Authentication failed.", exc.status_code),
    )


async def _access_denied_handler(request: Request, exc: AccessDenied) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body("ACCESS_DENIED", str(exc) or "Access denied.", exc.status_code),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(OrderRejected, _order_rejected_handler)
    app.add_exception_handler(StoreUnavailable, _store_unavailable_handler)
    app.add_exception_handler(IdentityError, _identity_error_handler)
    app.add_exception_handler(AccessDenied, _access_denied_handler)
