"""
Shared dependencies for routers.

The session is created by the app lifespan and stored on ``app.state``.
"""

from fastapi import HTTPException, Request

from storefront.errors import REASON_NOT_FOUND, REASON_OUT_OF_STOCK, REASON_UNAVAILABLE
from storefront.sync.results import MutationResult
from storefront.sync.session import ShopperSession

_STATUS_BY_REASON = {
    REASON_OUT_OF_STOCK: 409,
    REASON_NOT_FOUND: 404,
    REASON_UNAVAILABLE: 503,
}


def get_session(request: Request) -> ShopperSession:
    session = getattr(request.app.state, "session", None)
    if session is None:
        raise HTTPException(status_code=503, detail="Session not started")
    return session


def raise_for_result(result: MutationResult) -> MutationResult:
    """Map a failed result onto an HTTP error; pass successes through."""
    if not result.success:
        raise HTTPException(
            status_code=_STATUS_BY_REASON.get(result.reason, 500),
            detail=result.to_dict(),
        )
    return result
