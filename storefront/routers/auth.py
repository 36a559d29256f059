"""Auth Router - identity transitions reported by the auth provider."""
from fastapi import APIRouter, Depends

from storefront.sync.session import ShopperSession
from .deps import get_session, raise_for_result
from .models import SignInRequest

router = APIRouter(tags=["auth"])


@router.post("/auth/sign-in")
async def sign_in(request: SignInRequest, session: ShopperSession = Depends(get_session)):
    """
    Switch to the signed-in user; the anonymous cart is merged first.

    A failed merge answers 503 and the session stays on the anonymous
    cart. Signing in again (or any cart call) retries the merge.
    """
    session.identity.sign_in(request.user_id)
    result = raise_for_result(await session.sync_identity())
    return result.data


@router.post("/auth/sign-out")
async def sign_out(session: ShopperSession = Depends(get_session)):
    session.identity.sign_out()
    result = raise_for_result(await session.sync_identity())
    return result.data
