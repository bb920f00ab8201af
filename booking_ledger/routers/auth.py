from fastapi import APIRouter, Depends, Header, HTTPException, Response, status
from loguru import logger

from booking_ledger import settings
from booking_ledger.crud import user_crud
from booking_ledger.schemas import LoginRequest, LoginResponse
from booking_ledger.security import verify_password
from booking_ledger.tokens import CredentialBinder, get_credential_binder

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=LoginResponse)
async def login(
    payload: LoginRequest,
    response: Response,
    user_agent: str | None = Header(default=None),
    binder: CredentialBinder = Depends(get_credential_binder),
) -> LoginResponse:
    """
    Mint a token bound to the caller's User-Agent plus a session cookie carrying
    the same sid. Both must be presented together on later requests.
    """
    user = await user_crud.get_by_email(payload.email)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid email"
        )
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account not active, please contact customer support",
        )
    if not verify_password(payload.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid password"
        )

    issued = binder.issue(user.email, user_agent)
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=issued.sid,
        max_age=int(binder.ttl.total_seconds()),
        path="/",
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="lax",
    )
    logger.info("User {} logged in", user.id)
    return LoginResponse(token=issued.token, roles=list(user.roles))
