"""Authentication endpoints."""

from fastapi import APIRouter, status

from app.core.routes import Destination
from app.dependencies import CurrentSession, SessionAccessorDep
from app.schemas.auth import SessionResponse, SignInInfo

router = APIRouter()


@router.get(
    "/login",
    name=Destination.SIGN_IN.value,
    response_model=SignInInfo,
    status_code=status.HTTP_200_OK,
    summary="Sign-in instructions",
)
async def sign_in() -> SignInInfo:
    """
    Describe how to obtain a session.

    Sign-in itself happens with the hosted identity provider; clients send the
    resulting ID token as a bearer credential.
    """
    return SignInInfo(
        message="Sign in with the identity provider and send the ID token "
        "in the Authorization header as a Bearer credential",
    )


@router.get(
    "/session",
    response_model=SessionResponse,
    status_code=status.HTTP_200_OK,
    summary="Current identity",
)
async def current_session(session: CurrentSession) -> SessionResponse:
    """Return the signed-in identity, or null for anonymous requests."""
    return SessionResponse(identity=session.identity)


@router.post(
    "/logout",
    name="sign-out",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Sign out and revoke refresh tokens",
)
async def logout(accessor: SessionAccessorDep) -> None:
    """
    Sign the caller out.

    Every open session of the same identity is notified.
    """
    await accessor.sign_out()
