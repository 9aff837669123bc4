"""Landing page and layout navigation endpoints."""

from fastapi import APIRouter, Request, status

from app.core.routes import Destination
from app.dependencies import CurrentSession
from app.schemas.auth import HomeResponse, NavigationResponse
from app.services.navigation_service import build_navigation

router = APIRouter()


@router.get(
    "/",
    name=Destination.HOME.value,
    response_model=HomeResponse,
    status_code=status.HTTP_200_OK,
    summary="Landing page",
)
async def home(session: CurrentSession) -> HomeResponse:
    """Greet the signed-in user, or invite anonymous visitors to sign in."""
    if session.identity is not None:
        return HomeResponse(
            title=f"Welcome, {session.identity.email or 'there'}!",
            message="You are successfully logged in. This is your protected dashboard area.",
            signed_in=True,
        )

    return HomeResponse(
        title="Welcome to Our App",
        message="Please sign in to access your dashboard and start using our services.",
        signed_in=False,
    )


@router.get(
    "/navigation",
    response_model=NavigationResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_200_OK,
    summary="Layout header state",
)
async def navigation(request: Request, session: CurrentSession) -> NavigationResponse:
    """Header links and account menu for the current session."""
    return build_navigation(session, lambda name: request.url_for(name).path)
