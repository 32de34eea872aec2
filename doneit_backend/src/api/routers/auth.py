from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status

from ..auth import get_auth_service, get_current_session
from ..models import UserEntity
from ..schemas import AuthResponse, CredentialsIn, SessionResponse, SuccessResponse, UserOut
from ..services import AuthService
from ..session import SessionData, clear_session, save_session

router = APIRouter(
    prefix="/api/v1/auth",
    tags=["auth"],
)


def _start_session(request: Request, user: UserEntity) -> AuthResponse:
    save_session(request, SessionData(is_logged_in=True, user_id=user["id"], username=user["username"]))
    return AuthResponse(user=UserOut.from_entity(user))


# PUBLIC_INTERFACE
@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register",
    description="Create an account and log it in.",
    responses={
        400: {"description": "Username or password rejected by format rules"},
        409: {"description": "Username already exists"},
        500: {"description": "Storage failure"},
    },
)
def register(
    request: Request,
    credentials: CredentialsIn,
    service: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    user = service.register(credentials.username, credentials.password)
    return _start_session(request, user)


# PUBLIC_INTERFACE
@router.post(
    "/login",
    response_model=AuthResponse,
    summary="Login",
    description="Check credentials and start a session.",
    responses={
        400: {"description": "Missing username or password"},
        401: {"description": "Invalid username or password"},
    },
)
def login(
    request: Request,
    credentials: CredentialsIn,
    service: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    user = service.login(credentials.username, credentials.password)
    return _start_session(request, user)


# PUBLIC_INTERFACE
@router.post("/logout", response_model=SuccessResponse, summary="Logout")
def logout(request: Request) -> SuccessResponse:
    """End the current session. Always succeeds."""
    clear_session(request)
    return SuccessResponse()


# PUBLIC_INTERFACE
@router.get("/session", response_model=SessionResponse, summary="Session Check")
def session_check(session: SessionData = Depends(get_current_session)) -> SessionResponse:
    """Report whether the request carries a logged-in session."""
    if session.authenticated_user_id is None:
        return SessionResponse(isLoggedIn=False)
    return SessionResponse(
        isLoggedIn=True,
        user=UserOut(id=session.authenticated_user_id, username=session.username or ""),
    )
