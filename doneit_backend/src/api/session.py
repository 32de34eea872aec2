"""
Cookie-backed session store.

The session dict lives in a cookie signed by Starlette's SessionMiddleware, so
a tampered cookie is discarded and the request is treated as logged out.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Request

_LOGGED_IN = "isLoggedIn"
_USER_ID = "userId"
_USERNAME = "username"


@dataclass(frozen=True)
class SessionData:
    is_logged_in: bool = False
    user_id: Optional[int] = None
    username: Optional[str] = None

    @property
    def authenticated_user_id(self) -> Optional[int]:
        """The user id, trusted only for a logged-in session."""
        if self.is_logged_in and self.user_id:
            return self.user_id
        return None


ANONYMOUS = SessionData()


# PUBLIC_INTERFACE
def load_session(request: Request) -> SessionData:
    """Read the session carried by the request cookie."""
    data = request.session
    user_id = data.get(_USER_ID)
    username = data.get(_USERNAME)
    if data.get(_LOGGED_IN) is not True or not isinstance(user_id, int) or isinstance(user_id, bool):
        return ANONYMOUS
    return SessionData(
        is_logged_in=True,
        user_id=user_id,
        username=username if isinstance(username, str) else None,
    )


# PUBLIC_INTERFACE
def save_session(request: Request, session: SessionData) -> None:
    """Replace the session contents; the middleware writes the cookie on response."""
    request.session.clear()
    request.session.update(
        {_LOGGED_IN: session.is_logged_in, _USER_ID: session.user_id, _USERNAME: session.username}
    )


# PUBLIC_INTERFACE
def clear_session(request: Request) -> None:
    """Drop everything from the session, logging the user out."""
    request.session.clear()
