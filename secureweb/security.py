# secureweb/security.py

"""
Caller identification for protected routes.

Two schemes are supported:

- Bearer tokens (`Authorization: Bearer token-alice`) for the orders API. Tokens
  are opaque demo tokens resolved through the store.
- A `session` cookie for the login flow, resolved through the `SessionStore`
  with lazy expiry.

Both resolve to a `User` from the store; authorization decisions are then
made separately by `authorization.authorize`.
"""

from fastapi import Depends, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from secureweb.config import settings
from secureweb.dependencies import get_sessions, get_store
from secureweb.exceptions import AuthenticationRequired
from secureweb.schemas import User
from secureweb.sessions import SessionStore
from secureweb.store import InMemoryStore

# auto_error=False so a missing header takes the same 401 path as a bad token
bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_principal(
    creds: HTTPAuthorizationCredentials | None = Security(bearer_scheme),
    store: InMemoryStore = Depends(get_store),
) -> User:
    """
    Resolves the bearer token in the Authorization header to a user.

    Raises:
        AuthenticationRequired(401): If the header is missing or the token is unknown.
    """
    token = creds.credentials if creds else None
    user = store.principal_for_token(token)
    if user is None:
        raise AuthenticationRequired("Invalid token")
    return user


async def get_session_user(
    request: Request,
    store: InMemoryStore = Depends(get_store),
    sessions: SessionStore = Depends(get_sessions),
) -> User | None:
    """Returns the user behind the session cookie, or None if absent or expired."""
    session = sessions.get(request.cookies.get(settings.session_cookie_name))
    if session is None:
        return None
    return store.get_user(session.user_id)
