"""Cookie transport for FastAPI and Starlette applications.

This module moves session ids between HTTP cookies and a SessionManager:
reading the incoming id before start(), emitting the session cookie after the
request, and clearing it once the session is destroyed.
"""

import logging
from typing import Callable, Optional

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from sessionkit.config import SessionConfig
from sessionkit.exceptions import BackendFailure, InvalidSessionIdError
from sessionkit.models.session import SessionState
from sessionkit.session.manager import SessionManager
from sessionkit.storage.base import SessionStorage
from sessionkit.storage.factory import create_storage

logger = logging.getLogger(__name__)


def resume_from_request(request: Request, manager: SessionManager) -> bool:
    """Hand the id from the request's session cookie to the manager.

    Args:
        request: Incoming request with cookies
        manager: Manager that has not been started yet

    Returns:
        True if an id was taken from the cookie, False otherwise
    """
    cookie_value = request.cookies.get(manager.get_name())
    if not cookie_value:
        return False

    try:
        manager.set_id(cookie_value)
    except InvalidSessionIdError:
        logger.warning(
            "Ignoring malformed session cookie",
            extra={"session_name": manager.get_name()},
        )
        return False
    return True


def apply_session_cookie(response: Response, manager: SessionManager) -> None:
    """Set the session cookie on a response.

    Args:
        response: Response to set the cookie on
        manager: Manager holding the active session
    """
    params = manager.get_cookie_params()
    response.set_cookie(
        key=manager.get_name(),
        value=manager.get_id(),
        max_age=params.lifetime or None,
        path=params.path,
        domain=params.domain or None,
        secure=params.secure,
        httponly=params.http_only,
        samesite=params.samesite,
    )


def clear_session_cookie(response: Response, manager: SessionManager) -> None:
    """Delete the session cookie on a response.

    Args:
        response: Response to clear the cookie on
        manager: Manager whose cookie parameters locate the cookie
    """
    params = manager.get_cookie_params()
    response.delete_cookie(
        key=manager.get_name(),
        path=params.path,
        domain=params.domain or None,
        secure=params.secure,
        httponly=params.http_only,
        samesite=params.samesite,
    )


class SessionMiddleware(BaseHTTPMiddleware):
    """Middleware that gives every request its own started session.

    This middleware:
    - Builds a SessionManager per request and resumes the id from the cookie
    - Starts the session and exposes it as ``request.state.session``
    - Saves the session after the handler and emits the session cookie
    - Clears the cookie when the handler destroyed the session

    Attributes:
        manager_factory: Callable returning a fresh SessionManager
    """

    def __init__(
        self,
        app,
        config: Optional[SessionConfig] = None,
        storage: Optional[SessionStorage] = None,
        manager_factory: Optional[Callable[[], SessionManager]] = None,
    ):
        """Initialize SessionMiddleware.

        Args:
            app: ASGI application
            config: Session configuration shared by all requests
            storage: Storage backend shared by all requests (built from the
                configuration if not provided)
            manager_factory: Overrides how per-request managers are built
        """
        super().__init__(app)
        if manager_factory is None:
            config = config or SessionConfig()
            if storage is None:
                storage = create_storage(config.to_options())

            def manager_factory() -> SessionManager:
                return SessionManager(config, storage=storage)

        self.manager_factory = manager_factory

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request with a started session.

        Args:
            request: Incoming request
            call_next: Next middleware/handler in chain

        A save that fails after the handler ran is logged and the response is
        returned as produced. The cookie is still issued, so a client whose id
        was rotated by regenerate_id() (which persists on its own) follows it.

        Returns:
            Response from handler, or a 503 JSON response if storage failed
        """
        manager = self.manager_factory()
        resume_from_request(request, manager)

        if not manager.start():
            return JSONResponse(
                status_code=503,
                content={
                    "detail": "Session storage unavailable",
                    "error": "session_backend_failure",
                },
            )

        request.state.session = manager
        response = await call_next(request)

        if manager.state is SessionState.DESTROYED:
            clear_session_cookie(response, manager)
        elif manager.is_started():
            try:
                manager.save()
            except BackendFailure as e:
                logger.error(
                    "Failed to save session after request",
                    extra={"path": request.url.path, "error": str(e)},
                )
            apply_session_cookie(response, manager)

        return response

