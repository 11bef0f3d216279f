"""
Session Middleware Module - Black Box Interface

Purpose: Load and save the server-side session around every request
Interface: SessionMiddleware, Session, get_session()
Hidden: Cookie handling, id verification, locking strategy calls

Works with any FastAPI/Starlette app:

    middleware = SessionStoreFactory.build_middleware(config, store)
    middleware.install(app)

    @app.get("/")
    async def index(session: Session = Depends(get_session)):
        session["visits"] = session.get("visits", 0) + 1
"""

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from starlette.responses import Response

from ..errors import ErrorHandler, InvalidSessionId, report_error
from ..identifier import SessionIdentifier, VerificationStatus
from ..locking import LockingStrategy, RequestContext

logger = logging.getLogger(__name__)


class Session(dict):
    """
    Mutable attribute bag for one request.

    Handlers read and write it like a dict. destroy() deletes the stored
    record; renew() moves the data to a fresh id (use after login).
    """

    def __init__(self, session_id: str, data: Optional[Dict[str, Any]] = None, is_new: bool = False):
        super().__init__(data or {})
        self.id = session_id
        self.is_new = is_new
        self.destroyed = False
        self.drop = False
        self.renewed = False

    def destroy(self, drop: bool = False) -> None:
        """
        Delete the session at the end of the request.

        Args:
            drop: Also remove the cookie instead of issuing a fresh id
        """
        self.clear()
        self.destroyed = True
        self.drop = drop

    def renew(self) -> None:
        """Keep the data but store it under a new id at the end of the request."""
        self.renewed = True


class SessionMiddleware:
    """
    Per-request session middleware for FastAPI applications.

    Verifies the id cookie, loads the session through the locking strategy,
    exposes it as request.state.session and writes it back after the handler.
    """

    def __init__(
        self,
        strategy: LockingStrategy,
        identifier: SessionIdentifier,
        error_handler: ErrorHandler,
        cookie_name: str = "_session_id",
        path: str = "/",
        secure: bool = False,
        httponly: bool = True,
        samesite: str = "lax",
        max_age: Optional[int] = None,
    ):
        """
        Initialize session middleware.

        Args:
            strategy: Locking strategy for store access
            identifier: Signs and verifies session ids
            error_handler: Receives InvalidSessionId reports
            cookie_name: Name of the session id cookie
            path: Cookie path
            secure: Send the cookie over HTTPS only
            httponly: Hide the cookie from scripts
            samesite: SameSite cookie policy
            max_age: Cookie lifetime in seconds (browser session when None)
        """
        self.strategy = strategy
        self.identifier = identifier
        self.error_handler = error_handler
        self.cookie_name = cookie_name
        self.path = path
        self.secure = secure
        self.httponly = httponly
        self.samesite = samesite
        self.max_age = max_age

    def install(self, app: FastAPI) -> None:
        """Register this middleware on an app."""
        app.middleware("http")(self)

    async def __call__(self, request: Request, call_next):
        """Process the request through the session middleware."""
        context = RequestContext(extras={"method": request.method, "path": request.url.path})
        presented = request.cookies.get(self.cookie_name)

        session = await self.load_session(presented, context)
        request.state.session = session

        try:
            response = await call_next(request)
        except Exception:
            await self.strategy.release(session.id, context)
            raise

        await self.commit_session(session, presented, context, response)
        return response

    async def load_session(self, presented: Optional[str], context: RequestContext) -> Session:
        """Verify the presented id and load its data, or start a new session."""
        verification = self.identifier.verify(presented)
        context.extras["verification"] = verification.status.value

        if verification.status is VerificationStatus.INVALID:
            # Forged or corrupted id: report it, then carry on with a fresh session
            report_error(self.error_handler, InvalidSessionId(presented), context)

        if not verification.ok:
            context.new_session = True
            return Session(self.identifier.generate(), is_new=True)

        data, found = await self.strategy.get(presented, context)
        return Session(presented, data, is_new=not found)

    async def commit_session(
        self,
        session: Session,
        presented: Optional[str],
        context: RequestContext,
        response: Response,
    ) -> None:
        """Write, delete or renew the session and update the cookie."""
        if session.destroyed:
            await self.strategy.delete(session.id, context)
            if session.drop:
                response.delete_cookie(self.cookie_name, path=self.path)
            else:
                self.set_cookie(response, self.identifier.generate())
            return

        if session.renewed:
            await self.strategy.delete(session.id, context)
            session.id = self.identifier.generate()
            context = RequestContext(new_session=True, extras=context.extras)

        result = await self.strategy.set(session.id, dict(session), context)
        if result is False:
            await self.strategy.release(session.id, context)
            return

        if session.id != presented or self.max_age is not None:
            self.set_cookie(response, session.id)

    def set_cookie(self, response: Response, session_id: str) -> None:
        response.set_cookie(
            self.cookie_name,
            session_id,
            max_age=self.max_age,
            path=self.path,
            secure=self.secure,
            httponly=self.httponly,
            samesite=self.samesite,
        )


def get_session(request: Request) -> Session:
    """FastAPI dependency returning the current request's session."""
    session = getattr(request.state, "session", None)
    if session is None:
        raise RuntimeError("SessionMiddleware is not installed on this app")
    return session


__all__ = ["Session", "SessionMiddleware", "get_session"]
