#!/usr/bin/env python3
"""
kvsession - Demo Application

Thin orchestration layer that:
1. Loads configuration
2. Builds the session stack through the factory
3. Serves a few endpoints that read and write the session

Run with:
    uvicorn kvsession.main:create_app --factory
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import redis.asyncio as redis
import uvicorn
from fastapi import Depends, FastAPI, Query

from kvsession.config import SessionStoreConfig, load_config
from kvsession.logging_config import configure_logging, get_logging_config
from kvsession.modules.errors import DefaultErrorHandler
from kvsession.modules.factory import SessionStoreFactory
from kvsession.modules.middleware import Session, get_session
from kvsession.modules.storage import StoreClient

logger = logging.getLogger(__name__)


def create_app(
    config: Optional[SessionStoreConfig] = None,
    store: Optional[StoreClient] = None,
) -> FastAPI:
    """
    Create the demo application.

    Args:
        config: Configuration (loaded from environment/file when None)
        store: Store client (Redis at config.redis_url when None)

    Raises:
        MissingSecretKey: If no secret key is configured; the app never starts without one
    """
    config = config or load_config()
    redis_client = None
    if store is None:
        redis_client = redis.from_url(config.redis_url, decode_responses=True)
        store = SessionStoreFactory.build_store_client(config, redis_client)

    error_handler = DefaultErrorHandler(logging.getLogger("kvsession.errors"))
    session_middleware = SessionStoreFactory.build_middleware(config, store, error_handler)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting kvsession demo (table={config.table_name})")
        yield
        if redis_client:
            await redis_client.aclose()
        logger.info("kvsession demo shutdown complete")

    app = FastAPI(
        title="kvsession demo",
        description="Server-side sessions in a key-value store",
        version="1.0.0",
        lifespan=lifespan,
    )
    session_middleware.install(app)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.get("/session")
    async def show_session(session: Session = Depends(get_session)):
        """Return the session contents."""
        return {"new": session.is_new, "data": dict(session)}

    @app.post("/counter")
    async def increment(session: Session = Depends(get_session)):
        """Read-modify-write on the session; safe under pessimistic locking."""
        session["count"] = session.get("count", 0) + 1
        return {"count": session["count"]}

    @app.post("/login")
    async def login(user: str = Query(..., min_length=1), session: Session = Depends(get_session)):
        """Store the user and move the session to a fresh id."""
        session["user"] = user
        session.renew()
        return {"user": user}

    @app.post("/logout")
    async def logout(session: Session = Depends(get_session)):
        session.destroy(drop=True)
        return {"status": "logged out"}

    return app


if __name__ == "__main__":
    settings = load_config()
    configure_logging(settings.log_level)
    uvicorn.run(
        create_app(settings),
        host="0.0.0.0",
        port=8080,
        log_config=get_logging_config(settings.log_level),
    )
