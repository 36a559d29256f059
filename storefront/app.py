"""
FastAPI application exposing the cart and favorites engine.

Run with:
    uvicorn storefront.app:app
"""

from contextlib import asynccontextmanager
from typing import Awaitable, Callable, Optional

from fastapi import FastAPI

from storefront.auth import DeviceIdStore, IdentityResolver
from storefront.logging import get_logger
from storefront.routers import router
from storefront.services.products import create_product_catalog
from storefront.store import create_document_store
from storefront.sync.session import ShopperSession

logger = get_logger(__name__)

SessionFactory = Callable[[], Awaitable[ShopperSession]]


async def build_session() -> ShopperSession:
    """Wire the session from environment configuration."""
    store = create_document_store()
    products = await create_product_catalog(store)
    identity = IdentityResolver(DeviceIdStore())
    return ShopperSession(store, products, identity)


def create_app(session_factory: Optional[SessionFactory] = None) -> FastAPI:
    factory = session_factory or build_session

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler"""
        session = await factory()
        await session.start()
        app.state.session = session
        logger.info("Storefront API started (store=%s)", "mock" if session.store.is_mock else "live")
        yield
        await session.close()
        app.state.session = None

    app = FastAPI(
        title="Storefront",
        description="Cart and favorites sync API",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(router, prefix="/api")

    @app.get("/api/health")
    async def health_check():
        """Health check endpoint"""
        session = getattr(app.state, "session", None)
        mock = bool(session and session.store.is_mock)
        return {"status": "ok", "service": "storefront", "store": "mock" if mock else "live"}

    return app


app = create_app()
