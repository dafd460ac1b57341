"""Main FastAPI application with all middleware"""

from fastapi import FastAPI
from contextlib import asynccontextmanager
from typing import Optional
import logging

from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from cart_engagement.api import api_router, health_router
from cart_engagement.core.config import settings
from cart_engagement.core.exceptions import (
    CartLifecycleException,
    cart_lifecycle_exception_handler,
)
from cart_engagement.core.logging import setup_logging
from cart_engagement.core.middleware import setup_middleware
from cart_engagement.middleware.rate_limit import limiter, custom_rate_limit_handler
from cart_engagement.services.cart_lifecycle import CartLifecycleService

logger = logging.getLogger(__name__)

def create_app(service: Optional[CartLifecycleService] = None) -> FastAPI:
    """
    Build the application
    
    Args:
        service: Pre-built service (tests pass one wired to fakes). When
            omitted a default service is built at startup.
    """
    
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager"""
        # Startup
        setup_logging()
        logger.info(f"Starting up {settings.APP_NAME}...")
        
        cart_service = service or CartLifecycleService(settings)
        await cart_service.start()
        app.state.cart_service = cart_service
        
        yield
        
        # Shutdown
        logger.info(f"Shutting down {settings.APP_NAME}...")
        await cart_service.stop()
        
    app = FastAPI(
        title=settings.APP_NAME,
        description="Saved carts, sharing, bulk edits, price alerts and cart recovery",
        version=settings.APP_VERSION,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
        lifespan=lifespan
    )
    
    # Add rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, custom_rate_limit_handler)
    app.add_exception_handler(CartLifecycleException, cart_lifecycle_exception_handler)
    app.add_middleware(SlowAPIMiddleware)
    
    # Add middleware
    setup_middleware(app)
    
    # Include routers
    app.include_router(health_router)
    app.include_router(api_router, prefix="/api/v1")
    
    # Root endpoint
    @app.get("/")
    async def root():
        return {
            "app": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "environment": settings.ENVIRONMENT,
            "docs": "/api/docs",
            "health": "/health"
        }
        
    return app

app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "cart_engagement.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        workers=1
    )
