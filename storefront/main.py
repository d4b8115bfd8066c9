"""
Storefront Backend - Main Application
FastAPI entry point: cached catalog routes, chat WebSocket and the hourly
Shopify-Meilisearch product sync
"""

from typing import Optional

import structlog
from asgi_correlation_id import CorrelationIdMiddleware
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from storefront.config import settings
from storefront.dependencies import ServiceContainer
from storefront.routers import chat_router, collections_router, products_router
from storefront.services.monitoring import init_sentry, setup_logging

setup_logging()
logger = structlog.get_logger()


def create_app(services: Optional[ServiceContainer] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        services: Pre-built service container (tests inject fakes here).
                  When omitted, one is built from settings at startup.
    """
    app = FastAPI(
        title="Storefront Backend",
        description="Cached Shopify catalog proxy with a product-grounded chat assistant",
        version="0.1.0",
        docs_url="/docs" if settings.environment == "development" else None,
        redoc_url="/redoc" if settings.environment == "development" else None,
    )
    app.state.services = services

    app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])
    app.add_middleware(CorrelationIdMiddleware)

    app.include_router(products_router)
    app.include_router(collections_router)
    app.include_router(chat_router)

    @app.on_event("startup")
    async def startup_event():
        """Application Startup"""
        logger.info("startup", environment=settings.environment)
        init_sentry()

        if app.state.services is None:
            app.state.services = ServiceContainer.from_settings(settings)
            # Skip scheduler in testing
            await app.state.services.init(start_scheduler=settings.environment != "testing")
            logger.info("services_initialized")

    @app.on_event("shutdown")
    async def shutdown_event():
        """Application Shutdown"""
        logger.info("shutdown")
        if app.state.services is not None:
            await app.state.services.close()

    @app.get("/")
    async def root():
        """Root Endpoint"""
        return {
            "message": "Storefront Backend API",
            "version": "0.1.0",
            "status": "running"
        }

    @app.get("/health")
    async def health_check():
        """
        Health Check Endpoint
        Reports process liveness and scheduler state
        """
        services = app.state.services
        scheduler_running = services is not None and services.scheduler.running

        health_status = {
            "status": "healthy",
            "environment": settings.environment,
            "services": {
                "api": "running",
                "scheduler": "running" if scheduler_running else "stopped"
            }
        }

        if settings.redis_url or settings.redis_host:
            health_status["services"]["redis"] = "configured"
        if settings.meili_endpoint:
            health_status["services"]["meilisearch"] = "configured"
        if settings.openrouter_api_key:
            health_status["services"]["openrouter"] = "configured"

        return JSONResponse(content=health_status, status_code=200)

    @app.post("/api/v1/admin/product-sync/trigger")
    async def trigger_product_sync():
        """
        Manually trigger a product sync.

        Runs a full sync immediately instead of waiting for the hourly
        schedule. Errors are returned to the caller.

        Returns:
            dict: status and number of documents submitted
        """
        services = app.state.services
        if services is None:
            raise HTTPException(status_code=503, detail="Services not initialized")

        try:
            documents = await services.product_sync.sync_once()
        except Exception as e:
            logger.error("manual_product_sync_failed", error=str(e), exc_info=True)
            raise HTTPException(status_code=500, detail=f"Product sync failed: {e}")

        logger.info("manual_product_sync_completed", documents=documents)
        return {"status": "completed", "documents": documents}

    return app


app = create_app()
