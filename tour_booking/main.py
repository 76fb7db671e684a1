import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from tour_booking.config import settings as default_settings, Settings
from tour_booking.database import Database
from tour_booking.exceptions import register_exception_handlers
from tour_booking.logging_config import setup_logging
from tour_booking.bookings import router as bookings_router
from tour_booking.transactions import router as transactions_router

logger = logging.getLogger(__name__)

def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    """Build the API. ``database`` is created from settings at startup unless injected."""
    settings = settings or default_settings
    setup_logging(settings.LOG_LEVEL, settings.LOG_FILE)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.database is None:
            app.state.database = Database.from_settings(settings)
        if settings.DB_CREATE_TABLES:
            app.state.database.create_all()
        logger.info("%s started (environment=%s)", settings.PROJECT_NAME, settings.ENVIRONMENT)

        yield

        # Runs after the server has finished in-flight requests
        app.state.database.dispose()
        logger.info("%s stopped", settings.PROJECT_NAME)

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version="1.0.0",
        description="Tour package booking and ticket check-in API",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )
    app.state.settings = settings
    app.state.database = database

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app, expose_errors=not settings.is_production)

    # Include routers
    app.include_router(
        bookings_router,
        prefix=f"{settings.API_PREFIX}/bookings",
        tags=["Bookings & Tickets"]
    )

    app.include_router(
        transactions_router,
        prefix=f"{settings.API_PREFIX}/transactions",
        tags=["Transactions"]
    )

    @app.get("/")
    def root():
        """Root endpoint"""
        return {
            "success": True,
            "message": f"{settings.PROJECT_NAME} API",
            "version": "1.0.0",
            "environment": settings.ENVIRONMENT,
            "docs": "/docs"
        }

    @app.get("/health")
    def health_check(request: Request):
        """Health check endpoint, including the database connection"""
        request.app.state.database.ping()
        return {"success": True, "message": "healthy", "status": "healthy", "database": "connected"}

    return app

app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
