import logging

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from estate_market.core.catch_error_middleware import ErrorHandlerMiddleware
from estate_market.core.database import Database
from estate_market.core.exception_handler import register_exception_handlers
from estate_market.core.lifespan import lifespan
from estate_market.core.settings import settings
from estate_market.routes.auth_routes import router as auth_router
from estate_market.routes.booking_routes import router as booking_router
from estate_market.routes.dashboard_routes import router as dashboard_router
from estate_market.routes.payment_routes import router as payment_router
from estate_market.routes.property_routes import router as property_router
from estate_market.routes.upload_routes import router as upload_router
from estate_market.routes.user_routes import router as user_router

logging.basicConfig(level=settings.LOG_LEVEL.upper())


def create_app(database: Database | None = None) -> FastAPI:
    app = FastAPI(
        lifespan=lifespan,
        title=settings.PROJECT_NAME,
        version="1.0.0",
    )
    if database is not None:
        app.state.db = database

    prefix = settings.API_PREFIX
    app.include_router(auth_router, prefix=f"{prefix}/auth")
    app.include_router(user_router, prefix=f"{prefix}/users")
    app.include_router(property_router, prefix=f"{prefix}/properties")
    app.include_router(dashboard_router, prefix=f"{prefix}/dashboard")
    app.include_router(booking_router, prefix=f"{prefix}/bookings")
    app.include_router(payment_router, prefix=f"{prefix}/payments")
    app.include_router(upload_router, prefix=f"{prefix}/upload")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_HOSTS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health", tags=["System"])
    async def health_check():
        return {"status": "ok", "environment": settings.ENVIRONMENT}

    register_exception_handlers(app)
    app.add_middleware(ErrorHandlerMiddleware)
    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run("estate_market.app:app", host="127.0.0.1", port=8001, reload=True)
