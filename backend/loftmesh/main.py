"""
Main application module for the loft backend.

This file sets up the FastAPI application, configures CORS so browser
clients can make cross-origin requests, and exposes a simple health
check endpoint.

Routers for the loft and profile APIs are included under the `/api`
namespace.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.routes_loft import router as loft_router
from .api.routes_profiles import router as profiles_router


def create_app() -> FastAPI:
    """Factory to create and configure the FastAPI application.

    Returns:
        FastAPI: The configured FastAPI application instance.
    """
    app = FastAPI(title="loftmesh")

    # Allow all origins by default.  In production you should restrict
    # this to the domains that are allowed to access your API.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Health check endpoint for monitoring and deployment probes.
    @app.get("/api/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    app.include_router(loft_router, prefix="/api", tags=["loft"])
    app.include_router(profiles_router, prefix="/api", tags=["profiles"])

    return app


# Create the application instance.  Uvicorn will import this when
# running `uvicorn loftmesh.main:app` from within the backend directory.
app = create_app()
