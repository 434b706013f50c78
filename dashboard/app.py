from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from jnfo.aggregator import ClientFactory, DashboardAggregator
from jnfo.config import Settings

from .routes import router, static_router


def create_app(settings: Settings, client_factory: Optional[ClientFactory] = None) -> FastAPI:
    """Build the web app around one aggregator bound to ``settings``."""
    app = FastAPI(title="JNFO", description="Jellyfin server dashboard")
    app.state.settings = settings
    app.state.aggregator = DashboardAggregator(settings, client_factory)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    app.include_router(router)

    # Hashed frontend bundles
    assets_dir = settings.static_path / "_app"
    if assets_dir.is_dir():
        app.mount("/_app", StaticFiles(directory=str(assets_dir)), name="assets")

    # Must stay last: catches every path the routes above did not
    app.include_router(static_router)
    return app
