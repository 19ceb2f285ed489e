from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from hdstats import __version__
from hdstats.api.router import api_router
from hdstats.config import settings
from hdstats.utils.logger import configure_logging


def create_app() -> FastAPI:
    configure_logging(settings.log_level)

    app = FastAPI(
        title="hdstats",
        version=__version__,
        description="Penalized regression, moderated testing and survival analysis for high-dimensional data",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)

    @app.get("/health")
    async def health():
        return {"ok": True, "version": __version__}

    return app


app = create_app()
