# FastAPI application entry point that initialises
# the app, wires the container and registers API routes.


from fastapi import FastAPI
from trash2cash.container import StationContainer, build_container
from trash2cash.core.config import settings
from trash2cash.core.logging_config import configure_logging
from trash2cash.error_handlers import register_error_handlers
from trash2cash.routes.deposits import router as deposits_router
from trash2cash.routes.sessions import router as sessions_router


def create_app(container: StationContainer | None = None) -> FastAPI:
    container = container or build_container()
    configure_logging(container.settings.LOG_LEVEL)

    app = FastAPI(title=container.settings.APP_NAME)
    app.state.container = container
    app.include_router(sessions_router)
    app.include_router(deposits_router)
    register_error_handlers(app)

    @app.get("/health")
    def health():
        return {"ok": True}

    return app


app = create_app(build_container(settings))
