from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.middleware import SlowAPIMiddleware

from uthabiti.api.v1 import api_router
from uthabiti.core.errors import register_exception_handlers
from uthabiti.core.health import APP_VERSION
from uthabiti.core.limiter import limiter
from uthabiti.core.logging import configure_logging
from uthabiti.core.response_envelope import register_response_envelope
from uthabiti.core.settings import settings
from uthabiti.events import register_event_handlers
from uthabiti.middlewares.request_context import RequestContextMiddleware
from uthabiti.middlewares.trust_proxies import TrustedProxiesMiddleware


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title="Uthabiti SACCO", version=APP_VERSION)
    register_exception_handlers(app)
    register_response_envelope(app)
    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)
    app.add_middleware(TrustedProxiesMiddleware, proxies_count=settings.proxies_count)
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(api_router, prefix="/api/v1")
    register_event_handlers(app)
    return app


app = create_app()
