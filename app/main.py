from fastapi import FastAPI

from app.gymdesk.api import api_router
from app.gymdesk.core.config import settings
from app.gymdesk.core.errors import setup_exception_handlers
from app.gymdesk.core.logging import configure_logging
from app.gymdesk.middleware.observability import ObservabilityMiddleware
from app.gymdesk.middleware.tenant import TenantContextMiddleware
from app.gymdesk.middleware.trace import TraceIdMiddleware


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title=settings.APP_NAME)
    app.add_middleware(TenantContextMiddleware)
    app.add_middleware(TraceIdMiddleware)
    app.add_middleware(ObservabilityMiddleware)
    setup_exception_handlers(app)
    app.include_router(api_router)
    return app


app = create_app()
