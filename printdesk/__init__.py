"""Application factory for PrintDesk.

``create_app`` wires configuration, the database, middleware, error handling
and the API routers into one FastAPI instance. ``printdesk.main`` adds logging
and metrics on top and is what uvicorn serves.
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

__version__ = "0.1.0"


def create_app() -> FastAPI:
    from .core.config import settings
    from .core.errors import (
        PrintDeskError,
        http_exception_handler,
        printdesk_error_handler,
        validation_exception_handler,
    )
    from .db.session import Base, engine
    from .middlewares import RequestIdMiddleware

    # Importing the models registers their tables on ``Base.metadata``.
    from .models import customer as _customer  # noqa: F401
    from .models import equipment as _equipment  # noqa: F401
    from .models import profile as _profile  # noqa: F401
    from .models import ticket as _ticket  # noqa: F401
    from .routers import (
        api_customers,
        api_equipment,
        api_projection,
        api_reports,
        api_tickets,
        realtime,
    )

    Base.metadata.create_all(bind=engine)

    app = FastAPI(title=settings.APP_NAME, version=__version__)
    app.add_middleware(RequestIdMiddleware)
    if settings.ALLOWED_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.ALLOWED_ORIGINS,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.add_exception_handler(PrintDeskError, printdesk_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    app.include_router(api_tickets.router)
    app.include_router(api_equipment.router)
    app.include_router(api_customers.router)
    app.include_router(api_projection.router)
    app.include_router(api_reports.router)
    app.include_router(realtime.router)
    return app


__all__ = ["create_app", "__version__"]
