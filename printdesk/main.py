from prometheus_fastapi_instrumentator import Instrumentator

from printdesk import create_app
from printdesk.core.logging import configure_logging

configure_logging()
app = create_app()
# Middleware has to be in place before the first request builds the stack.
instrumentator = Instrumentator().instrument(app)
instrumentator.expose(app, include_in_schema=False)


@app.get("/health")
async def health() -> dict[str, bool]:
    return {"ok": True}
