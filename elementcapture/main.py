import logging

import uvicorn
from fastapi import FastAPI

from elementcapture.api.v1.capture import router as capture_router
from elementcapture.core.config import settings

class ContextFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        extras = []
        for key in ("request_id", "family", "url", "format", "error", "reason"):
            value = getattr(record, key, None)
            if value not in (None, ""):
                extras.append(f"{key}={value}")
        base = super().format(record)
        if extras:
            return f"{base} | " + " ".join(extras)
        return base


handler = logging.StreamHandler()
handler.setFormatter(ContextFormatter("%(levelname)s:%(name)s:%(message)s"))

root = logging.getLogger()
root.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
root.handlers.clear()
root.addHandler(handler)

app = FastAPI(title="Element Capture Service", version="1.0.0")

app.include_router(capture_router, prefix="/v1", tags=["capture"])


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


def serve() -> None:
    """Console entry point: run the service with uvicorn."""
    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_config=None)
