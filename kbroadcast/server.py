from __future__ import annotations

import logging

import uvicorn

from .app import create_app
from .logs import configure_logging
from .settings import settings

log = logging.getLogger(__name__)


def main() -> int:
    configure_logging(settings.debug)
    app = create_app(settings)
    log.info("Server running on port %s", settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level="debug" if settings.debug else "info")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
