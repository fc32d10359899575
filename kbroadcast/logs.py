from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(debug: bool = False) -> None:
    """Configure root logging once for the process.

    With debug enabled the per-request and per-target details logged at
    DEBUG level become visible.
    """
    logging.basicConfig(level=logging.DEBUG if debug else logging.INFO, format=LOG_FORMAT)
    # httpx logs every request at INFO; the gateway already logs per-target lines.
    logging.getLogger("httpx").setLevel(logging.DEBUG if debug else logging.WARNING)
