from __future__ import annotations

import logging

import uvicorn

from .config import AppSettings

_logger = logging.getLogger(__name__)


def main() -> None:
    settings = AppSettings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    _logger.info("Starting calendar service on %s", settings.bind_addr)
    uvicorn.run(
        "ahe_app.api:app",
        host=settings.bind_host,
        port=settings.bind_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
