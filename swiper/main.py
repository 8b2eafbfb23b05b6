"""Entry point for Base Swiper API."""

from __future__ import annotations

import uvicorn
from loguru import logger

from config.settings import get_settings
from .context import build_context
from .logging_config import setup_logging
from .web.app import create_app


def main() -> None:
    settings = get_settings()
    setup_logging(settings.logging.level, json_format=settings.logging.json_format)
    app = create_app(build_context(settings))
    logger.info(
        "🚀 Base Swiper API на {host}:{port} ({env})",
        host=settings.server.host,
        port=settings.server.port,
        env=settings.environment,
    )
    uvicorn.run(
        app,
        host=settings.server.host,
        port=settings.server.port,
        proxy_headers=True,
        forwarded_allow_ips=settings.server.forwarded_allow_ips,
        log_config=None,
    )


if __name__ == "__main__":
    main()
