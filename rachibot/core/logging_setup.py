"""structlog setup shared by the HTTP app and scripts."""

import logging

import structlog


def configure_logging(level: str = "INFO", json: bool = False) -> None:
    """Install a level-filtering structlog pipeline.

    Args:
        level: Minimum level name (``DEBUG`` ... ``CRITICAL``).
        json: Render events as JSON lines instead of the console renderer.
    """
    renderer = (
        structlog.processors.JSONRenderer(ensure_ascii=False)
        if json
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
        cache_logger_on_first_use=True,
    )
