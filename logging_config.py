"""
Root logger setup for the API process.
"""

import logging

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(level: str = "INFO") -> None:
    # basicConfig leaves the root logger alone once it has handlers, e.g. when
    # uvicorn configured logging first or create_app runs again in tests.
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )
