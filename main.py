"""
Timegeist - Entry Point.

Single entry point: `python main.py` prints the calendar for the
configured user.
"""

import logging

from src.config import settings

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

from src.cli.calendar_cli import main

if __name__ == "__main__":
    main()
