"""Logging setup."""

import logging
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

# marks handlers added here so a second call replaces them instead of stacking
_OWNED = "_godotup_handler"


def setup_logging(verbose: bool = False, log_dir: Optional[Path] = None,
                  console: Optional[Console] = None):
    """Setup logging configuration.

    Console records go through ``console`` so they print above a live rich
    progress bar instead of through it.
    """
    log_dir = log_dir or (Path.home() / ".cache" / "godotup")
    log_dir.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger()
    logger.setLevel(logging.DEBUG)

    # Clear handlers from a previous call
    for handler in [h for h in logger.handlers if getattr(h, _OWNED, False)]:
        logger.removeHandler(handler)
        handler.close()

    # File handler
    file_handler = logging.FileHandler(log_dir / "godotup.log", encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    file_handler.setFormatter(file_formatter)

    # Console handler
    console_handler = RichHandler(
        console=console or Console(stderr=True),
        show_time=False,
        show_path=False,
        markup=False,
    )
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    console_handler.setFormatter(logging.Formatter('%(message)s'))

    for handler in (file_handler, console_handler):
        setattr(handler, _OWNED, True)
        logger.addHandler(handler)
