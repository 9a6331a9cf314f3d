"""
Logging setup shared by the library and its front-ends
"""

import logging
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging, defaulting the level from settings"""
    if level is None:
        from codereviewer.config.settings import get_settings

        level = get_settings().log_level

    logging.basicConfig(level=level, format=LOG_FORMAT)
    # httpx logs every request line at INFO, which would leak the Gemini key
    logging.getLogger("httpx").setLevel(logging.WARNING)
