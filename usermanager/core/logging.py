import logging
import os
from typing import Optional


def configure_logging(level: Optional[str] = None) -> None:
    """Configure logging for the service; ``LOG_LEVEL`` applies when no level is passed."""
    resolved = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        level=resolved,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    # basicConfig is a no-op once the root logger has handlers (uvicorn, pytest).
    logging.getLogger("usermanager").setLevel(resolved)
