from __future__ import annotations

import logging


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=str(level or "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    # requests/urllib3 log every connection at DEBUG.
    logging.getLogger("urllib3").setLevel(logging.WARNING)
