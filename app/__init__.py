from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from app.config import Config, get_config
from app.utils.logging import setup_logging

if TYPE_CHECKING:
    from actions.dashboard import ReportDashboard
    from services.report_client import ReportServiceClient


def create_app(cfg: Config | None = None, *, client: "ReportServiceClient | None" = None) -> "ReportDashboard":
    """Build the one ReportDashboard for this session."""
    # Deferred: actions/services import app.utils, which initialises this package first.
    from actions.dashboard import ReportDashboard
    from services.report_client import ReportServiceClient

    load_dotenv()

    cfg = cfg or get_config()
    setup_logging(cfg.LOG_LEVEL)

    client = client or ReportServiceClient.from_config(cfg)
    dashboard = ReportDashboard(client, cfg)

    logging.getLogger(__name__).info(
        "report console ready api=%s version=%s", cfg.REPORT_API_URL, cfg.APP_VERSION
    )
    return dashboard
