"""
Shared fixtures.

``service`` is the in-process fake report service; ``client`` and
``dashboard`` are wired to it through a real requests.Session.
"""
from __future__ import annotations

import os
import sys

import pytest

# Project root = parent directory of this tests/ folder
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from actions.dashboard import ReportDashboard  # noqa: E402
from app.config import Config  # noqa: E402
from cache_layer import ResponseCache  # noqa: E402
from services.report_client import ReportServiceClient  # noqa: E402
from tests.fake_service import BASE_URL, FakeReportService, make_session  # noqa: E402


@pytest.fixture
def service() -> FakeReportService:
    return FakeReportService()


@pytest.fixture
def cfg(tmp_path) -> Config:
    return Config(
        REPORT_API_URL=BASE_URL,
        REQUEST_TIMEOUT_SECONDS=5,
        DOWNLOAD_DIR=str(tmp_path / "downloads"),
        PAGE_SIZE=30,
        PAGE_SIZE_OPTIONS=[30, 50, 100],
    )


@pytest.fixture
def client(service, cfg) -> ReportServiceClient:
    return ReportServiceClient(
        cfg.REPORT_API_URL,
        timeout=cfg.REQUEST_TIMEOUT_SECONDS,
        session=make_session(service),
        cache=ResponseCache(ttl_seconds=60, max_items=100),
    )


@pytest.fixture
def dashboard(client, cfg) -> ReportDashboard:
    return ReportDashboard(client, cfg)
