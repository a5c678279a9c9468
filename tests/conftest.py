from __future__ import annotations

import pytest

from backend.admin_dashboard.memory import InMemoryGateway
from backend.admin_dashboard.settings import DashboardSettings

from .fixtures import seed_rows


@pytest.fixture
def settings() -> DashboardSettings:
    return DashboardSettings()


@pytest.fixture
def gateway() -> InMemoryGateway:
    return InMemoryGateway(seed_rows())
