"""
Admin dashboard core for the dating app.

Resolves window selectors into time boundaries, loads counts and row sets
through an injected data gateway, enriches rows with profile display fields
and folds everything into the overview, analytics and management views.
Administrative mutations live in ``actions`` and are guarded by the status
state machines in ``transitions``.
"""

from .actions import AdminActions  # noqa: F401
from .enrichment import ForeignKey, ProfileEnricher  # noqa: F401
from .errors import (  # noqa: F401
    ConstraintViolation,
    DashboardError,
    DuplicateWinnerError,
    GatewayError,
    GatewayNotConfiguredError,
    InvalidInputError,
    InvalidTransitionError,
    NotFoundError,
)
from .loader import LatestResultLoader  # noqa: F401
from .management import ManagementService  # noqa: F401
from .memory import InMemoryGateway  # noqa: F401
from .models import (  # noqa: F401
    ActivityBucket,
    AnalyticsResult,
    DistributionRow,
    GrowthPoint,
    OverviewResult,
    Ratios,
    ReportReason,
    ReportStatus,
    TableView,
    WithdrawalStatus,
)
from .repository import DataGateway, Filter, Order, SQLGateway, build_gateway  # noqa: F401
from .service import DashboardService  # noqa: F401
from .settings import DashboardSettings, load_settings  # noqa: F401
from .windows import ResolvedWindow, TimeRange, resolve_start, resolve_window  # noqa: F401
