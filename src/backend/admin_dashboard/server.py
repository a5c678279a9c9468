"""FastAPI application exposing the admin dashboard views and actions."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Union

from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .actions import AdminActions
from .errors import DashboardError, GatewayNotConfiguredError
from .management import ManagementService
from .models import to_primitive
from .repository import DataGateway, build_gateway
from .service import Clock, DashboardService, utc_now
from .settings import DashboardSettings, load_settings

logger = logging.getLogger(__name__)

PACKAGE_LOGGER = "backend.admin_dashboard"


class DataResponse(BaseModel):
    data: Any


class PremiumToggleRequest(BaseModel):
    enabled: Optional[bool] = Field(
        None, description="Target premium flag; omit to flip the current value"
    )


class DiamondGrantRequest(BaseModel):
    amount: Union[int, str]


class StatusUpdateRequest(BaseModel):
    status: str
    notes: Optional[str] = None


class WinnerRequest(BaseModel):
    user_id: Optional[str] = None
    draw_date: Optional[str] = Field(None, description="Draw date as YYYY-MM-DD")
    prize_amount: Optional[Union[float, str]] = None


def _views(request: Request) -> DashboardService:
    return _require(request).state.dashboard


def _management(request: Request) -> ManagementService:
    return _require(request).state.management


def _actions(request: Request) -> AdminActions:
    return _require(request).state.actions


def _require(request: Request) -> FastAPI:
    app = request.app
    if app.state.gateway is None:
        raise GatewayNotConfiguredError()
    return app


router = APIRouter()


@router.get("/health")
async def health() -> Dict[str, str]:
    return {"status": "ok"}


@router.get("/overview", response_model=DataResponse)
async def overview(
    time_range: Optional[str] = Query(None, alias="range"),
    views: DashboardService = Depends(_views),
) -> DataResponse:
    result = await views.overview(time_range)
    return DataResponse(data=result.as_dict())


@router.get("/analytics", response_model=DataResponse)
async def analytics(
    time_range: Optional[str] = Query(None, alias="range"),
    views: DashboardService = Depends(_views),
) -> DataResponse:
    result = await views.analytics(time_range)
    return DataResponse(data=result.as_dict())


@router.get("/users", response_model=DataResponse)
async def list_users(
    search: Optional[str] = None,
    limit: Optional[int] = Query(None, ge=1, le=500),
    management: ManagementService = Depends(_management),
) -> DataResponse:
    view = await management.users(search, limit)
    return DataResponse(data=view.as_dict())


@router.get("/users/{user_id}", response_model=DataResponse)
async def get_user(user_id: str, management: ManagementService = Depends(_management)) -> DataResponse:
    return DataResponse(data=to_primitive(await management.user(user_id)))


@router.post("/users/{user_id}/premium", response_model=DataResponse)
def set_user_premium(
    user_id: str,
    payload: PremiumToggleRequest,
    actions: AdminActions = Depends(_actions),
) -> DataResponse:
    if payload.enabled is None:
        profile = actions.toggle_premium(user_id)
    else:
        profile = actions.set_premium(user_id, payload.enabled)
    return DataResponse(data=to_primitive(profile))


@router.post("/users/{user_id}/diamonds", response_model=DataResponse)
def grant_user_diamonds(
    user_id: str,
    payload: DiamondGrantRequest,
    actions: AdminActions = Depends(_actions),
) -> DataResponse:
    return DataResponse(data=to_primitive(actions.grant_diamonds(user_id, payload.amount)))


@router.get("/profiles/search", response_model=DataResponse)
async def search_profiles(
    q: Optional[str] = None,
    limit: Optional[int] = Query(None, ge=1, le=100),
    management: ManagementService = Depends(_management),
) -> DataResponse:
    return DataResponse(data=to_primitive(await management.search_profiles(q, limit)))


@router.get("/matches", response_model=DataResponse)
async def list_matches(
    search: Optional[str] = None,
    limit: Optional[int] = Query(None, ge=1, le=500),
    management: ManagementService = Depends(_management),
) -> DataResponse:
    view = await management.matches(search, limit)
    return DataResponse(data=view.as_dict())


@router.get("/reports", response_model=DataResponse)
async def list_reports(
    search: Optional[str] = None,
    status: Optional[str] = None,
    reason: Optional[str] = None,
    management: ManagementService = Depends(_management),
) -> DataResponse:
    view = await management.reports(search, status, reason)
    return DataResponse(data=view.as_dict())


@router.patch("/reports/{report_id}", response_model=DataResponse)
def update_report(
    report_id: str,
    payload: StatusUpdateRequest,
    actions: AdminActions = Depends(_actions),
) -> DataResponse:
    return DataResponse(data=to_primitive(actions.update_report_status(report_id, payload.status)))


@router.get("/withdrawals", response_model=DataResponse)
async def list_withdrawals(management: ManagementService = Depends(_management)) -> DataResponse:
    view = await management.withdrawals()
    return DataResponse(data=view.as_dict())


@router.patch("/withdrawals/{withdrawal_id}", response_model=DataResponse)
def update_withdrawal(
    withdrawal_id: str,
    payload: StatusUpdateRequest,
    actions: AdminActions = Depends(_actions),
) -> DataResponse:
    withdrawal = actions.update_withdrawal_status(withdrawal_id, payload.status, payload.notes)
    return DataResponse(data=to_primitive(withdrawal))


@router.get("/premium", response_model=DataResponse)
async def list_premium(management: ManagementService = Depends(_management)) -> DataResponse:
    view = await management.premium()
    return DataResponse(data=view.as_dict())


@router.post("/premium/signups/{signup_id}/approve", response_model=DataResponse)
def approve_signup(signup_id: str, actions: AdminActions = Depends(_actions)) -> DataResponse:
    return DataResponse(data=to_primitive(actions.approve_premium_signup(signup_id)))


@router.delete("/premium/signups/{signup_id}", response_model=DataResponse)
def deny_signup(signup_id: str, actions: AdminActions = Depends(_actions)) -> DataResponse:
    actions.deny_premium_signup(signup_id)
    return DataResponse(data={"id": signup_id, "deleted": True})


@router.delete("/premium/users/{user_id}", response_model=DataResponse)
def disable_user_premium(user_id: str, actions: AdminActions = Depends(_actions)) -> DataResponse:
    return DataResponse(data=to_primitive(actions.disable_premium(user_id)))


@router.get("/winners", response_model=DataResponse)
async def list_winners(management: ManagementService = Depends(_management)) -> DataResponse:
    view = await management.daily_winners()
    return DataResponse(data=view.as_dict())


@router.post("/winners", response_model=DataResponse, status_code=201)
def add_winner(payload: WinnerRequest, actions: AdminActions = Depends(_actions)) -> DataResponse:
    winner = actions.add_daily_winner(payload.user_id, payload.draw_date, payload.prize_amount)
    return DataResponse(data=to_primitive(winner))


@router.post("/winners/{winner_id}/social-post", response_model=DataResponse)
def toggle_winner_post(winner_id: str, actions: AdminActions = Depends(_actions)) -> DataResponse:
    return DataResponse(data=to_primitive(actions.toggle_social_post(winner_id)))


async def _dashboard_error_handler(request: Request, exc: DashboardError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.warning("Request %s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.user_message})


def create_app(
    gateway: Optional[DataGateway] = None,
    settings: Optional[DashboardSettings] = None,
    clock: Clock = utc_now,
) -> FastAPI:
    settings = settings or load_settings()
    logging.getLogger(PACKAGE_LOGGER).setLevel(settings.log_level)
    if gateway is None:
        gateway = build_gateway(settings)
    if gateway is None:
        logger.warning("No data gateway configured; data endpoints will answer with HTTP 500")

    app = FastAPI(title="Dating App Admin Dashboard API", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials and "*" not in settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.gateway = gateway
    app.state.settings = settings
    if gateway is not None:
        app.state.dashboard = DashboardService(gateway, settings, clock)
        app.state.management = ManagementService(gateway, settings, clock)
        app.state.actions = AdminActions(gateway, settings, clock)
    app.add_exception_handler(DashboardError, _dashboard_error_handler)
    app.include_router(router)
    return app
