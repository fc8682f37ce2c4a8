import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from sqlalchemy.orm import Session

from app.database import get_db
from app.services.adjustment_state import AdjustmentStateManager
from app.services.commission_calendar import FRIDAY, bonus_window_of, format_week_label
from app.services.commission_errors import (
    AdjustmentTransitionError,
    CollectionsBonusLockedError,
    CollectionsBonusNotSelectedError,
    InvalidManualAmountError,
    PublishValidationError,
)
from app.services.commission_math import CommissionPolicy, default_policy
from app.services.commission_snapshot import build_snapshot, publish_snapshot
from app.services.commission_view import build_report_view
from app.services.report_logs import SqlReportLogSink
from app.services.sales_source import SqlSalesSource
from app.services.week_selection import (
    WeekSelectionController,
    build_week_buckets,
    find_bucket,
)
from app.template_config import local_today, templates

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/commissions", tags=["commissions"])


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------
def get_adjustment_manager(request: Request) -> AdjustmentStateManager:
    return request.app.state.adjustments


def get_week_selection(
    week: Optional[str] = None, latest: Optional[str] = None
) -> WeekSelectionController:
    """One client's week selection, carried in the query string."""
    return WeekSelectionController(selected_key=week, latest_key=latest)


def get_commission_policy() -> CommissionPolicy:
    return default_policy


def get_today() -> date:
    return local_today()


def _is_week_key(week: str) -> bool:
    try:
        return date.fromisoformat(week).weekday() == FRIDAY
    except ValueError:
        return False


def _load_week(db, today, selection):
    """Return (all sales, buckets, selected bucket) for a request."""
    sales = SqlSalesSource(db).list_sales()
    buckets = build_week_buckets(sales, today)
    return sales, buckets, selection.current_week(buckets)


def _build(bucket, sales, manager, policy):
    options = manager.snapshot_options(bucket.key, all_sales=sales)
    return build_snapshot(
        bucket.sales, manager.notes(bucket.key), bucket.start, bucket.end, options, policy
    )


def _week_payload(manager: AdjustmentStateManager, week: str) -> dict:
    state = manager.get_collections(week)
    return {
        "ok": True,
        "week": week,
        "collectionsBonus": float(state.value) if state.value is not None else None,
        "locked": state.locked,
        "status": state.status,
    }


# ---------------------------------------------------------------------------
# Live report
# ---------------------------------------------------------------------------
@router.get("", response_class=HTMLResponse)
async def commission_report(
    request: Request,
    db: Session = Depends(get_db),
    manager: AdjustmentStateManager = Depends(get_adjustment_manager),
    selection: WeekSelectionController = Depends(get_week_selection),
    policy: CommissionPolicy = Depends(get_commission_policy),
    today: date = Depends(get_today),
):
    sales, buckets, bucket = _load_week(db, today, selection)
    snapshot = _build(bucket, sales, manager, policy)
    state = manager.get_collections(bucket.key)

    view = build_report_view(
        snapshot,
        editable=True,
        collections_locked=state.locked,
        manual_overrides=manager.manual_overrides(bucket.key),
        collections_options=manager.bonus_tiers,
        week_key=bucket.key,
    )

    return templates.TemplateResponse(
        "commissions/report.html",
        {
            "request": request,
            "view": view,
            "weeks": buckets,
            "selected_week": bucket.key,
            "latest_week": buckets[0].key,
        },
    )


@router.get("/api/weeks", response_class=JSONResponse)
async def list_weeks(
    db: Session = Depends(get_db),
    selection: WeekSelectionController = Depends(get_week_selection),
    today: date = Depends(get_today),
):
    _, buckets, bucket = _load_week(db, today, selection)
    return {
        "selected": bucket.key if bucket else None,
        "latest": buckets[0].key if buckets else None,
        "weeks": [
            {"key": b.key, "label": b.label, "saleCount": len(b.sales)} for b in buckets
        ],
    }


@router.get("/api/report", response_class=JSONResponse)
async def report_json(
    db: Session = Depends(get_db),
    manager: AdjustmentStateManager = Depends(get_adjustment_manager),
    selection: WeekSelectionController = Depends(get_week_selection),
    policy: CommissionPolicy = Depends(get_commission_policy),
    today: date = Depends(get_today),
):
    sales, _, bucket = _load_week(db, today, selection)
    snapshot = _build(bucket, sales, manager, policy)
    window = bonus_window_of(bucket.start)
    return {
        "week": bucket.key,
        "label": bucket.label,
        "bonusWindow": format_week_label(window.start, window.end),
        "bonusWindowKey": window.key,
        "snapshot": snapshot.to_dict(),
    }


# ---------------------------------------------------------------------------
# Collections bonus (JSON)
# ---------------------------------------------------------------------------
@router.post("/{week}/collections-bonus", response_class=JSONResponse)
async def select_collections_bonus(
    week: str,
    request: Request,
    manager: AdjustmentStateManager = Depends(get_adjustment_manager),
):
    if not _is_week_key(week):
        return JSONResponse({"error": "Unknown reporting week"}, status_code=404)

    body = await request.json()
    try:
        manager.select_collections_bonus(week, body.get("value"))
    except CollectionsBonusLockedError as e:
        return JSONResponse({"error": str(e)}, status_code=409)
    except AdjustmentTransitionError as e:
        return JSONResponse({"error": str(e)}, status_code=400)
    return _week_payload(manager, week)


@router.post("/{week}/collections-bonus/lock", response_class=JSONResponse)
async def lock_collections_bonus(
    week: str,
    manager: AdjustmentStateManager = Depends(get_adjustment_manager),
):
    if not _is_week_key(week):
        return JSONResponse({"error": "Unknown reporting week"}, status_code=404)

    try:
        manager.lock_collections_bonus(week)
    except CollectionsBonusNotSelectedError as e:
        return JSONResponse({"error": str(e)}, status_code=409)
    return _week_payload(manager, week)


@router.post("/{week}/collections-bonus/unlock", response_class=JSONResponse)
async def unlock_collections_bonus(
    week: str,
    manager: AdjustmentStateManager = Depends(get_adjustment_manager),
):
    if not _is_week_key(week):
        return JSONResponse({"error": "Unknown reporting week"}, status_code=404)

    manager.unlock_collections_bonus(week)
    return _week_payload(manager, week)


# ---------------------------------------------------------------------------
# Manual overrides and notes (JSON)
# ---------------------------------------------------------------------------
@router.post("/{week}/manual-overrides", response_class=JSONResponse)
async def set_manual_override(
    week: str,
    request: Request,
    manager: AdjustmentStateManager = Depends(get_adjustment_manager),
):
    if not _is_week_key(week):
        return JSONResponse({"error": "Unknown reporting week"}, status_code=404)

    body = await request.json()
    row_key = body.get("rowKey")
    if not row_key:
        return JSONResponse({"error": "rowKey is required"}, status_code=400)

    try:
        overrides = manager.set_manual_override(week, row_key, str(body.get("value") or ""))
    except InvalidManualAmountError as e:
        return JSONResponse({"error": str(e)}, status_code=400)
    return {"ok": True, "week": week, "manualOverrides": overrides}


@router.post("/{week}/notes", response_class=JSONResponse)
async def set_row_note(
    week: str,
    request: Request,
    manager: AdjustmentStateManager = Depends(get_adjustment_manager),
):
    if not _is_week_key(week):
        return JSONResponse({"error": "Unknown reporting week"}, status_code=404)

    body = await request.json()
    row_key = body.get("rowKey")
    if not row_key:
        return JSONResponse({"error": "rowKey is required"}, status_code=400)

    notes = manager.set_note(week, row_key, body.get("notes"))
    return {"ok": True, "week": week, "notes": notes}


# ---------------------------------------------------------------------------
# Publish
# ---------------------------------------------------------------------------
@router.post("/{week}/log", response_class=JSONResponse)
async def log_report(
    week: str,
    db: Session = Depends(get_db),
    manager: AdjustmentStateManager = Depends(get_adjustment_manager),
    policy: CommissionPolicy = Depends(get_commission_policy),
    today: date = Depends(get_today),
):
    sales = SqlSalesSource(db).list_sales()
    bucket = find_bucket(build_week_buckets(sales, today), week)
    if not bucket:
        return JSONResponse({"error": "Unknown reporting week"}, status_code=404)

    snapshot = _build(bucket, sales, manager, policy)
    try:
        published = publish_snapshot(snapshot, SqlReportLogSink(db))
    except PublishValidationError as e:
        return JSONResponse({"error": str(e)}, status_code=422)

    if not published:
        return JSONResponse({"error": "Failed to log report."}, status_code=503)
    return {"ok": True, "reportDate": snapshot.period_end}


# ---------------------------------------------------------------------------
# Logged reports
# ---------------------------------------------------------------------------
@router.get("/logs", response_class=JSONResponse)
async def list_logged_reports(db: Session = Depends(get_db)):
    return [
        {
            "id": log.id,
            "reportDate": log.report_date.isoformat(),
            "loggedAt": log.logged_at.isoformat(),
            "periodStart": log.snapshot.period_start,
            "periodEnd": log.snapshot.period_end,
            "totalCommission": float(log.snapshot.totals.total_commission),
        }
        for log in SqlReportLogSink(db).list_logs()
    ]


@router.get("/logs/{log_id}", response_class=HTMLResponse)
async def view_logged_report(request: Request, log_id: int, db: Session = Depends(get_db)):
    log = SqlReportLogSink(db).get_log(log_id)
    if not log:
        return RedirectResponse(url="/commissions", status_code=303)

    view = build_report_view(log.snapshot, editable=False)
    return templates.TemplateResponse(
        "commissions/report.html",
        {
            "request": request,
            "view": view,
            "weeks": [],
            "selected_week": None,
            "logged_at": log.logged_at,
        },
    )


@router.post("/logs/{log_id}/delete")
async def delete_logged_report(log_id: int, db: Session = Depends(get_db)):
    SqlReportLogSink(db).delete_log(log_id)
    return RedirectResponse(url="/commissions", status_code=303)
