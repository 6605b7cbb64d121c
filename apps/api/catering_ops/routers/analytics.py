"""
Analytics router: sales headline numbers, waste and production variance.

All figures are computed in the business timezone from the ERP mirror tables.
"""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from catering_ops.core.deps import get_current_user
from catering_ops.db.session import get_db
from catering_ops.models.user import User
from catering_ops.services.analytics import AnalyticsService

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get("/summary")
def sales_summary(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return AnalyticsService(db).summary()


@router.get("/daily-breakdown")
def daily_breakdown(
    days: int = Query(30, ge=1, le=366),
    order_type: str = Query("all", description="all, subscription or counter"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return AnalyticsService(db).daily_breakdown(days=days, order_type=None if order_type == "all" else order_type)


@router.get("/summary-by-type")
def summary_by_type(
    period: str = Query("today", description="today, week, month or year"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return AnalyticsService(db).summary_by_type(period)


@router.get("/subscription-metrics")
def subscription_metrics(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return AnalyticsService(db).subscription_metrics()


@router.get("/branches/detail")
def branch_detail(
    branch: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return AnalyticsService(db).branch_detail(branch)


@router.get("/branches/multi-period")
def branches_multi_period(
    order_type: str = Query("all", description="all, subscription or counter"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Yesterday, this week, this month, last month and year to date per branch."""
    return AnalyticsService(db).branches_multi_period(order_type)


@router.get("/products/all")
def all_products(
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    category: Optional[str] = Query(None),
    sort: str = Query("revenue", description="revenue, quantity, name or times"),
    order: str = Query("desc", description="asc or desc"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return AnalyticsService(db).all_products(start=start, end=end, category=category, sort=sort, order=order)

@router.get("/waste/summary")
def waste_summary(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return AnalyticsService(db).waste_summary()


@router.get("/waste/weekly")
def waste_weekly(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return AnalyticsService(db).waste_weekly()


@router.get("/waste/daily")
def waste_daily(
    branch: str = Query("all"),
    days: int = Query(7, ge=1, le=90),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return AnalyticsService(db).waste_daily(branch=branch, days=days)


@router.get("/waste/production")
def production_variance(
    week_start: Optional[date] = Query(None),
    week_end: Optional[date] = Query(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Received vs sold per branch, and produced vs shipped for the Central Kitchen."""
    return AnalyticsService(db).production_variance(week_start=week_start, week_end=week_end)
