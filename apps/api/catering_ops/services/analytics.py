"""
Sales, waste and production-variance analytics over the mirrored ERP tables.

Rows are pulled with plain SQLAlchemy selects for the date window in question
and aggregated with pandas, so the same code runs on PostgreSQL and SQLite.

Branch names are spelled differently across the ERP exports ("Al Quoz",
"al_quoz", "AL-QUOZ"), so every cross-table join is on the normalized name and
the first spelling seen is the one reported. The central kitchen never appears
in branch-level output.
"""
import logging
from datetime import date, timedelta
from typing import Optional

import numpy as np
import pandas as pd
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from catering_ops.core.config import get_settings
from catering_ops.core.exceptions import ValidationError
from catering_ops.core.naming import is_central_kitchen, normalize_name
from catering_ops.core.reporting import (
    Period,
    average_order_value,
    business_today,
    calc_change,
    item_cogs,
    iso_week,
    month_to_date,
    previous_iso_week,
    previous_month,
    previous_year,
    reporting_week,
    revenue_share,
    waste_percentage,
    year_to_date,
)
from catering_ops.models.odoo import (
    COUNTER_ORDER,
    SUBSCRIPTION_ORDER,
    OdooManufacturing,
    OdooRecipe,
    OdooSale,
    OdooTransfer,
    OdooWaste,
)

logger = logging.getLogger(__name__)

ORDER_TYPES = {"subscription": SUBSCRIPTION_ORDER, "counter": COUNTER_ORDER}
TOP_WASTE_REASONS = 5
TOP_CLIENTS = 5
TOP_BRANCH_PRODUCTS = 5
PRODUCT_LOOKBACK_DAYS = 90
SUMMARY_PERIODS = ("today", "week", "month", "year")
PRODUCT_SORTS = ("revenue", "quantity", "name", "times")

SALES_COLUMNS = [
    "date", "branch", "order_number", "order_type", "client", "items", "category", "qty", "revenue",
]
WASTE_COLUMNS = ["date", "branch", "item", "cost", "reason"]
TRANSFER_COLUMNS = ["date", "from_branch", "to_branch", "quantity", "cost"]


def _numeric(frame: pd.DataFrame, *columns: str) -> pd.DataFrame:
    """Coerce Decimal / None columns to floats with missing values as 0."""
    for column in columns:
        frame[column] = pd.to_numeric(
            frame[column].map(lambda v: float(v) if v is not None else 0.0),
            errors="coerce",
        ).fillna(0.0).astype(float)
    return frame


def _is_ck_origin(branch: Optional[str]) -> bool:
    """Transfer sources that ship out of central production."""
    if is_central_kitchen(branch):
        return True
    name = normalize_name(branch)
    return "production" in name or "catering services" in name


def _ck_mask(branches: pd.Series) -> pd.Series:
    return branches.map(is_central_kitchen).astype(bool)


def _by_branch_key(frame: pd.DataFrame) -> pd.DataFrame:
    """Collapse spellings of the same branch into one row, summing the numbers."""
    frame = frame.assign(key=frame["branch"].map(normalize_name).astype(object))
    aggregations = {column: "sum" for column in frame.columns if column not in ("branch", "key")}
    aggregations["branch"] = "first"
    return frame.groupby("key", as_index=False).agg(aggregations)


def with_changes(current: dict, previous: dict, include_aov: bool = True) -> dict:
    """Attach period-over-period ``changes`` (and the average order value) to a totals dict."""
    result = dict(current)
    changes = {key: calc_change(current[key], previous[key]) for key in ("revenue", "units", "orders")}
    if include_aov:
        aov = average_order_value(current["revenue"], current["orders"])
        previous_aov = average_order_value(previous["revenue"], previous["orders"])
        result["aov"] = aov
        changes["aov"] = calc_change(aov, previous_aov)
    result["changes"] = changes
    return result


def join_branches(left: pd.DataFrame, right: pd.DataFrame) -> pd.DataFrame:
    """
    Full outer join of two per-branch frames on the normalized branch name.

    Both frames carry a ``branch`` column. Numeric gaps from the outer join are
    filled with 0 and the central kitchen is dropped.
    """
    merged = _by_branch_key(left).merge(_by_branch_key(right), on="key", how="outer", suffixes=("_left", "_right"))
    merged["branch"] = merged["branch_left"].combine_first(merged["branch_right"])
    merged = merged.drop(columns=["branch_left", "branch_right", "key"])

    numeric = [c for c in merged.columns if c != "branch"]
    merged[numeric] = merged[numeric].fillna(0.0)
    return merged[~_ck_mask(merged["branch"])].reset_index(drop=True)


class AnalyticsService:
    """Read-only reports for the operations dashboard."""

    def __init__(self, db: Session, today: Optional[date] = None):
        self.db = db
        self.settings = get_settings()
        self.today = today or business_today(self.settings.BUSINESS_TIMEZONE)

    # ------------------------------------------------------------------
    # Loaders
    # ------------------------------------------------------------------

    def _sales(self, start: date, end: date, order_type: Optional[str] = None) -> pd.DataFrame:
        stmt = select(
            OdooSale.date,
            OdooSale.branch,
            OdooSale.order_number,
            OdooSale.order_type,
            OdooSale.client,
            OdooSale.items,
            OdooSale.category,
            OdooSale.qty,
            OdooSale.price_subtotal_with_tax,
        ).where(OdooSale.date >= start, OdooSale.date <= end)
        if order_type:
            stmt = stmt.where(OdooSale.order_type == order_type)

        df = pd.DataFrame(self.db.execute(stmt).all(), columns=SALES_COLUMNS)
        df["date"] = pd.to_datetime(df["date"])
        return _numeric(df, "qty", "revenue")

    def _waste(self, period: Period) -> pd.DataFrame:
        stmt = select(
            OdooWaste.date, OdooWaste.branch, OdooWaste.item, OdooWaste.cost, OdooWaste.reason
        ).where(OdooWaste.date >= period.start, OdooWaste.date <= period.end)
        df = pd.DataFrame(self.db.execute(stmt).all(), columns=WASTE_COLUMNS)
        df["date"] = pd.to_datetime(df["date"])
        return _numeric(df, "cost")

    def _transfers(self, period: Period) -> pd.DataFrame:
        stmt = select(
            OdooTransfer.effective_date,
            OdooTransfer.from_branch,
            OdooTransfer.to_branch,
            OdooTransfer.quantity,
            OdooTransfer.cost,
        ).where(OdooTransfer.effective_date >= period.start, OdooTransfer.effective_date <= period.end)
        df = pd.DataFrame(self.db.execute(stmt).all(), columns=TRANSFER_COLUMNS)
        return _numeric(df, "quantity", "cost")

    def _recipe_costs(self) -> dict[str, float]:
        """Total recipe cost per finished item, keyed by lower-cased trimmed name."""
        stmt = (
            select(func.lower(func.trim(OdooRecipe.item)), func.max(OdooRecipe.recipe_total_cost))
            .group_by(func.lower(func.trim(OdooRecipe.item)))
        )
        return {name: float(cost) for name, cost in self.db.execute(stmt).all() if cost is not None}

    # ------------------------------------------------------------------
    # Sales
    # ------------------------------------------------------------------

    @staticmethod
    def _window(sales: pd.DataFrame, period: Period) -> pd.DataFrame:
        return sales[(sales["date"] >= pd.Timestamp(period.start)) & (sales["date"] <= pd.Timestamp(period.end))]

    @classmethod
    def _totals(cls, sales: pd.DataFrame, period: Period) -> dict:
        window = cls._window(sales, period)
        return {
            "revenue": round(float(window["revenue"].sum()), 2),
            "units": round(float(window["qty"].sum()), 2),
            "orders": int(window["order_number"].nunique()),
        }

    def summary(self) -> dict:
        """
        Headline sales numbers.

        "today" is yesterday (the last complete day) against the day before;
        the week is the Monday-start calendar week against the previous full
        week; the month is month-to-date against the whole previous month.
        """
        yesterday = self.today - timedelta(days=1)
        day_before = self.today - timedelta(days=2)
        this_week, last_week = iso_week(self.today), previous_iso_week(self.today)
        this_month, last_month = month_to_date(self.today), previous_month(self.today)

        sales = self._sales(min(last_month.start, last_week.start), self.today)

        current_day = self._totals(sales, Period(yesterday, yesterday))
        previous_day = self._totals(sales, Period(day_before, day_before))
        week = self._totals(sales, this_week)
        prior_week = self._totals(sales, last_week)
        month = self._totals(sales, this_month)
        prior_month = self._totals(sales, last_month)

        return {
            "today": with_changes(current_day, previous_day, include_aov=True),
            "this_week": with_changes(week, prior_week, include_aov=False),
            "this_month": with_changes(month, prior_month, include_aov=True),
            "last_month": prior_month,
        }

    def daily_breakdown(self, days: int = 30, order_type: Optional[str] = None) -> dict:
        """Per-day revenue, units and orders for the last ``days`` complete days."""
        if days < 1:
            raise ValidationError("days must be a positive integer")
        if order_type and order_type not in ORDER_TYPES:
            raise ValidationError(f"order_type must be one of: {', '.join(ORDER_TYPES)}")

        start = self.today - timedelta(days=days)
        end = self.today - timedelta(days=1)
        sales = self._sales(start, end, ORDER_TYPES.get(order_type) if order_type else None)

        daily = (
            sales.groupby("date")
            .agg(revenue=("revenue", "sum"), units=("qty", "sum"), orders=("order_number", "nunique"))
            .reset_index()
            .sort_values("date", ascending=False)
        )

        breakdown = [
            {
                "date": row.date.date().isoformat(),
                "day_of_week": row.date.strftime("%a"),
                "revenue": round(float(row.revenue), 2),
                "units": round(float(row.units), 2),
                "orders": int(row.orders),
                "aov": average_order_value(float(row.revenue), int(row.orders)),
            }
            for row in daily.itertuples(index=False)
        ]

        total_revenue = round(sum(d["revenue"] for d in breakdown), 2)
        by_revenue = sorted(breakdown, key=lambda d: d["revenue"], reverse=True)
        return {
            "daily_data": breakdown,
            "summary": {
                "total_revenue": total_revenue,
                "total_units": round(sum(d["units"] for d in breakdown), 2),
                "total_orders": sum(d["orders"] for d in breakdown),
                "avg_daily_revenue": round(total_revenue / len(breakdown), 2) if breakdown else 0,
                "best_day": by_revenue[0] if by_revenue else None,
                "worst_day": by_revenue[-1] if by_revenue else None,
                "days_analyzed": len(breakdown),
            },
            "order_type": order_type or "all",
        }

    def _comparison_windows(self, period: str) -> tuple[Period, Period]:
        if period == "today":
            yesterday = self.today - timedelta(days=1)
            day_before = self.today - timedelta(days=2)
            return Period(yesterday, yesterday), Period(day_before, day_before)
        if period == "week":
            return iso_week(self.today), previous_iso_week(self.today)
        if period == "month":
            return month_to_date(self.today), previous_month(self.today)
        if period == "year":
            return year_to_date(self.today), previous_year(self.today)
        raise ValidationError(f"period must be one of: {', '.join(SUMMARY_PERIODS)}")

    def summary_by_type(self, period: str = "today") -> dict:
        """
        Headline numbers for one period, split into subscription and counter
        sales, each compared with the preceding period of the same kind.
        """
        current, previous = self._comparison_windows(period)
        sales = self._sales(previous.start, current.end)

        total = with_changes(self._totals(sales, current), self._totals(sales, previous))
        result = {"period": period, "total": total}
        for name, order_type in ORDER_TYPES.items():
            typed = sales[sales["order_type"] == order_type]
            block = with_changes(self._totals(typed, current), self._totals(typed, previous))
            block["percentage"] = revenue_share(block["revenue"], total["revenue"])
            result[name] = block
        return result

    @staticmethod
    def _with_client(frame: pd.DataFrame) -> pd.DataFrame:
        return frame[frame["client"].fillna("").astype(str).str.strip() != ""]

    def subscription_metrics(self) -> dict:
        """Month-to-date subscription performance, its top clients and the counter comparison."""
        this_month, last_month = month_to_date(self.today), previous_month(self.today)
        sales = self._sales(last_month.start, this_month.end)
        subscriptions = sales[sales["order_type"] == SUBSCRIPTION_ORDER]
        counter = sales[sales["order_type"] == COUNTER_ORDER]

        current = self._totals(subscriptions, this_month)
        previous = self._totals(subscriptions, last_month)
        current_window = self._with_client(self._window(subscriptions, this_month))
        clients = int(current_window["client"].nunique())
        previous_clients = int(self._with_client(self._window(subscriptions, last_month))["client"].nunique())
        aov = average_order_value(current["revenue"], current["orders"])

        counter_month = self._totals(counter, this_month)
        combined = current["revenue"] + counter_month["revenue"]

        top = (
            current_window.groupby("client")
            .agg(revenue=("revenue", "sum"), orders=("order_number", "nunique"))
            .reset_index()
            .sort_values("revenue", ascending=False)
            .head(TOP_CLIENTS)
        )

        return {
            "this_month": {
                **current,
                "unique_clients": clients,
                "aov": aov,
                "changes": {
                    "revenue": calc_change(current["revenue"], previous["revenue"]),
                    "orders": calc_change(current["orders"], previous["orders"]),
                    "clients": calc_change(clients, previous_clients),
                },
            },
            "last_month": {**previous, "unique_clients": previous_clients},
            "comparison": {
                "subscription_revenue": current["revenue"],
                "counter_revenue": counter_month["revenue"],
                "subscription_percentage": revenue_share(current["revenue"], combined),
                "counter_percentage": revenue_share(counter_month["revenue"], combined),
                "subscription_aov": aov,
                "counter_aov": average_order_value(counter_month["revenue"], counter_month["orders"]),
            },
            "top_clients": [
                {
                    "client": row.client,
                    "revenue": round(float(row.revenue), 2),
                    "orders": int(row.orders),
                    "aov": average_order_value(float(row.revenue), int(row.orders)),
                }
                for row in top.itertuples(index=False)
            ],
        }

    def branch_detail(self, branch: Optional[str]) -> dict:
        """
        One branch's month-to-date sales by order type, its best sellers and
        the last seven complete days.
        """
        if not branch or not branch.strip():
            raise ValidationError("Branch parameter is required")

        this_month = month_to_date(self.today)
        trend = Period(self.today - timedelta(days=7), self.today - timedelta(days=1))
        sales = self._sales(min(this_month.start, trend.start), self.today)
        sales = sales[sales["branch"].map(normalize_name) == normalize_name(branch)]
        month = self._window(sales, this_month)

        by_type = {
            name: self._totals(month[month["order_type"] == order_type], this_month)
            for name, order_type in ORDER_TYPES.items()
        }
        combined = by_type["subscription"]["revenue"] + by_type["counter"]["revenue"]
        for block in by_type.values():
            block["percentage"] = revenue_share(block["revenue"], combined)

        sold = month[month["items"].fillna("").astype(str).str.strip() != ""]
        sold = sold.assign(category=sold["category"].fillna("Uncategorized"))
        products = (
            sold.groupby(["items", "category"])
            .agg(revenue=("revenue", "sum"), units=("qty", "sum"))
            .reset_index()
            .sort_values("revenue", ascending=False)
            .head(TOP_BRANCH_PRODUCTS)
        )

        daily = []
        for day, rows in self._window(sales, trend).groupby("date"):
            subscriptions = rows[rows["order_type"] == SUBSCRIPTION_ORDER]
            counter = rows[rows["order_type"] == COUNTER_ORDER]
            daily.append({
                "date": day.date().isoformat(),
                "total_revenue": round(float(rows["revenue"].sum()), 2),
                "subscription_revenue": round(float(subscriptions["revenue"].sum()), 2),
                "counter_revenue": round(float(counter["revenue"].sum()), 2),
                "total_orders": int(rows["order_number"].nunique()),
                "subscription_orders": int(subscriptions["order_number"].nunique()),
                "counter_orders": int(counter["order_number"].nunique()),
            })

        return {
            "branch": branch,
            "this_month": {
                **by_type,
                "total": {
                    "revenue": round(combined, 2),
                    "units": round(by_type["subscription"]["units"] + by_type["counter"]["units"], 2),
                    "orders": by_type["subscription"]["orders"] + by_type["counter"]["orders"],
                },
            },
            "top_products": [
                {
                    "product": row.items,
                    "category": row.category,
                    "revenue": round(float(row.revenue), 2),
                    "units": round(float(row.units), 2),
                }
                for row in products.itertuples(index=False)
            ],
            "daily_trend": daily,
        }

    def branches_multi_period(self, order_type: str = "all") -> dict:
        """
        Revenue, units and orders per branch for yesterday, this week, this
        month, last month and the year to date, each with the branch's share
        of that period's revenue. Sorted by this month's revenue.
        """
        if order_type != "all" and order_type not in ORDER_TYPES:
            raise ValidationError(f"order_type must be one of: all, {', '.join(ORDER_TYPES)}")

        yesterday = self.today - timedelta(days=1)
        periods = {
            "yesterday": Period(yesterday, yesterday),
            "this_week": iso_week(self.today),
            "this_month": month_to_date(self.today),
            "previous_month": previous_month(self.today),
            "period_to_date": year_to_date(self.today),
        }
        start = min(period.start for period in periods.values())
        sales = self._sales(start, self.today, ORDER_TYPES.get(order_type))
        sales = sales.assign(key=sales["branch"].map(normalize_name).astype(object))
        sales = sales[(sales["key"] != "") & ~_ck_mask(sales["branch"])]

        figures, totals = {}, {}
        for name, period in periods.items():
            window = self._window(sales, period)
            totals[name] = round(float(window["revenue"].sum()), 2)
            figures[name] = window.groupby("key").agg(
                branch=("branch", "first"),
                revenue=("revenue", "sum"),
                units=("qty", "sum"),
                orders=("order_number", "nunique"),
            )

        # First spelling seen across the periods is the one reported
        names = {}
        for grouped in figures.values():
            for key, branch in grouped["branch"].items():
                names.setdefault(key, branch)

        rows = []
        for key, branch in names.items():
            row = {"branch": branch}
            for name, grouped in figures.items():
                if key in grouped.index:
                    revenue = round(float(grouped.at[key, "revenue"]), 2)
                    units = round(float(grouped.at[key, "units"]), 2)
                    orders = int(grouped.at[key, "orders"])
                else:
                    revenue, units, orders = 0.0, 0.0, 0
                row[name] = {
                    "revenue": revenue,
                    "units": units,
                    "orders": orders,
                    "percentage": revenue_share(revenue, totals[name]),
                }
            rows.append(row)
        rows.sort(key=lambda r: r["this_month"]["revenue"], reverse=True)

        return {"branches": rows, "totals": totals, "order_type": order_type}

    def all_products(
        self,
        start: Optional[date] = None,
        end: Optional[date] = None,
        category: Optional[str] = None,
        sort: str = "revenue",
        order: str = "desc",
    ) -> dict:
        """
        Every product sold in a date range with its sales statistics, plus a
        per-category breakdown of the same range.

        Defaults to the last ``PRODUCT_LOOKBACK_DAYS`` days up to today.
        """
        if sort not in PRODUCT_SORTS:
            raise ValidationError(f"sort must be one of: {', '.join(PRODUCT_SORTS)}")
        if order not in ("asc", "desc"):
            raise ValidationError("order must be asc or desc")
        end = end or self.today
        start = start or end - timedelta(days=PRODUCT_LOOKBACK_DAYS)
        if start > end:
            raise ValidationError("start must be on or before end")

        in_range = (
            OdooSale.date >= start,
            OdooSale.date <= end,
            OdooSale.items.isnot(None),
            OdooSale.items != "",
        )
        times_sold = func.count(OdooSale.id).label("times_sold")
        total_quantity = func.coalesce(func.sum(OdooSale.qty), 0).label("total_quantity")
        total_revenue = func.coalesce(func.sum(OdooSale.price_subtotal_with_tax), 0).label("total_revenue")
        stmt = (
            select(
                OdooSale.items,
                OdooSale.category,
                OdooSale.product_group,
                OdooSale.barcode,
                OdooSale.unit_of_measure,
                times_sold,
                total_quantity,
                total_revenue,
                func.avg(OdooSale.unit_price).label("avg_unit_price"),
                func.min(OdooSale.date).label("first_sale_date"),
                func.max(OdooSale.date).label("last_sale_date"),
            )
            .where(*in_range)
            .group_by(
                OdooSale.items, OdooSale.category, OdooSale.product_group, OdooSale.barcode, OdooSale.unit_of_measure
            )
        )
        if category and category != "all":
            stmt = stmt.where(OdooSale.category == category)
        sort_column = {
            "revenue": total_revenue,
            "quantity": total_quantity,
            "name": OdooSale.items,
            "times": times_sold,
        }[sort]
        stmt = stmt.order_by(sort_column.desc() if order == "desc" else sort_column.asc())
        rows = self.db.execute(stmt).all()

        category_name = func.coalesce(OdooSale.category, "Uncategorized")
        category_revenue = func.coalesce(func.sum(OdooSale.price_subtotal_with_tax), 0)
        categories = self.db.execute(
            select(category_name, func.count(func.distinct(OdooSale.items)), category_revenue)
            .where(*in_range)
            .group_by(category_name)
            .order_by(category_revenue.desc())
        ).all()

        products = [
            {
                "name": row.items,
                "category": row.category or "Uncategorized",
                "product_group": row.product_group or None,
                "barcode": row.barcode or None,
                "unit_of_measure": row.unit_of_measure or None,
                "times_sold": int(row.times_sold),
                "total_quantity": round(float(row.total_quantity), 3),
                "total_revenue": round(float(row.total_revenue), 2),
                "avg_unit_price": round(float(row.avg_unit_price or 0), 2),
                "first_sale_date": row.first_sale_date.isoformat() if row.first_sale_date else None,
                "last_sale_date": row.last_sale_date.isoformat() if row.last_sale_date else None,
            }
            for row in rows
        ]

        return {
            "date_range": Period(start, end).as_dict(),
            "summary": {
                "total_products": len(products),
                "total_revenue": round(sum(p["total_revenue"] for p in products), 2),
                "total_quantity_sold": round(sum(p["total_quantity"] for p in products), 3),
                "categories_count": len(categories),
                "category_breakdown": [
                    {"category": name, "product_count": int(count), "total_revenue": round(float(revenue), 2)}
                    for name, count, revenue in categories
                ],
            },
            "products": products,
        }

    # ------------------------------------------------------------------
    # Waste
    # ------------------------------------------------------------------

    def _transfer_cogs(self, transfers: pd.DataFrame) -> float:
        to_branches = transfers[~_ck_mask(transfers["to_branch"])]
        return float(to_branches["cost"].sum())

    def _waste_week(self, period: Period) -> tuple[dict, pd.DataFrame, pd.DataFrame]:
        waste = self._waste(period)
        transfers = self._transfers(period)
        total_waste = round(float(waste["cost"].sum()), 2)
        total_cogs = round(self._transfer_cogs(transfers), 2)
        totals = {
            "total_waste": total_waste,
            "total_cogs": total_cogs,
            "total_revenue": total_cogs,
            "waste_pct": waste_percentage(total_waste, total_cogs),
        }
        return totals, waste, transfers

    def waste_summary(self) -> dict:
        """
        Reporting-week waste against COGS, with branches above the threshold.

        COGS here is the cost of stock transferred into each branch.
        """
        this_period = reporting_week(self.today)
        last_period = this_period.shift(-7)

        this_week, waste, transfers = self._waste_week(this_period)
        last_week, _, _ = self._waste_week(last_period)

        received = (
            transfers.rename(columns={"to_branch": "branch"})
            .groupby("branch", dropna=True)
            .agg(cogs=("cost", "sum"))
            .reset_index()
        )
        wasted = waste.groupby("branch", dropna=True).agg(waste=("cost", "sum")).reset_index()
        branches = join_branches(received, wasted)

        threshold = self.settings.HIGH_WASTE_THRESHOLD
        high_waste = []
        for row in branches.itertuples(index=False):
            pct = waste_percentage(float(row.waste), float(row.cogs))
            if pct > threshold:
                high_waste.append({
                    "branch": row.branch,
                    "waste": round(float(row.waste), 2),
                    "cogs": round(float(row.cogs), 2),
                    "waste_pct": pct,
                })
        high_waste.sort(key=lambda b: b["waste_pct"], reverse=True)

        return {
            "this_week": this_week,
            "last_week": last_week,
            "change": round(this_week["waste_pct"] - last_week["waste_pct"], 2),
            "high_waste_branches": high_waste,
            "threshold": threshold,
            "date_range": {"this_week": this_period.as_dict(), "last_week": last_period.as_dict()},
        }

    def waste_weekly(self) -> dict:
        """
        Per-branch waste for the reporting week, against recipe-costed COGS.

        Each sales line costs ``qty * recipe_total_cost`` when the recipe is
        costed, else a flat share of its revenue.
        """
        period = reporting_week(self.today)
        sales = self._sales(period.start, period.end)
        sales = sales[sales["branch"].notna() & (sales["branch"].astype(str).str.strip() != "")]

        costs = self._recipe_costs()
        logger.debug(f"Costing {len(sales)} sales lines against {len(costs)} recipe costs")
        ratio = self.settings.COGS_FALLBACK_RATIO
        sales = sales.assign(
            cogs=[
                item_cogs(qty, revenue, costs.get((items or "").strip().lower()), ratio)
                for qty, revenue, items in zip(sales["qty"], sales["revenue"], sales["items"])
            ]
        )
        if sales.empty:
            sales["cogs"] = sales["cogs"].astype(float)

        sold = sales.groupby("branch").agg(cogs=("cogs", "sum"), revenue=("revenue", "sum")).reset_index()
        waste = self._waste(period)
        wasted = (
            waste.groupby("branch", dropna=True)
            .agg(waste_amount=("cost", "sum"), waste_records=("cost", "size"))
            .reset_index()
        )
        branches = join_branches(sold, wasted)

        rows = []
        for row in branches.itertuples(index=False):
            cogs = round(float(row.cogs), 2)
            rows.append({
                "branch": row.branch,
                "waste_amount": round(float(row.waste_amount), 2),
                "cogs": cogs,
                "order_revenue": cogs,
                "revenue": round(float(row.revenue), 2),
                "waste_pct": waste_percentage(float(row.waste_amount), float(row.cogs)),
                "data_quality": "complete" if row.waste_records > 0 else "partial",
            })
        rows.sort(key=lambda r: r["waste_pct"], reverse=True)

        return {
            "branches": rows,
            "week_start": period.start.isoformat(),
            "week_end": period.end.isoformat(),
        }

    def waste_daily(self, branch: str = "all", days: int = 7) -> dict:
        """Day-by-branch waste against sales revenue, plus the top waste reasons."""
        if days < 1:
            raise ValidationError("days must be a positive integer")
        end = self.today - timedelta(days=1)
        period = Period(end - timedelta(days=days - 1), end)

        sales = self._sales(period.start, period.end)
        waste = self._waste(period)
        if branch and branch != "all":
            wanted = normalize_name(branch)
            sales = sales[sales["branch"].map(normalize_name) == wanted]
            waste = waste[waste["branch"].map(normalize_name) == wanted]

        # Sales rows first, so a branch is reported under its sales spelling
        columns = ["date", "key", "branch", "revenue", "waste"]
        lines = pd.concat([
            sales.assign(key=sales["branch"].map(normalize_name), waste=0.0)[columns],
            waste.assign(key=waste["branch"].map(normalize_name), revenue=0.0, waste=waste["cost"])[columns],
        ], ignore_index=True)
        merged = (
            lines.groupby(["date", "key"], as_index=False)
            .agg(branch=("branch", "first"), revenue=("revenue", "sum"), waste=("waste", "sum"))
        )
        merged = merged[merged["key"] != ""]
        merged = merged[~_ck_mask(merged["branch"])].copy()
        revenue = merged["revenue"]
        merged["waste_pct"] = np.where(revenue > 0, merged["waste"] / revenue.replace(0, np.nan) * 100, 0.0).round(2)
        merged = merged.sort_values(["date", "waste_pct"], ascending=[False, False])

        daily = [
            {
                "date": row.date.date().isoformat(),
                "branch": row.branch,
                "revenue": round(float(row.revenue), 2),
                "waste": round(float(row.waste), 2),
                "waste_pct": float(row.waste_pct),
            }
            for row in merged.itertuples(index=False)
        ]

        reasons = waste[waste["reason"].notna() & (waste["reason"].astype(str).str.strip() != "")]
        top = (
            reasons.groupby("reason")
            .agg(cost=("cost", "sum"), occurrences=("cost", "size"))
            .reset_index()
            .sort_values("cost", ascending=False)
            .head(TOP_WASTE_REASONS)
        )

        return {
            "daily_data": daily,
            "top_waste_reasons": [
                {"reason": row.reason, "cost": round(float(row.cost), 2), "occurrences": int(row.occurrences)}
                for row in top.itertuples(index=False)
            ],
            "date_range": period.as_dict(),
            "branch": branch or "all",
        }

    # ------------------------------------------------------------------
    # Production
    # ------------------------------------------------------------------

    def production_variance(self, week_start: Optional[date] = None, week_end: Optional[date] = None) -> dict:
        """
        Received-versus-sold variance per branch, and produced-versus-shipped
        variance for the central kitchen.
        """
        default = reporting_week(self.today)
        period = Period(week_start or default.start, week_end or default.end)
        if period.start > period.end:
            raise ValidationError("week_start must be on or before week_end")

        transfers = self._transfers(period)
        sales = self._sales(period.start, period.end)

        received = (
            transfers.rename(columns={"to_branch": "branch"})
            .groupby("branch", dropna=True)
            .agg(received=("quantity", "sum"), cost_received=("cost", "sum"))
            .reset_index()
        )
        sold = (
            sales.groupby("branch", dropna=True)
            .agg(sold=("qty", "sum"), revenue=("revenue", "sum"))
            .reset_index()
        )
        branches = join_branches(received, sold)

        rows = []
        for row in branches.itertuples(index=False):
            received_qty, sold_qty = float(row.received), float(row.sold)
            variance = received_qty - sold_qty
            rows.append({
                "branch": row.branch,
                "received": round(received_qty, 2),
                "sold": round(sold_qty, 2),
                "variance": round(variance, 2),
                "variance_pct": round(variance / received_qty * 100, 2) if received_qty > 0 else 0,
                "variance_cost": (
                    round(variance / received_qty * float(row.cost_received), 2)
                    if received_qty > 0 and row.cost_received > 0 else 0
                ),
                "cost_received": round(float(row.cost_received), 2),
                "revenue": round(float(row.revenue), 2),
            })
        rows.sort(key=lambda r: r["variance_pct"], reverse=True)

        produced_stmt = select(func.coalesce(func.sum(OdooManufacturing.quantity_to_produce), 0)).where(
            OdooManufacturing.scheduled_date >= period.start,
            OdooManufacturing.scheduled_date <= period.end,
            or_(OdooManufacturing.state == "done", OdooManufacturing.state.is_(None)),
        )
        produced = float(self.db.execute(produced_stmt).scalar() or 0)

        from_ck = transfers[transfers["from_branch"].map(_is_ck_origin).astype(bool)]
        transferred = float(from_ck["quantity"].sum())
        if transferred == 0:
            transferred = float(transfers["quantity"].sum())
        ck_variance = produced - transferred

        return {
            "branches": rows,
            "central_kitchen": {
                "produced": round(produced, 2),
                "transferred": round(transferred, 2),
                "variance": round(ck_variance, 2),
                "variance_pct": round(ck_variance / produced * 100, 2) if produced > 0 else 0,
            },
            "totals": {
                "total_received": round(sum(r["received"] for r in rows), 2),
                "total_sold": round(sum(r["sold"] for r in rows), 2),
                "total_variance": round(sum(r["variance"] for r in rows), 2),
                "total_variance_cost": round(sum(r["variance_cost"] for r in rows), 2),
            },
            "date_range": period.as_dict(),
        }
