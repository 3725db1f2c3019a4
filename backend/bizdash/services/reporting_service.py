# Overview: Service-layer operations for reporting; owner-scoped aggregate queries.

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..models import Customer, Product, Sale
from ..models.inventory import STATUS_LOW_STOCK, STATUS_OUT_OF_STOCK
from ..time_utils import month_key, to_utc_z, utcnow


class ReportError(Exception):
    """Raised when report parameters are invalid."""
    pass


MAX_TREND_MONTHS = 36


def _month_expr(session: Session, column):
    if session.get_bind().dialect.name == "postgresql":
        return func.to_char(column, "YYYY-MM")
    return func.strftime("%Y-%m", column)


def _recent_month_keys(months: int) -> list[str]:
    now = utcnow()
    year, month = now.year, now.month
    keys = []
    for _ in range(months):
        keys.append(month_key(datetime(year, month, 1)))
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(keys))


def inventory_summary(session: Session, owner_id: int) -> dict:
    row = session.execute(
        select(
            func.count(Product.id).label("product_count"),
            func.coalesce(func.sum(Product.stock), 0).label("units_in_stock"),
            func.coalesce(func.sum(Product.stock * Product.cost), 0).label("inventory_value"),
            func.coalesce(func.sum(Product.stock * Product.price), 0).label("retail_value"),
        ).where(Product.owner_id == owner_id)
    ).one()

    status_rows = session.execute(
        select(Product.status, func.count(Product.id))
        .where(Product.owner_id == owner_id)
        .group_by(Product.status)
    ).all()
    by_status = {status: int(count) for status, count in status_rows}

    return {
        "product_count": int(row.product_count or 0),
        "units_in_stock": int(row.units_in_stock or 0),
        "inventory_value": round(float(row.inventory_value or 0), 2),
        "retail_value": round(float(row.retail_value or 0), 2),
        "low_stock_count": by_status.get(STATUS_LOW_STOCK, 0),
        "out_of_stock_count": by_status.get(STATUS_OUT_OF_STOCK, 0),
    }


def sales_summary(session: Session, owner_id: int) -> dict:
    row = session.execute(
        select(
            func.count(Sale.id).label("sales_count"),
            func.coalesce(func.sum(Sale.quantity), 0).label("units_sold"),
            func.coalesce(func.sum(Sale.total), 0).label("revenue"),
            func.avg(Sale.total).label("average_order_value"),
        ).where(Sale.owner_id == owner_id)
    ).one()
    return {
        "sales_count": int(row.sales_count or 0),
        "units_sold": int(row.units_sold or 0),
        "revenue": round(float(row.revenue or 0), 2),
        "average_order_value": round(float(row.average_order_value or 0), 2),
    }


def customer_count(session: Session, owner_id: int) -> int:
    return int(
        session.scalar(select(func.count(Customer.id)).where(Customer.owner_id == owner_id)) or 0
    )


def category_breakdown(session: Session, owner_id: int) -> list[dict]:
    rows = session.execute(
        select(
            Product.category,
            func.count(Product.id).label("product_count"),
            func.coalesce(func.sum(Product.stock), 0).label("stock"),
            func.coalesce(func.sum(Product.stock * Product.price), 0).label("retail_value"),
        )
        .where(Product.owner_id == owner_id)
        .group_by(Product.category)
        .order_by(Product.category.asc())
    ).all()
    return [
        {
            "category": r.category,
            "product_count": int(r.product_count),
            "stock": int(r.stock),
            "retail_value": round(float(r.retail_value), 2),
        }
        for r in rows
    ]


def top_products(session: Session, owner_id: int, limit: int = 5) -> list[dict]:
    """Best sellers by revenue. Sales whose product was deleted are skipped."""
    revenue = func.sum(Sale.total).label("revenue")
    rows = session.execute(
        select(
            Product.id,
            Product.name,
            Product.sku,
            func.sum(Sale.quantity).label("units_sold"),
            revenue,
        )
        .join(Product, Product.id == Sale.product_id)
        .where(Sale.owner_id == owner_id, Product.owner_id == owner_id)
        .group_by(Product.id, Product.name, Product.sku)
        .order_by(revenue.desc(), Product.id.asc())
        .limit(limit)
    ).all()
    return [
        {
            "product_id": r.id,
            "name": r.name,
            "sku": r.sku,
            "units_sold": int(r.units_sold or 0),
            "revenue": round(float(r.revenue or 0), 2),
        }
        for r in rows
    ]


def monthly_trend(session: Session, owner_id: int, months: int = 6) -> list[dict]:
    """
    Revenue, sale count and distinct customers per calendar month, oldest
    first. Months without sales are present with zeros.
    """
    if months < 1 or months > MAX_TREND_MONTHS:
        raise ReportError(f"months must be between 1 and {MAX_TREND_MONTHS}")

    keys = _recent_month_keys(months)
    period = _month_expr(session, Sale.sale_date).label("period")
    rows = session.execute(
        select(
            period,
            func.count(Sale.id).label("sales_count"),
            func.coalesce(func.sum(Sale.total), 0).label("revenue"),
            func.count(func.distinct(Sale.customer_id)).label("customers"),
        )
        .where(Sale.owner_id == owner_id, period >= keys[0])
        .group_by(period)
        .order_by(period)
    ).all()
    by_period = {r.period: r for r in rows}

    series = []
    for key in keys:
        r = by_period.get(key)
        series.append({
            "month": key,
            "revenue": round(float(r.revenue), 2) if r else 0.0,
            "sales": int(r.sales_count) if r else 0,
            "customers": int(r.customers) if r else 0,
        })
    return series


def business_summary(session: Session, owner_id: int) -> dict:
    """Everything the dashboard and the insight prompts need, for one owner."""
    return {
        "generated_at": to_utc_z(utcnow()),
        "inventory": inventory_summary(session, owner_id),
        "sales": sales_summary(session, owner_id),
        "customers": {"count": customer_count(session, owner_id)},
        "categories": category_breakdown(session, owner_id),
        "top_products": top_products(session, owner_id),
    }
