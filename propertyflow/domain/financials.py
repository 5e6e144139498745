# propertyflow/domain/financials.py
from __future__ import annotations

import csv
import io
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional

from .rent_schedule import add_months, billing_date

REPORT_PERIODS = ("yearly", "quarterly", "monthly")


@dataclass(frozen=True)
class ReportPeriod:
    period: str
    year: int
    start: date
    end: date
    quarter: Optional[int] = None
    month: Optional[int] = None

    @property
    def label(self) -> str:
        if self.period == "quarterly":
            return f"{self.year}-Q{self.quarter}"
        if self.period == "monthly":
            return f"{self.year}-{self.month:02d}"
        return str(self.year)

    def contains(self, d: date) -> bool:
        return self.start <= d <= self.end


def resolve_period(period: str = "yearly", year: Optional[int] = None, quarter: Optional[int] = None, month: Optional[int] = None) -> ReportPeriod:
    """
    Inclusive date range for a report.

    A quarterly request without a quarter falls back to the full year.
    """
    if period not in REPORT_PERIODS:
        raise ValueError(f"unknown period {period!r}")
    y = int(year or datetime.utcnow().year)

    if period == "quarterly" and quarter:
        if not 1 <= int(quarter) <= 4:
            raise ValueError("quarter must be 1-4")
        first = date(y, (int(quarter) - 1) * 3 + 1, 1)
        nxt = add_months(first, 3, 1)
        return ReportPeriod(period, y, first, date.fromordinal(nxt.toordinal() - 1), quarter=int(quarter))

    if period == "monthly":
        m = int(month or 1)
        if not 1 <= m <= 12:
            raise ValueError("month must be 1-12")
        return ReportPeriod(period, y, date(y, m, 1), billing_date(y, m, 31), month=m)

    return ReportPeriod("yearly", y, date(y, 1, 1), date(y, 12, 31))


@dataclass(frozen=True)
class PaymentRow:
    property_id: int
    property_name: str
    unit_name: str
    due_date: date
    amount: float
    status: str


@dataclass(frozen=True)
class ExpenseRow:
    property_id: int
    property_name: str
    incurred_at: date
    amount: float
    category: Optional[str]
    description: Optional[str] = None


@dataclass(frozen=True)
class PropertySnapshot:
    id: int
    name: str
    address: str
    unit_count: int
    occupied_units: int


@dataclass
class FinancialReport:
    period: ReportPeriod
    generated_at: datetime
    properties: List[Dict[str, Any]] = field(default_factory=list)
    summary: Dict[str, Any] = field(default_factory=dict)
    metrics: Dict[str, Any] = field(default_factory=dict)
    expenses_by_category: Dict[str, float] = field(default_factory=dict)
    monthly: List[Dict[str, Any]] = field(default_factory=list)
    payments: List[Dict[str, Any]] = field(default_factory=list)
    expenses: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "period": self.period.period,
            "year": self.period.year,
            "quarter": self.period.quarter,
            "month": self.period.month,
            "start_date": self.period.start.isoformat(),
            "end_date": self.period.end.isoformat(),
            "generated_at": self.generated_at.isoformat(),
            "summary": self.summary,
            "metrics": self.metrics,
            "by_property": self.properties,
            "expenses_by_category": self.expenses_by_category,
            "monthly": self.monthly,
            "payments": self.payments,
            "expenses": self.expenses,
        }


def occupancy_rate(unit_count: int, occupied: int) -> int:
    if unit_count <= 0:
        return 0
    return int(round(occupied * 100.0 / unit_count))


def _pct(num: float, den: float) -> float:
    return round(num * 100.0 / den, 2) if den > 0 else 0.0


def _avg_nonzero(values: List[float]) -> float:
    nz = [v for v in values if v > 0]
    return round(sum(nz) / len(nz), 2) if nz else 0.0


def build_report(
    *,
    period: ReportPeriod,
    properties: Iterable[PropertySnapshot],
    payments: Iterable[PaymentRow],
    expenses: Iterable[ExpenseRow],
    now: Optional[datetime] = None,
) -> FinancialReport:
    """
    Aggregate paid rent against expenses for the period.

    Income counts only payments with status paid whose due date falls in the
    period; expenses count by the date they were incurred.
    """
    props = list(properties)
    pays = [p for p in payments if period.contains(p.due_date)]
    exps = [e for e in expenses if period.contains(e.incurred_at)]

    paid = [p for p in pays if p.status == "paid"]
    total_income = round(sum(p.amount for p in paid), 2)
    total_expenses = round(sum(e.amount for e in exps), 2)
    net = round(total_income - total_expenses, 2)

    by_property: List[Dict[str, Any]] = []
    for prop in props:
        inc = round(sum(p.amount for p in paid if p.property_id == prop.id), 2)
        exp = round(sum(e.amount for e in exps if e.property_id == prop.id), 2)
        by_property.append(
            {
                "id": prop.id,
                "name": prop.name,
                "address": prop.address,
                "income": inc,
                "expenses": exp,
                "net": round(inc - exp, 2),
                "occupancy_rate": occupancy_rate(prop.unit_count, prop.occupied_units),
                "unit_count": prop.unit_count,
            }
        )

    by_cat: Dict[str, float] = {}
    for e in exps:
        cat = e.category or "other"
        by_cat[cat] = round(by_cat.get(cat, 0.0) + e.amount, 2)

    monthly: List[Dict[str, Any]] = []
    cur = period.start.replace(day=1)
    while cur <= period.end:
        m_inc = round(sum(p.amount for p in paid if (p.due_date.year, p.due_date.month) == (cur.year, cur.month)), 2)
        m_exp = round(sum(e.amount for e in exps if (e.incurred_at.year, e.incurred_at.month) == (cur.year, cur.month)), 2)
        monthly.append(
            {
                "month": cur.strftime("%b"),
                "month_index": cur.month,
                "year": cur.year,
                "income": m_inc,
                "expenses": m_exp,
                "net": round(m_inc - m_exp, 2),
            }
        )
        cur = add_months(cur, 1, 1)

    metrics = {
        "roi_pct": _pct(net, total_income),
        "expense_ratio_pct": _pct(total_expenses, total_income),
        "avg_monthly_income": _avg_nonzero([m["income"] for m in monthly]),
        "avg_monthly_expenses": _avg_nonzero([m["expenses"] for m in monthly]),
        "collection_rate_pct": _pct(len(paid), len(pays)),
    }

    summary = {
        "total_income": total_income,
        "total_expenses": total_expenses,
        "net_income": net,
        "property_count": len(props),
        "total_units": sum(p.unit_count for p in props),
        "outstanding": round(sum(p.amount for p in pays if p.status in ("pending", "late")), 2),
    }

    return FinancialReport(
        period=period,
        generated_at=now or datetime.utcnow(),
        properties=by_property,
        summary=summary,
        metrics=metrics,
        expenses_by_category=by_cat,
        monthly=monthly,
        payments=[
            {"date": p.due_date.isoformat(), "amount": p.amount, "status": p.status, "property": p.property_name, "unit": p.unit_name}
            for p in sorted(pays, key=lambda r: (r.due_date, r.property_id))
        ],
        expenses=[
            {"date": e.incurred_at.isoformat(), "amount": e.amount, "category": e.category, "description": e.description, "property": e.property_name}
            for e in sorted(exps, key=lambda r: (r.incurred_at, r.property_id))
        ],
    )


def _money(v: float) -> str:
    if round(v, 2) < 0:
        return f"-${-v:.2f}"
    return f"${v:.2f}"


def report_to_csv(report: FinancialReport) -> str:
    """Sectioned CSV: SUMMARY, BY PROPERTY, MONTHLY BREAKDOWN, EXPENSES BY CATEGORY."""
    buf = io.StringIO()
    w = csv.writer(buf, lineterminator="\n")

    w.writerow(["Financial Report"])
    w.writerow([f"Period: {report.period.period} {report.period.label}"])
    w.writerow([f"Generated: {report.generated_at.replace(microsecond=0).isoformat()}"])
    w.writerow([])

    s = report.summary
    w.writerow(["SUMMARY"])
    w.writerow(["Metric", "Value"])
    w.writerow(["Total Income", _money(s["total_income"])])
    w.writerow(["Total Expenses", _money(s["total_expenses"])])
    w.writerow(["Net Income", _money(s["net_income"])])
    w.writerow(["Properties", s["property_count"]])
    w.writerow(["Total Units", s["total_units"]])
    w.writerow([])

    w.writerow(["BY PROPERTY"])
    w.writerow(["Property", "Income", "Expenses", "Net", "Occupancy"])
    for p in report.properties:
        w.writerow([p["name"], _money(p["income"]), _money(p["expenses"]), _money(p["net"]), f"{p['occupancy_rate']}%"])
    w.writerow([])

    w.writerow(["MONTHLY BREAKDOWN"])
    w.writerow(["Month", "Income", "Expenses", "Net"])
    for m in report.monthly:
        w.writerow([f"{m['month']} {m['year']}", _money(m["income"]), _money(m["expenses"]), _money(m["net"])])
    w.writerow([])

    w.writerow(["EXPENSES BY CATEGORY"])
    w.writerow(["Category", "Amount"])
    for cat, amt in sorted(report.expenses_by_category.items()):
        w.writerow([cat.replace("_", " "), _money(amt)])

    return buf.getvalue()
