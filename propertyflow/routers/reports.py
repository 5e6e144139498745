# propertyflow/routers/reports.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session

from ..auth import get_principal
from ..db import get_db
from ..domain.financials import REPORT_PERIODS, report_to_csv
from ..services.reports import financial_report

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("/financial")
def get_financial_report(
    period: str = Query(default="yearly"),
    year: Optional[int] = Query(default=None, ge=2000, le=2100),
    quarter: Optional[int] = Query(default=None, ge=1, le=4),
    month: Optional[int] = Query(default=None, ge=1, le=12),
    format: str = Query(default="json", pattern="^(json|csv)$"),
    db: Session = Depends(get_db),
    p=Depends(get_principal),
):
    if period not in REPORT_PERIODS:
        raise HTTPException(status_code=400, detail=f"period must be one of {', '.join(REPORT_PERIODS)}")

    report = financial_report(db, landlord_id=p.landlord_id, period=period, year=year, quarter=quarter, month=month)

    if format == "csv":
        filename = f"financial-report-{report.period.label}.csv"
        return Response(
            content=report_to_csv(report),
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    out = report.to_dict()
    out["label"] = report.period.label
    return out
