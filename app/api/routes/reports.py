from datetime import date
from typing import Literal

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy.orm import Session

from app.core.dependencies import get_db, require_role
from app.schemas.report import ReportRequest
from app.services.maintenance_service import truck_maintenance_summary
from app.services.report_service import generate_report, render_csv, report_filename


router = APIRouter(prefix="/reports", tags=["Reports"])


# Declared first so it is not captured by /{entity_type}
@router.get("/truck-maintenance")
def get_truck_maintenance_summary(
    truck_id: int | None = None,
    from_date: date | None = None,
    to_date: date | None = None,
    db: Session = Depends(get_db),
    user=Depends(require_role(["admin", "dispatcher"]))
):
    return truck_maintenance_summary(db, truck_id, from_date, to_date)


@router.post("/{entity_type}")
def create_report(
    entity_type: Literal["trips", "customers", "trucks"],
    body: ReportRequest,
    db: Session = Depends(get_db),
    user=Depends(require_role(["admin", "dispatcher"]))
):
    result = generate_report(
        db,
        entity_type,
        date_range=body.date_range,
        filters=body.filters,
        include_road_tolls=body.include_road_tolls,
    )

    if body.format == "csv":
        return Response(
            content=render_csv(result),
            media_type="text/csv",
            headers={
                "Content-Disposition": f'attachment; filename="{report_filename(entity_type)}"'
            },
        )

    return result.rows
