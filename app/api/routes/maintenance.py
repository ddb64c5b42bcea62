from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.dependencies import get_db, require_role
from app.schemas.maintenance import (
    MaintenanceCreate,
    MaintenanceReplace,
    MaintenanceResponse,
    MaintenanceUpdate,
)
from app.services import maintenance_service
from app.services.audit_service import log_action


router = APIRouter(prefix="/maintenance", tags=["Maintenance"])

MANAGERS = ["admin", "dispatcher"]


@router.post("", response_model=MaintenanceResponse)
def add_maintenance(
    body: MaintenanceCreate,
    db: Session = Depends(get_db),
    user=Depends(require_role(MANAGERS))
):
    item = maintenance_service.add_item(
        db,
        truck_id=body.truck_id,
        description=body.description,
        cost=body.cost,
        trip_id=body.trip_id,
        maintenance_date=body.maintenance_date,
    )

    log_action(
        db=db,
        user_id=user.id,
        action="CREATE_MAINTENANCE",
        entity_type="Maintenance",
        entity_id=item.id,
        details=f"Truck {item.truck_id} | {item.description} | {item.cost:.2f}"
    )

    return item


@router.put("/{item_id}", response_model=MaintenanceResponse)
def update_maintenance(
    item_id: int,
    body: MaintenanceUpdate,
    db: Session = Depends(get_db),
    user=Depends(require_role(MANAGERS))
):
    item = maintenance_service.update_item(
        db,
        item_id,
        description=body.description,
        cost=body.cost,
        maintenance_date=body.maintenance_date,
    )

    log_action(
        db=db,
        user_id=user.id,
        action="UPDATE_MAINTENANCE",
        entity_type="Maintenance",
        entity_id=item.id,
        details=f"{item.description} | {item.cost:.2f}"
    )

    return item


@router.delete("/{item_id}")
def delete_maintenance(
    item_id: int,
    db: Session = Depends(get_db),
    user=Depends(require_role(MANAGERS))
):
    maintenance_service.delete_item(db, item_id)

    log_action(
        db=db,
        user_id=user.id,
        action="DELETE_MAINTENANCE",
        entity_type="Maintenance",
        entity_id=item_id
    )

    return {"message": "Maintenance record deleted"}


@router.get("/truck/{truck_id}", response_model=list[MaintenanceResponse])
def list_truck_maintenance(
    truck_id: int,
    from_date: date | None = None,
    to_date: date | None = None,
    db: Session = Depends(get_db),
    user=Depends(require_role(MANAGERS))
):
    return maintenance_service.list_for_truck(db, truck_id, from_date, to_date)


@router.get("/trip/{trip_id}", response_model=list[MaintenanceResponse])
def list_trip_maintenance(
    trip_id: int,
    db: Session = Depends(get_db),
    user=Depends(require_role(MANAGERS))
):
    return maintenance_service.list_for_trip(db, trip_id)


@router.put("/trip/{trip_id}", response_model=list[MaintenanceResponse])
def replace_trip_maintenance(
    trip_id: int,
    body: MaintenanceReplace,
    db: Session = Depends(get_db),
    user=Depends(require_role(MANAGERS))
):
    items = maintenance_service.replace_for_trip(db, trip_id, body.truck_id, body.items)

    log_action(
        db=db,
        user_id=user.id,
        action="REPLACE_TRIP_MAINTENANCE",
        entity_type="Trip",
        entity_id=trip_id,
        details=f"{len(items)} maintenance items"
    )

    return items
