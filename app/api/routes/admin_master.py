from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from app.core.dependencies import require_role, get_db
from app.models.customer import Customer
from app.models.profile import Profile
from app.models.truck import Truck
from app.schemas.customer import CustomerCreate, CustomerResponse
from app.schemas.truck import TruckCreate, TruckResponse
from app.schemas.user import UserCreate, UserResponse, UserUpdate
from app.services.audit_service import log_action, recent_entries
from app.services.user_service import create_user_with_profile

router = APIRouter(prefix="/admin", tags=["Admin Master"])


def _user_response(profile: Profile) -> UserResponse:
    return UserResponse(
        id=profile.id,
        user_id=profile.user_id,
        name=profile.name,
        email=profile.user.email if profile.user else None,
        phone=profile.phone,
        role=profile.role,
        is_verified=profile.is_verified,
    )


# ---------------- CUSTOMERS ----------------

@router.post("/customers", response_model=CustomerResponse)
def create_customer(
    customer: CustomerCreate,
    db: Session = Depends(get_db),
    user=Depends(require_role(["admin", "dispatcher"]))
):
    new_customer = Customer(**customer.model_dump())
    db.add(new_customer)
    db.commit()
    db.refresh(new_customer)

    log_action(
        db=db,
        user_id=user.id,
        action="CREATE_CUSTOMER",
        entity_type="Customer",
        entity_id=new_customer.id,
        details=f"Customer '{new_customer.name}' created"
    )

    return new_customer


@router.get("/customers", response_model=list[CustomerResponse])
def get_customers(
    db: Session = Depends(get_db),
    user=Depends(require_role(["admin", "dispatcher"]))
):
    return db.query(Customer).order_by(Customer.created_at.desc()).all()


@router.put("/customers/{customer_id}")
def update_customer(
    customer_id: int,
    customer_data: CustomerCreate,
    db: Session = Depends(get_db),
    user=Depends(require_role(["admin", "dispatcher"]))
):
    customer = db.query(Customer).filter(Customer.id == customer_id).first()

    if not customer:
        raise HTTPException(status_code=404, detail="Customer not found")

    for field, value in customer_data.model_dump().items():
        setattr(customer, field, value)

    db.commit()

    log_action(
        db=db,
        user_id=user.id,
        action="UPDATE_CUSTOMER",
        entity_type="Customer",
        entity_id=customer.id,
        details=f"Customer '{customer.name}' updated"
    )

    return {"message": "Customer updated successfully"}


# ---------------- TRUCKS ----------------

def _check_driver(db: Session, driver_id: int | None):
    if driver_id is None:
        return
    driver = db.query(Profile).filter(Profile.id == driver_id).first()
    if not driver:
        raise HTTPException(status_code=404, detail="Assigned driver not found")


@router.post("/trucks", response_model=TruckResponse)
def create_truck(
    truck: TruckCreate,
    db: Session = Depends(get_db),
    user=Depends(require_role(["admin"]))
):
    _check_driver(db, truck.assigned_driver_id)

    data = truck.model_dump()
    data["status"] = truck.status.value
    new_truck = Truck(**data)
    db.add(new_truck)

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(
            status_code=409,
            detail=f"Plate {truck.plate_number} already registered"
        )

    db.refresh(new_truck)

    log_action(
        db=db,
        user_id=user.id,
        action="CREATE_TRUCK",
        entity_type="Truck",
        entity_id=new_truck.id,
        details=f"Truck '{new_truck.plate_number}' created"
    )

    return new_truck


@router.get("/trucks", response_model=list[TruckResponse])
def get_trucks(
    status: str | None = None,
    db: Session = Depends(get_db),
    user=Depends(require_role(["admin", "dispatcher"]))
):
    q = db.query(Truck)
    if status:
        q = q.filter(Truck.status == status.strip().lower())
    return q.order_by(Truck.created_at.desc()).all()


@router.put("/trucks/{truck_id}")
def update_truck(
    truck_id: int,
    truck_data: TruckCreate,
    db: Session = Depends(get_db),
    user=Depends(require_role(["admin"]))
):
    truck = db.query(Truck).filter(Truck.id == truck_id).first()

    if not truck:
        raise HTTPException(status_code=404, detail="Truck not found")

    _check_driver(db, truck_data.assigned_driver_id)

    truck.plate_number = truck_data.plate_number
    truck.model = truck_data.model
    truck.capacity = truck_data.capacity
    truck.status = truck_data.status.value
    truck.assigned_driver_id = truck_data.assigned_driver_id

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(
            status_code=409,
            detail=f"Plate {truck_data.plate_number} already registered"
        )

    log_action(
        db=db,
        user_id=user.id,
        action="UPDATE_TRUCK",
        entity_type="Truck",
        entity_id=truck.id,
        details=f"Truck '{truck.plate_number}' updated | Status: {truck.status}"
    )

    return {"message": "Truck updated successfully"}


# ---------------- USERS ----------------

@router.get("/users", response_model=list[UserResponse])
def get_users(
    db: Session = Depends(get_db),
    user=Depends(require_role(["admin"]))
):
    profiles = (
        db.query(Profile)
        .options(joinedload(Profile.user))
        .order_by(Profile.name.asc())
        .all()
    )

    return [_user_response(p) for p in profiles]


@router.get("/drivers")
def get_drivers(
    db: Session = Depends(get_db),
    user=Depends(require_role(["admin", "dispatcher"]))
):
    drivers = (
        db.query(Profile)
        .filter(Profile.role == "driver")
        .order_by(Profile.name.asc())
        .all()
    )

    return [
        {
            "id": d.id,
            "name": d.name,
            "phone": d.phone
        }
        for d in drivers
    ]


@router.post("/users")
def create_user_admin(
    user_data: UserCreate,
    db: Session = Depends(get_db),
    admin=Depends(require_role(["admin"]))
):
    result = create_user_with_profile(
        db,
        name=user_data.name,
        role=user_data.role,
        phone=user_data.phone,
        email=user_data.email,
    )

    log_action(
        db=db,
        user_id=admin.id,
        action="CREATE_USER",
        entity_type="User",
        entity_id=result["user"]["user_id"],
        details=f"User '{result['email']}' created with role {result['user']['role']}"
    )

    return result


@router.put("/users/{profile_id}")
def update_user(
    profile_id: int,
    user_data: UserUpdate,
    db: Session = Depends(get_db),
    admin=Depends(require_role(["admin"]))
):
    profile = db.query(Profile).filter(Profile.id == profile_id).first()

    if not profile:
        raise HTTPException(status_code=404, detail="User not found")

    changes = user_data.model_dump(exclude_unset=True)
    if "role" in changes and changes["role"] is not None:
        changes["role"] = changes["role"].value

    for field, value in changes.items():
        if value is not None:
            setattr(profile, field, value)

    db.commit()

    log_action(
        db=db,
        user_id=admin.id,
        action="UPDATE_USER",
        entity_type="User",
        entity_id=profile.user_id,
        details=f"Updated fields: {sorted(changes)}"
    )

    return {"message": "User updated successfully"}


# ---------------- AUDIT LOGS ----------------

@router.get("/audit-logs")
def get_audit_logs(
    entity_type: str | None = None,
    entity_id: int | None = None,
    limit: int = Query(default=200, ge=1, le=1000),
    db: Session = Depends(get_db),
    user=Depends(require_role(["admin"]))
):
    return recent_entries(db, entity_type, entity_id, limit)
