"""
Customers API Routes - customers, their documents and dive groups
"""
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import List

from divecenter.core.database import get_db
from divecenter.core.security import get_current_active_user, RoleChecker
from divecenter.core.pagination import paginate
from divecenter.schemas import (
    CustomerCreate, CustomerUpdate, CustomerResponse, CustomerDetail,
    CertificationCreate, CertificationUpdate, CertificationResponse,
    InsuranceCreate, InsuranceUpdate, InsuranceResponse,
    EmergencyContactCreate, EmergencyContactUpdate, EmergencyContactResponse,
    DiveGroupCreate, DiveGroupUpdate, DiveGroupResponse, DiveGroupMemberRequest,
    MessageResponse
)
from divecenter.services.customer_service import (
    CustomerService, CertificationService, InsuranceService,
    EmergencyContactService, DiveGroupService
)

router = APIRouter(prefix="/customers", tags=["Customers"])
groups_router = APIRouter(prefix="/dive-groups", tags=["Dive Groups"])


# ==================== CUSTOMERS ====================

@router.get("")
async def list_customers(
    search: str = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    """List customers with optional search on name, email, phone or passport"""
    query = CustomerService(db).query_by_dive_center(current_user.dive_center_id, search)
    return paginate(query, page, per_page, CustomerResponse.model_validate)


@router.post("", response_model=CustomerResponse, status_code=status.HTTP_201_CREATED)
async def create_customer(
    customer_data: CustomerCreate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    customer = CustomerService(db).create(customer_data, current_user.dive_center_id)
    db.commit()
    return customer


@router.get("/{customer_id}", response_model=CustomerDetail)
async def get_customer(
    customer_id: int,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    customer = CustomerService(db).get_detail(customer_id, current_user.dive_center_id)
    if not customer:
        raise HTTPException(status_code=404, detail="Customer not found")
    return customer


@router.put("/{customer_id}", response_model=CustomerResponse)
async def update_customer(
    customer_id: int,
    customer_data: CustomerUpdate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    customer = CustomerService(db).update(customer_id, customer_data, current_user.dive_center_id)
    if not customer:
        raise HTTPException(status_code=404, detail="Customer not found")
    db.commit()
    return customer


@router.delete("/{customer_id}", response_model=MessageResponse,
               dependencies=[Depends(RoleChecker(["Admin"]))])
async def delete_customer(
    customer_id: int,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    try:
        if not CustomerService(db).delete(customer_id, current_user.dive_center_id):
            raise HTTPException(status_code=404, detail="Customer not found")
        db.commit()
        return {"message": "Customer deleted"}
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


# ==================== NESTED RECORDS ====================

def _nested_routes(path: str, service_cls, create_schema, update_schema, response_schema, label: str):
    """Register list/create/update/delete for a record type owned by a customer"""

    @router.get(f"/{{customer_id}}/{path}", response_model=List[response_schema], name=f"list_{path}")
    async def list_records(
        customer_id: int,
        db: Session = Depends(get_db),
        current_user=Depends(get_current_active_user)
    ):
        try:
            return service_cls(db).get_by_customer(customer_id, current_user.dive_center_id)
        except LookupError as e:
            raise HTTPException(status_code=404, detail=str(e))

    @router.post(f"/{{customer_id}}/{path}", response_model=response_schema,
                 status_code=status.HTTP_201_CREATED, name=f"create_{path}")
    async def create_record(
        customer_id: int,
        data: create_schema,
        db: Session = Depends(get_db),
        current_user=Depends(get_current_active_user)
    ):
        try:
            record = service_cls(db).create(data, customer_id, current_user.dive_center_id)
            db.commit()
            return record
        except LookupError as e:
            raise HTTPException(status_code=404, detail=str(e))

    @router.put(f"/{{customer_id}}/{path}/{{record_id}}", response_model=response_schema,
                name=f"update_{path}")
    async def update_record(
        customer_id: int,
        record_id: int,
        data: update_schema,
        db: Session = Depends(get_db),
        current_user=Depends(get_current_active_user)
    ):
        try:
            record = service_cls(db).update(record_id, data, customer_id, current_user.dive_center_id)
        except LookupError as e:
            raise HTTPException(status_code=404, detail=str(e))
        if not record:
            raise HTTPException(status_code=404, detail=f"{label} not found")
        db.commit()
        return record

    @router.delete(f"/{{customer_id}}/{path}/{{record_id}}", response_model=MessageResponse,
                   name=f"delete_{path}")
    async def delete_record(
        customer_id: int,
        record_id: int,
        db: Session = Depends(get_db),
        current_user=Depends(get_current_active_user)
    ):
        try:
            deleted = service_cls(db).delete(record_id, customer_id, current_user.dive_center_id)
        except LookupError as e:
            raise HTTPException(status_code=404, detail=str(e))
        if not deleted:
            raise HTTPException(status_code=404, detail=f"{label} not found")
        db.commit()
        return {"message": f"{label} deleted"}


_nested_routes("certifications", CertificationService, CertificationCreate, CertificationUpdate,
               CertificationResponse, "Certification")
_nested_routes("insurances", InsuranceService, InsuranceCreate, InsuranceUpdate,
               InsuranceResponse, "Insurance")
_nested_routes("emergency-contacts", EmergencyContactService, EmergencyContactCreate, EmergencyContactUpdate,
               EmergencyContactResponse, "Emergency contact")


# ==================== DIVE GROUPS ====================

@groups_router.get("")
async def list_dive_groups(
    status: str = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    query = DiveGroupService(db).query_by_dive_center(current_user.dive_center_id, status)
    return paginate(query, page, per_page, DiveGroupResponse.model_validate)


@groups_router.post("", response_model=DiveGroupResponse, status_code=201)
async def create_dive_group(
    group_data: DiveGroupCreate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    try:
        group = DiveGroupService(db).create(group_data, current_user.dive_center_id, current_user.id)
        db.commit()
        return group
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@groups_router.get("/{group_id}", response_model=DiveGroupResponse)
async def get_dive_group(
    group_id: int,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    group = DiveGroupService(db).get_by_id(group_id, current_user.dive_center_id)
    if not group:
        raise HTTPException(status_code=404, detail="Dive group not found")
    return group


@groups_router.put("/{group_id}", response_model=DiveGroupResponse)
async def update_dive_group(
    group_id: int,
    group_data: DiveGroupUpdate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    group = DiveGroupService(db).update(group_id, group_data, current_user.dive_center_id)
    if not group:
        raise HTTPException(status_code=404, detail="Dive group not found")
    db.commit()
    return group


@groups_router.delete("/{group_id}", response_model=MessageResponse)
async def delete_dive_group(
    group_id: int,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    if not DiveGroupService(db).delete(group_id, current_user.dive_center_id):
        raise HTTPException(status_code=404, detail="Dive group not found")
    db.commit()
    return {"message": "Dive group deleted"}


@groups_router.post("/{group_id}/members", response_model=DiveGroupResponse)
async def add_dive_group_member(
    group_id: int,
    member: DiveGroupMemberRequest,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    try:
        group = DiveGroupService(db).add_member(group_id, member.customer_id, current_user.dive_center_id)
        db.commit()
        return group
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@groups_router.delete("/{group_id}/members/{customer_id}", response_model=DiveGroupResponse)
async def remove_dive_group_member(
    group_id: int,
    customer_id: int,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    try:
        group = DiveGroupService(db).remove_member(group_id, customer_id, current_user.dive_center_id)
        db.commit()
        return group
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
