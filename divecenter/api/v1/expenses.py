"""
Expenses API Routes - expenses, suppliers and expense categories
"""
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import List
from datetime import date

from divecenter.core.database import get_db
from divecenter.core.security import get_current_active_user, RoleChecker
from divecenter.core.pagination import paginate
from divecenter.schemas import (
    ExpenseCreate, ExpenseUpdate, ExpenseResponse, ExpenseSummary,
    SupplierCreate, SupplierUpdate, SupplierResponse,
    ExpenseCategoryCreate, ExpenseCategoryUpdate, ExpenseCategoryResponse, MessageResponse
)
from divecenter.services.expense_service import ExpenseService, SupplierService, ExpenseCategoryService

router = APIRouter(prefix="/expenses", tags=["Expenses"])
suppliers_router = APIRouter(prefix="/suppliers", tags=["Suppliers"])
categories_router = APIRouter(prefix="/expense-categories", tags=["Expense Categories"])


@router.get("")
async def list_expenses(
    category_id: int = None,
    supplier_id: int = None,
    start_date: date = None,
    end_date: date = None,
    search: str = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    """List expenses for the current dive center"""
    query = ExpenseService(db).query_by_dive_center(
        current_user.dive_center_id, category_id, supplier_id, start_date, end_date, search
    )
    return paginate(query, page, per_page, ExpenseResponse.model_validate)


@router.get("/summary", response_model=ExpenseSummary)
async def get_expense_summary(
    start_date: date = None,
    end_date: date = None,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    return ExpenseService(db).get_expense_summary(current_user.dive_center_id, start_date, end_date)


@router.get("/next-number")
async def get_next_expense_number(
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    return {"next_number": ExpenseService(db).get_next_number(current_user.dive_center_id)}


@router.post("", response_model=ExpenseResponse, status_code=201)
async def create_expense(
    expense_data: ExpenseCreate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    try:
        expense = ExpenseService(db).create(expense_data, current_user.dive_center_id, current_user.id)
        db.commit()
        return expense
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/{expense_id}", response_model=ExpenseResponse)
async def get_expense(
    expense_id: int,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    expense = ExpenseService(db).get_by_id(expense_id, current_user.dive_center_id)
    if not expense:
        raise HTTPException(status_code=404, detail="Expense not found")
    return expense


@router.put("/{expense_id}", response_model=ExpenseResponse)
async def update_expense(
    expense_id: int,
    expense_data: ExpenseUpdate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    try:
        expense = ExpenseService(db).update(expense_id, expense_data, current_user.dive_center_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not expense:
        raise HTTPException(status_code=404, detail="Expense not found")
    db.commit()
    return expense


@router.delete("/{expense_id}", response_model=MessageResponse, dependencies=[Depends(RoleChecker(["Admin"]))])
async def delete_expense(
    expense_id: int,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    if not ExpenseService(db).delete(expense_id, current_user.dive_center_id):
        raise HTTPException(status_code=404, detail="Expense not found")
    db.commit()
    return {"message": "Expense deleted"}


def _catalog_routes(catalog_router: APIRouter, service_cls, create_schema, update_schema,
                    response_schema, label: str):
    """Register list/create/update/delete routes for a named expense catalog"""

    @catalog_router.get("", response_model=List[response_schema])
    async def list_records(
        db: Session = Depends(get_db),
        current_user=Depends(get_current_active_user)
    ):
        return service_cls(db).get_by_dive_center(current_user.dive_center_id)

    @catalog_router.post("", response_model=response_schema, status_code=201)
    async def create_record(
        data: create_schema,
        db: Session = Depends(get_db),
        current_user=Depends(get_current_active_user)
    ):
        try:
            record = service_cls(db).create(data, current_user.dive_center_id)
            db.commit()
            return record
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

    @catalog_router.get("/{record_id}", response_model=response_schema)
    async def get_record(
        record_id: int,
        db: Session = Depends(get_db),
        current_user=Depends(get_current_active_user)
    ):
        record = service_cls(db).get_by_id(record_id, current_user.dive_center_id)
        if not record:
            raise HTTPException(status_code=404, detail=f"{label} not found")
        return record

    @catalog_router.put("/{record_id}", response_model=response_schema)
    async def update_record(
        record_id: int,
        data: update_schema,
        db: Session = Depends(get_db),
        current_user=Depends(get_current_active_user)
    ):
        try:
            record = service_cls(db).update(record_id, data, current_user.dive_center_id)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        if not record:
            raise HTTPException(status_code=404, detail=f"{label} not found")
        db.commit()
        return record

    @catalog_router.delete("/{record_id}", response_model=MessageResponse,
                           dependencies=[Depends(RoleChecker(["Admin"]))])
    async def delete_record(
        record_id: int,
        db: Session = Depends(get_db),
        current_user=Depends(get_current_active_user)
    ):
        try:
            deleted = service_cls(db).delete(record_id, current_user.dive_center_id)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        if not deleted:
            raise HTTPException(status_code=404, detail=f"{label} not found")
        db.commit()
        return {"message": f"{label} deleted"}


_catalog_routes(suppliers_router, SupplierService, SupplierCreate, SupplierUpdate,
                SupplierResponse, "Supplier")
_catalog_routes(categories_router, ExpenseCategoryService, ExpenseCategoryCreate, ExpenseCategoryUpdate,
                ExpenseCategoryResponse, "Expense category")
