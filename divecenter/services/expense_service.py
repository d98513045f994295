"""
Expense Service - Suppliers, expense categories and operational expenses
"""
from typing import Optional, List, Dict
from sqlalchemy.orm import Session
from sqlalchemy import func
from decimal import Decimal
from datetime import date

from divecenter.models import Expense, ExpenseCategory, Supplier, DiveCenter
from divecenter.services.numbering import next_document_number


class _NamedCatalogService:
    """CRUD for per-dive-center records whose name must be unique"""
    model = None
    label = "Record"

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, record_id: int, dive_center_id: int):
        return self.db.query(self.model).filter(
            self.model.id == record_id,
            self.model.dive_center_id == dive_center_id
        ).first()

    def get_by_dive_center(self, dive_center_id: int) -> list:
        return self.db.query(self.model)\
            .filter(self.model.dive_center_id == dive_center_id)\
            .order_by(self.model.name)\
            .all()

    def _check_name(self, name: str, dive_center_id: int, exclude_id: int = None):
        query = self.db.query(self.model).filter(
            func.lower(self.model.name) == name.lower(),
            self.model.dive_center_id == dive_center_id
        )
        if exclude_id:
            query = query.filter(self.model.id != exclude_id)
        if query.first():
            raise ValueError(f"{self.label} '{name}' already exists")

    def create(self, data, dive_center_id: int):
        self._check_name(data.name, dive_center_id)
        record = self.model(**data.model_dump(), dive_center_id=dive_center_id)
        self.db.add(record)
        self.db.flush()
        return record

    def update(self, record_id: int, data, dive_center_id: int):
        record = self.get_by_id(record_id, dive_center_id)
        if not record:
            return None

        changes = data.model_dump(exclude_unset=True)
        if changes.get("name"):
            self._check_name(changes["name"], dive_center_id, exclude_id=record.id)

        for key, value in changes.items():
            setattr(record, key, value)

        self.db.flush()
        return record

    def delete(self, record_id: int, dive_center_id: int) -> bool:
        record = self.get_by_id(record_id, dive_center_id)
        if not record:
            return False
        if record.expenses:
            raise ValueError(f"Cannot delete {self.label.lower()} '{record.name}' because it has expenses")
        self.db.delete(record)
        self.db.flush()
        return True


class SupplierService(_NamedCatalogService):
    model = Supplier
    label = "Supplier"


class ExpenseCategoryService(_NamedCatalogService):
    model = ExpenseCategory
    label = "Expense category"


class ExpenseService:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, expense_id: int, dive_center_id: int) -> Optional[Expense]:
        return self.db.query(Expense).filter(
            Expense.id == expense_id,
            Expense.dive_center_id == dive_center_id
        ).first()

    def query_by_dive_center(self, dive_center_id: int, category_id: int = None, supplier_id: int = None,
                             start_date: date = None, end_date: date = None, search: str = None):
        query = self.db.query(Expense).filter(Expense.dive_center_id == dive_center_id)

        if category_id:
            query = query.filter(Expense.expense_category_id == category_id)
        if supplier_id:
            query = query.filter(Expense.supplier_id == supplier_id)
        if start_date:
            query = query.filter(Expense.expense_date >= start_date)
        if end_date:
            query = query.filter(Expense.expense_date <= end_date)
        if search:
            query = query.filter(Expense.description.ilike(f"%{search}%"))

        return query.order_by(Expense.expense_date.desc(), Expense.id.desc())

    def get_next_number(self, dive_center_id: int) -> str:
        return next_document_number(self.db, Expense, "expense_no", "EXP", dive_center_id)

    def _check_links(self, data: dict, dive_center_id: int):
        if data.get("supplier_id") and not SupplierService(self.db).get_by_id(data["supplier_id"], dive_center_id):
            raise ValueError("Supplier not found")
        if data.get("expense_category_id") and \
                not ExpenseCategoryService(self.db).get_by_id(data["expense_category_id"], dive_center_id):
            raise ValueError("Expense category not found")

    @staticmethod
    def _normalize_recurrence(expense: Expense):
        if not expense.is_recurring:
            expense.recurring_period = None
        elif not expense.recurring_period:
            raise ValueError("recurring_period is required for a recurring expense")

    def create(self, expense_data, dive_center_id: int, user_id: int = None) -> Expense:
        data = expense_data.model_dump()
        self._check_links(data, dive_center_id)

        if not data.get("currency"):
            dive_center = self.db.get(DiveCenter, dive_center_id)
            data["currency"] = dive_center.currency if dive_center else "USD"

        expense = Expense(
            **data,
            expense_no=self.get_next_number(dive_center_id),
            created_by=user_id,
            dive_center_id=dive_center_id
        )
        self._normalize_recurrence(expense)

        self.db.add(expense)
        self.db.flush()
        return expense

    def update(self, expense_id: int, expense_data, dive_center_id: int) -> Optional[Expense]:
        expense = self.get_by_id(expense_id, dive_center_id)
        if not expense:
            return None

        changes = expense_data.model_dump(exclude_unset=True)
        self._check_links(changes, dive_center_id)

        for key, value in changes.items():
            setattr(expense, key, value)
        self._normalize_recurrence(expense)

        self.db.flush()
        return expense

    def delete(self, expense_id: int, dive_center_id: int) -> bool:
        expense = self.get_by_id(expense_id, dive_center_id)
        if not expense:
            return False
        self.db.delete(expense)
        self.db.flush()
        return True

    def get_expense_summary(self, dive_center_id: int, start_date: date = None, end_date: date = None) -> Dict:
        """Totals per expense category"""
        query = self.db.query(
            Expense.expense_category_id,
            ExpenseCategory.name,
            func.count(Expense.id).label("count"),
            func.sum(Expense.amount).label("total")
        ).outerjoin(
            ExpenseCategory, Expense.expense_category_id == ExpenseCategory.id
        ).filter(
            Expense.dive_center_id == dive_center_id
        )

        if start_date:
            query = query.filter(Expense.expense_date >= start_date)
        if end_date:
            query = query.filter(Expense.expense_date <= end_date)

        results = query.group_by(Expense.expense_category_id, ExpenseCategory.name).all()

        lines = []
        total = Decimal("0.00")
        for r in results:
            amount = Decimal(str(r.total or 0)).quantize(Decimal("0.01"))
            lines.append({
                "category_id": r.expense_category_id,
                "category_name": r.name or "Uncategorized",
                "count": r.count,
                "total": amount
            })
            total += amount

        lines.sort(key=lambda line: line["total"], reverse=True)
        return {
            "start_date": start_date,
            "end_date": end_date,
            "total": total,
            "by_category": lines
        }
