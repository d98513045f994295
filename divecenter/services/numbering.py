"""
Document numbering shared by baskets, invoices and expenses
"""
from datetime import date
from sqlalchemy.orm import Session


def next_document_number(db: Session, model, column_name: str, prefix: str, dive_center_id: int) -> str:
    """Next PREFIX-YYYY-NNN number, restarting at 001 each year"""
    year_prefix = f"{prefix}-{date.today().year}-"
    column = getattr(model, column_name)

    numbers = db.query(column).filter(
        model.dive_center_id == dive_center_id,
        column.like(f"{year_prefix}%")
    ).all()

    last = 0
    for (value,) in numbers:
        try:
            last = max(last, int(value[len(year_prefix):]))
        except (TypeError, ValueError):
            continue

    return f"{year_prefix}{last + 1:03d}"
