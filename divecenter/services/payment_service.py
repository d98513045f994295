"""
Payment Service - Invoice payments and configured payment methods
"""
from datetime import date
from decimal import Decimal
from typing import Optional, List
from sqlalchemy.orm import Session
import logging

from divecenter.models import Payment, PaymentMethod, Invoice, PaymentType
from divecenter.services.invoice_service import InvoiceService, apply_payment_status

logger = logging.getLogger(__name__)


def _details_to_json(details) -> tuple:
    """Split a tagged method-details model into (method_type, metadata dict)"""
    data = details.model_dump(exclude_none=True)
    method_type = data.pop("method_type")
    return method_type, data or None


class PaymentMethodService:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, method_id: int, dive_center_id: int) -> Optional[PaymentMethod]:
        return self.db.query(PaymentMethod).filter(
            PaymentMethod.id == method_id,
            PaymentMethod.dive_center_id == dive_center_id
        ).first()

    def get_by_dive_center(self, dive_center_id: int, active_only: bool = False) -> List[PaymentMethod]:
        query = self.db.query(PaymentMethod).filter(PaymentMethod.dive_center_id == dive_center_id)
        if active_only:
            query = query.filter(PaymentMethod.is_active.is_(True))
        return query.order_by(PaymentMethod.name).all()

    def create(self, data, dive_center_id: int) -> PaymentMethod:
        method = PaymentMethod(**data.model_dump(), dive_center_id=dive_center_id)
        self.db.add(method)
        self.db.flush()
        return method

    def update(self, method_id: int, data, dive_center_id: int) -> Optional[PaymentMethod]:
        method = self.get_by_id(method_id, dive_center_id)
        if not method:
            return None
        for key, value in data.model_dump(exclude_unset=True).items():
            setattr(method, key, value)
        self.db.flush()
        return method

    def delete(self, method_id: int, dive_center_id: int) -> bool:
        method = self.get_by_id(method_id, dive_center_id)
        if not method:
            return False
        if method.payments:
            raise ValueError("Cannot delete a payment method that has payments; deactivate it instead")
        self.db.delete(method)
        self.db.flush()
        return True


class PaymentService:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, payment_id: int, dive_center_id: int) -> Optional[Payment]:
        return self.db.query(Payment)\
            .join(Invoice, Payment.invoice_id == Invoice.id)\
            .filter(Payment.id == payment_id, Invoice.dive_center_id == dive_center_id)\
            .first()

    def query_by_dive_center(self, dive_center_id: int, invoice_id: int = None, payment_type: str = None,
                             start_date: date = None, end_date: date = None):
        query = self.db.query(Payment)\
            .join(Invoice, Payment.invoice_id == Invoice.id)\
            .filter(Invoice.dive_center_id == dive_center_id)
        if invoice_id:
            query = query.filter(Payment.invoice_id == invoice_id)
        if payment_type:
            query = query.filter(Payment.payment_type == payment_type)
        if start_date:
            query = query.filter(Payment.payment_date >= start_date)
        if end_date:
            query = query.filter(Payment.payment_date <= end_date)
        return query.order_by(Payment.payment_date.desc(), Payment.id.desc())

    def _resolve_method(self, method_id: Optional[int], method_type: str, dive_center_id: int):
        if not method_id:
            return None
        method = PaymentMethodService(self.db).get_by_id(method_id, dive_center_id)
        if not method:
            raise ValueError("Payment method not found")
        if not method.is_active:
            raise ValueError(f"Payment method '{method.name}' is inactive")
        if method.method_type != method_type:
            raise ValueError(
                f"Payment method '{method.name}' is {method.method_type}, not {method_type}"
            )
        return method

    def create(self, payment_data, dive_center_id: int) -> Payment:
        """
        Record a payment. Regular payments cannot exceed the remaining
        balance; refunds are stored as negative amounts and cannot exceed
        what has been paid.
        """
        invoice = InvoiceService(self.db).get_by_id(payment_data.invoice_id, dive_center_id)
        if not invoice:
            raise ValueError("Invoice not found")

        method_type, details = _details_to_json(payment_data.method_details)
        method = self._resolve_method(payment_data.payment_method_id, method_type, dive_center_id)

        amount = payment_data.amount.quantize(Decimal("0.01"))
        if payment_data.payment_type == PaymentType.REFUND.value:
            if amount > invoice.total_paid:
                raise ValueError(
                    f"Refund of {amount} exceeds the amount paid ({invoice.total_paid})"
                )
            amount = -amount
        elif amount > invoice.remaining_balance:
            raise ValueError(
                f"Payment of {amount} exceeds the remaining balance ({invoice.remaining_balance})"
            )

        payment = Payment(
            payment_method_id=method.id if method else None,
            amount=amount,
            payment_type=payment_data.payment_type,
            payment_date=payment_data.payment_date or date.today(),
            method_type=method_type,
            method_details=details,
            reference=payment_data.reference,
        )
        invoice.payments.append(payment)
        apply_payment_status(invoice)

        self.db.flush()
        logger.info(f"Payment {payment.id} of {amount} recorded on invoice {invoice.invoice_no} "
                    f"({invoice.status})")
        return payment

    def update(self, payment_id: int, payment_data, dive_center_id: int) -> Optional[Payment]:
        payment = self.get_by_id(payment_id, dive_center_id)
        if not payment:
            return None

        invoice = payment.invoice
        changes = payment_data.model_dump(exclude_unset=True)

        if payment_data.method_details is not None:
            method_type, details = _details_to_json(payment_data.method_details)
            self._resolve_method(payment.payment_method_id, method_type, dive_center_id)
            payment.method_type = method_type
            payment.method_details = details
        changes.pop("method_details", None)

        if "amount" in changes:
            amount = changes.pop("amount").quantize(Decimal("0.01"))
            others = invoice.total_paid - payment.amount
            if payment.payment_type == PaymentType.REFUND.value:
                if amount > others:
                    raise ValueError(f"Refund of {amount} exceeds the amount paid ({others})")
                amount = -amount
            elif others + amount > invoice.total:
                raise ValueError(
                    f"Payment of {amount} exceeds the remaining balance ({invoice.total - others})"
                )
            payment.amount = amount

        for key, value in changes.items():
            setattr(payment, key, value)

        apply_payment_status(invoice)
        self.db.flush()
        return payment

    def delete(self, payment_id: int, dive_center_id: int) -> bool:
        payment = self.get_by_id(payment_id, dive_center_id)
        if not payment:
            return False

        invoice = payment.invoice
        invoice.payments.remove(payment)
        apply_payment_status(invoice)
        self.db.flush()
        logger.info(f"Payment {payment_id} removed from invoice {invoice.invoice_no}")
        return True
