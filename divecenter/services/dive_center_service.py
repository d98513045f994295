"""
Dive Center Service - Tenant profile and billing settings
"""
from decimal import Decimal
from typing import Optional
from sqlalchemy.orm import Session
import logging

from divecenter.models import DiveCenter
from divecenter.core.config import settings as app_settings
from divecenter.services.pricing_service import TaxService

logger = logging.getLogger(__name__)


class DiveCenterService:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, dive_center_id: int) -> Optional[DiveCenter]:
        return self.db.get(DiveCenter, dive_center_id)

    def create(self, name: str, email: str = None) -> DiveCenter:
        dive_center = DiveCenter(
            name=name,
            email=email,
            currency=app_settings.DEFAULT_CURRENCY,
            settings={"tax_calculation_mode": app_settings.DEFAULT_TAX_CALCULATION_MODE},
        )
        self.db.add(dive_center)
        self.db.flush()
        return dive_center

    def update(self, dive_center_id: int, update_data) -> Optional[DiveCenter]:
        dive_center = self.get_by_id(dive_center_id)
        if not dive_center:
            return None

        data = update_data.model_dump(exclude_unset=True)
        new_settings = data.pop("settings", None)

        for key, value in data.items():
            setattr(dive_center, key, value)

        if new_settings:
            # Reassign so the JSON column registers the change
            merged = dict(dive_center.settings or {})
            merged.update(new_settings)
            dive_center.settings = merged
            logger.info(f"Dive center {dive_center_id} settings updated: {sorted(new_settings)}")

        self.db.flush()
        return dive_center

    def get_tax_calculation_mode(self, dive_center_id: int) -> str:
        """Read through to the stored settings on every call"""
        dive_center = self.get_by_id(dive_center_id)
        if dive_center is None:
            return "exclusive"
        return dive_center.tax_calculation_mode

    def get_charge_percentages(self, dive_center_id: int) -> tuple:
        """
        (service_charge_percentage, tax_percentage), both defaulting to 0.

        A setting that is missing or not positive falls back to the
        'Service Charge' and 'T-GST' entries of the tax table.
        """
        dive_center = self.get_by_id(dive_center_id)
        stored = (dive_center.settings or {}) if dive_center else {}
        service_charge = Decimal(str(stored.get("service_charge_percentage") or 0))
        tax = Decimal(str(stored.get("tax_percentage") or 0))

        taxes = TaxService(self.db)
        if service_charge <= 0:
            service_charge = taxes.service_charge_percentage(dive_center_id) or Decimal("0")
        if tax <= 0:
            tax = taxes.tgst_percentage(dive_center_id) or Decimal("0")
        return service_charge, tax
