"""
Dive Center Settings API Routes
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from divecenter.core.database import get_db
from divecenter.core.security import get_current_active_user, RoleChecker
from divecenter.schemas import DiveCenterUpdate, DiveCenterResponse
from divecenter.services.dive_center_service import DiveCenterService

router = APIRouter(prefix="/dive-center", tags=["Dive Center"])


@router.get("", response_model=DiveCenterResponse)
async def get_dive_center(
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    """Profile and billing settings of the current dive center"""
    dive_center = DiveCenterService(db).get_by_id(current_user.dive_center_id)
    if not dive_center:
        raise HTTPException(status_code=404, detail="Dive center not found")
    return dive_center


@router.put("", response_model=DiveCenterResponse, dependencies=[Depends(RoleChecker(["Admin"]))])
async def update_dive_center(
    update_data: DiveCenterUpdate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    """Update the profile; settings keys are merged into the stored ones"""
    dive_center = DiveCenterService(db).update(current_user.dive_center_id, update_data)
    if not dive_center:
        raise HTTPException(status_code=404, detail="Dive center not found")
    db.commit()
    return dive_center
