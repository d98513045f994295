"""
Authentication API Routes
"""
from fastapi import APIRouter, Depends, HTTPException, status, Response
from sqlalchemy.orm import Session
from datetime import timedelta
from typing import List
import logging

from divecenter.core.database import get_db
from divecenter.core.security import ACCESS_TOKEN_COOKIE, create_access_token, get_current_user, get_current_active_user, RoleChecker
from divecenter.core.config import settings
from divecenter.schemas import LoginRequest, SignupRequest, Token, UserCreate, UserUpdate, UserResponse, MessageResponse
from divecenter.services.user_service import UserService
from divecenter.services.dive_center_service import DiveCenterService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _issue_token(user, response: Response) -> str:
    expires = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    access_token = create_access_token(
        data={"sub": user.email, "dive_center_id": user.dive_center_id},
        expires_delta=expires
    )
    response.set_cookie(
        key=ACCESS_TOKEN_COOKIE,
        value=access_token,
        httponly=True,
        max_age=int(expires.total_seconds()),
        samesite="lax",
        secure=settings.is_production
    )
    return access_token


@router.post("/signup", status_code=status.HTTP_201_CREATED)
async def signup(
    signup_data: SignupRequest,
    response: Response,
    db: Session = Depends(get_db)
):
    """Register a new dive center and its admin user"""
    user_service = UserService(db)

    if user_service.get_by_email(signup_data.email):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )

    dive_center = DiveCenterService(db).create(signup_data.dive_center_name, email=signup_data.email)
    user = user_service.create(
        {
            "full_name": signup_data.full_name,
            "email": signup_data.email,
            "password": signup_data.password,
            "role": "Admin",
        },
        dive_center.id
    )
    db.commit()
    logger.info(f"Dive center '{dive_center.name}' registered by {user.email}")

    return {
        "access_token": _issue_token(user, response),
        "token_type": "bearer",
        "user": UserResponse.model_validate(user)
    }


@router.post("/login", response_model=Token)
async def login(
    login_data: LoginRequest,
    response: Response,
    db: Session = Depends(get_db)
):
    """Login and get access token"""
    user = UserService(db).authenticate(login_data.email, login_data.password)

    if not user:
        logger.warning(f"Failed login attempt for '{login_data.email}'")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password"
        )

    if not user.active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is disabled"
        )

    db.commit()
    return {"access_token": _issue_token(user, response), "token_type": "bearer"}


@router.post("/logout", response_model=MessageResponse)
async def logout(response: Response, current_user=Depends(get_current_user)):
    """Clear the session cookie"""
    response.delete_cookie(ACCESS_TOKEN_COOKIE)
    return {"message": "Logged out"}


@router.get("/me", response_model=UserResponse)
async def me(current_user=Depends(get_current_active_user)):
    return current_user


@router.get("/users", response_model=List[UserResponse])
async def list_users(
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    """List staff of the current dive center"""
    return UserService(db).get_by_dive_center(current_user.dive_center_id)


@router.post("/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(RoleChecker(["Admin"]))])
async def create_user(
    user_data: UserCreate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    """Add a staff member (instructor, dive master, agent...)"""
    try:
        user = UserService(db).create(user_data.model_dump(), current_user.dive_center_id)
        db.commit()
        return user
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.put("/users/{user_id}", response_model=UserResponse, dependencies=[Depends(RoleChecker(["Admin"]))])
async def update_user(
    user_id: int,
    user_data: UserUpdate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    user = UserService(db).update(user_id, user_data, current_user.dive_center_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    db.commit()
    return user
