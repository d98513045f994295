"""
User Service - Business Logic for User Operations
"""
from datetime import datetime
from typing import Optional, List
from sqlalchemy.orm import Session, joinedload

from divecenter.models import User
from divecenter.core.security import get_password_hash, verify_password


class UserService:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, user_id: int, dive_center_id: int = None) -> Optional[User]:
        query = self.db.query(User).filter(User.id == user_id)
        if dive_center_id:
            query = query.filter(User.dive_center_id == dive_center_id)
        return query.first()

    def get_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email.lower()).first()

    def get_user_with_relations(self, email: str) -> Optional[User]:
        return self.db.query(User)\
            .options(joinedload(User.dive_center))\
            .filter(User.email == email.lower())\
            .first()

    def get_by_dive_center(self, dive_center_id: int) -> List[User]:
        return self.db.query(User)\
            .filter(User.dive_center_id == dive_center_id)\
            .order_by(User.full_name)\
            .all()

    def create(self, user_data: dict, dive_center_id: int) -> User:
        if self.get_by_email(user_data["email"]):
            raise ValueError("Email already registered")

        user = User(
            full_name=user_data["full_name"],
            email=user_data["email"].lower(),
            phone=user_data.get("phone"),
            role=user_data.get("role", "Admin"),
            hashed_password=get_password_hash(user_data["password"]),
            dive_center_id=dive_center_id,
        )
        self.db.add(user)
        self.db.flush()
        return user

    def update(self, user_id: int, user_data, dive_center_id: int) -> Optional[User]:
        user = self.get_by_id(user_id, dive_center_id)
        if not user:
            return None

        for key, value in user_data.model_dump(exclude_unset=True).items():
            setattr(user, key, value)

        self.db.flush()
        return user

    def authenticate(self, email: str, password: str) -> Optional[User]:
        user = self.get_user_with_relations(email)
        if not user or not verify_password(password, user.hashed_password):
            return None
        user.last_login = datetime.utcnow()
        return user
