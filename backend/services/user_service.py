"""
Service de gestion des utilisateurs
Profil, administration des comptes et liaison des fournisseurs OAuth
"""
from typing import Dict, Any, Optional
from sqlalchemy.orm import Session
from sqlalchemy import desc
import logging

from models import User
from enums import UserRole
from constants import (
    ERROR_MESSAGES, OAUTH_LINKABLE_PROVIDERS, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
)
from error_handlers import (
    NotFoundError, AccessDeniedError, AlreadyExistsError, ValidationFailedError
)
from auth import AuthContext, ClientInfo, get_password_hash
from services.monitoring_service import MonitoringService
import schemas

logger = logging.getLogger(__name__)

ADMIN_ONLY_FIELDS = ("role", "is_active")


def _full_name(user: User) -> str:
    return " ".join(part for part in (user.first_name, user.last_name) if part)


class UserService:

    @staticmethod
    def get_user_or_404(db: Session, user_id: int) -> User:
        user = db.query(User).filter(User.id == user_id).first()
        if user is None:
            raise NotFoundError(ERROR_MESSAGES["USER_NOT_FOUND"], {"user_id": user_id})
        return user

    # ==================== PROFIL ====================

    @staticmethod
    def update_profile(
        db: Session,
        current_user: AuthContext,
        data: schemas.ProfileUpdate,
        client: Optional[ClientInfo] = None
    ) -> User:
        user = UserService.get_user_or_404(db, current_user.user_id)
        changes = data.model_dump(exclude_unset=True)

        for field, value in changes.items():
            setattr(user, field, value)
        if "first_name" in changes or "last_name" in changes:
            user.name = _full_name(user)

        db.commit()
        db.refresh(user)

        MonitoringService.log_activity(
            db, "UPDATE_PROFILE_SUCCESS",
            user_id=user.id,
            ip_address=client.ip_address if client else None,
            user_agent=client.user_agent if client else None,
            details={"fields": sorted(changes.keys())}
        )
        return user

    # ==================== ADMINISTRATION ====================

    @staticmethod
    def list_users(
        db: Session,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
        role: Optional[UserRole] = None
    ) -> Dict[str, Any]:
        page = max(page, 1)
        limit = min(max(limit, 1), MAX_PAGE_SIZE)

        query = db.query(User)
        if role:
            query = query.filter(User.role == role)

        total = query.count()
        users = query.order_by(desc(User.created_at), desc(User.id)).offset(
            (page - 1) * limit
        ).limit(limit).all()

        return {
            "users": users,
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "pages": (total + limit - 1) // limit
            }
        }

    @staticmethod
    def create_user(
        db: Session,
        data: schemas.UserCreateAdmin,
        admin: AuthContext,
        client: Optional[ClientInfo] = None
    ) -> User:
        email = data.email.lower()
        if db.query(User).filter(User.email == email).first():
            raise AlreadyExistsError(ERROR_MESSAGES["EMAIL_ALREADY_EXISTS"])

        user = User(
            email=email,
            hashed_password=get_password_hash(data.password),
            first_name=data.first_name,
            last_name=data.last_name,
            name=f"{data.first_name} {data.last_name}".strip(),
            date_of_birth=data.date_of_birth,
            phone=data.phone,
            role=data.role,
            is_active=True
        )
        db.add(user)
        db.commit()
        db.refresh(user)

        MonitoringService.log_activity(
            db, "CREATE_USER_SUCCESS",
            user_id=admin.user_id,
            ip_address=client.ip_address if client else None,
            user_agent=client.user_agent if client else None,
            details={"created_user_id": user.id, "role": user.role.value}
        )
        return user

    @staticmethod
    def get_user(db: Session, user_id: int, current_user: AuthContext) -> User:
        if not current_user.is_admin and current_user.user_id != user_id:
            raise AccessDeniedError()
        return UserService.get_user_or_404(db, user_id)

    @staticmethod
    def update_user(
        db: Session,
        user_id: int,
        data: schemas.UserAdminUpdate,
        current_user: AuthContext,
        client: Optional[ClientInfo] = None
    ) -> User:
        """
        Mise à jour par l'utilisateur lui-même ou par un administrateur
        Seul un administrateur peut modifier le rôle ou l'activation
        """
        if not current_user.is_admin and current_user.user_id != user_id:
            raise AccessDeniedError()

        changes = data.model_dump(exclude_unset=True)
        if not current_user.is_admin and any(f in changes for f in ADMIN_ONLY_FIELDS):
            raise AccessDeniedError(ERROR_MESSAGES["INSUFFICIENT_PERMISSIONS"])

        user = UserService.get_user_or_404(db, user_id)
        for field, value in changes.items():
            setattr(user, field, value)
        if "first_name" in changes or "last_name" in changes:
            user.name = _full_name(user)

        db.commit()
        db.refresh(user)

        MonitoringService.log_activity(
            db, "UPDATE_USER_SUCCESS",
            user_id=current_user.user_id,
            ip_address=client.ip_address if client else None,
            user_agent=client.user_agent if client else None,
            details={"target_user_id": user.id, "fields": sorted(changes.keys())}
        )
        return user

    @staticmethod
    def delete_user(
        db: Session,
        user_id: int,
        admin: AuthContext,
        client: Optional[ClientInfo] = None
    ) -> None:
        if admin.user_id == user_id:
            raise ValidationFailedError(ERROR_MESSAGES["CANNOT_DELETE_SELF"])

        user = UserService.get_user_or_404(db, user_id)
        email = user.email
        db.delete(user)
        db.commit()
        logger.info("Utilisateur %s supprimé par l'admin %s", email, admin.user_id)

        MonitoringService.log_activity(
            db, "DELETE_USER_SUCCESS",
            user_id=admin.user_id,
            ip_address=client.ip_address if client else None,
            user_agent=client.user_agent if client else None,
            details={"deleted_user_id": user_id, "email": email}
        )

    # ==================== LIAISON OAUTH ====================

    @staticmethod
    def _provider_column(provider: str) -> str:
        provider = (provider or "").lower()
        if provider not in OAUTH_LINKABLE_PROVIDERS:
            raise ValidationFailedError(ERROR_MESSAGES["OAUTH_INVALID_PROVIDER"], {"provider": provider})
        return f"{provider}_id"

    @staticmethod
    def link_oauth(
        db: Session,
        current_user: AuthContext,
        provider: str,
        provider_id: str,
        client: Optional[ClientInfo] = None
    ) -> User:
        column = UserService._provider_column(provider)
        provider = provider.lower()

        owner = db.query(User).filter(getattr(User, column) == provider_id).first()
        if owner is not None and owner.id != current_user.user_id:
            raise AlreadyExistsError(ERROR_MESSAGES["OAUTH_ALREADY_LINKED"].format(provider=provider))

        user = UserService.get_user_or_404(db, current_user.user_id)
        setattr(user, column, provider_id)
        db.commit()
        db.refresh(user)

        MonitoringService.log_activity(
            db, "OAUTH_LINK_SUCCESS",
            user_id=user.id,
            ip_address=client.ip_address if client else None,
            user_agent=client.user_agent if client else None,
            details={"provider": provider}
        )
        return user

    @staticmethod
    def unlink_oauth(
        db: Session,
        current_user: AuthContext,
        provider: str,
        client: Optional[ClientInfo] = None
    ) -> User:
        column = UserService._provider_column(provider)

        user = UserService.get_user_or_404(db, current_user.user_id)
        setattr(user, column, None)
        db.commit()
        db.refresh(user)

        MonitoringService.log_activity(
            db, "OAUTH_UNLINK_SUCCESS",
            user_id=user.id,
            ip_address=client.ip_address if client else None,
            user_agent=client.user_agent if client else None,
            details={"provider": provider.lower()}
        )
        return user
