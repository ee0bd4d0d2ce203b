"""
Routes API pour les utilisateurs
Profil, administration, tableau de bord sécurité et notifications
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from database import get_db
from auth import AuthContext, ClientInfo, get_current_user, get_client_info, require_admin
from enums import UserRole, ActivityStatus
from constants import (
    SUCCESS_MESSAGES, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE,
    SECURITY_DASHBOARD_LIMIT, LOG_STATS_DEFAULT_DAYS
)
from services.user_service import UserService
from services.monitoring_service import MonitoringService
from services.user_notification_service import UserNotificationService
import schemas

router = APIRouter(prefix="/users", tags=["users"])


# ==================== PROFIL ====================
# Les chemins fixes sont déclarés avant /{user_id}

@router.get("/profile", response_model=schemas.UserOut)
def get_profile(
    current_user: AuthContext = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return UserService.get_user_or_404(db, current_user.user_id)


@router.patch("/profile", response_model=schemas.UserOut)
def update_profile(
    data: schemas.ProfileUpdate,
    current_user: AuthContext = Depends(get_current_user),
    client: ClientInfo = Depends(get_client_info),
    db: Session = Depends(get_db)
):
    return UserService.update_profile(db, current_user, data, client)


# ==================== TABLEAU DE BORD SÉCURITÉ (ADMIN) ====================

@router.get("/logs", response_model=schemas.ActivityLogPage)
def get_activity_logs(
    page: int = Query(1, ge=1),
    limit: int = Query(SECURITY_DASHBOARD_LIMIT, ge=1, le=MAX_PAGE_SIZE),
    action: Optional[str] = None,
    status: Optional[ActivityStatus] = None,
    user_id: Optional[int] = None,
    _: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Journal d'activité paginé, du plus récent au plus ancien"""
    return MonitoringService.get_activity_logs(db, page, limit, action, status, user_id)


@router.get("/logs/stats", response_model=schemas.LogStatsOut)
def get_log_stats(
    days: int = Query(LOG_STATS_DEFAULT_DAYS, ge=1, le=365),
    _: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db)
):
    return MonitoringService.get_log_stats(db, days)


@router.get("/security-alerts", response_model=List[schemas.SecurityAlertOut])
def get_security_alerts(
    _: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db)
):
    return MonitoringService.get_security_alerts(db)


# ==================== NOTIFICATIONS ====================

@router.get("/notifications", response_model=schemas.NotificationListOut)
def get_notifications(
    unread_only: bool = False,
    limit: int = Query(50, ge=1, le=MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    current_user: AuthContext = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return UserNotificationService.get_user_notifications(
        db, current_user.user_id, unread_only=unread_only, limit=limit, offset=offset
    )


@router.post("/notifications/{notification_id}/read", response_model=schemas.NotificationOut)
def mark_notification_read(
    notification_id: int,
    current_user: AuthContext = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return UserNotificationService.mark_as_read(db, notification_id, current_user.user_id)


# ==================== ADMINISTRATION ====================

@router.get("", response_model=schemas.UserListResponse)
def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    role: Optional[UserRole] = None,
    _: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db)
):
    return UserService.list_users(db, page, limit, role)


@router.post("", response_model=schemas.UserOut, status_code=201)
def create_user(
    data: schemas.UserCreateAdmin,
    admin: AuthContext = Depends(require_admin),
    client: ClientInfo = Depends(get_client_info),
    db: Session = Depends(get_db)
):
    return UserService.create_user(db, data, admin, client)


@router.get("/{user_id}", response_model=schemas.UserOut)
def get_user(
    user_id: int,
    current_user: AuthContext = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Accessible à l'utilisateur lui-même ou à un administrateur"""
    return UserService.get_user(db, user_id, current_user)


@router.patch("/{user_id}", response_model=schemas.UserOut)
def update_user(
    user_id: int,
    data: schemas.UserAdminUpdate,
    current_user: AuthContext = Depends(get_current_user),
    client: ClientInfo = Depends(get_client_info),
    db: Session = Depends(get_db)
):
    return UserService.update_user(db, user_id, data, current_user, client)


@router.delete("/{user_id}", response_model=schemas.MessageResponse)
def delete_user(
    user_id: int,
    admin: AuthContext = Depends(require_admin),
    client: ClientInfo = Depends(get_client_info),
    db: Session = Depends(get_db)
):
    UserService.delete_user(db, user_id, admin, client)
    return {"success": True, "message": SUCCESS_MESSAGES["USER_DELETED"]}
