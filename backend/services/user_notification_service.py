"""
Service de notifications utilisateur
Système de cloche pour informer les utilisateurs (alertes de connexion, baux...)
"""
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import desc, func
from typing import Dict, Any, Optional
from datetime import datetime
import logging

from models import Notification
from enums import NotificationType
from error_handlers import NotFoundError

logger = logging.getLogger(__name__)


class UserNotificationService:
    """
    Service de gestion des notifications utilisateur
    """

    @staticmethod
    def create_notification(
        db: Session,
        user_id: int,
        title: str,
        message: str,
        notification_type: NotificationType = NotificationType.SYSTEM
    ) -> Notification:
        """
        Crée une nouvelle notification pour un utilisateur
        """
        notification = Notification(
            user_id=user_id,
            type=notification_type,
            title=title,
            message=message
        )

        db.add(notification)
        db.commit()
        db.refresh(notification)

        return notification

    @staticmethod
    def try_create_notification(
        db: Session,
        user_id: int,
        title: str,
        message: str,
        notification_type: NotificationType = NotificationType.SYSTEM
    ) -> Optional[Notification]:
        """Variante sans échec pour les canaux secondaires"""
        try:
            return UserNotificationService.create_notification(
                db, user_id, title, message, notification_type
            )
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Erreur lors de la création de la notification pour user %s", user_id)
            return None

    @staticmethod
    def get_user_notifications(
        db: Session,
        user_id: int,
        unread_only: bool = False,
        limit: int = 50,
        offset: int = 0
    ) -> Dict[str, Any]:
        """
        Récupère les notifications d'un utilisateur
        """
        query = db.query(Notification).filter(Notification.user_id == user_id)

        if unread_only:
            query = query.filter(Notification.is_read == False)  # noqa: E712

        total_count = query.count()

        notifications = query.order_by(
            desc(Notification.created_at), desc(Notification.id)
        ).offset(offset).limit(limit).all()

        unread_count = db.query(func.count(Notification.id)).filter(
            Notification.user_id == user_id,
            Notification.is_read == False  # noqa: E712
        ).scalar()

        return {
            "notifications": notifications,
            "total_count": total_count,
            "unread_count": unread_count
        }

    @staticmethod
    def mark_as_read(db: Session, notification_id: int, user_id: int) -> Notification:
        notification = db.query(Notification).filter(
            Notification.id == notification_id,
            Notification.user_id == user_id
        ).first()

        if not notification:
            raise NotFoundError.for_resource("Notification", notification_id)

        if not notification.is_read:
            notification.is_read = True
            notification.read_at = datetime.utcnow()
            db.commit()
            db.refresh(notification)

        return notification
