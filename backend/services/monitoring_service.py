"""
Service de surveillance de l'activité
Journal d'activité, verrouillage de compte et détection de force brute
"""
from sqlalchemy.orm import Session, joinedload
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import func, desc
from typing import Dict, Any, List, Optional, Tuple
from datetime import datetime, timedelta
import logging

from models import ActivityLog, SecurityAlert
from enums import ActivityAction, ActivityStatus, SecurityAlertType, AlertSeverity
from constants import (
    LOCKOUT_WINDOW_MINUTES, LOCKOUT_MAX_FAILED_ATTEMPTS,
    BRUTE_FORCE_WINDOW_MINUTES, BRUTE_FORCE_MAX_ATTEMPTS,
    ANOMALY_LOOKBACK_DAYS, ANOMALY_HISTORY_SIZE,
    SECURITY_DASHBOARD_LIMIT, LOG_STATS_DEFAULT_DAYS
)
from email_service import EmailService

logger = logging.getLogger(__name__)


class MonitoringService:
    """
    Écritures et lectures du journal d'activité
    Les écritures ne lèvent jamais d'exception vers l'appelant
    """

    @staticmethod
    def split_event(event: str) -> Tuple[str, ActivityStatus]:
        """
        Découpe un nom d'événement composé en (action, statut)
        LOGIN_SUCCESS -> (LOGIN, SUCCESS), LOGIN_FAILED -> (LOGIN, FAILURE),
        tout autre nom -> (nom, INFO)
        """
        if event.endswith("_SUCCESS"):
            return event[:-len("_SUCCESS")], ActivityStatus.SUCCESS
        if event.endswith("_FAILED"):
            return event[:-len("_FAILED")], ActivityStatus.FAILURE
        return event, ActivityStatus.INFO

    @staticmethod
    def log_activity(
        db: Session,
        event: str,
        user_id: Optional[int] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        email_service: Optional[EmailService] = None
    ) -> Optional[ActivityLog]:
        """
        Enregistre un événement puis déclenche les règles de détection
        Retourne l'entrée créée, ou None si l'écriture a échoué
        """
        action, status = MonitoringService.split_event(event)

        log = ActivityLog(
            user_id=user_id,
            action=action,
            status=status,
            ip_address=ip_address,
            user_agent=(user_agent or "Unknown")[:500],
            details=details or {}
        )

        try:
            db.add(log)
            db.commit()
            db.refresh(log)
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Erreur lors de l'enregistrement de l'activité %s", event)
            return None

        logger.debug("Activité enregistrée: %s - %s (user=%s)", action, status.value, user_id)

        if action == ActivityAction.LOGIN.value and status == ActivityStatus.FAILURE:
            MonitoringService.check_brute_force(db, ip_address, user_id, email_service)

        return log

    @staticmethod
    def count_recent_login_failures(
        db: Session,
        user_id: int,
        window_minutes: int = LOCKOUT_WINDOW_MINUTES,
        action: ActivityAction = ActivityAction.LOGIN
    ) -> int:
        """Nombre d'échecs de l'utilisateur pour une action dans la fenêtre glissante"""
        since = datetime.utcnow() - timedelta(minutes=window_minutes)
        return db.query(func.count(ActivityLog.id)).filter(
            ActivityLog.user_id == user_id,
            ActivityLog.action == action.value,
            ActivityLog.status == ActivityStatus.FAILURE,
            ActivityLog.created_at >= since
        ).scalar() or 0

    @staticmethod
    def is_account_locked(db: Session, user_id: int) -> bool:
        # Lecture puis action sans isolation : quelques tentatives de plus sont tolérées
        failed_logins = MonitoringService.count_recent_login_failures(db, user_id)
        if failed_logins >= LOCKOUT_MAX_FAILED_ATTEMPTS:
            logger.warning("Compte verrouillé: user %s a %s échecs récents", user_id, failed_logins)
            return True
        return False

    @staticmethod
    def is_mfa_locked(db: Session, user_id: int) -> bool:
        """Second facteur bloqué après trop de codes faux dans la fenêtre"""
        failed_codes = MonitoringService.count_recent_login_failures(
            db, user_id, action=ActivityAction.MFA_LOGIN
        )
        if failed_codes >= LOCKOUT_MAX_FAILED_ATTEMPTS:
            logger.warning("Second facteur verrouillé: user %s a %s codes faux récents", user_id, failed_codes)
            return True
        return False

    @staticmethod
    def check_brute_force(
        db: Session,
        ip_address: Optional[str],
        user_id: Optional[int],
        email_service: Optional[EmailService] = None
    ) -> Optional[SecurityAlert]:
        """
        Crée une alerte si une IP cumule trop d'échecs de connexion récents
        """
        if not ip_address:
            return None

        since = datetime.utcnow() - timedelta(minutes=BRUTE_FORCE_WINDOW_MINUTES)
        try:
            failed_attempts = db.query(func.count(ActivityLog.id)).filter(
                ActivityLog.ip_address == ip_address,
                ActivityLog.action == ActivityAction.LOGIN.value,
                ActivityLog.status == ActivityStatus.FAILURE,
                ActivityLog.created_at >= since
            ).scalar() or 0
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Erreur lors de la détection de force brute")
            return None

        if failed_attempts < BRUTE_FORCE_MAX_ATTEMPTS:
            return None

        return MonitoringService.create_alert(
            db,
            user_id=user_id,
            alert_type=SecurityAlertType.BRUTE_FORCE_ATTACK,
            severity=AlertSeverity.HIGH,
            message=(
                f"Nombre élevé d'échecs de connexion ({failed_attempts}) "
                f"détecté depuis l'IP : {ip_address}"
            ),
            email_service=email_service
        )

    @staticmethod
    def create_alert(
        db: Session,
        user_id: Optional[int],
        alert_type: SecurityAlertType,
        severity: AlertSeverity,
        message: str,
        email_service: Optional[EmailService] = None
    ) -> Optional[SecurityAlert]:
        logger.warning("ALERTE SÉCURITÉ [%s]: %s", severity.value, message)

        alert = SecurityAlert(user_id=user_id, type=alert_type, severity=severity, message=message)
        try:
            db.add(alert)
            db.commit()
            db.refresh(alert)
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Erreur lors de la création de l'alerte")
            return None

        if email_service is not None:
            email_service.send_security_alert(alert_type.value, message)

        return alert

    @staticmethod
    def get_recent_successful_logins(
        db: Session,
        user_id: int,
        exclude_log_id: Optional[int] = None,
        days: int = ANOMALY_LOOKBACK_DAYS,
        limit: int = ANOMALY_HISTORY_SIZE
    ) -> List[ActivityLog]:
        """Dernières connexions réussies (hors entrée courante) sur la période"""
        since = datetime.utcnow() - timedelta(days=days)
        query = db.query(ActivityLog).filter(
            ActivityLog.user_id == user_id,
            ActivityLog.action == ActivityAction.LOGIN.value,
            ActivityLog.status == ActivityStatus.SUCCESS,
            ActivityLog.created_at >= since
        )
        if exclude_log_id is not None:
            query = query.filter(ActivityLog.id != exclude_log_id)

        return query.order_by(desc(ActivityLog.created_at), desc(ActivityLog.id)).limit(limit).all()

    # ==================== TABLEAU DE BORD SÉCURITÉ ====================

    @staticmethod
    def get_activity_logs(
        db: Session,
        page: int = 1,
        limit: int = SECURITY_DASHBOARD_LIMIT,
        action: Optional[str] = None,
        status: Optional[ActivityStatus] = None,
        user_id: Optional[int] = None
    ) -> Dict[str, Any]:
        query = db.query(ActivityLog)

        if action:
            query = query.filter(ActivityLog.action == action)
        if status:
            query = query.filter(ActivityLog.status == status)
        if user_id:
            query = query.filter(ActivityLog.user_id == user_id)

        total = query.count()
        logs = query.options(joinedload(ActivityLog.user)).order_by(
            desc(ActivityLog.created_at), desc(ActivityLog.id)
        ).offset((page - 1) * limit).limit(limit).all()

        return {
            "logs": logs,
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "pages": (total + limit - 1) // limit if limit else 0
            }
        }

    @staticmethod
    def get_log_stats(db: Session, days: int = LOG_STATS_DEFAULT_DAYS) -> Dict[str, Any]:
        """Comptage SUCCESS / FAILURE par action sur la période (graphique du tableau de bord)"""
        since = datetime.utcnow() - timedelta(days=days)
        rows = db.query(
            ActivityLog.action, ActivityLog.status, func.count(ActivityLog.id)
        ).filter(
            ActivityLog.created_at >= since
        ).group_by(ActivityLog.action, ActivityLog.status).all()

        by_action: Dict[str, Dict[str, int]] = {}
        totals = {s.value: 0 for s in ActivityStatus}
        for action, status, count in rows:
            status_value = status.value if isinstance(status, ActivityStatus) else str(status)
            by_action.setdefault(action, {s.value: 0 for s in ActivityStatus})[status_value] = count
            totals[status_value] += count

        return {
            "period_days": days,
            "success": totals[ActivityStatus.SUCCESS.value],
            "failed": totals[ActivityStatus.FAILURE.value],
            "info": totals[ActivityStatus.INFO.value],
            "by_action": by_action
        }

    @staticmethod
    def get_security_alerts(db: Session, limit: int = SECURITY_DASHBOARD_LIMIT) -> List[SecurityAlert]:
        return db.query(SecurityAlert).options(joinedload(SecurityAlert.user)).order_by(
            desc(SecurityAlert.created_at), desc(SecurityAlert.id)
        ).limit(limit).all()
