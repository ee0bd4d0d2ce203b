"""
Service d'authentification
Inscription, connexion par mot de passe (verrouillage, alerte nouvel appareil) et second facteur
"""
from dataclasses import dataclass
from typing import Optional, Dict, Any
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
import logging

from models import User
from enums import UserRole, NotificationType
from constants import ERROR_MESSAGES, NEW_SIGNIN_NOTIFICATION_TITLE
from error_handlers import (
    AlreadyExistsError, InvalidCredentialsError, AccountLockedError, ValidationFailedError
)
from auth import ClientInfo, create_access_token, get_password_hash, verify_password
from settings import Settings
from email_service import EmailService
from services.monitoring_service import MonitoringService
from services.user_notification_service import UserNotificationService
from services.mfa_service import MFAService
import schemas

logger = logging.getLogger(__name__)


@dataclass
class LoginResult:
    """Issue d'une connexion : un token, ou une demande de code MFA"""
    user: User
    access_token: Optional[str] = None
    mfa_required: bool = False


class AuthService:

    @staticmethod
    def register(
        db: Session,
        data: schemas.UserRegister,
        client: ClientInfo,
        settings: Settings,
        role: UserRole = UserRole.USER
    ) -> LoginResult:
        """
        Crée un compte par email / mot de passe et retourne directement un token
        """
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
            role=role,
            is_active=True
        )
        db.add(user)
        db.commit()
        db.refresh(user)

        MonitoringService.log_activity(
            db, "REGISTER_SUCCESS",
            user_id=user.id,
            ip_address=client.ip_address,
            user_agent=client.user_agent,
            details={"email": user.email}
        )
        logger.info("Nouvel utilisateur inscrit: %s", user.email)

        return LoginResult(user=user, access_token=create_access_token(user, settings))

    @staticmethod
    def authenticate(
        db: Session,
        email: str,
        password: str,
        client: ClientInfo,
        settings: Settings,
        email_service: Optional[EmailService] = None
    ) -> LoginResult:
        """
        Vérifie les identifiants dans l'ordre : compte, verrouillage, mot de passe
        Une seule entrée de journal par tentative
        """
        user = db.query(User).filter(User.email == email.strip().lower()).first()
        if user is None or not user.is_active:
            # Même réponse qu'un mauvais mot de passe
            raise InvalidCredentialsError()

        if MonitoringService.is_account_locked(db, user.id):
            MonitoringService.log_activity(
                db, "LOGIN_BLOCKED",
                user_id=user.id,
                ip_address=client.ip_address,
                user_agent=client.user_agent,
                details={"reason": "account_locked"}
            )
            raise AccountLockedError()

        if not verify_password(password, user.hashed_password):
            MonitoringService.log_activity(
                db, "LOGIN_FAILED",
                user_id=user.id,
                ip_address=client.ip_address,
                user_agent=client.user_agent,
                details={"reason": "wrong_password"},
                email_service=email_service
            )
            raise InvalidCredentialsError()

        log = MonitoringService.log_activity(
            db, "LOGIN_SUCCESS",
            user_id=user.id,
            ip_address=client.ip_address,
            user_agent=client.user_agent
        )
        AuthService.notify_if_new_context(db, user, client, log.id if log else None)

        if user.mfa_enabled:
            return LoginResult(user=user, mfa_required=True)

        return LoginResult(user=user, access_token=create_access_token(user, settings))

    @staticmethod
    def notify_if_new_context(
        db: Session,
        user: User,
        client: ClientInfo,
        current_log_id: Optional[int]
    ) -> bool:
        """
        Notifie l'utilisateur quand ni l'appareil ni l'IP n'apparaissent
        dans ses connexions réussies récentes. Ne lève jamais d'exception.
        """
        try:
            history = MonitoringService.get_recent_successful_logins(
                db, user.id, exclude_log_id=current_log_id
            )
            known_agent = any(log.user_agent == client.user_agent for log in history)
            known_ip = any(log.ip_address == client.ip_address for log in history)
            if known_agent or known_ip:
                return False

            logger.warning(
                "Connexion depuis un contexte inconnu pour user %s (ip=%s)", user.id, client.ip_address
            )

            notification = UserNotificationService.try_create_notification(
                db,
                user_id=user.id,
                title=NEW_SIGNIN_NOTIFICATION_TITLE,
                message=(
                    f"Nouvelle connexion détectée depuis l'IP {client.ip_address} "
                    f"({client.user_agent}). Si ce n'était pas vous, changez votre mot de passe."
                ),
                notification_type=NotificationType.SECURITY
            )
            return notification is not None
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Erreur lors de la détection de nouvelle connexion pour user %s", user.id)
            return False

    @staticmethod
    def complete_mfa_login(
        db: Session,
        user_id: int,
        code: str,
        client: ClientInfo,
        settings: Settings
    ) -> LoginResult:
        """Échange (user_id, code TOTP) contre un token après une connexion par mot de passe"""
        user = db.query(User).filter(User.id == user_id).first()
        if user is None or not user.is_active or not user.mfa_enabled or not user.mfa_secret:
            raise ValidationFailedError(ERROR_MESSAGES["MFA_NOT_CONFIGURED"])

        # Le verrouillage du mot de passe s'applique aussi au second facteur
        if MonitoringService.is_account_locked(db, user.id) or MonitoringService.is_mfa_locked(db, user.id):
            MonitoringService.log_activity(
                db, "LOGIN_BLOCKED",
                user_id=user.id,
                ip_address=client.ip_address,
                user_agent=client.user_agent,
                details={"reason": "account_locked", "step": "mfa"}
            )
            raise AccountLockedError()

        if not MFAService.verify_code(user.mfa_secret, code, settings.totp_valid_window):
            MonitoringService.log_activity(
                db, "MFA_LOGIN_FAILED",
                user_id=user.id,
                ip_address=client.ip_address,
                user_agent=client.user_agent
            )
            raise InvalidCredentialsError(ERROR_MESSAGES["MFA_INVALID_CODE"])

        MonitoringService.log_activity(
            db, "MFA_LOGIN_SUCCESS",
            user_id=user.id,
            ip_address=client.ip_address,
            user_agent=client.user_agent
        )
        return LoginResult(user=user, access_token=create_access_token(user, settings))

    @staticmethod
    def check_email(db: Session, email: str) -> Dict[str, Any]:
        user = db.query(User).filter(User.email == email.strip().lower()).first()
        if user is None:
            return {"exists": False, "is_active": None, "role": None}
        return {"exists": True, "is_active": user.is_active, "role": user.role}
