"""
Service MFA (TOTP)
Génération du secret partagé, QR code et vérification des codes à 6 chiffres
"""
from io import BytesIO
from typing import Dict, Any
from sqlalchemy.orm import Session
import base64
import logging
import pyotp
import qrcode

from models import User
from constants import TOTP_CODE_LENGTH, ERROR_MESSAGES, SUCCESS_MESSAGES
from error_handlers import ValidationFailedError
from settings import Settings

logger = logging.getLogger(__name__)


class MFAService:

    @staticmethod
    def generate_secret() -> str:
        return pyotp.random_base32()

    @staticmethod
    def provisioning_uri(secret: str, email: str, issuer: str) -> str:
        return pyotp.TOTP(secret).provisioning_uri(name=email, issuer_name=issuer)

    @staticmethod
    def qr_code_data_url(uri: str) -> str:
        """QR code PNG encodé en data URL, affichable directement côté front"""
        img = qrcode.make(uri)
        buf = BytesIO()
        img.save(buf, format="PNG")
        return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode("ascii")

    @staticmethod
    def normalize_code(code: str) -> str:
        return (code or "").replace(" ", "").strip()

    @staticmethod
    def is_well_formed(code: str) -> bool:
        return len(code) == TOTP_CODE_LENGTH and code.isdigit()

    @staticmethod
    def verify_code(secret: str, code: str, valid_window: int) -> bool:
        """
        Vrai si le code correspond au secret à ±valid_window pas de 30 s près
        """
        code = MFAService.normalize_code(code)
        if not secret or not MFAService.is_well_formed(code):
            return False
        return pyotp.TOTP(secret).verify(code, valid_window=valid_window)

    @staticmethod
    def setup(db: Session, user: User, settings: Settings) -> Dict[str, Any]:
        """
        Génère et enregistre un secret non confirmé (mfa_enabled inchangé)
        """
        secret = MFAService.generate_secret()
        user.mfa_secret = secret
        db.commit()

        uri = MFAService.provisioning_uri(secret, user.email, settings.mfa_issuer)
        logger.info("Secret MFA généré pour user %s", user.id)

        return {
            "secret": secret,
            "otpauth_url": uri,
            "qr_code": MFAService.qr_code_data_url(uri),
            "message": SUCCESS_MESSAGES["MFA_SETUP"]
        }

    @staticmethod
    def enable(db: Session, user: User, code: str, settings: Settings) -> User:
        """Confirme le secret avec un premier code valide puis active la MFA"""
        code = MFAService.normalize_code(code)
        if not MFAService.is_well_formed(code):
            raise ValidationFailedError(ERROR_MESSAGES["MFA_INVALID_CODE_FORMAT"])

        if not user.mfa_secret:
            raise ValidationFailedError(ERROR_MESSAGES["MFA_SETUP_INCOMPLETE"])

        if not MFAService.verify_code(user.mfa_secret, code, settings.totp_valid_window):
            logger.info("Échec de vérification MFA pour user %s", user.id)
            raise ValidationFailedError(ERROR_MESSAGES["MFA_INVALID_CODE"])

        user.mfa_enabled = True
        db.commit()
        db.refresh(user)
        logger.info("MFA activée pour user %s", user.id)
        return user

    @staticmethod
    def disable(db: Session, user: User) -> User:
        user.mfa_enabled = False
        user.mfa_secret = None
        db.commit()
        db.refresh(user)
        logger.info("MFA désactivée pour user %s", user.id)
        return user
