from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional
from jose import JWTError, jwt
import bcrypt
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from database import get_db
from settings import Settings, get_settings
from constants import BCRYPT_ROUNDS, ERROR_MESSAGES
from enums import UserRole
from error_handlers import UnauthorizedError, AccessDeniedError
import models

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthContext:
    """Identité authentifiée de la requête, passée explicitement aux services"""
    user_id: int
    email: str
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


def get_password_hash(password: str) -> str:
    """Hash un mot de passe avec bcrypt"""
    password_bytes = password.encode('utf-8')
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    hashed = bcrypt.hashpw(password_bytes, salt)
    return hashed.decode('utf-8')


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Vérifie un mot de passe contre son hash bcrypt (comptes OAuth sans mot de passe : False)"""
    if not hashed_password:
        return False
    try:
        return bcrypt.checkpw(plain_password.encode('utf-8'), hashed_password.encode('utf-8'))
    except ValueError:
        # Hash mal formé en base
        return False


def create_access_token(user: models.User, settings: Settings, expires_delta: timedelta | None = None) -> str:
    """Émet un JWT signé contenant {user_id, email, role}"""
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=settings.jwt_expires_minutes))
    role = user.role.value if isinstance(user.role, UserRole) else str(user.role)
    to_encode = {
        "sub": str(user.id),
        "user_id": user.id,
        "email": user.email,
        "role": role,
        "exp": expire,
    }
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str, settings: Settings) -> dict:
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        raise UnauthorizedError(ERROR_MESSAGES["TOKEN_INVALID"])

    if payload.get("user_id") is None:
        raise UnauthorizedError(ERROR_MESSAGES["TOKEN_INVALID"])
    return payload


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> AuthContext:
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError(ERROR_MESSAGES["TOKEN_MISSING"])

    payload = decode_access_token(credentials.credentials, settings)

    user = db.query(models.User).filter(models.User.id == payload["user_id"]).first()
    if user is None or not user.is_active:
        raise UnauthorizedError("Utilisateur introuvable ou inactif")

    return AuthContext(user_id=user.id, email=user.email, role=user.role)


def require_admin(current_user: AuthContext = Depends(get_current_user)) -> AuthContext:
    if not current_user.is_admin:
        raise AccessDeniedError(ERROR_MESSAGES["INSUFFICIENT_PERMISSIONS"])
    return current_user


@dataclass(frozen=True)
class ClientInfo:
    """Origine de la requête (IP, navigateur) utilisée par le journal d'activité"""
    ip_address: str
    user_agent: str


def resolve_client_ip(peer: Optional[str], forwarded: Optional[str], trusted_proxies) -> str:
    """
    IP du client : l'adresse du pair, sauf si ce pair est un proxy de confiance.
    Dans ce cas X-Forwarded-For est lu de droite à gauche en sautant les proxies connus.
    """
    if not peer:
        return "0.0.0.0"
    if not forwarded or peer not in trusted_proxies:
        return peer

    hops = [hop.strip() for hop in forwarded.split(",") if hop.strip()]
    for hop in reversed(hops):
        if hop not in trusted_proxies:
            return hop
    return hops[0] if hops else peer


def get_client_info(request: Request, settings: Settings = Depends(get_settings)) -> ClientInfo:
    ip_address = resolve_client_ip(
        request.client.host if request.client else None,
        request.headers.get("x-forwarded-for"),
        settings.trusted_proxies
    )

    return ClientInfo(
        ip_address=ip_address,
        user_agent=request.headers.get("user-agent") or "Unknown"
    )
