"""
Contrôleur pour l'authentification
Inscription, connexion, MFA et flux OAuth
"""
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from authlib.common.errors import AuthlibBaseError
from urllib.parse import urlencode
from typing import Optional, Union
import logging
import requests

from database import get_db
from auth import AuthContext, ClientInfo, create_access_token, get_current_user, get_client_info
from settings import Settings, get_settings
from constants import SUCCESS_MESSAGES, OAUTH_STATE_COOKIE, OAUTH_STATE_MAX_AGE_SECONDS
from error_handlers import AppError
from services.auth_service import AuthService
from services.mfa_service import MFAService
from services.user_service import UserService
from services.monitoring_service import MonitoringService
from oauth_service import OAuthProviderFactory, OAuthAuthenticationService
import schemas

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentification"])


def get_email_service(request: Request):
    return getattr(request.app.state, "email_service", None)


# ==================== INSCRIPTION / CONNEXION ====================

@router.post("/register", response_model=schemas.TokenResponse, status_code=status.HTTP_201_CREATED)
def register(
    data: schemas.UserRegister,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    client: ClientInfo = Depends(get_client_info)
):
    """
    Inscription d'un nouvel utilisateur (rôle USER) avec connexion immédiate
    """
    result = AuthService.register(db, data, client, settings)
    return {
        "access_token": result.access_token,
        "token_type": "bearer",
        "user": result.user,
        "message": SUCCESS_MESSAGES["REGISTER_SUCCESS"]
    }


@router.post(
    "/login",
    response_model=Union[schemas.TokenResponse, schemas.MFARequiredResponse]
)
def login(
    credentials: schemas.LoginRequest,
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    client: ClientInfo = Depends(get_client_info)
):
    """
    Connexion par email / mot de passe
    Retourne un token, ou {mfa_required, user_id} si la MFA est activée
    """
    result = AuthService.authenticate(
        db, credentials.email, credentials.password, client, settings,
        email_service=get_email_service(request)
    )

    if result.mfa_required:
        return schemas.MFARequiredResponse(
            user_id=result.user.id,
            message=SUCCESS_MESSAGES["MFA_REQUIRED"]
        )

    return schemas.TokenResponse(
        access_token=result.access_token,
        user=schemas.UserOut.model_validate(result.user),
        message=SUCCESS_MESSAGES["LOGIN_SUCCESS"]
    )


@router.get("/me", response_model=schemas.UserOut)
def read_me(current_user: AuthContext = Depends(get_current_user), db: Session = Depends(get_db)):
    return UserService.get_user_or_404(db, current_user.user_id)


@router.post("/check-email", response_model=schemas.CheckEmailResponse)
def check_email(data: schemas.CheckEmailRequest, db: Session = Depends(get_db)):
    return AuthService.check_email(db, data.email)


# ==================== MFA ====================

@router.get("/mfa/setup", response_model=schemas.MFASetupResponse)
def mfa_setup(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    current_user: AuthContext = Depends(get_current_user),
    client: ClientInfo = Depends(get_client_info)
):
    """Génère un secret TOTP et son QR code (la MFA reste inactive jusqu'à vérification)"""
    user = UserService.get_user_or_404(db, current_user.user_id)
    payload = MFAService.setup(db, user, settings)
    MonitoringService.log_activity(
        db, "MFA_SETUP", user_id=user.id,
        ip_address=client.ip_address, user_agent=client.user_agent
    )
    return payload


@router.post("/mfa/verify", response_model=schemas.MessageResponse)
def mfa_verify(
    data: schemas.MFAVerifyRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    current_user: AuthContext = Depends(get_current_user),
    client: ClientInfo = Depends(get_client_info)
):
    user = UserService.get_user_or_404(db, current_user.user_id)
    MFAService.enable(db, user, data.token, settings)
    MonitoringService.log_activity(
        db, "MFA_ENABLE_SUCCESS", user_id=user.id,
        ip_address=client.ip_address, user_agent=client.user_agent
    )
    return {"success": True, "message": SUCCESS_MESSAGES["MFA_ENABLED"]}


@router.post("/mfa/disable", response_model=schemas.MessageResponse)
def mfa_disable(
    db: Session = Depends(get_db),
    current_user: AuthContext = Depends(get_current_user),
    client: ClientInfo = Depends(get_client_info)
):
    user = UserService.get_user_or_404(db, current_user.user_id)
    MFAService.disable(db, user)
    MonitoringService.log_activity(
        db, "MFA_DISABLE_SUCCESS", user_id=user.id,
        ip_address=client.ip_address, user_agent=client.user_agent
    )
    return {"success": True, "message": SUCCESS_MESSAGES["MFA_DISABLED"]}


@router.post("/mfa/login", response_model=schemas.TokenResponse)
def mfa_login(
    data: schemas.MFALoginRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    client: ClientInfo = Depends(get_client_info)
):
    """Second facteur : échange (user_id, code TOTP) contre le token d'accès"""
    result = AuthService.complete_mfa_login(db, data.user_id, data.token, client, settings)
    return {
        "access_token": result.access_token,
        "token_type": "bearer",
        "user": result.user,
        "message": SUCCESS_MESSAGES["MFA_LOGIN_SUCCESS"]
    }


# ==================== OAUTH ====================

@router.post("/oauth/link", response_model=schemas.OAuthLinkResponse)
def oauth_link(
    data: schemas.OAuthLinkRequest,
    db: Session = Depends(get_db),
    current_user: AuthContext = Depends(get_current_user),
    client: ClientInfo = Depends(get_client_info)
):
    user = UserService.link_oauth(db, current_user, data.provider, data.provider_id, client)
    return {
        "success": True,
        "message": SUCCESS_MESSAGES["OAUTH_LINKED"].format(provider=data.provider.lower()),
        "user": user
    }


@router.post("/oauth/unlink", response_model=schemas.OAuthLinkResponse)
def oauth_unlink(
    data: schemas.OAuthUnlinkRequest,
    db: Session = Depends(get_db),
    current_user: AuthContext = Depends(get_current_user),
    client: ClientInfo = Depends(get_client_info)
):
    user = UserService.unlink_oauth(db, current_user, data.provider, client)
    return {
        "success": True,
        "message": SUCCESS_MESSAGES["OAUTH_UNLINKED"].format(provider=data.provider.lower()),
        "user": user
    }


@router.get("/oauth/{provider}/login", response_model=schemas.OAuthAuthorizationResponse)
def oauth_login(provider: str, settings: Settings = Depends(get_settings)):
    """
    Initie le processus OAuth pour un provider donné
    L'état est conservé dans un cookie et vérifié au retour
    """
    oauth_provider = OAuthProviderFactory.get_provider(provider, settings)
    authorization_url, state = oauth_provider.get_authorization_url(
        settings.oauth_redirect_uri(provider.lower())
    )

    response = JSONResponse({"authorization_url": authorization_url, "state": state})
    response.set_cookie(
        OAUTH_STATE_COOKIE,
        state,
        max_age=OAUTH_STATE_MAX_AGE_SECONDS,
        httponly=True,
        samesite="lax",
        secure=settings.environment == "production"
    )
    return response


@router.get("/oauth/{provider}/callback")
def oauth_callback(
    provider: str,
    request: Request,
    code: Optional[str] = None,
    state: Optional[str] = None,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    client: ClientInfo = Depends(get_client_info)
):
    """
    Gère le callback OAuth après autorisation
    Redirige vers le front avec le token, ou vers /login?error=oauth_failed
    """
    failure_url = f"{settings.frontend_url}/login?" + urlencode({"error": "oauth_failed"})

    expected_state = request.cookies.get(OAUTH_STATE_COOKIE)
    if not code or not state or not expected_state or state != expected_state:
        logger.warning("Callback OAuth %s rejeté : code ou état invalide", provider)
        response = RedirectResponse(failure_url, status_code=status.HTTP_302_FOUND)
        response.delete_cookie(OAUTH_STATE_COOKIE)
        return response

    try:
        oauth_provider = OAuthProviderFactory.get_provider(provider, settings)
        auth_service = OAuthAuthenticationService(db, oauth_provider)
        user = auth_service.authenticate_user(code, settings.oauth_redirect_uri(provider.lower()), client)
    except (AppError, AuthlibBaseError, requests.RequestException, SQLAlchemyError):
        db.rollback()
        logger.exception("Erreur lors de l'authentification OAuth %s", provider)
        response = RedirectResponse(failure_url, status_code=status.HTTP_302_FOUND)
        response.delete_cookie(OAUTH_STATE_COOKIE)
        return response

    if user.mfa_enabled:
        # Pas de token : le front enchaîne sur POST /auth/mfa/login
        params = {"mfa_required": "true", "user_id": user.id, "provider": provider.lower()}
    else:
        params = {"token": create_access_token(user, settings), "provider": provider.lower()}

    success_url = f"{settings.frontend_url}/auth/callback?" + urlencode(params)
    response = RedirectResponse(success_url, status_code=status.HTTP_302_FOUND)
    response.delete_cookie(OAUTH_STATE_COOKIE)
    return response
