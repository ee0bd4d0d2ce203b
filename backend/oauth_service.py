"""
Service OAuth suivant les principes SOLID
Flux de redirection Google / Facebook / GitHub et rattachement au compte local
"""
from abc import ABC, abstractmethod
from typing import Dict, Optional, Tuple, Type
from authlib.integrations.requests_client import OAuth2Session
from sqlalchemy.orm import Session
import logging

import models
from enums import UserRole
from constants import ERROR_MESSAGES
from error_handlers import ValidationFailedError
from settings import Settings, OAuthClientConfig
from auth import ClientInfo
from services.monitoring_service import MonitoringService

logger = logging.getLogger(__name__)


# Interface Segregation Principle - Interface pour les providers OAuth
class OAuthProvider(ABC):
    """Interface abstraite pour les providers OAuth"""

    name: str = ""

    def __init__(self, config: OAuthClientConfig):
        self.client_id = config.client_id
        self.client_secret = config.client_secret

    @abstractmethod
    def get_authorization_url(self, redirect_uri: str) -> Tuple[str, str]:
        """Retourne l'URL d'autorisation et l'état"""

    @abstractmethod
    def get_user_info(self, code: str, redirect_uri: str) -> Dict:
        """
        Échange le code et retourne le profil normalisé :
        {email, first_name, last_name, provider_id, avatar_url}
        """


class AuthlibOAuthProvider(OAuthProvider):
    """Base commune des providers OAuth2 passant par Authlib"""

    authorization_endpoint = ""
    token_endpoint = ""
    userinfo_endpoint = ""
    scope = ""

    def _session(self, redirect_uri: str, scope: Optional[str] = None) -> OAuth2Session:
        return OAuth2Session(
            client_id=self.client_id,
            client_secret=self.client_secret,
            redirect_uri=redirect_uri,
            scope=scope
        )

    def get_authorization_url(self, redirect_uri: str) -> Tuple[str, str]:
        client = self._session(redirect_uri, self.scope)
        authorization_url, state = client.create_authorization_url(self.authorization_endpoint)
        return authorization_url, state

    def fetch_profile(self, code: str, redirect_uri: str) -> Tuple[OAuth2Session, Dict]:
        client = self._session(redirect_uri)

        # Échanger le code contre un token
        client.fetch_token(self.token_endpoint, code=code)

        response = client.get(self.userinfo_endpoint, params=self.userinfo_params())
        response.raise_for_status()
        return client, response.json()

    def userinfo_params(self) -> Optional[Dict]:
        return None


# Single Responsibility Principle - Chaque provider a sa responsabilité
class GoogleOAuthProvider(AuthlibOAuthProvider):
    """Provider OAuth pour Google"""

    name = "google"
    authorization_endpoint = "https://accounts.google.com/o/oauth2/v2/auth"
    token_endpoint = "https://oauth2.googleapis.com/token"
    userinfo_endpoint = "https://www.googleapis.com/oauth2/v2/userinfo"
    scope = "openid email profile"

    def get_user_info(self, code: str, redirect_uri: str) -> Dict:
        _, user_data = self.fetch_profile(code, redirect_uri)
        return {
            "email": user_data.get("email"),
            "first_name": user_data.get("given_name", ""),
            "last_name": user_data.get("family_name", ""),
            "provider_id": str(user_data.get("id")),
            "avatar_url": user_data.get("picture")
        }


class FacebookOAuthProvider(AuthlibOAuthProvider):
    """Provider OAuth pour Facebook"""

    name = "facebook"
    authorization_endpoint = "https://www.facebook.com/v18.0/dialog/oauth"
    token_endpoint = "https://graph.facebook.com/v18.0/oauth/access_token"
    userinfo_endpoint = "https://graph.facebook.com/v18.0/me"
    scope = "email public_profile"

    def userinfo_params(self) -> Optional[Dict]:
        return {"fields": "id,email,first_name,last_name,picture"}

    def get_user_info(self, code: str, redirect_uri: str) -> Dict:
        _, user_data = self.fetch_profile(code, redirect_uri)
        return {
            "email": user_data.get("email"),
            "first_name": user_data.get("first_name", ""),
            "last_name": user_data.get("last_name", ""),
            "provider_id": str(user_data.get("id")),
            "avatar_url": user_data.get("picture", {}).get("data", {}).get("url")
        }


class GitHubOAuthProvider(AuthlibOAuthProvider):
    """Provider OAuth pour GitHub"""

    name = "github"
    authorization_endpoint = "https://github.com/login/oauth/authorize"
    token_endpoint = "https://github.com/login/oauth/access_token"
    userinfo_endpoint = "https://api.github.com/user"
    emails_endpoint = "https://api.github.com/user/emails"
    scope = "read:user user:email"

    def get_user_info(self, code: str, redirect_uri: str) -> Dict:
        client, user_data = self.fetch_profile(code, redirect_uri)

        email = user_data.get("email")
        if not email:
            # Email privé : on prend l'adresse principale vérifiée
            response = client.get(self.emails_endpoint)
            response.raise_for_status()
            for entry in response.json():
                if entry.get("primary") and entry.get("verified"):
                    email = entry.get("email")
                    break

        first_name, _, last_name = (user_data.get("name") or user_data.get("login") or "").partition(" ")
        return {
            "email": email,
            "first_name": first_name,
            "last_name": last_name,
            "provider_id": str(user_data.get("id")),
            "avatar_url": user_data.get("avatar_url")
        }


# Open/Closed Principle - Facilement extensible pour d'autres providers
class OAuthProviderFactory:
    """Factory pour créer les providers OAuth"""

    _providers: Dict[str, Type[OAuthProvider]] = {
        "google": GoogleOAuthProvider,
        "facebook": FacebookOAuthProvider,
        "github": GitHubOAuthProvider
    }

    @classmethod
    def register(cls, name: str, provider_class: Type[OAuthProvider]):
        cls._providers[name.lower()] = provider_class

    @classmethod
    def supported(cls) -> Tuple[str, ...]:
        return tuple(cls._providers.keys())

    @classmethod
    def get_provider(cls, provider_type: str, settings: Settings) -> OAuthProvider:
        provider_class = cls._providers.get((provider_type or "").lower())
        if not provider_class:
            raise ValidationFailedError(
                ERROR_MESSAGES["OAUTH_INVALID_PROVIDER"], {"provider": provider_type}
            )

        return provider_class(settings.oauth_client(provider_type.lower()))


# Single Responsibility Principle - Service pour gérer l'authentification OAuth
class OAuthAuthenticationService:
    """Service pour gérer l'authentification OAuth"""

    def __init__(self, db: Session, provider: OAuthProvider):
        self.db = db
        self.provider = provider

    @property
    def id_column(self) -> str:
        return f"{self.provider.name}_id"

    def create_or_get_user(self, user_data: Dict) -> models.User:
        """
        Rattache le profil externe à un compte local :
        par identifiant fournisseur, puis par email, sinon création
        """
        email = (user_data.get("email") or "").strip().lower()
        provider_id = user_data.get("provider_id")

        if not provider_id:
            raise ValidationFailedError("Identifiant fournisseur manquant")

        user = self.db.query(models.User).filter(
            getattr(models.User, self.id_column) == provider_id
        ).first()

        if user is None and email:
            user = self.db.query(models.User).filter(models.User.email == email).first()
            if user is not None:
                setattr(user, self.id_column, provider_id)
                logger.info("Compte %s lié à %s par email", self.provider.name, user.email)

        if user is None:
            if not email:
                raise ValidationFailedError("Email requis pour l'authentification OAuth")

            first_name = user_data.get("first_name") or ""
            last_name = user_data.get("last_name") or ""
            user = models.User(
                email=email,
                first_name=first_name,
                last_name=last_name,
                name=f"{first_name} {last_name}".strip() or email,
                profile_picture=user_data.get("avatar_url"),
                role=UserRole.USER,
                is_active=True,
                # Pas de mot de passe pour OAuth
                hashed_password=None
            )
            setattr(user, self.id_column, provider_id)
            self.db.add(user)
            logger.info("Inscription OAuth %s: %s", self.provider.name, email)
        elif not user.profile_picture and user_data.get("avatar_url"):
            user.profile_picture = user_data.get("avatar_url")

        self.db.commit()
        self.db.refresh(user)

        return user

    def authenticate_user(self, code: str, redirect_uri: str, client: ClientInfo) -> models.User:
        """Authentifie un utilisateur via OAuth"""
        user_data = self.provider.get_user_info(code, redirect_uri)
        user = self.create_or_get_user(user_data)

        if not user.is_active:
            raise ValidationFailedError("Compte désactivé")

        MonitoringService.log_activity(
            self.db, "OAUTH_LOGIN_SUCCESS",
            user_id=user.id,
            ip_address=client.ip_address,
            user_agent=client.user_agent,
            details={"provider": self.provider.name}
        )

        return user
