from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional, List, Dict, Any
from datetime import datetime, date
from decimal import Decimal
import re

from enums import (
    UserRole, ActivityStatus, SecurityAlertType, AlertSeverity,
    NotificationType, LeaseSignatureStatus
)
from constants import MIN_PASSWORD_LENGTH, MAX_PASSWORD_LENGTH


# ==================== UTILISATEURS ====================

class UserRegister(BaseModel):
    email: EmailStr = Field(..., description="Adresse email")
    password: str = Field(
        ..., min_length=MIN_PASSWORD_LENGTH, max_length=MAX_PASSWORD_LENGTH, description="Mot de passe"
    )
    first_name: str = Field(..., max_length=100, description="Prénom")
    last_name: str = Field(..., max_length=100, description="Nom de famille")
    date_of_birth: Optional[date] = Field(None, description="Date de naissance (AAAA-MM-JJ)")
    phone: Optional[str] = Field(None, max_length=50, description="Numéro de téléphone")

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v):
        return v.strip().lower()

    @field_validator('first_name', 'last_name')
    @classmethod
    def validate_names(cls, v):
        if not v.strip():
            raise ValueError('Ce champ ne peut pas être vide')
        return v.strip()

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, v):
        if v and not re.match(r'^[0-9+\-\s\(\)]{6,20}$', v):
            raise ValueError('Format de téléphone invalide')
        return v


class UserCreateAdmin(UserRegister):
    role: UserRole = UserRole.USER


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v):
        return v.strip().lower()


class CheckEmailRequest(BaseModel):
    email: EmailStr

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v):
        return v.strip().lower()


class CheckEmailResponse(BaseModel):
    exists: bool
    is_active: Optional[bool] = None
    role: Optional[UserRole] = None


class UserOut(BaseModel):
    id: int
    email: EmailStr
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    name: Optional[str] = None
    phone: Optional[str] = None
    date_of_birth: Optional[date] = None
    profile_picture: Optional[str] = None
    role: UserRole
    is_active: bool
    mfa_enabled: bool
    google_id: Optional[str] = None
    facebook_id: Optional[str] = None
    github_id: Optional[str] = None
    twitter_id: Optional[str] = None
    apple_id: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ProfileUpdate(BaseModel):
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    date_of_birth: Optional[date] = None
    phone: Optional[str] = Field(None, max_length=50)
    profile_picture: Optional[str] = Field(None, max_length=500)

    @field_validator('first_name', 'last_name')
    @classmethod
    def validate_names(cls, v):
        if v is not None and not v.strip():
            raise ValueError('Ce champ ne peut pas être vide')
        return v.strip() if v else v


class UserAdminUpdate(ProfileUpdate):
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None


class PaginationOut(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class UserListResponse(BaseModel):
    users: List[UserOut]
    pagination: PaginationOut


# ==================== AUTHENTIFICATION ====================

class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut
    message: Optional[str] = None


class MFARequiredResponse(BaseModel):
    mfa_required: bool = True
    user_id: int
    message: str


class MFALoginRequest(BaseModel):
    user_id: int
    token: str = Field(..., description="Code TOTP à 6 chiffres")


class MFAVerifyRequest(BaseModel):
    token: str = Field(..., description="Code TOTP à 6 chiffres")


class MFASetupResponse(BaseModel):
    secret: str
    otpauth_url: str
    qr_code: str
    message: str


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class OAuthAuthorizationResponse(BaseModel):
    authorization_url: str
    state: str


class OAuthLinkRequest(BaseModel):
    provider: str
    provider_id: str = Field(..., min_length=1, max_length=255)


class OAuthUnlinkRequest(BaseModel):
    provider: str


class OAuthLinkResponse(BaseModel):
    success: bool = True
    message: str
    user: UserOut


# ==================== JOURNAL ET ALERTES ====================

class LogUserOut(BaseModel):
    email: EmailStr
    name: Optional[str] = None
    role: UserRole

    model_config = {"from_attributes": True}


class ActivityLogOut(BaseModel):
    id: int
    user_id: Optional[int] = None
    action: str
    status: ActivityStatus
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    created_at: datetime
    user: Optional[LogUserOut] = None

    model_config = {"from_attributes": True}


class ActivityLogPage(BaseModel):
    logs: List[ActivityLogOut]
    pagination: PaginationOut


class LogStatsOut(BaseModel):
    period_days: int
    success: int
    failed: int
    info: int
    by_action: Dict[str, Dict[str, int]]


class SecurityAlertOut(BaseModel):
    id: int
    user_id: Optional[int] = None
    type: SecurityAlertType
    severity: AlertSeverity
    message: str
    created_at: datetime
    user: Optional[LogUserOut] = None

    model_config = {"from_attributes": True}


class NotificationOut(BaseModel):
    id: int
    title: str
    message: str
    type: NotificationType
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class NotificationListOut(BaseModel):
    notifications: List[NotificationOut]
    total_count: int
    unread_count: int


# ==================== BAUX ====================

class LeaseSignRequest(BaseModel):
    # Optionnel pour renvoyer 400 (et non 422) quand la signature est absente
    signature: Optional[str] = Field(None, description="Signature (image encodée en data URL ou texte)")


class LeaseOut(BaseModel):
    id: int
    tenant_id: int
    landlord_id: int
    property_title: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    monthly_rent: Optional[Decimal] = None
    tenant_signature: Optional[str] = None
    landlord_signature: Optional[str] = None
    tenant_signed_at: Optional[datetime] = None
    landlord_signed_at: Optional[datetime] = None
    signature_status: LeaseSignatureStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class LeaseSignResponse(BaseModel):
    success: bool = True
    message: str
    lease: LeaseOut
