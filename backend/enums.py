"""
Enums partagés pour l'application Rentverse
Centralisation de toutes les énumérations pour éviter la duplication
"""
import enum


class UserRole(str, enum.Enum):
    """Rôles des utilisateurs"""
    USER = "USER"
    LANDLORD = "LANDLORD"
    ADMIN = "ADMIN"


class ActivityStatus(str, enum.Enum):
    """Statut d'une entrée du journal d'activité"""
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"
    INFO = "INFO"


class ActivityAction(str, enum.Enum):
    """Actions enregistrées dans le journal d'activité"""
    LOGIN = "LOGIN"
    LOGIN_BLOCKED = "LOGIN_BLOCKED"
    MFA_LOGIN = "MFA_LOGIN"
    MFA_SETUP = "MFA_SETUP"
    MFA_ENABLE = "MFA_ENABLE"
    MFA_DISABLE = "MFA_DISABLE"
    REGISTER = "REGISTER"
    OAUTH_LOGIN = "OAUTH_LOGIN"
    OAUTH_LINK = "OAUTH_LINK"
    OAUTH_UNLINK = "OAUTH_UNLINK"
    LEASE_SIGN = "LEASE_SIGN"
    UPDATE_PROFILE = "UPDATE_PROFILE"
    CREATE_USER = "CREATE_USER"
    UPDATE_USER = "UPDATE_USER"
    DELETE_USER = "DELETE_USER"


class SecurityAlertType(str, enum.Enum):
    """Types d'alertes de sécurité"""
    BRUTE_FORCE_ATTACK = "BRUTE_FORCE_ATTACK"


class AlertSeverity(str, enum.Enum):
    """Niveaux de gravité des alertes"""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class NotificationType(str, enum.Enum):
    """Types de notifications utilisateur (système de cloche)"""
    SECURITY = "security"
    LEASE = "lease"
    SYSTEM = "system"


class LeaseSignatureStatus(str, enum.Enum):
    """Statut de signature d'un bail (déduit des deux signatures)"""
    PENDING = "PENDING"
    TENANT_SIGNED = "TENANT_SIGNED"
    LANDLORD_SIGNED = "LANDLORD_SIGNED"
    FULLY_SIGNED = "FULLY_SIGNED"

