from sqlalchemy import (
    Column, Integer, String, Boolean, ForeignKey, Enum, DateTime, Date, Text,
    Numeric, Index, JSON
)
from sqlalchemy.orm import relationship
from database import Base
import datetime

# Import centralisé des enums
from enums import (
    UserRole, ActivityStatus, SecurityAlertType, AlertSeverity,
    NotificationType, LeaseSignatureStatus
)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=True)  # Nullable pour OAuth
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    name = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    date_of_birth = Column(Date, nullable=True)
    profile_picture = Column(String(500), nullable=True)
    role = Column(Enum(UserRole), default=UserRole.USER, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    # MFA : le secret est stocké avant confirmation, mfa_enabled passe à True après vérification
    mfa_enabled = Column(Boolean, default=False, nullable=False)
    mfa_secret = Column(String(64), nullable=True)

    # Identifiants chez les fournisseurs OAuth
    google_id = Column(String(255), unique=True, nullable=True)
    facebook_id = Column(String(255), unique=True, nullable=True)
    github_id = Column(String(255), unique=True, nullable=True)
    twitter_id = Column(String(255), unique=True, nullable=True)
    apple_id = Column(String(255), unique=True, nullable=True)

    created_at = Column(DateTime, default=datetime.datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.datetime.utcnow, onupdate=datetime.datetime.utcnow)

    activity_logs = relationship("ActivityLog", back_populates="user", cascade="all, delete-orphan")
    security_alerts = relationship("SecurityAlert", back_populates="user", cascade="all, delete-orphan")
    notifications = relationship("Notification", back_populates="user", cascade="all, delete-orphan")


class ActivityLog(Base):
    """Journal d'activité en ajout seul (connexions, MFA, OAuth, signatures...)"""
    __tablename__ = "activity_logs"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True)
    action = Column(String(50), nullable=False)
    status = Column(Enum(ActivityStatus), nullable=False, default=ActivityStatus.INFO)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(500), nullable=True)
    details = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="activity_logs")

    # Index pour les comptages de verrouillage et la détection d'anomalies
    __table_args__ = (
        Index('idx_activity_user_action', 'user_id', 'action', 'status', 'created_at'),
        Index('idx_activity_ip_action', 'ip_address', 'action', 'status', 'created_at'),
    )


class SecurityAlert(Base):
    __tablename__ = "security_alerts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True)
    type = Column(Enum(SecurityAlertType), nullable=False)
    severity = Column(Enum(AlertSeverity), nullable=False, default=AlertSeverity.MEDIUM)
    message = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="security_alerts")


class Notification(Base):
    """
    Notifications pour les utilisateurs (système de cloche)
    """
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(Enum(NotificationType), nullable=False, default=NotificationType.SYSTEM)
    is_read = Column(Boolean, default=False, nullable=False)
    read_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="notifications")

    __table_args__ = (
        Index('idx_notification_unread', 'user_id', 'is_read'),
    )


class Lease(Base):
    __tablename__ = "leases"

    id = Column(Integer, primary_key=True, index=True)

    # Parties
    tenant_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    landlord_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    # Informations du bail
    property_title = Column(String(255), nullable=True)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    monthly_rent = Column(Numeric(10, 2), nullable=True)

    # Signatures (image encodée ou texte) et horodatage par partie
    tenant_signature = Column(Text, nullable=True)
    landlord_signature = Column(Text, nullable=True)
    tenant_signed_at = Column(DateTime, nullable=True)
    landlord_signed_at = Column(DateTime, nullable=True)
    signature_status = Column(
        Enum(LeaseSignatureStatus), default=LeaseSignatureStatus.PENDING, nullable=False
    )

    created_at = Column(DateTime, default=datetime.datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.datetime.utcnow, onupdate=datetime.datetime.utcnow)

    tenant = relationship("User", foreign_keys=[tenant_id])
    landlord = relationship("User", foreign_keys=[landlord_id])

    __table_args__ = (
        Index('idx_lease_tenant', 'tenant_id'),
        Index('idx_lease_landlord', 'landlord_id'),
    )
