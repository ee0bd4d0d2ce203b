"""
Service des baux
Signature électronique par les deux parties et consultation
"""
from datetime import datetime
from typing import List, Optional
from sqlalchemy import or_, desc
from sqlalchemy.orm import Session
import logging

from models import Lease
from enums import LeaseSignatureStatus
from constants import ERROR_MESSAGES
from error_handlers import NotFoundError, AccessDeniedError, ValidationFailedError
from auth import AuthContext, ClientInfo
from services.monitoring_service import MonitoringService

logger = logging.getLogger(__name__)

TENANT = "tenant"
LANDLORD = "landlord"


def compute_signature_status(tenant_signed: bool, landlord_signed: bool) -> LeaseSignatureStatus:
    """Statut déduit uniquement de la présence des deux signatures"""
    if tenant_signed and landlord_signed:
        return LeaseSignatureStatus.FULLY_SIGNED
    if tenant_signed:
        return LeaseSignatureStatus.TENANT_SIGNED
    if landlord_signed:
        return LeaseSignatureStatus.LANDLORD_SIGNED
    return LeaseSignatureStatus.PENDING


class LeaseService:

    @staticmethod
    def _get_lease_or_404(db: Session, lease_id: int) -> Lease:
        lease = db.query(Lease).filter(Lease.id == lease_id).first()
        if lease is None:
            raise NotFoundError(ERROR_MESSAGES["LEASE_NOT_FOUND"], {"lease_id": lease_id})
        return lease

    @staticmethod
    def resolve_party(lease: Lease, user_id: int) -> Optional[str]:
        if lease.tenant_id == user_id:
            return TENANT
        if lease.landlord_id == user_id:
            return LANDLORD
        return None

    @staticmethod
    def sign_lease(
        db: Session,
        lease_id: int,
        signature: Optional[str],
        signer_id: int,
        client: Optional[ClientInfo] = None
    ) -> Lease:
        """
        Enregistre la signature de la partie appelante puis recalcule le statut
        Une nouvelle signature de la même partie n'écrase que ses propres champs
        """
        lease = LeaseService._get_lease_or_404(db, lease_id)

        party = LeaseService.resolve_party(lease, signer_id)
        if party is None:
            raise AccessDeniedError(ERROR_MESSAGES["LEASE_SIGN_FORBIDDEN"])

        if not signature or not signature.strip():
            raise ValidationFailedError(ERROR_MESSAGES["SIGNATURE_REQUIRED"])

        now = datetime.utcnow()
        if party == TENANT:
            lease.tenant_signature = signature
            lease.tenant_signed_at = now
        else:
            lease.landlord_signature = signature
            lease.landlord_signed_at = now

        lease.signature_status = compute_signature_status(
            bool(lease.tenant_signature), bool(lease.landlord_signature)
        )
        db.commit()
        db.refresh(lease)

        logger.info("Bail %s signé par %s (user %s): %s", lease.id, party, signer_id, lease.signature_status.value)
        MonitoringService.log_activity(
            db, "LEASE_SIGN_SUCCESS",
            user_id=signer_id,
            ip_address=client.ip_address if client else None,
            user_agent=client.user_agent if client else None,
            details={"lease_id": lease.id, "party": party, "status": lease.signature_status.value}
        )
        return lease

    @staticmethod
    def get_lease(db: Session, lease_id: int, current_user: AuthContext) -> Lease:
        lease = LeaseService._get_lease_or_404(db, lease_id)
        if not current_user.is_admin and LeaseService.resolve_party(lease, current_user.user_id) is None:
            raise AccessDeniedError()
        return lease

    @staticmethod
    def list_user_leases(db: Session, user_id: int) -> List[Lease]:
        return db.query(Lease).filter(
            or_(Lease.tenant_id == user_id, Lease.landlord_id == user_id)
        ).order_by(desc(Lease.created_at), desc(Lease.id)).all()
