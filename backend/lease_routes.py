"""
Routes API pour la gestion des baux
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from database import get_db
from auth import AuthContext, ClientInfo, get_current_user, get_client_info
from constants import SUCCESS_MESSAGES
from services.lease_service import LeaseService
from schemas import LeaseOut, LeaseSignRequest, LeaseSignResponse

router = APIRouter(prefix="/leases", tags=["leases"])


@router.get("", response_model=List[LeaseOut])
def get_user_leases(
    current_user: AuthContext = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Baux dont l'utilisateur est locataire ou propriétaire"""
    return LeaseService.list_user_leases(db, current_user.user_id)


@router.get("/{lease_id}", response_model=LeaseOut)
def get_lease(
    lease_id: int,
    current_user: AuthContext = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return LeaseService.get_lease(db, lease_id, current_user)


@router.post("/{lease_id}/sign", response_model=LeaseSignResponse)
def sign_lease(
    lease_id: int,
    data: LeaseSignRequest,
    current_user: AuthContext = Depends(get_current_user),
    client: ClientInfo = Depends(get_client_info),
    db: Session = Depends(get_db)
):
    """
    Signature du bail par la partie connectée (locataire ou propriétaire)
    Le statut passe à FULLY_SIGNED quand les deux parties ont signé
    """
    lease = LeaseService.sign_lease(db, lease_id, data.signature, current_user.user_id, client)
    return {
        "success": True,
        "message": SUCCESS_MESSAGES["SIGNATURE_SAVED"],
        "lease": lease
    }
