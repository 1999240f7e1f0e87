from __future__ import annotations

from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from nexus_cards.core.rate_limiter import rate_limit_ip
from nexus_cards.db.models import User
from nexus_cards.routers.deps import get_current_user, get_nfc_service, request_meta, require_admin
from nexus_cards.schemas.nfc import (
    AssignRequest,
    AssociateRequest,
    ImportTagsRequest,
    ImportTagsResult,
    ResolveResult,
    TagList,
    TagOut,
    TagStats,
)
from nexus_cards.services.nfc_service import NfcService

router = APIRouter(prefix="/nfc", tags=["nfc"])


@router.get("/resolve/{uid}", response_model=ResolveResult)
def resolve_tag(uid: str, request: Request, nfc: NfcService = Depends(get_nfc_service)):
    rate_limit_ip(request, "nfc:resolve", limit=60, window_seconds=60)
    return asdict(nfc.resolve(uid, **request_meta(request)))


@router.get("/tags", response_model=list[TagOut])
def my_tags(user: User = Depends(get_current_user), nfc: NfcService = Depends(get_nfc_service)):
    return nfc.list_for_user(user.id)


@router.get("/cards/{card_id}/tags", response_model=list[TagOut])
def card_tags(card_id: str, user: User = Depends(get_current_user), nfc: NfcService = Depends(get_nfc_service)):
    return nfc.list_for_card(card_id, user.id)


@router.post("/tags/{tag_id}/associate", response_model=TagOut)
def associate_tag(
    tag_id: str,
    payload: AssociateRequest,
    user: User = Depends(get_current_user),
    nfc: NfcService = Depends(get_nfc_service),
):
    return nfc.associate(tag_id, user.id, payload.card_id)


@router.post("/tags/{tag_id}/disassociate", response_model=TagOut)
def disassociate_tag(tag_id: str, user: User = Depends(get_current_user), nfc: NfcService = Depends(get_nfc_service)):
    return nfc.disassociate(tag_id, user.id)


# -------------------------------------- admin --------------------------------------
@router.post("/admin/import", response_model=ImportTagsResult)
def import_tags(payload: ImportTagsRequest, admin: User = Depends(require_admin), nfc: NfcService = Depends(get_nfc_service)):
    return nfc.import_tags(payload.uids)


@router.patch("/admin/tags/{tag_id}/assign", response_model=TagOut)
def assign_tag(
    tag_id: str,
    payload: AssignRequest,
    admin: User = Depends(require_admin),
    nfc: NfcService = Depends(get_nfc_service),
):
    return nfc.assign_to_user(tag_id, user_id=payload.user_id, user_email=payload.user_email)


@router.delete("/admin/tags/{tag_id}/revoke", response_model=TagOut)
def revoke_tag(tag_id: str, admin: User = Depends(require_admin), nfc: NfcService = Depends(get_nfc_service)):
    return nfc.revoke(tag_id)


@router.get("/admin/tags", response_model=TagList)
def list_tags(
    status: Optional[str] = None,
    skip: int = Query(0, ge=0),
    take: int = Query(50, ge=1, le=200),
    admin: User = Depends(require_admin),
    nfc: NfcService = Depends(get_nfc_service),
):
    tags, total = nfc.list_all(status=status, skip=skip, take=take)
    return {"tags": tags, "total": total, "skip": skip, "take": take}


@router.get("/admin/stats", response_model=TagStats)
def tag_stats(admin: User = Depends(require_admin), nfc: NfcService = Depends(get_nfc_service)):
    return nfc.stats()
