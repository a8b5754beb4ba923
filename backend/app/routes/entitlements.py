"""API routes reporting what the signed-in user's plan unlocks."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from ..billing import AuthenticatedUser
from ..entitlements import FEATURE_NAMES
from ..schemas.entitlements import EntitlementsResponse, FeatureAccessResponse, SubjectAccessResponse
from ..services.entitlements import get_entitlement_service
from ...auth import get_current_user


router = APIRouter(prefix="/api/entitlements", tags=["entitlements"])


@router.get("", response_model=EntitlementsResponse)
def get_entitlements(
    *,
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> EntitlementsResponse:
    entitlements = get_entitlement_service().get_entitlements(current_user.id)
    return EntitlementsResponse.from_entitlements(entitlements)


@router.get("/features/{feature}", response_model=FeatureAccessResponse)
def check_feature(
    feature: str,
    *,
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> FeatureAccessResponse:
    if feature not in FEATURE_NAMES:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown feature: {feature}")
    enabled = get_entitlement_service().has_feature(current_user.id, feature)
    return FeatureAccessResponse(feature=feature, enabled=enabled)


@router.get("/subjects/{subject}", response_model=SubjectAccessResponse)
def check_subject_access(
    subject: str,
    *,
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> SubjectAccessResponse:
    allowed = get_entitlement_service().can_access(current_user.id, subject)
    return SubjectAccessResponse(subject=subject, allowed=allowed)
