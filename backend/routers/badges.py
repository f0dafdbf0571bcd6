"""
Backend Router — Badges
=========================

GET /badges/{owner}           — Token ids and metadata held by an owner
GET /badges/token/{token_id}  — Metadata of a single badge
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from assessment_engine.engine import AssessmentEngine
from assessment_engine.models import BadgeMetadata
from backend.config import get_engine
from certification.ledger import LedgerError, TokenNotFound

logger = logging.getLogger("backend.badges")
router = APIRouter(prefix="/badges", tags=["Badges"])


class OwnerBadgesResponse(BaseModel):
    owner: str
    badge_count: int
    token_ids: list[int]
    badges: list[BadgeMetadata] = []


@router.get("/token/{token_id}", response_model=BadgeMetadata)
def get_badge(token_id: int, engine: AssessmentEngine = Depends(get_engine)):
    """Metadata of one minted badge."""
    try:
        return engine.issuer.ledger.get_metadata(token_id)
    except TokenNotFound as exc:
        raise HTTPException(status_code=404, detail=exc.reason)
    except LedgerError as exc:
        logger.error("Badge lookup failed: %s", exc.reason)
        raise HTTPException(status_code=502, detail=exc.reason)


@router.get("/{owner}", response_model=OwnerBadgesResponse)
def get_owner_badges(owner: str, engine: AssessmentEngine = Depends(get_engine)):
    """Every badge held by ``owner``, oldest first."""
    ledger = engine.issuer.ledger
    try:
        token_ids = ledger.get_badges(owner)
        badges = [ledger.get_metadata(t) for t in token_ids]
    except LedgerError as exc:
        logger.error("Badge listing for %s failed: %s", owner, exc.reason, exc_info=True)
        raise HTTPException(status_code=502, detail=exc.reason)

    return OwnerBadgesResponse(
        owner=owner,
        badge_count=len(token_ids),
        token_ids=token_ids,
        badges=badges,
    )
