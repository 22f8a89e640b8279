from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.affiliates import track_affiliate_link_click
from app.core.db import get_db
from app.schemas.affiliates import LinkClickRead


router = APIRouter(prefix="/links", tags=["links"])


@router.post("/{slug}/click", response_model=LinkClickRead)
def record_link_click(slug: str, db: Session = Depends(get_db)):
    link = track_affiliate_link_click(db, slug)
    return LinkClickRead(slug=link.slug, product_id=link.product_id, clicks=link.clicks)
