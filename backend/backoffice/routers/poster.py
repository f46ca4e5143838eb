"""
Poster POS integration endpoints.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from backoffice.routers._common import get_partner_id, get_user_id
from backoffice.routers.schemas import PosterSpot, PosterSyncOutput, PosterTestOutput
from backoffice.services.domain import PosterService
from shared.config.constants import Sections
from shared.infrastructure.db import get_db
from shared.security.access import require_section

router = APIRouter(prefix="/api/integrations/poster", tags=["poster"])

require_poster = require_section(Sections.POSTER_SETTINGS)


@router.post("/test", response_model=PosterTestOutput)
async def test_connection(
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_poster),
) -> PosterTestOutput:
    return await PosterService(db).test_connection(get_partner_id(ctx))


@router.post("/sync", response_model=PosterSyncOutput)
async def sync_menu(
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_section(Sections.POSTER_SETTINGS, Sections.MENU_PRODUCTS)),
) -> PosterSyncOutput:
    return await PosterService(db).sync(get_partner_id(ctx), get_user_id(ctx))


@router.get("/spots", response_model=list[PosterSpot])
async def list_spots(
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_section(Sections.POSTER_SETTINGS, Sections.BRANCHES)),
) -> list[PosterSpot]:
    return await PosterService(db).spots(get_partner_id(ctx))
