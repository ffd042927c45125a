from typing import List

from fastapi import APIRouter, Depends, Query

from paperscope import db_queries
from paperscope.database import Database
from paperscope.dependencies import get_db
from paperscope.models import Venue, VenueActivity

router = APIRouter(prefix="/api/venues", tags=["venues"])


@router.get("", response_model=List[Venue])
async def list_venues(db: Database = Depends(get_db)):
    async with db.connect() as conn:
        return await db_queries.list_venues(conn)


@router.get("/recent", response_model=List[VenueActivity])
async def recent_venues(
    since_year: int = Query(2018, alias="sinceYear", ge=1900, le=3000),
    db: Database = Depends(get_db)
):
    """Published-paper counts per venue since a year"""
    async with db.connect() as conn:
        return await db_queries.get_recent_venue_activity(conn, since_year)
