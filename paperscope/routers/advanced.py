"""
Advanced analytical queries used by the reports page.
"""

from datetime import date
from typing import List

from fastapi import APIRouter, Depends, Query

from paperscope import db_queries
from paperscope.database import Database
from paperscope.dependencies import get_db
from paperscope.models import ReviewedAuthor, UserPaperActivity, UserPaperReviews, VenueYearActivity

router = APIRouter(prefix="/api/advanced", tags=["advanced"])


@router.get("/query1", response_model=List[UserPaperActivity])
async def user_papers_by_year(
    user_id: str = Query(..., min_length=1),
    year: int = Query(2024, ge=1900, le=3000),
    db: Database = Depends(get_db)
):
    """A user's project papers uploaded since January 1 of `year`"""
    async with db.connect() as conn:
        return await db_queries.get_user_papers_since_year(conn, user_id, year)


@router.get("/query2", response_model=List[VenueYearActivity])
async def venue_activity(
    year: int = Query(2020, ge=1900, le=3000),
    db: Database = Depends(get_db)
):
    async with db.connect() as conn:
        return await db_queries.get_venue_activity_by_year(conn, year)


@router.get("/query3", response_model=List[ReviewedAuthor])
async def top_reviewed_authors(
    start_date: date = Query(date(2024, 1, 1)),
    end_date: date = Query(date(2025, 12, 31)),
    db: Database = Depends(get_db)
):
    """Reviewer-flagged authors ranked by reviews their papers received"""
    async with db.connect() as conn:
        return await db_queries.get_top_reviewed_authors(conn, start_date, end_date)


@router.get("/query4", response_model=List[UserPaperReviews])
async def user_paper_reviews(
    user_id: str = Query(..., min_length=1),
    db: Database = Depends(get_db)
):
    async with db.connect() as conn:
        return await db_queries.get_user_paper_reviews(conn, user_id)
