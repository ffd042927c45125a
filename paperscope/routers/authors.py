"""
Author-centric views: portfolio, insights, and a user's review workload.
"""

from datetime import date
from typing import List

from fastapi import APIRouter, Depends, Query

from paperscope import db_queries
from paperscope.database import Database
from paperscope.dependencies import get_db
from paperscope.errors import not_found
from paperscope.models import AssignedReview, AuthorInsights, PaperInReview, PortfolioEntry

router = APIRouter(prefix="/api", tags=["authors"])


@router.get("/authors/{user_id}/portfolio", response_model=List[PortfolioEntry])
async def author_portfolio(
    user_id: str,
    since: date = Query(date(2018, 1, 1)),
    include_coauthors: bool = Query(False),
    db: Database = Depends(get_db)
):
    """
    Papers authored by `user_id` since a date, with their projects.

    With include_coauthors the stored procedure is used, which also returns
    a comma-separated list of co-author names per paper.
    """
    async with db.connect() as conn:
        if include_coauthors:
            return await db_queries.get_author_portfolio_with_coauthors(conn, user_id, since)
        return await db_queries.get_author_portfolio(conn, user_id, since)


@router.get("/authors/{user_id}/insights", response_model=AuthorInsights)
async def author_insights(user_id: str, db: Database = Depends(get_db)):
    async with db.connect() as conn:
        return await db_queries.get_author_insights(conn, user_id)


@router.get("/users/{user_id}/papers-in-review", response_model=List[PaperInReview])
async def papers_in_review(user_id: str, db: Database = Depends(get_db)):
    async with db.connect() as conn:
        return await db_queries.get_papers_in_review(conn, user_id)


@router.get("/users/{user_id}/assigned-reviews", response_model=List[AssignedReview])
async def assigned_reviews(user_id: str, db: Database = Depends(get_db)):
    """Papers a reviewer could review; empty for non-reviewers"""
    async with db.connect() as conn:
        is_reviewer = await db_queries.get_user_reviewer_flag(conn, user_id)
        if is_reviewer is None:
            raise not_found("User", user_id)
        if not is_reviewer:
            return []
        return await db_queries.get_assigned_reviews(conn, user_id)
