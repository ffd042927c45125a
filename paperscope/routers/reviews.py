"""
Reviews router: paper reviews, reviewable papers and reviewer ranking.
"""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from paperscope import db_queries
from paperscope.database import Database
from paperscope.dependencies import get_db
from paperscope.errors import not_found
from paperscope.models import (
    Pagination,
    Review,
    ReviewablePaperListResponse,
    ReviewCreate,
    ReviewerRank,
)
from paperscope.services import paper_writes

router = APIRouter(prefix="/api", tags=["reviews"])


@router.get("/papers/{paper_id}/reviews", response_model=List[Review])
async def list_paper_reviews(paper_id: str, db: Database = Depends(get_db)):
    """Reviews for a paper, newest first"""
    async with db.connect() as conn:
        if not await db_queries.paper_exists(conn, paper_id):
            raise not_found("Paper", paper_id)
        return await db_queries.list_reviews(conn, paper_id)


@router.post("/papers/{paper_id}/reviews", response_model=Review, status_code=status.HTTP_201_CREATED)
async def submit_review(paper_id: str, review: ReviewCreate, db: Database = Depends(get_db)):
    return await paper_writes.create_review(db, paper_id, review)


@router.get("/reviewable-papers", response_model=ReviewablePaperListResponse)
async def list_reviewable_papers(
    user_id: str = Query(..., min_length=1),
    venue_id: Optional[str] = Query(None),
    q: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(db_queries.DEFAULT_PAGE_SIZE, ge=1, le=db_queries.MAX_PAGE_SIZE),
    db: Database = Depends(get_db)
):
    """Papers under review that `user_id` neither wrote nor already reviewed"""
    async with db.connect() as conn:
        papers, total = await db_queries.list_reviewable_papers(conn, user_id, venue_id, q, page, limit)

    return ReviewablePaperListResponse(
        papers=papers,
        pagination=Pagination(
            page=page,
            limit=limit,
            total=total,
            totalPages=db_queries.total_pages(total, limit)
        )
    )


@router.get("/reviewers/top", response_model=List[ReviewerRank])
async def top_reviewers(
    from_date: date = Query(date(2024, 1, 1), alias="from"),
    to_date: date = Query(date(2025, 12, 31), alias="to"),
    db: Database = Depends(get_db)
):
    async with db.connect() as conn:
        return await db_queries.get_top_reviewers(conn, from_date, to_date)
