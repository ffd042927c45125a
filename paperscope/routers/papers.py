"""
Papers router: listing, detail, create, update, delete and recommendations.
"""

import logging
from typing import List, Optional, Union

from fastapi import APIRouter, Depends, Query, status

from paperscope import db_queries
from paperscope.database import Database
from paperscope.dependencies import get_db, get_recommender
from paperscope.errors import ErrorKind, PaperScopeError, not_found
from paperscope.models import (
    BatchCreateResponse,
    BatchPaperCreate,
    MessageResponse,
    Pagination,
    PaperCreate,
    PaperCreateResponse,
    PaperDetail,
    PaperListResponse,
    PaperStatus,
    PaperSummary,
    PaperUpdate,
    RecommendedPaper,
)
from paperscope.services import paper_writes
from paperscope.services.recommendations import RecommendationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/papers", tags=["papers"])


@router.get("", response_model=Union[PaperListResponse, List[PaperSummary]])
async def list_papers(
    search: Optional[str] = Query(None, description="Legacy free-text filter (latest 20 papers)"),
    q: Optional[str] = Query(None, description="Free-text filter on title and abstract"),
    venue_id: Optional[str] = Query(None),
    status: Optional[PaperStatus] = Query(None),
    page: Optional[int] = Query(None, ge=1),
    limit: Optional[int] = Query(None, ge=1, le=db_queries.MAX_PAGE_SIZE),
    db: Database = Depends(get_db)
):
    """
    List papers.

    Without any of q/venue_id/status/page/limit this is the legacy listing:
    a plain array of the latest 20 papers, optionally filtered by `search`.
    Otherwise it returns one page plus a pagination envelope; `search` is
    used as the text filter there when `q` is absent.
    """
    paginated = any(value is not None for value in (q, venue_id, status, page, limit))

    async with db.connect() as conn:
        if not paginated:
            return await db_queries.list_latest_papers(conn, search)

        page = page or 1
        limit = limit or db_queries.DEFAULT_PAGE_SIZE
        papers, total = await db_queries.list_papers_page(
            conn,
            q=q if q is not None else search,
            venue_id=venue_id,
            status=status.value if status else None,
            page=page,
            limit=limit
        )

    return PaperListResponse(
        papers=papers,
        pagination=Pagination(
            page=page,
            limit=limit,
            total=total,
            totalPages=db_queries.total_pages(total, limit)
        )
    )


@router.post("/with-authors", response_model=PaperCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_paper_with_authors(paper: PaperCreate, db: Database = Depends(get_db)):
    """Create one paper and its authorship rows in a single transaction"""
    return await paper_writes.create_paper_with_authors(db, paper)


@router.post("/batch-with-authors", response_model=BatchCreateResponse, status_code=status.HTTP_201_CREATED)
async def batch_create_papers(batch: BatchPaperCreate, db: Database = Depends(get_db)):
    """Create up to 100 papers atomically"""
    return await paper_writes.batch_create_papers(db, batch.papers)


@router.get("/{paper_id}", response_model=PaperDetail)
async def get_paper(paper_id: str, db: Database = Depends(get_db)):
    async with db.connect() as conn:
        paper = await db_queries.get_paper_detail(conn, paper_id)

    if paper is None:
        raise not_found("Paper", paper_id)
    return paper


@router.put("/{paper_id}", response_model=MessageResponse)
async def update_paper(paper_id: str, update: PaperUpdate, db: Database = Depends(get_db)):
    """Update a paper (used for editing AI drafts and promoting them to review)"""
    await paper_writes.update_paper(db, paper_id, update)
    return MessageResponse(message="Paper updated successfully")


@router.delete("/{paper_id}", response_model=MessageResponse)
async def delete_paper(
    paper_id: str,
    user_id: Optional[str] = Query(None),
    db: Database = Depends(get_db)
):
    if not user_id:
        raise PaperScopeError(ErrorKind.VALIDATION, "user_id is required")

    await paper_writes.delete_paper(db, paper_id, user_id)
    return MessageResponse(message="Paper deleted successfully")


@router.get("/{paper_id}/recommendations", response_model=List[RecommendedPaper])
async def recommend_papers(
    paper_id: str,
    db: Database = Depends(get_db),
    recommender: RecommendationService = Depends(get_recommender)
):
    """
    Papers from the catalog most similar to `paper_id`, best first.

    Responds 503 without touching the database when recommendations are not
    configured, and 503 when the model gives no usable answer.
    """
    if not recommender.is_configured:
        raise PaperScopeError(ErrorKind.UNAVAILABLE, "Recommendations are not configured")

    async with db.connect() as conn:
        source = await db_queries.get_paper_text(conn, paper_id)
        if source is None:
            raise not_found("Paper", paper_id)
        candidates = await db_queries.list_recommendation_candidates(conn, paper_id)

    if not candidates:
        logger.info(f"No candidate papers to recommend for {paper_id}")
        return []

    result = await recommender.recommend(source, candidates)
    if not result.available:
        raise PaperScopeError(ErrorKind.UNAVAILABLE, "No recommendations available", detail=result.reason)

    async with db.connect() as conn:
        return await db_queries.get_papers_by_ids(conn, result.paper_ids)
