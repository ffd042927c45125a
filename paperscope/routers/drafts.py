from fastapi import APIRouter, Depends, status

from paperscope.database import Database
from paperscope.dependencies import get_db
from paperscope.models import AIDraftCreate, AIDraftResponse
from paperscope.services import paper_writes

router = APIRouter(prefix="/api/ai-drafts", tags=["ai-drafts"])


@router.post("", response_model=AIDraftResponse, status_code=status.HTTP_201_CREATED)
async def create_ai_draft(draft: AIDraftCreate, db: Database = Depends(get_db)):
    """Save a recommended paper as an AI_DRAFT owned by the user"""
    return await paper_writes.create_ai_draft(db, draft)
