"""
Lookup lists used by the paper creation forms.
"""

from typing import List

from fastapi import APIRouter, Depends

from paperscope import db_queries
from paperscope.database import Database
from paperscope.dependencies import get_db
from paperscope.models import Dataset, Project, UserPublic

router = APIRouter(prefix="/api", tags=["catalog"])


@router.get("/projects", response_model=List[Project])
async def list_projects(db: Database = Depends(get_db)):
    async with db.connect() as conn:
        return await db_queries.list_projects(conn)


@router.get("/datasets", response_model=List[Dataset])
async def list_datasets(db: Database = Depends(get_db)):
    async with db.connect() as conn:
        return await db_queries.list_datasets(conn)


@router.get("/users", response_model=List[UserPublic])
async def list_users(db: Database = Depends(get_db)):
    async with db.connect() as conn:
        return await db_queries.list_users(conn)
