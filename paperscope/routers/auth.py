from fastapi import APIRouter, Depends

from paperscope.auth import authenticate_user
from paperscope.database import Database
from paperscope.dependencies import get_db
from paperscope.models import LoginRequest, LoginResponse

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/login", response_model=LoginResponse)
async def login(credentials: LoginRequest, db: Database = Depends(get_db)):
    """Log in with a user id and password"""
    return await authenticate_user(db, credentials.username, credentials.password)
