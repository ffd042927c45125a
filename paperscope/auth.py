import logging
import secrets
from typing import Optional

from paperscope.database import Database
from paperscope.db_queries import get_login_record
from paperscope.errors import ErrorKind, PaperScopeError
from paperscope.models import LoginResponse, LoginUser

logger = logging.getLogger(__name__)

SESSION_TOKEN = "authenticated"


def passwords_match(stored: Optional[str], supplied: str) -> bool:
    """Constant-time comparison of the stored and supplied passwords"""
    if stored is None:
        return False
    return secrets.compare_digest(stored.encode("utf-8"), supplied.encode("utf-8"))


async def authenticate_user(db: Database, username: Optional[str], password: Optional[str]) -> LoginResponse:
    """
    Check a user id / password pair.

    Args:
        db: Database
        username: The user's id (e.g. U001)
        password: Plain password

    Returns:
        LoginResponse with the public user record

    Raises:
        PaperScopeError: VALIDATION when a field is missing, UNAUTHORIZED on mismatch
    """
    if not username or not password:
        raise PaperScopeError(ErrorKind.VALIDATION, "Username and password are required")

    async with db.connect() as conn:
        record = await get_login_record(conn, username)

    if record is None or not passwords_match(record.pop("password", None), password):
        logger.info(f"Failed login for {username}")
        raise PaperScopeError(ErrorKind.UNAUTHORIZED, "Invalid username or password")

    logger.info(f"User {username} logged in")
    return LoginResponse(
        token=SESSION_TOKEN,
        user=LoginUser(username=record["user_id"], **record)
    )
