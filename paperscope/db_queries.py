"""
Database query helpers for the PaperScope API.

Each function runs a fixed, parameterized statement on the connection it is
given and returns API models. User input only ever reaches SQL through bind
parameters; LIMIT/OFFSET are interpolated after being validated as bounded
integers, and IN-lists get one generated placeholder per value.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncConnection

from paperscope.errors import ErrorKind, PaperScopeError
from paperscope.models import (
    AssignedReview,
    AuthorInsights,
    Dataset,
    InsightsSummary,
    PaperDetail,
    PaperInReview,
    PaperStatus,
    PaperSummary,
    PortfolioEntry,
    Project,
    RecommendedPaper,
    Review,
    ReviewablePaper,
    ReviewedAuthor,
    ReviewerRank,
    StatusCount,
    TopReviewedPaper,
    UserPaperActivity,
    UserPaperReviews,
    UserPublic,
    Venue,
    VenueActivity,
    VenueYearActivity,
    YearlyStat,
)

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
LATEST_PAPERS_LIMIT = 20

REVIEW_OPEN_STATUSES = (PaperStatus.UNDER_REVIEW.value, PaperStatus.IN_REVIEW.value)


# ============================================================================
# SQL BUILDING HELPERS
# ============================================================================

def resolve_paging(page: Any, limit: Any) -> Tuple[int, int, int]:
    """
    Validate pagination input.

    Args:
        page: 1-based page number
        limit: Page size, 1..MAX_PAGE_SIZE

    Returns:
        Tuple of (page, limit, offset) as ints safe to interpolate

    Raises:
        PaperScopeError: VALIDATION if either value is not a bounded integer
    """
    try:
        page = int(page)
        limit = int(limit)
    except (TypeError, ValueError):
        raise PaperScopeError(ErrorKind.VALIDATION, "page and limit must be integers")

    if page < 1:
        raise PaperScopeError(ErrorKind.VALIDATION, "page must be >= 1")
    if limit < 1 or limit > MAX_PAGE_SIZE:
        raise PaperScopeError(ErrorKind.VALIDATION, f"limit must be between 1 and {MAX_PAGE_SIZE}")

    return page, limit, (page - 1) * limit


def limit_clause(limit: int, offset: int = 0) -> str:
    return f" LIMIT {int(limit)} OFFSET {int(offset)}"


def total_pages(total: int, limit: int) -> int:
    if total <= 0:
        return 0
    return (total + limit - 1) // limit


def expand_in(name: str, values: Sequence[Any]) -> Tuple[str, Dict[str, Any]]:
    """
    Build named placeholders for an IN (...) list.

    Returns:
        Tuple of (":name_0, :name_1, ...", {"name_0": v0, ...})
    """
    if not values:
        raise ValueError(f"IN-list '{name}' must not be empty")

    params = {f"{name}_{i}": value for i, value in enumerate(values)}
    placeholders = ", ".join(f":{key}" for key in params)
    return placeholders, params


def like_pattern(term: str) -> str:
    """Lower-cased substring pattern with LIKE wildcards escaped"""
    escaped = term.lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def day_window(start: date, end: date) -> Tuple[str, str]:
    """Inclusive datetime bounds covering whole days"""
    if start > end:
        raise PaperScopeError(ErrorKind.VALIDATION, "start date must not be after end date")
    return f"{start.isoformat()} 00:00:00", f"{end.isoformat()} 23:59:59"


def paper_filters(
    q: Optional[str] = None,
    venue_id: Optional[str] = None,
    status: Optional[str] = None
) -> Tuple[List[str], Dict[str, Any]]:
    """WHERE conditions shared by a listing query and its count query"""
    conditions = []
    params: Dict[str, Any] = {}

    if q and q.strip():
        conditions.append("(LOWER(p.paper_title) LIKE :like OR LOWER(p.abstract) LIKE :like)")
        params["like"] = like_pattern(q.strip())
    if venue_id and venue_id.strip():
        conditions.append("p.venue_id = :venue_id")
        params["venue_id"] = venue_id.strip()
    if status:
        conditions.append("p.status = :status")
        params["status"] = status

    return conditions, params


def where_sql(conditions: List[str]) -> str:
    return (" WHERE " + " AND ".join(conditions)) if conditions else ""


async def fetch_all(conn: AsyncConnection, sql: str, params: Optional[Dict[str, Any]] = None) -> list:
    result = await conn.execute(text(sql), params or {})
    return result.mappings().all()


async def fetch_one(conn: AsyncConnection, sql: str, params: Optional[Dict[str, Any]] = None):
    result = await conn.execute(text(sql), params or {})
    return result.mappings().first()


# ============================================================================
# PAPERS
# ============================================================================

PAPER_COLUMNS = """
    p.paper_id, p.paper_title, p.abstract, p.pdf_url,
    p.upload_timestamp, p.status, p.venue_id,
    v.venue_name, v.year
"""

REVIEW_STATS_COLUMNS = """
    (SELECT COUNT(*) FROM Reviews r WHERE r.paper_id = p.paper_id) AS review_count,
    (SELECT MAX(r.review_timestamp) FROM Reviews r WHERE r.paper_id = p.paper_id) AS last_review_at
"""


async def list_latest_papers(conn: AsyncConnection, search: Optional[str] = None) -> List[PaperSummary]:
    """
    Latest papers with venue, optionally matching a search term.

    Args:
        conn: Database connection
        search: Case-insensitive substring of title or abstract

    Returns:
        Up to LATEST_PAPERS_LIMIT papers, newest upload first
    """
    conditions, params = paper_filters(q=search)
    sql = (
        f"SELECT {PAPER_COLUMNS} FROM Papers p "
        "LEFT JOIN Venues v ON v.venue_id = p.venue_id"
        + where_sql(conditions)
        + " ORDER BY p.upload_timestamp DESC"
        + limit_clause(LATEST_PAPERS_LIMIT)
    )
    rows = await fetch_all(conn, sql, params)
    return [PaperSummary(**row) for row in rows]


async def list_papers_page(
    conn: AsyncConnection,
    q: Optional[str],
    venue_id: Optional[str],
    status: Optional[str],
    page: int,
    limit: int
) -> Tuple[List[PaperSummary], int]:
    """
    One page of papers plus the total matching the same filters.

    Returns:
        Tuple of (papers on this page, total_count)
    """
    page, limit, offset = resolve_paging(page, limit)
    conditions, params = paper_filters(q=q, venue_id=venue_id, status=status)
    where = where_sql(conditions)

    count_row = await fetch_one(conn, f"SELECT COUNT(*) AS total FROM Papers p{where}", params)
    total = int(count_row["total"]) if count_row else 0

    sql = (
        f"SELECT {PAPER_COLUMNS} FROM Papers p "
        "LEFT JOIN Venues v ON v.venue_id = p.venue_id"
        + where
        + " ORDER BY p.upload_timestamp DESC, p.paper_id"
        + limit_clause(limit, offset)
    )
    rows = await fetch_all(conn, sql, params)
    logger.info(f"Papers page {page}: {len(rows)} of {total} rows")
    return [PaperSummary(**row) for row in rows], total


async def get_paper_detail(conn: AsyncConnection, paper_id: str) -> Optional[PaperDetail]:
    """
    Get a single paper with its review count and latest review time.

    Returns:
        PaperDetail or None if not found
    """
    row = await fetch_one(conn, """
        SELECT
            p.paper_id, p.paper_title, p.abstract, p.pdf_url, p.upload_timestamp, p.status,
            p.venue_id, v.venue_name, v.year,
            COUNT(r.review_id) AS review_count,
            MAX(r.review_timestamp) AS last_review_at
        FROM Papers p
        LEFT JOIN Venues v ON v.venue_id = p.venue_id
        LEFT JOIN Reviews r ON r.paper_id = p.paper_id
        WHERE p.paper_id = :paper_id
        GROUP BY p.paper_id, p.paper_title, p.abstract, p.pdf_url, p.upload_timestamp, p.status,
                 p.venue_id, v.venue_name, v.year
    """, {"paper_id": paper_id})

    if not row:
        return None
    return PaperDetail(**row)


async def paper_exists(conn: AsyncConnection, paper_id: str) -> bool:
    row = await fetch_one(conn, "SELECT paper_id FROM Papers WHERE paper_id = :paper_id", {"paper_id": paper_id})
    return row is not None


# ============================================================================
# CATALOG
# ============================================================================

async def list_venues(conn: AsyncConnection) -> List[Venue]:
    rows = await fetch_all(conn, """
        SELECT venue_id, venue_name, venue_type, publisher, year
        FROM Venues
        ORDER BY year DESC, venue_name ASC
    """)
    return [Venue(**row) for row in rows]


async def list_projects(conn: AsyncConnection) -> List[Project]:
    rows = await fetch_all(conn, """
        SELECT project_id, project_title, description, project_date
        FROM Projects
        ORDER BY project_date DESC, project_title ASC
    """)
    return [Project(**row) for row in rows]


async def list_datasets(conn: AsyncConnection) -> List[Dataset]:
    rows = await fetch_all(conn, """
        SELECT dataset_id, dataset_name, dataset_url, domain, access_type
        FROM Datasets
        ORDER BY dataset_name ASC
    """)
    return [Dataset(**row) for row in rows]


async def list_users(conn: AsyncConnection) -> List[UserPublic]:
    # Never select the password column here
    rows = await fetch_all(conn, """
        SELECT user_id, user_name, email, affiliation, is_reviewer
        FROM Users
        ORDER BY user_id ASC
    """)
    return [UserPublic(**row) for row in rows]


async def get_recent_venue_activity(conn: AsyncConnection, since_year: int) -> List[VenueActivity]:
    """Published-paper counts per venue held in or after `since_year`"""
    rows = await fetch_all(conn, """
        SELECT
            v.venue_id, v.venue_name, v.year,
            COUNT(p.paper_id) AS total_papers
        FROM Venues v
        JOIN Papers p ON p.venue_id = v.venue_id
        WHERE v.year >= :since_year AND p.status = 'Published'
        GROUP BY v.venue_id, v.venue_name, v.year
        ORDER BY v.year DESC, total_papers DESC
        LIMIT 25
    """, {"since_year": since_year})
    return [VenueActivity(**row) for row in rows]


# ============================================================================
# AUTHORS
# ============================================================================

async def get_author_portfolio(conn: AsyncConnection, user_id: str, since: date) -> List[PortfolioEntry]:
    """
    Papers authored by a user since a date, grouped with their project.

    Args:
        conn: Database connection
        user_id: Author
        since: Papers uploaded on or after this date (undated papers included)

    Returns:
        Up to 50 entries, newest first
    """
    rows = await fetch_all(conn, """
        SELECT
            pr.project_id, pr.project_title,
            p.paper_id, p.paper_title, p.upload_timestamp,
            COUNT(r.review_id) AS review_count
        FROM Authorship a
        JOIN Papers p ON p.paper_id = a.paper_id
        JOIN Projects pr ON pr.project_id = p.project_id
        LEFT JOIN Reviews r ON r.paper_id = p.paper_id
        WHERE a.user_id = :user_id AND (p.upload_timestamp IS NULL OR p.upload_timestamp >= :since)
        GROUP BY pr.project_id, pr.project_title, p.paper_id, p.paper_title, p.upload_timestamp
        ORDER BY p.upload_timestamp DESC, review_count DESC
        LIMIT 50
    """, {"user_id": user_id, "since": since.isoformat()})
    return [PortfolioEntry(**row) for row in rows]


async def get_author_portfolio_with_coauthors(
    conn: AsyncConnection,
    user_id: str,
    since: date
) -> List[PortfolioEntry]:
    """Portfolio through the stored procedure, which adds co-author names"""
    rows = await fetch_all(
        conn,
        "CALL sp_get_author_portfolio(:user_id, :since)",
        {"user_id": user_id, "since": since.isoformat()}
    )
    return [PortfolioEntry(**row) for row in rows]


async def get_author_insights(conn: AsyncConnection, user_id: str) -> AuthorInsights:
    """
    Publication and review statistics over a user's authored papers.

    Returns:
        AuthorInsights; summary is None when the user has no papers
    """
    params = {"user_id": user_id}

    summary_row = await fetch_one(conn, """
        SELECT
            COUNT(DISTINCT p.paper_id) AS total_papers,
            COUNT(r.review_id) AS total_reviews,
            MIN(p.upload_timestamp) AS first_upload,
            MAX(p.upload_timestamp) AS last_upload
        FROM Authorship a
        JOIN Papers p ON p.paper_id = a.paper_id
        LEFT JOIN Reviews r ON r.paper_id = p.paper_id
        WHERE a.user_id = :user_id
    """, params)

    summary = None
    if summary_row and summary_row["total_papers"]:
        total_papers = int(summary_row["total_papers"])
        total_reviews = int(summary_row["total_reviews"] or 0)
        summary = InsightsSummary(
            total_papers=total_papers,
            total_reviews=total_reviews,
            avg_reviews_per_paper=round(total_reviews / total_papers, 2),
            first_upload=summary_row["first_upload"],
            last_upload=summary_row["last_upload"]
        )

    top_rows = await fetch_all(conn, """
        SELECT
            p.paper_id, p.paper_title, p.pdf_url,
            COUNT(r.review_id) AS review_count,
            MAX(r.review_timestamp) AS last_review_at
        FROM Authorship a
        JOIN Papers p ON p.paper_id = a.paper_id
        LEFT JOIN Reviews r ON r.paper_id = p.paper_id
        WHERE a.user_id = :user_id
        GROUP BY p.paper_id, p.paper_title, p.pdf_url
        HAVING COUNT(r.review_id) > 0
        ORDER BY review_count DESC, last_review_at DESC
        LIMIT 5
    """, params)

    yearly_rows = await fetch_all(conn, """
        SELECT
            YEAR(p.upload_timestamp) AS year,
            COUNT(DISTINCT p.paper_id) AS papers_published,
            COUNT(r.review_id) AS reviews_received
        FROM Authorship a
        JOIN Papers p ON p.paper_id = a.paper_id
        LEFT JOIN Reviews r ON r.paper_id = p.paper_id
        WHERE a.user_id = :user_id AND p.upload_timestamp IS NOT NULL
        GROUP BY YEAR(p.upload_timestamp)
        ORDER BY year DESC
    """, params)

    status_rows = await fetch_all(conn, """
        SELECT p.status, COUNT(*) AS paper_count
        FROM Authorship a
        JOIN Papers p ON p.paper_id = a.paper_id
        WHERE a.user_id = :user_id
        GROUP BY p.status
        ORDER BY paper_count DESC
    """, params)

    return AuthorInsights(
        summary=summary,
        top_reviewed_papers=[TopReviewedPaper(**row) for row in top_rows],
        yearly_stats=[YearlyStat(**row) for row in yearly_rows],
        status_breakdown=[StatusCount(**row) for row in status_rows]
    )


async def get_papers_in_review(conn: AsyncConnection, user_id: str) -> List[PaperInReview]:
    """Papers the user authored that are still being reviewed"""
    statuses, status_params = expand_in("status", REVIEW_OPEN_STATUSES)
    rows = await fetch_all(conn, f"""
        SELECT {PAPER_COLUMNS}, {REVIEW_STATS_COLUMNS}
        FROM Authorship a
        JOIN Papers p ON p.paper_id = a.paper_id
        LEFT JOIN Venues v ON v.venue_id = p.venue_id
        WHERE a.user_id = :user_id AND p.status IN ({statuses})
        ORDER BY p.upload_timestamp DESC
    """, {"user_id": user_id, **status_params})
    return [PaperInReview(**row) for row in rows]


async def get_user_reviewer_flag(conn: AsyncConnection, user_id: str) -> Optional[bool]:
    """is_reviewer for a user, or None if the user does not exist"""
    row = await fetch_one(conn, "SELECT is_reviewer FROM Users WHERE user_id = :user_id", {"user_id": user_id})
    if row is None:
        return None
    return bool(row["is_reviewer"])


async def get_assigned_reviews(conn: AsyncConnection, user_id: str) -> List[AssignedReview]:
    """Papers under review that the user did not author"""
    statuses, status_params = expand_in("status", REVIEW_OPEN_STATUSES)
    rows = await fetch_all(conn, f"""
        SELECT
            {PAPER_COLUMNS}, {REVIEW_STATS_COLUMNS},
            EXISTS (
                SELECT 1 FROM Reviews rv
                WHERE rv.paper_id = p.paper_id AND rv.user_id = :user_id
            ) AS has_reviewed
        FROM Papers p
        LEFT JOIN Venues v ON v.venue_id = p.venue_id
        WHERE p.status IN ({statuses})
          AND NOT EXISTS (
              SELECT 1 FROM Authorship a WHERE a.paper_id = p.paper_id AND a.user_id = :user_id
          )
        ORDER BY p.upload_timestamp DESC
    """, {"user_id": user_id, **status_params})
    return [AssignedReview(**row) for row in rows]


# ============================================================================
# REVIEWS
# ============================================================================

async def list_reviewable_papers(
    conn: AsyncConnection,
    user_id: str,
    venue_id: Optional[str],
    q: Optional[str],
    page: int,
    limit: int
) -> Tuple[List[ReviewablePaper], int]:
    """
    Papers under review that the user neither authored nor already reviewed.

    Returns:
        Tuple of (papers on this page, total_count)
    """
    page, limit, offset = resolve_paging(page, limit)
    conditions, params = paper_filters(q=q, venue_id=venue_id, status=PaperStatus.UNDER_REVIEW.value)
    conditions += [
        "NOT EXISTS (SELECT 1 FROM Authorship a WHERE a.paper_id = p.paper_id AND a.user_id = :user_id)",
        "NOT EXISTS (SELECT 1 FROM Reviews rv WHERE rv.paper_id = p.paper_id AND rv.user_id = :user_id)",
    ]
    params["user_id"] = user_id
    where = where_sql(conditions)

    count_row = await fetch_one(conn, f"SELECT COUNT(*) AS total FROM Papers p{where}", params)
    total = int(count_row["total"]) if count_row else 0

    rows = await fetch_all(
        conn,
        f"SELECT {PAPER_COLUMNS}, {REVIEW_STATS_COLUMNS} FROM Papers p "
        "LEFT JOIN Venues v ON v.venue_id = p.venue_id"
        + where
        + " ORDER BY p.upload_timestamp DESC, p.paper_id"
        + limit_clause(limit, offset),
        params
    )
    return [ReviewablePaper(**row) for row in rows], total


async def list_reviews(conn: AsyncConnection, paper_id: str) -> List[Review]:
    rows = await fetch_all(conn, """
        SELECT
            r.review_id, r.paper_id, r.user_id, u.user_name, u.affiliation,
            r.comment, r.review_timestamp
        FROM Reviews r
        LEFT JOIN Users u ON u.user_id = r.user_id
        WHERE r.paper_id = :paper_id
        ORDER BY r.review_timestamp DESC
    """, {"paper_id": paper_id})
    return [Review(**row) for row in rows]


async def get_review(conn: AsyncConnection, review_id: str) -> Optional[Review]:
    row = await fetch_one(conn, """
        SELECT
            r.review_id, r.paper_id, r.user_id, u.user_name, u.affiliation,
            r.comment, r.review_timestamp
        FROM Reviews r
        LEFT JOIN Users u ON u.user_id = r.user_id
        WHERE r.review_id = :review_id
    """, {"review_id": review_id})
    return Review(**row) if row else None


async def get_top_reviewers(conn: AsyncConnection, start: date, end: date) -> List[ReviewerRank]:
    """Users ranked by reviews written inside an inclusive date window"""
    window_start, window_end = day_window(start, end)
    rows = await fetch_all(conn, """
        SELECT
            u.user_id, u.user_name, u.affiliation,
            COUNT(r.review_id) AS total_reviews
        FROM Users u
        JOIN Reviews r ON r.user_id = u.user_id
        WHERE r.review_timestamp BETWEEN :window_start AND :window_end
        GROUP BY u.user_id, u.user_name, u.affiliation
        HAVING COUNT(r.review_id) > 0
        ORDER BY total_reviews DESC, u.user_name ASC
        LIMIT 25
    """, {"window_start": window_start, "window_end": window_end})
    return [ReviewerRank(**row) for row in rows]


# ============================================================================
# ADVANCED QUERIES
# ============================================================================

async def get_user_papers_since_year(conn: AsyncConnection, user_id: str, year: int) -> List[UserPaperActivity]:
    """Advanced query 1: a user's project papers uploaded since January 1 of `year`"""
    rows = await fetch_all(conn, """
        SELECT
            p.paper_id, p.paper_title, p.upload_timestamp, p.status,
            COUNT(r.review_id) AS review_count
        FROM Authorship a
        INNER JOIN Papers p ON a.paper_id = p.paper_id
        LEFT JOIN Reviews r ON p.paper_id = r.paper_id
        WHERE a.user_id = :user_id
          AND p.upload_timestamp >= :year_start
          AND p.project_id IS NOT NULL
        GROUP BY p.paper_id, p.paper_title, p.upload_timestamp, p.status
        ORDER BY p.upload_timestamp DESC, review_count DESC
        LIMIT 15
    """, {"user_id": user_id, "year_start": f"{year:04d}-01-01 00:00:00"})
    return [UserPaperActivity(**row) for row in rows]


async def get_venue_activity_by_year(conn: AsyncConnection, year: int) -> List[VenueYearActivity]:
    """Advanced query 2: venues since `year` with published-paper counts"""
    rows = await fetch_all(conn, """
        SELECT
            v.venue_id, v.venue_name, v.venue_type, v.publisher, v.year,
            COUNT(p.paper_id) AS total_papers
        FROM Venues v
        INNER JOIN Papers p ON v.venue_id = p.venue_id
        WHERE v.year >= :year AND p.status = 'Published'
        GROUP BY v.venue_id, v.venue_name, v.venue_type, v.publisher, v.year
        ORDER BY v.year DESC, total_papers DESC
        LIMIT 15
    """, {"year": year})
    return [VenueYearActivity(**row) for row in rows]


async def get_top_reviewed_authors(conn: AsyncConnection, start: date, end: date) -> List[ReviewedAuthor]:
    """Advanced query 3: reviewer-flagged authors ranked by reviews their papers received"""
    window_start, window_end = day_window(start, end)
    rows = await fetch_all(conn, """
        SELECT
            u.user_id, u.user_name, u.affiliation,
            COUNT(r.review_id) AS total_reviews_received,
            COUNT(DISTINCT a.paper_id) AS papers_reviewed
        FROM Reviews r
        INNER JOIN Authorship a ON r.paper_id = a.paper_id
        INNER JOIN Users u ON a.user_id = u.user_id
        WHERE r.review_timestamp BETWEEN :window_start AND :window_end
          AND u.is_reviewer = TRUE
        GROUP BY u.user_id, u.user_name, u.affiliation
        HAVING COUNT(r.review_id) > 0
        ORDER BY total_reviews_received DESC
        LIMIT 15
    """, {"window_start": window_start, "window_end": window_end})
    return [ReviewedAuthor(**row) for row in rows]


async def get_user_paper_reviews(conn: AsyncConnection, user_id: str) -> List[UserPaperReviews]:
    """Advanced query 4: a user's papers ranked by review activity"""
    rows = await fetch_all(conn, """
        SELECT
            p.paper_id, p.paper_title, p.upload_timestamp, p.status,
            COUNT(r.review_id) AS review_count,
            MAX(r.review_timestamp) AS last_review_at
        FROM Authorship a
        INNER JOIN Papers p ON a.paper_id = p.paper_id
        LEFT JOIN Reviews r ON p.paper_id = r.paper_id
        WHERE a.user_id = :user_id
        GROUP BY p.paper_id, p.paper_title, p.upload_timestamp, p.status
        ORDER BY review_count DESC, last_review_at DESC
        LIMIT 15
    """, {"user_id": user_id})
    return [UserPaperReviews(**row) for row in rows]


# ============================================================================
# AUTH
# ============================================================================

async def get_login_record(conn: AsyncConnection, user_id: str) -> Optional[Dict[str, Any]]:
    """User row including the stored password, for credential checks only"""
    row = await fetch_one(conn, """
        SELECT user_id, user_name, email, affiliation, is_reviewer, password
        FROM Users
        WHERE user_id = :user_id
        LIMIT 1
    """, {"user_id": user_id})
    return dict(row) if row else None


# ============================================================================
# RECOMMENDATIONS
# ============================================================================

async def get_paper_text(conn: AsyncConnection, paper_id: str) -> Optional[Dict[str, Any]]:
    row = await fetch_one(
        conn,
        "SELECT paper_id, paper_title, abstract FROM Papers WHERE paper_id = :paper_id",
        {"paper_id": paper_id}
    )
    return dict(row) if row else None


async def list_recommendation_candidates(
    conn: AsyncConnection,
    paper_id: str,
    limit: int = 100
) -> List[Dict[str, Any]]:
    """Most recent papers other than `paper_id`"""
    rows = await fetch_all(
        conn,
        "SELECT paper_id, paper_title, abstract FROM Papers WHERE paper_id != :paper_id "
        "ORDER BY upload_timestamp DESC" + limit_clause(limit),
        {"paper_id": paper_id}
    )
    return [dict(row) for row in rows]


async def get_papers_by_ids(conn: AsyncConnection, paper_ids: Sequence[str]) -> List[RecommendedPaper]:
    """Papers for the given ids, in the order the ids were given"""
    if not paper_ids:
        return []

    placeholders, params = expand_in("paper_id", paper_ids)
    rows = await fetch_all(conn, f"""
        SELECT
            p.paper_id, p.paper_title, p.abstract, p.upload_timestamp, p.status,
            v.venue_name, v.year
        FROM Papers p
        LEFT JOIN Venues v ON v.venue_id = p.venue_id
        WHERE p.paper_id IN ({placeholders})
    """, params)

    by_id = {row["paper_id"]: row for row in rows}
    return [RecommendedPaper(**by_id[pid]) for pid in paper_ids if pid in by_id]
