"""
Write paths for papers and reviews.

Multi-statement writes run inside Database.transaction(), so any exception
raised here (including PaperScopeError) rolls the whole unit back and the
connection goes back to the pool.
"""

import logging
import uuid
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncConnection

from paperscope.database import Database
from paperscope.db_queries import expand_in, fetch_all, fetch_one, get_review
from paperscope.errors import ErrorKind, PaperScopeError, not_found
from paperscope.models import (
    AIDraftCreate,
    AIDraftResponse,
    BatchCreateResponse,
    PaperCreate,
    PaperCreateResponse,
    PaperUpdate,
    Review,
    ReviewCreate,
    VenueCreatedCount,
)

logger = logging.getLogger(__name__)

# (request field, table, key column) checked before any insert
REFERENCE_TABLES = [
    ("venue_id", "Venues", "venue_id"),
    ("project_id", "Projects", "project_id"),
    ("dataset_id", "Datasets", "dataset_id"),
]

UPDATABLE_COLUMNS = ["paper_title", "abstract", "pdf_url", "status", "venue_id"]


def new_paper_id() -> str:
    return "P" + uuid.uuid4().hex[:12].upper()


def new_review_id() -> str:
    return "R" + uuid.uuid4().hex[:12].upper()


# ============================================================================
# CREATE
# ============================================================================

def collect_references(papers: Sequence[PaperCreate]) -> Dict[str, List[str]]:
    """Distinct referenced ids per request field, in first-seen order"""
    refs: Dict[str, List[str]] = {field: [] for field, _, _ in REFERENCE_TABLES}
    refs["author_ids"] = []

    for paper in papers:
        for field, _, _ in REFERENCE_TABLES:
            value = getattr(paper, field)
            if value and value not in refs[field]:
                refs[field].append(value)
        for author_id in paper.author_ids:
            if author_id not in refs["author_ids"]:
                refs["author_ids"].append(author_id)

    return refs


async def find_missing(conn: AsyncConnection, table: str, column: str, ids: List[str]) -> List[str]:
    """Ids from `ids` that have no row in `table`"""
    if not ids:
        return []
    placeholders, params = expand_in("id", ids)
    rows = await fetch_all(conn, f"SELECT {column} AS id FROM {table} WHERE {column} IN ({placeholders})", params)
    found = {row["id"] for row in rows}
    return [i for i in ids if i not in found]


async def validate_references(conn: AsyncConnection, papers: Sequence[PaperCreate]):
    """
    Verify every referenced venue, project, dataset and author exists.

    Raises:
        PaperScopeError: VALIDATION with a `missing` map of field -> ids
    """
    refs = collect_references(papers)
    missing: Dict[str, List[str]] = {}

    for field, table, column in REFERENCE_TABLES:
        absent = await find_missing(conn, table, column, refs[field])
        if absent:
            missing[field] = absent

    absent_authors = await find_missing(conn, "Users", "user_id", refs["author_ids"])
    if absent_authors:
        missing["author_ids"] = absent_authors

    if missing:
        raise PaperScopeError(ErrorKind.VALIDATION, "Referenced records do not exist", missing=missing)


def in_batch_duplicates(papers: Sequence[PaperCreate]) -> List[Dict[str, str]]:
    seen = set()
    duplicates = []
    for paper in papers:
        key = (paper.venue_id, paper.paper_title.casefold())
        if key in seen:
            duplicates.append({"venue_id": paper.venue_id, "paper_title": paper.paper_title})
        seen.add(key)
    return duplicates


async def lock_existing_titles(conn: AsyncConnection, papers: Sequence[PaperCreate]) -> List[Dict[str, str]]:
    """
    Look up existing (venue_id, title) pairs with a write lock.

    The FOR UPDATE read locks the matching rows until commit, so two
    concurrent requests for the same pair cannot both insert once a row exists.
    At READ COMMITTED no gap lock is taken for a pair with no row yet, so two
    first inserts of the same new title only collide at INSERT time, on the
    unique key (1062) or the duplicate-title trigger; both surface as 409.
    """
    pairs = []
    params: Dict[str, str] = {}
    for i, paper in enumerate(papers):
        pairs.append(f"(:venue_{i}, :title_{i})")
        params[f"venue_{i}"] = paper.venue_id
        params[f"title_{i}"] = paper.paper_title

    rows = await fetch_all(conn, f"""
        SELECT paper_id, venue_id, paper_title
        FROM Papers
        WHERE (venue_id, paper_title) IN ({", ".join(pairs)})
        FOR UPDATE
    """, params)
    return [{"venue_id": row["venue_id"], "paper_title": row["paper_title"]} for row in rows]


async def insert_paper(conn: AsyncConnection, paper: PaperCreate) -> str:
    """Insert one paper and its authorship rows, returning the new id"""
    paper_id = new_paper_id()

    await conn.execute(text("""
        INSERT INTO Papers
            (paper_id, paper_title, abstract, pdf_url, upload_timestamp, status, venue_id, project_id, dataset_id)
        VALUES
            (:paper_id, :paper_title, :abstract, :pdf_url, NOW(), :status, :venue_id, :project_id, :dataset_id)
    """), {
        "paper_id": paper_id,
        "paper_title": paper.paper_title,
        "abstract": paper.abstract,
        "pdf_url": paper.pdf_url,
        "status": paper.status.value,
        "venue_id": paper.venue_id,
        "project_id": paper.project_id,
        "dataset_id": paper.dataset_id,
    })

    await conn.execute(
        text("INSERT INTO Authorship (user_id, paper_id) VALUES (:user_id, :paper_id)"),
        [{"user_id": author_id, "paper_id": paper_id} for author_id in paper.author_ids]
    )
    return paper_id


async def insert_checked(conn: AsyncConnection, papers: Sequence[PaperCreate]) -> List[str]:
    """Validate, lock, check duplicates and insert, all on one transaction"""
    await validate_references(conn, papers)

    duplicates = in_batch_duplicates(papers)
    if duplicates:
        raise PaperScopeError(
            ErrorKind.CONFLICT,
            "Duplicate papers within the request",
            duplicates=duplicates
        )

    existing = await lock_existing_titles(conn, papers)
    if existing:
        raise PaperScopeError(
            ErrorKind.CONFLICT,
            "Papers with these titles already exist at the venue",
            duplicates=existing
        )

    paper_ids = []
    for paper in papers:
        paper_ids.append(await insert_paper(conn, paper))
    return paper_ids


async def create_paper_with_authors(db: Database, paper: PaperCreate) -> PaperCreateResponse:
    """
    Create a paper and one authorship row per author, atomically.

    Raises:
        PaperScopeError: VALIDATION for unknown references, CONFLICT for duplicates
    """
    async with db.transaction() as conn:
        paper_ids = await insert_checked(conn, [paper])

    logger.info(f"Created paper {paper_ids[0]} with {len(paper.author_ids)} author(s)")
    return PaperCreateResponse(paper_id=paper_ids[0], paper_title=paper.paper_title, author_ids=paper.author_ids)


async def batch_create_papers(db: Database, papers: Sequence[PaperCreate]) -> BatchCreateResponse:
    """
    Create several papers with their authors in one transaction.

    Either every paper and authorship row is committed or none is.

    Returns:
        BatchCreateResponse with per-venue counts of the new papers
    """
    async with db.transaction() as conn:
        paper_ids = await insert_checked(conn, papers)

        placeholders, params = expand_in("paper_id", paper_ids)
        rows = await fetch_all(conn, f"""
            SELECT p.venue_id, v.venue_name, COUNT(*) AS num_created
            FROM Papers p
            LEFT JOIN Venues v ON v.venue_id = p.venue_id
            WHERE p.paper_id IN ({placeholders})
            GROUP BY p.venue_id, v.venue_name
            ORDER BY num_created DESC, p.venue_id
        """, params)

    logger.info(f"Batch created {len(paper_ids)} papers")
    return BatchCreateResponse(
        created_count=len(paper_ids),
        paper_ids=paper_ids,
        summary=[VenueCreatedCount(**row) for row in rows]
    )


# ============================================================================
# UPDATE / DELETE
# ============================================================================

async def lock_paper(conn: AsyncConnection, paper_id: str):
    row = await fetch_one(conn, "SELECT paper_id FROM Papers WHERE paper_id = :paper_id FOR UPDATE", {"paper_id": paper_id})
    if row is None:
        raise not_found("Paper", paper_id)


async def is_author(conn: AsyncConnection, paper_id: str, user_id: str) -> bool:
    row = await fetch_one(
        conn,
        "SELECT 1 AS found FROM Authorship WHERE paper_id = :paper_id AND user_id = :user_id",
        {"paper_id": paper_id, "user_id": user_id}
    )
    return row is not None


def update_assignments(update: PaperUpdate) -> Tuple[List[str], Dict[str, Optional[str]]]:
    """SET clauses for the fields present in the request body"""
    provided = update.model_fields_set | {"paper_title"}
    assignments = []
    params: Dict[str, Optional[str]] = {}

    for column in UPDATABLE_COLUMNS:
        if column not in provided:
            continue
        value = getattr(update, column)
        if column == "status" and value is not None:
            value = value.value
        assignments.append(f"{column} = :{column}")
        params[column] = value

    return assignments, params


async def update_paper(db: Database, paper_id: str, update: PaperUpdate):
    """
    Update a paper's mutable fields.

    When `update.user_id` is given the caller must be one of the authors.
    Trigger rules (e.g. AI_DRAFT promotion requirements) surface as database
    errors and are translated by the caller's error handler.
    """
    assignments, params = update_assignments(update)
    params["paper_id"] = paper_id

    async with db.transaction() as conn:
        await lock_paper(conn, paper_id)

        if update.user_id and not await is_author(conn, paper_id, update.user_id):
            raise PaperScopeError(ErrorKind.FORBIDDEN, "Only an author can edit this paper")

        result = await conn.execute(
            text(f"UPDATE Papers SET {', '.join(assignments)} WHERE paper_id = :paper_id"),
            params
        )
        if result.rowcount == 0:
            raise not_found("Paper", paper_id)

    logger.info(f"Updated paper {paper_id}")


async def delete_paper(db: Database, paper_id: str, user_id: str):
    """
    Delete a paper through the cascading stored procedure.

    The procedure removes reviews, related-paper links and authorship rows
    before the paper itself, and signals if `user_id` is not an author.
    """
    async with db.transaction() as conn:
        await lock_paper(conn, paper_id)
        await conn.execute(
            text("CALL sp_delete_paper(:paper_id, :user_id)"),
            {"paper_id": paper_id, "user_id": user_id}
        )

    logger.info(f"Deleted paper {paper_id} on behalf of {user_id}")


# ============================================================================
# REVIEWS / AI DRAFTS
# ============================================================================

async def create_review(db: Database, paper_id: str, review: ReviewCreate) -> Review:
    """Insert a review; the self-review trigger rejects authors"""
    review_id = new_review_id()

    async with db.transaction() as conn:
        row = await fetch_one(conn, "SELECT paper_id FROM Papers WHERE paper_id = :paper_id", {"paper_id": paper_id})
        if row is None:
            raise not_found("Paper", paper_id)

        await conn.execute(text("""
            INSERT INTO Reviews (review_id, user_id, paper_id, comment, review_timestamp)
            VALUES (:review_id, :user_id, :paper_id, :comment, NOW())
        """), {
            "review_id": review_id,
            "user_id": review.user_id,
            "paper_id": paper_id,
            "comment": review.comment,
        })

        created = await get_review(conn, review_id)

    logger.info(f"Review {review_id} added to {paper_id} by {review.user_id}")
    return created


async def create_ai_draft(db: Database, draft: AIDraftCreate) -> AIDraftResponse:
    """
    Create an AI_DRAFT paper from a recommendation via stored procedure.

    Raises:
        PaperScopeError: UNAUTHORIZED without user_id, VALIDATION for missing fields
    """
    if not draft.user_id:
        raise PaperScopeError(ErrorKind.UNAUTHORIZED, "User not authenticated")

    missing = [name for name in ("source_paper_id", "paper_id", "title") if not getattr(draft, name)]
    if missing:
        raise PaperScopeError(ErrorKind.VALIDATION, f"Missing required fields: {', '.join(missing)}")

    async with db.transaction() as conn:
        await conn.execute(
            text("CALL sp_create_ai_draft_paper(:user_id, :source_paper_id, :paper_id, :title, :abstract)"),
            {
                "user_id": draft.user_id,
                "source_paper_id": draft.source_paper_id,
                "paper_id": draft.paper_id,
                "title": draft.title,
                "abstract": draft.abstract or "",
            }
        )

    logger.info(f"AI draft {draft.paper_id} created from {draft.source_paper_id}")
    return AIDraftResponse(message="AI draft created", paper_id=draft.paper_id)
