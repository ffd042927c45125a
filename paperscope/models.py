"""
Pydantic models for the PaperScope API.

These models define the structure of API requests and responses. Field
names follow the database column names the front end already consumes.
"""

from datetime import date, datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PaperStatus(str, Enum):
    """Paper lifecycle status"""
    DRAFT = "Draft"
    UNDER_REVIEW = "Under Review"
    IN_REVIEW = "In Review"
    PUBLISHED = "Published"
    ACCEPTED = "Accepted"
    REJECTED = "Rejected"
    AI_DRAFT = "AI_DRAFT"


# ============================================================================
# COMMON
# ============================================================================

class HealthResponse(BaseModel):
    """Health check response"""
    ok: bool
    status: Optional[str] = None


class ErrorResponse(BaseModel):
    """Error response; extra public fields such as `missing` or `duplicates` are kept"""
    model_config = ConfigDict(extra="allow")

    status: str = "error"
    kind: str
    error: str


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    totalPages: int


class MessageResponse(BaseModel):
    message: str


# ============================================================================
# PAPERS
# ============================================================================

class PaperSummary(BaseModel):
    """Paper row as shown in lists"""
    paper_id: str
    paper_title: str
    abstract: Optional[str] = None
    pdf_url: Optional[str] = None
    upload_timestamp: Optional[datetime] = None
    status: Optional[str] = None
    venue_id: Optional[str] = None
    venue_name: Optional[str] = None
    year: Optional[int] = None


class PaperDetail(PaperSummary):
    """Single paper with review statistics"""
    review_count: int = 0
    last_review_at: Optional[datetime] = None


class PaperListResponse(BaseModel):
    """Paginated paper listing"""
    papers: List[PaperSummary]
    pagination: Pagination


class PaperInReview(PaperDetail):
    pass


class AssignedReview(PaperDetail):
    has_reviewed: bool = False


class ReviewablePaper(PaperDetail):
    pass


class ReviewablePaperListResponse(BaseModel):
    papers: List[ReviewablePaper]
    pagination: Pagination


class PaperCreate(BaseModel):
    """New paper with its authors"""
    paper_title: str = Field(..., min_length=1, max_length=500)
    abstract: Optional[str] = None
    pdf_url: Optional[str] = None
    status: PaperStatus = PaperStatus.UNDER_REVIEW
    venue_id: str = Field(..., min_length=1)
    project_id: Optional[str] = None
    dataset_id: Optional[str] = None
    author_ids: List[str] = Field(..., min_length=1)

    @field_validator("paper_title")
    @classmethod
    def strip_title(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("paper_title must not be blank")
        return value

    @field_validator("project_id", "dataset_id", "pdf_url", "abstract")
    @classmethod
    def empty_to_none(cls, value: Optional[str]) -> Optional[str]:
        # Form fields arrive as "" when left blank
        if value is not None and not value.strip():
            return None
        return value

    @field_validator("author_ids")
    @classmethod
    def clean_author_ids(cls, value: List[str]) -> List[str]:
        cleaned = list(dict.fromkeys(a.strip() for a in value if a and a.strip()))
        if not cleaned:
            raise ValueError("at least one author is required")
        return cleaned


class PaperCreateResponse(BaseModel):
    paper_id: str
    paper_title: str
    author_ids: List[str]


class BatchPaperCreate(BaseModel):
    """Several papers created in one transaction"""
    papers: List[PaperCreate] = Field(..., min_length=1, max_length=100)


class VenueCreatedCount(BaseModel):
    venue_id: Optional[str] = None
    venue_name: Optional[str] = None
    num_created: int


class BatchCreateResponse(BaseModel):
    created_count: int
    paper_ids: List[str]
    summary: List[VenueCreatedCount]


class PaperUpdate(BaseModel):
    """Mutable paper fields"""
    paper_title: str = Field(..., min_length=1, max_length=500)
    abstract: Optional[str] = None
    pdf_url: Optional[str] = None
    status: Optional[PaperStatus] = None
    venue_id: Optional[str] = None
    user_id: Optional[str] = None

    @field_validator("paper_title")
    @classmethod
    def strip_title(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("paper_title must not be blank")
        return value

    @field_validator("status", "venue_id")
    @classmethod
    def not_null(cls, value, info):
        # Omitted means unchanged; an explicit null would clear a NOT NULL column
        if value is None:
            raise ValueError(f"{info.field_name} must not be null")
        return value


class AIDraftCreate(BaseModel):
    """Draft paper derived from a recommendation"""
    source_paper_id: Optional[str] = None
    paper_id: Optional[str] = None
    title: Optional[str] = None
    abstract: Optional[str] = None
    user_id: Optional[str] = None


class AIDraftResponse(BaseModel):
    message: str
    paper_id: str


# ============================================================================
# REVIEWS
# ============================================================================

class Review(BaseModel):
    review_id: str
    paper_id: str
    user_id: str
    user_name: Optional[str] = None
    affiliation: Optional[str] = None
    comment: Optional[str] = None
    review_timestamp: Optional[datetime] = None


class ReviewCreate(BaseModel):
    user_id: str = Field(..., min_length=1)
    comment: str = Field(..., min_length=1, max_length=5000)

    @field_validator("comment")
    @classmethod
    def strip_comment(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("comment must not be blank")
        return value


class ReviewerRank(BaseModel):
    user_id: str
    user_name: Optional[str] = None
    affiliation: Optional[str] = None
    total_reviews: int


# ============================================================================
# VENUES, AUTHORS, CATALOG
# ============================================================================

class Venue(BaseModel):
    venue_id: str
    venue_name: str
    venue_type: Optional[str] = None
    publisher: Optional[str] = None
    year: Optional[int] = None


class VenueActivity(BaseModel):
    venue_id: str
    venue_name: str
    year: Optional[int] = None
    total_papers: int


class Project(BaseModel):
    project_id: str
    project_title: str
    description: Optional[str] = None
    project_date: Optional[date] = None


class Dataset(BaseModel):
    dataset_id: str
    dataset_name: str
    dataset_url: Optional[str] = None
    domain: Optional[str] = None
    access_type: Optional[str] = None


class UserPublic(BaseModel):
    """User without credentials"""
    user_id: str
    user_name: Optional[str] = None
    email: Optional[str] = None
    affiliation: Optional[str] = None
    is_reviewer: bool = False


class PortfolioEntry(BaseModel):
    project_id: Optional[str] = None
    project_title: Optional[str] = None
    paper_id: str
    paper_title: str
    upload_timestamp: Optional[datetime] = None
    review_count: int = 0
    co_authors: Optional[str] = None


class InsightsSummary(BaseModel):
    total_papers: int
    total_reviews: int
    avg_reviews_per_paper: float
    first_upload: Optional[datetime] = None
    last_upload: Optional[datetime] = None


class TopReviewedPaper(BaseModel):
    paper_id: str
    paper_title: str
    pdf_url: Optional[str] = None
    review_count: int
    last_review_at: Optional[datetime] = None


class YearlyStat(BaseModel):
    year: int
    papers_published: int
    reviews_received: int


class StatusCount(BaseModel):
    status: Optional[str] = None
    paper_count: int


class AuthorInsights(BaseModel):
    summary: Optional[InsightsSummary] = None
    top_reviewed_papers: List[TopReviewedPaper]
    yearly_stats: List[YearlyStat]
    status_breakdown: List[StatusCount]


# ============================================================================
# ADVANCED QUERIES
# ============================================================================

class UserPaperActivity(BaseModel):
    """Advanced query 1 row"""
    paper_id: str
    paper_title: str
    upload_timestamp: Optional[datetime] = None
    status: Optional[str] = None
    review_count: int


class VenueYearActivity(BaseModel):
    """Advanced query 2 row"""
    venue_id: str
    venue_name: str
    venue_type: Optional[str] = None
    publisher: Optional[str] = None
    year: Optional[int] = None
    total_papers: int


class ReviewedAuthor(BaseModel):
    """Advanced query 3 row"""
    user_id: str
    user_name: Optional[str] = None
    affiliation: Optional[str] = None
    total_reviews_received: int
    papers_reviewed: int


class UserPaperReviews(BaseModel):
    """Advanced query 4 row"""
    paper_id: str
    paper_title: str
    upload_timestamp: Optional[datetime] = None
    status: Optional[str] = None
    review_count: int
    last_review_at: Optional[datetime] = None


# ============================================================================
# AUTH
# ============================================================================

class LoginRequest(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


class LoginUser(UserPublic):
    username: str


class LoginResponse(BaseModel):
    token: str
    user: LoginUser


# ============================================================================
# RECOMMENDATIONS
# ============================================================================

class RecommendedPaper(BaseModel):
    paper_id: str
    paper_title: str
    abstract: Optional[str] = None
    upload_timestamp: Optional[datetime] = None
    status: Optional[str] = None
    venue_name: Optional[str] = None
    year: Optional[int] = None
