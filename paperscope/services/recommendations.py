"""
Similar-paper recommendations from a generative language model.

The model is shown the source paper and a list of catalog candidates and is
asked to return the ids of the most similar ones. Only ids that exist in the
candidate list are ever returned; when nothing usable comes back the result
is "unavailable" rather than a substitute list.
"""

import asyncio
import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import aiohttp
import google.auth
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request as GoogleAuthRequest
from google.oauth2 import service_account

from paperscope.config import Settings
from paperscope.errors import ErrorKind, PaperScopeError
from paperscope.services.text_utils import parse_id_array, select_ids

logger = logging.getLogger(__name__)

AUTH_SCOPES = [
    "https://www.googleapis.com/auth/generative-language",
    "https://www.googleapis.com/auth/cloud-platform",
]

MAX_RECOMMENDATIONS = 10
ABSTRACT_PREVIEW_CHARS = 300

GENERATION_CONFIG = {
    "temperature": 0.2,
    "maxOutputTokens": 1024,
    "topP": 0.8,
    "topK": 40,
}

RECOMMENDATION_PROMPT_TEMPLATE = """You are an expert research librarian. Given a source paper and a list of candidate papers from the same catalog, pick the candidates most similar to the source paper in topic and method.

# Source paper
Title: {title}
Abstract: {abstract}

# Candidate papers
{candidates}

# Output
Return ONLY a JSON array of up to {limit} candidate paper ids, most similar first, for example:
["P001", "P002"]

Use only ids from the candidate list. Do not include the source paper. Do not add any explanation."""


@dataclass
class RecommendationResult:
    """Outcome of one recommendation call"""
    available: bool
    paper_ids: List[str] = field(default_factory=list)
    reason: Optional[str] = None

    @classmethod
    def unavailable(cls, reason: str) -> "RecommendationResult":
        return cls(available=False, reason=reason)


def build_prompt(source: Dict[str, Any], candidates: List[Dict[str, Any]], limit: int = MAX_RECOMMENDATIONS) -> str:
    """
    Build the ranking prompt.

    Args:
        source: Row with paper_title and abstract
        candidates: Rows with paper_id, paper_title and abstract

    Returns:
        Prompt text
    """
    lines = []
    for candidate in candidates:
        abstract = (candidate.get("abstract") or "").replace("\n", " ")
        if len(abstract) > ABSTRACT_PREVIEW_CHARS:
            abstract = abstract[:ABSTRACT_PREVIEW_CHARS] + "..."
        lines.append(f"- [{candidate['paper_id']}] {candidate['paper_title']}: {abstract}")

    return RECOMMENDATION_PROMPT_TEMPLATE.format(
        title=source.get("paper_title") or "",
        abstract=source.get("abstract") or "(no abstract)",
        candidates="\n".join(lines),
        limit=limit,
    )


def response_text(payload: Dict[str, Any]) -> str:
    """Concatenate the text parts of the first generateContent candidate"""
    candidates = payload.get("candidates") or []
    if not candidates:
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(part.get("text", "") for part in parts if isinstance(part, dict))


class RecommendationService:
    """Calls the generateContent endpoint with OAuth bearer credentials"""

    def __init__(self, settings: Settings):
        self.settings = settings
        self._credentials = None

    @property
    def is_configured(self) -> bool:
        return self.settings.recommendations_enabled

    def _load_credentials(self):
        source = self.settings.google_application_credentials.strip()

        if source and os.path.isfile(source):
            return service_account.Credentials.from_service_account_file(source, scopes=AUTH_SCOPES)
        if source.startswith("{"):
            # Secret mounted as the JSON document itself
            return service_account.Credentials.from_service_account_info(json.loads(source), scopes=AUTH_SCOPES)

        credentials, _ = google.auth.default(scopes=AUTH_SCOPES)
        return credentials

    async def get_access_token(self) -> str:
        """
        Get a bearer token, refreshing it when expired.

        Raises:
            PaperScopeError: UNAVAILABLE if credentials cannot be obtained
        """
        try:
            if self._credentials is None:
                self._credentials = self._load_credentials()
            if not self._credentials.valid:
                await asyncio.to_thread(self._credentials.refresh, GoogleAuthRequest())
        except (GoogleAuthError, ValueError, OSError) as e:
            self._credentials = None
            raise PaperScopeError(
                ErrorKind.UNAVAILABLE,
                "Recommendation service is not available",
                detail=f"credential error: {e}"
            )

        return self._credentials.token

    async def generate_text(self, prompt: str) -> str:
        """
        Send one prompt to the model.

        Returns:
            The model's text output (may be empty)

        Raises:
            PaperScopeError: UNAVAILABLE on auth failure, INTERNAL on HTTP failure
        """
        token = await self.get_access_token()
        headers = {"Authorization": f"Bearer {token}", "Content-Type": "application/json"}
        body = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": GENERATION_CONFIG,
        }
        timeout = aiohttp.ClientTimeout(total=self.settings.recommendation_timeout)

        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(self.settings.genai_endpoint, json=body, headers=headers) as resp:
                    if resp.status < 200 or resp.status >= 300:
                        error_text = await resp.text()
                        raise PaperScopeError(
                            ErrorKind.INTERNAL,
                            "Recommendation request failed",
                            detail=f"generateContent returned {resp.status}: {error_text[:500]}"
                        )
                    payload = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise PaperScopeError(
                ErrorKind.INTERNAL,
                "Recommendation request failed",
                detail=f"generateContent transport error: {e!r}"
            )
        except ValueError as e:
            raise PaperScopeError(
                ErrorKind.INTERNAL,
                "Recommendation request failed",
                detail=f"generateContent returned malformed JSON: {e}"
            )

        if payload is not None and not isinstance(payload, dict):
            raise PaperScopeError(
                ErrorKind.INTERNAL,
                "Recommendation request failed",
                detail=f"generateContent returned {type(payload).__name__}, expected an object"
            )

        return response_text(payload or {})

    async def recommend(self, source: Dict[str, Any], candidates: List[Dict[str, Any]]) -> RecommendationResult:
        """
        Rank candidates by similarity to the source paper.

        Args:
            source: Source paper row (paper_id, paper_title, abstract)
            candidates: Candidate rows, never including the source

        Returns:
            RecommendationResult with at most MAX_RECOMMENDATIONS candidate ids
        """
        if not self.is_configured:
            return RecommendationResult.unavailable("recommendations are not configured")
        if not candidates:
            return RecommendationResult(available=True)

        text = await self.generate_text(build_prompt(source, candidates))

        allowed = [c["paper_id"] for c in candidates]
        paper_ids = select_ids(parse_id_array(text), allowed, MAX_RECOMMENDATIONS)
        logger.info(f"Model returned {len(paper_ids)} usable ids for {source.get('paper_id')}")

        if not paper_ids:
            return RecommendationResult.unavailable("model response contained no usable paper ids")
        return RecommendationResult(available=True, paper_ids=paper_ids)
