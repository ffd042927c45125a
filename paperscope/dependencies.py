from dataclasses import dataclass

from fastapi import Request

from paperscope.config import Settings
from paperscope.database import Database
from paperscope.services.recommendations import RecommendationService


@dataclass
class AppContext:
    """Everything a request handler needs, built once at startup"""
    settings: Settings
    db: Database
    recommender: RecommendationService

    @classmethod
    def from_settings(cls, settings: Settings) -> "AppContext":
        return cls(
            settings=settings,
            db=Database.from_settings(settings),
            recommender=RecommendationService(settings),
        )

    async def close(self):
        await self.db.dispose()


def get_context(request: Request) -> AppContext:
    return request.app.state.context


def get_db(request: Request) -> Database:
    """Dependency to get the database pool wrapper"""
    return get_context(request).db


def get_recommender(request: Request) -> RecommendationService:
    return get_context(request).recommender
