from enum import Enum

from pydantic import BaseModel, field_validator, model_validator

from models.idea import Difficulty
from services.suggestions import normalize_entries


class ExperienceLevel(str, Enum):
    beginner = "Beginner"
    intermediate = "Intermediate"
    advanced = "Advanced"


class UserProfile(BaseModel):
    """What one user told us about themselves. Lives for a single request."""
    skills: list[str] = []
    interests: list[str] = []
    experience_level: ExperienceLevel

    @field_validator("skills", "interests")
    @classmethod
    def _dedupe(cls, v: list[str]) -> list[str]:
        return normalize_entries(v)


class IdeaRequest(UserProfile):
    """Body of POST /ideas/generate. The form requires at least one skill and one interest."""

    @model_validator(mode="after")
    def _require_input(self) -> "IdeaRequest":
        if not self.skills:
            raise ValueError("At least one skill is required")
        if not self.interests:
            raise ValueError("At least one interest is required")
        return self


class StartupIdea(BaseModel):
    """An idea as shown to one user, annotated with what matched their profile."""
    id: str
    title: str
    description: str
    market_size: str
    difficulty: Difficulty
    time_to_market: str
    revenue_model: str
    target_audience: str
    key_features: list[str]
    competitive_advantage: str
    matching_skills: list[str] = []
    matching_interests: list[str] = []


class IdeaResultSet(BaseModel):
    ideas: list[StartupIdea]
    total: int
