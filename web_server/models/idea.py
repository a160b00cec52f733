import logging
import re
from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel
from pymongo.errors import PyMongoError

from db import get_db

logger = logging.getLogger(__name__)


# ── Enums ────────────────────────────────────────────────────────────────

class Difficulty(str, Enum):
    easy = "Easy"
    medium = "Medium"
    hard = "Hard"


# ── Schemas ──────────────────────────────────────────────────────────────

class IdeaBase(BaseModel):
    title: str
    description: str
    market_size: str
    difficulty: Difficulty
    time_to_market: str
    revenue_model: str
    target_audience: str
    key_features: list[str] = []
    competitive_advantage: str
    required_skills: list[str] = []
    target_interests: list[str] = []
    keywords: list[str] = []


class IdeaCreate(IdeaBase):
    """Body of POST /ideas: a new catalog entry."""
    is_active: bool = True


class IdeaUpdate(BaseModel):
    """Body of PATCH /ideas/{idea_id}. All fields optional for partial update."""
    title: Optional[str] = None
    description: Optional[str] = None
    market_size: Optional[str] = None
    difficulty: Optional[Difficulty] = None
    time_to_market: Optional[str] = None
    revenue_model: Optional[str] = None
    target_audience: Optional[str] = None
    key_features: Optional[list[str]] = None
    competitive_advantage: Optional[str] = None
    required_skills: Optional[list[str]] = None
    target_interests: Optional[list[str]] = None
    keywords: Optional[list[str]] = None
    is_active: Optional[bool] = None


class IdeaRecord(IdeaBase):
    """Catalog entry as stored in MongoDB. Read-only to the matcher."""
    id: str
    created_at: datetime
    is_active: bool = True


# ── CRUD ─────────────────────────────────────────────────────────────────

async def list_active_ideas() -> list[IdeaRecord]:
    """Every active idea, newest first."""
    db = get_db()
    cursor = db.startup_ideas.find({"is_active": True}, {"_id": 0}).sort("created_at", -1)
    docs = await cursor.to_list(length=None)
    return [IdeaRecord(**doc) for doc in docs]


async def get_ideas_by_ids(ids: list[str]) -> list[IdeaRecord]:
    if not ids:
        return []
    db = get_db()
    docs = await db.startup_ideas.find({"id": {"$in": ids}}, {"_id": 0}).to_list(length=None)
    return [IdeaRecord(**doc) for doc in docs]


async def add_idea(data: IdeaCreate) -> IdeaRecord:
    """Insert a catalog entry and return the stored document."""
    db = get_db()
    doc = {
        "id": str(uuid4()),
        "created_at": datetime.now(timezone.utc).isoformat(),
        **data.model_dump(mode="json"),
    }
    await db.startup_ideas.insert_one(doc)
    doc.pop("_id", None)
    logger.info("Added startup idea %s (%s)", doc["id"], data.title)
    return IdeaRecord(**doc)


async def update_idea(idea_id: str, data: IdeaUpdate) -> Optional[IdeaRecord]:
    """Apply only the provided fields. Returns None if the idea does not exist."""
    db = get_db()
    changes = data.model_dump(mode="json", exclude_none=True)
    if not changes:
        doc = await db.startup_ideas.find_one({"id": idea_id}, {"_id": 0})
        return IdeaRecord(**doc) if doc else None

    result = await db.startup_ideas.find_one_and_update(
        {"id": idea_id},
        {"$set": changes},
        projection={"_id": 0},
        return_document=True,
    )
    if result is None:
        return None
    return IdeaRecord(**result)


async def search_ideas(term: str) -> list[IdeaRecord]:
    """Case-insensitive title search over active ideas, newest first.

    Search is best-effort: a store failure yields no results rather than an error.
    """
    term = term.strip()
    if not term:
        return []
    db = get_db()
    query = {
        "is_active": True,
        "title": {"$regex": re.escape(term), "$options": "i"},
    }
    try:
        cursor = db.startup_ideas.find(query, {"_id": 0}).sort("created_at", -1)
        docs = await cursor.to_list(length=None)
    except PyMongoError:
        logger.exception("Error searching startup ideas for %r", term)
        return []
    return [IdeaRecord(**doc) for doc in docs]
