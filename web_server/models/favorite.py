import logging
from datetime import datetime, timezone

from pydantic import BaseModel
from pymongo.errors import DuplicateKeyError, PyMongoError

from db import get_db
from models.matching import StartupIdea

logger = logging.getLogger(__name__)


class Favorite(BaseModel):
    """A saved idea, snapshotted as the user saw it."""
    uid: str
    idea_id: str
    idea: StartupIdea
    created_at: datetime


class FavoriteList(BaseModel):
    favorites: list[Favorite]


async def list_favorites(uid: str) -> list[Favorite]:
    """All favorites for a user, newest first."""
    db = get_db()
    cursor = db.favorites.find({"uid": uid}, {"_id": 0}).sort("created_at", -1)
    docs = await cursor.to_list(length=None)
    return [Favorite(**doc) for doc in docs]


async def add_favorite(uid: str, idea: StartupIdea) -> Favorite:
    """Save an idea for a user. Saving the same idea twice returns the first record."""
    db = get_db()
    existing = await db.favorites.find_one({"uid": uid, "idea_id": idea.id}, {"_id": 0})
    if existing:
        return Favorite(**existing)

    doc = {
        "uid": uid,
        "idea_id": idea.id,
        "idea": idea.model_dump(mode="json"),
        "created_at": datetime.now(timezone.utc).isoformat(),
    }
    try:
        await db.favorites.insert_one(doc)
    except DuplicateKeyError:
        # Lost a race with a concurrent save of the same idea
        existing = await db.favorites.find_one({"uid": uid, "idea_id": idea.id}, {"_id": 0})
        return Favorite(**existing)
    doc.pop("_id", None)
    return Favorite(**doc)


async def remove_favorite(uid: str, idea_id: str) -> bool:
    """Returns True if a favorite was removed."""
    db = get_db()
    result = await db.favorites.delete_one({"uid": uid, "idea_id": idea_id})
    return result.deleted_count > 0


async def is_favorite(uid: str, idea_id: str) -> bool:
    db = get_db()
    try:
        doc = await db.favorites.find_one({"uid": uid, "idea_id": idea_id}, {"_id": 1})
    except PyMongoError:
        logger.exception("Error checking favorite %s for %s", idea_id, uid)
        return False
    return doc is not None
