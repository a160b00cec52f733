import os

from dotenv import load_dotenv
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

load_dotenv()

client: AsyncIOMotorClient | None = None
db: AsyncIOMotorDatabase | None = None


async def connect_db() -> AsyncIOMotorDatabase:
    global client, db
    mongo_url = os.getenv("MONGODB_URL", "mongodb://localhost:27017")
    client = AsyncIOMotorClient(mongo_url)
    db = client[os.getenv("MONGODB_DB", "startup_ideas")]

    # Catalog lookups go by id; the matcher reads active ideas newest first
    await db.startup_ideas.create_index("id", unique=True)
    await db.startup_ideas.create_index([("is_active", ASCENDING), ("created_at", DESCENDING)])

    # One favorite / one progress record per (user, idea)
    await db.favorites.create_index([("uid", ASCENDING), ("idea_id", ASCENDING)], unique=True)
    await db.idea_progress.create_index([("uid", ASCENDING), ("idea_id", ASCENDING)], unique=True)

    await db.users.create_index("uid", unique=True)
    await db.user_subscriptions.create_index("uid", unique=True)

    return db


async def close_db() -> None:
    global client
    if client:
        client.close()


def get_db() -> AsyncIOMotorDatabase:
    assert db is not None, "Database not connected. Call connect_db() first."
    return db
