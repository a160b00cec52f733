from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, EmailStr, field_validator

from db import get_db


class UserCreate(BaseModel):
    """Body of POST /users. Credentials live with the identity provider, not here."""
    name: str
    email: EmailStr

    @field_validator("name")
    @classmethod
    def _name_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        return v

    @field_validator("email")
    @classmethod
    def _lower_email(cls, v: str) -> str:
        return v.strip().lower()


class UserAccount(BaseModel):
    uid: str
    name: str
    email: EmailStr
    created_at: datetime
    is_premium: bool = False


async def create_user(data: UserCreate) -> UserAccount:
    db = get_db()
    doc = {
        "uid": str(uuid4()),
        "created_at": datetime.now(timezone.utc).isoformat(),
        "is_premium": False,
        **data.model_dump(),
    }
    await db.users.insert_one(doc)
    doc.pop("_id", None)
    return UserAccount(**doc)


async def get_user(uid: str) -> Optional[UserAccount]:
    """Fetch a single user by uid. Returns None if not found."""
    db = get_db()
    doc = await db.users.find_one({"uid": uid}, {"_id": 0})
    if doc is None:
        return None
    return UserAccount(**doc)
