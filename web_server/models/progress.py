from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel

from db import get_db
from models.idea import get_ideas_by_ids
from models.matching import StartupIdea


# ── Launch checklist ─────────────────────────────────────────────────────

class LaunchStep(BaseModel):
    id: str
    title: str
    description: str


LAUNCH_STEPS: list[LaunchStep] = [
    LaunchStep(id="validate", title="Validate Idea",
               description="Research market demand and validate your concept"),
    LaunchStep(id="research", title="Market Research",
               description="Analyze competitors and target audience"),
    LaunchStep(id="mvp", title="Build MVP",
               description="Create minimum viable product"),
    LaunchStep(id="launch", title="Launch",
               description="Release your product to the market"),
    LaunchStep(id="monetize", title="Monetize",
               description="Implement revenue generation strategies"),
    LaunchStep(id="scale", title="Scale",
               description="Grow and expand your business"),
]


class UnknownStep(Exception):
    pass


class StepLocked(Exception):
    """The step can't change until the one before it is complete."""


def toggle_step(completed: list[bool], step_id: str) -> list[bool]:
    """Return a new completion list with `step_id` toggled.

    Steps complete in order: a step may be checked only once the previous one
    is, and unchecking a step also unchecks everything after it.
    """
    index = next((i for i, step in enumerate(LAUNCH_STEPS) if step.id == step_id), None)
    if index is None:
        raise UnknownStep(step_id)

    steps = _fit(completed)
    if not (index == 0 or steps[index - 1] or steps[index]):
        raise StepLocked(step_id)

    if steps[index]:
        for i in range(index, len(steps)):
            steps[i] = False
    else:
        steps[index] = True
    return steps


def _fit(completed: list[bool]) -> list[bool]:
    """Pad or truncate a stored list to the checklist length."""
    steps = [bool(c) for c in completed[:len(LAUNCH_STEPS)]]
    return steps + [False] * (len(LAUNCH_STEPS) - len(steps))


# ── Schemas ──────────────────────────────────────────────────────────────

class StepState(LaunchStep):
    completed: bool


class IdeaProgress(BaseModel):
    uid: str
    idea_id: str
    steps: list[StepState]
    completed_count: int
    percent_complete: float
    updated_at: Optional[datetime] = None


class StepToggle(BaseModel):
    """Body of POST /users/{uid}/progress/{idea_id}/toggle."""
    step_id: str


def build_progress(uid: str, idea_id: str, completed: list[bool],
                   updated_at: Optional[datetime] = None) -> IdeaProgress:
    completed = _fit(completed)
    done = sum(completed)
    return IdeaProgress(
        uid=uid,
        idea_id=idea_id,
        steps=[StepState(**step.model_dump(), completed=c) for step, c in zip(LAUNCH_STEPS, completed)],
        completed_count=done,
        percent_complete=round(done / len(LAUNCH_STEPS) * 100, 1),
        updated_at=updated_at,
    )


# ── CRUD ─────────────────────────────────────────────────────────────────

async def load_progress(uid: str, idea_id: str) -> IdeaProgress:
    """Stored progress for an idea; all steps open if nothing was saved yet."""
    db = get_db()
    doc = await db.idea_progress.find_one({"uid": uid, "idea_id": idea_id}, {"_id": 0})
    if doc is None:
        return build_progress(uid, idea_id, [])
    return build_progress(uid, idea_id, doc.get("completed_steps", []), doc.get("updated_at"))


async def save_progress(uid: str, idea_id: str, completed: list[bool]) -> IdeaProgress:
    db = get_db()
    now = datetime.now(timezone.utc)
    completed = _fit(completed)
    await db.idea_progress.update_one(
        {"uid": uid, "idea_id": idea_id},
        {"$set": {"completed_steps": completed, "updated_at": now.isoformat()}},
        upsert=True,
    )
    return build_progress(uid, idea_id, completed, now)


async def toggle_progress_step(uid: str, idea_id: str, step_id: str) -> IdeaProgress:
    current = await load_progress(uid, idea_id)
    updated = toggle_step([s.completed for s in current.steps], step_id)
    return await save_progress(uid, idea_id, updated)


async def get_proceeded_ideas(uid: str) -> list[StartupIdea]:
    """Ideas the user has started working on, without matching annotations."""
    db = get_db()
    rows = await db.idea_progress.find({"uid": uid}, {"idea_id": 1, "_id": 0}).to_list(length=None)
    idea_ids = [row["idea_id"] for row in rows]
    ideas = await get_ideas_by_ids(idea_ids)
    return [
        StartupIdea(**idea.model_dump(include=set(StartupIdea.model_fields)))
        for idea in ideas
    ]
