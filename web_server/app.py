from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv

from fastapi import FastAPI, HTTPException, Query, Response, WebSocket, WebSocketDisconnect

load_dotenv()

from db import connect_db, close_db
from models.idea import (
    IdeaCreate,
    IdeaRecord,
    IdeaUpdate,
    add_idea,
    get_ideas_by_ids,
    search_ideas,
    update_idea,
)
from models.matching import ExperienceLevel, IdeaRequest, IdeaResultSet, StartupIdea
from models.user import UserAccount, UserCreate, create_user, get_user
from models.favorite import (
    Favorite,
    FavoriteList,
    add_favorite,
    is_favorite,
    list_favorites,
    remove_favorite,
)
from models.progress import (
    IdeaProgress,
    StepLocked,
    StepToggle,
    UnknownStep,
    get_proceeded_ideas,
    load_progress,
    toggle_progress_step,
)
from models.subscription import SubscriptionStatus, get_subscription_status
from services.checkout import (
    PRODUCTS,
    CheckoutError,
    CheckoutRequest,
    CheckoutSession,
    Product,
    UnknownProduct,
    create_checkout_session,
    get_product_by_id,
)
from services.logging_setup import setup_logging
from services.matcher import enhance_description, generate_ideas
from services.narration import SpeechUnavailable, idea_narration_text, synthesize_speech
from services.playback import PlaybackRegistry
from services.suggestions import COMMON_INTERESTS, COMMON_SKILLS, suggest
from services.websocket_manager import ConnectionManager


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    await connect_db()
    yield
    await close_db()


app = FastAPI(title="Startup Idea Recommender API", lifespan=lifespan)
ws_manager = ConnectionManager()
playback = PlaybackRegistry()


@app.get("/health")
async def health():
    return {"status": "ok"}


# ── Idea endpoints ─────────────────────────────────────────────────────


@app.post("/ideas/generate", response_model=IdeaResultSet)
async def generate(body: IdeaRequest):
    # An unreachable catalog comes back as an empty list, not an error
    ideas = await generate_ideas(body)
    return IdeaResultSet(ideas=ideas, total=len(ideas))


@app.get("/ideas/search", response_model=list[IdeaRecord])
async def search(q: str = Query(..., min_length=1)):
    return await search_ideas(q)


@app.post("/ideas", response_model=IdeaRecord, status_code=201)
async def create_idea(body: IdeaCreate):
    return await add_idea(body)


@app.patch("/ideas/{idea_id}", response_model=IdeaRecord)
async def edit_idea(idea_id: str, body: IdeaUpdate):
    idea = await update_idea(idea_id, body)
    if idea is None:
        raise HTTPException(status_code=404, detail="Idea not found")
    return idea


# ── Suggestion endpoints ───────────────────────────────────────────────


@app.get("/suggestions/skills", response_model=list[str])
async def skill_suggestions(q: str = "", selected: list[str] = Query([])):
    return suggest(q, COMMON_SKILLS, selected)


@app.get("/suggestions/interests", response_model=list[str])
async def interest_suggestions(q: str = "", selected: list[str] = Query([])):
    return suggest(q, COMMON_INTERESTS, selected)


# ── User endpoints ─────────────────────────────────────────────────────


@app.post("/users", response_model=UserAccount, status_code=201)
async def add_user(body: UserCreate):
    return await create_user(body)


@app.get("/users/{uid}", response_model=UserAccount)
async def read_user(uid: str):
    user = await get_user(uid)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@app.get("/users/{uid}/subscription", response_model=SubscriptionStatus)
async def read_subscription(uid: str):
    return await get_subscription_status(uid)


# ── Favorites endpoints ────────────────────────────────────────────────


@app.get("/users/{uid}/favorites", response_model=FavoriteList)
async def read_favorites(uid: str):
    return FavoriteList(favorites=await list_favorites(uid))


@app.post("/users/{uid}/favorites", response_model=Favorite, status_code=201)
async def save_favorite(uid: str, body: StartupIdea):
    return await add_favorite(uid, body)


@app.get("/users/{uid}/favorites/{idea_id}")
async def check_favorite(uid: str, idea_id: str):
    return {"favorite": await is_favorite(uid, idea_id)}


@app.delete("/users/{uid}/favorites/{idea_id}", status_code=204)
async def delete_favorite(uid: str, idea_id: str):
    removed = await remove_favorite(uid, idea_id)
    if not removed:
        raise HTTPException(status_code=404, detail="Favorite not found")


# ── Progress endpoints ─────────────────────────────────────────────────


@app.get("/users/{uid}/progress/{idea_id}", response_model=IdeaProgress)
async def read_progress(uid: str, idea_id: str):
    return await load_progress(uid, idea_id)


@app.post("/users/{uid}/progress/{idea_id}/toggle", response_model=IdeaProgress)
async def toggle_progress(uid: str, idea_id: str, body: StepToggle):
    try:
        return await toggle_progress_step(uid, idea_id, body.step_id)
    except UnknownStep:
        raise HTTPException(status_code=404, detail=f"Unknown step {body.step_id}")
    except StepLocked:
        raise HTTPException(status_code=409, detail="Complete the previous step first")


@app.get("/users/{uid}/proceeded", response_model=list[StartupIdea])
async def read_proceeded(uid: str):
    return await get_proceeded_ideas(uid)


# ── Checkout endpoints ─────────────────────────────────────────────────


@app.get("/products", response_model=list[Product])
async def list_products():
    return PRODUCTS


@app.get("/products/{product_id}", response_model=Product)
async def read_product(product_id: str):
    product = get_product_by_id(product_id)
    if product is None:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@app.post("/users/{uid}/checkout", response_model=CheckoutSession)
async def checkout(uid: str, body: CheckoutRequest):
    try:
        return await create_checkout_session(uid, body)
    except UnknownProduct:
        raise HTTPException(status_code=400, detail=f"Unknown price {body.price_id}")
    except CheckoutError as e:
        raise HTTPException(status_code=502, detail=str(e))


# ── Narration endpoints ────────────────────────────────────────────────


@app.post("/users/{uid}/ideas/{idea_id}/narration")
async def narrate_idea(uid: str, idea_id: str, experience_level: Optional[ExperienceLevel] = None):
    """Synthesize an audio overview of an idea, taking over the user's playback.

    With `experience_level` the overview reads the same enhanced description
    the ranked results show.
    """
    ideas = await get_ideas_by_ids([idea_id])
    if not ideas:
        raise HTTPException(status_code=404, detail="Idea not found")
    idea = StartupIdea(**ideas[0].model_dump(include=set(StartupIdea.model_fields)))
    if experience_level is not None:
        idea.description = enhance_description(idea.description, experience_level)

    async def notify_stopped(stopped):
        await ws_manager.send_to_user(uid, {"type": "playback_stopped", "idea_id": stopped.idea_id})

    handle, _ = await playback.context_for(uid).acquire(idea_id, on_stop=notify_stopped)

    try:
        audio = await synthesize_speech(idea_narration_text(idea))
    except SpeechUnavailable as e:
        await playback.release(uid, handle)
        raise HTTPException(status_code=503, detail=str(e))

    # Another narration took over while this one was being synthesized
    if handle.stopped:
        raise HTTPException(status_code=409, detail="Playback was superseded")

    return Response(content=audio, media_type="audio/mpeg")


@app.delete("/users/{uid}/narration", status_code=204)
async def stop_narration(uid: str):
    await playback.discard(uid)


# ── WebSocket endpoint ─────────────────────────────────────────────────


@app.websocket("/ws/{uid}")
async def websocket_endpoint(websocket: WebSocket, uid: str):
    await ws_manager.connect(uid, websocket)
    try:
        while True:
            # Keep connection alive; client can send pings
            await websocket.receive_text()
    except WebSocketDisconnect:
        if ws_manager.disconnect(uid, websocket):
            await playback.discard(uid)
