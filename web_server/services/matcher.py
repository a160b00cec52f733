import asyncio
import logging
import os
import random
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional

from pymongo.errors import PyMongoError

from models.idea import Difficulty, IdeaRecord, list_active_ideas
from models.matching import ExperienceLevel, StartupIdea, UserProfile

logger = logging.getLogger(__name__)

# ── Weights ──────────────────────────────────────────────────────────────

SKILL_MATCH_POINTS = 15
SKILL_TEXT_POINTS = 5
INTEREST_MATCH_POINTS = 12
INTEREST_KEYWORD_POINTS = 6
INTEREST_TEXT_POINTS = 3
STUDENT_BONUS = 8
FAST_LAUNCH_BONUS = 5
NO_MATCH_PENALTY = 0.3
MAX_JITTER = 4.0

# Scores above this count as high-quality matches when sizing the result set
HIGH_QUALITY_SCORE = 20
MIN_RESULTS = 4
MAX_RESULTS = 8

DIFFICULTY_BONUS: dict[ExperienceLevel, dict[Difficulty, int]] = {
    ExperienceLevel.beginner: {Difficulty.easy: 10, Difficulty.medium: 2, Difficulty.hard: -8},
    ExperienceLevel.intermediate: {Difficulty.easy: 5, Difficulty.medium: 10, Difficulty.hard: 0},
    ExperienceLevel.advanced: {Difficulty.easy: 2, Difficulty.medium: 8, Difficulty.hard: 10},
}

FAST_LAUNCH_WINDOWS = ("2-3", "2-4")

EXPERIENCE_CONTEXT: dict[ExperienceLevel, str] = {
    ExperienceLevel.beginner: (
        "Perfect for getting started with entrepreneurship while building valuable experience."
    ),
    ExperienceLevel.intermediate: (
        "A great opportunity to leverage your growing skills and create meaningful impact."
    ),
    ExperienceLevel.advanced: (
        "An excellent chance to apply your expertise and potentially scale into a significant business."
    ),
}


# ── Helpers ──────────────────────────────────────────────────────────────

def _terms_match(term: str, candidates: list[str]) -> bool:
    """Exact or substring match in either direction. `term` must already be lower-cased."""
    for candidate in candidates:
        candidate = candidate.lower()
        if candidate == term or term in candidate or candidate in term:
            return True
    return False


def _is_student_friendly(idea: IdeaRecord) -> bool:
    title = idea.title.lower()
    return (
        "student" in idea.target_audience.lower()
        or "student" in idea.description.lower()
        or "student" in title
        or "campus" in title
    )


# ── Scoring ──────────────────────────────────────────────────────────────

@dataclass
class ScoredCandidate:
    idea: IdeaRecord
    score: float
    base_score: float
    jitter: float
    matched_skills: list[str] = field(default_factory=list)
    matched_interests: list[str] = field(default_factory=list)


def score_idea(
    idea: IdeaRecord,
    profile: UserProfile,
    rng: Optional[random.Random] = None,
) -> ScoredCandidate:
    """Score one catalog idea against one profile.

    Matched skills and interests are taken from the profile, never from the
    idea's own vocabulary. The final score carries a jitter in [0, MAX_JITTER)
    so equal ideas come back in varying order across calls.
    """
    rng = rng or random
    score = 0.0
    matched_skills: list[str] = []
    matched_interests: list[str] = []

    features = " ".join(idea.key_features)
    skill_text = f"{idea.description} {features}".lower()
    interest_text = f"{idea.description} {idea.target_audience} {features}".lower()

    for skill in profile.skills:
        skill_lower = skill.lower()
        if _terms_match(skill_lower, idea.required_skills):
            score += SKILL_MATCH_POINTS
            if skill not in matched_skills:
                matched_skills.append(skill)
        if skill_lower in skill_text:
            score += SKILL_TEXT_POINTS
            if skill not in matched_skills:
                matched_skills.append(skill)

    for interest in profile.interests:
        interest_lower = interest.lower()
        if _terms_match(interest_lower, idea.target_interests):
            score += INTEREST_MATCH_POINTS
            if interest not in matched_interests:
                matched_interests.append(interest)
        if _terms_match(interest_lower, idea.keywords):
            score += INTEREST_KEYWORD_POINTS
            if interest not in matched_interests:
                matched_interests.append(interest)
        if interest_lower in interest_text:
            score += INTEREST_TEXT_POINTS

    score += DIFFICULTY_BONUS[profile.experience_level][idea.difficulty]

    if _is_student_friendly(idea):
        score += STUDENT_BONUS

    if any(window in idea.time_to_market for window in FAST_LAUNCH_WINDOWS):
        score += FAST_LAUNCH_BONUS

    # Bonuses alone shouldn't carry an idea with no topical overlap
    if not matched_skills and not matched_interests:
        score *= NO_MATCH_PENALTY

    jitter = rng.random() * MAX_JITTER

    return ScoredCandidate(
        idea=idea,
        score=score + jitter,
        base_score=score,
        jitter=jitter,
        matched_skills=matched_skills,
        matched_interests=matched_interests,
    )


# ── Result sizing ────────────────────────────────────────────────────────

def result_size(candidates: list[ScoredCandidate]) -> int:
    """How many ideas to return, based on how many strong matches there are."""
    high_quality = sum(1 for c in candidates if c.score > HIGH_QUALITY_SCORE)

    count = MIN_RESULTS
    if high_quality >= 8:
        count = min(MAX_RESULTS, high_quality)
    elif high_quality >= 6:
        count = 6
    elif high_quality >= 4:
        count = 5

    return min(count, len(candidates))


def select_results(candidates: list[ScoredCandidate]) -> list[ScoredCandidate]:
    """Best-first slice of the candidates. No score floor is applied."""
    ranked = sorted(candidates, key=lambda c: c.score, reverse=True)
    return ranked[:result_size(ranked)]


# ── Result assembly ──────────────────────────────────────────────────────

def enhance_description(description: str, experience_level: ExperienceLevel) -> str:
    return f"{description} {EXPERIENCE_CONTEXT[experience_level]}"


def to_startup_idea(candidate: ScoredCandidate, experience_level: ExperienceLevel) -> StartupIdea:
    idea = candidate.idea
    return StartupIdea(
        id=idea.id,
        title=idea.title,
        description=enhance_description(idea.description, experience_level),
        market_size=idea.market_size,
        difficulty=idea.difficulty,
        time_to_market=idea.time_to_market,
        revenue_model=idea.revenue_model,
        target_audience=idea.target_audience,
        key_features=list(idea.key_features),
        competitive_advantage=idea.competitive_advantage,
        matching_skills=list(candidate.matched_skills),
        matching_interests=list(candidate.matched_interests),
    )


def rank_ideas(
    ideas: list[IdeaRecord],
    profile: UserProfile,
    rng: Optional[random.Random] = None,
) -> list[StartupIdea]:
    """Score, select and annotate a catalog snapshot for one profile."""
    scored = [score_idea(idea, profile, rng) for idea in ideas]
    selected = select_results(scored)
    return [to_startup_idea(c, profile.experience_level) for c in selected]


# ── Main entry point ─────────────────────────────────────────────────────

async def generate_ideas(
    profile: UserProfile,
    fetch: Callable[[], Awaitable[list[IdeaRecord]]] = list_active_ideas,
    timeout: Optional[float] = None,
    rng: Optional[random.Random] = None,
) -> list[StartupIdea]:
    """Fetch the active catalog and return the ideas that best fit `profile`.

    A catalog that can't be fetched (timeout or store error) yields an empty
    list; scoring never runs on a partial catalog.
    """
    if timeout is None:
        timeout = float(os.getenv("CATALOG_FETCH_TIMEOUT", "8"))

    try:
        ideas = await asyncio.wait_for(fetch(), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning("Catalog fetch timed out after %.1fs", timeout)
        return []
    except PyMongoError:
        logger.exception("Error fetching startup ideas")
        return []

    if not ideas:
        logger.warning("No startup ideas found in catalog")
        return []

    results = rank_ideas(ideas, profile, rng)
    logger.info("Returning %d of %d startup ideas", len(results), len(ideas))
    return results
