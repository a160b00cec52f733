import logging
import os

import httpx

from models.matching import StartupIdea

logger = logging.getLogger(__name__)

SPEECH_API_URL = "https://api.elevenlabs.io/v1/text-to-speech"
DEFAULT_VOICE_ID = "EXAVITQu4vr4xnSDxMaL"
SPEECH_MODEL_ID = "eleven_monolingual_v1"


class SpeechUnavailable(Exception):
    """Speech could not be produced (not configured, or the API failed)."""


def idea_narration_text(idea: StartupIdea) -> str:
    """The spoken overview of an idea."""
    lines = [
        f"{idea.title}.",
        idea.description,
        f"This is a {idea.difficulty.value.lower()} difficulty project with a market size of {idea.market_size}.",
        f"Expected time to market is {idea.time_to_market}.",
        f"Revenue Model: {idea.revenue_model}.",
        f"Target Audience: {idea.target_audience}.",
        f"Key Features include: {', '.join(idea.key_features)}.",
        f"Competitive Advantage: {idea.competitive_advantage}.",
    ]
    return "\n".join(lines)


async def synthesize_speech(text: str) -> bytes:
    """Render `text` to MP3 audio with the hosted speech API."""
    api_key = os.getenv("ELEVENLABS_API_KEY")
    if not api_key:
        raise SpeechUnavailable("Speech API key not configured")

    voice_id = os.getenv("ELEVENLABS_VOICE_ID", DEFAULT_VOICE_ID)
    try:
        async with httpx.AsyncClient(timeout=30.0) as client:
            resp = await client.post(
                f"{SPEECH_API_URL}/{voice_id}",
                headers={
                    "Content-Type": "application/json",
                    "xi-api-key": api_key,
                },
                json={
                    "text": text,
                    "model_id": SPEECH_MODEL_ID,
                    "voice_settings": {
                        "stability": 0.7,
                        "similarity_boost": 0.8,
                    },
                },
            )
            resp.raise_for_status()
    except httpx.HTTPStatusError as e:
        logger.error("Speech API error %s: %s", e.response.status_code, e.response.text[:200])
        raise SpeechUnavailable(f"API Error: {e.response.status_code}") from e
    except httpx.HTTPError as e:
        logger.error("Speech API request failed: %s", e)
        raise SpeechUnavailable("Speech API request failed") from e

    return resp.content
