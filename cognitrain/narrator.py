"""Personalised profile message for a completed assessment.

The message comes from a remote text-generation call. It is fire-and-forget
relative to navigation: the worker runs on its own thread with its own asyncio
loop and hands the outcome back to the main thread through a ``deliver``
callable (normally :meth:`TimerQueue.call_soon_threadsafe`). Any failure is
logged and delivered as ``None``; the UI then shows ``FALLBACK_MESSAGE``.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Callable, Mapping
from typing import Any, Protocol

import httpx

from .scoring import AREA_LABELS, strongest_and_weakest

logger = logging.getLogger(__name__)

FALLBACK_MESSAGE = (
    "Based on your assessment, you're on a great path to cognitive fitness! Continue to "
    "challenge yourself with varied exercises to maintain and improve your brain health."
)

DEFAULT_MODEL = "gemini-2.5-flash"
GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"


class NarrationError(Exception):
    pass


class Narrator(Protocol):
    async def narrate(self, scores: Mapping[str, float]) -> str:
        """Return a short message about the scores, or raise."""
        ...


def build_prompt(scores: Mapping[str, float]) -> str:
    strongest, weakest = strongest_and_weakest(scores)
    lines = [
        "As a cognitive health expert, analyze the following brain assessment results for an adult aged 40-75.",
        "Provide a professional, warm, and encouraging personalized message (2-3 sentences max) that highlights "
        "their strongest and weakest cognitive areas, and gently suggests what this means for their brain health "
        "journey.",
        "Avoid jargon and use a science-backed, supportive tone, celebrating progress without judgment.",
        "The scores are percentages (0-100); speed is reaction time converted to a 0-100 score where higher is "
        "better.",
        "",
        "Assessment Scores:",
    ]
    for key, label in AREA_LABELS.items():
        lines.append(f"- {label}: {round(float(scores.get(key, 0.0)))}%")
    lines.extend(
        [
            "",
            f"Based on these, the strongest area appears to be {strongest} and the area for growth is {weakest}.",
            "",
            "Please provide the personalized message now:",
        ]
    )
    return "\n".join(lines)


def extract_text(data: object) -> str:
    """Pull the generated text out of a generateContent response body."""

    if not isinstance(data, dict):
        raise NarrationError("response is not an object")
    candidates = data.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        raise NarrationError("response has no candidates")
    content = candidates[0].get("content") if isinstance(candidates[0], dict) else None
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list):
        raise NarrationError("candidate has no parts")
    texts = [str(p.get("text", "")) for p in parts if isinstance(p, dict)]
    return "".join(texts).strip()


class GeminiNarrator:
    def __init__(
        self,
        *,
        api_key: str,
        model: str = DEFAULT_MODEL,
        timeout_s: float = 20.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("api_key must be set")
        self._api_key = api_key
        self._model = model
        self._timeout_s = float(timeout_s)
        self._transport = transport

    async def narrate(self, scores: Mapping[str, float]) -> str:
        body: dict[str, Any] = {
            "contents": [{"parts": [{"text": build_prompt(scores)}]}],
            "generationConfig": {"temperature": 0.7, "maxOutputTokens": 150},
        }
        async with httpx.AsyncClient(timeout=self._timeout_s, transport=self._transport) as client:
            resp = await client.post(
                GEMINI_URL.format(model=self._model),
                params={"key": self._api_key},
                json=body,
            )
            resp.raise_for_status()
            data = resp.json()
        return extract_text(data)


async def narrate_or_none(narrator: Narrator, scores: Mapping[str, float]) -> str | None:
    try:
        text = await narrator.narrate(scores)
    except (httpx.HTTPError, NarrationError, ValueError) as exc:
        logger.warning("Profile message request failed: %s", exc)
        return None
    cleaned = (text or "").strip()
    if cleaned == "":
        logger.warning("Profile message request returned an empty message")
        return None
    return cleaned


class NarrationDispatcher:
    """Runs one narrator call per request on a daemon worker thread."""

    def __init__(
        self,
        narrator: Narrator | None,
        *,
        deliver: Callable[[Callable[[], None]], None],
    ) -> None:
        self._narrator = narrator
        self._deliver = deliver

    @property
    def enabled(self) -> bool:
        return self._narrator is not None

    def request(
        self,
        scores: Mapping[str, float],
        on_done: Callable[[str | None], None],
    ) -> threading.Thread | None:
        if self._narrator is None:
            logger.info("No narrator configured; using the fallback message")
            self._deliver(lambda: on_done(None))
            return None
        worker = threading.Thread(
            target=self._run,
            args=(self._narrator, dict(scores), on_done),
            name="cognitrain-narrator",
            daemon=True,
        )
        worker.start()
        return worker

    def _run(
        self,
        narrator: Narrator,
        scores: dict[str, float],
        on_done: Callable[[str | None], None],
    ) -> None:
        try:
            text = asyncio.run(narrate_or_none(narrator, scores))
        except Exception:
            logger.exception("Profile message worker crashed")
            text = None
        self._deliver(lambda: on_done(text))


def build_narrator(*, api_key: str | None, model: str = DEFAULT_MODEL, timeout_s: float = 20.0) -> Narrator | None:
    if not api_key:
        return None
    return GeminiNarrator(api_key=api_key, model=model, timeout_s=timeout_s)
