"""
Executive insight text for a production date.

The generator is an external text model treated as an opaque call. Each
request is stamped with a generation number; a response is only displayed
if no newer request has been issued since, so a slow answer for a date the
user has already left cannot overwrite the current one.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable

import pandas as pd

from .config import GEMINI_API_KEY, GEMINI_MODEL, REQUEST_TIMEOUT

logger = logging.getLogger(__name__)

FALLBACK_TEXT = "Intelligence offline for this historical window. Manual review recommended."
EMPTY_TEXT = "Insight generation paused for this timestamp."
NO_KEY_TEXT = "Insight generator not configured. Set GEMINI_API_KEY to enable executive summaries."

TextGenerator = Callable[[str], str]


def build_prompt(df: pd.DataFrame, target_date: str) -> str:
    """Prompt built from the target date's per-field volumes."""
    day = df[df["date"] == target_date] if not df.empty else df
    summary = "\n".join(
        f"{row.field}: {row.amount:g} MCF" for row in day.itertuples(index=False)
    )
    return f"""
Analyze the gas production data for the specific date: {target_date}.

Field volumes:
{summary}

Task:
1. Summarize performance for {target_date} compared to typical operations.
2. Identify the top performing field and any concerns (e.g. low output fields).
3. Provide a strategic takeaway for the Managing Director.

Keep it high-level, executive, and direct (max 3 short paragraphs). Do not just repeat numbers; provide insight.
"""


def gemini_generator(
    api_key: str = GEMINI_API_KEY,
    model_name: str = GEMINI_MODEL,
    timeout: float = REQUEST_TIMEOUT,
) -> TextGenerator | None:
    """Return a prompt -> text callable backed by Gemini, or None without a key."""
    if not api_key:
        return None

    import google.generativeai as genai

    genai.configure(api_key=api_key)
    model = genai.GenerativeModel(model_name)

    def _generate(prompt: str) -> str:
        resp = model.generate_content(prompt, request_options={"timeout": timeout})
        return resp.text

    return _generate


def generate_insight(generate: TextGenerator | None, df: pd.DataFrame, target_date: str) -> str:
    """Insight text for one date. Generator failures give the fallback text."""
    if generate is None:
        return NO_KEY_TEXT
    try:
        text = generate(build_prompt(df, target_date))
    except Exception:
        logger.exception("Insight generation failed for %s", target_date)
        return FALLBACK_TEXT
    return text or EMPTY_TEXT


@dataclass(frozen=True)
class InsightTicket:
    generation: int
    target_date: str


class InsightTracker:
    """Request-generation bookkeeping for insight text.

    begin() supersedes every outstanding request; resolve() accepts a
    response only for the newest ticket.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._generation = 0
        self.target_date: str | None = None
        self.text: str | None = None

    def begin(self, target_date: str) -> InsightTicket:
        with self._lock:
            self._generation += 1
            self.target_date = target_date
            self.text = None
            return InsightTicket(self._generation, target_date)

    def is_current(self, ticket: InsightTicket) -> bool:
        with self._lock:
            return ticket.generation == self._generation

    def resolve(self, ticket: InsightTicket, text: str) -> bool:
        with self._lock:
            if ticket.generation != self._generation:
                logger.debug(
                    "Discarding stale insight for %s (generation %d, current %d)",
                    ticket.target_date, ticket.generation, self._generation,
                )
                return False
            self.text = text
            return True

    @property
    def pending(self) -> bool:
        return self.target_date is not None and self.text is None


class InsightService:
    """Runs insight generation off the UI thread and keeps only current answers."""

    def __init__(self, generate: TextGenerator | None, executor: ThreadPoolExecutor | None = None):
        self.generate = generate
        self.tracker = InsightTracker()
        self._executor = executor or ThreadPoolExecutor(max_workers=2, thread_name_prefix="gaspro-insight")

    def request(self, df: pd.DataFrame, target_date: str) -> Future:
        """Start generation for target_date, superseding any earlier request."""
        ticket = self.tracker.begin(target_date)
        snapshot = df.copy()

        def _work() -> bool:
            text = generate_insight(self.generate, snapshot, ticket.target_date)
            return self.tracker.resolve(ticket, text)

        return self._executor.submit(_work)

    def is_pending(self, target_date: str) -> bool:
        """True while a request for target_date has not resolved yet."""
        return self.tracker.target_date == target_date and self.tracker.pending

    def text_for(self, target_date: str) -> str | None:
        """Resolved text if it belongs to target_date, else None."""
        if self.tracker.target_date != target_date:
            return None
        return self.tracker.text

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False)
