import threading

import pytest

from gaspro_dashboard.insights import (
    EMPTY_TEXT,
    FALLBACK_TEXT,
    NO_KEY_TEXT,
    InsightService,
    InsightTracker,
    build_prompt,
    generate_insight,
    gemini_generator,
)
from gaspro_dashboard.transforms import production_frame


@pytest.fixture
def production_df(sample_production):
    return production_frame(sample_production)


def test_prompt_contains_only_target_date_volumes(production_df):
    prompt = build_prompt(production_df, "2024-01-01")
    assert "2024-01-01" in prompt
    assert "A: 100 MCF" in prompt and "B: 200 MCF" in prompt
    assert "150" not in prompt


def test_generate_insight_without_generator():
    assert generate_insight(None, production_frame([]), "2024-01-01") == NO_KEY_TEXT
    assert gemini_generator(api_key="") is None


def test_generate_insight_falls_back_on_failure(production_df):
    def broken(prompt):
        raise TimeoutError("model timed out")

    assert generate_insight(broken, production_df, "2024-01-01") == FALLBACK_TEXT
    assert generate_insight(lambda p: "", production_df, "2024-01-01") == EMPTY_TEXT
    assert generate_insight(lambda p: "Strong day.", production_df, "2024-01-01") == "Strong day."


def test_tracker_discards_superseded_responses():
    tracker = InsightTracker()
    first = tracker.begin("2024-01-01")
    second = tracker.begin("2024-01-02")

    assert not tracker.is_current(first)
    assert not tracker.resolve(first, "old text")
    assert tracker.pending

    assert tracker.resolve(second, "new text")
    assert tracker.text == "new text"
    assert tracker.target_date == "2024-01-02"
    assert not tracker.pending


def test_slow_response_for_previous_date_never_displays(production_df):
    release_first = threading.Event()

    def generate(prompt):
        if "2024-01-01" in prompt:
            release_first.wait(timeout=5)
            return "text for the first date"
        return "text for the second date"

    service = InsightService(generate)
    try:
        slow = service.request(production_df, "2024-01-01")
        fast = service.request(production_df, "2024-01-02")
        assert fast.result(timeout=5) is True

        release_first.set()
        assert slow.result(timeout=5) is False

        assert service.text_for("2024-01-02") == "text for the second date"
        assert service.text_for("2024-01-01") is None
    finally:
        service.shutdown()


def test_pending_only_until_the_current_date_resolves(production_df):
    release = threading.Event()

    def generate(prompt):
        release.wait(timeout=5)
        return "summary"

    service = InsightService(generate)
    try:
        assert not service.is_pending("2024-01-01")
        future = service.request(production_df, "2024-01-01")
        assert service.is_pending("2024-01-01")
        assert not service.is_pending("2024-01-02")

        release.set()
        assert future.result(timeout=5) is True
        assert not service.is_pending("2024-01-01")
    finally:
        service.shutdown()
