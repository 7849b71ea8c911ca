import pytest

from orchestrator.fallback_manager import FallbackChain, FallbackStrategy


def test_first_ok_strategy_wins():
    chain = FallbackChain(
        "test",
        [
            FallbackStrategy("primary", lambda x: (x * 2, True)),
            FallbackStrategy("secondary", lambda x: (-1, True)),
        ],
    )

    outcome = chain.run(21)

    assert outcome.ok
    assert outcome.value == 42
    assert outcome.strategy == "primary"
    assert outcome.attempts == ["primary"]
    assert not outcome.used_fallback


def test_falls_through_to_next_strategy():
    chain = FallbackChain(
        "test",
        [
            FallbackStrategy("primary", lambda: (None, False)),
            FallbackStrategy("secondary", lambda: ("backup", True)),
        ],
    )

    outcome = chain.run()

    assert outcome.value == "backup"
    assert outcome.strategy == "secondary"
    assert outcome.used_fallback


def test_raising_strategy_counts_as_failure():
    def boom():
        raise RuntimeError("provider exploded")

    chain = FallbackChain(
        "test",
        [FallbackStrategy("primary", boom), FallbackStrategy("secondary", lambda: ("ok", True))],
    )

    outcome = chain.run()

    assert outcome.ok
    assert outcome.value == "ok"
    assert outcome.attempts == ["primary", "secondary"]


def test_all_failing_keeps_last_value():
    chain = FallbackChain(
        "test",
        [
            FallbackStrategy("primary", lambda: ("partial", False)),
            FallbackStrategy("secondary", lambda: (None, False)),
        ],
    )

    outcome = chain.run()

    assert not outcome.ok
    assert outcome.value == "partial"
    assert outcome.strategy is None


def test_keyword_arguments_forwarded():
    chain = FallbackChain("test", [FallbackStrategy("only", lambda *, name: (name.upper(), True))])

    assert chain.run(name="ada").value == "ADA"


def test_requires_a_strategy():
    with pytest.raises(ValueError):
        FallbackChain("empty", [])
