import pytest

from core.tallies import DeltaResult, PairResult, TotalResult
from core.tallies.responses import (
    HELP_TEXT,
    format_delta,
    format_link,
    format_total,
    format_unlink,
)


def test_help_lists_four_command_forms(engine):
    text = engine.help()
    assert text == HELP_TEXT
    for form in ("++", "--", "!link", "!unlink", "!total"):
        assert form in text


def test_names_are_case_insensitive(engine):
    engine.delta("Alpha", "inc")
    engine.delta("ALPHA", "++")

    assert engine.total("alpha") == TotalResult("alpha", 2)
    assert engine.link("Alpha", "BETA") == PairResult("alpha", "beta")
    assert engine.list_linked("beta") == ["alpha"]


def test_inc_then_dec_returns_to_zero(engine):
    assert engine.delta("fresh", "inc").score == 1
    assert engine.delta("fresh", "dec").score == 0


def test_delta_reports_linked_items(engine):
    engine.link("a", "b")
    engine.link("a", "c")

    assert engine.delta("a", "++") == DeltaResult("a", 1, ["b", "c"])
    assert engine.delta("c", "--") == DeltaResult("c", -1, ["a", "b"])


def test_unknown_delta_op_is_rejected(engine):
    with pytest.raises(ValueError):
        engine.delta("a", "+=")


def test_ensure_item_returns_normalized_name(engine):
    assert engine.ensure_item("  MixedCase ") == "mixedcase"
    assert engine.scores.get_score("mixedcase") == 0


def test_example_session(engine):
    assert format_delta(engine.delta("alpha", "++")) == "alpha: [1]"
    assert format_delta(engine.delta("beta", "++")) == "beta: [1]"
    assert format_link(engine.link("alpha", "beta")) == "Linked alpha and beta."
    assert format_delta(engine.delta("alpha", "++")) == "alpha: [2] (linked with: beta)"
    assert (
        format_total(engine.total("beta"))
        == "Total score for group including beta: [3]"
    )


def test_asymmetric_unlink_scenario(engine):
    engine.delta("x", "++")
    engine.delta("y", "++")
    engine.delta("y", "++")
    for _ in range(4):
        engine.delta("z", "++")

    engine.link("x", "y")
    engine.link("y", "z")
    assert format_unlink(engine.unlink("x", "z")) == "Unlinked x and z."

    assert engine.total("x").total == 3
    assert engine.total("y").total == 3
    assert engine.total("z").total == 4
    assert engine.list_linked("x") == ["y"]
    assert engine.list_linked("z") == []


def test_unlink_never_linked_is_silent(engine):
    engine.delta("a", "++")
    engine.delta("b", "++")

    assert engine.unlink("a", "b") == PairResult("a", "b")
    assert engine.total("a").total == 1


def test_storage_failure_returns_none(engine, store):
    engine.delta("a", "++")
    store.conn.execute("DROP TABLE aliases")

    assert engine.link("a", "b") is None
    assert engine.unlink("a", "b") is None
    assert engine.total("a") is None
    assert engine.delta("a", "++") is None
    assert engine.list_linked("a") is None


def test_failed_operation_is_rolled_back(engine, store):
    engine.delta("a", "++")
    store.conn.execute("DROP TABLE aliases")

    # The score row for "new" is written before the alias insert fails.
    assert engine.delta("new", "++") is None
    assert engine.scores.get_score("new") == 0
    assert engine.scores.get_score("a") == 1
