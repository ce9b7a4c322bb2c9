import threading

from core.tallies import TallyEngine, TallyStore


def test_group_of_unknown_item_is_none(engine):
    assert engine.groups.group_of("nobody") is None


def test_link_merges_into_first_items_group(engine):
    engine.scores.ensure_item("a")
    engine.scores.ensure_item("b")
    group_a = engine.groups.group_of("a")
    group_b = engine.groups.group_of("b")

    engine.groups.link("a", "b")

    assert engine.groups.group_of("a") == group_a
    assert engine.groups.group_of("b") == group_a
    assert group_b not in engine.groups.live_groups()


def test_link_survivor_ignores_group_size(engine):
    engine.groups.link("x", "y")
    engine.groups.link("x", "z")
    big = engine.groups.group_of("x")
    engine.scores.ensure_item("solo")
    solo = engine.groups.group_of("solo")

    engine.groups.link("solo", "x")

    for item in ("solo", "x", "y", "z"):
        assert engine.groups.group_of(item) == solo
    assert big not in engine.groups.live_groups()


def test_link_creates_missing_items(engine):
    engine.groups.link("new1", "new2")

    assert engine.scores.get_score("new1") == 0
    assert engine.groups.group_of("new1") == engine.groups.group_of("new2")


def test_link_is_idempotent(engine):
    engine.groups.link("a", "b")
    first = (engine.groups.group_of("a"), engine.groups.group_of("b"))
    live = engine.groups.live_groups()

    engine.groups.link("a", "b")

    assert (engine.groups.group_of("a"), engine.groups.group_of("b")) == first
    assert engine.groups.live_groups() == live


def test_link_is_transitive(engine):
    engine.groups.link("a", "b")
    engine.groups.link("b", "c")

    group = engine.groups.group_of("a")
    assert engine.groups.group_of("b") == group
    assert engine.groups.group_of("c") == group
    assert engine.groups.members(group) == ["a", "b", "c"]


def test_unlink_separates_pair(engine):
    engine.groups.link("a", "b")
    group = engine.groups.group_of("a")

    engine.groups.unlink("a", "b")

    assert engine.groups.group_of("a") == group
    assert engine.groups.group_of("b") != group


def test_unlink_only_moves_second_item(engine):
    # Documented behaviour: c stays with a, only b leaves.
    engine.groups.link("a", "b")
    engine.groups.link("a", "c")

    engine.groups.unlink("a", "b")

    assert engine.groups.group_of("a") == engine.groups.group_of("c")
    assert engine.groups.group_of("b") != engine.groups.group_of("a")
    assert engine.groups.members(engine.groups.group_of("b")) == ["b"]


def test_unlink_of_ungrouped_items_is_noop(engine):
    engine.scores.ensure_item("a")
    engine.scores.ensure_item("b")
    before = (engine.groups.group_of("a"), engine.groups.group_of("b"))
    live = engine.groups.live_groups()

    engine.groups.unlink("a", "b")

    assert (engine.groups.group_of("a"), engine.groups.group_of("b")) == before
    assert engine.groups.live_groups() == live


def test_unlink_creates_missing_items(engine):
    engine.groups.unlink("p", "q")

    assert engine.groups.group_of("p") is not None
    assert engine.groups.group_of("q") is not None
    assert engine.groups.group_of("p") != engine.groups.group_of("q")


def test_unlink_self_retires_emptied_group(engine):
    engine.scores.ensure_item("a")
    old = engine.groups.group_of("a")

    engine.groups.unlink("a", "a")

    assert engine.groups.group_of("a") != old
    assert old not in engine.groups.live_groups()


def test_group_ids_are_never_reused(engine):
    engine.groups.link("a", "b")
    retired = set()
    seen = set(engine.groups.live_groups())
    for _ in range(3):
        engine.groups.unlink("a", "b")
        seen.add(engine.groups.group_of("b"))
        before = engine.groups.group_of("b")
        engine.groups.link("a", "b")
        retired.add(before)

    fresh = engine.groups.create_group()
    assert fresh not in seen
    assert fresh > max(seen | retired)


def test_live_groups_match_membership(engine):
    engine.groups.link("a", "b")
    engine.groups.link("c", "d")
    engine.groups.link("a", "c")
    engine.groups.unlink("a", "d")

    referenced = {engine.groups.group_of(item) for item in "abcd"}
    assert set(engine.groups.live_groups()) == referenced


def test_concurrent_delta_link_unlink_on_disk(db_path):
    with TallyStore(db_path) as store:
        engine = TallyEngine(store)
        errors = []

        def worker():
            try:
                for _ in range(200):
                    assert engine.delta("a", "++") is not None
                    assert engine.unlink("a", "b") is not None
                    assert engine.link("a", "b") is not None
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert engine.scores.get_score("a") == 800
        assert engine.scores.get_score("b") == 0
        group_a = engine.groups.group_of("a")
        assert engine.groups.group_of("b") == group_a
        assert set(engine.groups.live_groups()) == {group_a}
        assert engine.total("b").total == 800
