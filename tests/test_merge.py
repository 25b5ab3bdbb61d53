"""Tests for s4.merge — the layered override combinator."""

from s4.merge import merge, merge_into, merge_unique
from s4.setting import Setting
from s4.value import FALSE, TRUE, Value


class TestMerge:
    def test_missing_layer_keeps_current(self) -> None:
        assert merge("a", None) == "a"

    def test_missing_current_takes_layer(self) -> None:
        assert merge(None, "b") == "b"

    def test_terminal_replaced(self) -> None:
        assert merge("a", "b") == "b"
        assert merge(TRUE, FALSE) == FALSE

    def test_sets_union(self) -> None:
        assert merge({1, 2}, {2, 3}) == {1, 2, 3}

    def test_mapping_recursive(self) -> None:
        current = {"a": {"x": 1}, "b": 2}
        result = merge(current, {"a": {"y": 3}, "c": 4})
        assert result is current
        assert current == {"a": {"x": 1, "y": 3}, "b": 2, "c": 4}

    def test_mergeable_objects_merge_in_place(self) -> None:
        base = Setting({"a": TRUE})
        result = merge(base, Setting({"b": FALSE}))
        assert result is base
        assert base.to_toml() == {"a": True, "b": False}

    def test_not_commutative(self) -> None:
        assert merge({"k": "a"}, {"k": "b"}) == {"k": "b"}
        assert merge({"k": "b"}, {"k": "a"}) == {"k": "a"}

    def test_empty_layer_is_identity(self) -> None:
        current = {"a": {1, 2}, "b": Value.text("x")}
        assert merge(dict(current), {}) == current

    def test_reapplying_same_layer_is_idempotent(self) -> None:
        layer = {"a": {3}, "b": Value.text("y")}
        once = merge({"a": {1}, "b": Value.text("x")}, layer)
        snapshot = {k: (set(v) if isinstance(v, set) else v) for k, v in once.items()}
        twice = merge(once, layer)
        assert twice == snapshot


class TestMergeInto:
    def test_inserts_and_merges(self) -> None:
        current = {"s": {1}}
        merge_into(current, {"s": {2}, "t": {3}})
        assert current == {"s": {1, 2}, "t": {3}}


class TestMergeUnique:
    def test_keeps_order_and_skips_duplicates(self) -> None:
        current = [{"a": 1}]
        merge_unique(current, [{"a": 1}, {"b": 2}])
        assert current == [{"a": 1}, {"b": 2}]
