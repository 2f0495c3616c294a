"""Tests for the key-level diff."""

import random

from configdiff.diff_engine import diff_entries
from configdiff.models import ChangedEntry, ValueEntry


def test_concrete_scenario():
    result = diff_entries({"A": "1", "B": "2"}, {"A": "1", "B": "3", "C": "4"})

    assert result.changed == (ChangedEntry("B", "2", "3"),)
    assert result.added == (ValueEntry("C", "4"),)
    assert result.removed == ()
    assert result.unchanged == (ValueEntry("A", "1"),)


def test_to_dict_uses_from_and_to():
    result = diff_entries({"B": "2"}, {"B": "3"})

    assert result.to_dict()["changed"] == [{"key": "B", "from": "2", "to": "3"}]


def test_identity():
    values = {"x": "1", "y": "", "z.a[0]": "null"}
    result = diff_entries(values, dict(values))

    assert result.added == ()
    assert result.removed == ()
    assert result.changed == ()
    assert [e.key for e in result.unchanged] == sorted(values)


def test_ordinal_key_order():
    result = diff_entries({}, {"a": "1", "B": "1", "_": "1", "Z": "1"})

    assert [e.key for e in result.added] == ["B", "Z", "_", "a"]


def test_no_normalization_of_values():
    result = diff_entries({"A": "true"}, {"A": "True"})

    assert result.changed == (ChangedEntry("A", "true", "True"),)


def test_partition_covers_union_exactly_once():
    rng = random.Random(1234)
    for _ in range(50):
        left = {f"k{rng.randint(0, 30)}": str(rng.randint(0, 3)) for _ in range(rng.randint(0, 20))}
        right = {f"k{rng.randint(0, 30)}": str(rng.randint(0, 3)) for _ in range(rng.randint(0, 20))}

        result = diff_entries(left, right)
        keys = (
            [e.key for e in result.added]
            + [e.key for e in result.removed]
            + [e.key for e in result.changed]
            + [e.key for e in result.unchanged]
        )

        assert sorted(keys) == sorted(set(left) | set(right))
        assert len(keys) == len(set(keys))
