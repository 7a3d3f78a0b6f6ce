"""
Tests for the class map and role resolution.
"""

import pytest
from microgel_annotator.core.annotation import ClassMap, Roles, resolve_roles
from microgel_annotator.core.annotation.classes import as_class_id


class TestAsClassId:
    def test_accepts_integers_and_their_strings(self):
        assert as_class_id(3) == 3
        assert as_class_id("3") == 3
        assert as_class_id("2.0") == 2
        assert as_class_id(4.0) == 4

    def test_rejects_other_keys(self):
        assert as_class_id("cell") is None
        assert as_class_id(1.5) is None
        assert as_class_id(None) is None
        assert as_class_id(True) is None


class TestResolveRoles:
    def test_default_ids(self):
        assert resolve_roles({}) == Roles(container=0, contained=1)

    def test_by_name_case_insensitive(self):
        roles = resolve_roles({"4": "Cell", "9": "MicroGel"})
        assert roles == Roles(container=9, contained=4)

    def test_int_and_string_keys_equivalent(self):
        assert resolve_roles({2: "cell", 5: "microgel"}) == resolve_roles(
            {"2": "cell", "5": "microgel"}
        )

    def test_last_match_wins(self):
        roles = resolve_roles({"1": "microgel", "3": "microgel", "2": "cell"})
        assert roles.container == 3
        assert roles.contained == 2

    def test_partial_fallback(self):
        roles = resolve_roles({"7": "cell", "8": "bubble"})
        assert roles == Roles(container=0, contained=7)

    def test_non_numeric_keys_ignored(self):
        roles = resolve_roles({"abc": "microgel", "2": "cell"})
        assert roles == Roles(container=0, contained=2)


class TestClassMap:
    @pytest.fixture
    def names(self):
        return ClassMap({"0": "microgel", "1": "cell", "2": "debris"})

    def test_lookup_by_int_or_string(self, names):
        assert names[1] == "cell"
        assert names["1"] == "cell"
        assert 2 in names
        assert "2" in names
        assert 5 not in names

        with pytest.raises(KeyError):
            names[5]

    def test_name_for_fallback(self, names):
        assert names.name_for(0) == "microgel"
        assert names.name_for(42) == "class"
        assert names.name_for(42, default="?") == "?"

    def test_order_and_positions(self, names):
        assert names.ids() == [0, 1, 2]
        assert list(names) == [0, 1, 2]
        assert names.nth(2) == 2
        assert names.nth(3) is None
        assert names.nth(-1) is None
        assert names.first_id() == 0
        assert ClassMap().first_id() == 0
        assert ClassMap({"5": "x", "3": "y"}).first_id() == 5

    def test_drops_non_numeric_keys(self):
        class_map = ClassMap({"a": "nope", "1": "cell"})
        assert len(class_map) == 1

    def test_merged_other_wins(self, names):
        merged = names.merged({2: "bubble", "3": "cluster"})

        assert merged.to_dict() == {
            "0": "microgel",
            "1": "cell",
            "2": "bubble",
            "3": "cluster",
        }
        # Original untouched
        assert names[2] == "debris"

    def test_equality_ignores_key_type(self):
        assert ClassMap({0: "microgel"}) == ClassMap({"0": "microgel"})
        assert ClassMap({0: "microgel"}) != ClassMap({0: "cell"})

    def test_roles(self, names):
        assert names.roles() == Roles(container=0, contained=1)
        assert ClassMap({"1": "microgel", "0": "cell"}).roles() == Roles(1, 0)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
