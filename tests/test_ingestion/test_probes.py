"""Tests for field probes over loosely-structured API payloads."""

import pytest

from src.ingestion.probes import FieldProbe, ProbeSet, as_identifier, as_int, as_text, unwrap


class TestConverters:
    @pytest.mark.parametrize(
        "value,expected",
        [
            (42, 42),
            ("42", 42),
            ("1.0e3", 1000),
            (12.7, 12),
            (0, None),
            (-5, None),
            ("abc", None),
            ("", None),
            (None, None),
            (True, None),
            ([1], None),
        ],
    )
    def test_as_int(self, value, expected):
        assert as_int(value) == expected

    def test_as_text(self):
        assert as_text("  Pro Hacker ") == "Pro Hacker"
        assert as_text("   ") is None
        assert as_text(12) is None

    def test_as_identifier(self):
        assert as_identifier(2238318) == "2238318"
        assert as_identifier("neo") == "neo"
        assert as_identifier(False) is None
        assert as_identifier(None) is None


class TestFieldProbe:
    def test_first_usable_key_wins(self):
        probe = FieldProbe("rank", ("ranking", "global_ranking", "rank"), as_int)

        assert probe.extract({"ranking": 0, "global_ranking": "n/a", "rank": 812}) == 812

    def test_missing_keys_yield_none(self):
        probe = FieldProbe("rank", ("ranking",), as_int)
        assert probe.extract({"other": 1}) is None

    def test_with_keys_keeps_converter(self):
        probe = FieldProbe("rank", ("ranking",), as_int).with_keys(["points"])

        assert probe.keys == ("points",)
        assert probe.extract({"points": "7"}) == 7


class TestProbeSet:
    @pytest.fixture
    def defaults(self):
        return [
            FieldProbe("rank", ("ranking", "global_ranking"), as_int),
            FieldProbe("tier", ("rank", "rank_name"), as_text),
        ]

    def test_override_replaces_key_order(self, defaults):
        probes = ProbeSet.build(defaults, {"rank": ["global_ranking", "ranking"]})

        assert probes.extract("rank", {"ranking": 10, "global_ranking": 20}) == 20
        assert probes.extract("tier", {"rank": "Hacker"}) == "Hacker"

    def test_unknown_override_ignored(self, defaults):
        probes = ProbeSet.build(defaults, {"nonexistent": ["x"]})
        assert set(probes.probes) == {"rank", "tier"}

    def test_default_when_missing(self, defaults):
        probes = ProbeSet.build(defaults)
        assert probes.extract("rank", {}, default=0) == 0

    def test_matches(self, defaults):
        probes = ProbeSet.build(defaults)

        assert probes.matches({"rank_name": "Hacker"}) is True
        assert probes.matches({"message": "ok"}) is False
        assert probes.matches(["ranking"]) is False


class TestUnwrap:
    def test_strips_known_wrapper(self):
        assert unwrap({"profile": {"id": 1}}) == {"id": 1}
        assert unwrap({"info": {"id": 2}}) == {"id": 2}

    def test_wrapper_priority(self):
        assert unwrap({"data": {"id": 3}, "profile": {"id": 1}}) == {"id": 1}

    def test_bare_payload_returned(self):
        payload = {"id": 4, "profile": None}
        assert unwrap(payload) is payload

    def test_empty_wrapper_ignored(self):
        payload = {"profile": {}, "ranking": 5}
        assert unwrap(payload) is payload
