"""Tests for the version model."""

from datetime import date, datetime

import pytest

from jorup.errors import NightlyConfigurationError, VersionParseError
from jorup.version import (
    ExactStable,
    Latest,
    Nightly,
    NightlyRequirement,
    Stable,
    StableRange,
    compare,
    display,
    from_registry_tag,
    matches,
    parse,
    parse_requirement,
    sort_key,
    to_registry_tag,
)

NIGHTLY_BUILD = Nightly(anchor=Stable(0, 8, 1), build_date=date(2020, 3, 1))


class TestParse:
    """Tests for parse()."""

    def test_stable(self):
        assert parse("1.2.3") == Stable(1, 2, 3)

    def test_surrounding_whitespace_ignored(self):
        assert parse(" 0.8.0\n") == Stable(0, 8, 0)

    def test_nightly_literal_is_unconfigured(self):
        version = parse("nightly")
        assert version == Nightly()
        assert not version.configured

    def test_configured_nightly(self):
        assert parse("0.8.1-nightly.20200301") == NIGHTLY_BUILD

    @pytest.mark.parametrize(
        "text, component",
        [
            ("x.2.3", "major"),
            ("1.y.3", "minor"),
            ("1.2.z", "patch"),
            ("1.2", "patch"),
            ("1", "minor"),
            ("1.2.3.4", "patch"),
            ("01.2.3", "major"),
            ("1.2.3-beta", "pre-release"),
            ("1.2.3-nightly.2020", "build_date"),
            ("1.2.3-nightly.20201341", "build_date"),
        ],
    )
    def test_error_names_component(self, text, component):
        with pytest.raises(VersionParseError) as exc_info:
            parse(text)
        assert exc_info.value.component == component
        assert exc_info.value.text == text.strip()

    def test_parse_error_is_value_error(self):
        with pytest.raises(ValueError):
            parse("not a version")

    @pytest.mark.parametrize("text", ["0.0.0", "1.2.3", "10.20.30", "nightly", "0.8.1-nightly.20200301"])
    def test_display_round_trip(self, text):
        assert parse(display(parse(text))) == parse(text)


class TestRegistryTags:
    """Tests for registry tag rendering."""

    def test_stable_tag_is_v_prefixed(self):
        assert to_registry_tag(Stable(0, 8, 0)) == "v0.8.0"

    def test_nightly_tag_is_fixed(self):
        assert to_registry_tag(NIGHTLY_BUILD) == "nightly"
        assert to_registry_tag(Nightly()) == "nightly"

    def test_from_registry_tag(self):
        assert from_registry_tag("v0.8.0") == Stable(0, 8, 0)
        assert from_registry_tag("nightly") == Nightly()


class TestConfigureNightly:
    """Tests for configure_nightly()."""

    def test_anchor_is_next_patch(self):
        configured = Nightly().configure_nightly(Stable(0, 8, 0), date(2020, 3, 1))
        assert configured == NIGHTLY_BUILD
        assert str(configured) == "0.8.1-nightly.20200301"

    def test_accepts_datetime(self):
        configured = Nightly().configure_nightly(Stable(0, 8, 0), datetime(2020, 3, 1, 10, 30))
        assert configured.build_date == date(2020, 3, 1)

    def test_stable_is_unchanged(self):
        stable = Stable(1, 0, 0)
        assert stable.configure_nightly(Stable(0, 8, 0), date(2020, 3, 1)) is stable

    def test_reconfiguration_is_an_error(self):
        with pytest.raises(NightlyConfigurationError):
            NIGHTLY_BUILD.configure_nightly(Stable(0, 9, 0), date(2020, 4, 1))

    def test_nightly_anchor_is_an_error(self):
        with pytest.raises(NightlyConfigurationError):
            Nightly().configure_nightly(NIGHTLY_BUILD, date(2020, 4, 1))


class TestParseRequirement:
    """Tests for parse_requirement()."""

    def test_literals(self):
        assert parse_requirement("nightly") == NightlyRequirement()
        assert parse_requirement("latest") == Latest()

    def test_digit_led_is_exact(self):
        assert parse_requirement("1.2.3") == ExactStable(Stable(1, 2, 3))

    def test_digit_led_malformed_is_error(self):
        with pytest.raises(VersionParseError):
            parse_requirement("1.2")

    def test_range(self):
        requirement = parse_requirement(">=1.0.0, <2.0.0")
        assert isinstance(requirement, StableRange)
        assert str(requirement) == ">=1.0.0, <2.0.0"

    def test_digit_led_wildcard_is_range(self):
        assert isinstance(parse_requirement("0.8.*"), StableRange)

    def test_pre_release_bound(self):
        requirement = parse_requirement(">= 0.8.0-rc1, < 0.9")
        assert isinstance(requirement, StableRange)
        assert str(requirement) == ">= 0.8.0-rc1, < 0.9"

    @pytest.mark.parametrize(
        "text", ["", "   ", ">=", ">=1.x", "^", ">=1.0.0,", "foo", ">=1.2-rc1", "=1.*.3"]
    )
    def test_malformed(self, text):
        with pytest.raises(VersionParseError):
            parse_requirement(text)


class TestMatches:
    """Tests for matches()."""

    @pytest.mark.parametrize(
        "requirement, version, expected",
        [
            (">=1.0.0, <2.0.0", "1.0.0", True),
            (">=1.0.0, <2.0.0", "1.9.9", True),
            (">=1.0.0, <2.0.0", "2.0.0", False),
            (">=1.0.0, <2.0.0", "0.9.0", False),
            ("^0.8", "0.8.13", True),
            ("^0.8", "0.9.0", False),
            ("^1.2.3", "1.9.0", True),
            ("^1.2.3", "1.2.2", False),
            ("~1.2.3", "1.2.9", True),
            ("~1.2.3", "1.3.0", False),
            ("0.8.*", "0.8.5", True),
            ("0.8.*", "0.9.0", False),
            ("*", "3.1.4", True),
            ("=1.2.3", "1.2.3", True),
            ("!=1.2.3", "1.2.3", False),
            (">1.2", "1.2.5", False),
            (">1.2", "1.3.0", True),
            (">1", "1.9.9", False),
            (">=1.2", "1.2.0", True),
            ("<1.2", "1.1.9", True),
            ("<1.2", "1.2.0", False),
            ("<=1.2", "1.2.5", True),
            ("<=1.2", "1.3.0", False),
            ("<=1", "1.9.0", True),
            ("=1.2", "1.2.5", True),
            ("=1.2", "1.3.0", False),
            ("=1.2.*", "1.2.7", True),
            ("!=1.2.*", "1.2.7", False),
            ("!=1.2.*", "1.3.0", True),
            ("~1", "1.5.0", True),
            ("^0.0", "0.0.9", True),
            ("^0.0", "0.1.0", False),
            (">= 0.8.0-rc1, < 0.9", "0.8.0", True),
            (">= 0.8.0-rc1, < 0.9", "0.9.0", False),
            (">0.8.0-rc1", "0.7.9", False),
            ("<0.9.0-beta.2", "0.9.0", False),
            ("<0.9.0-beta.2", "0.8.9", True),
            ("=0.8.0-rc1", "0.8.0", False),
            (">=1.0.0, !=1.0.0-rc1", "1.0.0", True),
        ],
    )
    def test_stable_range(self, requirement, version, expected):
        assert matches(parse_requirement(requirement), parse(version)) is expected

    def test_exact_requires_equality(self):
        requirement = parse_requirement("1.2.3")
        assert matches(requirement, Stable(1, 2, 3))
        assert not matches(requirement, Stable(1, 2, 4))

    def test_stable_requirements_never_match_nightly(self):
        assert not matches(parse_requirement("*"), NIGHTLY_BUILD)
        assert not matches(parse_requirement("0.8.1"), NIGHTLY_BUILD)

    def test_nightly_requirement_never_matches_stable(self):
        assert not matches(NightlyRequirement(), Stable(0, 8, 1))

    def test_nightly_requirement_needs_configured_nightly(self):
        assert matches(NightlyRequirement(), NIGHTLY_BUILD)
        assert not matches(NightlyRequirement(), Nightly())

    def test_latest_matches_nothing(self):
        assert not matches(Latest(), Stable(1, 0, 0))


class TestCompare:
    """Tests for compare() and sort_key."""

    def test_stable_numeric_order(self):
        assert compare(Stable(1, 2, 3), Stable(1, 10, 0)) == -1
        assert compare(Stable(2, 0, 0), Stable(1, 99, 99)) == 1
        assert compare(Stable(1, 2, 3), Stable(1, 2, 3)) == 0

    def test_nightly_below_stable(self):
        assert compare(NIGHTLY_BUILD, Stable(0, 0, 1)) == -1
        assert compare(Stable(0, 0, 1), Nightly()) == 1

    def test_nightlies_order_by_date(self):
        later = Nightly(anchor=Stable(0, 8, 1), build_date=date(2020, 3, 2))
        assert compare(NIGHTLY_BUILD, later) == -1
        assert compare(Nightly(), NIGHTLY_BUILD) == -1

    def test_sort(self):
        versions = [Stable(1, 0, 0), NIGHTLY_BUILD, Stable(0, 9, 0), Stable(1, 0, 1)]
        assert sorted(versions, key=sort_key) == [
            NIGHTLY_BUILD,
            Stable(0, 9, 0),
            Stable(1, 0, 0),
            Stable(1, 0, 1),
        ]
