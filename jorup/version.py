"""Version model for node releases.

A :data:`Version` is either a :class:`Stable` semantic version or a
:class:`Nightly` build. A nightly is *unconfigured* when it only names the
nightly channel (a request) and *configured* once it is tied to the stable
version it was built against and its build date (an artifact).

Ordering is total: stable versions order numerically, configured nightlies by
build date, and every nightly orders below every stable. This is only used to
pick the newest cached release, it does not claim nightlies are older.

A :data:`VersionRequirement` is matched against candidates with
:func:`matches`, the only predicate used to check a requirement.
"""

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from functools import cmp_to_key
from typing import Union

from packaging.specifiers import InvalidSpecifier, SpecifierSet

from .errors import NightlyConfigurationError, VersionParseError

NIGHTLY = "nightly"
LATEST = "latest"
DATE_FORMAT = "%Y%m%d"

_NUMBER = re.compile(r"0|[1-9][0-9]*")
_OPERAND = re.compile(
    r"^(0|[1-9][0-9]*)(?:\.(0|[1-9][0-9]*|\*))?(?:\.(0|[1-9][0-9]*|\*))?"
    r"(?:-([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?(?:\+[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*)?$"
)
_COMPONENTS = ("major", "minor", "patch")
_OPERATORS = (">=", "<=", "==", "!=", ">", "<", "=")
# No stable release precedes 0.0.0
_NOTHING = "<0.0.0"


@dataclass(frozen=True)
class Stable:
    """An ordinary ``major.minor.patch`` release."""

    major: int
    minor: int
    patch: int

    def next_patch(self) -> "Stable":
        return Stable(self.major, self.minor, self.patch + 1)

    def configure_nightly(self, anchor: "Stable", build_date: date) -> "Stable":
        """Stable versions are already concrete, nothing to configure."""
        return self

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


@dataclass(frozen=True)
class Nightly:
    """A nightly build, optionally tied to its anchor version and build date."""

    anchor: Stable | None = None
    build_date: date | None = None

    @property
    def configured(self) -> bool:
        return self.anchor is not None and self.build_date is not None

    def configure_nightly(self, anchor: Stable, build_date: date) -> "Nightly":
        """Tie this nightly to the build after ``anchor`` published on ``build_date``.

        ``anchor`` is the latest known stable release; the nightly is
        considered a build of its next patch version.

        Raises:
            NightlyConfigurationError: If the nightly is already configured or
                ``anchor`` is not a stable version.
        """
        if self.configured:
            raise NightlyConfigurationError(f"Nightly {self} is already configured")
        if not isinstance(anchor, Stable):
            raise NightlyConfigurationError(
                f"Only a stable version can anchor a nightly, got {anchor}"
            )
        if isinstance(build_date, datetime):
            build_date = build_date.date()
        return Nightly(anchor=anchor.next_patch(), build_date=build_date)

    def __str__(self) -> str:
        if not self.configured:
            return NIGHTLY
        return f"{self.anchor}-nightly.{self.build_date.strftime(DATE_FORMAT)}"


Version = Union[Stable, Nightly]


@dataclass(frozen=True)
class Latest:
    """No constraint: whatever the registry advertises as latest."""

    def __str__(self) -> str:
        return LATEST


@dataclass(frozen=True)
class NightlyRequirement:
    """Any configured nightly build."""

    def __str__(self) -> str:
        return NIGHTLY


@dataclass(frozen=True)
class StableRange:
    """A semantic version range such as ``>=1.0.0, <2.0.0`` or ``^0.8``."""

    text: str
    specifiers: SpecifierSet = field(compare=False, repr=False)

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class ExactStable:
    """Exactly one stable version."""

    version: Stable

    def __str__(self) -> str:
        return str(self.version)


VersionRequirement = Union[Latest, NightlyRequirement, StableRange, ExactStable]


def parse(text: str) -> Version:
    """Parse a version string.

    Accepted forms are ``nightly``, ``1.2.3`` and the display form of a
    configured nightly, ``1.2.4-nightly.20200301``.

    Raises:
        VersionParseError: Naming the component that failed.
    """
    text = text.strip()
    if text == NIGHTLY:
        return Nightly()

    base, separator, suffix = text.partition("-")
    if not separator:
        return _parse_stable(text)

    if not suffix.startswith(NIGHTLY + "."):
        raise VersionParseError(text, "pre-release", f"unsupported suffix '{suffix}'")
    anchor = _parse_stable(base, original=text)
    raw_date = suffix[len(NIGHTLY) + 1 :]
    if not re.fullmatch(r"[0-9]{8}", raw_date):
        raise VersionParseError(text, "build_date", "expected YYYYMMDD")
    try:
        build_date = datetime.strptime(raw_date, DATE_FORMAT).date()
    except ValueError as exc:
        raise VersionParseError(text, "build_date", str(exc)) from exc
    return Nightly(anchor=anchor, build_date=build_date)


def parse_requirement(text: str) -> VersionRequirement:
    """Parse a version requirement.

    ``nightly`` and ``latest`` are literals, text starting with a digit is an
    exact version and anything else is a semantic version range.
    """
    text = text.strip()
    if not text:
        raise VersionParseError(text, "requirement", "empty requirement")
    if text == NIGHTLY:
        return NightlyRequirement()
    if text == LATEST:
        return Latest()
    if text[0].isdigit() and "*" not in text:
        return exact_requirement(parse(text))
    return StableRange(text, _parse_range(text))


def exact_requirement(version: Version) -> VersionRequirement:
    """Return the requirement satisfied only by ``version``."""
    if isinstance(version, Stable):
        return ExactStable(version)
    return NightlyRequirement()


def matches(requirement: VersionRequirement, version: Version) -> bool:
    """Return True when ``version`` satisfies ``requirement``.

    Stable requirements never match nightlies and vice versa; ``Latest`` only
    drives remote resolution and never matches directly.
    """
    if isinstance(requirement, Latest):
        return False
    if isinstance(requirement, NightlyRequirement):
        return isinstance(version, Nightly) and version.configured
    if isinstance(requirement, StableRange):
        if not isinstance(version, Stable):
            return False
        return requirement.specifiers.contains(str(version), prereleases=False)
    if isinstance(requirement, ExactStable):
        return isinstance(version, Stable) and version == requirement.version
    raise TypeError(f"Unknown version requirement: {requirement!r}")


def compare(a: Version, b: Version) -> int:
    """Return -1, 0 or 1 as ``a`` orders below, equal to or above ``b``."""
    if isinstance(a, Stable):
        if isinstance(b, Stable):
            return _sign(_stable_key(a), _stable_key(b))
        return 1
    if isinstance(b, Stable):
        return -1
    return _sign(_nightly_key(a), _nightly_key(b))


sort_key = cmp_to_key(compare)


def display(version: Version) -> str:
    return str(version)


def to_registry_tag(version: Version) -> str:
    """Render the release tag the registry uses for ``version``."""
    if isinstance(version, Stable):
        return f"v{version}"
    return NIGHTLY


def from_registry_tag(tag: str) -> Version:
    """Parse a registry tag such as ``v1.2.3`` or ``nightly``."""
    return parse(tag.strip().removeprefix("v"))


def _parse_stable(text: str, original: str | None = None) -> Stable:
    original = original if original is not None else text
    parts = text.split(".")
    if len(parts) < len(_COMPONENTS):
        raise VersionParseError(original, _COMPONENTS[len(parts)], "component missing")
    if len(parts) > len(_COMPONENTS):
        raise VersionParseError(original, "patch", "unexpected trailing component")
    numbers = []
    for name, part in zip(_COMPONENTS, parts):
        if not _NUMBER.fullmatch(part):
            raise VersionParseError(original, name, f"'{part}' is not a number")
        numbers.append(int(part))
    return Stable(*numbers)


def _parse_range(text: str) -> SpecifierSet:
    clauses = [clause.strip() for clause in text.split(",")]
    if any(not clause for clause in clauses):
        raise VersionParseError(text, "requirement", "empty comparator")
    specifiers: list[str] = []
    for clause in clauses:
        specifiers.extend(_translate_clause(text, clause))
    try:
        return SpecifierSet(",".join(specifiers))
    except InvalidSpecifier as exc:
        raise VersionParseError(text, "requirement", str(exc)) from exc


@dataclass(frozen=True)
class _Operand:
    """The version side of a comparator: one to three components, maybe a pre-release."""

    numbers: tuple[int, ...]
    pre: str | None = None

    @property
    def partial(self) -> bool:
        return len(self.numbers) < len(_COMPONENTS)

    @property
    def padded(self) -> tuple[int, int, int]:
        missing = len(_COMPONENTS) - len(self.numbers)
        return self.numbers + (0,) * missing

    @property
    def release(self) -> str:
        return ".".join(str(n) for n in self.padded)

    @property
    def following(self) -> str:
        """First release past everything this operand covers: ``1.3.0`` for ``1.2``."""
        return _Operand(self.numbers[:-1] + (self.numbers[-1] + 1,)).release


def _translate_clause(text: str, clause: str) -> list[str]:
    """Translate one semver comparator into PEP 440 specifiers.

    Partial operands cover every version they leave unspecified, so ``>1.2``
    starts at ``1.3.0`` and ``<=1.2`` stops before it. Candidates are always
    stable releases, which order against a pre-release operand exactly as
    they order against its release part.
    """
    if clause == "*":
        return []
    if clause[0] in "^~":
        operand = _parse_operand(text, clause[1:].strip())
        upper = _caret_upper(operand) if clause[0] == "^" else _tilde_upper(operand)
        return [f">={operand.release}", f"<{upper}"]

    for operator in _OPERATORS:
        if clause.startswith(operator):
            operand = _parse_operand(text, clause[len(operator) :].strip())
            break
    else:
        operator, operand = "=", _parse_operand(text, clause)
    if operator == "==":
        operator = "="

    if operand.pre is not None:
        if operator in (">", ">="):
            return [f">={operand.release}"]
        if operator in ("<", "<="):
            return [f"<{operand.release}"]
        if operator == "!=":
            return []
        return [_NOTHING]

    if not operand.partial:
        return [f"{'==' if operator == '=' else operator}{operand.release}"]
    wildcard = ".".join(str(n) for n in operand.numbers) + ".*"
    return {
        "=": [f">={operand.release}", f"<{operand.following}"],
        "!=": [f"!={wildcard}"],
        ">": [f">={operand.following}"],
        ">=": [f">={operand.release}"],
        "<": [f"<{operand.release}"],
        "<=": [f"<{operand.following}"],
    }[operator]


def _parse_operand(text: str, operand: str) -> _Operand:
    match = _OPERAND.match(operand)
    if match is None:
        raise VersionParseError(text, "requirement", f"invalid version '{operand}'")
    major, minor, patch, pre = match.groups()
    if minor == "*" and patch not in (None, "*"):
        raise VersionParseError(text, "requirement", f"invalid version '{operand}'")
    numbers = tuple(int(n) for n in (major, minor, patch) if n is not None and n != "*")
    if pre is not None and len(numbers) < len(_COMPONENTS):
        raise VersionParseError(text, "pre-release", f"needs a full version in '{operand}'")
    return _Operand(numbers, pre)


def _caret_upper(operand: _Operand) -> str:
    major, minor, patch = operand.padded
    count = len(operand.numbers)
    if major > 0 or count == 1:
        return f"{major + 1}.0.0"
    if minor > 0 or count == 2:
        return f"0.{minor + 1}.0"
    return f"0.0.{patch + 1}"


def _tilde_upper(operand: _Operand) -> str:
    if len(operand.numbers) == 1:
        return operand.following
    return _Operand(operand.numbers[:2]).following


def _stable_key(version: Stable) -> tuple[int, int, int]:
    return (version.major, version.minor, version.patch)


def _nightly_key(version: Nightly) -> tuple[int, date]:
    if version.build_date is None:
        return (0, date.min)
    return (1, version.build_date)


def _sign(a: tuple, b: tuple) -> int:
    return (a > b) - (a < b)
