# Path: release_installer/models/version.py
"""
Version Identifier

Immutable semantic release identifier with the equivalence relations
used to match catalog entries against installed bundles.

Architecture:
- Frozen dataclass (hashable, immutable after construction)
- Strict equality on all fields (dataclass __eq__)
- Equivalence ignoring build metadata
- Equivalence for install matching (release vs prerelease rules)
- Parsers for semantic version strings and marketing release names
- Semantic version precedence for sorting
"""

import re
from dataclasses import dataclass
from functools import total_ordering
from typing import Optional

# major.minor.patch[-prerelease][+build], minor/patch optional
_SEMVER_PATTERN = re.compile(
    r'^v?(?P<major>\d+)'
    r'(?:\.(?P<minor>\d+))?'
    r'(?:\.(?P<patch>\d+))?'
    r'(?:-(?P<prerelease>[0-9A-Za-z.-]+))?'
    r'(?:\+(?P<build>[0-9A-Za-z.-]+))?$'
)

# Xcode 10.2 Beta 4 / 10.2 GM seed 2 / Xcode 10.2.1
_RELEASE_NAME_PATTERN = re.compile(
    r'^(?:\w+ )?(?P<major>\d+)\.?(?P<minor>\d?)\.?(?P<patch>\d?) ?'
    r'(?P<prerelease_type>[a-zA-Z ]+)? ?(?P<prerelease_version>\d?)',
    re.IGNORECASE
)


def _split_identifiers(value: Optional[str]) -> tuple[str, ...]:
    if not value:
        return ()
    return tuple(part for part in value.split('.') if part)


def _identifier_precedence_key(identifier: str) -> tuple:
    # Numeric identifiers sort before alphanumeric ones
    if identifier.isdigit():
        return (0, int(identifier), '')
    return (1, 0, identifier)


@total_ordering
@dataclass(frozen=True)
class VersionID:
    """
    Semantic release identifier.

    Attributes:
        major: Major version
        minor: Minor version
        patch: Patch version
        prerelease_identifiers: Ordered prerelease identifiers ('beta', '4')
        build_metadata_identifiers: Ordered build metadata ('15A240d')

    Example:
        version = VersionID.parse('15.0.0-beta.4+15A5209g')
        version.is_prerelease                       # True
        version.description_without_build_metadata  # '15.0.0-beta.4'
    """
    major: int
    minor: int = 0
    patch: int = 0
    prerelease_identifiers: tuple[str, ...] = ()
    build_metadata_identifiers: tuple[str, ...] = ()

    def __post_init__(self):
        if min(self.major, self.minor, self.patch) < 0:
            raise ValueError(f"Version components must be non-negative: {self}")
        # Accept lists from callers, store tuples
        object.__setattr__(self, 'prerelease_identifiers', tuple(self.prerelease_identifiers))
        object.__setattr__(self, 'build_metadata_identifiers', tuple(self.build_metadata_identifiers))

    # ========================================================================
    # CONSTRUCTION
    # ========================================================================

    @classmethod
    def parse(cls, value: str, strict: bool = False) -> 'VersionID':
        """
        Parse a semantic version string.

        Minor and patch default to 0 so '10.2' parses as 10.2.0,
        unless strict is set, which requires all three components.

        Raises:
            ValueError: If value is not a version string
        """
        match = _SEMVER_PATTERN.match(value.strip())
        if not match or (strict and (match.group('minor') is None or match.group('patch') is None)):
            raise ValueError(f"Not a version string: {value!r}")

        return cls(
            major=int(match.group('major')),
            minor=int(match.group('minor') or 0),
            patch=int(match.group('patch') or 0),
            prerelease_identifiers=_split_identifiers(match.group('prerelease')),
            build_metadata_identifiers=_split_identifiers(match.group('build')),
        )

    @classmethod
    def try_parse(cls, value: str, strict: bool = False) -> Optional['VersionID']:
        """Parse a semantic version string, returning None when it does not parse."""
        try:
            return cls.parse(value, strict=strict)
        except ValueError:
            return None

    @classmethod
    def from_release_name(
        cls,
        name: str,
        build_metadata: Optional[str] = None
    ) -> Optional['VersionID']:
        """
        Parse a marketing release name.

        Examples: 'Xcode 10.2 Beta 4', '10.2 GM seed 2', 'Xcode 10.2.1'.
        Prerelease words are lower-cased and joined with '-'.

        Args:
            name: Release name
            build_metadata: Optional build number to attach

        Returns:
            VersionID or None when the name has no version
        """
        match = _RELEASE_NAME_PATTERN.match(name.strip())
        if not match:
            return None

        prerelease = []
        for part in (match.group('prerelease_type'), match.group('prerelease_version')):
            if part is None:
                continue
            cleaned = part.strip().lower().replace(' ', '-')
            if cleaned:
                prerelease.append(cleaned)

        return cls(
            major=int(match.group('major')),
            minor=int(match.group('minor') or 0),
            patch=int(match.group('patch') or 0),
            prerelease_identifiers=tuple(prerelease),
            build_metadata_identifiers=(build_metadata,) if build_metadata else (),
        )

    def with_build_metadata(self, *identifiers: str) -> 'VersionID':
        """Copy with build metadata replaced."""
        return VersionID(
            self.major,
            self.minor,
            self.patch,
            self.prerelease_identifiers,
            tuple(i for i in identifiers if i),
        )

    def with_prerelease(self, *identifiers: str) -> 'VersionID':
        """Copy with prerelease identifiers replaced."""
        return VersionID(
            self.major,
            self.minor,
            self.patch,
            tuple(i for i in identifiers if i),
            self.build_metadata_identifiers,
        )

    # ========================================================================
    # PROPERTIES
    # ========================================================================

    @property
    def is_prerelease(self) -> bool:
        return bool(self.prerelease_identifiers)

    @property
    def has_build_metadata(self) -> bool:
        return bool(self.build_metadata_identifiers)

    @property
    def description_without_build_metadata(self) -> str:
        base = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease_identifiers:
            base += '-' + '.'.join(self.prerelease_identifiers)
        return base

    @property
    def display_name(self) -> str:
        """
        Marketing form: patch shown only when non-zero, prerelease
        words capitalised, build metadata omitted ('10.2 Beta 4').
        """
        base = f"{self.major}.{self.minor}"
        if self.patch != 0:
            base += f".{self.patch}"
        if self.prerelease_identifiers:
            words = [
                identifier.replace('-', ' ').title().replace('Gm', 'GM')
                for identifier in self.prerelease_identifiers
            ]
            base += ' ' + ' '.join(words)
        return base

    @property
    def build_metadata_display(self) -> str:
        return '.'.join(self.build_metadata_identifiers)

    # ========================================================================
    # EQUIVALENCE
    # ========================================================================

    def _lowered_prerelease(self) -> tuple[str, ...]:
        return tuple(identifier.lower() for identifier in self.prerelease_identifiers)

    def _same_core(self, other: 'VersionID') -> bool:
        return (self.major, self.minor, self.patch) == (other.major, other.minor, other.patch)

    def is_equivalent(self, other: 'VersionID') -> bool:
        """Equal ignoring build metadata; prerelease compared case-insensitively."""
        return self._same_core(other) and \
            self._lowered_prerelease() == other._lowered_prerelease()

    def is_equivalent_for_install_matching(self, other: 'VersionID') -> bool:
        """
        Decide whether this version and an installed version are the same release.

        - A release and a prerelease are never equivalent
        - Releases match on major/minor/patch only
        - Prereleases also need equal prerelease identifiers (case-insensitive),
          and equal build metadata only when both sides carry it

        The prerelease build metadata rule is asymmetric on purpose: catalog
        listings often lack build numbers while installed bundles have them.
        """
        if self.is_prerelease != other.is_prerelease:
            return False

        if not self._same_core(other):
            return False

        if not self.is_prerelease:
            return True

        if self._lowered_prerelease() != other._lowered_prerelease():
            return False

        if self.has_build_metadata and other.has_build_metadata:
            return [b.lower() for b in self.build_metadata_identifiers] == \
                [b.lower() for b in other.build_metadata_identifiers]

        return True

    # ========================================================================
    # ORDERING
    # ========================================================================

    def sort_key(self) -> tuple:
        """
        Semantic version precedence key.

        A release sorts after its prereleases. Build metadata breaks
        remaining ties so sorting is deterministic.
        """
        if self.prerelease_identifiers:
            prerelease_key = (0, tuple(
                _identifier_precedence_key(i) for i in self.prerelease_identifiers
            ))
        else:
            prerelease_key = (1, ())

        return (
            self.major,
            self.minor,
            self.patch,
            prerelease_key,
            self.build_metadata_identifiers,
        )

    def __lt__(self, other: 'VersionID') -> bool:
        if not isinstance(other, VersionID):
            return NotImplemented
        return self.sort_key() < other.sort_key()

    def __str__(self) -> str:
        description = self.description_without_build_metadata
        if self.build_metadata_identifiers:
            description += '+' + '.'.join(self.build_metadata_identifiers)
        return description


__all__ = ['VersionID']
