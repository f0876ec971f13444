"""Tests for Roundcube version detection and compatibility checking."""

from pathlib import Path

import pytest

from skin_installer.composer.exceptions import HostEnvironmentError, IncompatibleVersionError
from skin_installer.composer.package import Package
from skin_installer.composer.versioning import (
    VersionConstraint,
    VersionGate,
    compare_versions,
    constraints_for,
    normalize_version,
    read_host_version,
    version_satisfies,
)


def skin(min_version: str | None = None, max_version: str | None = None) -> Package:
    roundcube = {}
    if min_version is not None:
        roundcube["min-version"] = min_version
    if max_version is not None:
        roundcube["max-version"] = max_version
    return Package(name="acme/my-theme", type="roundcube-skin", extra={"roundcube": roundcube})


class TestNormalizeVersion:
    """Test Composer-style version normalization."""

    def test_pads_to_four_components(self):
        """Test short versions are padded with zeros."""
        assert normalize_version("1") == "1.0.0.0"
        assert normalize_version("1.4") == "1.4.0.0"
        assert normalize_version("1.3.0") == "1.3.0.0"
        assert normalize_version("1.2.3.4") == "1.2.3.4"

    def test_git_suffix_maps_to_999(self):
        """Test development builds get a high numeric component."""
        assert normalize_version("1.5-git") == "1.5.999.0"
        assert normalize_version("1.4.0-git") == "1.4.0.999"

    def test_stability_suffixes(self):
        """Test stability modifiers are kept in canonical form."""
        assert normalize_version("1.6-beta") == "1.6.0.0-beta"
        assert normalize_version("1.6-beta2") == "1.6.0.0-beta2"
        assert normalize_version("1.0-rc1") == "1.0.0.0-RC1"
        assert normalize_version("1.0-RC") == "1.0.0.0-RC"
        assert normalize_version("1.0-alpha") == "1.0.0.0-alpha"
        assert normalize_version("1.0b1") == "1.0.0.0-beta1"
        assert normalize_version("1.0-dev") == "1.0.0.0-dev"
        assert normalize_version("1.0-stable") == "1.0.0.0"

    def test_leading_v_and_whitespace(self):
        """Test a leading 'v' and surrounding whitespace are ignored."""
        assert normalize_version(" v1.2 ") == "1.2.0.0"

    def test_invalid_versions(self):
        """Test unparseable versions raise ValueError."""
        with pytest.raises(ValueError):
            normalize_version("")
        with pytest.raises(ValueError):
            normalize_version("latest")
        with pytest.raises(ValueError):
            normalize_version("1.2.3.4.5")


class TestCompareVersions:
    """Test version comparison."""

    def test_equal_versions(self):
        """Test equivalent spellings compare equal."""
        assert compare_versions("1.4", "1.4.0.0") == 0
        assert compare_versions("1.4.0", "1.4") == 0

    def test_numeric_ordering(self):
        """Test numeric components compare as integers."""
        assert compare_versions("1.10", "1.9") == 1
        assert compare_versions("1.3.0", "1.4") == -1
        assert compare_versions("2.0", "1.99.99") == 1

    def test_stability_ordering(self):
        """Test dev < alpha < beta < RC < stable < patch."""
        ordered = ["1.0-dev", "1.0-alpha", "1.0-beta", "1.0-RC", "1.0", "1.0-patch"]
        for lower, higher in zip(ordered, ordered[1:]):
            assert compare_versions(lower, higher) == -1
            assert compare_versions(higher, lower) == 1

    def test_stability_number(self):
        """Test stability numbers break ties."""
        assert compare_versions("1.0-beta2", "1.0-beta1") == 1
        assert compare_versions("1.0-beta", "1.0-beta1") == -1

    @pytest.mark.parametrize("release", ["1.5", "1.5.0", "1.5.3", "1.5.998", "1.5-rc2"])
    def test_git_build_newer_than_releases_with_same_prefix(self, release):
        """Test a -git build compares newer than numbered releases of its prefix."""
        assert version_satisfies(normalize_version("1.5-git"), ">=", normalize_version(release))
        assert compare_versions("1.5-git", release) == 1

    def test_git_build_older_than_next_minor(self):
        """Test a -git build stays below the next minor release."""
        assert compare_versions("1.5-git", "1.6") == -1

    def test_invalid_version(self):
        """Test invalid versions raise ValueError."""
        with pytest.raises(ValueError):
            compare_versions("1.0", "nope")


class TestVersionSatisfies:
    """Test operator evaluation."""

    def test_operators(self):
        """Test each supported operator."""
        assert version_satisfies("1.4", ">=", "1.4")
        assert version_satisfies("1.4", "<=", "1.4")
        assert not version_satisfies("1.4", ">", "1.4")
        assert version_satisfies("1.3", "<", "1.4")
        assert version_satisfies("1.4.0", "==", "1.4")
        assert version_satisfies("1.4.1", "!=", "1.4")

    def test_unknown_operator(self):
        """Test unknown operators raise ValueError."""
        with pytest.raises(ValueError, match="Unknown version operator"):
            version_satisfies("1.4", "~", "1.4")


class TestConstraints:
    """Test reading constraints from package metadata."""

    def test_min_and_max(self):
        """Test both bounds are read, min first, normalized."""
        constraints = list(constraints_for(skin("1.3", "1.5")))
        assert constraints == [
            VersionConstraint(">=", "1.3.0.0"),
            VersionConstraint("<=", "1.5.0.0"),
        ]

    def test_empty_values_skipped(self):
        """Test empty constraint values are ignored."""
        assert list(constraints_for(skin("", None))) == []

    def test_no_roundcube_extra(self):
        """Test packages without extra.roundcube have no constraints."""
        assert list(constraints_for(Package(name="acme/plain"))) == []


class TestReadHostVersion:
    """Test reading RCMAIL_VERSION from iniset.php."""

    def test_reads_version(self, roundcube_root: Path):
        """Test the version definition is found and normalized."""
        iniset = roundcube_root / "program" / "include" / "iniset.php"
        assert read_host_version(iniset) == "1.4.0.0"

    def test_double_quoted_git_version(self, tmp_path: Path):
        """Test double quotes and -git builds."""
        iniset = tmp_path / "iniset.php"
        iniset.write_text('<?php\ndefine("RCMAIL_VERSION", "1.6-git");\n')
        assert read_host_version(iniset) == "1.6.999.0"

    def test_missing_file(self, tmp_path: Path):
        """Test a missing file raises HostEnvironmentError."""
        with pytest.raises(HostEnvironmentError):
            read_host_version(tmp_path / "iniset.php")

    def test_missing_definition(self, tmp_path: Path):
        """Test a file without the definition raises HostEnvironmentError."""
        iniset = tmp_path / "iniset.php"
        iniset.write_text("<?php\ndefine('RCMAIL_START', microtime(true));\n")
        with pytest.raises(HostEnvironmentError, match="RCMAIL_VERSION"):
            read_host_version(iniset)


class TestVersionGate:
    """Test VersionGate.check."""

    def test_accepts_package_within_bounds(self, roundcube_root: Path):
        """Test a package whose bounds include the host version passes."""
        VersionGate(roundcube_root).check(skin("1.3", "1.5"))

    def test_accepts_package_without_constraints(self, roundcube_root: Path):
        """Test packages without constraints pass."""
        VersionGate(roundcube_root).check(Package(name="acme/plain"))

    def test_bounds_are_inclusive(self, roundcube_root: Path):
        """Test min and max equal to the host version pass."""
        VersionGate(roundcube_root).check(skin("1.4", "1.4.0"))

    def test_rejects_below_min_version(self, roundcube_root: Path, set_host_version):
        """Test the documented example: min 1.4 with host 1.3.0 fails."""
        set_host_version("1.3.0")

        with pytest.raises(IncompatibleVersionError) as exc_info:
            VersionGate(roundcube_root).check(skin(min_version="1.4"))

        error = exc_info.value
        assert error.package == "acme/my-theme"
        assert error.operator == ">="
        assert error.required == "1.4.0.0"
        assert error.detected == "1.3.0.0"
        assert "requires Roundcube version >= 1.4.0.0" in str(error)

    def test_rejects_above_max_version(self, roundcube_root: Path):
        """Test a host newer than max-version fails with the max bound."""
        with pytest.raises(IncompatibleVersionError) as exc_info:
            VersionGate(roundcube_root).check(skin(max_version="1.3"))

        assert exc_info.value.operator == "<="
        assert exc_info.value.required == "1.3.0.0"

    def test_min_version_checked_first(self, roundcube_root: Path, set_host_version):
        """Test the first violated bound is reported when both fail."""
        set_host_version("1.0")

        with pytest.raises(IncompatibleVersionError) as exc_info:
            VersionGate(roundcube_root).check(skin("1.2", "0.9"))

        assert exc_info.value.operator == ">="

    def test_git_host_satisfies_same_prefix_min(self, roundcube_root: Path, set_host_version):
        """Test a -git host build passes min-version of its own prefix."""
        set_host_version("1.5-git")
        VersionGate(roundcube_root).check(skin(min_version="1.5.3"))

    def test_missing_installation(self, tmp_path: Path):
        """Test a root without iniset.php raises HostEnvironmentError."""
        with pytest.raises(HostEnvironmentError, match="Unable to find a Roundcube installation"):
            VersionGate(tmp_path).check(skin("1.0"))

    def test_invalid_declared_version(self, roundcube_root: Path):
        """Test an unparseable declared version raises ValueError."""
        with pytest.raises(ValueError):
            VersionGate(roundcube_root).check(skin(min_version="soon"))
