"""Main test module for activity-clock."""

import importlib

import activity_clock

version_module = importlib.import_module("activity_clock.__version__")


class TestVersion:
    """Test version information."""

    def test_version_exists(self) -> None:
        """Verifies that version string is defined in package.

        Business context:
        Version information is required for package distribution
        and for 'activity-clock --version'.
        """
        assert activity_clock.__version__ is not None

    def test_version_format(self) -> None:
        """Verifies version follows MAJOR.MINOR.PATCH with numeric parts."""
        parts = activity_clock.__version__.split(".")
        assert len(parts) == 3
        assert all(part.isdigit() for part in parts)

    def test_title_exists(self) -> None:
        assert activity_clock.__title__ == "activity_clock"

    def test_author_exists(self) -> None:
        assert activity_clock.__author__

    def test_exports_match_version_module(self) -> None:
        assert activity_clock.__all__ == version_module.__all__
        for name in activity_clock.__all__:
            assert getattr(activity_clock, name) == getattr(version_module, name)


class TestEntryPoint:
    """Tests for the python -m entry point."""

    def test_main_module_exposes_cli_main(self) -> None:
        from activity_clock import __main__ as entry
        from activity_clock.cli import main

        assert entry.main is main


class TestMetadata:
    """Tests for the published metadata fields."""

    def test_no_placeholder_url(self) -> None:
        assert "__url__" not in activity_clock.__all__
        assert not hasattr(version_module, "__url__")
