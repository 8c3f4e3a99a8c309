"""Version information for activity-clock."""

__version__ = "0.4.0"
__version_date__ = "2026-10-17"

__title__ = "activity_clock"
__description__ = "Personal activity clock and habit tracker with day-split session logging"

__author__ = "Activity Clock contributors"

__license__ = "MIT"
__copyright__ = "Copyright 2025 Activity Clock contributors"

__all__ = [
    "__version__",
    "__version_date__",
    "__title__",
    "__description__",
    "__author__",
    "__license__",
    "__copyright__",
]
