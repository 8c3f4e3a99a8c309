"""
Package entry point for python -m execution.

USAGE:
    python -m activity_clock serve     # Run the API server
    python -m activity_clock track     # Interactive tracker
    python -m activity_clock today     # Print today's breakdown
"""

import sys

from activity_clock.cli import main

if __name__ == "__main__":
    sys.exit(main())
