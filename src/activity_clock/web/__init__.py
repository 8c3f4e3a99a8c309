"""
Web API module for Activity Clock.

PURPOSE: FastAPI application serving day logs, habits and activity names.
AI CONTEXT: The persistence collaborator behind HttpPersistenceClient.

FEATURES:
- JSON document storage through StorageManager
- Optional password login with an HTTP-only session cookie
- Served by uvicorn

USAGE:
    # Via CLI
    activity-clock serve

    # Programmatically
    from activity_clock.web import create_app
    app = create_app()
    # Run with uvicorn
"""

from .app import create_app, run_server

__all__ = ["create_app", "run_server"]
