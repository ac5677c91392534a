"""
specflow API - FastAPI REST API over the session engine.

Endpoints (from routes/sessions.py):
    POST   /api/sessions                                   - Create session
    GET    /api/sessions                                   - List sessions
    GET    /api/sessions/{id}                              - Get session
    PATCH  /api/sessions/{id}                              - Update session
    POST   /api/sessions/{id}/cancel                       - Cancel session
    POST   /api/sessions/{id}/next-command                 - Next command
    POST   /api/sessions/{id}/interactions/{iid}/result    - Submit result
    PUT    /api/sessions/{id}/execution-mode               - Switch mode
    PUT    /api/sessions/{id}/external-conversation-id     - Set conversation id
    GET    /api/health                                     - Health check

Usage:
    from specflow.api import create_app

    app = create_app(engine)
    uvicorn.run(app, port=5001)
"""

from .server import create_app

__all__ = ["create_app"]
