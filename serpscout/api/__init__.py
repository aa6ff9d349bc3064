"""FastAPI HTTP layer package.

Public re-export so callers can write::

    from serpscout.api import app

    uvicorn serpscout.api:app --reload
"""

from serpscout.api.app import app

__all__ = ["app"]
