"""FastAPI HTTP layer package.

Public re-export so callers can write::

    from mindmap.api import app

    uvicorn mindmap.api:app --reload
"""

from mindmap.api.app import app

__all__ = ["app"]
