"""
Guide2Umrah Backend: Dashboard Frontend Hosting
=================================================

What:  Serves the compiled React dashboard from FRONTEND_BUILD_DIR.
How:   A catch-all GET registered after every API router. Existing files are
       returned as-is; any other path gets index.html so client-side routes
       (/dashboard/packages, /login, ...) survive a page reload.
When:  Only mounted when FRONTEND_BUILD_DIR points at an existing directory.

Paths under /api/ never fall back to index.html: an unknown API path stays a
JSON 404.
"""

import logging
from pathlib import Path

from fastapi import APIRouter
from fastapi.responses import FileResponse

from guide2umrah.exceptions import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def build_frontend_router(build_dir: str) -> APIRouter:
    root = Path(build_dir).resolve()
    index = root / "index.html"
    router = APIRouter(tags=["Frontend"], include_in_schema=False)

    @router.get("/{full_path:path}")
    async def serve_frontend(full_path: str) -> FileResponse:
        if full_path == "api" or full_path.startswith("api/"):
            raise NotFoundError(resource="Pagina", resource_id=f"/{full_path}")

        candidate = (root / full_path).resolve()
        # Resolved path must stay inside the build directory (no ../ escapes)
        if candidate != root and root not in candidate.parents:
            raise ValidationError(message="Ongeldig pad.")

        if full_path and candidate.is_file():
            return FileResponse(path=str(candidate))

        if not index.is_file():
            raise NotFoundError(resource="Pagina", resource_id=f"/{full_path}")
        return FileResponse(path=str(index), headers={"Cache-Control": "no-cache"})

    logger.info("Serving dashboard frontend from %s", root)
    return router
