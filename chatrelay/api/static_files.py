"""
Static asset delivery for the browser client.

Serves files from the configured static root with a fixed extension to
content type table. Registered last so it never shadows API routes.
"""

from pathlib import Path

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse, Response

from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

static_router = APIRouter(tags=["static"])

MIME_TYPES: dict[str, str] = {
    ".html": "text/html",
    ".js": "application/javascript",
    ".css": "text/css",
    ".json": "application/json",
    ".ico": "image/x-icon",
}
DEFAULT_MIME_TYPE = "application/octet-stream"


def content_type_for(path: Path) -> str:
    """Content type for a file, by its extension."""
    return MIME_TYPES.get(path.suffix.lower(), DEFAULT_MIME_TYPE)


def resolve_static_path(root_dir: str | Path, request_path: str, index_file: str = "index.html") -> Path | None:
    """
    Map a request path onto a file under the static root.

    Returns:
        The resolved path, or None when the request would escape the root
        or is not a valid filesystem path
    """
    root = Path(root_dir).resolve()
    relative = request_path.lstrip("/") or index_file
    if "\x00" in relative:
        return None
    candidate = (root / relative).resolve()
    if not candidate.is_relative_to(root):
        return None
    return candidate


@static_router.get("/{file_path:path}", include_in_schema=False)
def serve_static_file(file_path: str, request: Request) -> Response:
    """Serve one static asset, or 404/500 plain text responses."""
    static_config = request.app.state.config.static
    logger.debug("Static file requested", path=f"/{file_path}")

    resolved = resolve_static_path(static_config.root_dir, file_path, static_config.index_file)
    if resolved is None or not resolved.exists():
        logger.debug("Static file not found", path=f"/{file_path}")
        return PlainTextResponse("404 Not Found", status_code=404)

    try:
        content = resolved.read_bytes()
    except OSError as e:
        logger.error("Error reading static file", path=str(resolved), error=str(e), error_type=type(e).__name__)
        return PlainTextResponse("Internal Server Error", status_code=500)

    return Response(content=content, media_type=content_type_for(resolved))
