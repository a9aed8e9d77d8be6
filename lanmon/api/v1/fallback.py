from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

router = APIRouter()

_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]


@router.api_route("/{path:path}", methods=_METHODS, include_in_schema=False)
async def unknown_route(request: Request, path: str) -> JSONResponse:
    """Unmatched API paths answer JSON instead of the dashboard's HTML shell."""
    return JSONResponse(
        status_code=404,
        content={"error": "Not found", "path": request.url.path, "method": request.method},
    )
