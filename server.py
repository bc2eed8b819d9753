"""FastMCP server for AdvanceWeekly - weekly reflection drafting and job tracking."""

import logging

from fastmcp import FastMCP
from fastmcp.server.auth.providers.github import GitHubProvider
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse

from advanceweekly.config import settings
from advanceweekly.tools import (
    reflection_generate,
    reflection_operations,
    reflection_status,
    scheduler_run,
)

logging.basicConfig(
    level=getattr(logging, settings.advanceweekly_log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
# Suppress noisy MCP streamable_http ClosedResourceError logs (known issue with stateless mode)
logging.getLogger("mcp.server.streamable_http").setLevel(logging.CRITICAL)

logger = logging.getLogger(__name__)

# Configure GitHub OAuth
auth = GitHubProvider(
    client_id=settings.github_client_id,
    client_secret=settings.github_client_secret,
    base_url=f"http://localhost:{settings.advanceweekly_port}",
)

mcp = FastMCP("advanceweekly", auth=auth, stateless_http=True, json_response=True)


@mcp.custom_route("/health", methods=["GET"])
async def health_check(request: Request) -> PlainTextResponse:
    """Health check endpoint for container orchestration."""
    return PlainTextResponse("OK")


# Internal API endpoints for the hourly trigger and local automation
# (unauthenticated, localhost only). MCP tools require auth.


def _check_localhost(request: Request) -> bool:
    """Verify request is from localhost."""
    client_host = request.client.host if request.client else None
    return client_host in ("127.0.0.1", "localhost", "::1")


@mcp.custom_route("/internal/reflections/generate", methods=["POST"])
async def internal_generate(request: Request) -> JSONResponse:
    """Start a reflection operation."""
    if not _check_localhost(request):
        return JSONResponse({"error": "Forbidden: localhost only"}, status_code=403)

    try:
        data = await request.json()
        result = await reflection_generate(
            user_id=data.get("user_id", "default"),
            week_start=data.get("week_start"),
            include_previous_context=data.get("include_previous_context", True),
            include_integrations=data.get("include_integrations"),
            test_mode=data.get("test_mode", False),
            wait=data.get("wait", False),
        )
        return JSONResponse(result, status_code=202 if result.get("status") == "queued" else 200)
    except Exception as e:
        logger.exception("Internal generate request failed")
        return JSONResponse({"error": str(e)}, status_code=500)


@mcp.custom_route("/internal/operations/{operation_id}", methods=["GET"])
async def internal_operation_status(request: Request) -> JSONResponse:
    """Poll an operation."""
    if not _check_localhost(request):
        return JSONResponse({"error": "Forbidden: localhost only"}, status_code=403)

    try:
        result = await reflection_status(
            operation_id=request.path_params["operation_id"],
            user_id=request.query_params.get("user_id"),
        )
        status_code = 404 if result.get("status") == "not_found" else 200
        return JSONResponse(result, status_code=status_code)
    except Exception as e:
        logger.exception("Internal status request failed")
        return JSONResponse({"error": str(e)}, status_code=500)


@mcp.custom_route("/internal/scheduler/run", methods=["POST"])
async def internal_scheduler_run(request: Request) -> JSONResponse:
    """Hourly trigger target for an external cron."""
    if not _check_localhost(request):
        return JSONResponse({"error": "Forbidden: localhost only"}, status_code=403)

    try:
        result = await scheduler_run()
        return JSONResponse(result)
    except Exception as e:
        logger.exception("Scheduler run failed")
        return JSONResponse({"error": str(e)}, status_code=500)


# Register MCP tools
@mcp.tool()
async def generate_reflection(
    user_id: str = "default",
    week_start: str | None = None,
    include_previous_context: bool = True,
    include_integrations: list[str] | None = None,
    test_mode: bool = False,
) -> dict:
    """Start drafting a weekly reflection from calendar activity.

    Runs in the background; poll reflection_status with the returned
    operation_id. If a reflection for the same week is already being
    generated, returns status "already_processing" with that operation's id.

    Args:
        user_id: User identifier (default: "default").
        week_start: ISO date of the week's first day (default: current week).
        include_previous_context: Use last week's reflection for continuity.
        include_integrations: Integration types to draw from.
        test_mode: Use sample calendar data.

    Returns:
        dict with operation_id and status.
    """
    return await reflection_generate(
        user_id=user_id,
        week_start=week_start,
        include_previous_context=include_previous_context,
        include_integrations=include_integrations,
        test_mode=test_mode,
    )


@mcp.tool(name="reflection_status")
async def reflection_status_tool(
    operation_id: str,
    user_id: str | None = None,
) -> dict:
    """Get progress and result of a reflection operation."""
    return await reflection_status(operation_id=operation_id, user_id=user_id)


@mcp.tool()
async def list_reflection_operations(
    user_id: str = "default",
    limit: int = 20,
) -> dict:
    """List a user's reflection operations, newest first.

    Args:
        user_id: User identifier (default: "default").
        limit: Maximum number of operations (default: 20, max 100).
    """
    return await reflection_operations(user_id=user_id, limit=limit)


# ASGI app for uvicorn
app = mcp.http_app()

if __name__ == "__main__":
    mcp.run(
        transport="http",
        host=settings.advanceweekly_host,
        port=settings.advanceweekly_port,
        stateless_http=True,
    )
