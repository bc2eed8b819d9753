"""Tools for polling reflection operations."""

from uuid import UUID

from advanceweekly.errors import OperationNotFoundError
from advanceweekly.runtime import Runtime, get_runtime
from advanceweekly.tools.common import parse_user_id


async def reflection_status(
    operation_id: str,
    user_id: str | None = None,
    runtime: Runtime | None = None,
) -> dict:
    """Get the status of a reflection operation.

    Returns:
        dict with status, progress, metadata (current_step), is_complete, and
        result_data or error_message once the operation has finished.
    """
    try:
        oid = UUID(operation_id)
    except ValueError:
        return {"status": "error", "reason": "invalid operation_id"}

    runtime = runtime or get_runtime()
    owner = parse_user_id(user_id) if user_id else None
    try:
        return await runtime.generation.get_status(oid, owner)
    except OperationNotFoundError:
        return {"status": "not_found", "operation_id": operation_id}


async def reflection_operations(
    user_id: str = "default",
    operation_type: str | None = None,
    limit: int = 20,
    runtime: Runtime | None = None,
) -> dict:
    """List a user's operations, newest first."""
    runtime = runtime or get_runtime()
    operations = await runtime.generation.list_operations(
        parse_user_id(user_id),
        operation_type=operation_type,
        limit=max(1, min(limit, 100)),
    )
    return {"operations": operations, "count": len(operations)}
