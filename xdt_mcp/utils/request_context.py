"""Request context management for tracing tool invocations through the system.

Every MCP tool call gets a short request id that is stored in a ContextVar and
stamped on each log line, so one dispatch can be followed from the tool
handler through the store and the relay call.
"""

import secrets
import asyncio
import contextvars
from contextvars import ContextVar
from typing import Optional, Callable, TypeVar
from functools import wraps, partial

# Global context variable for request ID - thread-safe and async-safe
REQUEST_ID_CONTEXT: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

T = TypeVar("T")


def generate_request_id() -> str:
    """Generate a unique 6-digit hex request ID with req_ prefix.

    Returns:
        str: Request ID in format 'req_a1b2c3'

    Examples:
        >>> generate_request_id().startswith('req_')
        True
    """
    return f"req_{secrets.token_hex(3)}"  # 3 bytes = 6 hex chars


def generate_sub_request_id(parent_id: str, sequence: int) -> str:
    """Generate sub-request ID for items of a batch operation.

    Args:
        parent_id: Parent request ID (e.g., 'req_a1b2c3')
        sequence: Sequential number for this sub-request

    Returns:
        str: Sub-request ID in format 'req_a1b2c3.001'
    """
    return f"{parent_id}.{sequence:03d}"


def get_request_id() -> Optional[str]:
    """Get the current request ID from context."""
    return REQUEST_ID_CONTEXT.get()


def set_request_id(request_id: str) -> None:
    """Set the request ID in the current context."""
    REQUEST_ID_CONTEXT.set(request_id)


def format_request_id(request_id: Optional[str]) -> str:
    """Format request ID for logging and display.

    Examples:
        >>> format_request_id('req_a1b2c3')
        'req_a1b2c3'
        >>> format_request_id(None)
        'req_unknown'
    """
    return request_id or "req_unknown"


def ensure_request_id() -> str:
    """Ensure a request ID exists, generating one if necessary."""
    current_id = get_request_id()
    if current_id:
        return current_id

    new_id = generate_request_id()
    set_request_id(new_id)
    return new_id


def with_request_id(request_id: Optional[str] = None):
    """Decorator to automatically manage request ID context for functions.

    If no request ID is provided and none exists in the current context, a new
    one is generated for the duration of the call.
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        if asyncio.iscoroutinefunction(func):

            @wraps(func)
            async def async_wrapper(*args, **kwargs) -> T:
                current_id = request_id or get_request_id() or generate_request_id()
                token = REQUEST_ID_CONTEXT.set(current_id)
                try:
                    return await func(*args, **kwargs)
                finally:
                    REQUEST_ID_CONTEXT.reset(token)

            return async_wrapper

        @wraps(func)
        def sync_wrapper(*args, **kwargs) -> T:
            current_id = request_id or get_request_id() or generate_request_id()
            token = REQUEST_ID_CONTEXT.set(current_id)
            try:
                return func(*args, **kwargs)
            finally:
                REQUEST_ID_CONTEXT.reset(token)

        return sync_wrapper

    return decorator


async def run_in_executor_with_context(func: Callable[..., T], *args, **kwargs) -> T:
    """Run a blocking callable in the default executor, keeping the request ID.

    ``loop.run_in_executor`` does not propagate context variables, so the
    current context is copied and the callable runs inside it.
    """
    loop = asyncio.get_running_loop()
    ctx = contextvars.copy_context()
    return await loop.run_in_executor(None, partial(ctx.run, func, *args, **kwargs))
