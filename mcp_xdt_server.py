#!/usr/bin/env python3
"""
XDT Mini Client MCP Server Entry Point

Starts the MCP server on stdio. The server connects to MongoDB first; if the
store cannot be reached the process exits with status 1.

Usage:
    python mcp_xdt_server.py [--config CONFIG_FILE] [--log-level LEVEL]
"""

import sys
import asyncio
import logging
import argparse
import signal
import warnings
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from xdt_mcp.config import load_config
from xdt_mcp.database import StoreError
from xdt_mcp.logging_utils import setup_logging
from xdt_mcp.mcp_server import XdtMCPServer


def _is_client_disconnect_error(exception: BaseException) -> bool:
    """Check if an exception represents a client disconnect."""
    if isinstance(exception, (BrokenPipeError, ConnectionResetError, ConnectionAbortedError)):
        return True

    error_str = str(exception)
    error_indicators = [
        "Broken pipe", "Connection reset", "Connection aborted",
        "BrokenResourceError", "ClosedResourceError",
        "[Errno 32]", "[Errno 104]"
    ]
    return any(indicator in error_str for indicator in error_indicators)


def _is_client_disconnect_group(exception_group: BaseExceptionGroup) -> bool:
    """Check if an exception group contains only client disconnect errors."""
    if not exception_group.exceptions:
        return False

    for exc in exception_group.exceptions:
        if isinstance(exc, BaseExceptionGroup):
            if not _is_client_disconnect_group(exc):
                return False
        elif not _is_client_disconnect_error(exc):
            return False
    return True


def setup_signal_handlers(loop: asyncio.AbstractEventLoop, main_task: asyncio.Task) -> None:
    """Cancel the server task on SIGINT/SIGTERM; a second signal exits at once."""
    received = False

    def handle_signal(signum):
        nonlocal received
        if received:
            sys.exit(1)
        received = True
        logging.getLogger(__name__).info(f"Received {signal.Signals(signum).name}, shutting down")
        main_task.cancel()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, handle_signal, sig)
        except NotImplementedError:
            # Windows event loops do not support signal handlers
            signal.signal(sig, lambda signum, frame: handle_signal(signum))


async def serve(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    setup_logging(args.log_level or config.log_level, log_dir=config.log_dir)
    logger = logging.getLogger(__name__)

    warnings.filterwarnings("ignore", category=ResourceWarning)
    logging.getLogger("anyio").setLevel(logging.WARNING)

    logger.info("MCP server starting...")
    logger.info(f"MongoDB database: {config.mongodb.database_name}")
    logger.info(f"Relay URL: {config.relay.base_url} (bot {config.relay.bot_id})")

    server = XdtMCPServer(config)
    setup_signal_handlers(asyncio.get_running_loop(), asyncio.current_task())

    try:
        await server.initialize()
    except StoreError:
        logger.exception("Cannot start without the document store")
        return 1

    exit_code = 0
    try:
        sys.stderr.flush()
        await server.run(transport_type="stdio")
    except asyncio.CancelledError:
        logger.debug("Server task cancelled")
    except (BrokenPipeError, ConnectionResetError, ConnectionAbortedError):
        logger.debug("Client disconnected")
    except BaseExceptionGroup as eg:
        if _is_client_disconnect_group(eg):
            logger.debug("Client disconnected (exception group)")
        else:
            logger.exception("Fatal error in MCP server")
            exit_code = 1
    except Exception as e:
        if _is_client_disconnect_error(e):
            logger.debug(f"Client disconnected (wrapped): {type(e).__name__}")
        else:
            logger.exception("Fatal error in MCP server")
            exit_code = 1
    finally:
        try:
            await server.shutdown()
        except StoreError:
            logger.exception("Error closing the document store connection")
            exit_code = 1

    return exit_code


def main() -> None:
    """Main entry point for the XDT MCP server."""
    parser = argparse.ArgumentParser(description="XDT Mini Client MCP Server")
    parser.add_argument(
        "--config", "-c",
        type=str,
        help="Path to configuration file"
    )
    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Set the logging level (overrides LOG_LEVEL)"
    )
    parser.add_argument(
        "--force-mcp",
        action="store_true",
        help="Force MCP server mode even when run in terminal"
    )
    args = parser.parse_args()

    if sys.stdin.isatty() and sys.stdout.isatty() and not args.force_mcp:
        print("XDT Mini Client MCP Server")
        print()
        print("This is an MCP (Model Context Protocol) server designed to be")
        print("launched by an MCP client over stdio, not run manually.")
        print()
        print("For command-line use, try:")
        print("  xdt-mcp --help")
        print()
        print("To force MCP server mode anyway, use: --force-mcp")
        sys.exit(0)

    try:
        sys.exit(asyncio.run(serve(args)))
    except KeyboardInterrupt:
        sys.exit(0)


if __name__ == "__main__":
    main()
