"""
org-gtd MCP server entry point.

Startup sequence:
1. Read configuration from the environment (GTD_ROOT, EXCLUDE_DIRS, ...)
2. Build the Workspace (note linker, Calendar/Reminders adapters if enabled)
3. Start REST API server in background thread (if API_ENABLED)
4. Register all MCP tools
5. Run MCP server (stdio transport)
"""

import logging
import sys
import threading

from mcp.server.fastmcp import FastMCP

from org_gtd.api.tools import register_tools
from org_gtd.config import GtdConfig
from org_gtd.workspace import Workspace

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    stream=sys.stderr,
)
log = logging.getLogger(__name__)


def _start_api_server(workspace: Workspace, port: int) -> None:
    """Run the FastAPI/uvicorn server in a daemon thread."""
    import uvicorn

    from org_gtd.api.app import create_app

    app = create_app(workspace)
    log.info("Starting REST API on port %d", port)
    uvicorn.run(app, host="127.0.0.1", port=port, log_level="warning")


def main() -> None:
    try:
        config = GtdConfig.from_env()
    except ValueError as e:
        log.error("%s", e)
        sys.exit(1)

    if not config.root.is_dir():
        log.error("GTD_ROOT does not exist or is not a directory: %s", config.root)
        sys.exit(1)

    log.info("GTD root: %s", config.root)
    log.info("Excluded dirs: %s", sorted(config.exclude_dirs))

    workspace = Workspace.from_config(config)
    log.info(
        "Calendar sync %s, Reminders sync %s",
        "enabled" if workspace.calendar else "disabled",
        "enabled" if workspace.reminders else "disabled",
    )

    if config.api_enabled:
        api_thread = threading.Thread(
            target=_start_api_server, args=(workspace, config.api_port), daemon=True
        )
        api_thread.start()

    mcp = FastMCP("org-gtd")
    register_tools(mcp, workspace)

    log.info("Starting org-gtd server")
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
