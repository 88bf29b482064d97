import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path

from fastmcp import FastMCP

from bizdir.cache.ttl_cache import create_cache
from bizdir.explorer import ExplorerService
from bizdir.storage.database import DatabaseManager

logger = logging.getLogger(__name__)

_db: DatabaseManager | None = None
_explorer: ExplorerService | None = None


def get_db() -> DatabaseManager:
    """Get the current DatabaseManager instance. Raises if not initialized."""
    if _db is None:
        raise RuntimeError("Database not initialized. Server lifespan has not started.")
    return _db


def get_explorer() -> ExplorerService:
    """Get the ExplorerService built at startup. Raises if not initialized."""
    if _explorer is None:
        raise RuntimeError("Explorer not initialized. Server lifespan has not started.")
    return _explorer


def _reset_db() -> None:
    """Clear the module-level DB reference. Used in tests."""
    global _db  # noqa: PLW0603
    _db = None


def _reset_explorer() -> None:
    """Clear the module-level explorer reference. Used in tests."""
    global _explorer  # noqa: PLW0603
    _explorer = None


@asynccontextmanager
async def app_lifespan(server: FastMCP) -> AsyncIterator[dict]:
    """Own the database and the explorer cache for the server lifecycle."""
    global _db, _explorer  # noqa: PLW0603
    from bizdir.config import get_settings

    settings = get_settings()
    _db = DatabaseManager(settings.db_path)
    await _db.initialize()
    logger.info("Database initialized")

    cache = create_cache(
        settings.explorer_cache_ttl_ms, settings.explorer_cache_max_entries
    )
    _explorer = ExplorerService(_db, cache)
    logger.info(
        "Explorer cache ready (ttl=%dms, max_entries=%d)",
        cache.ttl_ms,
        cache.max_entries,
    )

    try:
        yield {"db": _db, "explorer": _explorer}
    finally:
        cache.clear()
        _explorer = None
        await _db.close()
        _db = None
        logger.info("Database closed")


mcp = FastMCP("business-directory", lifespan=app_lifespan)


def setup_logging(log_level: str, data_dir: Path) -> None:
    """Configure logging with file rotation and console output.

    Args:
        log_level: Logging level string (DEBUG, INFO, WARNING, ERROR).
        data_dir: Base data directory — logs go to data_dir/logs/server.log.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Console handler — exact type check avoids matching subclasses (FileHandler, etc.)
    if not any(type(h) is logging.StreamHandler for h in root_logger.handlers):
        console = logging.StreamHandler()
        console.setLevel(level)
        console.setFormatter(formatter)
        root_logger.addHandler(console)

    log_dir = data_dir / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "server.log"

    if not any(isinstance(h, RotatingFileHandler) for h in root_logger.handlers):
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=5 * 1024 * 1024,  # 5 MB
            backupCount=3,
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)


def initialize() -> FastMCP:
    """Set up directories, logging, and register tools. Returns the MCP server."""
    from bizdir.config import get_settings

    settings = get_settings()

    settings.data_dir.mkdir(parents=True, exist_ok=True)
    (settings.data_dir / "logs").mkdir(exist_ok=True)

    setup_logging(settings.log_level, settings.data_dir)

    from bizdir.tools.businesses import register_business_tools
    from bizdir.tools.categories import register_category_tools
    from bizdir.tools.explorer import register_explorer_tools

    register_explorer_tools(mcp)
    register_category_tools(mcp)
    register_business_tools(mcp)

    logger.info("Business directory MCP server initialized")
    return mcp
