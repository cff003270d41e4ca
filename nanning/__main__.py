"""Headless entry point: open the local store, report on it, and shut down."""

from __future__ import annotations

import sys

from .bridge import StorageBridge
from .config import ConfigManager, StorageSettings
from .logging import setup_logging


def main() -> None:
    """Initialise storage the way the desktop host does at startup."""
    logger = setup_logging()
    settings = StorageSettings.from_config(ConfigManager())
    bridge = StorageBridge(settings)

    logger.info("Initialising storage", extra={"path": str(settings.database_path)})
    result = bridge.init()
    if not result.success:
        logger.critical("Storage unavailable, refusing to start: %s", result.error)
        sys.exit(1)

    exit_code = 0
    try:
        documents = bridge.list_documents()
        themes = bridge.list_themes()
        if not (documents.success and themes.success):
            exit_code = 1
            logger.error(
                "Storage check failed",
                extra={"documents": documents.error, "themes": themes.error},
            )
        else:
            logger.info(
                "Storage ready: %d documents, %d themes, search index %s",
                len(documents.data),
                len(themes.data),
                "enabled" if result.data["search_index"] else "unavailable",
            )
    finally:
        logger.info("Commencing shutdown sequence")
        bridge.close()
        logger.info("Shutdown complete")
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
