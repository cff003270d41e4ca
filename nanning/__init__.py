"""Top-level package for the Nanning note application's local store."""

from .config import ConfigManager, StorageSettings, get_user_config_dir  # noqa: F401
from .logging import setup_logging  # noqa: F401
