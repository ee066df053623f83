from .core import (
    CONFIG_FILE_NAME,
    DEFAULT_DATA_DIR,
    DEFAULT_POLL_INTERVAL,
    RuntimeSettings,
    TallyConfig,
    add_args,
    load_config,
    settings_from_args,
    write_config,
)

__all__ = [
    "CONFIG_FILE_NAME",
    "DEFAULT_DATA_DIR",
    "DEFAULT_POLL_INTERVAL",
    "RuntimeSettings",
    "TallyConfig",
    "add_args",
    "load_config",
    "settings_from_args",
    "write_config",
]
