from __future__ import annotations

# Re-export loader helpers
from .config_loader import (
    API_KEY_ENV_VAR,
    API_SECRET_ENV_VAR,
    get_config_dir,
    load_config,
)

# Re-export config models
from .config_models import AppConfig, CredentialsConfig, StreamConfig

__all__ = [
    # models
    "StreamConfig",
    "CredentialsConfig",
    "AppConfig",
    # loader
    "API_KEY_ENV_VAR",
    "API_SECRET_ENV_VAR",
    "get_config_dir",
    "load_config",
]
