from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import appdirs  # type: ignore[import-untyped]
import yaml  # type: ignore[import-untyped]

from gox_stream.config_models import AppConfig, CredentialsConfig, StreamConfig

ALLOWED_ENVS = {"dev", "live"}
DEFAULT_ENV = "live"
API_KEY_ENV_VAR = "GOX_API_KEY"
API_SECRET_ENV_VAR = "GOX_API_SECRET"


def get_config_dir() -> Path:
    """
    Returns the OS-specific configuration directory for the client using appdirs.
    """
    return Path(appdirs.user_config_dir("gox_stream"))


def _deep_merge_dicts(base: Dict[str, Any], overlay: Dict[str, Any]) -> Dict[str, Any]:
    merged = base.copy()
    for key, value in overlay.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge_dicts(merged[key], value)
        else:
            merged[key] = value
    return merged


def _read_yaml_mapping(path: Path, event: str) -> Dict[str, Any]:
    logger = logging.getLogger(__name__)

    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        logger.warning(
            "Configuration file is not a mapping; ignoring it",
            extra={"event": event, "config_path": str(path)},
        )
        return {}
    return data


def load_config(
    config_path: Optional[Path] = None, env: Optional[str] = None
) -> AppConfig:
    """
    Loads the client configuration from the default location or a specified path.

    ``config.<env>.yaml`` next to the base file is deep-merged over it, and the
    ``GOX_API_KEY`` / ``GOX_API_SECRET`` environment variables take precedence
    over any credentials found in the files.
    """
    logger = logging.getLogger(__name__)

    def _validated_int(value: Any, default: int, field_name: str, min_value: int = 1) -> int:
        if isinstance(value, int) and not isinstance(value, bool) and value >= min_value:
            return value

        logger.warning(
            "%s is invalid; using default",
            field_name,
            extra={"event": "config_invalid_value", "field": field_name, "config_path": str(config_path)},
        )
        return default

    def _validated_bool(value: Any, default: bool, field_name: str) -> bool:
        if isinstance(value, bool):
            return value

        logger.warning(
            "%s is invalid; using default",
            field_name,
            extra={"event": "config_invalid_value", "field": field_name, "config_path": str(config_path)},
        )
        return default

    if config_path is None:
        config_path = get_config_dir() / "config.yaml"

    config_path = config_path.expanduser()

    initial_env = env if env is not None else os.environ.get("GOX_STREAM_ENV")
    if initial_env not in ALLOWED_ENVS:
        logger.warning(
            "Invalid or missing environment '%s'; defaulting to '%s'",
            initial_env,
            DEFAULT_ENV,
            extra={"event": "config_invalid_env", "config_path": str(config_path)},
        )
        effective_env = DEFAULT_ENV
    else:
        effective_env = initial_env

    if not config_path.exists():
        logger.warning(
            "Configuration file not found; using defaults",
            extra={"event": "config_missing_file", "config_path": str(config_path)},
        )
        raw_config: Dict[str, Any] = {}
    else:
        raw_config = _read_yaml_mapping(config_path, "config_invalid_format")

    env_config_path = config_path.parent / f"config.{effective_env}.yaml"
    if env_config_path.exists():
        raw_config = _deep_merge_dicts(
            raw_config, _read_yaml_mapping(env_config_path, "config_invalid_env_file")
        )

    defaults = StreamConfig()

    stream_data = raw_config.get("stream") or {}
    if not isinstance(stream_data, dict):
        logger.warning(
            "Stream config is not a mapping; using defaults",
            extra={"event": "config_invalid_stream", "config_path": str(config_path)},
        )
        stream_data = {}

    currencies: Any = stream_data.get("currencies", defaults.currencies)
    if isinstance(currencies, str):
        currencies = [part.strip() for part in currencies.split(",") if part.strip()]
    if not isinstance(currencies, list) or not currencies or not all(
        isinstance(c, str) for c in currencies
    ):
        logger.warning(
            "stream.currencies is invalid; using default",
            extra={"event": "config_invalid_currencies", "config_path": str(config_path)},
        )
        currencies = defaults.currencies
    currency_list: List[str] = [c.upper() for c in currencies]

    stream = StreamConfig(
        currencies=currency_list,
        secure=_validated_bool(
            stream_data.get("secure", defaults.secure), defaults.secure, "stream.secure"
        ),
        host=str(stream_data.get("host", defaults.host)),
        path=str(stream_data.get("path", defaults.path)),
        origin=str(stream_data.get("origin", defaults.origin)),
        channel_capacity=_validated_int(
            stream_data.get("channel_capacity", defaults.channel_capacity),
            defaults.channel_capacity,
            "stream.channel_capacity",
        ),
        error_capacity=_validated_int(
            stream_data.get("error_capacity", defaults.error_capacity),
            defaults.error_capacity,
            "stream.error_capacity",
        ),
    )

    credentials_data = raw_config.get("credentials") or {}
    if not isinstance(credentials_data, dict):
        logger.warning(
            "Credentials config is not a mapping; ignoring it",
            extra={"event": "config_invalid_credentials", "config_path": str(config_path)},
        )
        credentials_data = {}

    credentials = CredentialsConfig(
        api_key=os.environ.get(API_KEY_ENV_VAR) or str(credentials_data.get("api_key") or ""),
        api_secret=os.environ.get(API_SECRET_ENV_VAR) or str(credentials_data.get("api_secret") or ""),
    )

    return AppConfig(stream=stream, credentials=credentials, env=effective_env)
