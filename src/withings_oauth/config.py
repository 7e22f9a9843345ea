"""Loading of the Withings client configuration from YAML or the environment."""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from .models import WithingsAuthConfigModel

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "WITHINGS_OAUTH_CONFIG"
ENV_VAR_PATTERN = re.compile(r"\${([A-Za-z0-9_]+)}")

_ENV_FIELDS = {
    "client_id": "WITHINGS_CLIENT_ID",
    "client_secret": "WITHINGS_CLIENT_SECRET",
    "redirect_uri": "WITHINGS_REDIRECT_URI",
    "scope": "WITHINGS_SCOPE",
}


def interpolate_env(value: Any) -> Any:
    """Replace ${ENV_VAR} references in strings, recursing into lists and dicts.

    Raises:
        ValueError: If a referenced environment variable is not set
    """
    if isinstance(value, dict):
        return {k: interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [interpolate_env(v) for v in value]
    if not isinstance(value, str):
        return value

    def _replace(match: re.Match[str]) -> str:
        var_name = match.group(1)
        resolved = os.environ.get(var_name)
        if resolved is None:
            raise ValueError(f"Environment variable not found: {var_name}")
        return resolved

    return ENV_VAR_PATTERN.sub(_replace, value)


def load_withings_config(path: str | Path | None = None) -> WithingsAuthConfigModel:
    """Load the Withings client configuration.

    The file is taken from `path`, else from the WITHINGS_OAUTH_CONFIG
    environment variable. Values may reference the environment:

        client_id: ${WITHINGS_CLIENT_ID}
        client_secret: ${WITHINGS_CLIENT_SECRET}
        redirect_uri: https://example.com/withings/callback

    Without a file, the configuration is read from WITHINGS_CLIENT_ID,
    WITHINGS_CLIENT_SECRET, WITHINGS_REDIRECT_URI and (optionally) WITHINGS_SCOPE.

    Raises:
        FileNotFoundError: If the configured file does not exist
        ValueError: If a referenced variable is unset or the configuration is invalid
    """
    if path is None and os.environ.get(CONFIG_ENV_VAR):
        path = os.environ[CONFIG_ENV_VAR]

    if path is not None:
        config_path = Path(path)
        logger.debug(f"Loading Withings config from: {config_path}")
        if not config_path.exists():
            raise FileNotFoundError(f"Withings config not found at {config_path}")
        with open(config_path) as f:
            raw = yaml.safe_load(f) or {}
        if not isinstance(raw, dict):
            raise ValueError(f"Invalid Withings config at {config_path}: expected a mapping")
        data = interpolate_env(raw)
    else:
        data = {
            field: os.environ[env_var]
            for field, env_var in _ENV_FIELDS.items()
            if os.environ.get(env_var)
        }

    try:
        return WithingsAuthConfigModel.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid Withings config: {e}") from e
