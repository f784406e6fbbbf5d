import os
from pathlib import Path
from typing import Any, Dict, Literal, Mapping, Optional

import structlog
import yaml
from dotenv import dotenv_values
from pydantic import BaseModel, Field, ValidationError

from .. import utils
from ..errors import ConfigError

logger = structlog.get_logger(__name__)

# Environment (and .env) keys, mapped to ConnectionOptions fields.
ENV_KEYS = {
    "FAUNA_SECRET": "secret",
    "FAUNA_DOMAIN": "domain",
    "FAUNA_SCHEME": "scheme",
    "FAUNA_PORT": "port",
    "FAUNA_TIMEOUT": "timeout",
}


class ConnectionOptions(BaseModel):
    """Everything needed to reach one Fauna endpoint."""

    secret: str = Field(min_length=1)
    domain: str = "db.fauna.com"
    scheme: Literal["http", "https"] = "https"
    port: int = Field(default=443, ge=1, le=65535)
    # Seconds. None disables the client-side timeout entirely.
    timeout: Optional[float] = Field(default=None, gt=0)


def stringify_endpoint(options: ConnectionOptions) -> str:
    """Human-readable endpoint for the shell banner, e.g. `https://db.fauna.com:443`."""
    return f"{options.scheme}://{options.domain}:{options.port}"


def get_config_path() -> Path:
    return utils.SHELL_HOME / "config.yaml"


def _load_endpoint(endpoint: Optional[str]) -> Dict[str, Any]:
    """
    Reads one endpoint entry from the YAML config file.

    The file looks like:

        default: cloud
        endpoints:
          cloud:
            secret: fnA...
          local:
            secret: secret
            domain: localhost
            scheme: http
            port: 8443
    """
    config_path = get_config_path()
    if not config_path.is_file():
        if endpoint:
            raise ConfigError(
                f"Endpoint '{endpoint}' requested but no config file exists at {config_path}."
            )
        return {}

    try:
        with open(config_path, "r") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Could not parse config file {config_path}: {e}") from e

    endpoints = data.get("endpoints") or {}
    name = endpoint or data.get("default")
    if not name:
        return {}
    if name not in endpoints:
        raise ConfigError(f"Endpoint '{name}' is not defined in {config_path}.")
    logger.debug("config.endpoint.loaded", endpoint=name, path=str(config_path))
    return dict(endpoints[name] or {})


def _from_env(source: Mapping[str, Optional[str]]) -> Dict[str, Any]:
    values = {}
    for key, field in ENV_KEYS.items():
        value = source.get(key)
        if value not in (None, ""):
            values[field] = value
    return values


def resolve_connection_options(
    overrides: Optional[Dict[str, Any]] = None,
    endpoint: Optional[str] = None,
    dotenv_path: Optional[Path] = None,
) -> ConnectionOptions:
    """
    Merges connection settings from every source, lowest precedence first:
    the YAML endpoint entry, a `.env` file, the process environment, then
    explicit overrides (the CLI flags). `None` overrides are ignored.
    """
    merged: Dict[str, Any] = {}
    merged.update(_load_endpoint(endpoint))

    env_file = dotenv_path or Path.cwd() / ".env"
    if env_file.is_file():
        merged.update(_from_env(dotenv_values(env_file)))

    merged.update(_from_env(os.environ))
    merged.update({k: v for k, v in (overrides or {}).items() if v is not None})

    if not merged.get("secret"):
        raise ConfigError(
            "No secret provided. Pass --secret, set FAUNA_SECRET, or configure an endpoint."
        )

    try:
        return ConnectionOptions(**merged)
    except ValidationError as e:
        raise ConfigError(f"Invalid connection options: {e}") from e
