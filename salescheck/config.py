import copy
import logging
import os
import string
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from omegaconf import OmegaConf
from omegaconf.errors import InterpolationResolutionError, MissingMandatoryValue

from salescheck.constants import (
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    DEFAULT_SCREENSHOT_DIR,
    ROLE_CREDENTIALS,
    Role,
)

logger = logging.getLogger(__name__)

ENV_OVERRIDES = {
    "BASE_URL": "base_url",
    "API_LOGIN": "api_login",
    "API_GET_PLANT": "api_get_plant",
    "API_SELL": "api_sell",
    "API_SALE_BY_ID": "api_sale_by_id",
    "API_SALES_ALL": "api_sales_all",
    "API_SALES_PAGE": "api_sales_page",
    "PLAYWRIGHT_HEADLESS": "headless",
    "SALESCHECK_SCREENSHOT_DIR": "screenshot_dir",
    "SALESCHECK_REQUEST_TIMEOUT": "request_timeout",
}
"""Environment variables mapped to the configuration key they override."""

ID_TEMPLATE_KEYS = ("api_get_plant", "api_sale_by_id")


def template_fields(key: str, template: str) -> set[str]:
    """Return the replacement field names used in a path template."""
    try:
        return {
            field
            for _text, field, _spec, _conv in string.Formatter().parse(template)
            if field is not None
        }
    except ValueError as e:
        raise ValueError(f"{key} is not a valid path template: {e}") from e


@dataclass(frozen=True)
class Settings:
    """Resolved configuration for one test run."""

    base_url: str
    api_login: str
    api_get_plant: str
    api_sell: str
    api_sale_by_id: str
    api_sales_all: str
    api_sales_page: str
    headless: bool
    screenshot_dir: Path
    request_timeout: float

    def url(self, path: str) -> str:
        """Join a route path onto the base URL."""
        return self.base_url.rstrip("/") + path

    def plant_path(self, plant_id: str) -> str:
        return self.api_get_plant.replace("{id}", str(plant_id))

    def sale_path(self, sale_id: str) -> str:
        return self.api_sale_by_id.replace("{id}", str(sale_id))

    def credentials(self, role: Role) -> tuple[str, str]:
        """Return the ``(username, password)`` pair for a role."""
        return ROLE_CREDENTIALS[role]


class ConfigLoader:
    """Load YAML configuration, apply environment overrides and validate."""

    def __init__(self) -> None:
        self.BUILT_IN_DEFAULTS = {
            "base_url": "http://localhost:8080",
            "api_login": "/api/auth/login",
            "api_get_plant": "/api/plants/{id}",
            "api_sell": "/api/sales",
            "api_sale_by_id": "/api/sales/{id}",
            "api_sales_all": "/api/sales",
            "api_sales_page": "/api/sales/page",
            "headless": True,
            "screenshot_dir": DEFAULT_SCREENSHOT_DIR,
            "request_timeout": DEFAULT_REQUEST_TIMEOUT_SECONDS,
        }

    def load_config(self, config_path: str | None = None) -> dict[str, Any]:
        """Load configuration from YAML file.

        Parameters
        ----------
        config_path : str | None
            Path to YAML config file. If None, checks SALESCHECK_CONFIG env var,
            then falls back to salescheck.yaml

        Returns
        -------
        dict[str, Any]
            Parsed configuration with all variable interpolations resolved,
            or an empty dict when the file does not exist

        Raises
        ------
        ValueError
            If the file is not valid YAML, a variable cannot be resolved or a
            mandatory value (``???``) is missing
        RuntimeError
            If the file exists but cannot be read
        """
        if config_path is None:
            config_path = os.environ.get("SALESCHECK_CONFIG", "salescheck.yaml")

        config_file = Path(config_path)

        if not config_file.exists():
            return {}

        try:
            cfg = OmegaConf.load(config_file)
        except yaml.YAMLError as e:
            logger.error("Failed to parse YAML config file %s: %s", config_file, e)
            raise ValueError(f"Invalid YAML in {config_file}: {e}") from e
        except OSError as e:
            logger.error("Failed to read config file %s: %s", config_file, e)
            raise RuntimeError(f"Failed to read config file {config_file}: {e}") from e

        if cfg is None:
            return {}

        try:
            config = OmegaConf.to_container(cfg, resolve=True, throw_on_missing=True)
        except (InterpolationResolutionError, MissingMandatoryValue) as e:
            logger.error("Failed to resolve configuration variables: %s", e)
            raise ValueError(f"Configuration variable resolution error: {e}") from e

        if not isinstance(config, dict):
            raise ValueError(f"Config file {config_file} must contain a mapping")

        return config

    def merge(
        self, config: dict[str, Any], environ: dict[str, str] | None = None
    ) -> dict[str, Any]:
        """Layer built-in defaults, file values and environment overrides.

        Parameters
        ----------
        config : dict[str, Any]
            Values loaded from the YAML file
        environ : dict[str, str] | None
            Environment to read overrides from, defaults to ``os.environ``

        Returns
        -------
        dict[str, Any]
            Merged configuration
        """
        if environ is None:
            environ = dict(os.environ)

        merged = copy.deepcopy(self.BUILT_IN_DEFAULTS)

        for key, value in config.items():
            if key not in merged:
                logger.warning("Ignoring unknown configuration key: %s", key)
                continue
            merged[key] = value

        for env_var, key in ENV_OVERRIDES.items():
            value = environ.get(env_var)
            if value:
                merged[key] = self._coerce(key, value)

        return merged

    def _coerce(self, key: str, value: str) -> Any:
        if key == "headless":
            return value.lower() in {"true", "1", "yes"}
        if key == "request_timeout":
            try:
                return float(value)
            except ValueError as e:
                raise ValueError(f"request_timeout must be a number, got {value!r}") from e
        return value

    def validate_config(self, config: dict[str, Any]) -> None:
        """Validate merged configuration.

        Raises
        ------
        ValueError
            If a value has the wrong type or shape
        """
        for key, value in config.items():
            if key in {"headless", "request_timeout"}:
                continue
            if not isinstance(value, str) or not value:
                raise ValueError(f"{key} must be a non-empty string")

        if not config["base_url"].startswith(("http://", "https://")):
            raise ValueError(
                f"base_url must start with http:// or https://, got {config['base_url']!r}"
            )

        for key in ID_TEMPLATE_KEYS:
            fields = template_fields(key, config[key])
            if "id" not in fields:
                raise ValueError(f"{key} must contain an {{id}} placeholder")
            unknown = sorted(fields - {"id"})
            if unknown:
                raise ValueError(
                    f"{key} may only use the {{id}} placeholder, found: {unknown}"
                )

        if not isinstance(config["headless"], bool):
            raise ValueError("headless must be a boolean")

        timeout = config["request_timeout"]
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)):
            raise ValueError("request_timeout must be a number")
        if timeout <= 0:
            raise ValueError("request_timeout must be positive")

    def build_settings(self, config: dict[str, Any]) -> Settings:
        self.validate_config(config)
        return Settings(
            base_url=config["base_url"],
            api_login=config["api_login"],
            api_get_plant=config["api_get_plant"],
            api_sell=config["api_sell"],
            api_sale_by_id=config["api_sale_by_id"],
            api_sales_all=config["api_sales_all"],
            api_sales_page=config["api_sales_page"],
            headless=config["headless"],
            screenshot_dir=Path(config["screenshot_dir"]),
            request_timeout=float(config["request_timeout"]),
        )


def load_settings(
    config_path: str | None = None, environ: dict[str, str] | None = None
) -> Settings:
    """Load, merge and validate configuration in one call."""
    loader = ConfigLoader()
    merged = loader.merge(loader.load_config(config_path), environ)
    settings = loader.build_settings(merged)
    logger.debug("Resolved settings: base_url=%s", settings.base_url)
    return settings
