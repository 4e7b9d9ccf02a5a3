"""Configuration loading for the trends command.

Example config file (trends.yaml):

    assets:
      - "bitcoin"
      - "ethereum"
    currency: "usd"
    window:
      days: 30
      # or an explicit range:
      # start: "2024-01-01"
      # end: "2024-03-01"
    chart_kind: "line"
    data_source: "coingecko"
    source_params:
      timeout: 30
    known_assets:
      - {id: "bitcoin", name: "Bitcoin", symbol: "btc"}
      - {id: "ethereum", name: "Ethereum", symbol: "eth"}
    logging:
      level: "INFO"
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from cryptotrends.exceptions import ConfigError, SelectionError
from cryptotrends.types import (ChartKind, CurrencyCode, KnownAsset,
                                Selection, TrendsConfig)

# Valid data source types
VALID_DATA_SOURCES = frozenset(["coingecko", "csv"])

VALID_LOG_LEVELS = frozenset(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])

DEFAULT_DAYS = 30


def _parse_window(selection: Selection, raw_window: Any) -> Selection:
    """Apply the ``window`` section to a selection.

    :raises ConfigError: If the section is malformed or mixes both forms.
    """
    if raw_window is None:
        return selection.with_relative_days(DEFAULT_DAYS)
    if not isinstance(raw_window, dict):
        raise ConfigError("'window' must be a mapping")

    has_relative = "days" in raw_window or "range" in raw_window
    has_absolute = "start" in raw_window or "end" in raw_window
    if has_relative and has_absolute:
        raise ConfigError("'window' must use either 'days'/'range' or 'start'/'end', not both")

    try:
        if has_absolute:
            if "start" not in raw_window or "end" not in raw_window:
                raise ConfigError("'window' must contain both 'start' and 'end'")
            return selection.with_date_range(str(raw_window["start"]), str(raw_window["end"]))
        if "range" in raw_window:
            return selection.with_range_button(str(raw_window["range"]))
        days = raw_window.get("days", DEFAULT_DAYS)
        if not isinstance(days, int) or isinstance(days, bool):
            raise ConfigError("'window.days' must be a positive integer")
        return selection.with_relative_days(days)
    except SelectionError as e:
        raise ConfigError(str(e)) from e


def _parse_timeout(raw_timeout: Any) -> float:
    """Coerce ``source_params.timeout`` to positive seconds."""
    if isinstance(raw_timeout, bool):
        raise ConfigError("'source_params.timeout' must be a positive number of seconds")
    try:
        timeout = float(raw_timeout)
    except (TypeError, ValueError) as e:
        raise ConfigError(
            f"'source_params.timeout' must be a positive number of seconds, got {raw_timeout!r}"
        ) from e
    if not timeout > 0:
        raise ConfigError("'source_params.timeout' must be a positive number of seconds")
    return timeout


def _parse_known_assets(raw_assets: Any) -> list[KnownAsset]:
    if raw_assets is None:
        return []
    if not isinstance(raw_assets, list):
        raise ConfigError("'known_assets' must be a list")
    assets = []
    for entry in raw_assets:
        if not isinstance(entry, dict):
            raise ConfigError(f"Invalid known asset entry: {entry!r}")
        try:
            assets.append(KnownAsset.model_validate(entry))
        except ValidationError as e:
            raise ConfigError(f"Invalid known asset entry {entry!r}: {e}") from e
    return assets


def load_trends_config(config_path: str | Path) -> TrendsConfig:
    """Parse and validate a trends configuration file.

    :param config_path: Path to YAML configuration file.
    :returns: Validated TrendsConfig object.
    :raises ConfigError: If file cannot be read or config is invalid.
    """
    config_path = Path(config_path)

    # Read and parse YAML
    try:
        with open(config_path) as f:
            raw_config = yaml.safe_load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"Configuration file not found: {config_path}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in configuration file: {e}") from e

    if not isinstance(raw_config, dict):
        raise ConfigError("Configuration must be a YAML mapping")

    if "assets" not in raw_config:
        raise ConfigError("Missing required field: assets")

    # Parse assets
    raw_assets = raw_config["assets"]
    if not isinstance(raw_assets, list) or len(raw_assets) == 0:
        raise ConfigError("'assets' must be a non-empty list")
    selection = Selection()
    for asset_id in raw_assets:
        if not isinstance(asset_id, str) or not asset_id:
            raise ConfigError(f"Invalid asset id: {asset_id!r}")
        selection = selection.add_asset(asset_id)

    # Parse currency
    currency = str(raw_config.get("currency", "usd")).lower()
    try:
        selection = selection.with_currency(currency)
    except SelectionError as e:
        raise ConfigError(
            f"Invalid currency '{currency}'. "
            f"Valid options: {sorted(c.value for c in CurrencyCode)}"
        ) from e

    # Parse window
    selection = _parse_window(selection, raw_config.get("window"))

    # Parse chart kind
    chart_kind = raw_config.get("chart_kind", ChartKind.LINE.value)
    try:
        selection = selection.with_chart_kind(chart_kind)
    except SelectionError as e:
        raise ConfigError(
            f"Invalid chart_kind '{chart_kind}'. "
            f"Valid options: {[k.value for k in ChartKind]}"
        ) from e

    # Parse reference index
    reference_index = raw_config.get("reference_index", 0)
    if not isinstance(reference_index, int) or reference_index < 0:
        raise ConfigError("'reference_index' must be a non-negative integer")

    # Parse data_source
    data_source = raw_config.get("data_source", "coingecko")
    if data_source not in VALID_DATA_SOURCES:
        raise ConfigError(
            f"Invalid data_source '{data_source}'. "
            f"Valid options: {sorted(VALID_DATA_SOURCES)}"
        )

    # Parse source_params (optional)
    source_params: dict[str, Any] = raw_config.get("source_params") or {}
    if not isinstance(source_params, dict):
        raise ConfigError("'source_params' must be a mapping")
    if "timeout" in source_params:
        source_params = {**source_params, "timeout": _parse_timeout(source_params["timeout"])}

    known_assets = _parse_known_assets(raw_config.get("known_assets"))

    # Parse logging (optional)
    raw_logging = raw_config.get("logging", {})
    if not isinstance(raw_logging, dict):
        raise ConfigError("'logging' must be a mapping")

    log_level = str(raw_logging.get("level", "INFO")).upper()
    if log_level not in VALID_LOG_LEVELS:
        raise ConfigError(
            f"Invalid log level '{log_level}'. "
            f"Valid options: {sorted(VALID_LOG_LEVELS)}"
        )

    return TrendsConfig(
        selection=selection,
        data_source=data_source,
        source_params=source_params,
        known_assets=known_assets,
        reference_index=reference_index,
        log_level=log_level,
    )


__all__ = [
    "VALID_DATA_SOURCES",
    "VALID_LOG_LEVELS",
    "load_trends_config",
]
