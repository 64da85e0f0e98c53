"""
Manager settings and credentials.

Settings live in a YAML file whose keys mirror ``ManagerConfig``; any
key left out keeps its default. The Alpha Vantage key is looked up
separately so it never has to sit next to shareable settings.
"""

import os
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml
from dotenv import dotenv_values

from stockfolio.models import ManagerConfig


PROJECT_ROOT = Path(__file__).parent.parent.parent
DEFAULT_ENV_FILE = PROJECT_ROOT / ".env"
DEFAULT_API_KEYS_FILE = PROJECT_ROOT / "config" / "api_keys.yaml"

PRICE_SOURCES = ("alphavantage", "csv")

_KEY_NAME = "alphavantage_api_key"
_ENV_NAME = "ALPHAVANTAGE_API_KEY"


class ConfigurationError(Exception):
    """Settings file or credentials are missing or unusable."""


def load_api_keys(
    env_file: str | Path | None = None,
    api_keys_file: str | Path | None = None,
) -> dict[str, str]:
    """
    Collect API keys, letting each source override the previous one.

    Lookup order is ``config/api_keys.yaml``, then the project ``.env``,
    then the process environment. The result holds
    ``alphavantage_api_key`` only when one of them supplies it.
    """
    found: dict[str, str] = {}

    keys_path = Path(api_keys_file) if api_keys_file else DEFAULT_API_KEYS_FILE
    if keys_path.exists():
        try:
            stored = yaml.safe_load(keys_path.read_text()) or {}
        except (yaml.YAMLError, OSError) as e:
            raise ConfigurationError(f"Could not read API keys file {keys_path}: {e}")
        if isinstance(stored, dict) and stored.get(_KEY_NAME):
            found[_KEY_NAME] = str(stored[_KEY_NAME])

    env_path = Path(env_file) if env_file else DEFAULT_ENV_FILE
    if env_path.exists():
        from_dotenv = dotenv_values(env_path).get(_ENV_NAME)
        if from_dotenv:
            found[_KEY_NAME] = from_dotenv

    if os.environ.get(_ENV_NAME):
        found[_KEY_NAME] = os.environ[_ENV_NAME]

    return found


def get_alphavantage_api_key() -> str:
    """Return the Alpha Vantage key or explain where to put one."""
    key = load_api_keys().get(_KEY_NAME)
    if not key:
        raise ConfigurationError(
            "Alpha Vantage API key is not configured. Please set it using one of:\n"
            f"  1. Environment variable: export {_ENV_NAME}=your-key\n"
            f"  2. .env file: {_ENV_NAME}=your-key\n"
            f"  3. config/api_keys.yaml: {_KEY_NAME}: your-key\n"
        )
    return key


def load_manager_config(config_path: str | Path) -> ManagerConfig:
    """
    Read and validate a settings file.

    An empty file is valid and yields the defaults.

    Raises:
        ConfigurationError: The file is absent, is not YAML, is not a
            mapping, or holds an out-of-range value
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    try:
        raw = yaml.safe_load(config_path.read_text())
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in configuration file: {e}")

    if raw is None:
        return ManagerConfig()
    if not isinstance(raw, dict):
        raise ConfigurationError("Configuration file must contain a mapping")

    return _parse_manager_config(raw)


def _parse_manager_config(raw: dict[str, Any]) -> ManagerConfig:
    defaults = ManagerConfig()

    def setting(key: str) -> Any:
        return raw.get(key, getattr(defaults, key))

    price_source = str(setting("price_source")).lower()
    if price_source not in PRICE_SOURCES:
        raise ConfigurationError(
            f"price_source must be one of {list(PRICE_SOURCES)}, got {price_source}"
        )

    commission_fee = _bounded_decimal(setting("commission_fee"), "commission_fee", low=Decimal("0"))
    fee_decay_percent = _bounded_decimal(
        setting("fee_decay_percent"), "fee_decay_percent", low=Decimal("0"), high=Decimal("100")
    )

    try:
        epoch_year = int(setting("epoch_year"))
    except (TypeError, ValueError):
        raise ConfigurationError(f"Invalid epoch_year: {raw.get('epoch_year')}")
    if not 1900 <= epoch_year <= date.today().year:
        raise ConfigurationError(f"epoch_year out of range: {epoch_year}")

    reference_symbol = raw.get("reference_symbol")
    if reference_symbol is not None:
        reference_symbol = str(reference_symbol).upper().strip() or None

    return ManagerConfig(
        portfolios_dir=str(setting("portfolios_dir")),
        price_source=price_source,
        price_data_dir=str(setting("price_data_dir")),
        cache_dir=str(setting("cache_dir")),
        use_cache=bool(setting("use_cache")),
        supported_symbols_file=str(setting("supported_symbols_file")),
        reference_symbol=reference_symbol,
        commission_fee=commission_fee,
        fee_decay_percent=fee_decay_percent,
        epoch_year=epoch_year,
        output_dir=str(setting("output_dir")),
    )


def _bounded_decimal(
    value: Any,
    field_name: str,
    low: Decimal | None = None,
    high: Decimal | None = None,
) -> Decimal:
    try:
        number = Decimal(str(value))
    except InvalidOperation:
        raise ConfigurationError(f"Invalid decimal value for {field_name}: {value}")

    if not number.is_finite():
        raise ConfigurationError(f"Invalid decimal value for {field_name}: {value}")
    if low is not None and number < low:
        raise ConfigurationError(f"{field_name} must be >= {low}, got {number}")
    if high is not None and number > high:
        raise ConfigurationError(f"{field_name} must be <= {high}, got {number}")

    return number


def create_default_config(
    portfolios_dir: str | Path = "Portfolios",
    output_path: str | Path | None = None,
) -> ManagerConfig:
    """Default settings rooted at ``portfolios_dir``, optionally saved to ``output_path``."""
    config = ManagerConfig(portfolios_dir=str(portfolios_dir))
    if output_path:
        write_config(config, output_path)
    return config


def write_config(config: ManagerConfig, output_path: str | Path) -> None:
    """Save ``config`` as YAML that ``load_manager_config`` reads back unchanged."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    settings = {
        "portfolios_dir": config.portfolios_dir,
        "price_source": config.price_source,
        "price_data_dir": config.price_data_dir,
        "cache_dir": config.cache_dir,
        "use_cache": config.use_cache,
        "supported_symbols_file": config.supported_symbols_file,
        "reference_symbol": config.reference_symbol,
        # Strings keep the exact decimal value through YAML.
        "commission_fee": str(config.commission_fee),
        "fee_decay_percent": str(config.fee_decay_percent),
        "epoch_year": config.epoch_year,
        "output_dir": config.output_dir,
    }

    with output_path.open("w") as f:
        yaml.dump(settings, f, default_flow_style=False, sort_keys=False)
