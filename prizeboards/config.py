"""Platform configuration management."""

import logging
import os
from functools import lru_cache
from pathlib import Path

from .schemas import PayoutRule, PlatformConfig
from .utils import load_json

logger = logging.getLogger('prizeboards.config')

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / 'data' / 'platform_config.json'


@lru_cache(maxsize=1)
def get_config() -> PlatformConfig:
    """
    Load platform configuration.

    Reads the file named by PRIZEBOARDS_CONFIG, else data/platform_config.json.
    Falls back to built-in defaults when the file is absent. Cached after
    first load; call get_config.cache_clear() to reload.

    Returns:
        PlatformConfig with validated settings

    Raises:
        ValueError: If the config file has invalid structure
    """
    config_path = Path(os.environ.get('PRIZEBOARDS_CONFIG', DEFAULT_CONFIG_PATH))
    if not config_path.exists():
        logger.debug(f'No config at {config_path}, using defaults')
        return PlatformConfig()
    return load_json(config_path, schema=PlatformConfig)


def get_fee_rate(plan: str | None = None, config: PlatformConfig | None = None) -> float:
    """Get the platform fee rate for a host plan.

    Raises:
        KeyError: If the plan is unknown
    """
    config = config or get_config()
    plan = plan or config.default_fee_plan
    if plan not in config.fee_plans:
        raise KeyError(f'Unknown fee plan: {plan}')
    return config.fee_plans[plan]


def get_default_payout_rules(payout_type: str, config: PlatformConfig | None = None) -> list[PayoutRule]:
    """Get a copy of the default payout rules for a payout type."""
    config = config or get_config()
    rules = config.default_payout_rules.get(payout_type)
    if rules is None:
        raise KeyError(f'Unknown payout type: {payout_type}')
    return [rule.model_copy() for rule in rules]


def get_max_host_fee_percent(config: PlatformConfig | None = None) -> float:
    """Get the host fee percentage cap."""
    return (config or get_config()).max_host_fee_percent
