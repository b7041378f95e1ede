"""
Runtime configuration for the gateway.

``GatewayConfig.from_env()`` is called once at process start and the
resulting object is handed to the server, dispatcher, submitter and
flattener.  Nothing in the pipeline reads the environment on its own, so
tests can construct a config with fake accounts directly.

Accounts
--------

Up to ``MAX_ACCOUNTS`` accounts are read from indexed variables:

* ``BYBIT_API_KEY_<i>`` / ``BYBIT_API_SECRET_<i>`` – credentials.
* ``BASE_URL_<i>`` – REST endpoint, e.g. ``https://api.bybit.com``.

A slot is used only when all three values are present (``null`` counts as
missing).  When no indexed slot is usable, ``BYBIT_API_KEY`` and
``BYBIT_API_SECRET`` (with ``BYBIT_BASE_URL``) form a single account.

Every credential value may also be supplied through a ``*_FILE`` variable,
see :mod:`gateway.secrets_manager`.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Callable, List, Mapping, Optional, Tuple, TypeVar

from .clients.signer import RECV_WINDOW
from .errors import ConfigError
from .models import AccountCredential
from .secrets_manager import BaseSecretsManager, get_default_secrets_manager

logger = logging.getLogger(__name__)

MAX_ACCOUNTS = 10
DEFAULT_BASE_URL = "https://api.bybit.com"

_TRUE_VALUES = {"true", "1", "yes", "on"}

T = TypeVar("T")


def _parse(env: Mapping[str, str], name: str, default: T, cast: Callable[[str], T]) -> T:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw.strip())
    except ValueError:
        raise ConfigError(f"{name} has an invalid value: {raw!r}") from None


def _flag(raw: str) -> bool:
    return raw.lower() in _TRUE_VALUES


def _price(raw: str) -> str:
    try:
        value = Decimal(raw)
    except InvalidOperation:
        raise ValueError(raw) from None
    if not value.is_finite() or value <= 0:
        raise ValueError(raw)
    return raw


def load_accounts(secrets: BaseSecretsManager) -> List[AccountCredential]:
    """Collect every usable account slot in index order."""
    accounts: List[AccountCredential] = []
    for index in range(1, MAX_ACCOUNTS + 1):
        api_key = secrets.get_secret(f"BYBIT_API_KEY_{index}")
        api_secret = secrets.get_secret(f"BYBIT_API_SECRET_{index}")
        base_url = secrets.get_secret(f"BASE_URL_{index}")
        if not (api_key and api_secret and base_url):
            if api_key or api_secret or base_url:
                logger.warning("Account slot %d is incomplete and will be ignored", index)
            continue
        accounts.append(
            AccountCredential(
                api_key=api_key,
                api_secret=api_secret,
                base_url=base_url.rstrip("/"),
                name=f"bybit{index}",
            )
        )
    if accounts:
        return accounts
    api_key = secrets.get_secret("BYBIT_API_KEY")
    api_secret = secrets.get_secret("BYBIT_API_SECRET")
    if api_key and api_secret:
        base_url = secrets.get_secret("BYBIT_BASE_URL") or DEFAULT_BASE_URL
        accounts.append(
            AccountCredential(api_key=api_key, api_secret=api_secret, base_url=base_url.rstrip("/"), name="bybit")
        )
    return accounts


@dataclass(frozen=True)
class GatewayConfig:
    accounts: Tuple[AccountCredential, ...] = ()
    recv_window: str = RECV_WINDOW
    price_precision: int = 2
    settle_timeout: float = 5.0
    settle_poll_interval: float = 0.5
    request_timeout: float = 10.0
    default_reduce_only: bool = True
    cancel_open_orders: bool = False
    paper_trading: bool = False
    paper_reference_price: str = "100"
    host: str = "0.0.0.0"  # nosec B104 - container entry point
    port: int = 3001
    event_store_path: Optional[str] = None
    prometheus_port: Optional[int] = None
    log_level: str = "INFO"

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        secrets: Optional[BaseSecretsManager] = None,
    ) -> "GatewayConfig":
        env = os.environ if environ is None else environ
        secrets = secrets or get_default_secrets_manager(env)
        precision = _parse(env, "PRICE_PRECISION", 2, int)
        if not 0 <= precision <= 10:
            raise ConfigError(f"PRICE_PRECISION must be between 0 and 10, got {precision}")
        settle_timeout = _parse(env, "SETTLE_TIMEOUT_SEC", 5.0, float)
        poll_interval = _parse(env, "SETTLE_POLL_INTERVAL_SEC", 0.5, float)
        if settle_timeout < 0 or poll_interval < 0:
            raise ConfigError("SETTLE_TIMEOUT_SEC and SETTLE_POLL_INTERVAL_SEC must not be negative")
        config = cls(
            accounts=tuple(load_accounts(secrets)),
            price_precision=precision,
            settle_timeout=settle_timeout,
            settle_poll_interval=poll_interval,
            request_timeout=_parse(env, "REQUEST_TIMEOUT_SEC", 10.0, float),
            default_reduce_only=_parse(env, "DEFAULT_REDUCE_ONLY", True, _flag),
            cancel_open_orders=_parse(env, "CANCEL_OPEN_ORDERS", False, _flag),
            paper_trading=_parse(env, "PAPER_TRADING", False, _flag),
            paper_reference_price=_parse(env, "PAPER_REFERENCE_PRICE", "100", _price),
            host=_parse(env, "HOST", "0.0.0.0", str),  # nosec B104
            port=_parse(env, "PORT", 3001, int),
            event_store_path=_parse(env, "EVENT_STORE_PATH", None, str),
            prometheus_port=_parse(env, "PROMETHEUS_PORT", None, int),
            log_level=_parse(env, "LOG_LEVEL", "INFO", str.upper),
        )
        logger.info(
            "Loaded %d account(s): %s",
            len(config.accounts),
            ", ".join(account.name for account in config.accounts) or "-",
        )
        return config

    @property
    def account_names(self) -> List[str]:
        return [account.name for account in self.accounts]
