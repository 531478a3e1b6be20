"""
Instrument registry and pip arithmetic.

Pip value is quoted in the account currency (USD).  For USD-quoted symbols it
is a constant per standard lot; for everything else it depends on the price at
which the conversion happens, so callers pass that price in explicitly.
"""
from __future__ import annotations

from typing import Dict

from models import AssetConfig, AssetType

ASSET_CONFIGS: Dict[str, AssetConfig] = {
    "EURUSD": AssetConfig(symbol="EURUSD", pip_value=10, commission=7, quote_currency="USD", pip_multiplier=10_000),
    "GBPUSD": AssetConfig(symbol="GBPUSD", pip_value=10, commission=7, quote_currency="USD", pip_multiplier=10_000),
    # Gold: 2000.00 -> 2000.10 is one pip.
    "XAUUSD": AssetConfig(symbol="XAUUSD", pip_value=10, commission=7, quote_currency="USD", pip_multiplier=10),
    "USDJPY": AssetConfig(symbol="USDJPY", pip_value=1_000, commission=7, quote_currency="JPY", pip_multiplier=100),
    "USDCAD": AssetConfig(symbol="USDCAD", pip_value=10, commission=7, quote_currency="CAD", pip_multiplier=10_000),
    "USDCHF": AssetConfig(symbol="USDCHF", pip_value=10, commission=7, quote_currency="CHF", pip_multiplier=10_000),
}


def get_asset(symbol: AssetType) -> AssetConfig:
    """Look up an instrument, raising ``KeyError`` for unknown symbols."""
    return ASSET_CONFIGS[symbol]


def pip_value_at(config: AssetConfig, price: float) -> float:
    """
    Value of one pip for one standard lot, in account currency, at ``price``.

    Returns 0 for a non-positive price on non-USD-quoted instruments.
    """
    if config.quote_currency == "USD":
        return config.pip_value
    if price <= 0:
        return 0.0
    return config.pip_value / price
