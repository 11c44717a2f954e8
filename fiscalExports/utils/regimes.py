"""Static fiscal regime and currency presets shipped with the app."""
from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Iterator

DATA_DIR = Path(__file__).resolve().parent.parent / "data"
REGIMES_FILE = DATA_DIR / "fiscal-regimes.json"
CURRENCIES_FILE = DATA_DIR / "currencies.json"

DEFAULT_REGIME_CODE = "OHADA"


@lru_cache(maxsize=None)
def _load(path: Path) -> dict[str, Any]:
    with path.open(encoding="utf-8") as handle:
        return json.load(handle)


def load_regimes() -> list[dict[str, Any]]:
    return list(_load(REGIMES_FILE)["regimes"])


def load_currencies() -> list[dict[str, str]]:
    return list(_load(CURRENCIES_FILE)["currencies"])


def get_regime(code: str | None) -> dict[str, Any] | None:
    """Return the preset with ``code`` or None when unknown or blank."""
    if not code:
        return None
    for regime in load_regimes():
        if regime["code"] == code:
            return regime
    return None


def regime_choices() -> Iterator[tuple[str, str]]:
    for regime in load_regimes():
        yield regime["code"], regime["name"]


def currency_choices() -> Iterator[tuple[str, str]]:
    for currency in load_currencies():
        yield currency["code"], f"{currency['name']} ({currency['code']})"
