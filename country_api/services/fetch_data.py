import logging
import random
from datetime import datetime, timezone
from typing import Callable, Optional

import requests
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from country_api import crud
from country_api.config import settings

logger = logging.getLogger("country_api")

MULTIPLIER_MIN = 1000
MULTIPLIER_MAX = 2000


class UpstreamError(Exception):
    """An external API or the database failed while refreshing."""

    def __init__(self, source: str, message: str):
        super().__init__(f"{source}: {message}")
        self.source = source
        self.message = message


def random_multiplier() -> int:
    return random.randint(MULTIPLIER_MIN, MULTIPLIER_MAX)


def _get_json(url: str, source: str):
    try:
        resp = requests.get(url, timeout=settings.request_timeout)
    except requests.RequestException as e:
        raise UpstreamError(source, str(e)) from e
    if resp.status_code != 200:
        raise UpstreamError(source, f"returned HTTP {resp.status_code}")
    try:
        return resp.json()
    except ValueError as e:
        raise UpstreamError(source, "response is not valid JSON") from e


def fetch_countries() -> list:
    data = _get_json(settings.COUNTRY_API, "Countries API")
    if not isinstance(data, list):
        raise UpstreamError("Countries API", "expected a list of countries")
    return data


def fetch_exchange_rates() -> dict:
    data = _get_json(settings.EXCHANGE_API, "Exchange Rates API")
    rates = data.get("rates") if isinstance(data, dict) else None
    if not isinstance(rates, dict):
        raise UpstreamError("Exchange Rates API", "payload has no rates mapping")
    return rates


def primary_currency(raw: dict) -> Optional[str]:
    currencies = raw.get("currencies") or []
    if not isinstance(currencies, list):
        raise UpstreamError("Countries API", f"currencies of {raw.get('name')!r} is not a list")
    if not currencies:
        return None
    first = currencies[0] or {}
    if not isinstance(first, dict):
        raise UpstreamError("Countries API", f"currency entry of {raw.get('name')!r} is not an object")
    code = first.get("code")
    if code is not None and not isinstance(code, str):
        raise UpstreamError("Countries API", f"currency code of {raw.get('name')!r} is not a string")
    return code or None


def _number(value, source: str, what: str):
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise UpstreamError(source, f"{what} is not a number: {value!r}")
    return value


def build_country_values(raw: dict, rates: dict, multiplier: Callable[[], int] = random_multiplier) -> dict:
    """Merge one upstream country entry with the rate table.

    GDP is only estimated when the currency has a rate; otherwise both the
    rate and the GDP are left empty. A malformed entry raises ``UpstreamError``.
    """
    population = _number(raw.get("population") or 0, "Countries API", f"population of {raw.get('name')!r}")
    currency_code = primary_currency(raw)
    rate = rates.get(currency_code) if currency_code else None
    if rate is not None:
        rate = _number(rate, "Exchange Rates API", f"rate for {currency_code}")
    if not rate:
        rate = None
    gdp = population * multiplier() / rate if rate is not None else None
    return {
        "name": raw.get("name"),
        "capital": raw.get("capital"),
        "region": raw.get("region"),
        "population": population,
        "currency_code": currency_code,
        "exchange_rate": rate,
        "estimated_gdp": gdp,
        "flag_url": raw.get("flag"),
    }


def refresh_data(db: Session, multiplier: Callable[[], int] = random_multiplier) -> int:
    """Fetch countries and exchange rates, then upsert every country by name.

    Returns the number of rows written. Raises ``UpstreamError`` when either
    API or the database fails; rows committed before the failure remain.
    """
    countries_data = fetch_countries()
    rates = fetch_exchange_rates()
    logger.info("Fetched %d countries and %d exchange rates", len(countries_data), len(rates))

    written = 0
    try:
        for raw in countries_data:
            if not isinstance(raw, dict) or not raw.get("name"):
                logger.warning("Skipping country entry without a name: %r", raw)
                continue
            values = build_country_values(raw, rates, multiplier)
            crud.upsert_country(db, values, datetime.now(timezone.utc))
            written += 1
    except SQLAlchemyError as e:
        db.rollback()
        raise UpstreamError("Database", str(e)) from e
    return written
