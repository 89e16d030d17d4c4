import copy

import pytest
import requests
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from country_api import models
from country_api.config import settings
from country_api.database import Base, get_db
from country_api.main import app
from country_api.state import RefreshState

SAMPLE_COUNTRIES = [
    {"name": "Nigeria", "capital": "Abuja", "region": "Africa", "population": 206139587,
     "flag": "https://flagcdn.com/ng.svg", "currencies": [{"code": "NGN", "name": "Nigerian naira"}]},
    {"name": "Ghana", "capital": "Accra", "region": "Africa", "population": 31072945,
     "flag": "https://flagcdn.com/gh.svg", "currencies": [{"code": "GHS"}]},
    {"name": "Germany", "capital": "Berlin", "region": "Europe", "population": 83240525,
     "flag": "https://flagcdn.com/de.svg", "currencies": [{"code": "EUR"}]},
    {"name": "France", "capital": "Paris", "region": "Europe", "population": 67391582,
     "flag": "https://flagcdn.com/fr.svg", "currencies": [{"code": "EUR"}]},
    {"name": "Bhutan", "capital": "Thimphu", "region": "Asia", "population": 771612,
     "flag": "https://flagcdn.com/bt.svg", "currencies": [{"code": "BTN"}, {"code": "INR"}]},
    {"name": "Atlantis", "capital": None, "region": "Oceania", "population": 1000,
     "flag": None, "currencies": [{"code": "XXX"}]},
    {"name": "Antarctica", "region": "Polar", "population": 1000,
     "flag": "https://flagcdn.com/aq.svg"},
]

SAMPLE_RATES = {"USD": 1, "NGN": 1600.23, "GHS": 12.5, "EUR": 0.92, "BTN": 83.1, "INR": 83.2}


class DummyResponse:
    def __init__(self, data, status_code=200):
        self._data = data
        self.status_code = status_code

    def json(self):
        return self._data


class FakeUpstream:
    """Stands in for both external APIs behind ``requests.get``."""

    def __init__(self):
        self.countries = copy.deepcopy(SAMPLE_COUNTRIES)
        self.rates = dict(SAMPLE_RATES)
        self.down = False
        self.calls = []

    def get(self, url, timeout=None):
        self.calls.append(url)
        if self.down:
            raise requests.ConnectionError("api down")
        if url == settings.COUNTRY_API:
            return DummyResponse(self.countries)
        if url == settings.EXCHANGE_API:
            return DummyResponse({"result": "success", "base_code": "USD", "rates": self.rates})
        raise AssertionError(f"Unexpected URL {url}")


@pytest.fixture
def upstream(monkeypatch):
    fake = FakeUpstream()
    monkeypatch.setattr("requests.get", fake.get)
    return fake


@pytest.fixture
def session_factory():
    # StaticPool keeps a single in-memory DB across threads/requests
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(bind=engine, autoflush=False)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def cache_dir(tmp_path, monkeypatch):
    path = tmp_path / "cache"
    monkeypatch.setattr(settings, "CACHE_DIR", path)
    return path


@pytest.fixture
def client(session_factory, cache_dir):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    app.state.refresh_state = RefreshState()
    try:
        yield TestClient(app, raise_server_exceptions=False)
    finally:
        app.dependency_overrides.clear()


def seed_countries(session):
    data = [
        models.Country(name="USA", capital="Washington, D.C.", region="Americas", population=329484123,
                       currency_code="USD", exchange_rate=1.0, estimated_gdp=500000000000.0),
        models.Country(name="Germany", capital="Berlin", region="Europe", population=83240525,
                       currency_code="EUR", exchange_rate=0.92, estimated_gdp=120000000000.0),
        models.Country(name="Switzerland", capital="Bern", region="Europe", population=8654622,
                       currency_code="CHF", exchange_rate=0.88, estimated_gdp=15000000000.0),
        models.Country(name="Atlantis", capital=None, region="Europe", population=1000,
                       currency_code="XXX", exchange_rate=None, estimated_gdp=None),
        models.Country(name="Ireland", capital="Dublin", region="europe", population=4994724,
                       currency_code="EUR", exchange_rate=0.92, estimated_gdp=9000000000.0),
    ]
    session.add_all(data)
    session.commit()
    return len(data)


@pytest.fixture
def seeded(session_factory):
    with session_factory() as session:
        return seed_countries(session)
