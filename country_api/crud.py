from datetime import datetime

from sqlalchemy import func
from sqlalchemy.orm import Session

from country_api import models

SORT_COLUMNS = {
    "gdp_desc": (models.Country.estimated_gdp, True),
    "gdp_asc": (models.Country.estimated_gdp, False),
    "population_desc": (models.Country.population, True),
    "population_asc": (models.Country.population, False),
    "name_desc": (models.Country.name, True),
    "name_asc": (models.Country.name, False),
}


def _order_nulls_last(column, descending: bool):
    # "IS NULL" sorts false before true on every backend, unlike NULLS LAST
    direction = column.desc() if descending else column.asc()
    return (column.is_(None), direction)


def _name_matches(name: str):
    return func.lower(models.Country.name) == name.lower()


def get_country(db: Session, name: str):
    return db.query(models.Country).filter(_name_matches(name)).first()


def get_countries(db: Session, region=None, currency=None, sort=None):
    query = db.query(models.Country)
    if region:
        query = query.filter(models.Country.region == region)
    if currency:
        query = query.filter(models.Country.currency_code == currency)
    if sort is not None:
        column, descending = SORT_COLUMNS[sort]
        query = query.order_by(*_order_nulls_last(column, descending))
    return query.all()


def count_countries(db: Session) -> int:
    return db.query(func.count(models.Country.id)).scalar() or 0


def get_top_by_gdp(db: Session, limit: int = 5):
    return (
        db.query(models.Country)
        .order_by(*_order_nulls_last(models.Country.estimated_gdp, True))
        .limit(limit)
        .all()
    )


def delete_country(db: Session, name: str) -> bool:
    country = get_country(db, name)
    if country:
        db.delete(country)
        db.commit()
        return True
    return False


def upsert_country(db: Session, values: dict, refreshed_at: datetime) -> models.Country:
    """Insert the country or overwrite every derived field of the existing row.

    The row is committed immediately; earlier rows of a refresh stay
    committed if a later one fails.
    """
    existing = db.query(models.Country).filter(models.Country.name == values["name"]).first()
    if existing:
        for field, value in values.items():
            setattr(existing, field, value)
        existing.last_refreshed_at = refreshed_at
        country = existing
    else:
        country = models.Country(**values, last_refreshed_at=refreshed_at)
        db.add(country)
    db.commit()
    return country
