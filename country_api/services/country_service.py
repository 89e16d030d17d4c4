import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from country_api import crud
from country_api.config import settings
from country_api.services import fetch_data
from country_api.services.image_generator import SummaryData, SummaryRenderer, write_summary_image
from country_api.state import RefreshState

logger = logging.getLogger("country_api")

TOP_N = 5


def _upstream_unavailable(e: fetch_data.UpstreamError) -> HTTPException:
    logger.error("Refresh aborted: %s", e)
    return HTTPException(
        status_code=503,
        detail={
            "error": "External data source unavailable",
            "details": f"Could not fetch data from {e.source}: {e.message}",
        },
    )


def refresh_countries(db: Session, state: RefreshState, renderer: Optional[SummaryRenderer] = None) -> dict:
    try:
        written = fetch_data.refresh_data(db)
    except fetch_data.UpstreamError as e:
        raise _upstream_unavailable(e) from e

    now = datetime.now(timezone.utc)
    state.mark_refreshed(now)
    logger.info("Refreshed %d countries at %s", written, now.isoformat())

    try:
        total = crud.count_countries(db)
        top = crud.get_top_by_gdp(db, TOP_N)
    except SQLAlchemyError as e:
        db.rollback()
        raise _upstream_unavailable(fetch_data.UpstreamError("Database", str(e))) from e

    summary = SummaryData.from_countries(total=total, countries=top, refreshed_at=state.status_value())
    write_summary_image(summary, settings.summary_image_path, renderer)
    return {"message": "Countries refreshed successfully"}


def list_countries(
    db: Session,
    region: Optional[str] = None,
    currency: Optional[str] = None,
    sort: Optional[str] = None,
) -> list:
    # Unknown sort keys leave the rows unordered
    if sort not in crud.SORT_COLUMNS:
        sort = None
    return crud.get_countries(db, region, currency, sort)


def get_country_by_name(db: Session, name: str):
    country = crud.get_country(db, name)
    if not country:
        raise HTTPException(status_code=404, detail="Country not found")
    return country


def delete_country_by_name(db: Session, name: str) -> dict:
    if not crud.delete_country(db, name):
        raise HTTPException(status_code=404, detail="Country not found")
    return {"message": "Country deleted"}


def get_status(db: Session, state: RefreshState) -> dict:
    return {
        "total_countries": crud.count_countries(db),
        "last_refreshed_at": state.status_value(),
    }
