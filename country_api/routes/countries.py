from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Request
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from country_api import schemas
from country_api.config import settings
from country_api.database import get_db
from country_api.services import country_service
from country_api.services.image_generator import SummaryRenderer
from country_api.state import RefreshState, get_refresh_state

router = APIRouter()


def get_summary_renderer(request: Request) -> SummaryRenderer:
    return request.app.state.summary_renderer


@router.post(
    "/refresh",
    response_model=schemas.MessageOut,
    summary="Refresh country, currency, and exchange data",
    description=(
        "Fetches the latest data from external providers, upserts every country by name "
        "and regenerates the summary image for the top 5 GDP countries."
    ),
    responses={503: {"model": schemas.ErrorOut}},
)
def refresh_countries(
    db: Session = Depends(get_db),
    state: RefreshState = Depends(get_refresh_state),
    renderer: SummaryRenderer = Depends(get_summary_renderer),
):
    return country_service.refresh_countries(db, state, renderer)


@router.get(
    "",
    response_model=List[schemas.CountryOut],
    summary="List countries",
    description=(
        "Returns countries with optional filtering and sorting.\n\n"
        "Filters (exact match, combined with AND):\n"
        "- region: e.g. 'Europe'\n"
        "- currency: currency code, e.g. 'EUR'\n\n"
        "Sorting options (sort): gdp_desc|gdp_asc|population_desc|population_asc|name_asc|name_desc. "
        "Empty values sort last."
    ),
    response_description="List of countries",
)
def get_all(
    region: Optional[str] = Query(default=None, description="Filter by region (exact match)", examples=["Europe"]),
    currency: Optional[str] = Query(default=None, description="Filter by currency code (exact match)", examples=["EUR"]),
    sort: Optional[str] = Query(default=None, description="Sort order, e.g. gdp_desc", examples=["gdp_desc"]),
    db: Session = Depends(get_db),
):
    return country_service.list_countries(db, region, currency, sort)


@router.get(
    "/image",
    summary="Get generated summary image",
    description="Returns the PNG summary (total count, top 5 GDP countries, last refresh time).",
    responses={404: {"model": schemas.ErrorOut}},
)
def get_image():
    img_path = settings.summary_image_path
    if not img_path.exists():
        raise HTTPException(status_code=404, detail="Summary image not found")
    return FileResponse(str(img_path), media_type="image/png")


@router.get(
    "/{name}",
    response_model=schemas.CountryOut,
    summary="Get country by name",
    description="Case-insensitive exact country name match.",
    responses={404: {"model": schemas.ErrorOut}},
)
def get_one(
    name: str = Path(..., description="Country name", examples=["Nigeria"]),
    db: Session = Depends(get_db),
):
    return country_service.get_country_by_name(db, name)


@router.delete(
    "/{name}",
    response_model=schemas.MessageOut,
    summary="Delete a country by name",
    description="Deletes the country matching the name case-insensitively.",
    responses={404: {"model": schemas.ErrorOut}},
)
def delete_country(
    name: str = Path(..., description="Country name", examples=["Nigeria"]),
    db: Session = Depends(get_db),
):
    return country_service.delete_country_by_name(db, name)
