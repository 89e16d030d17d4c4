from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from country_api import schemas
from country_api.database import get_db
from country_api.services import country_service
from country_api.state import RefreshState, get_refresh_state

router = APIRouter()


@router.get(
    "",
    response_model=schemas.StatusOut,
    summary="API/data status",
    description=(
        "Returns the number of countries stored and the time of the last successful refresh "
        "in this process, or 'Not refreshed yet'."
    ),
)
def get_status(
    db: Session = Depends(get_db),
    state: RefreshState = Depends(get_refresh_state),
):
    return country_service.get_status(db, state)
