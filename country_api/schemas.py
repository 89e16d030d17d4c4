from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


class CountryBase(BaseModel):
    name: str = Field(..., max_length=255)
    capital: Optional[str] = Field(None, max_length=255)
    region: Optional[str] = Field(None, max_length=100)
    population: int
    currency_code: Optional[str] = Field(None, max_length=10)
    exchange_rate: Optional[float] = None
    estimated_gdp: Optional[float] = None
    flag_url: Optional[str] = Field(None, max_length=512)
    last_refreshed_at: Optional[datetime] = Field(None)

    model_config = {"from_attributes": True}


class CountryOut(CountryBase):
    id: int


class StatusOut(BaseModel):
    total_countries: int
    # ISO-8601 timestamp, or "Not refreshed yet"
    last_refreshed_at: str


class MessageOut(BaseModel):
    message: str


class ErrorOut(BaseModel):
    error: str
    details: Optional[Any] = None
