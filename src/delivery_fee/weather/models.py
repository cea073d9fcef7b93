"""Data models for weather observations."""

from datetime import datetime, timezone
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Observation(BaseModel):
    """Weather reading from one station, tagged with its delivery location."""
    model_config = ConfigDict(frozen=True)

    station_name: str = Field(..., description="Weather station name")
    wmo_code: str = Field("", description="WMO code of the station")
    air_temperature: Decimal = Field(..., description="Air temperature in Celsius")
    wind_speed: Decimal = Field(..., ge=0, description="Wind speed in m/s")
    phenomenon: str = Field("", description="Weather phenomenon description")
    timestamp: datetime = Field(..., description="Observation time in UTC")
    location: str = Field(..., description="Location name the station covers")

    @field_validator("timestamp")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class ObservationResponse(BaseModel):
    """Latest observation response model."""
    city: str = Field(..., description="City name")
    station_name: str = Field(..., description="Weather station name")
    air_temperature: float = Field(..., description="Air temperature in Celsius")
    wind_speed: float = Field(..., description="Wind speed in m/s")
    phenomenon: str = Field(..., description="Weather phenomenon description")
    timestamp: datetime = Field(..., description="Observation time in UTC")

    @classmethod
    def from_observation(cls, observation: Observation) -> "ObservationResponse":
        return cls(
            city=observation.location,
            station_name=observation.station_name,
            air_temperature=float(observation.air_temperature),
            wind_speed=float(observation.wind_speed),
            phenomenon=observation.phenomenon,
            timestamp=observation.timestamp,
        )
