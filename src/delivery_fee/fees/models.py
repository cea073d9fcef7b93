"""Data models for fee calculation."""

from decimal import Decimal
from enum import Enum
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class VehicleClass(str, Enum):
    """Vehicle types a courier can use."""
    CAR = "Car"
    SCOOTER = "Scooter"
    BIKE = "Bike"


class Location(BaseModel):
    """Monitored delivery zone and the weather station that covers it."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="City name, unique key")
    station_name: str = Field(..., description="Observation source identifier")


class ForbiddenReason(str, Enum):
    """Rule category that barred a vehicle."""
    WIND_SPEED = "wind_speed"
    PHENOMENON = "phenomenon"


class FeeAmount(BaseModel):
    """Computed delivery fee."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["fee"] = "fee"
    amount: Decimal = Field(..., ge=0, description="Total fee in euros")


class ForbiddenUsage(BaseModel):
    """Vehicle usage barred under current weather conditions."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["forbidden"] = "forbidden"
    vehicle: VehicleClass
    reason: ForbiddenReason
    detail: str = Field(..., description="Observed value that triggered the rule")

    @property
    def message(self) -> str:
        return "Usage of selected vehicle type is forbidden"


class InvalidInput(BaseModel):
    """Unknown city or vehicle type."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["invalid_input"] = "invalid_input"
    message: str


class DataUnavailable(BaseModel):
    """No observation stored yet for a valid location."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["data_unavailable"] = "data_unavailable"
    location: str
    message: str


FeeQuote = Union[FeeAmount, ForbiddenUsage]

QuoteResult = Union[FeeAmount, ForbiddenUsage, InvalidInput, DataUnavailable]


class FeeResponse(BaseModel):
    """Delivery fee response model."""
    city: str = Field(..., description="City the fee was quoted for")
    vehicle_type: VehicleClass = Field(..., description="Vehicle type the fee was quoted for")
    fee: float = Field(..., ge=0, description="Delivery fee in euros")


class ErrorResponse(BaseModel):
    """Error response model."""
    detail: str = Field(..., description="Error message")
