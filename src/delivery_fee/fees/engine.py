"""Fee rule engine: base fee plus weather surcharges, or a forbidden result."""

import logging
from decimal import Decimal
from typing import Iterable, Optional

from delivery_fee.fees.models import (
    FeeAmount, FeeQuote, ForbiddenReason, ForbiddenUsage, VehicleClass
)
from delivery_fee.fees.rules import (
    BASE_FEES,
    COLD_SURCHARGE,
    FORBIDDEN_PHENOMENA,
    FREEZING_TEMPERATURE,
    MAX_BIKE_WIND_SPEED,
    MIN_WIND_SURCHARGE_SPEED,
    RAIN_PHENOMENA,
    RAIN_SURCHARGE,
    SEVERE_COLD_SURCHARGE,
    SEVERE_COLD_TEMPERATURE,
    SNOW_OR_SLEET_PHENOMENA,
    SNOW_OR_SLEET_SURCHARGE,
    WIND_SURCHARGE,
)
from delivery_fee.weather.models import Observation

logger = logging.getLogger(__name__)

_TWO_WHEELERS = frozenset({VehicleClass.BIKE, VehicleClass.SCOOTER})


def _matches_any(phenomenon: str, candidates: Iterable[str]) -> bool:
    """Case-insensitive substring match of any candidate within the phenomenon."""
    text = phenomenon.casefold()
    return any(candidate.casefold() in text for candidate in candidates)


def check_forbidden(vehicle: VehicleClass, observation: Observation) -> Optional[ForbiddenUsage]:
    """Return a ForbiddenUsage if the vehicle may not be used, otherwise None."""
    if vehicle == VehicleClass.BIKE and observation.wind_speed > MAX_BIKE_WIND_SPEED:
        logger.warning(f"Usage of bike is forbidden due to high wind speed: {observation.wind_speed} m/s")
        return ForbiddenUsage(
            vehicle=vehicle,
            reason=ForbiddenReason.WIND_SPEED,
            detail=f"wind speed {observation.wind_speed} m/s",
        )

    if vehicle in _TWO_WHEELERS and _matches_any(observation.phenomenon, FORBIDDEN_PHENOMENA):
        logger.warning(f"Usage of {vehicle.value} is forbidden due to weather phenomenon: {observation.phenomenon}")
        return ForbiddenUsage(
            vehicle=vehicle,
            reason=ForbiddenReason.PHENOMENON,
            detail=f"phenomenon '{observation.phenomenon}'",
        )

    return None


def temperature_surcharge(vehicle: VehicleClass, air_temperature: Decimal) -> Decimal:
    if vehicle not in _TWO_WHEELERS:
        return Decimal("0")
    if air_temperature < SEVERE_COLD_TEMPERATURE:
        return SEVERE_COLD_SURCHARGE
    if air_temperature < FREEZING_TEMPERATURE:
        return COLD_SURCHARGE
    return Decimal("0")


def wind_surcharge(vehicle: VehicleClass, wind_speed: Decimal) -> Decimal:
    if vehicle == VehicleClass.BIKE and MIN_WIND_SURCHARGE_SPEED <= wind_speed <= MAX_BIKE_WIND_SPEED:
        return WIND_SURCHARGE
    return Decimal("0")


def phenomenon_surcharge(vehicle: VehicleClass, phenomenon: str) -> Decimal:
    """Snow or sleet takes priority over rain; categories never stack."""
    if vehicle not in _TWO_WHEELERS:
        return Decimal("0")
    if _matches_any(phenomenon, SNOW_OR_SLEET_PHENOMENA):
        return SNOW_OR_SLEET_SURCHARGE
    if _matches_any(phenomenon, RAIN_PHENOMENA):
        return RAIN_SURCHARGE
    return Decimal("0")


def quote(location: str, vehicle: VehicleClass, observation: Observation) -> FeeQuote:
    """Quote the delivery fee for a location and vehicle under an observation.

    Args:
        location: Location name present in the base fee table
        vehicle: Vehicle class
        observation: Latest observation for the location

    Returns:
        FeeAmount with the total fee, or ForbiddenUsage naming the rule that fired

    Raises:
        KeyError: If the location is not in the base fee table
    """
    forbidden = check_forbidden(vehicle, observation)
    if forbidden is not None:
        return forbidden

    base_fee = BASE_FEES[location][vehicle]
    extra_temperature = temperature_surcharge(vehicle, observation.air_temperature)
    extra_wind = wind_surcharge(vehicle, observation.wind_speed)
    extra_phenomenon = phenomenon_surcharge(vehicle, observation.phenomenon)

    logger.debug(
        f"Fee breakdown for {location}/{vehicle.value}: base={base_fee}, "
        f"temperature={extra_temperature}, wind={extra_wind}, phenomenon={extra_phenomenon}"
    )

    return FeeAmount(amount=base_fee + extra_temperature + extra_wind + extra_phenomenon)
