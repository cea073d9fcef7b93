"""Quote service: validates the request and runs the fee engine on stored weather."""

import logging
from typing import Mapping, Optional

from delivery_fee.fees import engine
from delivery_fee.fees.models import (
    DataUnavailable, FeeAmount, InvalidInput, Location, QuoteResult, VehicleClass
)
from delivery_fee.fees.rules import LOCATIONS
from delivery_fee.weather.models import Observation
from delivery_fee.weather.store import ObservationStore

logger = logging.getLogger(__name__)


class QuoteService:
    """Service for quoting delivery fees from the latest stored observation."""

    def __init__(self, store: ObservationStore, locations: Mapping[str, Location] = LOCATIONS):
        """Initialize the quote service.

        Args:
            store: Observation store to read the latest weather from
            locations: Monitored locations by name
        """
        self.store = store
        self.locations = locations

    def _invalid_city(self, city: str) -> InvalidInput:
        valid = ", ".join(self.locations)
        return InvalidInput(message=f"Invalid city: {city}. Valid cities are: {valid}")

    async def quote_fee(self, city: str, vehicle_type: str) -> QuoteResult:
        """Quote the delivery fee for a city and vehicle type.

        Args:
            city: City name, e.g. "Tallinn"
            vehicle_type: Vehicle type name, e.g. "Bike"

        Returns:
            FeeAmount, ForbiddenUsage, InvalidInput or DataUnavailable

        Raises:
            StoreError: If the observation store cannot be read
        """
        logger.info(f"Calculating delivery fee for city: {city}, vehicle type: {vehicle_type}")

        if city not in self.locations:
            return self._invalid_city(city)

        try:
            vehicle = VehicleClass(vehicle_type)
        except ValueError:
            valid = ", ".join(v.value for v in VehicleClass)
            return InvalidInput(message=f"Invalid vehicle type: {vehicle_type}. Valid vehicle types are: {valid}")

        observation = await self.store.latest(city)
        if observation is None:
            logger.warning(f"No weather data available for city: {city}")
            return DataUnavailable(location=city, message=f"No weather data available for city: {city}")

        logger.info(
            f"Latest weather data for {city}: Temperature: {observation.air_temperature}°C, "
            f"Wind Speed: {observation.wind_speed} m/s, Phenomenon: {observation.phenomenon}"
        )

        result = engine.quote(city, vehicle, observation)
        if isinstance(result, FeeAmount):
            logger.info(f"Total delivery fee: {result.amount} €")
        return result

    async def latest_observation(self, city: str) -> Optional[Observation]:
        """Return the latest stored observation for a city.

        Raises:
            ValueError: If the city is not monitored
        """
        if city not in self.locations:
            raise ValueError(self._invalid_city(city).message)
        return await self.store.latest(city)
