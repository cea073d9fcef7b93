"""Static reference data: monitored locations, base fees and phenomenon lists."""

from decimal import Decimal
from types import MappingProxyType
from typing import Dict, Mapping, Tuple

from delivery_fee.fees.models import Location, VehicleClass

LOCATIONS: Mapping[str, Location] = MappingProxyType({
    location.name: location
    for location in (
        Location(name="Tallinn", station_name="Tallinn-Harku"),
        Location(name="Tartu", station_name="Tartu-Tõravere"),
        Location(name="Pärnu", station_name="Pärnu"),
    )
})

STATION_TO_LOCATION: Mapping[str, Location] = MappingProxyType({
    location.station_name: location for location in LOCATIONS.values()
})


def _build_base_fee_table(
    raw: Dict[str, Dict[VehicleClass, str]]
) -> Mapping[str, Mapping[VehicleClass, Decimal]]:
    """Freeze the base fee table, checking it covers every location and vehicle.

    Raises:
        ValueError: If an entry is missing or negative
    """
    table = {}
    for name in LOCATIONS:
        fees = raw.get(name, {})
        missing = [vehicle.value for vehicle in VehicleClass if vehicle not in fees]
        if missing:
            raise ValueError(f"Base fee table for {name} is missing {', '.join(missing)}")

        frozen = {}
        for vehicle, value in fees.items():
            amount = Decimal(value)
            if amount < 0:
                raise ValueError(f"Negative base fee for {name}/{vehicle.value}: {amount}")
            frozen[vehicle] = amount
        table[name] = MappingProxyType(frozen)

    return MappingProxyType(table)


BASE_FEES = _build_base_fee_table({
    "Tallinn": {VehicleClass.CAR: "4.0", VehicleClass.SCOOTER: "3.5", VehicleClass.BIKE: "3.0"},
    "Tartu": {VehicleClass.CAR: "3.5", VehicleClass.SCOOTER: "3.0", VehicleClass.BIKE: "2.5"},
    "Pärnu": {VehicleClass.CAR: "3.0", VehicleClass.SCOOTER: "2.5", VehicleClass.BIKE: "2.0"},
})

# Phenomenon lists are matched by case-insensitive substring containment
SNOW_OR_SLEET_PHENOMENA: Tuple[str, ...] = (
    "Light snow shower", "Moderate snow shower", "Heavy snow shower",
    "Light sleet", "Moderate sleet",
    "Light snowfall", "Moderate snowfall", "Heavy snowfall",
    "Blowing snow", "Drifting snow",
    "Snow", "Snow shower", "Sleet", "Snowfall",
)

RAIN_PHENOMENA: Tuple[str, ...] = (
    "Light rain", "Moderate rain", "Heavy rain",
    "Light shower", "Moderate shower", "Heavy shower",
    "Rain", "Shower",
    "Light rain shower", "Moderate rain shower", "Heavy rain shower",
)

FORBIDDEN_PHENOMENA: Tuple[str, ...] = ("Glaze", "Hail", "Thunder", "Thunderstorm")

# Thresholds
MAX_BIKE_WIND_SPEED = Decimal("20.0")
MIN_WIND_SURCHARGE_SPEED = Decimal("10.0")
SEVERE_COLD_TEMPERATURE = Decimal("-10.0")
FREEZING_TEMPERATURE = Decimal("0.0")

# Surcharges in euros
SEVERE_COLD_SURCHARGE = Decimal("1.0")
COLD_SURCHARGE = Decimal("0.5")
WIND_SURCHARGE = Decimal("0.5")
SNOW_OR_SLEET_SURCHARGE = Decimal("1.0")
RAIN_SURCHARGE = Decimal("0.5")
