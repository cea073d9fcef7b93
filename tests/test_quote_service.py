from decimal import Decimal

import pytest

from delivery_fee.fees.models import (
    DataUnavailable, FeeAmount, ForbiddenReason, ForbiddenUsage, InvalidInput
)
from delivery_fee.fees.service import QuoteService
from delivery_fee.weather.store import InMemoryObservationStore

from conftest import make_observation


@pytest.fixture
def store() -> InMemoryObservationStore:
    return InMemoryObservationStore()


@pytest.fixture
def service(store) -> QuoteService:
    return QuoteService(store)


@pytest.mark.asyncio
async def test_quote_tartu_bike_in_light_snow(store, service) -> None:
    await store.append([make_observation("Tartu", air_temperature="-2.1", wind_speed="4.7", phenomenon="Light snow shower")])

    assert await service.quote_fee("Tartu", "Bike") == FeeAmount(amount=Decimal("4.0"))


@pytest.mark.asyncio
async def test_quote_uses_latest_observation(store, service) -> None:
    await store.append([make_observation("Tallinn", wind_speed="21.0")])
    assert isinstance(await service.quote_fee("Tallinn", "Bike"), ForbiddenUsage)

    calmer = make_observation("Tallinn", wind_speed="5.0", timestamp=make_observation().timestamp.replace(hour=13))
    await store.append([calmer])
    assert await service.quote_fee("Tallinn", "Bike") == FeeAmount(amount=Decimal("3.0"))


@pytest.mark.asyncio
async def test_forbidden_result_names_rule(store, service) -> None:
    await store.append([make_observation("Pärnu", phenomenon="Thunder")])

    result = await service.quote_fee("Pärnu", "Scooter")

    assert isinstance(result, ForbiddenUsage)
    assert result.reason == ForbiddenReason.PHENOMENON


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "city,vehicle_type,fragment",
    [
        ("Narva", "Car", "Invalid city"),
        ("tallinn", "Car", "Invalid city"),
        ("", "Bike", "Invalid city"),
        ("Tartu", "Truck", "Invalid vehicle type"),
        ("Tartu", "bike", "Invalid vehicle type"),
    ],
)
async def test_unknown_city_or_vehicle_is_invalid_input(service, city, vehicle_type, fragment) -> None:
    result = await service.quote_fee(city, vehicle_type)

    assert isinstance(result, InvalidInput)
    assert fragment in result.message


@pytest.mark.asyncio
async def test_invalid_input_checked_before_data_lookup(service) -> None:
    # Store is empty, yet a bad city must not be reported as missing data
    assert isinstance(await service.quote_fee("Narva", "Bike"), InvalidInput)


@pytest.mark.asyncio
async def test_no_observation_yet_is_data_unavailable(service) -> None:
    result = await service.quote_fee("Tallinn", "Car")

    assert isinstance(result, DataUnavailable)
    assert result.location == "Tallinn"


@pytest.mark.asyncio
async def test_latest_observation(store, service) -> None:
    observation = make_observation("Tartu")
    await store.append([observation])

    assert await service.latest_observation("Tartu") == observation
    assert await service.latest_observation("Pärnu") is None
    with pytest.raises(ValueError):
        await service.latest_observation("Narva")
