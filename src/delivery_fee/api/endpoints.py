"""API endpoints for the delivery fee service."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi_cache import FastAPICache
from fastapi_cache.decorator import cache

from delivery_fee.config import CACHE_EXPIRE_SECONDS, FETCH_CRON, WEATHER_FEED_URL
from delivery_fee.fees.models import (
    DataUnavailable, ErrorResponse, FeeResponse, ForbiddenUsage, InvalidInput, VehicleClass
)
from delivery_fee.fees.rules import BASE_FEES, LOCATIONS
from delivery_fee.fees.service import QuoteService
from delivery_fee.weather.models import ObservationResponse
from delivery_fee.weather.store import StoreError

logger = logging.getLogger(__name__)

# Create router
router = APIRouter(prefix="/delivery-fee", tags=["delivery-fee"])

FEE_CACHE_NAMESPACE = "delivery-fee"


def get_quote_service(request: Request) -> QuoteService:
    """Dependency to get the quote service created at startup."""
    return request.app.state.quote_service


async def invalidate_fee_cache() -> None:
    """Drop cached fee quotes so the next request sees the newest observation."""
    cleared = await FastAPICache.clear(namespace=FEE_CACHE_NAMESPACE)
    logger.info(f"Cleared {cleared} cached fee quotes")


@router.get(
    "",
    response_model=FeeResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid city or vehicle type"},
        403: {"model": ErrorResponse, "description": "Vehicle usage forbidden by weather"},
        500: {"model": ErrorResponse, "description": "Weather data unavailable"},
    }
)
@cache(expire=CACHE_EXPIRE_SECONDS, namespace=FEE_CACHE_NAMESPACE)
async def get_delivery_fee(
    city: str = Query(..., description="Delivery city (Tallinn, Tartu, Pärnu)"),
    vehicle_type: str = Query(..., description="Vehicle type (Car, Scooter, Bike)"),
    quote_service: QuoteService = Depends(get_quote_service)
) -> FeeResponse:
    """Calculate the delivery fee for a city and vehicle type.

    Args:
        city: Delivery city
        vehicle_type: Courier vehicle type

    Returns:
        FeeResponse with the total fee in euros

    Raises:
        HTTPException: 400 for invalid input, 403 if the vehicle is forbidden,
            500 if weather data is missing or the store fails
    """
    logger.info(f"Received delivery fee calculation request for city: {city}, vehicle type: {vehicle_type}")

    try:
        result = await quote_service.quote_fee(city, vehicle_type)
    except StoreError as e:
        logger.error(f"Observation store error: {e}")
        raise HTTPException(status_code=500, detail="Weather data temporarily unavailable")

    if isinstance(result, InvalidInput):
        logger.warning(f"Invalid input parameters: {result.message}")
        raise HTTPException(status_code=400, detail=result.message)

    if isinstance(result, ForbiddenUsage):
        logger.warning(f"Vehicle usage forbidden ({result.reason.value}: {result.detail})")
        raise HTTPException(status_code=403, detail=result.message)

    if isinstance(result, DataUnavailable):
        logger.error(f"Operation error: {result.message}")
        raise HTTPException(status_code=500, detail=result.message)

    return FeeResponse(city=city, vehicle_type=VehicleClass(vehicle_type), fee=float(result.amount))


@router.get(
    "/observations/{city}",
    response_model=ObservationResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Unknown city"},
        404: {"model": ErrorResponse, "description": "No observation stored yet"},
    }
)
async def get_latest_observation(
    city: str,
    quote_service: QuoteService = Depends(get_quote_service)
) -> ObservationResponse:
    """Get the latest stored weather observation for a city."""
    try:
        observation = await quote_service.latest_observation(city)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StoreError as e:
        logger.error(f"Observation store error: {e}")
        raise HTTPException(status_code=500, detail="Weather data temporarily unavailable")

    if observation is None:
        raise HTTPException(status_code=404, detail=f"No weather data available for city: {city}")

    return ObservationResponse.from_observation(observation)


@router.get("/health")
async def health_check() -> dict:
    """Health check endpoint.

    Returns:
        Health status response
    """
    return {"status": "healthy", "service": "delivery-fee"}


@router.get("/info")
async def get_service_info() -> dict:
    """Get service information.

    Returns:
        Service information including base fees and the ingestion schedule
    """
    return {
        "service": "Delivery Fee Service",
        "version": "0.1.0",
        "cities": {
            name: {
                "station": location.station_name,
                "base_fees": {vehicle.value: float(fee) for vehicle, fee in BASE_FEES[name].items()},
            }
            for name, location in LOCATIONS.items()
        },
        "vehicle_types": [vehicle.value for vehicle in VehicleClass],
        "fetch_schedule": FETCH_CRON,
        "data_source": WEATHER_FEED_URL
    }
