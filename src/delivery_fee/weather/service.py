"""Observation fetcher: turns the feed document into Observation records."""

import logging
import xml.etree.ElementTree as ET
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Callable, List, Mapping, Optional, Union

import httpx
from pydantic import ValidationError

from delivery_fee.fees.models import Location
from delivery_fee.fees.rules import STATION_TO_LOCATION
from delivery_fee.weather.client import WeatherFeedClient
from delivery_fee.weather.models import Observation

logger = logging.getLogger(__name__)


class IngestionError(Exception):
    """Raised when the observation feed cannot be fetched or parsed."""
    pass


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ObservationFetcher:
    """Fetches the observation feed and keeps the monitored stations."""

    def __init__(
        self,
        client: Optional[WeatherFeedClient] = None,
        stations: Mapping[str, Location] = STATION_TO_LOCATION,
        now: Callable[[], datetime] = _utcnow
    ):
        """Initialize the fetcher.

        Args:
            client: Feed client instance (creates default if None)
            stations: Station name to location mapping of monitored stations
            now: Clock used when the feed has no usable timestamp
        """
        self.client = client or WeatherFeedClient()
        self.stations = stations
        self.now = now

    async def fetch(self) -> List[Observation]:
        """Fetch and parse one batch of observations.

        Returns:
            One Observation per monitored station present in the feed

        Raises:
            IngestionError: If the feed request fails or the document is malformed
        """
        try:
            document = await self.client.get_observations_document()
        except httpx.HTTPError as e:
            raise IngestionError(f"Failed to fetch observation feed: {e}") from e

        observations = self.parse(document)
        logger.info(f"Parsed {len(observations)} observations for monitored stations")
        return observations

    def parse(self, document: Union[str, bytes]) -> List[Observation]:
        """Parse the feed document.

        Args:
            document: Raw XML of the feed

        Returns:
            Observations for the monitored stations, all stamped with the batch timestamp

        Raises:
            IngestionError: If the document is not well-formed XML
        """
        try:
            root = ET.fromstring(document)
        except ET.ParseError as e:
            logger.error(f"Malformed observation document: {e}")
            raise IngestionError(f"Malformed observation document: {e}") from e

        if root.tag != "observations":
            logger.warning(f"Unexpected root element <{root.tag}> in observation document")

        timestamp = self._parse_timestamp(root.get("timestamp"))

        observations = []
        station_count = 0
        for station in root.iter("station"):
            station_count += 1
            name = (station.findtext("name") or "").strip()
            location = self.stations.get(name)
            if location is None:
                continue

            try:
                observations.append(Observation(
                    station_name=name,
                    wmo_code=(station.findtext("wmocode") or "").strip(),
                    air_temperature=self._parse_decimal(station.findtext("airtemperature"), "airtemperature", name),
                    wind_speed=self._parse_wind_speed(station.findtext("windspeed"), name),
                    phenomenon=(station.findtext("phenomenon") or "").strip(),
                    timestamp=timestamp,
                    location=location.name,
                ))
            except ValidationError as e:
                raise IngestionError(f"Invalid observation for station {name}: {e}") from e

        if station_count == 0:
            logger.warning("Observation document contains no stations")

        return observations

    def _parse_timestamp(self, raw: Optional[str]) -> datetime:
        """Parse the batch timestamp (epoch seconds or ISO-8601), falling back to now."""
        if raw:
            raw = raw.strip()
            try:
                return datetime.fromtimestamp(int(raw), tz=timezone.utc)
            except (ValueError, OverflowError, OSError):
                pass
            try:
                parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
                if parsed.tzinfo is None:
                    parsed = parsed.replace(tzinfo=timezone.utc)
                return parsed.astimezone(timezone.utc)
            except ValueError:
                pass

        logger.warning(f"Missing or malformed feed timestamp {raw!r}, using current time")
        return self.now()

    @staticmethod
    def _parse_decimal(raw: Optional[str], field: str, station: str) -> Decimal:
        """Parse a numeric field, defaulting to zero when missing or unparsable."""
        if raw is None or not raw.strip():
            return Decimal("0")
        try:
            value = Decimal(raw.strip())
        except InvalidOperation:
            logger.warning(f"Unparsable {field} {raw!r} for station {station}, defaulting to 0")
            return Decimal("0")
        if not value.is_finite():
            logger.warning(f"Non-finite {field} {raw!r} for station {station}, defaulting to 0")
            return Decimal("0")
        return value

    def _parse_wind_speed(self, raw: Optional[str], station: str) -> Decimal:
        value = self._parse_decimal(raw, "windspeed", station)
        if value < 0:
            logger.warning(f"Negative windspeed {raw!r} for station {station}, defaulting to 0")
            return Decimal("0")
        return value

    async def aclose(self):
        """Close the feed client."""
        if self.client:
            try:
                await self.client.aclose()
            except Exception as e:
                logger.error(f"Error closing feed client: {e}")

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.aclose()
