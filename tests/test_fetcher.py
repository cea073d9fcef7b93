import logging
from datetime import datetime, timezone
from decimal import Decimal

import httpx
import pytest

from delivery_fee.weather.client import WeatherFeedClient
from delivery_fee.weather.service import IngestionError, ObservationFetcher

from conftest import SAMPLE_FEED, SAMPLE_FEED_TIME

FIXED_NOW = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


def _fetcher(handler) -> ObservationFetcher:
    client = WeatherFeedClient(feed_url="https://feed.test/observations.php", transport=httpx.MockTransport(handler))
    return ObservationFetcher(client=client, now=lambda: FIXED_NOW)


def _station(name: str, temperature: str = "1.0", wind: str = "2.0", phenomenon: str = "Clear") -> str:
    return (
        f"<station><name>{name}</name><wmocode>1</wmocode>"
        f"<airtemperature>{temperature}</airtemperature><windspeed>{wind}</windspeed>"
        f"<phenomenon>{phenomenon}</phenomenon></station>"
    )


@pytest.mark.asyncio
async def test_fetch_keeps_only_monitored_stations() -> None:
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, content=SAMPLE_FEED.encode("utf-8"))

    async with _fetcher(handler) as fetcher:
        observations = await fetcher.fetch()

    assert len(requests) == 1
    assert requests[0].headers["User-Agent"].startswith("DeliveryFeeService")
    assert sorted(o.location for o in observations) == ["Pärnu", "Tallinn", "Tartu"]

    tartu = next(o for o in observations if o.location == "Tartu")
    assert tartu.station_name == "Tartu-Tõravere"
    assert tartu.wmo_code == "26242"
    assert tartu.air_temperature == Decimal("-2.1")
    assert tartu.wind_speed == Decimal("4.7")
    assert tartu.phenomenon == "Light snow shower"
    assert all(o.timestamp == SAMPLE_FEED_TIME for o in observations)


@pytest.mark.asyncio
async def test_fetch_wraps_http_errors() -> None:
    async with _fetcher(lambda request: httpx.Response(503, text="maintenance")) as fetcher:
        with pytest.raises(IngestionError):
            await fetcher.fetch()


@pytest.mark.asyncio
async def test_fetch_wraps_transport_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with _fetcher(handler) as fetcher:
        with pytest.raises(IngestionError):
            await fetcher.fetch()


@pytest.mark.asyncio
async def test_fetch_rejects_malformed_document() -> None:
    async with _fetcher(lambda request: httpx.Response(200, text="<observations><station>")) as fetcher:
        with pytest.raises(IngestionError):
            await fetcher.fetch()


class TestParse:
    """Tolerant parsing of individual fields."""

    @pytest.fixture
    def fetcher(self) -> ObservationFetcher:
        return ObservationFetcher(client=WeatherFeedClient(), now=lambda: FIXED_NOW)

    def test_non_numeric_temperature_defaults_to_zero(self, fetcher: ObservationFetcher) -> None:
        document = f'<observations timestamp="1681560000">{_station("Pärnu", temperature="n/a")}</observations>'

        observations = fetcher.parse(document)

        assert len(observations) == 1
        assert observations[0].air_temperature == Decimal("0")
        assert observations[0].wind_speed == Decimal("2.0")

    def test_missing_fields_get_defaults(self, fetcher: ObservationFetcher) -> None:
        document = '<observations timestamp="1681560000"><station><name>Tallinn-Harku</name></station></observations>'

        observation = fetcher.parse(document)[0]

        assert observation.air_temperature == Decimal("0")
        assert observation.wind_speed == Decimal("0")
        assert observation.phenomenon == ""
        assert observation.wmo_code == ""

    def test_empty_elements_get_defaults(self, fetcher: ObservationFetcher) -> None:
        document = f'<observations timestamp="1681560000">{_station("Tallinn-Harku", temperature="", wind="", phenomenon="")}</observations>'

        observation = fetcher.parse(document)[0]

        assert observation.air_temperature == Decimal("0")
        assert observation.wind_speed == Decimal("0")
        assert observation.phenomenon == ""

    def test_one_bad_station_does_not_drop_the_batch(self, fetcher: ObservationFetcher) -> None:
        document = (
            '<observations timestamp="1681560000">'
            + _station("Tallinn-Harku", wind="fast")
            + _station("Tartu-Tõravere", temperature="-3.4")
            + "</observations>"
        )

        observations = fetcher.parse(document)

        assert [o.location for o in observations] == ["Tallinn", "Tartu"]
        assert observations[0].wind_speed == Decimal("0")
        assert observations[1].air_temperature == Decimal("-3.4")

    @pytest.mark.parametrize("attribute", ['', 'timestamp="yesterday"', 'timestamp=""'])
    def test_bad_batch_timestamp_falls_back_to_now(self, fetcher: ObservationFetcher, attribute: str) -> None:
        document = f"<observations {attribute}>{_station('Pärnu')}</observations>"

        observations = fetcher.parse(document)

        assert observations[0].timestamp == FIXED_NOW

    def test_iso_batch_timestamp(self, fetcher: ObservationFetcher) -> None:
        document = f'<observations timestamp="2023-04-15T12:00:00Z">{_station("Pärnu")}</observations>'

        assert fetcher.parse(document)[0].timestamp == SAMPLE_FEED_TIME

    def test_document_without_monitored_stations(self, fetcher: ObservationFetcher) -> None:
        document = f'<observations timestamp="1681560000">{_station("Kuressaare")}</observations>'

        assert fetcher.parse(document) == []

    def test_latin1_document_from_bytes(self, fetcher: ObservationFetcher) -> None:
        document = (
            '<?xml version="1.0" encoding="ISO-8859-1"?>'
            f'<observations timestamp="1681560000">{_station("Tartu-Tõravere")}</observations>'
        ).encode("iso-8859-1")

        assert [o.location for o in fetcher.parse(document)] == ["Tartu"]

    def test_foreign_document_is_flagged(self, fetcher: ObservationFetcher, caplog) -> None:
        with caplog.at_level(logging.WARNING, logger="delivery_fee.weather.service"):
            assert fetcher.parse("<html><body>Service under maintenance</body></html>") == []

        assert "Unexpected root element <html>" in caplog.text
        assert "contains no stations" in caplog.text

    def test_empty_feed_is_flagged(self, fetcher: ObservationFetcher, caplog) -> None:
        with caplog.at_level(logging.WARNING, logger="delivery_fee.weather.service"):
            assert fetcher.parse('<observations timestamp="1681560000"></observations>') == []

        assert "contains no stations" in caplog.text
        assert "Unexpected root element" not in caplog.text

    def test_feed_with_stations_is_not_flagged(self, fetcher: ObservationFetcher, caplog) -> None:
        with caplog.at_level(logging.WARNING, logger="delivery_fee.weather.service"):
            fetcher.parse(SAMPLE_FEED)

        assert caplog.records == []
