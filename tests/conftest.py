from datetime import datetime, timezone
from decimal import Decimal

from delivery_fee.weather.models import Observation

SAMPLE_FEED = """<?xml version="1.0" encoding="UTF-8"?>
<observations timestamp="1681560000">
  <station>
    <name>Tallinn-Harku</name>
    <wmocode>26038</wmocode>
    <longitude>24.602778</longitude>
    <latitude>59.398889</latitude>
    <airtemperature>5.0</airtemperature>
    <windspeed>3.0</windspeed>
    <phenomenon>Clear</phenomenon>
  </station>
  <station>
    <name>Tartu-Tõravere</name>
    <wmocode>26242</wmocode>
    <longitude>26.467222</longitude>
    <latitude>58.264722</latitude>
    <airtemperature>-2.1</airtemperature>
    <windspeed>4.7</windspeed>
    <phenomenon>Light snow shower</phenomenon>
  </station>
  <station>
    <name>Pärnu</name>
    <wmocode>41803</wmocode>
    <longitude>24.502778</longitude>
    <latitude>58.429722</latitude>
    <airtemperature>3.5</airtemperature>
    <windspeed>5.2</windspeed>
    <phenomenon>Light rain</phenomenon>
  </station>
  <station>
    <name>Kuressaare</name>
    <wmocode>26231</wmocode>
    <longitude>22.506944</longitude>
    <latitude>58.230278</latitude>
    <airtemperature>4.2</airtemperature>
    <windspeed>6.1</windspeed>
    <phenomenon>Moderate rain</phenomenon>
  </station>
</observations>
"""

# 1681560000 == 2023-04-15T12:00:00Z
SAMPLE_FEED_TIME = datetime(2023, 4, 15, 12, 0, tzinfo=timezone.utc)

STATIONS = {"Tallinn": "Tallinn-Harku", "Tartu": "Tartu-Tõravere", "Pärnu": "Pärnu"}


def make_observation(
    location: str = "Tallinn",
    air_temperature: str = "5.0",
    wind_speed: str = "3.0",
    phenomenon: str = "",
    timestamp: datetime = SAMPLE_FEED_TIME,
) -> Observation:
    return Observation(
        station_name=STATIONS[location],
        wmo_code="",
        air_temperature=Decimal(air_temperature),
        wind_speed=Decimal(wind_speed),
        phenomenon=phenomenon,
        timestamp=timestamp,
        location=location,
    )
