"""Append-only storage of weather observations, queried by latest per location."""

import asyncio
import logging
from collections import defaultdict
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Protocol, Sequence

import redis.asyncio as redis

from delivery_fee.config import REDIS_URL, OBSERVATION_KEY_PREFIX
from delivery_fee.weather.models import Observation

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Raised when the observation backend fails."""
    pass


class ObservationStore(Protocol):
    """Storage contract shared by the ingestion loop and the quote service."""

    async def append(self, observations: Sequence[Observation]) -> int:
        ...

    async def latest(self, location: str) -> Optional[Observation]:
        ...

    async def close(self) -> None:
        ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _clamp_to_storage_time(observation: Observation, stored_at: datetime) -> Observation:
    """Observations may not be stamped later than the moment they are stored."""
    if observation.timestamp > stored_at:
        logger.warning(
            f"Observation for {observation.location} stamped in the future "
            f"({observation.timestamp.isoformat()}), clamping to {stored_at.isoformat()}"
        )
        return observation.model_copy(update={"timestamp": stored_at})
    return observation


class InMemoryObservationStore:
    """Process-local store, for running without Redis."""

    def __init__(self, now: Callable[[], datetime] = _utcnow):
        self._records: Dict[str, List[Observation]] = defaultdict(list)
        self._write_lock = asyncio.Lock()
        self.now = now

    async def append(self, observations: Sequence[Observation]) -> int:
        """Append a batch of observations.

        Returns:
            Number of observations stored
        """
        stored_at = self.now()
        batch = [_clamp_to_storage_time(observation, stored_at) for observation in observations]

        async with self._write_lock:
            # Build the new lists first, then swap them in without awaiting
            updated = {}
            for observation in batch:
                records = updated.setdefault(observation.location, list(self._records[observation.location]))
                records.append(observation)
            self._records.update(updated)

        logger.info(f"Stored {len(batch)} observations in memory")
        return len(batch)

    async def latest(self, location: str) -> Optional[Observation]:
        records = self._records.get(location)
        if not records:
            return None
        # max() keeps the first of equal timestamps, so the earliest write wins a tie
        return max(records, key=lambda observation: observation.timestamp)

    async def close(self) -> None:
        pass


class RedisObservationStore:
    """Observation store backed by one Redis sorted set per location.

    Members are the JSON-encoded observations behind a zero-padded write
    sequence, scored by their epoch timestamp. Among equal timestamps the
    lowest sequence, i.e. the first write, is the latest.
    A batch is written in a single MULTI/EXEC transaction so readers never see
    half of a fetch cycle.
    """

    def __init__(
        self,
        redis_client: Optional[redis.Redis] = None,
        key_prefix: str = OBSERVATION_KEY_PREFIX,
        now: Callable[[], datetime] = _utcnow
    ):
        """Initialize the store.

        Args:
            redis_client: Optional Redis client. If None, creates new client.
            key_prefix: Prefix for observation keys
            now: Clock used as the storage time
        """
        self.redis_client = redis_client or redis.from_url(REDIS_URL)
        self.key_prefix = key_prefix
        self.now = now

    def _key(self, location: str) -> str:
        return f"{self.key_prefix}:observations:{location}"

    def _sequence_key(self) -> str:
        return f"{self.key_prefix}:observations:sequence"

    async def append(self, observations: Sequence[Observation]) -> int:
        """Append a batch of observations atomically.

        Returns:
            Number of observations stored

        Raises:
            StoreError: If Redis rejects the write
        """
        if not observations:
            return 0

        stored_at = self.now()
        batch = [_clamp_to_storage_time(observation, stored_at) for observation in observations]

        try:
            last_sequence = await self.redis_client.incrby(self._sequence_key(), len(batch))
            first_sequence = last_sequence - len(batch) + 1

            pipe = self.redis_client.pipeline(transaction=True)
            for sequence, observation in enumerate(batch, start=first_sequence):
                member = f"{sequence:020d}|{observation.model_dump_json()}"
                pipe.zadd(self._key(observation.location), {member: observation.timestamp.timestamp()})
            await pipe.execute()
        except redis.RedisError as e:
            logger.error(f"Failed to store observations: {e}")
            raise StoreError(f"Failed to store observations: {e}") from e

        logger.info(f"Stored {len(batch)} observations in Redis")
        return len(batch)

    async def latest(self, location: str) -> Optional[Observation]:
        """Return the observation with the greatest timestamp for a location.

        Raises:
            StoreError: If Redis cannot be read
        """
        key = self._key(location)
        try:
            top = await self.redis_client.zrange(key, 0, 0, desc=True, withscores=True)
            if not top:
                return None
            score = top[0][1]
            members = await self.redis_client.zrangebyscore(key, score, score, start=0, num=1)
        except redis.RedisError as e:
            logger.error(f"Failed to read latest observation for {location}: {e}")
            raise StoreError(f"Failed to read latest observation for {location}: {e}") from e

        _, payload = members[0].split(b"|", 1)
        return Observation.model_validate_json(payload)

    async def close(self) -> None:
        """Close Redis connection."""
        if self.redis_client:
            await self.redis_client.aclose()
