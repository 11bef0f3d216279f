import logging
from typing import Any, Dict, Optional, Sequence

from redis.exceptions import RedisError

from ..errors import StoreUnavailable, TableError
from ..reliability import BackoffPolicy, SystemClock

ACTIVE = "ACTIVE"
META_SUFFIX = "__table__"


class TableAdmin:
    """
    Creates and deletes session tables.

    A table is a Redis key namespace. Its description lives in the hash
    ``<table>:__table__``; items are ``<table>:<key>`` hashes and secondary
    index sets are ``<table>:index:<attr>:<value>``. Capacities are recorded
    in the description only, Redis has no provisioned throughput.
    """

    def __init__(
        self,
        redis_client,
        log: logging.Logger,
        clock=None,
        poll_policy: Optional[BackoffPolicy] = None,
    ):
        """
        Initialize table admin.

        Args:
            redis_client: Async Redis client
            log: Logger for progress messages
            clock: Clock for poll sleeps
            poll_policy: Poll schedule while waiting for a table to become ready or gone
        """
        self.redis = redis_client
        self.logger = log
        self.clock = clock or SystemClock()
        self.poll_policy = poll_policy or BackoffPolicy(
            max_attempts=30, initial_delay=0.2, multiplier=1.5, max_delay=10.0, max_wait=60.0
        )

    @staticmethod
    def meta_key(table_name: str) -> str:
        return f"{table_name}:{META_SUFFIX}"

    async def create_table(
        self,
        table_name: str,
        key_attribute: str = "session_id",
        index_names: Sequence[str] = (),
        read_capacity: int = 10,
        write_capacity: int = 5,
        wait: bool = True,
    ) -> bool:
        """
        Create a session table.

        Args:
            table_name: Table name (key namespace)
            key_attribute: Attribute holding each item's key
            index_names: Attributes with secondary indexes
            read_capacity: Recorded read capacity
            write_capacity: Recorded write capacity
            wait: Block until the table reports ACTIVE

        Returns:
            True if created, False if it already existed
        """
        description = {
            "table_name": table_name,
            "key_attribute": key_attribute,
            "indexes": ",".join(n.strip() for n in index_names if n.strip()),
            "read_capacity": str(read_capacity),
            "write_capacity": str(write_capacity),
            "status": ACTIVE,
        }
        meta = self.meta_key(table_name)
        try:
            created = await self.redis.hsetnx(meta, "key_attribute", key_attribute)
            if not created:
                self.logger.info(f"Table {table_name} already exists, skipping creation.")
                return False
            await self.redis.hset(meta, mapping=description)
        except RedisError as e:
            raise StoreUnavailable(f"Could not create table {table_name}: {e}") from e

        self.logger.info(f"Table {table_name} created, waiting for activation...")
        if wait:
            await self._wait_for(table_name, present=True)
        self.logger.info(f"Table {table_name} is now ready to use.")
        return True

    async def describe_table(self, table_name: str) -> Optional[Dict[str, Any]]:
        """Return the table description, or None when the table does not exist."""
        try:
            description = await self.redis.hgetall(self.meta_key(table_name))
        except RedisError as e:
            raise StoreUnavailable(f"Could not describe table {table_name}: {e}") from e
        if not description:
            return None
        description = dict(description)
        indexes = description.get("indexes") or ""
        description["indexes"] = [name for name in indexes.split(",") if name]
        return description

    async def delete_table(self, table_name: str, wait: bool = True, batch_size: int = 500) -> int:
        """
        Delete a table with all of its items and index sets.

        Returns:
            Number of keys removed, excluding the table description
        """
        meta = self.meta_key(table_name)
        removed = 0
        batch = []
        try:
            async for key in self.redis.scan_iter(match=f"{table_name}:*", count=batch_size):
                if key == meta:
                    continue
                batch.append(key)
                if len(batch) >= batch_size:
                    removed += await self.redis.delete(*batch)
                    batch = []
            if batch:
                removed += await self.redis.delete(*batch)
            await self.redis.delete(meta)
        except RedisError as e:
            raise StoreUnavailable(f"Could not delete table {table_name}: {e}") from e

        self.logger.info(f"Table {table_name} deleted ({removed} keys removed).")
        if wait:
            await self._wait_for(table_name, present=False)
        return removed

    async def _wait_for(self, table_name: str, present: bool) -> None:
        """Poll until the table is ACTIVE (present=True) or gone (present=False)."""
        started = self.clock.monotonic()
        attempt = 0
        while True:
            attempt += 1
            description = await self.describe_table(table_name)
            if present and description and description.get("status") == ACTIVE:
                return
            if not present and description is None:
                return

            delay = self.poll_policy.next_delay(attempt, self.clock.monotonic() - started)
            if delay is None:
                state = "ready" if present else "deleted"
                raise TableError(f"Table {table_name} was not {state} after {attempt} checks")
            await self.clock.sleep(delay)
