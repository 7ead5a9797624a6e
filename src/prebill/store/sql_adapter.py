"""SQLAlchemy key-value store.

One ``prebill_kv`` table keyed by string. Every write runs in its own short
transaction, so the cart and packing entries of a session are durable
independently of each other.
"""

from datetime import UTC, datetime

import structlog
from sqlalchemy import Column, DateTime, MetaData, String, Table, Text, create_engine, delete, insert, select, update
from sqlalchemy.engine import Engine

from prebill.store.port import KeyValueStore

logger = structlog.get_logger(__name__)

metadata = MetaData()

kv_table = Table(
    "prebill_kv",
    metadata,
    Column("key", String(255), primary_key=True),
    Column("value", Text, nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)


class SqlKeyValueStore(KeyValueStore):
    def __init__(self, database_uri: str | None = None, engine: Engine | None = None):
        if engine is None:
            if database_uri is None:
                raise ValueError("SqlKeyValueStore needs a database_uri or an engine")
            engine = create_engine(database_uri)
        self.engine = engine

    def setup(self) -> None:
        """Create the store table if it does not exist."""
        metadata.create_all(self.engine)
        logger.info("Key-value table ready", table=kv_table.name, url=self.engine.url.render_as_string())

    def teardown(self) -> None:
        metadata.drop_all(self.engine)
        logger.info("Key-value table dropped", table=kv_table.name)

    def get(self, key: str) -> str | None:
        with self.engine.connect() as conn:
            return conn.execute(select(kv_table.c.value).where(kv_table.c.key == key)).scalar_one_or_none()

    def set(self, key: str, value: str) -> None:
        now = datetime.now(UTC)
        with self.engine.begin() as conn:
            result = conn.execute(
                update(kv_table).where(kv_table.c.key == key).values(value=value, updated_at=now)
            )
            if result.rowcount == 0:
                conn.execute(insert(kv_table).values(key=key, value=value, updated_at=now))

    def delete(self, key: str) -> None:
        with self.engine.begin() as conn:
            conn.execute(delete(kv_table).where(kv_table.c.key == key))

    def keys(self, prefix: str = "") -> list[str]:
        query = select(kv_table.c.key).order_by(kv_table.c.key)
        if prefix:
            query = query.where(kv_table.c.key.startswith(prefix, autoescape=True))
        with self.engine.connect() as conn:
            return list(conn.execute(query).scalars())

    def reset(self) -> None:
        with self.engine.begin() as conn:
            conn.execute(delete(kv_table))
