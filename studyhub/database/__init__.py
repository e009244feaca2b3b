import logging
from contextlib import asynccontextmanager
from pathlib import Path

import asyncpg
import redis.asyncio as redis
from fastapi import FastAPI
from yoyo import get_backend, read_migrations

from studyhub.utils.config import (
    db_connection_string, DB_POOL_MIN_SIZE, DB_POOL_MAX_SIZE,
    REDIS_PASSWORD, REDIS_USER, REDIS_HOST, REDIS_PORT, REDIS_DB,
    STORE_BACKEND, BLOB_BACKEND, DEV_MODE,
    S3_BUCKET_NAME, AWS_REGION, AWS_ACCESS_KEY_ID, AWS_SECRET_ACCESS_KEY,
    S3_ENDPOINT_URL, BLOB_PUBLIC_BASE_URL,
)
from studyhub.cache import InsertFeedService
from studyhub.storage import BlobStore, MemoryBlobStore, S3BlobStore
from studyhub.store import MemoryStore, PostgresStore, StoreAdapter
from studyhub.utils.logs import ErrorLogger
from studyhub.websocket import LiveViewManager
from studyhub.database.seed import seed_demo_group

logger = logging.getLogger(__name__)

MIGRATIONS_PATH = Path(__file__).parent / "migrations"


def run_migrations(database_url: str, auto_apply: bool = True) -> dict:
    """
    Run database migrations using yoyo.

    Args:
        database_url: PostgreSQL connection string
        auto_apply: If True, automatically apply pending migrations

    Returns:
        dict with migration status
    """
    backend = get_backend(database_url)
    migrations = read_migrations(str(MIGRATIONS_PATH))

    pending_list = list(backend.to_apply(migrations))
    applied_list = list(backend.to_rollback(migrations))

    result = {
        "pending_count": len(pending_list),
        "applied_count": len(applied_list),
        "pending": [m.id for m in pending_list],
        "newly_applied": []
    }

    if pending_list and auto_apply:
        logger.info(f"Applying {len(pending_list)} pending migration(s)...")
        for migration in pending_list:
            logger.info(f"  -> {migration.id}")

        try:
            with backend.lock():
                backend.apply_migrations(backend.to_apply(migrations))
            result["newly_applied"] = [m.id for m in pending_list]
            logger.info("Migrations applied successfully")
        except Exception as e:
            if "duplicate key" in str(e) or "UniqueViolation" in type(e).__name__:
                logger.info("Migrations already applied by another worker")
            else:
                raise
    elif pending_list:
        logger.warning(f"{len(pending_list)} pending migrations not applied (auto_apply=False)")
    else:
        logger.info("Database schema is up to date")

    backend.connection.close()
    return result


def redis_url() -> str:
    if REDIS_USER and REDIS_PASSWORD:
        return f"redis://{REDIS_USER}:{REDIS_PASSWORD}@{REDIS_HOST}:{REDIS_PORT}/{REDIS_DB}"
    if REDIS_PASSWORD:
        return f"redis://:{REDIS_PASSWORD}@{REDIS_HOST}:{REDIS_PORT}/{REDIS_DB}"
    return f"redis://{REDIS_HOST}:{REDIS_PORT}/{REDIS_DB}"


def build_blob_store() -> BlobStore:
    if BLOB_BACKEND == "memory":
        return MemoryBlobStore()
    return S3BlobStore(
        bucket_name=S3_BUCKET_NAME,
        region=AWS_REGION,
        access_key_id=AWS_ACCESS_KEY_ID or None,
        secret_access_key=AWS_SECRET_ACCESS_KEY or None,
        endpoint_url=S3_ENDPOINT_URL or None,
        public_base_url=BLOB_PUBLIC_BASE_URL or None,
        logger=ErrorLogger("storage"),
    )


async def _open_postgres_store(app: FastAPI) -> StoreAdapter:
    logger.info("Running database migrations...")
    try:
        migration_result = run_migrations(db_connection_string, auto_apply=True)
        if migration_result["newly_applied"]:
            logger.info(f"Applied migrations: {migration_result['newly_applied']}")
    except Exception as e:
        logger.error(f"Migration failed: {e}")
        raise

    db_pool = await asyncpg.create_pool(
        db_connection_string,
        min_size=DB_POOL_MIN_SIZE, max_size=DB_POOL_MAX_SIZE,
    )

    app.state.redis = redis.from_url(
        redis_url(),
        encoding="utf-8",
        decode_responses=True,
        max_connections=20
    )
    feed = InsertFeedService(app.state.redis, ErrorLogger("feed"))
    return PostgresStore(db_pool, feed, ErrorLogger("store"))


@asynccontextmanager
async def lifespan(app: FastAPI):
    """FastAPI lifespan manager for the store, blob store and live views."""

    app.state.redis = None
    if STORE_BACKEND == "memory":
        logger.info("Using in-memory store")
        store: StoreAdapter = MemoryStore()
    else:
        store = await _open_postgres_store(app)

    app.state.store = store
    app.state.blob_store = build_blob_store()
    app.state.live_manager = LiveViewManager()

    if DEV_MODE:
        seed_result = await seed_demo_group(store)
        if not seed_result.get("skipped"):
            logger.info(f"Dev seeding: {seed_result}")

    yield

    logger.info("Shutting down server...")

    await store.close()
    if app.state.redis is not None:
        await app.state.redis.aclose()

    logger.info("Study group server shutdown complete")
