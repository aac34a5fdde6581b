import logging
import time

from fastapi import FastAPI
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from booking_engine import config
from booking_engine.api.routes.routes import router
from booking_engine.infrastructure.db.session import Base, engine

# Registers the tables on Base.metadata.
from booking_engine.infrastructure.db import models  # noqa: F401

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="Ticket Booking Engine")

app.include_router(router)
logger = logging.getLogger(__name__)


def _wait_for_db() -> None:
    # Handles the common case where the API starts before Postgres is ready.
    max_retries = config.DB_CONNECT_MAX_RETRIES
    retry_delay_seconds = config.DB_CONNECT_RETRY_DELAY

    for attempt in range(1, max_retries + 1):
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            logger.info("Database is reachable.")
            return
        except OperationalError:
            if attempt == max_retries:
                logger.exception(
                    "Database not reachable after %s attempts. Check DATABASE_URL and Postgres status.",
                    max_retries,
                )
                raise
            logger.warning(
                "Database not ready (attempt %s/%s). Retrying in %.1f seconds...",
                attempt,
                max_retries,
                retry_delay_seconds,
            )
            time.sleep(retry_delay_seconds)


@app.on_event("startup")
def on_startup() -> None:
    _wait_for_db()
    Base.metadata.create_all(bind=engine)
