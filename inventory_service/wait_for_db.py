"""Block until the configured store accepts connections."""
import time
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from inventory_service.core.logging_config import get_logger
from inventory_service.core_settings import get_settings
from inventory_service.infrastructure.db import Database

logger = get_logger(__name__)

def wait(max_attempts: int = 30, delay: float = 1.0, database: Optional[Database] = None) -> int:
    database = database or Database.from_settings(get_settings())
    for attempt in range(1, max_attempts + 1):
        try:
            database.ping()
            logger.info(f"Database ready after {attempt} attempt(s).")
            return attempt
        except SQLAlchemyError as e:
            logger.warning(f"DB not ready (attempt {attempt}): {e}")
            if attempt < max_attempts:
                time.sleep(delay)
    raise SystemExit("Database not ready after max attempts")

if __name__ == "__main__":
    wait()
