from dotenv import load_dotenv
load_dotenv()
import logging
import os
from contextlib import asynccontextmanager

from tortoise import Tortoise


logger = logging.getLogger("database")

db_url = os.getenv("DATABASE_URI")
if not db_url:
    raise ValueError("DATABASE_URI environment variable is not set.")

# Local development without aerich: create missing tables on startup
GENERATE_SCHEMAS = os.getenv("DB_GENERATE_SCHEMAS", "false").lower() in ("1", "true", "yes")


TORTOISE_CONFIG = {
    "connections": {
        "default": db_url
    },
    "apps": {
        "models": {
            "models": [
                "models.user",
                "models.professional_profile",
                "aerich.models",
            ],
            "default_connection": "default",
        }
    },
    "use_tz": True,
    "timezone": "UTC",
}


@asynccontextmanager
async def lifespan(_):
    await Tortoise.init(config=TORTOISE_CONFIG)
    if GENERATE_SCHEMAS:
        logger.info("Generating database schemas")
        await Tortoise.generate_schemas(safe=True)
    try:
        yield
    finally:
        await Tortoise.close_connections()
