"""Entry point script for the sessionguard service."""

import logging

from sessionguard import Settings, bootstrap_server
from migrate import migrate

from fastapi import FastAPI

# Configure database path, cookie and CSRF settings from environment
settings = Settings.from_env()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Run migrations
migrate(settings.database_url)

app = FastAPI()

bootstrap_server(app, settings)
