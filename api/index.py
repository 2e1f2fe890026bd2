import logging

from catalog.core.logging_config import configure_logging
from catalog.main import app

# Serverless cold starts skip the lifespan hook, so logging is set up here too
configure_logging()
logger = logging.getLogger(__name__)

logger.info("Serverless entrypoint initialized for %s", app.title)
