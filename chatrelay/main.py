"""
ChatRelay Server - Main Application Entry Point

Configures logging before anything else logs, builds the FastAPI app and,
when run as a script, serves it with uvicorn.
"""

import uvicorn

from .app.factory import create_app
from .config import get_config
from .structured_logging.enhanced_logging_config import get_logger, setup_enhanced_logging

# Early logging setup - must happen before the app logs anything
config = get_config()
setup_enhanced_logging(config.to_legacy_dict())

logger = get_logger(__name__)
logger.info("Logging setup completed", environment=config.logging.environment)

app = create_app(config)


def main() -> None:
    """Run the server with uvicorn."""
    logger.info("Starting uvicorn", host=config.server.host, port=config.server.port)
    uvicorn.run(app, host=config.server.host, port=config.server.port, log_config=None)


if __name__ == "__main__":
    main()
