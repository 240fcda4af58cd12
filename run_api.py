"""
Web API runner

Starts the FastAPI server with uvicorn.
"""
import signal
import sys
import logging
import uvicorn
from dotenv import load_dotenv

# Load .env file before settings are read
load_dotenv()

from tasklane.config import settings  # noqa: E402

logger = logging.getLogger("tasklane.runner")


def signal_handler(signum, frame):
    """Handle termination signals"""
    logger.info("Received signal %s, shutting down...", signum)
    sys.exit(0)


def main():
    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)

    logger.info("Starting Tasklane API on port %s", settings.api.port)
    logger.info("Database: %s", settings.database.path)
    logger.info("Default task duration: %sms", settings.tasks.default_duration_ms)

    uvicorn.run(
        "tasklane.api.app:app",
        host=settings.api.host,
        port=settings.api.port,
        log_level="info"
    )


if __name__ == "__main__":
    main()
