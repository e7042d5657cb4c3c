import logging
import os
from dotenv import load_dotenv
from dateutil import tz

load_dotenv()

MONGODB_URL = os.getenv("MONGODB_URL", "mongodb://localhost:27017/minor_compliance")
COMPLIANCE_TIMEZONE = os.getenv("COMPLIANCE_TIMEZONE", "America/New_York")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]


def validate_config() -> None:
    problems = []
    if tz.gettz(COMPLIANCE_TIMEZONE) is None:
        problems.append(f"COMPLIANCE_TIMEZONE={COMPLIANCE_TIMEZONE!r} is not a known timezone")
    if logging.getLevelName(LOG_LEVEL.upper()) not in (
        logging.DEBUG, logging.INFO, logging.WARNING, logging.ERROR, logging.CRITICAL
    ):
        problems.append(f"LOG_LEVEL={LOG_LEVEL!r} is not a logging level")

    if problems:
        raise RuntimeError(
            f"Invalid configuration: {'; '.join(problems)}. "
            "Please fix these in your .env file."
        )


_logging_configured = False


def setup_logging():
    global _logging_configured
    if _logging_configured:
        return

    logger = logging.getLogger()
    if not logger.handlers:
        logger.setLevel(logging.DEBUG)

        console = logging.StreamHandler()
        console.setLevel(LOG_LEVEL.upper())
        console.setFormatter(logging.Formatter('%(name)-12s: %(levelname)-8s %(message)s'))
        logger.addHandler(console)

    _logging_configured = True
