"""Create the database schema: ``python -m shiftpay``."""

import asyncio
import logging

from shiftpay.config import get_settings
from shiftpay.database import create_schema


def main() -> None:
    settings = get_settings()
    logging.basicConfig(level=logging.DEBUG if settings.debug else logging.INFO)
    asyncio.run(create_schema())
    logging.getLogger(__name__).info("Schema ready at %s", settings.database_url)


if __name__ == "__main__":
    main()
