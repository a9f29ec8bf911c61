"""Create any missing tables. Run with: python -m applymate.scripts.ensure_tables"""

import logging

from applymate.database import ensure_tables_exist
from applymate.logging_config import setup_logging

logger = logging.getLogger(__name__)


def main() -> list[str]:
    setup_logging()
    created = ensure_tables_exist()
    logger.info("Table check complete, %d created", len(created))
    return created


if __name__ == "__main__":
    main()
