#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Create the MongoDB indexes behind the incident listings.

Usage: python -m rescue_api.scripts.create_indexes
"""

import sys
import logging

from rescue_api.config import RescueSettings
from rescue_api.services.errors import StoreError
from rescue_api.services.mongodb import MongoIncidentStore

logger = logging.getLogger(__name__)


def main(settings: RescueSettings = None) -> int:
    """Create incident indexes; returns the process exit code."""
    settings = settings or RescueSettings.from_env()
    store = MongoIncidentStore(settings.mongodb_uri, settings.mongodb_database)

    try:
        health = store.health_check()
        if health['status'] != 'healthy':
            logger.error(f"MongoDB is not healthy: {health}")
            return 1

        logger.info(f"Connected to MongoDB {health['version']} - Database: {health['database']}")
        store.create_indexes()
        logger.info("MongoDB indexes created successfully")
        return 0

    except StoreError as e:
        logger.error(f"Failed to create indexes: {e}")
        return 1
    finally:
        store.close_connection()


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    sys.exit(main())
