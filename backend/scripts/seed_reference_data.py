#!/usr/bin/env python3
"""
Command-line script for seeding reference data (sample route, notification
and feedback) into the configured record stores.

Usage:
    STORAGE_BACKEND=dynamodb python backend/scripts/seed_reference_data.py [--dry-run]

Options:
    --dry-run     Show what would be created without actually creating
"""

import argparse
import logging
import os
import sys

# Add the src directory to Python path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from models.feedback import Feedback
from models.notification import Notification
from models.route import Route
from services.record_store import (
    STORAGE_BACKEND_MEMORY,
    StoreError,
    create_record_store,
    get_storage_backend,
)

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

SAMPLE_ROUTES = [
    Route(
        id="R1",
        truck_name="Green Collector 1",
        region="Downtown District",
        days=["Monday", "Thursday"],
        schedule=[
            {"date": "2025-10-06", "time": "08:00", "area": "Main St"},
            {"date": "2025-10-06", "time": "09:00", "area": "Park Ave"},
        ],
        geo_json={
            "type": "FeatureCollection",
            "features": [
                {
                    "type": "Feature",
                    "geometry": {
                        "type": "LineString",
                        "coordinates": [[80.7, 7.3], [80.72, 7.31], [80.74, 7.335]],
                    },
                    "properties": {"name": "Route Downtown"},
                }
            ],
        },
        created_at="2025-10-01T00:00:00+00:00",
    )
]

SAMPLE_NOTIFICATIONS = [
    Notification(
        id="N1",
        message="Waste truck will arrive in your area tomorrow at 8am!",
        date="2025-10-06T07:00:00Z",
        type="schedule",
    )
]

SAMPLE_FEEDBACK = [
    Feedback(
        id="F1",
        name="Sarah Johnson",
        rating=5,
        comment="Great service!",
        date="2025-10-05",
    )
]

SEED_DATA = {
    "routes": SAMPLE_ROUTES,
    "notifications": SAMPLE_NOTIFICATIONS,
    "feedback": SAMPLE_FEEDBACK,
}


def seed(dry_run: bool = False) -> dict[str, int]:
    """Insert sample records that are not present yet.

    Returns:
        Number of records created per collection
    """
    created = {}
    for collection, records in SEED_DATA.items():
        store = None if dry_run else create_record_store(collection)
        created[collection] = 0
        for record in records:
            if dry_run:
                print(f"  - {collection}: {record.id}")
                continue
            if store.get(record.id) is not None:
                logger.info("Skipping existing %s record %s", collection, record.id)
                continue
            store.append(record.to_api())
            created[collection] += 1
    return created


def main():
    parser = argparse.ArgumentParser(description="Seed GreenGrid reference data")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be created without actually creating",
    )
    args = parser.parse_args()

    if get_storage_backend() == STORAGE_BACKEND_MEMORY and not args.dry_run:
        logger.warning(
            "STORAGE_BACKEND is 'memory'; seeded records disappear when this script exits"
        )

    try:
        results = seed(dry_run=args.dry_run)
    except StoreError as e:
        logger.error("Failed to seed reference data: %s", e)
        sys.exit(1)

    if not args.dry_run:
        print("\n" + "=" * 50)
        print("REFERENCE DATA SEEDING RESULTS")
        print("=" * 50)
        for collection, count in results.items():
            print(f"{collection}: {count} created")


if __name__ == "__main__":
    main()
