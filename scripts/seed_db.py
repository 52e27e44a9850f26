"""
Seed script for the CivicWorks document store.

Usage:
  - Dry run (default): python scripts/seed_db.py
  - Apply to configured DB: python scripts/seed_db.py --apply
  - Use the in-memory store (smoke test of the flows): python scripts/seed_db.py --apply --force-mock

Behavior:
  - Registers a few demo citizens and submits reports for them through the
    services, so stats, badges and notifications come out the same way
    they do for real traffic.
  - Users whose email is already registered are reused.

NOTE: When applying to real Firestore, ensure `FIREBASE_CREDENTIALS_PATH` is
set and `USE_MOCK_DB=false` in `.env`.
"""

import argparse
import logging

from civicworks.core.exceptions import ConflictError
from civicworks.core.settings import settings

logger = logging.getLogger("seed_db")

DEMO_USERS = [
    {"name": "Asha Rao", "email": "asha@example.com", "language": "en"},
    {"name": "Ravi Kumar", "email": "ravi@example.com", "language": "hi"},
    {"name": "Meera Iyer", "email": "meera@example.com", "language": "ta"},
]

DEMO_REPORTS = [
    {"owner": "asha@example.com", "category": "road", "description": "Pothole near the bus stop",
     "lat": 28.6139, "lng": 77.2090},
    {"owner": "asha@example.com", "category": "water", "description": "Main pipe leaking since morning",
     "lat": 28.6200, "lng": 77.2150, "is_emergency": True},
    {"owner": "ravi@example.com", "category": "garbage", "description": "Bins overflowing at the market",
     "lat": 19.0760, "lng": 72.8777},
    {"owner": "meera@example.com", "category": "streetlight", "description": "Streetlights out on 4th cross",
     "lat": 12.9716, "lng": 77.5946, "priority": "high"},
]


def _ensure_user(container, entry: dict) -> dict:
    try:
        return container.users.create_user(**entry)
    except ConflictError:
        return container.stores.users.get_by_email(entry["email"])


def seed(container) -> None:
    users = {}
    for entry in DEMO_USERS:
        user = _ensure_user(container, entry)
        users[user["email"]] = user
        logger.info(f"User ready: {user['email']} ({user['id']})")

    reports = []
    for entry in DEMO_REPORTS:
        params = dict(entry)
        params["owner"] = users[params["owner"]]["id"]
        report = container.lifecycle.create_report(**params)
        reports.append(report)
        logger.info(f"Report created: {report['id']} ({report['category']})")

    # A little engagement so listings and badges have something to show
    ravi = users["ravi@example.com"]["id"]
    meera = users["meera@example.com"]["id"]
    container.engagement.toggle_like(reports[0]["id"], ravi)
    container.engagement.toggle_like(reports[0]["id"], meera)
    container.engagement.record_view(reports[0]["id"], ravi)
    container.comments.add_comment(reports[0]["id"], meera, "Same problem on the other side of the road")
    container.lifecycle.update_status(reports[2]["id"], "in_progress", actor=meera, note="Crew assigned")


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--apply", action="store_true", help="Write seed to the DB instead of dry-run")
    parser.add_argument("--force-mock", action="store_true", help="Use the in-memory store even if Firebase is configured")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")

    if not args.apply:
        for entry in DEMO_USERS:
            logger.info(f"Would register: {entry['email']}")
        for entry in DEMO_REPORTS:
            logger.info(f"Would submit: {entry['category']} report for {entry['owner']}")
        logger.info("Dry run complete. Re-run with --apply to write to DB.")
        return

    if args.force_mock:
        logger.info("Forcing in-memory store for this run.")
        settings.USE_MOCK_DB = True

    from civicworks.services.container import get_container

    seed(get_container())
    logger.info("Seeding completed.")


if __name__ == "__main__":
    main()
