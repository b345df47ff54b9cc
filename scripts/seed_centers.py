"""
Seed script for evacuation centers.

Usage:
  - Dry run (default): python scripts/seed_centers.py
  - Apply to configured store: python scripts/seed_centers.py --apply
  - Force the in-memory store: python scripts/seed_centers.py --apply --force-memory
  - Custom file: python scripts/seed_centers.py --file ./centers.json

Behavior:
  - Loads a JSON list of centers (name, location, capacity, contact, facilities).
  - Validates every entry with CenterCreate before touching the store.
  - Creates each valid center through CapacityLedger, so documents have the
    same shape as centers created over HTTP.

NOTE: When applying to real Firestore, set FIREBASE_CREDENTIALS_PATH and
USE_MEMORY_STORE=false in `.env`.
"""

import argparse
import json
import os
from typing import List, Optional, Tuple

from pydantic import ValidationError

from flood_rescue.config.firebase import build_stores
from flood_rescue.core.settings import Settings
from flood_rescue.models.center import CenterCreate
from flood_rescue.services.capacity_ledger import CapacityLedger


def load_seed(path: str) -> list:
    with open(path, "r", encoding="utf-8") as f:
        seed = json.load(f)
    if not isinstance(seed, list):
        raise ValueError(f"Seed file must contain a JSON list of centers, got {type(seed).__name__}")
    return seed


def validate_seed(seed: list) -> Tuple[List[CenterCreate], List[str]]:
    centers, problems = [], []
    for index, entry in enumerate(seed):
        try:
            centers.append(CenterCreate.model_validate(entry))
        except ValidationError as e:
            problems.append(f"entry {index}: {e.errors()}")
    return centers, problems


def write_centers(ledger: Optional[CapacityLedger], centers: List[CenterCreate], apply: bool = False) -> List[str]:
    created = []
    for center in centers:
        print(f"Preparing: {center.name} (capacity {center.capacity})")
        if not apply:
            continue
        result = ledger.create_center(center)
        created.append(result.id)
        print(f"Wrote: {result.name} -> {result.id}")
    return created


def main(argv=None):
    parser = argparse.ArgumentParser()
    parser.add_argument("--file", default=os.path.join(os.getcwd(), "centers_seed.json"), help="Seed file path")
    parser.add_argument("--apply", action="store_true", help="Write centers to the store instead of dry-run")
    parser.add_argument("--force-memory", action="store_true", help="Use the in-memory store even if Firebase is configured")
    args = parser.parse_args(argv)

    if not os.path.exists(args.file):
        print(f"Seed file not found: {args.file}")
        return 1

    centers, problems = validate_seed(load_seed(args.file))
    for problem in problems:
        print(f"Skipping invalid {problem}")

    # A dry run never connects to the store
    ledger = None
    if args.apply:
        settings = Settings(USE_MEMORY_STORE=True) if args.force_memory else Settings()
        if args.force_memory:
            print("Forcing in-memory store for this run.")
        ledger = CapacityLedger(build_stores(settings).centers)
    write_centers(ledger, centers, apply=args.apply)

    if args.apply:
        print(f"Seeding completed: {len(centers)} center(s).")
    else:
        print("Dry run complete. Re-run with --apply to write to the store.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
