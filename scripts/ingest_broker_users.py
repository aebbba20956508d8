#!/usr/bin/env python3
"""Load a broker user export (JSON list) into the MT5 tables.

Usage:
    python scripts/ingest_broker_users.py users.json --db-path data/hall_of_elite.db

    # Also recompute each trader's payout from their closed trades
    python scripts/ingest_broker_users.py users.json --recalculate-payouts
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

import structlog

from hall_of_elite.config import settings
from hall_of_elite.datastore import DataStore
from hall_of_elite.ingestion import IngestionService
from hall_of_elite.logging_config import configure_logging
from hall_of_elite.normalize import normalize_login
from hall_of_elite.payout import PayoutService

log = structlog.get_logger("ingest_broker_users")


def main(export_path: Path, db_path: str, recalculate_payouts: bool) -> int:
    raw_users = json.loads(export_path.read_text())
    if not isinstance(raw_users, list):
        log.error("export_not_a_list", path=str(export_path))
        return 1

    with DataStore(db_path) as store:
        summary = IngestionService(store).persist_from_raw_users(raw_users)

        if recalculate_payouts:
            payouts = PayoutService(store)
            updated = 0
            for raw in raw_users:
                if not isinstance(raw, dict) or "login" not in raw:
                    continue
                trader_id = store.resolve_trader_id_for_account(normalize_login(raw["login"]))
                if trader_id and payouts.calculate_from_trades(trader_id) is not None:
                    updated += 1
            log.info("payouts_recalculated", updated=updated)

    print(
        f"traders +{summary.traders_inserted}/~{summary.traders_updated}  "
        f"accounts +{summary.accounts_inserted}/~{summary.accounts_updated}  "
        f"skipped {summary.skipped_records}"
    )
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Ingest broker users into the Hall of Elite store")
    parser.add_argument("export", type=Path, help="JSON file with a list of broker user records")
    parser.add_argument("--db-path", default=settings.DB_PATH)
    parser.add_argument("--recalculate-payouts", action="store_true")
    args = parser.parse_args()

    configure_logging()
    sys.exit(main(args.export, args.db_path, args.recalculate_payouts))
