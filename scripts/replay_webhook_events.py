#!/usr/bin/env python3
"""
Re-run webhook deliveries that were stored but failed to process.
Usage: replay_webhook_events.py [paymongo|stripe] [limit]
"""
import os
import sys

# Add parent directory to path to import app modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.core.config import settings
from app.core.logging import setup_logging
from app.db.session import SessionLocal, get_engine
from app.services.webhook_replay import replay_unprocessed

setup_logging(settings.LOG_LEVEL)
get_engine()
db = SessionLocal()

provider = sys.argv[1] if len(sys.argv) > 1 else None
limit = int(sys.argv[2]) if len(sys.argv) > 2 else 100

print("=" * 60)
print("Replay Unprocessed Webhook Events")
print("=" * 60)

try:
    result = replay_unprocessed(db, provider=provider, limit=limit)
    print(f"Processed: {result['processed']}")
    print(f"Failed:    {result['failed']}")
finally:
    db.close()
