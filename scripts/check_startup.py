#!/usr/bin/env python3
"""
Verify the backend can start: imports, app creation, database connection.
"""
import sys
import os
import traceback

# Add the backend directory to the path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

print("Checking backend startup...")

try:
    print("1. Core imports...")
    from app.core.config import settings
    from app.db.session import SessionLocal, get_engine
    print("   ✅ Config and database session imported")

    print("\n2. Processor settings...")
    print(f"   PayMongo webhook secret set: {bool(settings.PAYMONGO_WEBHOOK_SECRET)}")
    print(f"   Stripe webhook secret set:   {bool(settings.STRIPE_WEBHOOK_SECRET)}")
    print(f"   Webhook error policy:        {settings.WEBHOOK_ERROR_POLICY}")
    print(f"   Amount match strategy:       {settings.AMOUNT_MATCH_STRATEGY}")

    print("\n3. FastAPI app creation...")
    from app.main import app
    print(f"   ✅ FastAPI app created ({len(app.routes)} routes)")

    print("\n4. Database connection...")
    from sqlalchemy import text
    get_engine()
    db = SessionLocal()
    db.execute(text("SELECT 1"))
    db.close()
    print("   ✅ Database connection works")

    print("\n✅ Backend should start correctly.")
    sys.exit(0)
except Exception as e:
    print(f"\n❌ Error: {str(e)}")
    traceback.print_exc()
    sys.exit(1)
