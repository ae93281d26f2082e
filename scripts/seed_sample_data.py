#!/usr/bin/env python3
"""Seed reference data and the demo catalog for local development."""
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from storefront import create_app
from storefront.extensions import db
from storefront.seed import seed_demo_catalog, seed_reference_data

app = create_app()


def seed():
    with app.app_context():
        db.create_all()
        added = seed_reference_data()
        print(f"Reference data: {added} rows added.")

        created = seed_demo_catalog()
        if not created:
            print("Products already exist, skipping demo catalog.")
            return
        print(f"\nSeeded {created} products.")


if __name__ == "__main__":
    seed()
