#!/usr/bin/env python
"""
Database seeding script
Creates or corrects the package catalogue and removes packages no longer offered
"""
import sys

from fyw_pay.config import get_config
from fyw_pay.db import Package, Student, build_engine, build_session_factory, init_db
from fyw_pay.services.package_service import PackageService

PACKAGES = [
    {
        "code": "T",
        "name": "Corporate Plus",
        "package_type": "CORPORATE_PLUS",
        "price": 30000,
        "benefits": [
            "Access to Corporate Day (Monday) + 1 chosen day (Tue, Wed, or Thu)",
            "Custom day-based entry invite",
            "Option to upgrade to Corporate & Owambe or Full Experience",
        ],
    },
    {
        "code": "C",
        "name": "Corporate & Owambe",
        "package_type": "CORPORATE_OWAMBE",
        "price": 40000,
        "benefits": [
            "Access to Corporate Day (Monday) + Cultural Day/Owambe (Friday)",
            "Custom two-day entry invite",
            "Option to upgrade to Full Experience",
        ],
    },
    {
        "code": "F",
        "name": "Full Experience",
        "package_type": "FULL",
        "price": 60000,
        "benefits": [
            "Access to all 5 event days (Mon-Fri)",
            "Official full-week invitation pass",
            "Priority support and complete event access",
        ],
    },
]


def seed_database():
    """Seed the package catalogue"""
    config = get_config()
    engine = build_engine(config)
    init_db(engine)
    db = build_session_factory(engine)()

    try:
        print("🌱 Seeding packages...")
        codes = [pkg["code"] for pkg in PACKAGES]
        for stale in db.query(Package).filter(Package.code.notin_(codes)).all():
            in_use = db.query(Student).filter(Student.package_id == stale.id).count()
            if in_use:
                print(f"⚠️  Keeping retired package {stale.code}: {in_use} students still on it")
                continue
            db.delete(stale)
            print(f"🗑️  Removed retired package {stale.code}")

        packages = PackageService(db)
        for pkg in PACKAGES:
            created = packages.create_or_update_package(**pkg)
            print(f"✓ Package {created.code} - {created.name} (₦{created.price})")

        db.commit()
        print("🎉 Seeding completed successfully")
    except Exception as e:
        db.rollback()
        print(f"❌ Seeding failed: {e}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    try:
        seed_database()
    except Exception:
        sys.exit(1)
