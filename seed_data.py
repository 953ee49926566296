#!/usr/bin/env python3
"""
Seed serial counters, a starter service catalog and a practitioner.
Run after `flask db upgrade` with: python3 seed_data.py
"""
from decimal import Decimal

from dental_clinic import create_app
from dental_clinic.models import Practitioner, Service
from dental_clinic.services import catalog_service, practitioner_service
from dental_clinic.services.sequence_service import ensure_sequences

# Default catalog (prices in clinic currency)
DEFAULT_SERVICES = [
    {'name': 'Consultation', 'category': 'Diagnostic', 'price': Decimal('20.00')},
    {'name': 'Intraoral X-ray', 'category': 'Diagnostic', 'price': Decimal('15.00')},
    {'name': 'Scaling and polishing', 'category': 'Preventive', 'price': Decimal('75.50')},
    {'name': 'Fissure sealant', 'category': 'Preventive', 'price': Decimal('30.00')},
    {'name': 'Composite filling', 'category': 'Restorative', 'price': Decimal('50.00')},
    {'name': 'Root canal treatment', 'category': 'Endodontics', 'price': Decimal('320.00')},
    {'name': 'Simple extraction', 'category': 'Surgery', 'price': Decimal('60.00')},
    {'name': 'Porcelain crown', 'category': 'Prosthodontics', 'price': Decimal('450.00')},
]

DEFAULT_PRACTITIONERS = [
    {
        'first_name': 'John',
        'last_name': 'Dentist',
        'specialization': 'General Dentistry',
        'email': 'dentist1@clinic.com',
        'phone': '',
    },
]


def seed():
    """Create counters, services and practitioners that do not exist yet"""
    app = create_app()

    with app.app_context():
        print("=" * 60)
        print("Seeding Dental Clinic Data")
        print("=" * 60)
        print()

        ensure_sequences()
        print("  ✓ Sequence counters ready (PAT, APT, PRS)")

        created_count = 0
        for item in DEFAULT_SERVICES:
            if Service.query.filter_by(name=item['name']).first():
                print(f"  - Service '{item['name']}' already exists (skipping)")
                continue
            catalog_service.create_service(item['name'], item['price'], category=item['category'])
            created_count += 1
            print(f"  ✓ Service: {item['name']} ({item['price']})")

        for item in DEFAULT_PRACTITIONERS:
            if Practitioner.query.filter_by(email=item['email']).first():
                print(f"  - Practitioner '{item['email']}' already exists (skipping)")
                continue
            practitioner = practitioner_service.create_practitioner(**item)
            created_count += 1
            print(f"  ✓ Practitioner: {practitioner.display_name}")

        print()
        print("=" * 60)
        print(f"✅ Created {created_count} new record(s)")
        print("=" * 60)


if __name__ == '__main__':
    seed()
