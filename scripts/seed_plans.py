#!/usr/bin/env python
"""
Seed the default subscription plans (Free, Starter, Pro).

Usage:
  python scripts/seed_plans.py
"""
import os
import sys
import django

# Setup Django
sys.path.append(os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'backend'))
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'chathub.settings')
django.setup()

from chathub.services.subscription_service import ensure_default_plans

if __name__ == '__main__':
    print("Seeding plans...")
    for plan in ensure_default_plans():
        print(f"  {plan.name}: {plan.price}/month, {plan.credits_per_month} credits")
    print("Plans seeded successfully!")
