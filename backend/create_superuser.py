"""
Script to create a Django superuser non-interactively.
Usage:
  python create_superuser.py <email> <password> [credits]
  OR
  DJANGO_SUPERUSER_EMAIL=admin@example.com DJANGO_SUPERUSER_PASSWORD=password python create_superuser.py
"""
import os
import sys
from decimal import Decimal, InvalidOperation
import django

# Setup Django
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'chathub.settings')
django.setup()

from django.contrib.auth import get_user_model
from chathub.services import credit_ledger
from chathub.services.subscription_service import create_free_subscription

User = get_user_model()

USAGE = (
    'Usage: python create_superuser.py <email> <password> [credits]\n'
    '   OR: Set DJANGO_SUPERUSER_EMAIL and DJANGO_SUPERUSER_PASSWORD environment variables'
)


def create_superuser():
    if len(sys.argv) >= 3:
        email, password = sys.argv[1], sys.argv[2]
        raw_credits = sys.argv[3] if len(sys.argv) >= 4 else None
    else:
        email = os.getenv('DJANGO_SUPERUSER_EMAIL')
        password = os.getenv('DJANGO_SUPERUSER_PASSWORD')
        raw_credits = os.getenv('DJANGO_SUPERUSER_CREDITS')

    if not email or not password:
        print('Error: Email and password are required.')
        print(USAGE)
        sys.exit(1)

    try:
        credits = Decimal(raw_credits) if raw_credits else None
    except InvalidOperation:
        print(f'Error: Invalid credit amount {raw_credits!r}.')
        sys.exit(1)

    if User.objects.filter(email=email).exists():
        print(f'User with email {email} already exists.')
        return

    user = User.objects.create_superuser(email=email, password=password)
    create_free_subscription(user.id)
    if credits is not None:
        credit_ledger.set_balance(user.id, credits)
    print(f'Superuser {email} created with {credit_ledger.get_balance(user.id)} credits.')


if __name__ == '__main__':
    create_superuser()
