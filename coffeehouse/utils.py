import uuid
from decimal import Decimal, ROUND_HALF_UP

from django.utils import timezone


def new_id():
    return str(uuid.uuid4())


def timestamp():
    """Current UTC time as an ISO 8601 string, the format stored in records."""
    return timezone.now().isoformat()


def percent_of(amount_p, rate):
    """`amount_p * rate` rounded half-up to a whole minor unit."""
    return int((Decimal(amount_p) * Decimal(rate)).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def format_money(amount_p):
    return f"{Decimal(amount_p) / 100:.2f}"


def newest_first(records):
    """Sort by created_at, descending; records appended later win ties."""
    ordered = sorted(enumerate(records), key=lambda pair: (pair[1]['created_at'], pair[0]), reverse=True)
    return [record for _, record in ordered]
