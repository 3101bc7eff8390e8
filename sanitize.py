import re

from errors import ValidationError

MIN_GUESTS = 2
MAX_GUESTS = 50

PARTY_NAME_MAX = 100
GUEST_NAME_MAX = 50
BUDGET_MAX = 50
CRITERIA_MAX = 500

_UNSAFE = re.compile(r'[<>"\'&]')


def sanitize_string(value, max_length: int = 100) -> str:
    if not isinstance(value, str):
        return ''
    return _UNSAFE.sub('', value.strip()[:max_length])


def validate_party_name(name) -> str:
    cleaned = sanitize_string(name, PARTY_NAME_MAX)
    if not cleaned:
        raise ValidationError('Party name cannot be empty')
    return cleaned


def validate_guest_name(name) -> str:
    cleaned = sanitize_string(name, GUEST_NAME_MAX)
    if not cleaned:
        raise ValidationError('Guest name cannot be empty')
    return cleaned


def validate_guests(guests) -> list[str]:
    """Clean a guest list and enforce the size and uniqueness rules."""
    if not isinstance(guests, list) or len(guests) < MIN_GUESTS:
        raise ValidationError(f'Party name and at least {MIN_GUESTS} guests are required')
    if len(guests) > MAX_GUESTS:
        raise ValidationError(f'Maximum {MAX_GUESTS} guests allowed')
    cleaned = []
    for guest in guests:
        try:
            cleaned.append(validate_guest_name(guest))
        except ValidationError:
            raise ValidationError(f'Invalid guest name: {guest}') from None
    if len(set(cleaned)) != len(cleaned):
        raise ValidationError('Guest names must be unique')
    return cleaned
