import logging
import random
from datetime import datetime
from zoneinfo import ZoneInfo

from errors import NotFoundError, ValidationError
from sanitize import BUDGET_MAX, CRITERIA_MAX, sanitize_string, validate_guests, validate_party_name
from store import new_id

log = logging.getLogger(__name__)

GUEST_LINK_LENGTH = 36
DEFAULT_TIMEZONE = 'Australia/Sydney'


def is_derangement(guests, table) -> bool:
    names = set(guests)
    everyone_is_giving = set(table.keys()) == names
    everyone_is_receiving = set(table.values()) == names and len(table) == len(names)
    nobody_gets_themselves = all(giver != receiver for giver, receiver in table.items())
    return everyone_is_giving and everyone_is_receiving and nobody_gets_themselves


def derange(guests, rng=None) -> dict[str, str]:
    """Map every guest to a different guest.

    Shuffles a copy of the list, then walks it once swapping any guest that
    landed on their own position with the next one (the previous one at the
    end). The result always has no fixed points, but it is not a uniform
    sample over all derangements.
    """
    if len(guests) < 2:
        raise ValueError('Need at least 2 guests')
    rng = rng or random.SystemRandom()

    shuffled = list(guests)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]

    last = len(shuffled) - 1
    for i in range(len(shuffled)):
        if shuffled[i] == guests[i]:
            k = i - 1 if i == last else i + 1
            shuffled[i], shuffled[k] = shuffled[k], shuffled[i]

    table = dict(zip(guests, shuffled))
    assert is_derangement(guests, table)
    return table


class SecretSantaService:
    """Creates parties and hands out each guest's recipient.

    A party's table is drawn on the first lookup and never redrawn, no matter
    whether guests come in by name or through their guest link.
    """

    def __init__(self, store, base_url: str, rng=None, timezone: str = DEFAULT_TIMEZONE):
        self.store = store
        self.base_url = base_url.rstrip('/')
        self.rng = rng
        self.timezone = ZoneInfo(timezone)

    def created_at(self) -> str:
        return datetime.now(self.timezone).strftime('%d/%m/%Y, %H:%M:%S %Z')

    def guest_url(self, link_id: str) -> str:
        return f'{self.base_url}/guest/{link_id}'

    def create_party(self, name, budget, criteria, guests) -> dict:
        if not name:
            raise ValidationError('Party name and at least 2 guests are required')
        guests = validate_guests(guests)
        party = {
            'id': new_id(),
            'name': validate_party_name(name),
            'budget': sanitize_string(budget or '', BUDGET_MAX),
            'criteria': sanitize_string(criteria or '', CRITERIA_MAX),
            'guests': guests,
            'createdAt': self.created_at(),
        }
        self.store.add_party(party)

        guest_urls = {}
        for guest in guests:
            link_id = new_id()
            self.store.add_guest_link(link_id, party['id'], guest)
            guest_urls[guest] = self.guest_url(link_id)

        self.store.save()
        log.info('Created party %s with %d guests', party['id'], len(guests))
        return {'partyId': party['id'], 'guestUrls': guest_urls, 'party': party}

    def get_party(self, party_id: str) -> dict:
        party = self.store.get_party(party_id)
        if party is None:
            raise NotFoundError('Party not found')
        return party

    def _table_for(self, party: dict) -> dict[str, str]:
        party_id = party['id']
        table = self.store.get_assignments(party_id)
        if table is not None:
            return table
        with self.store.party_lock(party_id):
            table = self.store.get_assignments(party_id)
            if table is not None:
                return table
            table = self.store.set_assignments_once(party_id, derange(party['guests'], self.rng))
        log.info('Drew assignments for party %s', party_id)
        self.store.save()
        return table

    def _recipient(self, party: dict, guest_name: str) -> str:
        recipient = self._table_for(party).get(guest_name)
        if recipient is None:
            raise NotFoundError('Guest not found in assignments')
        return recipient

    def assign_by_name(self, party_id: str, guest_name: str) -> str:
        party = self.get_party(party_id)
        if guest_name not in party['guests']:
            raise ValidationError('Guest not found in party')
        return self._recipient(party, guest_name)

    def assign_by_guest_link(self, link_id) -> dict:
        if not isinstance(link_id, str) or len(link_id) != GUEST_LINK_LENGTH:
            raise ValidationError('Invalid guest ID')
        link = self.store.get_guest_link(link_id)
        if link is None:
            raise NotFoundError('Guest link not found')
        party = self.store.get_party(link['partyId'])
        if party is None:
            raise NotFoundError('Party not found')
        guest_name = link['guestName']
        return {
            'party': {
                'name': party['name'],
                'budget': party['budget'],
                'criteria': party['criteria'],
            },
            'guestName': guest_name,
            'assignment': self._recipient(party, guest_name),
        }
