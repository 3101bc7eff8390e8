import copy
import threading
import uuid


def new_id() -> str:
    return str(uuid.uuid4())


class EntityStore:
    """In-memory parties, assignment tables and guest links.

    The maps are authoritative while the process runs; `persistence`
    (a `storage.Persistence`) only mirrors them to disk. Every access goes
    through `_lock` since Flask serves requests on several threads.
    """

    def __init__(self, persistence=None):
        self.persistence = persistence
        self.parties: dict[str, dict] = {}
        self.assignments: dict[str, dict[str, str]] = {}
        self.guest_links: dict[str, dict] = {}
        self._lock = threading.Lock()
        self._party_locks: dict[str, threading.Lock] = {}
        self.is_open = False

    def open(self):
        if self.persistence is not None:
            self.persistence.load(self)
        self.is_open = True
        return self

    def close(self):
        if not self.is_open:
            return
        if self.persistence is not None:
            self.persistence.save(self, wait=True)
        self.is_open = False

    def save(self) -> bool:
        if self.persistence is None:
            return False
        return self.persistence.save(self)

    def add_party(self, party: dict):
        with self._lock:
            self.parties[party['id']] = party

    def get_party(self, party_id: str) -> dict | None:
        with self._lock:
            return self.parties.get(party_id)

    def add_guest_link(self, link_id: str, party_id: str, guest_name: str):
        with self._lock:
            self.guest_links[link_id] = {'partyId': party_id, 'guestName': guest_name}

    def get_guest_link(self, link_id: str) -> dict | None:
        with self._lock:
            return self.guest_links.get(link_id)

    def get_assignments(self, party_id: str) -> dict[str, str] | None:
        with self._lock:
            return self.assignments.get(party_id)

    def set_assignments_once(self, party_id: str, table: dict[str, str]) -> dict[str, str]:
        """Store `table` unless the party already has one; return the stored table."""
        with self._lock:
            return self.assignments.setdefault(party_id, table)

    def party_lock(self, party_id: str) -> threading.Lock:
        with self._lock:
            lock = self._party_locks.get(party_id)
            if lock is None:
                lock = self._party_locks[party_id] = threading.Lock()
            return lock

    def snapshot(self) -> dict:
        with self._lock:
            return {
                'parties': copy.deepcopy(self.parties),
                'assignments': copy.deepcopy(self.assignments),
                'guestLinks': copy.deepcopy(self.guest_links),
            }

    def replace_all(self, parties: dict, assignments: dict, guest_links: dict):
        # load-time only
        with self._lock:
            self.parties = dict(parties)
            self.assignments = dict(assignments)
            self.guest_links = dict(guest_links)
            self._party_locks.clear()
