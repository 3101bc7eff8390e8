import json
import logging
import os
import shutil
import threading
from datetime import datetime, timezone
from pathlib import Path

from errors import CorruptDataError, PersistenceError

log = logging.getLogger(__name__)

DATA_FILE = 'secret-santa-data.json'
BACKUPS_DIR = 'backups'
FORMAT_VERSION = 1

# per-collection files written by the first version of the service
LEGACY_FILES = {
    'parties': 'parties.json',
    'assignments': 'assignments.json',
    'guestLinks': 'guest_links.json',
}


def _clean_dir(path: str | None) -> str | None:
    if not path:
        return None
    expanded = os.path.expanduser(path)
    if not expanded:
        return None
    return os.path.abspath(expanded)


def _dir_from_file(value: str | None) -> str | None:
    if not value:
        return None
    directory = os.path.dirname(value)
    if not directory:
        directory = os.getcwd()
    return _clean_dir(directory)


def _derive_data_dir() -> str | None:
    direct = _clean_dir(os.environ.get('DATA_DIR'))
    if direct:
        return direct
    return _dir_from_file(os.environ.get('ENV_FILE'))


def get_data_dir() -> str:
    """Return the directory used for writable data (env, parties, backups)."""
    derived = _derive_data_dir()
    if derived:
        return derived
    return os.getcwd()


def ensure_dir(path: str) -> str:
    if path:
        os.makedirs(path, exist_ok=True)
    return path


def env_file_path() -> str:
    data_dir = _derive_data_dir()
    if data_dir:
        candidate = os.path.join(data_dir, '.env')
        if os.path.exists(candidate):
            return candidate
    env_file = os.environ.get('ENV_FILE')
    if env_file:
        return env_file
    return os.path.join(get_data_dir(), '.env')


def data_file_path(data_dir: str | None = None) -> str:
    return os.path.join(data_dir or get_data_dir(), DATA_FILE)


def backups_root(data_dir: str | None = None) -> str:
    return ensure_dir(os.path.join(data_dir or get_data_dir(), BACKUPS_DIR))


def list_backups(data_dir: str | None = None) -> list[str]:
    root = Path(backups_root(data_dir))
    return sorted(p.name for p in root.glob(f'{Path(DATA_FILE).stem}.*.json') if p.is_file())


def restore_backup(name: str, data_dir: str | None = None) -> str:
    """Copy a backup over the live data file. Run while the server is stopped."""
    source = Path(backups_root(data_dir)) / name
    if not source.is_file():
        raise FileNotFoundError(f"Backup '{name}' does not exist")
    target = data_file_path(data_dir)
    shutil.copy2(source, target)
    return str(source)


def _read_json(path: Path):
    try:
        raw = path.read_bytes()
    except OSError as exc:
        raise PersistenceError(f'Cannot read {path}: {exc}') from exc
    try:
        return json.loads(raw.decode('utf-8'))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise CorruptDataError(f'Corrupted {path.name}: {exc}') from exc


def _valid_party(record) -> bool:
    return isinstance(record, dict) and isinstance(record.get('guests'), list) and 'id' in record


def _valid_table(record) -> bool:
    return isinstance(record, dict) and all(isinstance(v, str) for v in record.values())


def _valid_guest_link(record) -> bool:
    return isinstance(record, dict) and 'partyId' in record and 'guestName' in record


RECORD_CHECKS = {
    'parties': _valid_party,
    'assignments': _valid_table,
    'guestLinks': _valid_guest_link,
}


def _as_collection(value, name: str) -> dict:
    if not isinstance(value, dict):
        if value is not None:
            log.error('Collection %s is not a JSON object, starting fresh', name)
        return {}
    is_valid = RECORD_CHECKS[name]
    collection = {}
    for key, record in value.items():
        if is_valid(record):
            collection[key] = record
        else:
            log.error('Dropping corrupt %s record %s', name, key)
    return collection


class Persistence:
    """Mirrors an `EntityStore` to a single JSON document in `data_dir`.

    Saves back up the previous document, then write a temp file and rename
    it into place, so the file on disk is always a complete snapshot. Only
    one save runs at a time; a save requested meanwhile is dropped.
    """

    def __init__(self, data_dir: str, max_backups: int | None = None):
        self.data_dir = ensure_dir(data_dir)
        self.max_backups = max_backups
        self._saving = threading.Lock()

    @property
    def file_path(self) -> Path:
        return Path(data_file_path(self.data_dir))

    def load(self, store):
        collections = self._read_collections()
        store.replace_all(
            collections.get('parties', {}),
            collections.get('assignments', {}),
            collections.get('guestLinks', {}),
        )
        log.info(
            'Data loaded: %d parties, %d assignment tables, %d guest links',
            len(store.parties), len(store.assignments), len(store.guest_links),
        )

    def _read_collections(self) -> dict:
        if self.file_path.exists():
            try:
                document = _read_json(self.file_path)
            except PersistenceError as exc:
                log.error('%s, starting fresh', exc)
                return {}
            if not isinstance(document, dict):
                log.error('Corrupted %s, starting fresh', self.file_path.name)
                return {}
            return {key: _as_collection(document.get(key), key) for key in LEGACY_FILES}

        collections = {}
        for key, filename in LEGACY_FILES.items():
            path = Path(self.data_dir) / filename
            if not path.exists():
                continue
            try:
                collections[key] = _as_collection(_read_json(path), key)
            except PersistenceError as exc:
                log.error('%s, starting fresh', exc)
        if collections:
            log.info('Read legacy per-collection files from %s', self.data_dir)
        return collections

    def save(self, store, wait: bool = False) -> bool:
        """Write the store to disk. Returns False if skipped or failed."""
        if not self._saving.acquire(blocking=wait):
            log.info('Save already in progress, skipping')
            return False
        try:
            self._backup_current()
            self._write(store.snapshot())
        except OSError as exc:
            log.error('Error saving data: %s', exc, exc_info=True)
            return False
        finally:
            self._saving.release()
        log.debug('Data saved to %s', self.file_path)
        return True

    def _backup_current(self):
        if not self.file_path.exists():
            return
        stamp = datetime.now(timezone.utc).strftime('%Y%m%dT%H%M%S%fZ')
        target = Path(backups_root(self.data_dir)) / f'{self.file_path.stem}.{stamp}.json'
        shutil.copy2(self.file_path, target)
        if self.max_backups:
            for name in list_backups(self.data_dir)[:-self.max_backups]:
                (target.parent / name).unlink(missing_ok=True)

    def _write(self, collections: dict):
        document = {'version': FORMAT_VERSION, **collections}
        temp = self.file_path.with_suffix('.tmp')
        try:
            with open(temp, 'w', encoding='utf-8') as f:
                json.dump(document, f, indent=2, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp, self.file_path)
        except OSError:
            temp.unlink(missing_ok=True)
            raise
