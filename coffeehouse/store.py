"""
Whole-collection persistence for the coffee counter.

Every collection (catalog, users, orders, invoices, payments, reviews) is read
and replaced as a unit. Services never write a snapshot they read earlier;
they go through `mutate()`, which holds the collections involved for one
read-modify-write cycle:

* `MemoryStore` / `JsonFileStore` take per-collection locks (pessimistic).
* `RedisStore` uses WATCH/MULTI/EXEC and retries on conflict (optimistic).
"""
import copy
import json
import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path

import redis
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.dispatch import receiver
from django.test.signals import setting_changed

from .exceptions import Conflict

logger = logging.getLogger(__name__)


def _empty_catalog():
    return {'coffee': [], 'snacks': []}


COLLECTIONS = {
    'catalog': _empty_catalog,
    'users': list,
    'orders': list,
    'invoices': list,
    'payments': list,
    'reviews': list,
}


def empty_collection(name):
    try:
        return COLLECTIONS[name]()
    except KeyError:
        raise ValueError(f"Unknown collection: {name}")


class BaseStore:
    """Contract shared by all store backends."""

    def read(self, name):
        """Return a private snapshot of the whole collection."""
        raise NotImplementedError

    def write(self, name, data):
        """Replace the whole collection."""
        raise NotImplementedError

    def mutate(self, names, func):
        """
        Run `func` over snapshots of `names` as one atomic read-modify-write.

        `func` receives a dict of collection name -> snapshot, changes the
        snapshots in place and returns a result. The collections are written
        back only if `func` returns normally, so an exception leaves the store
        untouched. `func` may be called more than once.
        """
        raise NotImplementedError

    def update(self, name, func):
        return self.mutate([name], lambda data: func(data[name]))

    @staticmethod
    def _names(names):
        names = sorted(set(names))
        for name in names:
            empty_collection(name)
        return names


class LockingStore(BaseStore):
    """Store guarded by one lock per collection, taken in name order."""

    def __init__(self, lock_timeout=5.0):
        self.lock_timeout = lock_timeout
        self._locks = {name: threading.Lock() for name in COLLECTIONS}

    @contextmanager
    def _locked(self, names):
        acquired = []
        try:
            for name in names:
                lock = self._locks[name]
                if not lock.acquire(timeout=self.lock_timeout):
                    logger.warning("Timed out waiting for the %s collection lock", name)
                    raise Conflict(f"The {name} collection is busy, try again")
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()

    def _load(self, name):
        raise NotImplementedError

    def _dump(self, name, data):
        raise NotImplementedError

    def read(self, name):
        names = self._names([name])
        with self._locked(names):
            return self._load(name)

    def write(self, name, data):
        names = self._names([name])
        with self._locked(names):
            self._dump(name, copy.deepcopy(data))

    def mutate(self, names, func):
        # Locks are taken in name order; collections are written back in the
        # order the caller listed them.
        write_order = list(dict.fromkeys(names))
        names = self._names(names)
        with self._locked(names):
            snapshot = {name: self._load(name) for name in names}
            result = func(snapshot)
            for name in write_order:
                self._dump(name, snapshot[name])
        return result


class MemoryStore(LockingStore):
    """Process-local store, used by the test suite and for quick demos."""

    def __init__(self, lock_timeout=5.0):
        super().__init__(lock_timeout=lock_timeout)
        self._data = {}

    def _load(self, name):
        if name not in self._data:
            return empty_collection(name)
        return copy.deepcopy(self._data[name])

    def _dump(self, name, data):
        self._data[name] = copy.deepcopy(data)


class JsonFileStore(LockingStore):
    """
    One `<name>.json` file per collection under `data_dir`.

    Files are replaced atomically (temp file + rename), but a mutation over
    several collections writes one file after another. A crash between two
    writes keeps the first file only, so callers list the collection that
    records the fact (e.g. payments) before the one it updates (orders). The
    locks are in-process, so a single server process must own the directory;
    run the Redis backend when several workers share state.
    """

    def __init__(self, data_dir, lock_timeout=5.0):
        super().__init__(lock_timeout=lock_timeout)
        self.data_dir = Path(data_dir)

    def _path(self, name):
        return self.data_dir / f"{name}.json"

    def _load(self, name):
        path = self._path(name)
        if not path.exists():
            return empty_collection(name)
        with path.open('r', encoding='utf-8') as fh:
            return json.load(fh)

    def _dump(self, name, data):
        self.data_dir.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.data_dir, prefix=f".{name}.", suffix='.tmp')
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as fh:
                json.dump(data, fh, indent=2)
            os.replace(tmp_path, self._path(name))
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise


class RedisStore(BaseStore):
    """Collections stored as JSON strings, written with optimistic concurrency."""

    def __init__(self, client=None, prefix='coffeehouse', max_retries=5):
        if client is None:
            client = redis.Redis(
                host=settings.REDIS_HOST,
                port=int(settings.REDIS_PORT),
                db=int(settings.REDIS_DB),
                decode_responses=True
            )
        self.redis_client = client
        self.prefix = prefix
        self.max_retries = max_retries

    def _key(self, name):
        return f"{self.prefix}:{name}"

    def _decode(self, name, raw):
        if raw is None:
            return empty_collection(name)
        return json.loads(raw)

    def read(self, name):
        self._names([name])
        return self._decode(name, self.redis_client.get(self._key(name)))

    def write(self, name, data):
        self._names([name])
        self.redis_client.set(self._key(name), json.dumps(data))

    def mutate(self, names, func):
        names = self._names(names)
        keys = [self._key(name) for name in names]

        for attempt in range(1, self.max_retries + 1):
            with self.redis_client.pipeline() as pipe:
                try:
                    pipe.watch(*keys)
                    snapshot = {name: self._decode(name, pipe.get(self._key(name))) for name in names}
                    result = func(snapshot)
                    pipe.multi()
                    for name in names:
                        pipe.set(self._key(name), json.dumps(snapshot[name]))
                    pipe.execute()
                    return result
                except redis.WatchError:
                    logger.warning(
                        "Concurrent write on %s (attempt %d of %d)",
                        ', '.join(names), attempt, self.max_retries
                    )

        raise Conflict(f"Could not update {', '.join(names)} after {self.max_retries} attempts")


def build_store():
    backend = settings.STORE_BACKEND
    if backend == 'memory':
        return MemoryStore(lock_timeout=settings.STORE_LOCK_TIMEOUT)
    if backend == 'json':
        return JsonFileStore(settings.STORE_DATA_DIR, lock_timeout=settings.STORE_LOCK_TIMEOUT)
    if backend == 'redis':
        return RedisStore(prefix=settings.REDIS_PREFIX, max_retries=settings.STORE_MAX_RETRIES)
    raise ImproperlyConfigured(f"Unknown STORE_BACKEND: {backend!r}")


_store = None
_store_lock = threading.Lock()


def get_store():
    """Return the process-wide store configured by STORE_BACKEND."""
    global _store
    with _store_lock:
        if _store is None:
            _store = build_store()
            logger.info("Using %s", type(_store).__name__)
        return _store


def reset_store():
    global _store
    with _store_lock:
        _store = None


@receiver(setting_changed)
def _reset_store_on_setting_change(setting, **kwargs):
    if setting.startswith('STORE_') or setting.startswith('REDIS_'):
        reset_store()
