"""
Initial state selection and local persistence.

A session starts from the first source that yields a record:

    1. a share token in the URL query string (consumed once)
    2. the record saved locally by a previous session
    3. the built-in example record

Saving only starts once the initial load has been applied, so a shared link
is never overwritten by stale local data before it is shown.
"""

import hashlib
import json
import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, MutableMapping, Optional, Sequence, Tuple

from .codec import decode, record_from_dict, record_to_dict
from .config import CLIENT_PARAM, SHARE_PARAM, STORAGE_DIR, STORAGE_KEY
from .record import AcademicRecord, Module, RecordStore, Semester

logger = logging.getLogger(__name__)


def default_record() -> AcademicRecord:
    return AcademicRecord(semesters=[
        Semester(id="sem-1", label="Year 1 Sem 1", modules=[
            Module(id="1", name="CS1010", credits=4, grade_value=5.0),
            Module(id="2", name="MA1521", credits=4, grade_value=4.5),
        ]),
        Semester(id="sem-2", label="Year 1 Sem 2", modules=[
            Module(id="3", name="CS2030", credits=4, grade_value=4.0),
        ]),
    ])


class LocalStore:
    """JSON file holding one client's latest record under a single key."""

    def __init__(self, path: Path, key: str = STORAGE_KEY):
        self.path = Path(path)
        self.key = key

    @classmethod
    def for_client(cls, client_id: str, directory: Path = STORAGE_DIR) -> "LocalStore":
        # hashed so the id from the URL never becomes a path component
        digest = hashlib.sha256(client_id.encode("utf-8")).hexdigest()[:32]
        return cls(Path(directory) / f"{digest}.json")

    def read(self) -> Optional[AcademicRecord]:
        if not self.path.exists():
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, dict) or self.key not in data:
                return None
            return record_from_dict(data[self.key])
        except (OSError, ValueError, RecursionError) as e:
            logger.warning("Ignoring unreadable saved state at %s: %s", self.path, e)
            return None

    def write(self, record: AcademicRecord) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump({self.key: record_to_dict(record)}, f, ensure_ascii=False)
        except (OSError, TypeError, ValueError) as e:
            logger.warning("Could not save state to %s: %s", self.path, e)

    def clear(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass


@dataclass
class LoadResult:
    record: AcademicRecord
    source: str


def from_link(query_params: MutableMapping) -> Optional[AcademicRecord]:
    token = query_params.get(SHARE_PARAM)
    if isinstance(token, list):
        token = token[0] if token else None
    if not token:
        return None
    record = decode(token)
    if record is not None:
        # one-time consumption: the link does not win again on the next load
        del query_params[SHARE_PARAM]
    return record


def load_initial(query_params: MutableMapping, store: LocalStore) -> LoadResult:
    sources: Sequence[Tuple[str, Callable[[], Optional[AcademicRecord]]]] = [
        ("link", lambda: from_link(query_params)),
        ("storage", store.read),
    ]
    for name, try_source in sources:
        record = try_source()
        if record is not None:
            logger.debug("Initial record loaded from %s", name)
            return LoadResult(record=record, source=name)

    logger.debug("Initial record loaded from defaults")
    return LoadResult(record=default_record(), source="default")


class Persister:
    """Writes the store's record to local storage after every mutation, once armed."""

    def __init__(self, record_store: RecordStore, local_store: LocalStore):
        self.local_store = local_store
        self.loaded = False
        record_store.subscribe(self._on_change)

    def mark_loaded(self) -> None:
        self.loaded = True

    def _on_change(self, record_store: RecordStore) -> None:
        if not self.loaded:
            return
        self.local_store.write(record_store.record)


def client_id(query_params: MutableMapping) -> str:
    """
    The browser client's id, kept in the URL so a reload finds the same saved
    record. A visitor without one gets a fresh id, and with it an empty store.
    """
    value = query_params.get(CLIENT_PARAM)
    if isinstance(value, list):
        value = value[0] if value else None
    if not value:
        value = uuid.uuid4().hex
        query_params[CLIENT_PARAM] = value
    return value
