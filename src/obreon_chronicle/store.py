"""File-backed handout store.

Stands in for the host platform's object store: each handout is a named
record with player-visible ``notes`` and GM-only ``gmnotes``. Records live
as JSON files named by handout id, so renaming a handout never moves a file.
"""

from __future__ import annotations

import json
import logging
import re
import uuid
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any

from .errors import HandoutNotFoundError, ParseError
from .locking import remove_record, write_record

logger = logging.getLogger(__name__)

JOURNAL_NAME_PATTERN = re.compile(r"^Journal:([^-]+)(?:-(.*))?$")


@dataclass
class Handout:
    """A named record in the store."""
    id: str
    name: str
    notes: str = ""
    gmnotes: str = ""
    inplayerjournals: str = "all"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Handout:
        known = {f.name for f in fields(cls)}
        try:
            return cls(**{key: value for key, value in data.items() if key in known})
        except TypeError as e:
            raise ParseError(f"Bad handout record: {e}") from e


EDITABLE_FIELDS = ("name", "notes", "gmnotes", "inplayerjournals")


class HandoutStore:
    """Directory of handout records with create/get/set/remove."""

    def __init__(self, root: Path, lock_timeout: float = 10.0):
        self.root = Path(root)
        self.lock_timeout = lock_timeout
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, handout_id: str) -> Path:
        return self.root / f"{handout_id}.json"

    def _write(self, handout: Handout) -> None:
        write_record(self._path(handout.id), json.dumps(handout.to_dict(), indent=2), self.lock_timeout)

    def create(self, name: str, **values: str) -> Handout:
        """Create and persist a new handout."""
        unknown = [key for key in values if key not in EDITABLE_FIELDS]
        if unknown:
            raise ValueError(f"Unknown handout fields: {unknown}")
        handout = Handout(id=uuid.uuid4().hex, name=name, **values)
        self._write(handout)
        logger.info("Created handout %s (%s)", handout.name, handout.id)
        return handout

    def get(self, handout_id: str) -> Handout:
        path = self._path(handout_id)
        if not path.exists():
            raise HandoutNotFoundError(f"No handout with id {handout_id}")
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ParseError(f"Handout record {path.name} is not valid JSON: {e}") from e
        return Handout.from_dict(data)

    def all(self) -> list[Handout]:
        handouts = [self.get(path.stem) for path in self.root.glob("*.json")]
        return sorted(handouts, key=lambda handout: handout.name)

    def find(self, pattern: str) -> list[Handout]:
        """Handouts whose name matches a regular expression."""
        regex = re.compile(pattern)
        return [handout for handout in self.all() if regex.search(handout.name)]

    def find_by_name(self, name: str) -> Handout:
        for handout in self.all():
            if handout.name == name:
                return handout
        raise HandoutNotFoundError(f"No handout named {name}")

    def set(self, handout: Handout, **values: str) -> Handout:
        """Update fields of a handout and persist it."""
        for key, value in values.items():
            if key not in EDITABLE_FIELDS:
                raise ValueError(f"Unknown handout field: {key}")
            setattr(handout, key, value)
        self._write(handout)
        return handout

    def remove(self, handout: Handout) -> None:
        remove_record(self._path(handout.id), self.lock_timeout)
        logger.info("Removed handout %s (%s)", handout.name, handout.id)

    def journal_handouts(self) -> list[Handout]:
        """Handouts named like 'Journal:<start>[-<end>]'."""
        return [handout for handout in self.all() if JOURNAL_NAME_PATTERN.match(handout.name)]
