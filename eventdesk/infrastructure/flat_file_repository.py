"""Flat File Repository: four record files, one entity per line, no header.

Invariants:
    - Load order is users, events, inventory, attendees
    - A missing file loads as an empty collection
    - A malformed line (bad UTF-8 included) is skipped with a WARNING; the rest
      of the file still loads
    - save_many() writes every temp file before replacing any target, so a failed
      write leaves all files as they were; save() is save_many() for one kind
    - A crash mid-write leaves the previous file intact (temp file + os.replace)
"""

import logging
import os
import tempfile
from collections.abc import Iterable, Mapping
from pathlib import Path

from eventdesk.core.domain_types import EntityKind
from eventdesk.core.entities import Entity
from eventdesk.core.errors import DecodeError
from eventdesk.core.record_codec import decode_record, encode_record
from eventdesk.core.repository_protocols import LoadResult, SkippedLine

logger = logging.getLogger(__name__)

LOAD_ORDER: tuple[EntityKind, ...] = (
    EntityKind.USER, EntityKind.EVENT, EntityKind.INVENTORY, EntityKind.ATTENDEE,
)


def _to_text(raw: bytes) -> str:
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecodeError(f"invalid UTF-8 at byte {e.start}", repr(raw)) from e


class FlatFileRepository:
    """RecordRepository backed by delimited text files in one directory."""

    def __init__(self, data_dir: Path, file_names: dict[EntityKind, str]) -> None:
        self.data_dir = Path(data_dir)
        self._paths = {kind: self.data_dir / name for kind, name in file_names.items()}

    @classmethod
    def from_settings(cls, settings) -> "FlatFileRepository":
        return cls(settings.data_dir, {
            EntityKind.USER: settings.users_file,
            EntityKind.EVENT: settings.events_file,
            EntityKind.INVENTORY: settings.inventory_file,
            EntityKind.ATTENDEE: settings.attendees_file,
        })

    def path_for(self, kind: EntityKind) -> Path:
        return self._paths[kind]

    def load(self) -> LoadResult:
        result = LoadResult()
        targets = {
            EntityKind.USER: result.users,
            EntityKind.EVENT: result.events,
            EntityKind.INVENTORY: result.inventory,
            EntityKind.ATTENDEE: result.attendees,
        }
        for kind in LOAD_ORDER:
            records, skipped = self._load_kind(kind)
            targets[kind].extend(records)
            result.skipped.extend(skipped)
        return result

    def _load_kind(self, kind: EntityKind) -> tuple[list[Entity], list[SkippedLine]]:
        path = self._paths[kind]
        if not path.exists():
            logger.info(f"No {kind.value} file at {path}; starting empty")
            return [], []
        records: list[Entity] = []
        skipped: list[SkippedLine] = []
        with path.open("rb") as fh:
            for line_number, raw in enumerate(fh, start=1):
                if not raw.strip():
                    continue
                try:
                    records.append(decode_record(kind, _to_text(raw)))
                except DecodeError as e:
                    logger.warning(
                        f"Skipping malformed {kind.value} record: {e.message}",
                        extra={
                            "entity_kind": kind.value, "file_name": path.name,
                            "line_number": line_number, "error_code": e.code,
                        },
                    )
                    skipped.append(SkippedLine(kind, line_number, e.message))
        logger.info(
            f"Loaded {len(records)} {kind.value} record(s) from {path.name}",
            extra={"entity_kind": kind.value, "file_name": path.name},
        )
        return records, skipped

    def save(self, kind: EntityKind, records: Iterable[Entity]) -> None:
        self.save_many({kind: records})

    def save_many(self, batch: Mapping[EntityKind, Iterable[Entity]]) -> None:
        """Rewrite several files together: every temp file is written before any is swapped in."""
        staged: list[tuple[str, Path]] = []
        try:
            for kind, records in batch.items():
                path = self._paths[kind]
                path.parent.mkdir(parents=True, exist_ok=True)
                body = "".join(encode_record(r) + "\n" for r in records)
                fd, tmp_name = tempfile.mkstemp(
                    dir=path.parent, prefix=f".{path.name}.", suffix=".tmp",
                )
                staged.append((tmp_name, path))
                with os.fdopen(fd, "w", encoding="utf-8", newline="") as fh:
                    fh.write(body)
            for tmp_name, path in staged:
                os.replace(tmp_name, path)
        except OSError:
            for tmp_name, _ in staged:
                Path(tmp_name).unlink(missing_ok=True)
            raise
