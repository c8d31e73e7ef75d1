"""Size and age based rotation of the log file.

`RotatingFileSink` extends the standard library's `RotatingFileHandler`:
backups are named after the time they were rotated instead of being
numbered, can be gzip compressed and are pruned both by count and by age.

Backup files live next to the active file:

    logs/app.log
    logs/app-2024-05-01T09-30-12.250.log
    logs/app-2024-04-30T22-01-47.003.log.gz
"""

import datetime
import gzip
import logging.handlers
import os
import shutil
from pathlib import Path
from typing import Final, NamedTuple

MEGABYTE: Final = 1024 * 1024
DEFAULT_MAX_SIZE: Final = 100  # megabytes, used when max_size is 0

BACKUP_TIME_FORMAT: Final = "%Y-%m-%dT%H-%M-%S.%f"
COMPRESS_SUFFIX: Final = ".gz"


class Backup(NamedTuple):
    """A rotated log file and the time it was rotated at."""

    rotated_at: datetime.datetime
    path: Path


class RotatingFileSink(logging.handlers.RotatingFileHandler):
    """Rotating file handler with timestamped, optionally compressed backups.

    The file is opened lazily on the first record, so constructing the sink
    never touches the file system. Writes and rotations both run under the
    handler lock.

    Args:
        filename:       Path of the active log file
        max_size:       Size in megabytes before rotating (0: 100MB)
        max_backups:    Number of backups to retain (0: keep all)
        max_age:        Days to retain backups (0: no age limit)
        localtime:      Name backups in local time instead of UTC
        compress:       Gzip rotated files
        encoding:       Character encoding of the log file
    """

    def __init__(
            self,
            filename: str | Path,
            max_size: int = 0,
            max_backups: int = 0,
            max_age: int = 0,
            localtime: bool = False,
            compress: bool = False,
            encoding: str = "utf-8",
    ) -> None:
        super().__init__(
            filename,
            maxBytes=(max_size or DEFAULT_MAX_SIZE) * MEGABYTE,
            backupCount=max_backups,
            encoding=encoding,
            delay=True,
        )
        self.max_age = max_age
        self.localtime = localtime
        self.compress = compress

        if compress:
            self.namer = _compressed_name
            self.rotator = _compress_file

    def rollover(self) -> None:
        """Rotate the log file now, regardless of its size."""
        with self.lock:
            self.doRollover()

    def doRollover(self) -> None:
        """Move the active file aside, then prune old backups.

        Called by the base class under the handler lock whenever the next
        record would push the file past its maximum size.
        """
        if self.stream:
            self.stream.close()
            self.stream = None

        if os.path.exists(self.baseFilename):
            self.rotate(self.baseFilename, self.rotation_filename(self._backup_filename()))

        self._prune_backups()

        if not self.delay:
            self.stream = self._open()

    def backups(self) -> list[Path]:
        """List the existing backups of this file, oldest first."""
        return [backup.path for backup in sorted(self._find_backups())]

    def _open(self):
        Path(self.baseFilename).parent.mkdir(parents=True, exist_ok=True)
        return super()._open()

    def _now(self) -> datetime.datetime:
        if self.localtime:
            return datetime.datetime.now()
        return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)

    def _backup_filename(self) -> str:
        path = Path(self.baseFilename)
        rotated_at = self._now()

        # Two rotations within the same millisecond must not overwrite each other
        while True:
            stamp = f"{rotated_at:%Y-%m-%dT%H-%M-%S}.{rotated_at.microsecond // 1000:03d}"
            name = str(path.with_name(f"{path.stem}-{stamp}{path.suffix}"))
            if not os.path.exists(self.rotation_filename(name)):
                return name
            rotated_at += datetime.timedelta(milliseconds=1)

    def _find_backups(self) -> list[Backup]:
        path = Path(self.baseFilename)
        prefix = f"{path.stem}-"

        try:
            candidates = list(path.parent.iterdir())
        except OSError:
            return []

        backups = []
        for candidate in candidates:
            name = candidate.name
            if name.endswith(COMPRESS_SUFFIX):
                name = name[:-len(COMPRESS_SUFFIX)]
            if not name.startswith(prefix) or not name.endswith(path.suffix):
                continue

            stamp = name[len(prefix):len(name) - len(path.suffix)]
            try:
                rotated_at = datetime.datetime.strptime(stamp, BACKUP_TIME_FORMAT)
            except ValueError:
                continue
            backups.append(Backup(rotated_at, candidate))

        return backups

    def _prune_backups(self) -> None:
        if not self.backupCount and not self.max_age:
            return

        backups = sorted(self._find_backups(), reverse=True)
        expired = []

        if self.backupCount > 0:
            expired.extend(backups[self.backupCount:])
            backups = backups[:self.backupCount]

        if self.max_age > 0:
            cutoff = self._now() - datetime.timedelta(days=self.max_age)
            expired.extend(backup for backup in backups if backup.rotated_at < cutoff)

        for backup in expired:
            backup.path.unlink(missing_ok=True)


def _compressed_name(default_name: str) -> str:
    return default_name + COMPRESS_SUFFIX


def _compress_file(source: str, dest: str) -> None:
    """Gzip *source* into *dest* and remove the original."""
    with open(source, "rb") as src, gzip.open(dest, "wb") as dst:
        shutil.copyfileobj(src, dst)
    os.remove(source)
