import datetime
import gzip
import logging
import re
import threading

import pytest

from logwire import RotatingFileSink
from logwire.rotation import MEGABYTE

BACKUP_NAME = re.compile(r"^app-\d{4}-\d{2}-\d{2}T\d{2}-\d{2}-\d{2}\.\d{3}\.log(\.gz)?$")


class Clock:
    """Deterministic clock, one second per call."""

    def __init__(self, start=datetime.datetime(2024, 5, 1, 12, 0, 0)):
        self.now = start

    def __call__(self):
        self.now += datetime.timedelta(seconds=1)
        return self.now


def stdlib_logger(handler, name):
    logger = logging.Logger(name, logging.DEBUG)
    logger.propagate = False
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    return logger


@pytest.fixture
def logfile(tmp_path):
    return tmp_path / "logs" / "app.log"


@pytest.fixture
def sink(logfile):
    handler = RotatingFileSink(logfile, max_backups=0)
    handler._now = Clock()
    yield handler
    handler.close()


def test_construction_is_lazy(logfile):
    handler = RotatingFileSink(logfile)

    assert not logfile.parent.exists()
    assert handler.maxBytes == 100 * MEGABYTE
    handler.close()


def test_first_record_creates_directory_and_file(sink, logfile):
    stdlib_logger(sink, "lazy").info("first")

    assert logfile.read_text(encoding="utf-8") == "first\n"


def test_rollover_moves_existing_file_aside(sink, logfile):
    logfile.parent.mkdir(parents=True)
    logfile.write_text("old content\n", encoding="utf-8")

    sink.rollover()
    stdlib_logger(sink, "startup").info("new content")

    backups = sink.backups()
    assert len(backups) == 1
    assert BACKUP_NAME.match(backups[0].name)
    assert backups[0].read_text(encoding="utf-8") == "old content\n"
    assert logfile.read_text(encoding="utf-8") == "new content\n"


def test_rollover_without_file_creates_no_backup(sink):
    sink.rollover()

    assert sink.backups() == []


def test_size_based_rotation(sink, logfile):
    sink.maxBytes = 50
    logger = stdlib_logger(sink, "size")

    for i in range(6):
        logger.info("record %d %s", i, "x" * 20)

    backups = sink.backups()
    assert len(backups) >= 2

    lines = []
    for path in [*backups, logfile]:
        lines.extend(path.read_text(encoding="utf-8").splitlines())
    assert lines == [f"record {i} {'x' * 20}" for i in range(6)]


def test_backups_are_pruned_by_count(logfile):
    handler = RotatingFileSink(logfile, max_backups=2)
    handler._now = Clock()
    logger = stdlib_logger(handler, "count")

    for i in range(5):
        logger.info("generation %d", i)
        handler.rollover()

    backups = handler.backups()
    assert [path.read_text(encoding="utf-8") for path in backups] == ["generation 3\n", "generation 4\n"]
    handler.close()


def test_backups_are_pruned_by_age(logfile):
    logfile.parent.mkdir(parents=True)
    stale = logfile.with_name("app-2024-03-01T00-00-00.000.log")
    recent = logfile.with_name("app-2024-04-29T00-00-00.000.log.gz")
    unrelated = logfile.with_name("app-notes.log")
    for path in (stale, recent, unrelated):
        path.write_text("x", encoding="utf-8")

    handler = RotatingFileSink(logfile, max_age=7)
    handler._now = Clock()
    handler.rollover()

    assert not stale.exists()
    assert recent.exists()
    assert unrelated.exists()
    handler.close()


def test_compressed_backups(logfile):
    handler = RotatingFileSink(logfile, compress=True)
    logger = stdlib_logger(handler, "compress")
    logger.info("squeeze me")

    handler.rollover()

    backups = handler.backups()
    assert len(backups) == 1
    assert backups[0].name.endswith(".log.gz")
    assert BACKUP_NAME.match(backups[0].name)
    with gzip.open(backups[0], "rt", encoding="utf-8") as f:
        assert f.read() == "squeeze me\n"
    assert not logfile.exists()
    handler.close()


def test_rotations_within_one_millisecond_do_not_collide(logfile):
    frozen = datetime.datetime(2024, 5, 1, 12, 0, 0)
    handler = RotatingFileSink(logfile)
    handler._now = lambda: frozen
    logger = stdlib_logger(handler, "frozen")

    for i in range(3):
        logger.info("generation %d", i)
        handler.rollover()

    assert len(handler.backups()) == 3
    handler.close()


def test_concurrent_writes_keep_records_whole(logfile):
    handler = RotatingFileSink(logfile)
    handler.maxBytes = 2048
    logger = stdlib_logger(handler, "threads")

    def worker(n):
        for i in range(200):
            logger.info("worker=%02d record=%03d %s", n, i, "y" * 30)

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    handler.close()

    lines = []
    for path in [*handler.backups(), logfile]:
        lines.extend(path.read_text(encoding="utf-8").splitlines())

    record = re.compile(r"^worker=\d{2} record=\d{3} y{30}$")
    assert len(lines) == 8 * 200
    assert all(record.match(line) for line in lines)
    assert len(set(lines)) == len(lines)
