import threading
import time

import pytest

from spotcheck import analyser as analyser_mod
from spotcheck.analyser import DuplicateFileAnalyser
from spotcheck.config import AnalyserConfig
from spotcheck.errors import HashError, LifecycleError
from .conftest import write_file


def _collect_errors(analyser):
    seen = []
    analyser.consume_errors(seen.append)
    return seen


def test_end_to_end_scenario(sandbox):
    a = write_file(sandbox / "a.txt", b"0123456789")
    b = write_file(sandbox / "b.txt", b"0123456789")
    c = write_file(sandbox / "c.txt", b"abcdefghij")
    missing = sandbox / "missing.txt"
    big = bytes(i % 253 for i in range(1024 * 1024))
    big1 = write_file(sandbox / "big1.bin", big)
    big2 = write_file(sandbox / "big2.bin", big)

    analyser = DuplicateFileAnalyser(AnalyserConfig(workers=4))
    errors = _collect_errors(analyser)
    for p, size in [(a, 10), (b, 10), (c, 10), (missing, 10), (big1, len(big)), (big2, len(big))]:
        analyser.submit(str(p), size)
    analyser.finish()

    groups = sorted(sorted(g) for g in analyser.groups())
    assert sorted([str(a), str(b)]) in groups
    assert [str(c)] in groups
    assert sorted([str(big1), str(big2)]) in groups
    assert len(groups) == 3
    assert all(str(missing) not in g for g in groups)

    assert len(errors) == 1
    assert isinstance(errors[0], HashError)
    assert errors[0].path == str(missing)
    assert str(missing) in str(errors[0])

    counters = analyser.stats()
    assert counters["submitted"] == 6
    assert counters["hashed"] == 5
    assert counters["errors"] == 1
    assert analyser.dump() == "5 files analysed, 2 size buckets"


def test_different_sizes_never_group(sandbox):
    p1 = write_file(sandbox / "one.bin", b"same")
    p2 = write_file(sandbox / "two.bin", b"same")
    analyser = DuplicateFileAnalyser(AnalyserConfig(workers=2))
    # sizes are taken as submitted, the content is identical
    analyser.submit(str(p1), 4)
    analyser.submit(str(p2), 5)
    analyser.finish()
    assert sorted(analyser.groups()) == [[str(p1)], [str(p2)]]


@pytest.mark.parametrize("workers", [1, 2, 3, 8, 40])
def test_no_losses_or_duplicates(sandbox, workers):
    n = 40
    paths = []
    for i in range(n):
        paths.append(str(write_file(sandbox / f"f{i}.txt", f"content-{i % 7}".ljust(20))))

    analyser = DuplicateFileAnalyser(AnalyserConfig(workers=workers))
    errors = _collect_errors(analyser)
    submitters = [
        threading.Thread(target=lambda chunk=paths[k::4]: [analyser.submit(p, 20) for p in chunk])
        for k in range(4)
    ]
    for t in submitters:
        t.start()
    for t in submitters:
        t.join()
    analyser.finish()

    flat = [p for g in analyser.groups() for p in g]
    assert len(flat) == n
    assert sorted(flat) == sorted(paths)
    assert errors == []
    assert len(analyser.groups()) == 7


def test_finish_without_submissions():
    analyser = DuplicateFileAnalyser()
    analyser.finish()
    assert analyser.groups() == []
    assert analyser.finished


def test_finish_waits_for_slow_error_handler(sandbox):
    analyser = DuplicateFileAnalyser(AnalyserConfig(workers=3))
    handled = []

    def slow(err):
        time.sleep(0.05)
        handled.append(err.path)

    analyser.consume_errors(slow)
    for i in range(5):
        analyser.submit(str(sandbox / f"absent-{i}"), 10)
    analyser.finish()
    assert sorted(handled) == sorted(str(sandbox / f"absent-{i}") for i in range(5))


def test_lifecycle_misuse_is_loud(sandbox):
    p = write_file(sandbox / "x.txt", b"data")
    analyser = DuplicateFileAnalyser(AnalyserConfig(workers=1))
    with pytest.raises(LifecycleError):
        analyser.groups()
    with pytest.raises(ValueError):
        analyser.submit(str(p), 0)
    analyser.finish()
    with pytest.raises(LifecycleError):
        analyser.finish()
    with pytest.raises(LifecycleError):
        analyser.submit(str(p), 4)


def test_cancel_skips_pending_items(sandbox):
    analyser = DuplicateFileAnalyser(AnalyserConfig(workers=2))
    analyser.cancel()
    for i in range(6):
        analyser.submit(str(write_file(sandbox / f"c{i}.txt", b"abc")), 3)
    analyser.finish()
    assert analyser.groups() == []
    assert analyser.stats()["cancelled"] == 6
    assert analyser.cancelled


def test_unreadable_directory_path_is_reported(sandbox):
    d = sandbox / "adir"
    d.mkdir()
    analyser = DuplicateFileAnalyser(AnalyserConfig(workers=1))
    errors = _collect_errors(analyser)
    analyser.submit(str(d), 10)
    analyser.finish()
    assert [e.path for e in errors] == [str(d)]
    assert analyser.groups() == []


def test_submit_blocks_while_workers_are_saturated(monkeypatch):
    started = threading.Event()
    release = threading.Event()

    def stalled_fingerprint(path, size, *rest):
        started.set()
        release.wait(5)
        return 1

    monkeypatch.setattr(analyser_mod, "fingerprint", stalled_fingerprint)
    analyser = DuplicateFileAnalyser(AnalyserConfig(workers=1))

    analyser.submit("first", 10)
    assert started.wait(2)
    analyser.submit("queued", 10)  # fills the one-slot intake queue

    done = threading.Event()

    def third():
        analyser.submit("blocked", 10)
        done.set()

    t = threading.Thread(target=third)
    t.start()
    assert not done.wait(0.2)

    release.set()
    assert done.wait(5)
    t.join()
    analyser.finish()
    assert sorted(analyser.groups()) == [sorted(["first", "queued", "blocked"])]


def test_insert_failure_is_reported_and_worker_survives(sandbox, monkeypatch):
    good = [str(write_file(sandbox / f"g{i}.txt", b"same")) for i in range(3)]
    bad = str(write_file(sandbox / "bad.txt", b"same"))

    analyser = DuplicateFileAnalyser(AnalyserConfig(workers=1))
    real_insert = analyser.index.insert

    def flaky_insert(size, digest, path):
        if path == bad:
            raise RuntimeError("index exploded")
        real_insert(size, digest, path)

    monkeypatch.setattr(analyser.index, "insert", flaky_insert)
    errors = _collect_errors(analyser)
    for p in [good[0], bad, good[1], good[2]]:
        analyser.submit(p, 4)
    analyser.finish()

    assert [e.path for e in errors] == [bad]
    assert "index exploded" in str(errors[0])
    assert sorted(analyser.groups()) == [sorted(good)]
    assert analyser.stats()["errors"] == 1
