"""Tests for last-request-wins sequencing."""

import threading

from configdiff.sequencing import RequestSequencer


def test_next_id_increments_per_client():
    sequencer = RequestSequencer()

    assert sequencer.next_id("a") == 1
    assert sequencer.next_id("a") == 2
    assert sequencer.next_id("b") == 1


def test_older_request_is_stale():
    sequencer = RequestSequencer()
    first = sequencer.begin("ui")
    second = sequencer.begin("ui")

    assert not sequencer.is_current("ui", first)
    assert sequencer.is_current("ui", second)


def test_explicit_ids_never_roll_back():
    sequencer = RequestSequencer()
    sequencer.begin("ui", 5)
    sequencer.begin("ui", 3)

    assert sequencer.latest("ui") == 5
    assert not sequencer.is_current("ui", 3)
    assert sequencer.is_current("ui", 5)


def test_unknown_client_is_current():
    assert RequestSequencer().is_current("nobody", 1)


def test_least_recently_seen_client_is_evicted():
    sequencer = RequestSequencer(capacity=2)
    sequencer.begin("a")
    sequencer.begin("b")
    sequencer.begin("a")
    sequencer.begin("c")

    assert len(sequencer) == 2
    assert sequencer.latest("b") is None
    assert sequencer.latest("a") == 2


def test_concurrent_allocation_is_unique():
    sequencer = RequestSequencer()
    seen = []
    lock = threading.Lock()

    def worker():
        for _ in range(100):
            request_id = sequencer.next_id("shared")
            with lock:
                seen.append(request_id)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(seen) == list(range(1, 801))
