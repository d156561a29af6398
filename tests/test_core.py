import threading
import time

import pytest

from core.models import HostReport, PortInfo
from core.queue import ClosableQueue
from core.state import RWLock, ScanHistory, ScanSlot
from core.targets import expand_ip_range


def test_queue_drains_then_reports_closed():
    q = ClosableQueue(3, poll_s=0.01)
    assert q.put(1) and q.put(2)
    q.close()
    assert q.get() == 1
    assert q.get() == 2
    assert q.get() is None


def test_queue_get_stops_on_event():
    q = ClosableQueue(3, poll_s=0.01)
    q.put(7)
    stop = threading.Event()
    stop.set()
    assert q.get(stop) is None


def test_queue_put_gives_up_when_full_and_stopped():
    q = ClosableQueue(1, poll_s=0.01)
    stop = threading.Event()
    assert q.put(1, stop)
    stop.set()
    assert q.put(2, stop) is False


def test_queue_rejects_none_and_put_after_close():
    q = ClosableQueue(2, poll_s=0.01)
    with pytest.raises(ValueError):
        q.put(None)
    q.close()
    with pytest.raises(RuntimeError):
        q.put(1)


def test_history_newest_first_and_clear():
    history = ScanHistory()
    history.record(HostReport(host="a"))
    history.record(HostReport(host="b", ports=[PortInfo(port=22, service="SSH")]))
    assert [r.host for r in history.list_reports()] == ["b", "a"]
    assert len(history) == 2
    history.clear()
    assert history.list_reports() == []


def test_rwlock_readers_share_writer_waits():
    lock = RWLock()
    release = threading.Event()
    second_reader = threading.Event()
    wrote = threading.Event()

    def hold_read():
        with lock.read():
            release.wait(1)

    def other_read():
        with lock.read():
            second_reader.set()

    def write():
        with lock.write():
            wrote.set()

    holder = threading.Thread(target=hold_read)
    holder.start()
    time.sleep(0.02)
    threading.Thread(target=other_read).start()
    assert second_reader.wait(0.5)

    writer = threading.Thread(target=write)
    writer.start()
    assert not wrote.wait(0.05)
    release.set()
    assert wrote.wait(0.5)
    holder.join()


def test_rwlock_waiting_writer_blocks_new_readers():
    lock = RWLock()
    release = threading.Event()
    order = []

    def hold_read():
        with lock.read():
            release.wait(1)

    def write():
        with lock.write():
            order.append("write")

    def late_read():
        with lock.read():
            order.append("read")

    holder = threading.Thread(target=hold_read)
    holder.start()
    time.sleep(0.02)
    writer = threading.Thread(target=write)
    writer.start()
    time.sleep(0.02)
    reader = threading.Thread(target=late_read)
    reader.start()
    reader.join(0.1)
    assert reader.is_alive()
    assert order == []

    release.set()
    for t in (holder, writer, reader):
        t.join(1)
    assert order == ["write", "read"]
    writer.join()


def test_scan_slot_single_occupant():
    slot = ScanSlot()
    assert slot.acquire()
    assert slot.in_progress
    assert not slot.acquire()
    slot.release()
    assert not slot.in_progress


def test_expand_last_octet_range():
    assert expand_ip_range("192.168.1.1-192.168.1.3") == ["192.168.1.1", "192.168.1.2", "192.168.1.3"]


@pytest.mark.parametrize(
    "spec",
    ["192.168.1.5-192.168.1.1", "192.168.1.1-192.168.2.3", "192.168.1.1-5", "300.1.1.1-300.1.1.2", ""],
)
def test_expand_rejects_bad_ranges(spec):
    with pytest.raises(ValueError):
        expand_ip_range(spec)


def test_expand_cidr_and_single_host():
    assert expand_ip_range("10.0.0.0/30") == ["10.0.0.1", "10.0.0.2"]
    assert expand_ip_range("10.0.0.7/32") == ["10.0.0.7"]
    assert expand_ip_range("scanme.example") == ["scanme.example"]
    assert expand_ip_range("my-host.lan") == ["my-host.lan"]
