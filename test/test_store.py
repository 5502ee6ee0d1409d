# test/test_store.py
from concurrent.futures import ThreadPoolExecutor

import pytest
from pydantic import ValidationError

from nodb_board.errors import StoreUnavailable
from nodb_board.models import Post
from nodb_board.store import InMemoryPostStore


def make_post(i: int) -> Post:
    return Post(name=f"n{i}", subject=f"s{i}", body=f"b{i}")


def test_snapshot_is_newest_first():
    store = InMemoryPostStore()
    posts = [make_post(i) for i in range(10)]
    for p in posts:
        store.append(p)

    assert store.snapshot() == tuple(reversed(posts))
    assert len(store) == 10


def test_snapshot_is_detached_from_later_appends():
    store = InMemoryPostStore()
    store.append(make_post(0))
    snap = store.snapshot()
    store.append(make_post(1))

    assert len(snap) == 1
    assert len(store.snapshot()) == 2


def test_posts_are_immutable():
    post = make_post(0)
    with pytest.raises(ValidationError):
        post.name = "changed"


def test_ids_are_unique():
    assert len({make_post(i).id for i in range(1000)}) == 1000


def test_threaded_appends_lose_nothing():
    store = InMemoryPostStore()
    with ThreadPoolExecutor(max_workers=16) as pool:
        list(pool.map(lambda i: store.append(make_post(i)), range(500)))

    snap = store.snapshot()
    assert len(snap) == 500
    assert {p.subject for p in snap} == {f"s{i}" for i in range(500)}


def test_lock_timeout_is_recoverable():
    store = InMemoryPostStore(lock_timeout=0.01)
    store._lock.acquire()
    try:
        with pytest.raises(StoreUnavailable):
            store.append(make_post(0))
        with pytest.raises(StoreUnavailable):
            store.snapshot()
    finally:
        store._lock.release()

    store.append(make_post(1))
    assert [p.subject for p in store.snapshot()] == ["s1"]


class ExplodingList(list):
    def append(self, item):
        raise MemoryError("boom")


def test_failed_writer_does_not_wedge_store():
    store = InMemoryPostStore(lock_timeout=0.01)
    store._posts = ExplodingList()

    with pytest.raises(StoreUnavailable):
        store.append(make_post(0))

    # Lock was released: readers still get through
    assert store.snapshot() == ()
    assert not store._lock.locked()
