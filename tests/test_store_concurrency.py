import asyncio
import multiprocessing
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

import pytest

from countdown_api.errors import NotFoundError
from countdown_api.schemas import CountdownCreate
from countdown_api.store import CountdownStore, WriteQueue

FUTURE = datetime(2099, 1, 1, tzinfo=timezone.utc)


def payload(title, target=FUTURE):
    return CountdownCreate(title=title, target=target)


@pytest.fixture
def store(tmp_path):
    s = CountdownStore(tmp_path / "countdowns.json")
    s.initialize()
    yield s
    s.close()


class TestWriteQueue:
    def test_jobs_run_in_submission_order_on_one_thread(self):
        q = WriteQueue()
        seen = []
        threads = set()

        def job(i):
            threads.add(threading.get_ident())
            seen.append(i)
            return i

        futures = [q.submit(lambda i=i: job(i)) for i in range(100)]
        assert [f.result(timeout=10) for f in futures] == list(range(100))
        q.close()
        assert seen == list(range(100))
        assert len(threads) == 1

    def test_failing_job_does_not_block_the_next(self):
        q = WriteQueue()

        def boom():
            raise ValueError("boom")

        failed = q.submit(boom)
        ok = q.submit(lambda: "ok")
        with pytest.raises(ValueError):
            failed.result(timeout=10)
        assert ok.result(timeout=10) == "ok"
        q.close()

    def test_close_drains_queued_jobs(self):
        q = WriteQueue()
        gate = threading.Event()
        done = []
        q.submit(gate.wait)
        futures = [q.submit(lambda i=i: done.append(i)) for i in range(5)]
        gate.set()
        q.close()
        assert done == [0, 1, 2, 3, 4]
        assert all(f.done() for f in futures)


class TestConcurrentMutations:
    def test_parallel_inserts_are_all_kept_with_unique_ids(self, store):
        with ThreadPoolExecutor(max_workers=16) as pool:
            created = list(pool.map(lambda i: store.insert(payload(f"Event {i}")), range(40)))

        ids = [c["id"] for c in created]
        assert len(set(ids)) == 40
        stored = store.load()
        assert len(stored) == 42
        assert {c["id"] for c in created} <= {c["id"] for c in stored}

    def test_concurrent_updates_to_different_ids_are_both_kept(self, store):
        first, second = store.load()
        barrier = threading.Barrier(2)

        def rename(countdown_id, title):
            barrier.wait()
            return store.update(countdown_id, payload(title))

        with ThreadPoolExecutor(max_workers=2) as pool:
            a = pool.submit(rename, first["id"], "First renamed")
            b = pool.submit(rename, second["id"], "Second renamed")
            a.result(timeout=10)
            b.result(timeout=10)

        titles = {c["id"]: c["title"] for c in store.list()}
        assert titles == {first["id"]: "First renamed", second["id"]: "Second renamed"}

    def test_mixed_concurrent_writes_lose_nothing(self, store):
        seeds = store.load()

        def work(i):
            if i == 0:
                store.update(seeds[0]["id"], payload("Updated"))
            elif i == 1:
                store.delete(seeds[1]["id"])
            else:
                store.insert(payload(f"New {i}"))

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(work, range(20)))

        stored = store.load()
        titles = sorted(c["title"] for c in stored)
        assert titles == sorted(["Updated"] + [f"New {i}" for i in range(2, 20)])

    def test_readers_never_observe_a_torn_file(self, store):
        stop = threading.Event()
        observed = []
        errors = []

        def reader():
            while not stop.is_set():
                try:
                    observed.append(len(store.load()))
                except Exception as exc:  # any failure here is a torn read
                    errors.append(exc)

        readers = [threading.Thread(target=reader) for _ in range(3)]
        for t in readers:
            t.start()
        try:
            for i in range(60):
                store.insert(payload(f"Event {i}"))
        finally:
            stop.set()
            for t in readers:
                t.join()

        assert errors == []
        assert observed
        assert set(observed) <= set(range(2, 63))

    def test_delete_of_missing_id_raises_under_concurrency_too(self, store):
        victim = store.load()[0]["id"]
        with ThreadPoolExecutor(max_workers=4) as pool:
            futures = [pool.submit(store.delete, victim) for _ in range(4)]
        outcomes = [f.exception() for f in futures]
        assert sum(e is None for e in outcomes) == 1
        assert sum(isinstance(e, NotFoundError) for e in outcomes) == 3


def _insert_from_own_store(path, prefix, count, barrier):
    own = CountdownStore(path)
    barrier.wait(timeout=30)
    try:
        for i in range(count):
            own.insert(payload(f"{prefix} {i}"))
    finally:
        own.close()


class TestSharedFile:
    def test_two_stores_on_one_path_lose_nothing(self, store):
        other = CountdownStore(store.path)
        barrier = threading.Barrier(2)

        def fill(target, prefix):
            barrier.wait()
            for i in range(50):
                target.insert(payload(f"{prefix} {i}"))

        try:
            with ThreadPoolExecutor(max_workers=2) as pool:
                a = pool.submit(fill, store, "A")
                b = pool.submit(fill, other, "B")
                a.result(timeout=30)
                b.result(timeout=30)
        finally:
            other.close()

        stored = store.load()
        assert len(stored) == 102
        assert len({c["id"] for c in stored}) == 102

    @pytest.mark.skipif("fork" not in multiprocessing.get_all_start_methods(), reason="needs fork")
    def test_writer_processes_lose_nothing(self, store):
        ctx = multiprocessing.get_context("fork")
        barrier = ctx.Barrier(2)
        workers = [
            ctx.Process(target=_insert_from_own_store, args=(str(store.path), prefix, 100, barrier))
            for prefix in ("P1", "P2")
        ]
        for w in workers:
            w.start()
        for w in workers:
            w.join(timeout=60)
        assert [w.exitcode for w in workers] == [0, 0]

        titles = [c["title"] for c in store.load()]
        assert len(titles) == 202
        for prefix in ("P1", "P2"):
            assert [t for t in titles if t.startswith(prefix + " ")] == [f"{prefix} {i}" for i in range(100)]


class TestAsyncInterface:
    def test_async_writes_complete_in_submission_order(self, store):
        async def scenario():
            return await asyncio.gather(*(store.ainsert(payload(f"Event {i}")) for i in range(10)))

        created = asyncio.run(scenario())
        stored_ids = [c["id"] for c in store.load()][2:]
        assert stored_ids == [c["id"] for c in created]
        assert [c["title"] for c in store.load()][2:] == [f"Event {i}" for i in range(10)]

    def test_async_update_delete_and_list(self, store):
        async def scenario():
            first, second = await store.alist()
            updated = await store.aupdate(first["id"], payload("Async", FUTURE + timedelta(days=1)))
            await store.adelete(second["id"])
            with pytest.raises(NotFoundError):
                await store.aupdate("nonexistent-id", payload("Nope"))
            return updated, await store.alist()

        updated, items = asyncio.run(scenario())
        assert items == [updated]
        assert updated["title"] == "Async"

    def test_cancelled_caller_does_not_drop_its_write(self, store):
        gate = threading.Event()

        async def scenario():
            store._queue.submit(gate.wait)
            task = asyncio.ensure_future(store.ainsert(payload("Survivor")))
            await asyncio.sleep(0)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task
            gate.set()

        asyncio.run(scenario())
        store.close()
        assert [c["title"] for c in store.load()][-1] == "Survivor"
