import random
import threading
import time

from src.services.executor import run_all


def test_results_keep_input_order():
    items = list(range(25))

    def work(x):
        time.sleep(random.uniform(0, 0.005))
        return x * x

    for width in (1, 3, 8, 50):
        assert run_all(items, width, work) == [x * x for x in items]


def test_single_worker_runs_sequentially():
    seen = []
    active = 0
    peak = 0
    lock = threading.Lock()

    def work(x):
        nonlocal active, peak
        with lock:
            active += 1
            peak = max(peak, active)
            seen.append(x)
        time.sleep(0.001)
        with lock:
            active -= 1
        return x

    run_all(list(range(10)), 1, work)

    assert seen == list(range(10))
    assert peak == 1


def test_non_positive_concurrency_uses_one_worker():
    names = set()

    def work(x):
        names.add(threading.current_thread().name)
        return x

    assert run_all([1, 2, 3], 0, work) == [1, 2, 3]
    assert len(names) == 1


def test_concurrency_is_bounded():
    active = 0
    peak = 0
    lock = threading.Lock()

    def work(x):
        nonlocal active, peak
        with lock:
            active += 1
            peak = max(peak, active)
        time.sleep(0.01)
        with lock:
            active -= 1
        return x

    run_all(list(range(20)), 3, work)

    assert 1 <= peak <= 3


def test_failing_task_does_not_stop_siblings():
    def work(x):
        if x == 3:
            raise ValueError("bad symbol")
        return x + 100

    results = run_all(list(range(8)), 2, work)

    assert results[3] is None
    assert [r for i, r in enumerate(results) if i != 3] == [100, 101, 102, 104, 105, 106, 107]


def test_empty_input():
    assert run_all([], 4, lambda x: x) == []
