"""Tests for the per-thread model clone cache."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor

import numpy as np
import pytest

from contact_calib.contact import ContactElement
from contact_calib.errors import ModelConfigurationError
from contact_calib.model import FootModel, State
from contact_calib.model_pool import ModelPool


def _acquire_from_threads(pool: ModelPool, n_threads: int, repeats: int = 1) -> list:
    barrier = threading.Barrier(n_threads)

    def work(_):
        barrier.wait()
        models = [pool.acquire() for _ in range(repeats)]
        assert all(m is models[0] for m in models)
        return threading.get_ident(), models[0]

    with ThreadPoolExecutor(max_workers=n_threads) as ex:
        return list(ex.map(work, range(n_threads)))


class TestAcquire:
    """ModelPool.acquire()."""

    def test_same_thread_same_clone(self, foot_model) -> None:
        pool = ModelPool(foot_model)
        first = pool.acquire()
        assert pool.acquire() is first
        assert first is not foot_model
        assert first.is_initialized()
        assert len(pool) == 1
        assert pool.created == 1

    def test_lock_taken_only_on_insert(self, foot_model) -> None:
        pool = ModelPool(foot_model)
        for _ in range(20):
            pool.acquire()
        assert pool.inserts_locked == 1

    def test_one_clone_per_thread(self, foot_model) -> None:
        pool = ModelPool(foot_model)
        results = _acquire_from_threads(pool, n_threads=8, repeats=5)
        idents = {ident for ident, _ in results}
        models = {id(model) for _, model in results}
        assert len(idents) == 8
        assert len(models) == 8
        assert len(pool) == 8
        assert pool.created == 8
        assert pool.inserts_locked == 8

    def test_explicit_keys(self, foot_model) -> None:
        pool = ModelPool(foot_model)
        a = pool.acquire('worker-a')
        b = pool.acquire('worker-b')
        assert a is not b
        assert pool.acquire('worker-a') is a
        assert 'worker-a' in pool

    def test_custom_key_func(self, foot_model) -> None:
        pool = ModelPool(foot_model, key_func=lambda: 'shared')
        assert pool.acquire() is pool.acquire('shared')

    def test_canonical_not_initialized_or_mutated(self, foot_model) -> None:
        pool = ModelPool(foot_model)
        clone = pool.acquire()
        clone.markers[0].location_m[1] = 0.123
        assert foot_model.markers[0].location_m[1] == -0.027
        assert not foot_model.is_initialized()

    def test_clones_are_independent(self, foot_model, mapping) -> None:
        pool = ModelPool(foot_model)
        a = pool.acquire('a')
        b = pool.acquire('b')
        state_q = np.array([0.0, 0.0, 0.02, 0.0])

        def vertical_force(model) -> float:
            s = State(0.0, state_q, np.zeros(4))
            model.realize_velocity(s)
            return sum(c.calc_contact_force(model, s)[1] for c in model.contacts)

        before = vertical_force(b)
        mapping.apply(a, np.ones(12))
        a.refresh()
        assert vertical_force(a) != before
        assert vertical_force(b) == before

    def test_init_failure_is_fatal_and_not_cached(self, foot_model) -> None:
        foot_model.contacts.append(ContactElement('ghost_contact', 'ghost'))
        pool = ModelPool(foot_model)
        with pytest.raises(ModelConfigurationError):
            pool.acquire()
        assert len(pool) == 0

    def test_clear(self, foot_model) -> None:
        pool = ModelPool(foot_model)
        pool.acquire()
        pool.clear()
        assert len(pool) == 0

    def test_init_runs_outside_the_lock(self, foot_model, monkeypatch) -> None:
        pool = ModelPool(foot_model)
        lock_held: list[bool] = []
        init_system = FootModel.init_system

        def recording_init(model):
            lock_held.append(pool._lock.locked())
            init_system(model)

        monkeypatch.setattr(FootModel, 'init_system', recording_init)
        pool.acquire('a')
        pool.acquire('a')
        pool.acquire('b')
        assert lock_held == [False, False]
