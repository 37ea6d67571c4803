from __future__ import annotations

import copy
import threading
from collections.abc import Callable, Hashable

from contact_calib.errors import ModelConfigurationError
from contact_calib.log import get_logger
from contact_calib.model import FootModel


logger = get_logger(__name__)


class ModelPool:
    """
    Initialize-once-per-key cache of independent model clones.

    Each key (by default the calling thread's identity) gets its own deep copy
    of the canonical model, created on first acquire() and kept until clear().
    Lookups of existing entries never lock. The lock is held only while
    inserting a new clone; the clone's init_system() runs after it is released.

    A key must be used by one worker at a time: the clone it maps to is not
    synchronized.
    """

    def __init__(
        self,
        canonical: FootModel,
        *,
        key_func: Callable[[], Hashable] = threading.get_ident,
    ):
        self._canonical = canonical
        self._key_func = key_func
        self._models: dict[Hashable, FootModel] = {}
        self._lock = threading.Lock()
        self.created = 0
        self.inserts_locked = 0

    def __len__(self) -> int:
        return len(self._models)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._models

    def acquire(self, key: Hashable | None = None) -> FootModel:
        if key is None:
            key = self._key_func()

        model = self._models.get(key)
        if model is not None:
            return model

        with self._lock:
            self.inserts_locked += 1
            model = self._models.get(key)
            if model is not None:
                return model
            model = copy.deepcopy(self._canonical)
            self._models[key] = model
            self.created += 1

        try:
            model.init_system()
        except ModelConfigurationError:
            with self._lock:
                self._models.pop(key, None)
            raise

        logger.debug('model_clone_created', key=key, clones=len(self._models))
        return model

    def clear(self) -> None:
        with self._lock:
            self._models.clear()
