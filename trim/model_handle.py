"""
Model Handle

Named evaluator models with explicit load/unload and scoped acquisition.

A model loaded with ModelRegistry.load() stays loaded until unload(). A
model brought in by acquire_model() is released when the last request
using it exits, whatever the exit path:

    registry = ModelRegistry({'UltraStick25e': lambda: RigidBodyModel(ULTRASTICK25E)})

    with acquire_model(registry, 'UltraStick25e') as model:
        solution = solve_trim(problem, model)

    registry.is_loaded('UltraStick25e')   # False
"""

import logging
import threading
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Set

from trim.errors import ModelLoadError

logger = logging.getLogger(__name__)

Loader = Callable[[], Any]


class ModelRegistry:
    """
    Thread-safe table of model loaders and loaded model instances.

    Each loaded model carries a count of active requests and a pinned flag;
    it is dropped when it is unpinned and no request is using it.
    """

    def __init__(self, loaders: Optional[Mapping[str, Loader]] = None):
        self._loaders: Dict[str, Loader] = dict(loaders or {})
        self._models: Dict[str, Any] = {}
        self._users: Dict[str, int] = {}
        self._pinned: Set[str] = set()
        self._lock = threading.Lock()

    def register(self, name: str, loader: Loader) -> None:
        with self._lock:
            self._loaders[name] = loader

    def available(self) -> List[str]:
        return sorted(self._loaders)

    def is_loaded(self, name: str) -> bool:
        with self._lock:
            return name in self._models

    def _load_locked(self, name: str) -> Any:
        if name in self._models:
            return self._models[name]
        if name not in self._loaders:
            raise ModelLoadError(
                f"No model named '{name}'. Available: {sorted(self._loaders)}"
            )
        try:
            model = self._loaders[name]()
        except Exception as exc:
            raise ModelLoadError(f"Failed to load model '{name}': {exc}") from exc
        self._models[name] = model
        logger.info("Loaded model %s", name)
        return model

    def _drop_locked(self, name: str) -> None:
        if name in self._pinned or self._users.get(name, 0) > 0:
            return
        if self._models.pop(name, None) is not None:
            logger.info("Unloaded model %s", name)
        self._users.pop(name, None)

    def load(self, name: str) -> Any:
        """Load and pin a model; it stays loaded until unload()."""
        with self._lock:
            model = self._load_locked(name)
            self._pinned.add(name)
            return model

    def unload(self, name: str) -> None:
        """Unpin a model; it is dropped once no request is using it."""
        with self._lock:
            self._pinned.discard(name)
            self._drop_locked(name)

    def get(self, name: str) -> Any:
        with self._lock:
            try:
                return self._models[name]
            except KeyError:
                raise KeyError(f"Model '{name}' is not loaded") from None

    def acquire(self, name: str) -> Any:
        with self._lock:
            model = self._load_locked(name)
            self._users[name] = self._users.get(name, 0) + 1
            return model

    def release(self, name: str) -> None:
        with self._lock:
            users = self._users.get(name, 0) - 1
            self._users[name] = max(users, 0)
            self._drop_locked(name)


@contextmanager
def acquire_model(registry: ModelRegistry, name: str) -> Iterator[Any]:
    """
    Use a model for the duration of a block.

    Loads the model if needed. A model that was not loaded on entry is
    unloaded on exit; one that was loaded stays loaded.

    Raises:
        ModelLoadError: model unknown or its loader failed
    """
    model = registry.acquire(name)
    try:
        yield model
    finally:
        registry.release(name)
