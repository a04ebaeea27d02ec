"""
Model registry: explicit load/unload, scoped acquisition and loader
failures.
"""

import threading

import pytest

from trim.errors import ModelLoadError
from trim.model_handle import ModelRegistry, acquire_model


class DummyModel:
    pass


@pytest.fixture
def counting_registry():
    calls = {'n': 0}

    def loader():
        calls['n'] += 1
        return DummyModel()

    return ModelRegistry({'dummy': loader}), calls


class TestLoadUnload:

    def test_load_and_get(self, counting_registry):
        registry, calls = counting_registry
        model = registry.load('dummy')
        assert registry.is_loaded('dummy')
        assert registry.get('dummy') is model
        assert registry.load('dummy') is model
        assert calls['n'] == 1

    def test_unload(self, counting_registry):
        registry, _ = counting_registry
        registry.load('dummy')
        registry.unload('dummy')
        assert not registry.is_loaded('dummy')
        with pytest.raises(KeyError):
            registry.get('dummy')

    def test_unknown_model(self):
        with pytest.raises(ModelLoadError, match="No model named"):
            ModelRegistry().load('missing')

    def test_loader_failure_chained(self):
        def broken():
            raise IOError("model file corrupt")

        registry = ModelRegistry({'broken': broken})
        with pytest.raises(ModelLoadError) as excinfo:
            registry.load('broken')
        assert isinstance(excinfo.value.__cause__, IOError)
        assert not registry.is_loaded('broken')

    def test_register(self):
        registry = ModelRegistry()
        registry.register('late', DummyModel)
        assert registry.available() == ['late']
        assert isinstance(registry.load('late'), DummyModel)


class TestAcquire:
    """Models are left in the state they were found in."""

    def test_not_loaded_before_not_loaded_after(self, counting_registry):
        registry, _ = counting_registry
        with acquire_model(registry, 'dummy') as model:
            assert isinstance(model, DummyModel)
            assert registry.is_loaded('dummy')
        assert not registry.is_loaded('dummy')

    def test_loaded_before_stays_loaded(self, counting_registry):
        registry, calls = counting_registry
        pinned = registry.load('dummy')
        with acquire_model(registry, 'dummy') as model:
            assert model is pinned
        assert registry.is_loaded('dummy')
        assert calls['n'] == 1

    def test_released_on_error(self, counting_registry):
        registry, _ = counting_registry
        with pytest.raises(RuntimeError):
            with acquire_model(registry, 'dummy'):
                raise RuntimeError("solver blew up")
        assert not registry.is_loaded('dummy')

    def test_nested_requests_share_model(self, counting_registry):
        registry, calls = counting_registry
        with acquire_model(registry, 'dummy') as outer:
            with acquire_model(registry, 'dummy') as inner:
                assert inner is outer
            assert registry.is_loaded('dummy')
        assert not registry.is_loaded('dummy')
        assert calls['n'] == 1

    def test_unload_while_in_use_deferred(self, counting_registry):
        registry, _ = counting_registry
        registry.load('dummy')
        with acquire_model(registry, 'dummy'):
            registry.unload('dummy')
            assert registry.is_loaded('dummy')
        assert not registry.is_loaded('dummy')

    def test_concurrent_requests(self, counting_registry):
        registry, calls = counting_registry
        barrier = threading.Barrier(4)
        errors = []

        def request():
            try:
                with acquire_model(registry, 'dummy'):
                    barrier.wait(timeout=5)
            except Exception as exc:
                errors.append(exc)

        threads = [threading.Thread(target=request) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert not errors
        assert calls['n'] == 1
        assert not registry.is_loaded('dummy')
