import json

from pkg_authstate.adapters.storage import MemoryStorage
from pkg_authstate.application.state_store import PersistentStateStore
from pkg_authstate.domain.entities import AuthState
from pkg_authstate.domain.value_objects import TokenBundle

KEY = "auth_state"


def test_load_defaults_when_absent_or_malformed():
    storage = MemoryStorage()
    default = AuthState(auth=TokenBundle("dev"))
    store = PersistentStateStore(storage, KEY, default=default)
    assert store.load() == default

    storage.set(KEY, "{not json")
    assert store.load() == default

    storage.set(KEY, json.dumps({"auth": {"token": 1}}))
    assert store.load() == default

    for malformed in (
        '{"auth": "abc"}',
        '{"renew": ["x"]}',
        '{"auth": {"token": "a", "expiresAt": 1e400}}',
        '{"auth": {"token": "a", "expiresAt": NaN}}',
    ):
        storage.set(KEY, malformed)
        assert store.load() == default


def test_load_resets_initialized():
    storage = MemoryStorage()
    storage.set(KEY, json.dumps({"initialized": True, "auth": {"token": "abc", "expiresAt": None}}))
    store = PersistentStateStore(storage, KEY)

    state = store.load()
    assert state.initialized is False
    assert state.auth == TokenBundle("abc")
    assert store.get() is state


def test_set_persists_and_notifies():
    storage = MemoryStorage()
    store = PersistentStateStore(storage, KEY)
    seen = []
    store.subscribe(lambda state, previous: seen.append((state, previous)))

    first = AuthState(initialized=True, auth=TokenBundle("abc", expires_at=10))
    store.set(first)

    assert json.loads(storage.get(KEY)) == {
        "initialized": True,
        "auth": {"token": "abc", "expiresAt": 10},
    }
    assert seen == [(first, AuthState())]


def test_set_with_function_reads_latest():
    store = PersistentStateStore(MemoryStorage(), KEY)
    store.set(AuthState(initialized=True, user="u"))

    result = store.set(lambda prev: prev.evolve(auth=TokenBundle("abc")))
    assert result == AuthState(initialized=True, auth=TokenBundle("abc"), user="u")
    assert store.get() == result


def test_equal_state_is_not_committed():
    storage = MemoryStorage()
    store = PersistentStateStore(storage, KEY)
    seen = []
    store.subscribe(lambda state, previous: seen.append(state))

    store.set(lambda prev: prev)
    store.set(AuthState())
    assert seen == []
    assert storage.get(KEY) is None


def test_unsubscribe_and_failing_subscriber():
    store = PersistentStateStore(MemoryStorage(), KEY)
    seen = []

    def broken(state, previous):
        raise RuntimeError("subscriber bug")

    store.subscribe(broken)
    unsubscribe = store.subscribe(lambda state, previous: seen.append(state))

    store.set(AuthState(initialized=True))
    assert len(seen) == 1

    unsubscribe()
    store.set(AuthState(initialized=True, user="u"))
    assert len(seen) == 1


def test_use_storage_relocates_on_next_mutation():
    old, new = MemoryStorage(), MemoryStorage()
    store = PersistentStateStore(old, KEY)
    store.set(AuthState(initialized=True, auth=TokenBundle("abc")))

    store.use_storage(new)
    # state is kept in memory, nothing moved yet
    assert store.get().auth == TokenBundle("abc")
    assert old.get(KEY) is not None
    assert new.get(KEY) is None

    store.set(lambda prev: prev.evolve(user="u"))
    assert old.get(KEY) is None
    assert json.loads(new.get(KEY))["auth"]["token"] == "abc"
    assert json.loads(new.get(KEY))["user"] == "u"
