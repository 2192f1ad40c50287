from conftest import SpyStorage, run
from editor import EditorRegistry
from schemas import Session

ALICE = Session(user_id="u1", email="alice@biolink.io", access_token="token-1")
BOB = Session(user_id="u2", email="bob@biolink.io", access_token="token-2")


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def make_registry(store, settings, clock):
    settings.editor_idle_seconds = 60
    settings.save_delay_seconds = 30
    return EditorRegistry(store, SpyStorage(), settings, clock=clock)


def test_one_editor_per_user(store, settings):
    registry = make_registry(store, settings, FakeClock())

    async def scenario():
        return registry.get(ALICE), registry.get(ALICE), registry.get(BOB)

    first, again, other = run(scenario())
    assert first is again
    assert other is not first
    assert len(registry) == 2


def test_idle_editor_is_closed_and_its_pending_edit_saved(store, settings):
    clock = FakeClock()
    registry = make_registry(store, settings, clock)

    async def scenario():
        editor = registry.get(ALICE)
        await editor.onboard("alice", "Alice")
        editor.profiles.apply_patch({"bio": "Still typing"})
        assert editor.gateway.has_pending

        clock.now += 61
        registry.get(BOB)
        assert "u1" not in registry
        assert "u2" in registry
        await registry.settle()

    run(scenario())
    assert store.db["profile"].find_one({"username": "alice"})["bio"] == "Still typing"


def test_recently_used_editor_is_kept(store, settings):
    clock = FakeClock()
    registry = make_registry(store, settings, clock)

    async def scenario():
        editor = registry.get(ALICE)
        clock.now += 40
        assert registry.get(ALICE) is editor
        clock.now += 40
        registry.get(BOB)

    run(scenario())
    assert "u1" in registry


def test_sign_out_closes_the_editor(store, settings):
    registry = make_registry(store, settings, FakeClock())

    async def scenario():
        editor = registry.get(ALICE)
        await editor.onboard("alice", "Alice")
        editor.profiles.apply_patch({"display_name": "Alice B."})
        registry.on_session_change("SIGNED_OUT", ALICE)
        assert "u1" not in registry
        await registry.settle()

    run(scenario())
    assert store.db["profile"].find_one({"username": "alice"})["display_name"] == "Alice B."
