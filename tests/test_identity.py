import pytest

from conftest import run
from errors import AuthFailure
from identity import SIGNED_IN, SIGNED_OUT, IdentityProvider, check_password, hash_password


def test_password_hashing_round_trip():
    stored = hash_password("hunter22")
    assert check_password("hunter22", stored)
    assert not check_password("hunter23", stored)
    assert hash_password("hunter22") != stored


def test_sign_up_opens_a_session(store):
    identity = IdentityProvider(store)
    events = []
    identity.on_session_change(lambda event, session: events.append((event, session.email)))

    result = run(identity.sign_up("Alice@BioLink.io", "secret1"))
    assert not result.confirmation_required
    assert result.session.email == "alice@biolink.io"
    assert events == [(SIGNED_IN, "alice@biolink.io")]
    assert run(identity.get_session(result.session.access_token)).user_id == result.user_id


def test_sign_up_errors(store):
    identity = IdentityProvider(store)
    run(identity.sign_up("alice@biolink.io", "secret1"))
    with pytest.raises(AuthFailure, match="already registered"):
        run(identity.sign_up("alice@biolink.io", "secret1"))
    with pytest.raises(AuthFailure, match="at least 6"):
        run(identity.sign_up("bob@biolink.io", "123"))
    with pytest.raises(AuthFailure, match="Invalid email"):
        run(identity.sign_up("not-an-email", "secret1"))


def test_sign_in(store):
    identity = IdentityProvider(store)
    run(identity.sign_up("alice@biolink.io", "secret1"))
    session = run(identity.sign_in("alice@biolink.io", "secret1"))
    assert session.access_token
    with pytest.raises(AuthFailure, match="Invalid login credentials"):
        run(identity.sign_in("alice@biolink.io", "wrong-one"))
    with pytest.raises(AuthFailure):
        run(identity.sign_in("nobody@biolink.io", "secret1"))


def test_confirmation_flow_with_one_time_code(store):
    identity = IdentityProvider(store, require_confirmation=True)
    result = run(identity.sign_up("alice@biolink.io", "secret1"))
    assert result.confirmation_required

    with pytest.raises(AuthFailure, match="Email not confirmed"):
        run(identity.sign_in("alice@biolink.io", "secret1"))
    with pytest.raises(AuthFailure):
        run(identity.verify_one_time_code("alice@biolink.io", "000000x"))

    code = store.db["user"].find_one({"email": "alice@biolink.io"})["otp_code"]
    session = run(identity.verify_one_time_code("alice@biolink.io", code))
    assert session.user_id == result.user_id
    assert run(identity.sign_in("alice@biolink.io", "secret1")).user_id == result.user_id
    with pytest.raises(AuthFailure):
        run(identity.verify_one_time_code("alice@biolink.io", code))


def test_sign_out_ends_the_session(store):
    identity = IdentityProvider(store)
    events = []
    unsubscribe = identity.on_session_change(lambda event, session: events.append(event))
    session = run(identity.sign_up("alice@biolink.io", "secret1")).session

    run(identity.sign_out(session.access_token))
    assert run(identity.get_session(session.access_token)) is None
    assert events == [SIGNED_IN, SIGNED_OUT]

    unsubscribe()
    run(identity.sign_in("alice@biolink.io", "secret1"))
    assert events == [SIGNED_IN, SIGNED_OUT]


def test_no_token_no_session(store):
    assert run(IdentityProvider(store).get_session(None)) is None


class FakeClock:
    def __init__(self, now=1_700_000_000.0):
        self.now = now

    def __call__(self):
        return self.now


def test_one_time_code_expires(store):
    clock = FakeClock()
    identity = IdentityProvider(store, require_confirmation=True, clock=clock)
    run(identity.sign_up("alice@biolink.io", "secret1"))
    code = store.db["user"].find_one({"email": "alice@biolink.io"})["otp_code"]

    clock.now += 11 * 60
    with pytest.raises(AuthFailure, match="expired or is invalid"):
        run(identity.verify_one_time_code("alice@biolink.io", code))
    assert store.db["user"].find_one({"email": "alice@biolink.io"})["otp_code"] is None


def test_one_time_code_locks_after_repeated_wrong_guesses(store):
    identity = IdentityProvider(store, require_confirmation=True)
    run(identity.sign_up("alice@biolink.io", "secret1"))
    code = store.db["user"].find_one({"email": "alice@biolink.io"})["otp_code"]
    wrong = "000000" if code != "000000" else "111111"

    for _ in range(5):
        with pytest.raises(AuthFailure):
            run(identity.verify_one_time_code("alice@biolink.io", wrong))
    with pytest.raises(AuthFailure):
        run(identity.verify_one_time_code("alice@biolink.io", code))
    with pytest.raises(AuthFailure, match="Email not confirmed"):
        run(identity.sign_in("alice@biolink.io", "secret1"))


def test_sessions_expire(store):
    clock = FakeClock()
    identity = IdentityProvider(store, session_ttl=60, clock=clock)
    session = run(identity.sign_up("alice@biolink.io", "secret1")).session
    assert session.expires_at == clock.now + 60

    clock.now += 59
    assert run(identity.get_session(session.access_token)) is not None
    clock.now += 2
    assert run(identity.get_session(session.access_token)) is None
    assert store.db["session"].count_documents({}) == 0
