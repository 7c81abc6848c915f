import pytest

from loandocs.pipeline.errors import SessionExpiredError, SessionNotFoundError


def _create(sessions, **overrides):
    fields = {
        "loan_number": "TEST-001",
        "user_login": "loan.officer",
        "vendor_username": "vendor-user",
        "vendor_account_id": "ACC-42",
        "encrypted_ticket": "tkt-123",
    }
    fields.update(overrides)
    return sessions.create(**fields)


def test_create_and_get(sessions, clock):
    session_id = _create(sessions)
    session = sessions.get(session_id)

    assert session.id == session_id
    assert session.loan_number == "TEST-001"
    assert session.has_ticket is True
    assert session.created_at == clock.now
    assert session.expires_at == clock.now + 1800


def test_unknown_session_is_not_found(sessions):
    with pytest.raises(SessionNotFoundError):
        sessions.get("does-not-exist")


def test_expired_session_is_reported_then_evicted(sessions, clock):
    session_id = _create(sessions)

    clock.advance(1799)
    assert sessions.get(session_id).id == session_id

    clock.advance(1)
    with pytest.raises(SessionExpiredError) as exc_info:
        sessions.get(session_id)
    assert exc_info.value.session_id == session_id

    with pytest.raises(SessionNotFoundError):
        sessions.get(session_id)


def test_sweep_removes_only_expired(sessions, clock):
    old = _create(sessions)
    clock.advance(1000)
    fresh = _create(sessions)
    clock.advance(900)

    assert sessions.sweep() == 1
    assert old not in sessions
    assert fresh in sessions
    assert len(sessions) == 1


def test_missing_ticket_means_oauth_fallback(sessions):
    session_id = _create(sessions, encrypted_ticket="")
    assert sessions.get(session_id).has_ticket is False


def test_public_view_hides_ticket(sessions):
    view = sessions.get(_create(sessions)).to_public_dict()

    assert view["has_ticket"] is True
    assert "encrypted_ticket" not in view
    assert set(view) == {"loan_number", "user_login", "has_ticket", "created_at", "expires_at"}
