from dealflow.services.sessions import SessionTracker


def test_bind_current_clear():
    sessions = SessionTracker()

    assert sessions.current(1) is None
    sessions.bind(1, 10)
    assert sessions.current(1) == 10

    sessions.clear(1)
    assert sessions.current(1) is None
    sessions.clear(1)  # clearing an unbound chat is a no-op


def test_latest_binding_wins_per_chat():
    sessions = SessionTracker()

    sessions.bind(1, 10)
    sessions.bind(1, 11)
    sessions.bind(2, 10)

    assert sessions.current(1) == 11
    assert sessions.current(2) == 10
    assert len(sessions) == 2
