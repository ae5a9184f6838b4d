from duel_sync.errors import TransportError
from duel_sync.retry import Conflict, Exhausted, Ok, TransportFailure, attempt
from duel_sync.schemas import RemoteSnapshot


def scripted(*results):
    """An update op answering from a script and recording the versions it was called with."""
    calls = []
    queue = list(results)

    def op(version):
        calls.append(version)
        answer = queue.pop(0)
        if isinstance(answer, Exception):
            raise answer
        return answer

    return op, calls


def conflict(version):
    return Conflict(current=RemoteSnapshot(version=version, state_blob={"game_state": {}}))


def test_first_try_succeeds():
    op, calls = scripted(Ok(version=5))
    result = attempt(op, 4, max_retries=3)
    assert result == Ok(version=5, conflicts=0)
    assert calls == [4]


def test_three_conflicts_then_success_retries_with_newer_versions():
    op, calls = scripted(conflict(5), conflict(6), conflict(7), Ok(version=8))
    result = attempt(op, 4, max_retries=3)
    assert isinstance(result, Ok)
    assert result.conflicts == 3
    assert calls == [4, 5, 6, 7]


def test_fourth_conflict_gives_up_with_remote_copy():
    op, calls = scripted(conflict(5), conflict(6), conflict(7), conflict(8))
    result = attempt(op, 4, max_retries=3)
    assert isinstance(result, Exhausted)
    assert result.attempts == 4
    assert result.current.version == 8
    assert len(calls) == 4


def test_transport_error_stops_immediately():
    op, calls = scripted(conflict(5), TransportError("timeout"))
    result = attempt(op, 4, max_retries=3)
    assert isinstance(result, TransportFailure)
    assert calls == [4, 5]
