import pytest

from arena.services.games.broadcaster import Broadcaster
from arena.services.games.types import EventType, GameEvent


def _event(kind=EventType.PLAYER_JOINED, message=None):
    return GameEvent(kind, {'code': 'ABCDEF'}, message)


def test_publish_reaches_only_that_game():
    hub = Broadcaster()
    got_a, got_b = [], []
    hub.subscribe('AAAAAA', got_a.append)
    hub.subscribe('BBBBBB', got_b.append)

    assert hub.publish('AAAAAA', _event(message='Bob joined the game')) == 1
    assert got_a == [{'type': 'player_joined', 'session': {'code': 'ABCDEF'}, 'message': 'Bob joined the game'}]
    assert got_b == []


def test_unsubscribe_stops_delivery():
    hub = Broadcaster()
    got = []
    unsubscribe = hub.subscribe('AAAAAA', got.append)
    unsubscribe()
    unsubscribe()
    assert hub.publish('AAAAAA', _event()) == 0
    assert got == []
    assert hub.subscriber_count('AAAAAA') == 0


def test_failing_subscriber_does_not_block_others():
    hub = Broadcaster()
    got = []

    def broken(payload):
        raise ConnectionError('socket closed')

    hub.subscribe('AAAAAA', broken)
    hub.subscribe('AAAAAA', got.append)
    assert hub.publish('AAAAAA', _event(EventType.ROUND_ENDED)) == 1
    assert got[0]['type'] == 'round_ended'
    assert 'message' not in got[0]


def test_subscriber_may_unsubscribe_during_publish():
    hub = Broadcaster()
    calls = []
    holder = {}

    def once(payload):
        calls.append(payload['type'])
        holder['unsubscribe']()

    holder['unsubscribe'] = hub.subscribe('AAAAAA', once)
    hub.publish('AAAAAA', _event())
    hub.publish('AAAAAA', _event())
    assert calls == ['player_joined']


def test_forget_drops_all_subscribers():
    hub = Broadcaster()
    hub.subscribe('AAAAAA', lambda payload: None)
    hub.subscribe('AAAAAA', lambda payload: None)
    assert hub.subscriber_count('AAAAAA') == 2
    hub.forget('AAAAAA')
    assert hub.subscriber_count('AAAAAA') == 0


def _revision_event(revision, kind=EventType.PLAYER_CHOSE):
    return GameEvent(kind, {'code': 'ABCDEF', 'revision': revision})


def test_older_revision_is_dropped():
    hub = Broadcaster()
    got = []
    hub.subscribe('AAAAAA', got.append)
    assert hub.publish('AAAAAA', _revision_event(3, EventType.ROUND_ENDED)) == 1
    assert hub.publish('AAAAAA', _revision_event(2)) == 0
    assert hub.publish('AAAAAA', _revision_event(3, EventType.GAME_ENDED)) == 1
    assert [p['type'] for p in got] == ['round_ended', 'game_ended']


def test_bootstrap_is_first_and_sets_the_floor():
    hub = Broadcaster()
    got = []
    hub.subscribe('AAAAAA', got.append, bootstrap=lambda: _revision_event(5, EventType.CONNECTED))
    hub.publish('AAAAAA', _revision_event(4))
    hub.publish('AAAAAA', _revision_event(6))
    assert [(p['type'], p['session']['revision']) for p in got] == [('connected', 5), ('player_chose', 6)]


def test_failed_bootstrap_leaves_no_subscription():
    hub = Broadcaster()

    def _missing():
        raise LookupError('gone')

    with pytest.raises(LookupError):
        hub.subscribe('AAAAAA', lambda payload: None, bootstrap=_missing)
    assert hub.subscriber_count('AAAAAA') == 0
    assert hub._delivery_locks == {}
