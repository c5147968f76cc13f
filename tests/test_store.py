"""Persistence of session history, trick library and settings."""

import json

import pytest

from skate_system.errors import PersistenceCorrupt
from skate_system.models import EventKind, LocationFix, MotionEvent, Session, Stance
from skate_system.session import StoreConfig, SessionStore, TrickLibrary, decode_history



def _session(label='Ollie'):
    return Session(
        events=[MotionEvent(EventKind.AIRTIME, 1.0, 2.0, rotation=50.0, label=label,
                            is_group_start=True, group_id='g1', variant='ollie', duration=0.2),
                MotionEvent(EventKind.TURN, 2.0, 1.0, rotation=90.0, turn_angle=-90.0)],
        trick_summary={label: 1},
        total_tricks=1,
        path=[LocationFix(52.0, 4.0, 0.0, 3.0, 5.0)],
        stance=Stance.GOOFY,
    )


def test_history_starts_empty(store):
    assert store.load_history() == []


def test_session_survives_a_round_trip(store):
    original = _session()
    store.append_session(original)

    (loaded,) = store.load_history()
    assert loaded.id == original.id
    assert loaded.events == original.events
    assert loaded.path == original.path
    assert loaded.stance == Stance.GOOFY
    assert loaded.start_time == original.start_time


def test_corrupt_history_resets_to_empty(store):
    store.put(store.config.sessions_key, '{"sessions": [')
    assert store.load_history() == []

    # the next session is still recorded
    store.append_session(_session())
    assert len(store.load_history()) == 1


@pytest.mark.parametrize("raw", [
    '[1]',
    '[["not", "a", "session"]]',
])
def test_history_of_non_objects_resets_to_empty(store, raw):
    store.put(store.config.sessions_key, raw)
    assert store.load_history() == []
    assert store.labeled_history() == []


def test_malformed_trick_summary_resets_to_empty(store):
    data = _session().to_dict()
    data['trick_summary'] = []
    store.put(store.config.sessions_key, json.dumps([data]))

    assert store.load_history() == []


def test_decode_rejects_wrong_shape():
    with pytest.raises(PersistenceCorrupt):
        decode_history('{"id": "not-a-list"}')
    with pytest.raises(PersistenceCorrupt):
        decode_history('[{"events": []}]')


def test_update_and_delete_session(store):
    session = _session()
    store.append_session(session)

    session.events[0] = session.events[0].with_label('Kickflip', group_id='g1')
    session.trick_summary = {'Kickflip': 1}
    assert store.update_session(session)
    assert store.load_history()[0].trick_summary == {'Kickflip': 1}

    assert store.delete_session(session.id)
    assert not store.delete_session(session.id)
    assert store.load_history() == []


def test_labeled_history_across_sessions(store):
    store.append_session(_session('Ollie'))
    store.append_session(_session('Kickflip'))

    assert [e.label for e in store.labeled_history()] == ['Ollie', 'Kickflip']


def test_namespaces_are_isolated(tmp_path):
    url = f"sqlite:///{tmp_path / 'skate.db'}"
    with SessionStore(StoreConfig(database_url=url)) as store:
        store.append_session(_session())

    with SessionStore(StoreConfig(database_url=url, namespace='other-app')) as other:
        assert other.load_history() == []

    with SessionStore(StoreConfig(database_url=url)) as reopened:
        assert len(reopened.load_history()) == 1


def test_settings_round_trip(store):
    assert store.load_settings() is None
    store.save_settings(Stance.GOOFY)
    assert store.load_settings() == Stance.GOOFY


def test_library_defaults_and_edits(store):
    library = store.load_library()
    assert len(library) == 20
    assert library.names()[0] == 'Push'

    added = library.add('Kick Flip')
    assert added.id == 'kick-flip'
    assert library.names()[0] == 'Kick Flip'
    assert library.add('kick  flip') is None
    assert library.add('  ') is None

    assert library.remove('push')
    assert 'Push' not in library

    store.save_library(library)
    reloaded = store.load_library()
    assert reloaded.names() == library.names()


def test_library_is_independent_of_defaults():
    TrickLibrary().add('Hippie Jump')
    assert 'Hippie Jump' not in TrickLibrary()
