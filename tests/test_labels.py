"""Label editing keeps the trick summary consistent with the timeline."""

import pytest

from skate_system.models import EventKind, MotionEvent, Session
from skate_system.session import apply_label, recompute_summary, relabel, remove_label


def _invariant(session):
    return sum(session.trick_summary.values()) == session.total_tricks


@pytest.fixture
def session():
    return Session(events=[
        MotionEvent(EventKind.SLAP, 0.0, 2.5),
        MotionEvent(EventKind.TURN, 1.0, 1.0, rotation=90.0, turn_angle=90.0),
        MotionEvent(EventKind.IMPACT, 1.5, 2.6),
        MotionEvent(EventKind.TURN, 3.0, 1.0, rotation=80.0, turn_angle=-80.0),
        MotionEvent(EventKind.IMPACT, 4.0, 2.4),
    ])


def test_grouped_label_counts_once(session):
    apply_label(session, [1, 2], 'Ollie 180')

    assert session.trick_summary == {'Ollie 180': 1}
    assert session.events[1].is_group_start
    assert not session.events[2].is_group_start
    assert session.events[1].group_id == session.events[2].group_id
    assert _invariant(session)


def test_summary_invariant_across_edits(session):
    apply_label(session, [1], 'FS Turn')
    apply_label(session, [3], 'BS Turn')
    apply_label(session, [4], 'FS Turn')
    assert session.trick_summary == {'FS Turn': 2, 'BS Turn': 1}
    assert _invariant(session)

    relabel(session, 3, 'FS Turn')
    assert session.trick_summary == {'FS Turn': 3}
    assert _invariant(session)

    remove_label(session, [1])
    assert session.trick_summary == {'FS Turn': 2}
    assert session.total_tricks == 2
    assert _invariant(session)


def test_removing_group_start_promotes_next_member(session):
    apply_label(session, [1, 2], 'Ollie 180')
    remove_label(session, [1])

    assert session.events[2].is_group_start
    assert session.trick_summary == {'Ollie 180': 1}


def test_relabel_renames_whole_group(session):
    apply_label(session, [3, 4], 'Revert')
    relabel(session, 4, 'Fakie Rock')

    assert session.events[3].label == 'Fakie Rock'
    assert session.events[4].label == 'Fakie Rock'
    assert session.trick_summary == {'Fakie Rock': 1}


def test_relabel_of_unlabeled_event_applies_label(session):
    relabel(session, 1, 'FS Turn')
    assert session.trick_summary == {'FS Turn': 1}


def test_blank_label_is_rejected(session):
    with pytest.raises(ValueError):
        apply_label(session, [1], '   ')


def test_bad_index_is_rejected(session):
    with pytest.raises(IndexError):
        apply_label(session, [9], 'Ollie')


def test_recompute_repairs_stale_counts(session):
    session.events[1] = session.events[1].with_label('FS Turn', group_id='g', is_group_start=True)
    session.trick_summary = {'Ghost': 4}
    session.total_tricks = 7

    recompute_summary(session)
    assert session.trick_summary == {'FS Turn': 1}
    assert session.total_tricks == 1
