from datetime import datetime, timedelta
from unittest.mock import patch

import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from errors import StorageError
from models import ArtistRecord, User, UserArtist
from repository import Repository


def record(artist_id, popularity=50, followers=1000):
    return ArtistRecord(id=artist_id, name=f'Artist {artist_id}', popularity=popularity, followers=followers)


def ranking_rows(repository):
    with Session(repository.engine) as session:
        rows = session.scalars(select(UserArtist).order_by(UserArtist.rank)).all()
        return [(row.user_id, row.artist_id, row.rank, row.timestamp) for row in rows]


@pytest.fixture
def stored_user(repository):
    repository.insert_user('user1', 'Test User')
    return 'user1'


def test_genre_counts_after_one_snapshot(repository, stored_user):
    """Two artists sharing a genre are counted per artist."""
    repository.insert_snapshot(
        stored_user,
        [record('a1'), record('a2')],
        {'a1': ['rock', 'pop'], 'a2': ['pop']},
    )

    assert repository.fetch_genre_counts() == {'rock': 1, 'pop': 2}


def test_artist_upsert_updates_in_place(repository, stored_user):
    repository.insert_snapshot(stored_user, [record('a1', popularity=40, followers=10)], {})
    repository.insert_snapshot(stored_user, [record('a1', popularity=55, followers=25)], {})

    artists = repository.fetch_all_artists()
    assert artists == [ArtistRecord(id='a1', name='Artist a1', popularity=55, followers=25)]


def test_genre_insert_is_idempotent(repository, stored_user):
    genres = {'a1': ['rock', 'pop', 'rock']}
    repository.insert_snapshot(stored_user, [record('a1')], genres)
    repository.insert_snapshot(stored_user, [record('a1')], genres)

    assert repository.fetch_genre_counts() == {'rock': 1, 'pop': 1}


def test_ranking_rows_share_timestamp_and_follow_input_order(repository, stored_user):
    repository.insert_snapshot(stored_user, [record('a2'), record('a1'), record('a3')], {})

    rows = ranking_rows(repository)
    assert [(artist_id, rank) for _, artist_id, rank, _ in rows] == [('a2', 1), ('a1', 2), ('a3', 3)]
    assert len({timestamp for *_, timestamp in rows}) == 1


def test_second_snapshot_overwrites_rank_and_timestamp(repository, stored_user):
    with patch.object(repository, 'now', return_value=datetime(2024, 5, 1, 12, 0, 0)):
        repository.insert_snapshot(stored_user, [record('a1'), record('a2')], {})
    with patch.object(repository, 'now', return_value=datetime(2024, 5, 1, 13, 0, 0)):
        repository.insert_snapshot(stored_user, [record('a2'), record('a1')], {})

    rows = ranking_rows(repository)
    assert rows == [
        ('user1', 'a2', 1, datetime(2024, 5, 1, 13, 0, 0)),
        ('user1', 'a1', 2, datetime(2024, 5, 1, 13, 0, 0)),
    ]


def test_snapshot_is_rolled_back_on_mid_batch_failure(repository, stored_user):
    failing = [None, SQLAlchemyError('disk I/O error')]
    with patch.object(repository, '_upsert_ranking', side_effect=failing):
        with pytest.raises(StorageError):
            repository.insert_snapshot(
                stored_user,
                [record('a1'), record('a2')],
                {'a1': ['rock'], 'a2': ['pop']},
            )

    assert repository.fetch_all_artists() == []
    assert repository.fetch_genre_counts() == {}
    assert ranking_rows(repository) == []


def test_insert_user_ignores_existing_user(repository):
    repository.insert_user('user1', 'First Name')
    repository.insert_user('user1', 'Second Name')

    with Session(repository.engine) as session:
        users = session.scalars(select(User)).all()
        assert [(user.id, user.username) for user in users] == [('user1', 'First Name')]


def test_recent_genre_counts_skips_old_rankings(repository, stored_user):
    old = repository.now() - timedelta(days=30)
    with patch.object(repository, 'now', return_value=old):
        repository.insert_snapshot(stored_user, [record('a3')], {'a3': ['jazz']})
    repository.insert_snapshot(
        stored_user,
        [record('a1'), record('a2')],
        {'a1': ['rock', 'pop'], 'a2': ['pop']},
    )

    assert repository.recent_genre_counts(7) == [('pop', 2), ('rock', 1)]


def test_now_uses_configured_timezone():
    repository = Repository(create_engine('sqlite://'), timezone='UTC')

    now = repository.now()
    assert now.tzinfo is None
    assert now.microsecond == 0


def test_read_failures_raise_storage_error():
    # No tables were created on this engine
    repository = Repository(create_engine('sqlite://'))

    with pytest.raises(StorageError):
        repository.fetch_genre_counts()
    with pytest.raises(StorageError):
        repository.fetch_all_artists()
    with pytest.raises(StorageError):
        repository.recent_genre_counts()
