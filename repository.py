import logging
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from sqlalchemy import func, select
from sqlalchemy.dialects.sqlite import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from errors import StorageError
from models import Artist, ArtistRecord, User, UserArtist, genres

logger = logging.getLogger(__name__)


class Repository:
    """Owns every read and write against the tracker database.

    Each write opens its own session on the injected engine, so the store can be
    shared between request threads and the background collector.
    """

    def __init__(self, engine, timezone='Europe/Istanbul'):
        self.engine = engine
        self.timezone = ZoneInfo(timezone)

    def now(self):
        """Current civil time in the snapshot time zone, to the second."""
        return datetime.now(self.timezone).replace(tzinfo=None, microsecond=0)

    def insert_user(self, user_id, username):
        stmt = insert(User).values(id=user_id, username=username).on_conflict_do_nothing()
        try:
            with Session(self.engine) as session, session.begin():
                session.execute(stmt)
        except SQLAlchemyError as e:
            logger.error(f"Error inserting user {user_id}: {e}")
            raise StorageError(f"Failed to insert user {user_id}: {e}") from e

    def insert_snapshot(self, user_id, artists, genres_by_artist):
        """Write one ranked fetch for a user in a single transaction.

        Rank is the 1-based position in ``artists``; every ranking row in the
        batch shares one timestamp. Nothing is kept if any row fails.
        """
        timestamp = self.now()
        try:
            with Session(self.engine) as session, session.begin():
                for rank, artist in enumerate(artists, start=1):
                    self._upsert_artist(session, artist)
                    self._insert_genres(session, artist.id, genres_by_artist.get(artist.id, []))
                    self._upsert_ranking(session, user_id, artist.id, rank, timestamp)
        except SQLAlchemyError as e:
            logger.error(f"Error inserting snapshot for user {user_id}: {e}")
            raise StorageError(f"Failed to insert snapshot: {e}") from e

        logger.info(f"Stored snapshot of {len(artists)} artists for user {user_id} at {timestamp}")

    def _upsert_artist(self, session, artist):
        stmt = insert(Artist).values(
            id=artist.id,
            name=artist.name,
            popularity=artist.popularity,
            followers=artist.followers,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=['id'],
            set_={
                'name': stmt.excluded.name,
                'popularity': stmt.excluded.popularity,
                'followers': stmt.excluded.followers,
            },
        )
        session.execute(stmt)

    def _insert_genres(self, session, artist_id, artist_genres):
        for genre in dict.fromkeys(artist_genres):
            existing = session.execute(
                select(genres.c.artist_id)
                .where(genres.c.artist_id == artist_id, genres.c.genre == genre)
                .limit(1)
            ).first()
            if existing is None:
                session.execute(genres.insert().values(artist_id=artist_id, genre=genre))

    def _upsert_ranking(self, session, user_id, artist_id, rank, timestamp):
        stmt = insert(UserArtist).values(
            user_id=user_id,
            artist_id=artist_id,
            rank=rank,
            timestamp=timestamp,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=['user_id', 'artist_id'],
            set_={'rank': stmt.excluded.rank, 'timestamp': stmt.excluded.timestamp},
        )
        session.execute(stmt)

    def fetch_genre_counts(self):
        count = func.count(genres.c.genre)
        stmt = select(genres.c.genre, count).group_by(genres.c.genre)
        try:
            with self.engine.connect() as conn:
                return {genre: total for genre, total in conn.execute(stmt)}
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to fetch genres data: {e}") from e

    def fetch_all_artists(self):
        try:
            with Session(self.engine) as session:
                rows = session.scalars(select(Artist).order_by(Artist.id)).all()
                return [ArtistRecord.from_row(row) for row in rows]
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to fetch artists data: {e}") from e

    def recent_genre_counts(self, days=7):
        """Genre counts for artists ranked within the trailing window, most frequent first."""
        cutoff = self.now() - timedelta(days=days)
        count = func.count(genres.c.genre).label('count')
        stmt = (
            select(genres.c.genre, count)
            .join(UserArtist, UserArtist.artist_id == genres.c.artist_id)
            .where(UserArtist.timestamp >= cutoff)
            .group_by(genres.c.genre)
            .order_by(count.desc(), genres.c.genre)
        )
        try:
            with self.engine.connect() as conn:
                return [(genre, total) for genre, total in conn.execute(stmt)]
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to analyze data: {e}") from e
