from dataclasses import asdict, dataclass

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


# Database models
class User(db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Text, primary_key=True)
    username = db.Column(db.Text)


class Artist(db.Model):
    __tablename__ = 'artists'

    id = db.Column(db.Text, primary_key=True)
    name = db.Column(db.Text)
    popularity = db.Column(db.Integer)
    followers = db.Column(db.Integer)


# (artist, genre) pairs; uniqueness is enforced on insert, not by the schema
genres = db.Table(
    'genres',
    db.Column('artist_id', db.Text, db.ForeignKey('artists.id')),
    db.Column('genre', db.Text),
)


class UserArtist(db.Model):
    __tablename__ = 'user_artists'

    user_id = db.Column(db.Text, db.ForeignKey('users.id'), primary_key=True)
    artist_id = db.Column(db.Text, db.ForeignKey('artists.id'), primary_key=True)
    rank = db.Column(db.Integer)
    timestamp = db.Column(db.DateTime)


@dataclass(frozen=True)
class ArtistRecord:
    id: str
    name: str
    popularity: int
    followers: int

    @classmethod
    def from_row(cls, artist):
        return cls(
            id=artist.id,
            name=artist.name,
            popularity=artist.popularity,
            followers=artist.followers,
        )

    def to_dict(self):
        return asdict(self)


def init_db(app):
    """Create any missing tables for the app's database."""
    with app.app_context():
        db.create_all()
        return db.engine
