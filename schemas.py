from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class SpotifyPayload(BaseModel):
    # Spotify adds fields over time; only the ones we read are required
    model_config = ConfigDict(extra='ignore', frozen=True)


class UserProfile(SpotifyPayload):
    id: str = Field(min_length=1)
    display_name: Optional[str] = None


class Followers(SpotifyPayload):
    total: int = Field(ge=0)


class ArtistPayload(SpotifyPayload):
    id: str = Field(min_length=1)
    name: str
    popularity: int = Field(ge=0, le=100)
    followers: Followers
    genres: List[str] = []


class TopArtistsPage(SpotifyPayload):
    items: List[ArtistPayload]
    total: Optional[int] = None
    limit: Optional[int] = None
    offset: Optional[int] = None
    next: Optional[str] = None


class SimpleArtist(SpotifyPayload):
    id: Optional[str] = None
    name: str


class TrackPayload(SpotifyPayload):
    id: Optional[str] = None
    name: str
    popularity: int = Field(default=0, ge=0, le=100)
    artists: List[SimpleArtist] = []

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'popularity': self.popularity,
            'artists': [artist.name for artist in self.artists],
        }


class TopTracksPage(SpotifyPayload):
    items: List[TrackPayload]
    total: Optional[int] = None
    limit: Optional[int] = None
    offset: Optional[int] = None
    next: Optional[str] = None
