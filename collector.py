import logging
import threading
import time

from errors import GenreTrackerError
from spotify_client import split_snapshot

logger = logging.getLogger(__name__)


class PeriodicCollector:
    """Fetches the user's top artists on a fixed interval and stores each snapshot."""

    def __init__(self, client, repository, interval=3600, auth_poll_interval=60, sleep=time.sleep):
        self.client = client
        self.repository = repository
        self.interval = interval
        self.auth_poll_interval = auth_poll_interval
        self._sleep = sleep
        self._thread = None

    @classmethod
    def from_config(cls, client, repository, config):
        return cls(
            client,
            repository,
            interval=config.get('FETCH_INTERVAL', 3600),
            auth_poll_interval=config.get('AUTH_POLL_INTERVAL', 60),
        )

    def run_once(self):
        """Run one collection pass and return how long to wait before the next."""
        session = self.client.session
        if session is None:
            logger.info("Spotify client not initialized yet")
            return self.auth_poll_interval

        try:
            artists = self.client.fetch_top_artists()
        except GenreTrackerError as e:
            logger.error(f"Error fetching top artists: {e}")
            return self.interval

        records, genres_by_artist = split_snapshot(artists)
        try:
            self.repository.insert_snapshot(session.user_id, records, genres_by_artist)
        except GenreTrackerError as e:
            logger.error(f"Error inserting data: {e}")
        return self.interval

    def run_forever(self):
        while True:
            try:
                delay = self.run_once()
            except Exception:
                # Keep collecting after anything unexpected
                logger.exception("Unexpected error in periodic fetch")
                delay = self.interval
            self._sleep(delay)

    def start(self):
        if self._thread is None:
            self._thread = threading.Thread(target=self.run_forever, name='periodic-collector', daemon=True)
            self._thread.start()
            logger.info(f"Periodic collector started (interval: {self.interval}s)")
        return self._thread
