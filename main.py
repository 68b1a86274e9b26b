import logging
import sys

from sqlalchemy.exc import SQLAlchemyError

from app import create_app
from collector import PeriodicCollector
from config import Config

# Configure logging
logging.basicConfig(level=Config.LOG_LEVEL, format='%(asctime)s - %(levelname)s - %(name)s - %(message)s')
for noisy in ('spotipy', 'urllib3'):
    logging.getLogger(noisy).setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


def main():
    try:
        app = create_app(Config)
    except SQLAlchemyError as e:
        logger.error(f"Failed to initialize database: {e}")
        sys.exit(1)

    tracker = app.extensions['genre_tracker']
    collector = PeriodicCollector.from_config(tracker['client'], tracker['repository'], app.config)
    collector.start()

    logger.info(f"HTTP server running on port {app.config['PORT']}...")
    # The reloader would start a second collector
    app.run(host=app.config['HOST'], port=app.config['PORT'], threaded=True, use_reloader=False)


if __name__ == '__main__':
    main()
