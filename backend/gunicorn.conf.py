# gunicorn.conf.py
# Gunicorn configuration file

import logging
import os

# Logging
accesslog = '-'  # Log to stdout
errorlog = '-'   # Log to stderr
loglevel = 'info'

# Game sessions and their countdowns live in worker memory:
# one worker, several threads
workers = 1
worker_class = 'gthread'
threads = int(os.environ.get('GUNICORN_THREADS', '8'))
timeout = 120
bind = f"0.0.0.0:{os.environ.get('PORT', '5001')}"

# Server mechanics
daemon = False
pidfile = None
umask = 0
user = None
group = None
tmp_upload_dir = None

# Hooks
def post_worker_init(worker):
    """
    Called after a worker has been forked and initialized.
    Opens the database pool when scores are kept in Postgres.
    """
    logger = logging.getLogger(__name__)
    logger.info(f"=== Post-worker init hook called for worker PID {os.getpid()} ===")

    if os.environ.get('SCORE_STORE', 'memory').lower() != 'postgres':
        return

    try:
        import db_utils
        from score_store import PostgresScoreStore

        if db_utils.init_connection_pool():
            PostgresScoreStore().ensure_schema()
            logger.info(f"Score database ready in gunicorn worker PID {os.getpid()}")
    except Exception as e:
        logger.error(f"Error preparing score database in gunicorn worker: {e}", exc_info=True)


def worker_exit(server, worker):
    """
    Called when a worker exits.
    """
    logger = logging.getLogger(__name__)
    logger.info(f"Worker {worker.pid} exiting - stopping game sessions")

    try:
        from app import app
        app.extensions['game_sessions'].close_all()

        if app.config['SCORE_STORE'] == 'postgres':
            import db_utils
            db_utils.close_connection_pool()
    except Exception as e:
        logger.error(f"Error during worker shutdown: {e}")
