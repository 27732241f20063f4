"""Gunicorn configuration file.

Run with:
    gunicorn -c gunicorn.conf.py authz.flask_app:app

With ``preload_app`` the application (and its SQLAlchemy engine) is created
in the master before forking. Pooled connections must not be shared across
processes, so each worker drops the inherited pool in ``post_fork`` and
opens its own connections on first use.
"""
import os

bind = os.environ.get("GUNICORN_BIND", "0.0.0.0:8000")
workers = int(os.environ.get("GUNICORN_WORKERS", "2"))
threads = int(os.environ.get("GUNICORN_THREADS", "4"))
timeout = int(os.environ.get("GUNICORN_TIMEOUT", "30"))
preload_app = os.environ.get("GUNICORN_PRELOAD", "true").lower() == "true"


def post_fork(server, worker):
    """
    Called just after a worker has been forked.

    Disposes the connection pool inherited from the master without closing
    the parent's connections (``close=False``), so the master and the
    siblings keep their sockets intact.
    """
    if not server.cfg.preload_app:
        worker.log.info("preload_app disabled; worker builds its own engine")
        return

    from authz.extensions import db
    from authz.flask_app import app

    with app.app_context():
        db.engine.dispose(close=False)
    worker.log.info(f"Worker {worker.pid}: inherited database pool disposed")
