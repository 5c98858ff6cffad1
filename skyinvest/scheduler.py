import atexit
import logging
from datetime import datetime

from apscheduler.schedulers.background import BackgroundScheduler

from .services.recurrence import run_recurrence_pass

logger = logging.getLogger(__name__)

JOB_ID = "recurrence_sweep"
EXTENSION_KEY = "recurrence_scheduler"


def run_scheduled_sweep(app, now=None):
    # IMPORTANT: always run inside app context in background thread
    with app.app_context():
        try:
            return run_recurrence_pass(now)
        except Exception:
            logger.exception("Recurrence sweep failed")
            return None


def start_scheduler(app, dev_mode=False):
    """
    Start the background sweep: first run immediately, then every
    RECURRENCE_SWEEP_MINUTES (one minute in dev mode).
    """
    existing = app.extensions.get(EXTENSION_KEY)
    if existing is not None and existing.running:
        return existing

    minutes = 1 if dev_mode else int(app.config.get("RECURRENCE_SWEEP_MINUTES", 60))
    scheduler = BackgroundScheduler()
    scheduler.add_job(
        lambda: run_scheduled_sweep(app),
        trigger="interval",
        minutes=minutes,
        next_run_time=datetime.now(),
        id=JOB_ID,
        replace_existing=True,
    )
    scheduler.start()
    app.extensions[EXTENSION_KEY] = scheduler
    atexit.register(lambda: stop_scheduler(app))

    logger.info("Recurrence scheduler started (every %s min)", minutes)
    return scheduler


def stop_scheduler(app):
    scheduler = app.extensions.pop(EXTENSION_KEY, None)
    if scheduler is not None and scheduler.running:
        scheduler.shutdown(wait=False)
