import logging
import threading

from flask import current_app

logger = logging.getLogger(__name__)


def fire_and_forget(fn, *args, **kwargs):
    """
    Run a side effect (mail, mirror sync) after the state change has been
    committed. Failures are logged here and never reach the caller.
    DISPATCH_INLINE runs it on the calling thread (tests, CLI).
    """
    app = current_app._get_current_object()

    def run():
        with app.app_context():
            try:
                fn(*args, **kwargs)
            except Exception as e:
                logger.warning("Background task %s failed: %s", getattr(fn, "__name__", fn), e, exc_info=True)

    if app.config.get("DISPATCH_INLINE"):
        run()
        return None

    t = threading.Thread(target=run, name=f"dispatch-{getattr(fn, '__name__', 'task')}", daemon=True)
    t.start()
    return t
