"""
Utility for running functions within a Flask application context in a separate thread.

Used for work started by a request that needs `current_app` (config, logger)
but should not block the response, such as delivering a password reset e-mail.
"""
import threading


def run_in_app_context(app, target_func, *args, **kwargs):
    """
    Executes `target_func(*args, **kwargs)` in a new daemon thread with an
    application context pushed for `app`.

    Args:
        app (Flask): The real application object. From inside a request use
                     `current_app._get_current_object()`; the `current_app`
                     proxy itself is not usable from another thread.
        target_func (callable): The function to run in the background.

    Returns:
        threading.Thread: The started thread (callers normally ignore it).
    """
    if app is None:
        raise ValueError("run_in_app_context requires a Flask app instance.")

    def wrapped_target():
        with app.app_context():
            try:
                target_func(*args, **kwargs)
            except Exception as e:
                # Nothing upstream will see this exception, so it has to be logged here.
                app.logger.error(
                    f"Exception in background thread for function '{target_func.__name__}': {e}",
                    exc_info=True
                )

    thread = threading.Thread(target=wrapped_target, daemon=True)
    thread.start()
    return thread
