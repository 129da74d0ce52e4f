"""
Database utility functions.

Helpers that fetch a single record and abort the request with 404 when it does
not exist, so view functions don't repeat the "not found" check.
"""
from flask import abort, current_app
from app.database_manager import SQLITE_MAX_INTEGER
from app.models import store as store_model


def get_store_or_404(store_id, log_extra=None):
    """
    Fetches a single store by its id.

    Raises:
        werkzeug.exceptions.NotFound: If no store with the given id exists.
    """
    # Ids past the INTEGER range cannot exist and would overflow on bind.
    store = store_model.get_store(store_id) if abs(store_id) <= SQLITE_MAX_INTEGER else None
    if store is None:
        final_log_extra = {'store_id': store_id, 'entity_type': 'store'}
        if log_extra:
            final_log_extra.update(log_extra)
        current_app.logger.warning("Store not found in database.", extra=final_log_extra)
        abort(404, description=f"Store with ID {store_id} not found.")
    return store


def get_store_by_slug_or_404(slug, log_extra=None):
    """Fetches a store (with author and reviews) by slug, or aborts with 404."""
    store = store_model.get_store_by_slug(slug)
    if store is None:
        final_log_extra = {'slug': slug, 'entity_type': 'store'}
        if log_extra:
            final_log_extra.update(log_extra)
        current_app.logger.warning("Store slug not found in database.", extra=final_log_extra)
        abort(404, description=f"Store '{slug}' not found.")
    return store
