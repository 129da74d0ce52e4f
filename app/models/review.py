"""Review persistence helpers."""
from datetime import datetime, timezone

from app.db import db_manager


def add_review(author_id, store_id, text, rating):
    """
    Saves a review of `store_id` written by `author_id` and returns its id.

    `rating` must already be validated to an int between 1 and 5; the table's
    CHECK constraint rejects anything else.
    """
    return db_manager.insert(
        'INSERT INTO reviews (author_id, store_id, text, rating, created_at) VALUES (?, ?, ?, ?, ?)',
        (author_id, store_id, text.strip(), rating, datetime.now(timezone.utc).isoformat())
    )
