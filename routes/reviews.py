"""
Review routes.

Signed-in users can review any store from the store's page.
"""
from flask import Blueprint, request, redirect, url_for, flash, current_app, g

from app.models import review as review_model
from utils.db_utils import get_store_or_404
from utils.decorators import login_required
from utils.validation import validate_review_form

reviews_bp = Blueprint('reviews_bp', __name__)


@reviews_bp.route('/review/<int:store_id>', methods=['POST'])
@login_required
def add_review(store_id):
    """Saves a review for `store_id` by the current user and returns to the store page."""
    store = get_store_or_404(store_id)
    store_url = url_for('stores_bp.store_detail', slug=store['slug'])

    data, errors = validate_review_form(request.form)
    if errors:
        for message in errors:
            flash(message, 'danger')
        return redirect(store_url)

    review_id = review_model.add_review(g.user['id'], store['id'], data['text'], data['rating'])
    current_app.logger.info(
        "Review saved.",
        extra={'user_id': g.user['id'], 'store_id': store['id'], 'review_id': review_id, 'rating': data['rating']}
    )
    flash('Review Saved!', 'success')
    return redirect(store_url)
