"""
Store routes.

This module defines the Flask Blueprint for the HTML pages of the directory:
the paginated store listing, adding and editing stores (with photo upload and
resize), the store detail page, tag browsing, the map page, the signed-in
user's hearted stores and the top-rated list.
"""
import math

from flask import (
    Blueprint, render_template, request, redirect, url_for, flash,
    current_app, g, send_from_directory
)
from markupsafe import Markup, escape

from app.database_manager import SQLITE_MAX_INTEGER
from app.models import store as store_model
from app.models import user as user_model
from utils.db_utils import get_store_or_404, get_store_by_slug_or_404
from utils.decorators import login_required
from utils.files import get_uploaded_photo, resize_photo, remove_photo, FileTypeNotAllowed
from utils.session_helpers import get_current_session_info
from utils.validation import validate_store_form

stores_bp = Blueprint('stores_bp', __name__)


def _store_form(title, store=None, form=None, status=200):
    """Renders the add/edit form, optionally re-populated from a rejected submission."""
    return render_template(
        'edit_store.html',
        title=title,
        store=store,
        form=form,
        available_tags=store_model.AVAILABLE_TAGS
    ), status


def _process_store_submission():
    """
    Shared upload → resize → validate pipeline for creating and updating stores.

    Returns:
        tuple: `(data, errors)`. When a photo was uploaded it has already been
        resized and written to disk, and `data['photo']` holds its file name.
    """
    try:
        photo = get_uploaded_photo(request.files)
    except FileTypeNotAllowed as e:
        return None, [str(e)]

    data, errors = validate_store_form(request.form, store_model.AVAILABLE_TAGS)
    if errors:
        return data, errors

    if photo is not None:
        data['photo'] = resize_photo(
            photo,
            current_app.config['UPLOAD_FOLDER'],
            current_app.config['PHOTO_WIDTH']
        )
    return data, []


def _discard_uploaded_photo(data):
    """Removes a photo written for a submission whose database write failed."""
    if data.get('photo'):
        remove_photo(current_app.config['UPLOAD_FOLDER'], data['photo'])
        current_app.logger.warning("Discarded uploaded photo after a failed store write.",
                                   extra={'photo': data['photo']})


# Decorators register bottom-up, so '/' is the rule `url_for('stores_bp.index')` builds.
@stores_bp.route('/stores/page/<int:page>')
@stores_bp.route('/stores')
@stores_bp.route('/')
def index(page=1):
    """
    Paginated store listing, newest first.

    Asking for a page past the end redirects to the last page with an
    explanation; page numbers below 1 redirect to the first page.
    """
    if page < 1:
        return redirect(url_for('stores_bp.index', page=1))

    limit = current_app.config['STORES_PER_PAGE']
    skip = (page * limit) - limit

    # An offset past the INTEGER range is past the end of any table.
    stores = store_model.list_stores(skip, limit) if skip <= SQLITE_MAX_INTEGER else []
    count = store_model.count_stores()
    pages = math.ceil(count / limit)

    if not stores and skip:
        last_page = max(pages, 1)
        flash(f"Hey! You asked for page {page}. But that doesn't exist. So I put you on page {last_page}.", 'info')
        return redirect(url_for('stores_bp.index', page=last_page))

    return render_template(
        'stores.html',
        title='Stores',
        stores=stores,
        page=page,
        pages=pages,
        count=count
    )


@stores_bp.route('/add', methods=['GET'])
@login_required
def add_store():
    """Empty add-store form."""
    return _store_form('Add Store')


@stores_bp.route('/add', methods=['POST'])
@login_required
def create_store():
    """Creates a store authored by the current user and shows it."""
    data, errors = _process_store_submission()
    if errors:
        for message in errors:
            flash(message, 'danger')
        return _store_form('Add Store', form=request.form, status=400)

    try:
        store = store_model.create_store(g.user['id'], data)
    except Exception:
        _discard_uploaded_photo(data)
        raise
    current_app.logger.info(
        "Store created.",
        extra={**get_current_session_info()['base_log_extra'], 'store_id': store['id'], 'slug': store['slug']}
    )
    flash(f"Successfully created {store['name']}. Care to leave a review?", 'success')
    return redirect(url_for('stores_bp.store_detail', slug=store['slug']))


@stores_bp.route('/add/<int:store_id>', methods=['POST'])
@login_required
def update_store(store_id):
    """Updates a store the current user owns and returns to its edit form."""
    store = get_store_or_404(store_id)
    store_model.confirm_owner(store, g.user)

    data, errors = _process_store_submission()
    if errors:
        for message in errors:
            flash(message, 'danger')
        return _store_form(f"Edit {store['name']}", store=store, form=request.form, status=400)

    try:
        updated = store_model.update_store(store, data)
    except Exception:
        _discard_uploaded_photo(data)
        raise
    current_app.logger.info(
        "Store updated.",
        extra={**get_current_session_info()['base_log_extra'], 'store_id': store_id, 'slug': updated['slug']}
    )
    store_link = url_for('stores_bp.store_detail', slug=updated['slug'])
    flash(Markup('Successfully updated <strong>{}</strong>. <a href="{}">View Store →</a>').format(
        escape(updated['name']), store_link), 'success')
    return redirect(url_for('stores_bp.edit_store', store_id=store_id))


@stores_bp.route('/stores/<int:store_id>/edit')
@login_required
def edit_store(store_id):
    """Edit form for a store; only its author may open it."""
    store = get_store_or_404(store_id)
    store_model.confirm_owner(store, g.user)
    return _store_form(f"Edit {store['name']}", store=store)


@stores_bp.route('/store/<slug>')
def store_detail(slug):
    """A single store with its author, reviews and (for signed-in users) the review form."""
    store = get_store_by_slug_or_404(slug)
    return render_template('store.html', title=store['name'], store=store)


@stores_bp.route('/tags')
@stores_bp.route('/tags/<tag>')
def stores_by_tag(tag=None):
    """Tag cloud with counts plus the stores carrying the selected tag (all stores when none)."""
    tags = store_model.get_tags_list()
    stores = store_model.get_stores_by_tag(tag)
    return render_template('tags.html', title='Tags', tags=tags, active_tag=tag, stores=stores)


@stores_bp.route('/map')
def map_page():
    return render_template('map.html', title='Map')


@stores_bp.route('/hearts')
@login_required
def hearts():
    """The current user's hearted stores."""
    heart_ids = user_model.get_heart_ids(g.user['id'])
    stores = store_model.get_stores_by_ids(heart_ids)
    return render_template('stores.html', title='Hearted Stores', stores=stores, hearts=heart_ids)


@stores_bp.route('/top')
def top_stores():
    """Best rated stores with enough reviews to be meaningful."""
    stores = store_model.get_top_stores(
        current_app.config['TOP_STORES_MIN_REVIEWS'],
        current_app.config['TOP_STORES_LIMIT']
    )
    return render_template('top_stores.html', title='Top Stores!', stores=stores)


@stores_bp.route('/uploads/<path:filename>')
def uploaded_photo(filename):
    """Serves resized store photos from the upload folder."""
    return send_from_directory(current_app.config['UPLOAD_FOLDER'], filename)
