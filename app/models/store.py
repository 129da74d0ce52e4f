"""
Store persistence helpers.

Stores are the business listings at the heart of the directory. A store has a
name, a unique URL slug derived from that name, a description, a set of tags,
a geographic point (longitude/latitude plus a human readable address), an
optional photo and an author. Reviews are aggregated onto stores when they are
displayed.

All functions here talk to SQLite through the global `db_manager` and return
plain dictionaries so templates and JSON serialisation can use them directly.
"""
import math
import re
import unicodedata
from datetime import datetime, timezone

from app.database_manager import EARTH_RADIUS_METERS
from app.db import db_manager
from app.error import OwnershipError

# Tags offered on the add/edit store form.
AVAILABLE_TAGS = ['Wifi', 'Open Late', 'Family Friendly', 'Vegetarian', 'Licensed']

_STORE_COLUMNS = 'id, name, slug, description, address, lng, lat, photo, author_id, created_at'


def slugify(text):
    """
    Turns a store name into a URL-safe slug.

    Accents are folded to ASCII, everything is lower-cased and each run of
    characters that are not letters or digits becomes a single hyphen.

    Example:
        slugify("Café  Olé & Co.")  # 'cafe-ole-co'
    """
    normalized = unicodedata.normalize('NFKD', text or '').encode('ascii', 'ignore').decode('ascii')
    slug = re.sub(r'[^a-z0-9]+', '-', normalized.lower()).strip('-')
    return slug or 'store'


def generate_unique_slug(name, exclude_store_id=None):
    """
    Builds a slug for `name` that does not collide with another store.

    When other stores already use the base slug (or a numbered variant of it,
    e.g. 'wes-coffee-2'), the new slug gets the suffix `-<n+1>` where n is the
    number of such stores.

    Args:
        name (str): The store name.
        exclude_store_id (int, optional): The store being renamed, which must not
            count against itself.
    """
    base = slugify(name)
    pattern = re.compile(rf'^{re.escape(base)}(-[0-9]*)?$')
    rows = db_manager.fetchall(
        "SELECT id, slug FROM stores WHERE slug = ? OR slug LIKE ?",
        (base, f'{base}-%')
    )
    taken = [row['slug'] for row in rows if row['id'] != exclude_store_id and pattern.match(row['slug'])]
    if not taken:
        return base
    candidate = f'{base}-{len(taken) + 1}'
    # A numbered slug can still be taken after deletions/renames; walk forward until free.
    while candidate in taken:
        candidate = f'{base}-{int(candidate.rsplit("-", 1)[1]) + 1}'
    return candidate


def _now_iso():
    return datetime.now(timezone.utc).isoformat()


def _attach_tags(stores):
    """Loads tags for a list of store dicts in a single query, in place."""
    if not stores:
        return stores
    ids = [store['id'] for store in stores]
    placeholders = ','.join('?' * len(ids))
    rows = db_manager.fetchall(
        f"SELECT store_id, tag FROM store_tags WHERE store_id IN ({placeholders}) ORDER BY tag",
        tuple(ids)
    )
    tags_by_store = {}
    for row in rows:
        tags_by_store.setdefault(row['store_id'], []).append(row['tag'])
    for store in stores:
        store['tags'] = tags_by_store.get(store['id'], [])
    return stores


def _rows_to_stores(rows):
    return _attach_tags([dict(row) for row in rows])


def create_store(author_id, data):
    """
    Inserts a store and its tags in one transaction.

    Args:
        author_id (int): The user creating the store.
        data (dict): Validated form data with keys name, description, tags,
            address, lng, lat and optionally photo.

    Returns:
        dict: The newly created store (including its generated slug).
    """
    slug = generate_unique_slug(data['name'])
    with db_manager.transaction() as conn:
        store_id = conn.execute(
            '''INSERT INTO stores (name, slug, description, address, lng, lat, photo, author_id, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)''',
            (data['name'], slug, data.get('description', ''), data['address'],
             data['lng'], data['lat'], data.get('photo'), author_id, _now_iso())
        ).lastrowid
        conn.executemany(
            "INSERT OR IGNORE INTO store_tags (store_id, tag) VALUES (?, ?)",
            [(store_id, tag) for tag in data.get('tags', [])]
        )
    return get_store(store_id)


def update_store(store, data):
    """
    Updates an existing store with validated form data.

    The slug is regenerated only when the name changes. The photo is replaced
    only when a new one was uploaded. Tags are replaced by the submitted set.

    Returns:
        dict: The updated store.
    """
    slug = store['slug']
    if data['name'] != store['name']:
        slug = generate_unique_slug(data['name'], exclude_store_id=store['id'])
    photo = data.get('photo') or store['photo']

    with db_manager.transaction() as conn:
        conn.execute(
            '''UPDATE stores
               SET name = ?, slug = ?, description = ?, address = ?, lng = ?, lat = ?, photo = ?
               WHERE id = ?''',
            (data['name'], slug, data.get('description', ''), data['address'],
             data['lng'], data['lat'], photo, store['id'])
        )
        conn.execute("DELETE FROM store_tags WHERE store_id = ?", (store['id'],))
        conn.executemany(
            "INSERT OR IGNORE INTO store_tags (store_id, tag) VALUES (?, ?)",
            [(store['id'], tag) for tag in data.get('tags', [])]
        )
    return get_store(store['id'])


def get_store(store_id):
    """Returns the store with `store_id` (tags included) or None."""
    row = db_manager.fetchone(f"SELECT {_STORE_COLUMNS} FROM stores WHERE id = ?", (store_id,))
    if row is None:
        return None
    return _rows_to_stores([row])[0]


def get_store_by_slug(slug):
    """
    Returns the store for `slug` with its author and reviews populated, or None.

    The returned dict carries `author` (id, name, email) and `reviews`, newest
    first, each with its own `author`.
    """
    row = db_manager.fetchone(f"SELECT {_STORE_COLUMNS} FROM stores WHERE slug = ?", (slug,))
    if row is None:
        return None
    store = _rows_to_stores([row])[0]

    author = db_manager.fetchone("SELECT id, name, email FROM users WHERE id = ?", (store['author_id'],))
    store['author'] = dict(author) if author else None

    review_rows = db_manager.fetchall(
        '''SELECT reviews.id, reviews.text, reviews.rating, reviews.created_at,
                  users.id AS author_id, users.name AS author_name
           FROM reviews
           JOIN users ON users.id = reviews.author_id
           WHERE reviews.store_id = ?
           ORDER BY reviews.created_at DESC, reviews.id DESC''',
        (store['id'],)
    )
    store['reviews'] = [
        {
            'id': r['id'],
            'text': r['text'],
            'rating': r['rating'],
            'created_at': r['created_at'],
            'author': {'id': r['author_id'], 'name': r['author_name']},
        }
        for r in review_rows
    ]
    return store


def count_stores():
    row = db_manager.fetchone("SELECT COUNT(*) AS total FROM stores")
    return row['total'] if row else 0


def list_stores(skip, limit):
    """Newest-first page of stores, each with `tags` and `review_count`."""
    rows = db_manager.fetchall(
        '''SELECT stores.*, (SELECT COUNT(*) FROM reviews WHERE reviews.store_id = stores.id) AS review_count
           FROM stores
           ORDER BY stores.created_at DESC, stores.id DESC
           LIMIT ? OFFSET ?''',
        (limit, skip)
    )
    return _rows_to_stores(rows)


def get_stores_by_ids(store_ids):
    """Returns the stores whose ids are in `store_ids`, newest first."""
    store_ids = list(store_ids)
    if not store_ids:
        return []
    placeholders = ','.join('?' * len(store_ids))
    rows = db_manager.fetchall(
        f'''SELECT stores.*, (SELECT COUNT(*) FROM reviews WHERE reviews.store_id = stores.id) AS review_count
            FROM stores
            WHERE stores.id IN ({placeholders})
            ORDER BY stores.created_at DESC, stores.id DESC''',
        tuple(store_ids)
    )
    return _rows_to_stores(rows)


def get_tags_list():
    """
    Lists every tag in use with the number of stores carrying it.

    Returns:
        list[dict]: `{'tag': str, 'count': int}` ordered by count descending,
        then alphabetically.
    """
    rows = db_manager.fetchall(
        '''SELECT tag, COUNT(*) AS count
           FROM store_tags
           GROUP BY tag
           ORDER BY count DESC, tag ASC'''
    )
    return [{'tag': row['tag'], 'count': row['count']} for row in rows]


def get_stores_by_tag(tag=None):
    """Stores carrying `tag`; every store when `tag` is None."""
    if tag:
        rows = db_manager.fetchall(
            '''SELECT stores.*, (SELECT COUNT(*) FROM reviews WHERE reviews.store_id = stores.id) AS review_count
               FROM stores
               JOIN store_tags ON store_tags.store_id = stores.id
               WHERE store_tags.tag = ?
               ORDER BY stores.created_at DESC, stores.id DESC''',
            (tag,)
        )
    else:
        rows = db_manager.fetchall(
            '''SELECT stores.*, (SELECT COUNT(*) FROM reviews WHERE reviews.store_id = stores.id) AS review_count
               FROM stores
               ORDER BY stores.created_at DESC, stores.id DESC'''
        )
    return _rows_to_stores(rows)


def get_top_stores(min_reviews, limit):
    """
    Highest rated stores that have at least `min_reviews` reviews.

    Each returned store carries `review_count` and `average_rating`.
    """
    rows = db_manager.fetchall(
        '''SELECT stores.id, stores.name, stores.slug, stores.photo,
                  COUNT(reviews.id) AS review_count,
                  AVG(reviews.rating) AS average_rating
           FROM stores
           JOIN reviews ON reviews.store_id = stores.id
           GROUP BY stores.id
           HAVING COUNT(reviews.id) >= ?
           ORDER BY average_rating DESC, review_count DESC, stores.id ASC
           LIMIT ?''',
        (min_reviews, limit)
    )
    return [dict(row) for row in rows]


def build_match_query(text):
    """
    Converts free text into an FTS5 MATCH expression.

    Every word becomes a quoted phrase and words are OR-ed together, so any
    store matching one of the words is returned and FTS5 syntax characters in
    user input are never interpreted. Returns None when there are no words.
    """
    words = re.findall(r'\w+', text or '', flags=re.UNICODE)
    if not words:
        return None
    return ' OR '.join(f'"{word}"' for word in words)


def search_stores(text, limit):
    """
    Full-text search over store name and description.

    Results are ordered by relevance (best first) and carry a positive `score`.
    """
    match = build_match_query(text)
    if match is None:
        return []
    rows = db_manager.fetchall(
        '''SELECT stores.id, stores.name, stores.slug, stores.description, stores.address,
                  stores.lng, stores.lat, stores.photo, stores.author_id, stores.created_at,
                  -bm25(stores_fts) AS score
            FROM stores_fts
            JOIN stores ON stores.id = stores_fts.rowid
            WHERE stores_fts MATCH ?
            ORDER BY bm25(stores_fts)
            LIMIT ?''',
        (match, limit)
    )
    return _rows_to_stores(rows)


def bounding_box(lng, lat, max_distance):
    """
    Smallest lat/lng rectangle containing every point within `max_distance`
    meters of (lng, lat).

    Returns:
        tuple: `(min_lat, max_lat, min_lng, max_lng)`. The longitude bounds are
        None when the circle reaches a pole or crosses the antimeridian, since
        no single longitude range covers it there.
    """
    angular = max_distance / EARTH_RADIUS_METERS
    lat_delta = math.degrees(angular)
    min_lat, max_lat = lat - lat_delta, lat + lat_delta

    cos_lat = math.cos(math.radians(lat))
    if min_lat <= -90 or max_lat >= 90 or math.sin(angular) >= cos_lat:
        return min_lat, max_lat, None, None

    lng_delta = math.degrees(math.asin(math.sin(angular) / cos_lat))
    min_lng, max_lng = lng - lng_delta, lng + lng_delta
    if min_lng < -180 or max_lng > 180:
        return min_lat, max_lat, None, None
    return min_lat, max_lat, min_lng, max_lng


def find_stores_near(lng, lat, max_distance, limit):
    """
    Stores within `max_distance` meters of (lng, lat), nearest first.

    Rows outside the bounding box are filtered through the (lat, lng) index
    before any distance is computed. Each result carries `distance` in meters.
    """
    min_lat, max_lat, min_lng, max_lng = bounding_box(lng, lat, max_distance)
    conditions = ['lat BETWEEN ? AND ?']
    box_params = [min_lat, max_lat]
    if min_lng is not None:
        conditions.append('lng BETWEEN ? AND ?')
        box_params += [min_lng, max_lng]

    rows = db_manager.fetchall(
        f'''SELECT * FROM (
               SELECT id, slug, name, description, address, lng, lat, photo,
                      haversine_m(?, ?, lat, lng) AS distance
               FROM stores
               WHERE {' AND '.join(conditions)}
           )
           WHERE distance <= ?
           ORDER BY distance ASC
           LIMIT ?''',
        (lat, lng, *box_params, max_distance, limit)
    )
    return [dict(row) for row in rows]


def confirm_owner(store, user):
    """
    Raises `OwnershipError` unless `user` authored `store`.
    """
    if user is None or store['author_id'] != user['id']:
        raise OwnershipError('You must own a store in order to edit it!')


def store_to_json(store):
    """
    Serialises a store dict for the JSON API.

    The location is emitted as a GeoJSON point (`[lng, lat]`) plus the address.
    """
    data = {
        'id': store['id'],
        'name': store['name'],
        'slug': store['slug'],
        'description': store.get('description', ''),
        'location': {
            'type': 'Point',
            'coordinates': [store['lng'], store['lat']],
            'address': store['address'],
        },
        'photo': store.get('photo'),
    }
    for optional in ('tags', 'score', 'distance'):
        if optional in store:
            data[optional] = store[optional]
    return data
