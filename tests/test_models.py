"""Unit tests for the data layer: distance, search queries, slugs, users and hearts."""
from datetime import datetime, timedelta, timezone

import pytest

from app.database_manager import haversine_m, EARTH_RADIUS_METERS
from app.db import db_manager
from app.error import OwnershipError
from app.models import store as store_model
from app.models import user as user_model
from app.models import review as review_model


class TestHaversine:

    def test_same_point_is_zero(self):
        assert haversine_m(43.2, -79.8, 43.2, -79.8) == 0

    def test_one_degree_of_latitude(self):
        expected = 2 * 3.141592653589793 * EARTH_RADIUS_METERS / 360
        assert haversine_m(0, 0, 1, 0) == pytest.approx(expected, rel=1e-6)

    def test_is_symmetric(self):
        a = haversine_m(43.25, -79.87, 43.65, -79.38)
        b = haversine_m(43.65, -79.38, 43.25, -79.87)
        assert a == pytest.approx(b)
        # Hamilton to Toronto is roughly 60km.
        assert 55000 < a < 65000

    def test_null_argument_returns_none(self):
        assert haversine_m(None, 0, 0, 0) is None


class TestSlugs:

    @pytest.mark.parametrize('name, expected', [
        ("Wes's Coffee", 'wes-s-coffee'),
        ('  Café  Olé & Co. ', 'cafe-ole-co'),
        ('UPPER lower', 'upper-lower'),
        ('!!!', 'store'),
    ])
    def test_slugify(self, name, expected):
        assert store_model.slugify(name) == expected

    def test_duplicate_names_get_numbered_slugs(self, app, make_user, make_store):
        user = make_user('a@example.com')
        first = make_store(user['id'], name='Wes Coffee')
        second = make_store(user['id'], name='Wes Coffee')
        third = make_store(user['id'], name='Wes Coffee')
        assert [first['slug'], second['slug'], third['slug']] == ['wes-coffee', 'wes-coffee-2', 'wes-coffee-3']

    def test_prefix_only_matches_do_not_count(self, app, make_user, make_store):
        user = make_user('a@example.com')
        make_store(user['id'], name='Wes Coffee Roasters')
        assert make_store(user['id'], name='Wes Coffee')['slug'] == 'wes-coffee'

    def test_renaming_does_not_collide_with_itself(self, app, make_user, make_store):
        user = make_user('a@example.com')
        store = make_store(user['id'], name='Wes Coffee')
        with app.app_context():
            assert store_model.generate_unique_slug('Wes Coffee', exclude_store_id=store['id']) == 'wes-coffee'


class TestStoreQueries:

    def test_update_keeps_slug_and_photo_when_unchanged(self, app, make_user, make_store):
        user = make_user('a@example.com')
        store = make_store(user['id'], name='Wes Coffee', photo='old.png', tags=['Wifi', 'Licensed'])
        with app.app_context():
            updated = store_model.update_store(store, {
                'name': 'Wes Coffee', 'description': 'new', 'address': 'Elsewhere',
                'lng': 1.0, 'lat': 2.0, 'tags': ['Open Late'],
            })
        assert updated['slug'] == 'wes-coffee'
        assert updated['photo'] == 'old.png'
        assert updated['tags'] == ['Open Late']
        assert (updated['lng'], updated['lat']) == (1.0, 2.0)

    def test_update_with_new_name_regenerates_slug(self, app, make_user, make_store):
        user = make_user('a@example.com')
        store = make_store(user['id'], name='Wes Coffee')
        with app.app_context():
            updated = store_model.update_store(store, {
                'name': 'Bean There', 'address': 'x', 'lng': 0.0, 'lat': 0.0, 'tags': [],
            })
        assert updated['slug'] == 'bean-there'

    def test_tags_list_counts(self, app, make_user, make_store):
        user = make_user('a@example.com')
        make_store(user['id'], tags=['Wifi', 'Licensed'])
        make_store(user['id'], tags=['Wifi'])
        with app.app_context():
            assert store_model.get_tags_list() == [
                {'tag': 'Wifi', 'count': 2},
                {'tag': 'Licensed', 'count': 1},
            ]
            assert len(store_model.get_stores_by_tag('Licensed')) == 1
            assert len(store_model.get_stores_by_tag()) == 2

    def test_top_stores_need_minimum_reviews(self, app, make_user, make_store):
        user = make_user('a@example.com')
        good = make_store(user['id'], name='Good')
        okay = make_store(user['id'], name='Okay')
        lonely = make_store(user['id'], name='Lonely')
        with app.app_context():
            for rating in (5, 4):
                review_model.add_review(user['id'], good['id'], 'nice', rating)
            for rating in (3, 2):
                review_model.add_review(user['id'], okay['id'], 'meh', rating)
            review_model.add_review(user['id'], lonely['id'], 'best ever', 5)

            top = store_model.get_top_stores(2, 10)

        assert [store['name'] for store in top] == ['Good', 'Okay']
        assert top[0]['average_rating'] == pytest.approx(4.5)
        assert top[0]['review_count'] == 2

    @pytest.mark.parametrize('text, expected', [
        ('coffee', '"coffee"'),
        ('coffee beer', '"coffee" OR "beer"'),
        ('"NEAR(a b)" -x', '"NEAR" OR "a" OR "b" OR "x"'),
        ('', None),
        ('  !! ', None),
    ])
    def test_build_match_query(self, text, expected):
        assert store_model.build_match_query(text) == expected

    def test_search_ranks_and_stays_in_sync(self, app, make_user, make_store):
        user = make_user('a@example.com')
        coffee = make_store(user['id'], name='Coffee House', description='coffee coffee and cake')
        make_store(user['id'], name='Tea Room', description='also some coffee')
        make_store(user['id'], name='Beer Hall', description='lagers')
        with app.app_context():
            results = store_model.search_stores('coffee', 5)
            assert [store['name'] for store in results][0] == 'Coffee House'
            assert len(results) == 2
            assert all(store['score'] > 0 for store in results)

            store_model.update_store(coffee, {
                'name': 'Cake Shop', 'description': 'only cake', 'address': 'x',
                'lng': 0.0, 'lat': 0.0, 'tags': [],
            })
            assert [store['name'] for store in store_model.search_stores('coffee', 5)] == ['Tea Room']

    def test_find_stores_near_filters_by_distance(self, app, make_user, make_store):
        user = make_user('a@example.com')
        make_store(user['id'], name='Far', lat=43.25, lng=-79.75)    # ~6km
        make_store(user['id'], name='Near', lat=43.2, lng=-79.8)
        make_store(user['id'], name='Vancouver', lat=49.28, lng=-123.12)
        with app.app_context():
            results = store_model.find_stores_near(-79.8, 43.2, 10000, 10)
        assert [store['name'] for store in results] == ['Near', 'Far']
        assert results[0]['distance'] == pytest.approx(0, abs=1)

    def test_bounding_box_contains_the_search_circle(self):
        min_lat, max_lat, min_lng, max_lng = store_model.bounding_box(-79.8, 43.2, 10000)
        assert min_lat < 43.2 < max_lat
        assert min_lng < -79.8 < max_lng
        # Points exactly 10km due north and due east sit on the box edges.
        assert haversine_m(43.2, -79.8, max_lat, -79.8) == pytest.approx(10000, rel=1e-6)
        assert haversine_m(43.2, -79.8, 43.2, max_lng) >= 10000 * (1 - 1e-6)

    def test_bounding_box_drops_longitude_across_antimeridian_and_poles(self):
        assert store_model.bounding_box(179.99, 0, 10000)[2:] == (None, None)
        assert store_model.bounding_box(0, 89.99, 10000)[2:] == (None, None)

    def test_find_stores_near_across_antimeridian(self, app, make_user, make_store):
        user = make_user('a@example.com')
        make_store(user['id'], name='Fiji East', lat=-17.0, lng=179.99)
        make_store(user['id'], name='Fiji Far', lat=-17.0, lng=178.0)
        with app.app_context():
            results = store_model.find_stores_near(-179.99, -17.0, 10000, 10)
        assert [store['name'] for store in results] == ['Fiji East']

    def test_confirm_owner(self, app, make_user, make_store):
        owner = make_user('a@example.com')
        stranger = make_user('b@example.com')
        store = make_store(owner['id'])
        store_model.confirm_owner(store, owner)
        with pytest.raises(OwnershipError):
            store_model.confirm_owner(store, stranger)
        with pytest.raises(OwnershipError):
            store_model.confirm_owner(store, None)

    def test_store_to_json_uses_geojson_point(self, app, make_user, make_store):
        user = make_user('a@example.com')
        store = make_store(user['id'], name='Wes Coffee', tags=['Wifi'])
        data = store_model.store_to_json(store)
        assert data['location'] == {'type': 'Point', 'coordinates': [-79.8, 43.2], 'address': 'Somewhere'}
        assert data['tags'] == ['Wifi']
        assert 'author_id' not in data


class TestUsers:

    def test_email_is_normalised_and_password_hashed(self, app, make_user):
        user = make_user('  Wes@Example.COM ', password='hunter2')
        assert user['email'] == 'wes@example.com'
        assert user['password'] != 'hunter2'
        with app.app_context():
            assert user_model.authenticate('WES@example.com', 'hunter2')['id'] == user['id']
            assert user_model.authenticate('wes@example.com', 'wrong') is None

    def test_toggle_heart_is_a_set(self, app, make_user, make_store):
        user = make_user('a@example.com')
        store = make_store(user['id'])
        with app.app_context():
            assert user_model.toggle_heart(user['id'], store['id']) is True
            assert user_model.get_heart_ids(user['id']) == [store['id']]
            assert user_model.toggle_heart(user['id'], store['id']) is False
            assert user_model.get_heart_ids(user['id']) == []

    def test_reset_token_expiry(self, app, make_user):
        user = make_user('a@example.com')
        expires = datetime.now(timezone.utc) + timedelta(hours=1)
        with app.app_context():
            user_model.set_reset_token(user['id'], 'abc', expires)
            assert user_model.get_user_by_reset_token('abc')['id'] == user['id']
            assert user_model.get_user_by_reset_token('abc', now=expires + timedelta(seconds=1)) is None
            assert user_model.get_user_by_reset_token('nope') is None

    def test_reset_password_clears_token(self, app, make_user):
        user = make_user('a@example.com')
        with app.app_context():
            user_model.set_reset_token(user['id'], 'abc', datetime.now(timezone.utc) + timedelta(hours=1))
            user_model.reset_password(user['id'], 'newpass')
            row = db_manager.fetchone('SELECT reset_password_token FROM users WHERE id = ?', (user['id'],))
            assert row['reset_password_token'] is None
            assert user_model.authenticate('a@example.com', 'newpass') is not None
