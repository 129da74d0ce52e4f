"""JSON API: search, nearby stores, hearts, tokens and error bodies."""
import pytest
from flask_jwt_extended import create_access_token

from app import create_app
from app.config import TestingConfig
from app.models import user as user_model


@pytest.fixture
def coffee_shops(make_user, make_store):
    user = make_user('owner@example.com')
    return [
        make_store(user['id'], name='Coffee House', description='Espresso and coffee beans', lat=43.2, lng=-79.8),
        make_store(user['id'], name='Beer Hall', description='Craft lagers', lat=43.25, lng=-79.85),
        make_store(user['id'], name='Vancouver Coffee', description='West coast coffee', lat=49.28, lng=-123.12),
    ]


def test_search(client, coffee_shops):
    response = client.get('/api/v1/search?q=coffee')
    results = response.get_json()

    assert response.status_code == 200
    assert {store['name'] for store in results} == {'Coffee House', 'Vancouver Coffee'}
    assert all('score' in store for store in results)
    assert results[0]['location']['type'] == 'Point'


def test_search_without_terms_is_empty(client, coffee_shops):
    assert client.get('/api/v1/search?q=').get_json() == []
    assert client.get('/api/v1/search').get_json() == []


def test_search_limit(app, client, make_user, make_store):
    user = make_user('owner@example.com')
    for number in range(8):
        make_store(user['id'], name=f'Coffee {number}')
    assert len(client.get('/api/v1/search?q=coffee').get_json()) == app.config['SEARCH_RESULT_LIMIT']


def test_stores_near(client, coffee_shops):
    results = client.get('/api/v1/stores/near?lat=43.2&lng=-79.8').get_json()

    assert [store['name'] for store in results] == ['Coffee House', 'Beer Hall']
    assert results[0]['distance'] < results[1]['distance'] < 10000
    assert results[0]['location']['coordinates'] == [-79.8, 43.2]


@pytest.mark.parametrize('query', ['lat=abc&lng=-79.8', 'lat=43.2', 'lat=95&lng=0'])
def test_stores_near_rejects_bad_coordinates(client, query):
    response = client.get(f'/api/v1/stores/near?{query}')
    assert response.status_code == 400
    assert response.get_json()['status'] == 400


def test_heart_toggle(app, logged_in, coffee_shops):
    store_id = coffee_shops[0]['id']

    first = logged_in.post(f'/api/v1/stores/{store_id}/heart')
    assert first.status_code == 200
    assert first.get_json()['hearts'] == [store_id]
    assert first.get_json()['email'] == 'wes@example.com'
    assert 'password' not in first.get_json()

    second = logged_in.post(f'/api/v1/stores/{store_id}/heart')
    assert second.get_json()['hearts'] == []


def test_heart_requires_user(client, coffee_shops):
    response = client.post(f"/api/v1/stores/{coffee_shops[0]['id']}/heart")
    assert response.status_code == 401
    assert response.get_json()['status'] == 401


def test_heart_unknown_store(logged_in):
    response = logged_in.post('/api/v1/stores/999/heart')
    assert response.status_code == 404
    assert response.get_json() == {'error': 'The page or resource you were looking for could not be found.',
                                   'status': 404}


def test_token_and_bearer_heart(client, make_user, coffee_shops):
    user = make_user('api@example.com', password='s3cret')

    bad = client.post('/api/v1/token', json={'email': 'api@example.com', 'password': 'wrong'})
    assert bad.status_code == 401
    missing = client.post('/api/v1/token', json={})
    assert missing.status_code == 400

    token = client.post('/api/v1/token', json={'email': 'api@example.com', 'password': 's3cret'}).get_json()['access_token']
    response = client.post(
        f"/api/v1/stores/{coffee_shops[1]['id']}/heart",
        headers={'Authorization': f'Bearer {token}'}
    )
    assert response.status_code == 200
    assert response.get_json()['id'] == user['id']
    assert response.get_json()['hearts'] == [coffee_shops[1]['id']]


def test_unknown_api_route_returns_json(client):
    response = client.get('/api/v1/nothing-here')
    assert response.status_code == 404
    assert response.get_json()['status'] == 404


def test_unknown_page_returns_html(client):
    response = client.get('/nothing-here')
    assert response.status_code == 404
    assert 'Page Not Found' in response.get_data(as_text=True)


@pytest.fixture
def csrf_app(tmp_path):
    return create_app(TestingConfig, {
        'WTF_CSRF_ENABLED': True,
        'DATA_DIR': str(tmp_path),
        'DATABASE': str(tmp_path / 'instance' / 'stores.db'),
        'UPLOAD_FOLDER': str(tmp_path / 'uploads'),
    })


def test_session_heart_needs_csrf_token_but_bearer_does_not(csrf_app):
    with csrf_app.app_context():
        user_id = user_model.create_user('wes@example.com', 'Wes', 'hunter2')
        from app.models import store as store_model
        store = store_model.create_store(user_id, {
            'name': 'Coffee House', 'address': 'x', 'lng': 0.0, 'lat': 0.0, 'tags': [],
        })
        token = create_access_token(identity=str(user_id))

    client = csrf_app.test_client()
    with client.session_transaction() as session:
        session['user_id'] = user_id

    rejected = client.post(f"/api/v1/stores/{store['id']}/heart")
    assert rejected.status_code == 400

    bearer = csrf_app.test_client().post(
        f"/api/v1/stores/{store['id']}/heart",
        headers={'Authorization': f'Bearer {token}'}
    )
    assert bearer.status_code == 200

    issued = csrf_app.test_client().post('/api/v1/token', json={'email': 'wes@example.com', 'password': 'hunter2'})
    assert issued.status_code == 200


def test_heart_store_id_beyond_integer_range(logged_in):
    response = logged_in.post('/api/v1/stores/99999999999999999999/heart')
    assert response.status_code == 404
    assert response.get_json()['status'] == 404
