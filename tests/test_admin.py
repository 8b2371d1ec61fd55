import pytest

from conftest import add_image, login_admin, signup_salon
from salon import ledger
from salon.db import get_db
from salon.models import CreditReason, Image, Salon


NEW_SALON = {
    'name': 'Uptown Barbers',
    'slug': 'uptown-barbers',
    'status': 'active',
    'type': 'barbershop',
    'services': 'male',
    'credits': 20,
}


@pytest.fixture
def admin_client(app):
    client = app.test_client()
    admin_id = login_admin(client)
    return client, admin_id


def test_admin_routes_require_login(client):
    response = client.get('/api/salons')
    assert response.status_code == 401


def test_admin_routes_reject_salon_users(salon_client):
    client, _ = salon_client

    response = client.get('/api/salons')

    assert response.status_code == 403
    assert response.get_json()['code'] == 'ADMIN_REQUIRED'


def test_create_and_list_salons(admin_client):
    client, admin_id = admin_client

    response = client.post('/api/salons', json=NEW_SALON)

    assert response.status_code == 201
    salon = response.get_json()['salon']
    assert salon['slug'] == 'uptown-barbers'
    assert salon['credits'] == 20
    assert salon['hairStyles'] == []

    [entry] = ledger.get_salon_history(salon['id'])
    assert entry.reason == CreditReason.ADMIN_GRANT
    assert entry.created_by == admin_id

    listed = client.get('/api/salons').get_json()['salons']
    assert [s['slug'] for s in listed] == ['uptown-barbers']


def test_create_salon_validation(admin_client):
    client, _ = admin_client

    missing = {k: v for k, v in NEW_SALON.items() if k != 'services'}
    assert client.post('/api/salons', json=missing).status_code == 400

    bad_type = {**NEW_SALON, 'type': 'spa'}
    response = client.post('/api/salons', json=bad_type)
    assert response.status_code == 400
    assert response.get_json()['field'] == 'type'

    for field in ('status', 'type', 'services'):
        response = client.post('/api/salons', json={**NEW_SALON, field: [NEW_SALON[field]]})
        assert response.status_code == 400
        assert response.get_json()['field'] == field

    bad_credits = {**NEW_SALON, 'credits': -5}
    assert client.post('/api/salons', json=bad_credits).status_code == 400

    bad_slug = {**NEW_SALON, 'slug': 'Not A Slug'}
    assert client.post('/api/salons', json=bad_slug).status_code == 400


def test_duplicate_slug_is_conflict(admin_client):
    client, _ = admin_client
    client.post('/api/salons', json=NEW_SALON)

    response = client.post('/api/salons', json={**NEW_SALON, 'name': 'Copy'})

    assert response.status_code == 400
    assert response.get_json()['code'] == 'CONFLICT'


def test_patch_salon_fields_and_credits(admin_client):
    client, admin_id = admin_client
    salon_id = client.post('/api/salons', json=NEW_SALON).get_json()['salon']['id']

    response = client.patch(f'/api/salons/{salon_id}', json={
        'status': 'suspended',
        'credits': 5,
        'owner_id': 'ignored',
    })

    assert response.status_code == 200
    salon = response.get_json()['salon']
    assert salon['status'] == 'suspended'
    assert salon['credits'] == 5

    latest = ledger.get_salon_history(salon_id)[0]
    assert latest.reason == CreditReason.ADMIN_ADJUST
    assert latest.delta == -15
    assert latest.created_by == admin_id


def test_patch_rejects_invalid_values(admin_client):
    client, _ = admin_client
    salon_id = client.post('/api/salons', json=NEW_SALON).get_json()['salon']['id']

    assert client.patch(f'/api/salons/{salon_id}', json={'status': 'closed'}).status_code == 400
    assert client.patch(f'/api/salons/{salon_id}', json={'credits': 'lots'}).status_code == 400
    assert client.patch('/api/salons/unknown', json={'status': 'active'}).status_code == 404


def test_grant_credits_and_history(admin_client):
    client, _ = admin_client
    salon_id = client.post('/api/salons', json=NEW_SALON).get_json()['salon']['id']

    response = client.post(f'/api/salons/{salon_id}/credits', json={'amount': 30, 'notes': 'Promo'})

    assert response.status_code == 200
    assert response.get_json()['credits'] == 50

    history = client.get(f'/api/salons/{salon_id}/credits/history').get_json()['history']
    assert [h['delta'] for h in history] == [30, 20]
    assert history[0]['notes'] == 'Promo'
    assert history[0]['balanceAfter'] == 50


def test_grant_rejects_bad_amount(admin_client):
    client, _ = admin_client
    salon_id = client.post('/api/salons', json=NEW_SALON).get_json()['salon']['id']

    assert client.post(f'/api/salons/{salon_id}/credits', json={'amount': 0}).status_code == 400
    assert client.post('/api/salons/unknown/credits', json={'amount': 5}).status_code == 404


def test_delete_salon_cascades(app, admin_client):
    client, _ = admin_client
    owner = app.test_client()
    user = signup_salon(owner, 'owner@example.com', 'downtown-cuts')
    add_image(user['salonId'])

    response = client.delete(f"/api/salons/{user['salonId']}")

    assert response.status_code == 200
    assert client.get(f"/api/salons/{user['salonId']}").status_code == 404
    assert get_db().query(Image).count() == 0
    assert ledger.get_salon_history(user['salonId']) == []


def test_admin_can_read_any_salon_by_slug(app, admin_client):
    client, _ = admin_client
    signup_salon(app.test_client(), 'owner@example.com', 'downtown-cuts')

    response = client.get('/api/salons/slug/downtown-cuts')

    assert response.status_code == 200
    assert response.get_json()['salon']['slug'] == 'downtown-cuts'
    assert get_db().query(Salon).count() == 1
