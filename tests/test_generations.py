import threading

from sqlalchemy.exc import OperationalError

from conftest import add_image, signup_salon, PASSWORD, STYLE_DATA_URL
from generation.providers.base import AIProvider
from salon import ledger, salons
from salon.db import get_db
from salon.errors import ProviderUnavailable
from salon.models import Generation, CreditLedger, CreditReason


class FailingProvider(AIProvider):
    name = 'failing'

    def render(self, photo_ref, prompt, style_ref, variations):
        raise ProviderUnavailable()


class BrokenProvider(AIProvider):
    name = 'broken'

    def render(self, photo_ref, prompt, style_ref, variations):
        raise RuntimeError('connection reset')


def generation_count():
    return get_db().query(Generation).count()


def reasons(salon_id):
    return [
        e.reason for e in get_db().query(CreditLedger)
        .filter_by(salon_id=salon_id).order_by(CreditLedger.created_at)
    ]


# =============================================================================
# SUCCESS
# =============================================================================

def test_prompt_generation_charges_one_credit(salon_client):
    client, user = salon_client
    image_id = add_image(user['salonId'])

    response = client.post('/api/generations', json={
        'inputImageId': image_id,
        'prompt': 'textured crop',
        'variations': 2,
    })

    assert response.status_code == 200
    body = response.get_json()
    assert body['success'] is True
    assert body['credits'] == {'used': 1, 'remaining': 49}

    generation = body['generation']
    assert generation['generationType'] == 'prompt'
    assert generation['creditCost'] == 1
    assert generation['variations'] == 2
    assert generation['inputImageId'] == image_id
    assert generation['outputImagePath'].startswith('data:image/svg+xml;base64,')

    usage = get_db().query(CreditLedger).filter_by(reason=CreditReason.USAGE).one()
    assert usage.generation_id == generation['id']
    assert ledger.get_balance(user['salonId']) == 49


def test_style_reference_generation_charges_two_credits(salon_client):
    client, user = salon_client
    image_id = add_image(user['salonId'])
    salon = salons.get_salon(user['salonId'])
    style_id = salons.add_hair_style(salon, 'Pixie', STYLE_DATA_URL).id

    response = client.post('/api/generations/style-transfer', json={
        'inputImageId': image_id,
        'hairStyleId': style_id,
    })

    assert response.status_code == 200
    body = response.get_json()
    assert body['credits'] == {'used': 2, 'remaining': 48}
    assert body['generation']['generationType'] == 'style-reference'
    assert body['generation']['hairStyleId'] == style_id
    assert body['generation']['prompt'] is None


def test_stub_output_is_deterministic(salon_client):
    client, user = salon_client
    image_id = add_image(user['salonId'])
    payload = {'inputImageId': image_id, 'prompt': 'long layers'}

    first = client.post('/api/generations', json=payload).get_json()
    second = client.post('/api/generations', json=payload).get_json()

    assert first['generation']['outputImagePath'] == second['generation']['outputImagePath']
    assert second['credits']['remaining'] == 48


# =============================================================================
# REJECTIONS (nothing charged)
# =============================================================================

def test_anonymous_request_is_unauthorized(client):
    response = client.post('/api/generations', json={'inputImageId': 'x', 'prompt': 'y'})
    assert response.status_code == 401
    assert response.get_json()['code'] == 'UNAUTHORIZED'


def test_non_object_body_from_anonymous_caller_is_unauthorized(client):
    response = client.post('/api/generations', json=[1])
    assert response.status_code == 401
    assert response.get_json()['code'] == 'UNAUTHORIZED'


def test_zero_credits_is_payment_required(salon_client):
    client, user = salon_client
    image_id = add_image(user['salonId'])
    ledger.set_balance(user['salonId'], 0, admin_user_id=None)

    response = client.post('/api/generations', json={'inputImageId': image_id, 'prompt': 'bob'})

    assert response.status_code == 402
    body = response.get_json()
    assert body['success'] is False
    assert body['code'] == 'INSUFFICIENT_CREDITS'
    assert body['required'] == 1
    assert body['available'] == 0
    assert generation_count() == 0


def test_one_credit_left_for_style_reference(salon_client):
    client, user = salon_client
    image_id = add_image(user['salonId'])
    salon = salons.get_salon(user['salonId'])
    style_id = salons.add_hair_style(salon, 'Pixie', STYLE_DATA_URL).id
    ledger.set_balance(user['salonId'], 1, admin_user_id=None)

    response = client.post('/api/generations', json={'inputImageId': image_id, 'hairStyleId': style_id})

    assert response.status_code == 402
    assert response.get_json()['required'] == 2
    assert ledger.get_balance(user['salonId']) == 1


def test_concurrent_requests_spend_the_last_credit_once(app, salon_client):
    _, user = salon_client
    image_id = add_image(user['salonId'])
    ledger.set_balance(user['salonId'], 1, admin_user_id=None)

    clients = []
    for _ in range(4):
        c = app.test_client()
        response = c.post('/auth/login', json={'email': 'owner@example.com', 'password': PASSWORD})
        assert response.status_code == 200
        clients.append(c)

    barrier = threading.Barrier(len(clients))
    statuses = []
    lock = threading.Lock()

    def race(c):
        barrier.wait()
        response = c.post('/api/generations', json={'inputImageId': image_id, 'prompt': 'bob'})
        with lock:
            statuses.append(response.status_code)

    threads = [threading.Thread(target=race, args=(c,)) for c in clients]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    assert sorted(statuses) == [200, 402, 402, 402]
    assert ledger.get_balance(user['salonId']) == 0
    assert reasons(user['salonId']).count(CreditReason.USAGE) == 1
    assert generation_count() == 1


def test_cross_tenant_image_is_forbidden(app, salon_client):
    client, user = salon_client
    other = app.test_client()
    other_user = signup_salon(other, 'rival@example.com', 'rival-salon')
    foreign_image = add_image(other_user['salonId'])

    response = client.post('/api/generations', json={'inputImageId': foreign_image, 'prompt': 'bob'})

    assert response.status_code == 403
    assert response.get_json()['code'] == 'IMAGE_FORBIDDEN'
    assert ledger.get_balance(user['salonId']) == 50
    assert reasons(user['salonId']) == [CreditReason.SIGNUP_BONUS]


def test_suspended_salon_cannot_generate(salon_client):
    client, user = salon_client
    image_id = add_image(user['salonId'])
    salons.update_salon(user['salonId'], {'status': 'suspended'})

    response = client.post('/api/generations', json={'inputImageId': image_id, 'prompt': 'bob'})

    assert response.status_code == 403
    assert response.get_json()['code'] == 'SALON_SUSPENDED'
    assert reasons(user['salonId']) == [CreditReason.SIGNUP_BONUS]


def test_suspended_salon_with_non_object_body(salon_client):
    client, user = salon_client
    salons.update_salon(user['salonId'], {'status': 'suspended'})

    for path in ('/api/generations', '/api/generations/style-transfer'):
        response = client.post(path, json=[1])
        assert response.status_code == 403
        assert response.get_json()['code'] == 'SALON_SUSPENDED'


def test_non_object_body_is_rejected(salon_client):
    client, user = salon_client

    response = client.post('/api/generations', json=['inputImageId'])

    assert response.status_code == 400
    assert response.get_json()['code'] == 'VALIDATION_ERROR'
    assert ledger.get_balance(user['salonId']) == 50


def test_barbershop_style_transfer_is_unsupported(app):
    client = app.test_client()
    user = signup_salon(client, 'barber@example.com', 'barber', salon_type='barbershop', services='male')
    image_id = add_image(user['salonId'])
    salon = salons.get_salon(user['salonId'])
    style_id = salons.add_hair_style(salon, 'Fade', STYLE_DATA_URL).id

    response = client.post('/api/generations/style-transfer', json={
        'inputImageId': image_id,
        'hairStyleId': style_id,
    })

    assert response.status_code == 403
    assert response.get_json()['code'] == 'UNSUPPORTED_OPERATION'
    assert ledger.get_balance(user['salonId']) == 50


def test_validation_error_shape(salon_client):
    client, _ = salon_client

    response = client.post('/api/generations', json={'prompt': 'bob'})

    assert response.status_code == 400
    assert response.get_json() == {
        'success': False,
        'error': 'Input image ID is required',
        'code': 'MISSING_FIELD',
        'field': 'inputImageId',
    }


# =============================================================================
# FAILURES AFTER THE CHARGE
# =============================================================================

def test_provider_failure_is_refunded(make_app):
    client = make_app(provider=FailingProvider()).test_client()
    user = signup_salon(client, 'owner@example.com', 'downtown-cuts')
    image_id = add_image(user['salonId'])

    response = client.post('/api/generations', json={'inputImageId': image_id, 'prompt': 'bob'})

    assert response.status_code == 500
    body = response.get_json()
    assert body['code'] == 'PROVIDER_UNAVAILABLE'
    assert body['creditsRefunded'] == 1
    assert body['creditsRemaining'] == 50
    assert ledger.get_balance(user['salonId']) == 50
    assert reasons(user['salonId']) == [
        CreditReason.SIGNUP_BONUS, CreditReason.USAGE, CreditReason.REFUND,
    ]
    assert generation_count() == 0


def test_unexpected_provider_exception_becomes_provider_error(make_app):
    client = make_app(provider=BrokenProvider()).test_client()
    user = signup_salon(client, 'owner@example.com', 'downtown-cuts')
    image_id = add_image(user['salonId'])

    response = client.post('/api/generations', json={'inputImageId': image_id, 'prompt': 'bob'})

    assert response.status_code == 500
    assert response.get_json()['code'] == 'PROVIDER_ERROR'
    assert ledger.get_balance(user['salonId']) == 50


def test_provider_failure_without_refund(make_app):
    client = make_app(provider=FailingProvider(), refund_on_failure=False).test_client()
    user = signup_salon(client, 'owner@example.com', 'downtown-cuts')
    image_id = add_image(user['salonId'])

    response = client.post('/api/generations', json={'inputImageId': image_id, 'prompt': 'bob'})

    assert response.status_code == 500
    assert response.get_json()['creditsRefunded'] == 0
    assert ledger.get_balance(user['salonId']) == 49
    assert generation_count() == 0


def test_persistence_failure_is_refunded(salon_client, monkeypatch):
    client, user = salon_client
    image_id = add_image(user['salonId'])

    class CommitFails:
        def __init__(self, session):
            self.session = session

        def add(self, obj):
            self.session.add(obj)

        def commit(self):
            raise OperationalError('INSERT INTO generations', {}, Exception('disk full'))

        def rollback(self):
            self.session.rollback()

    real_get_db = get_db
    monkeypatch.setattr('generation.orchestrator.get_db', lambda: CommitFails(real_get_db()))

    response = client.post('/api/generations', json={'inputImageId': image_id, 'prompt': 'bob'})

    assert response.status_code == 500
    assert response.get_json()['code'] == 'PERSISTENCE_ERROR'
    assert ledger.get_balance(user['salonId']) == 50
    assert generation_count() == 0


# =============================================================================
# HISTORY
# =============================================================================

def test_history_lists_newest_first(salon_client):
    client, user = salon_client
    image_id = add_image(user['salonId'])

    first = client.post('/api/generations', json={'inputImageId': image_id, 'prompt': 'one'}).get_json()
    second = client.post('/api/generations', json={'inputImageId': image_id, 'prompt': 'two'}).get_json()

    response = client.get('/api/generations')

    assert response.status_code == 200
    ids = [g['id'] for g in response.get_json()['generations']]
    assert ids == [second['generation']['id'], first['generation']['id']]


def test_get_generation(salon_client):
    client, user = salon_client
    image_id = add_image(user['salonId'])
    created = client.post('/api/generations', json={'inputImageId': image_id, 'prompt': 'one'}).get_json()

    response = client.get(f"/api/generations/{created['generation']['id']}")

    assert response.status_code == 200
    assert response.get_json()['generation']['prompt'] == 'one'


def test_get_generation_not_found(salon_client):
    client, _ = salon_client
    response = client.get('/api/generations/does-not-exist')
    assert response.status_code == 404
    assert response.get_json()['code'] == 'GENERATION_NOT_FOUND'


def test_get_other_salons_generation_is_forbidden(app, salon_client):
    client, user = salon_client
    image_id = add_image(user['salonId'])
    created = client.post('/api/generations', json={'inputImageId': image_id, 'prompt': 'one'}).get_json()

    other = app.test_client()
    signup_salon(other, 'rival@example.com', 'rival-salon')

    response = other.get(f"/api/generations/{created['generation']['id']}")
    assert response.status_code == 403
