import json

from audit_log import AuditLogger, AuditEvent, audit
from conftest import add_image


def test_events_are_written_as_json_lines(tmp_path):
    logger = AuditLogger(log_path=tmp_path / 'audit.log')

    logger.log_event(
        AuditEvent.CREDITS_DEDUCTED,
        salon_id='salon-1',
        user_id='user-1',
        details={'amount': 1, 'balance_after': 49},
    )

    [line] = (tmp_path / 'audit.log').read_text().splitlines()
    entry = json.loads(line)
    assert entry['event'] == 'credits.deducted'
    assert entry['salon_id'] == 'salon-1'
    assert entry['details'] == {'amount': 1, 'balance_after': 49}


def test_unlisted_details_are_not_written(tmp_path):
    logger = AuditLogger(log_path=tmp_path / 'audit.log')

    logger.log_event(
        AuditEvent.GENERATION_COMPLETED,
        details={'prompt': 'a very private description', 'generation_id': 'gen-1'},
    )

    text = (tmp_path / 'audit.log').read_text()
    assert 'private description' not in text
    assert json.loads(text)['details'] == {'_skipped_prompt': 'str', 'generation_id': 'gen-1'}


def test_recent_events_filters(tmp_path):
    logger = AuditLogger(log_path=tmp_path / 'audit.log')
    logger.log_event(AuditEvent.AUTH_LOGIN, salon_id='a')
    logger.log_event(AuditEvent.CREDITS_GRANTED, salon_id='b')
    logger.log_event(AuditEvent.AUTH_LOGIN, salon_id='b')

    events = logger.get_recent_events(event_type=AuditEvent.AUTH_LOGIN)
    assert [e['salon_id'] for e in events] == ['b', 'a']

    assert len(logger.get_recent_events(salon_id='b')) == 2
    assert len(logger.get_recent_events(count=1)) == 1


def test_generation_flow_is_audited(salon_client):
    client, user = salon_client
    image_id = add_image(user['salonId'])

    client.post('/api/generations', json={'inputImageId': image_id, 'prompt': 'secret style'})

    events = audit.get_recent_events(count=10, salon_id=user['salonId'])
    names = [e['event'] for e in events]
    assert 'generation.completed' in names
    assert 'credits.deducted' in names

    completed = next(e for e in events if e['event'] == 'generation.completed')
    assert completed['details']['credit_cost'] == 1
    assert completed['details']['request_path'] == '/api/generations'
    assert 'secret style' not in json.dumps(events)
