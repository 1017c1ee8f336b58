# File: tests/test_api.py
import pytest

from seismic import db
from seismic.models import Users


def _sample(x, device_id='pico-01'):
    return {'device_id': device_id, 'acceleration_x': x, 'acceleration_y': 0.0, 'acceleration_z': 0.0}


@pytest.fixture
def contacts_configured(admin_client, contacts):
    response = admin_client.post('/api/notifications/contacts', json={
        'contacts': [c.to_dict() for c in contacts]
    })
    assert response.status_code == 200
    return contacts


def test_health(client):
    response = client.get('/api/health')

    assert response.status_code == 200
    assert response.get_json()['status'] == 'OK'


def test_post_earthquake_sample(client):
    response = client.post('/api/earthquakes/event', json=_sample(21.0))

    assert response.status_code == 201
    body = response.get_json()
    assert body['success'] is True
    assert body['event_type'] == 'earthquake'
    assert body['analysis_status'] == 'computed'
    # high magnitude plus very recent
    assert body['aftershock_analysis']['probability_percentage'] == 55.0
    assert body['notification']['reason'] == 'no contacts'


def test_post_vibration_sample(client):
    response = client.post('/api/earthquakes/event', json=_sample(6.0))

    body = response.get_json()
    assert response.status_code == 201
    assert body['event_type'] == 'vibration'
    assert body['aftershock_analysis'] is None
    assert body['notification'] is None


@pytest.mark.parametrize('payload', [
    {'device_id': 'pico-01', 'acceleration_x': 1.0, 'acceleration_y': 1.0},
    {'device_id': '', 'acceleration_x': 1.0, 'acceleration_y': 1.0, 'acceleration_z': 1.0},
    {'device_id': 'pico-01', 'acceleration_x': 'strong', 'acceleration_y': 1.0, 'acceleration_z': 1.0},
])
def test_invalid_samples_are_rejected(client, payload):
    response = client.post('/api/earthquakes/event', json=payload)

    assert response.status_code == 400
    assert response.get_json()['error'] == 'Invalid input'
    assert client.get('/api/earthquakes').get_json()['pagination']['total'] == 0


def test_non_json_body_is_rejected(client):
    response = client.post('/api/earthquakes/event', data='x=1', content_type='text/plain')

    assert response.status_code == 400


def test_list_and_filter_events(client):
    client.post('/api/earthquakes/event', json=_sample(6.0))
    client.post('/api/earthquakes/event', json=_sample(7.0, device_id='pico-02'))
    client.post('/api/earthquakes/event', json=_sample(18.0))

    body = client.get('/api/earthquakes?limit=2').get_json()
    assert len(body['events']) == 2
    assert body['pagination']['total'] == 3

    vibrations = client.get('/api/earthquakes?event_type=vibration').get_json()
    assert {e['event_type'] for e in vibrations['events']} == {'vibration'}
    assert vibrations['pagination']['total'] == 2

    by_device = client.get('/api/earthquakes?device_id=pico-02').get_json()
    assert [e['device_id'] for e in by_device['events']] == ['pico-02']

    assert client.get('/api/earthquakes?event_type=tsunami').status_code == 400


def test_get_event_with_analysis(client):
    event_id = client.post('/api/earthquakes/event', json=_sample(18.0)).get_json()['event_id']

    body = client.get(f'/api/earthquakes/{event_id}').get_json()
    assert body['event']['id'] == event_id
    assert body['aftershock_analysis']['sequence'] == 1

    missing = client.get('/api/earthquakes/9999')
    assert missing.status_code == 404
    assert missing.get_json()['success'] is False


def test_aftershock_endpoints(client, admin_client):
    quake_id = client.post('/api/earthquakes/event', json=_sample(18.0)).get_json()['event_id']
    vibration_id = client.post('/api/earthquakes/event', json=_sample(6.0)).get_json()['event_id']

    body = client.get(f'/api/analysis/aftershocks/{quake_id}').get_json()
    assert body['message'] == 'analysis found'
    assert len(body['history']) == 1

    body = client.get(f'/api/analysis/aftershocks/{vibration_id}').get_json()
    assert body['aftershock_analysis'] is None
    assert body['message'] == 'not applicable to vibration events'

    response = admin_client.post(f'/api/analysis/aftershocks/{quake_id}')
    assert response.status_code == 201
    assert response.get_json()['aftershock_analysis']['sequence'] == 2
    assert admin_client.post(f'/api/analysis/aftershocks/{vibration_id}').status_code == 400


def test_reanalysis_requires_login(client):
    quake_id = client.post('/api/earthquakes/event', json=_sample(18.0)).get_json()['event_id']

    response = client.post(f'/api/analysis/aftershocks/{quake_id}')

    assert response.status_code == 401


def test_statistics_endpoints(client):
    client.post('/api/earthquakes/event', json=_sample(18.0))
    client.post('/api/earthquakes/event', json=_sample(6.0))

    general = client.get('/api/analysis/stats/general?days=7').get_json()
    assert general['success'] is True
    assert sum(item['total_events'] for item in general['summary']) == 2

    activity = client.get('/api/analysis/trends/activity?hours=24').get_json()
    assert sum(t['event_count'] for t in activity['trends']) == 2

    summary = client.get('/api/analysis/trends/summary').get_json()
    assert summary['earthquakes_count'] == 1

    prediction = client.get('/api/analysis/prediction/simple').get_json()
    assert prediction['prediction']['risk_level'] == 'medium'

    assert client.get('/api/analysis/stats/general?days=0').status_code == 400


def test_config_requires_admin(client, app):
    assert client.get('/api/config').status_code == 401

    user = Users(username='viewer', email='viewer@example.com', fullname='Viewer', role='user')
    user.set_password('viewer-pass')
    db.session.add(user)
    db.session.commit()
    client.post('/auth/login', json={'username': 'viewer', 'password': 'viewer-pass'})

    assert client.get('/api/config').status_code == 403


def test_login_rejects_bad_password(client, admin_client):
    admin_client.post('/auth/logout')

    response = client.post('/auth/login', json={'username': 'admin', 'password': 'wrong'})

    assert response.status_code == 401


def test_update_config(admin_client):
    response = admin_client.put('/api/config', json={'earthquake_threshold': 12, 'vibration_threshold': 4})

    assert response.status_code == 200
    config = response.get_json()['config']
    assert config['earthquake_threshold'] == 12.0
    assert config['vibration_threshold'] == 4.0
    assert config['notification_cooldown_minutes'] == 15

    body = admin_client.post('/api/earthquakes/event', json=_sample(13.0)).get_json()
    assert body['event_type'] == 'earthquake'


def test_update_config_validation(admin_client):
    response = admin_client.put('/api/config', json={'earthquake_threshold': 10, 'vibration_threshold': 12})
    assert response.status_code == 400
    assert 'vibration_threshold' in response.get_json()['details']

    response = admin_client.put('/api/config', json={'notification_cooldown_minutes': -5})
    assert response.status_code == 400


def test_contacts_round_trip(admin_client, contacts_configured):
    body = admin_client.get('/api/notifications/contacts').get_json()

    assert [c['name'] for c in body['contacts']] == ['Ana', 'Bruno', 'Carla']

    response = admin_client.post('/api/notifications/contacts', json={'contacts': [{'name': 'Ana'}]})
    assert response.status_code == 400


def test_earthquake_notifies_configured_contacts(client, transport, contacts_configured):
    body = client.post('/api/earthquakes/event', json=_sample(21.0)).get_json()

    assert body['notification']['sent'] == 3
    assert len(transport.sent) == 3

    history = client.get('/api/notifications/history?status=sent').get_json()
    assert len(history['notifications']) == 3
    assert history['notifications'][0]['event_type'] == 'earthquake'

    stats = client.get('/api/notifications/stats').get_json()
    assert stats['summary'] == [{'channel': 'whatsapp', 'status': 'sent', 'total': 3}]

    assert client.get('/api/notifications/history?status=lost').status_code == 400


def test_manual_and_test_notifications(client, admin_client, transport):
    event_id = client.post('/api/earthquakes/event', json=_sample(21.0)).get_json()['event_id']

    response = admin_client.post('/api/notifications/send', json={
        'event_id': event_id, 'phone_number': '+5491100000009', 'message': 'Manual alert'
    })
    assert response.status_code == 200
    assert response.get_json()['success'] is True
    assert transport.sent[-1] == ('+5491100000009', 'Manual alert')

    response = admin_client.post('/api/notifications/test', json={'phone_number': '+5491100000009'})
    assert response.get_json()['success'] is True

    response = admin_client.post('/api/notifications/test', json={'phone_number': 'call me'})
    assert response.status_code == 400


def test_login_is_recorded(admin_client):
    body = admin_client.get('/auth/me').get_json()

    assert body['user']['username'] == 'admin'
    assert body['user']['role'] == 'admin'
    assert body['user']['last_login_at'] is not None

    admin_client.post('/auth/logout')
    assert admin_client.get('/auth/me').status_code == 401


def test_out_of_range_number_is_a_bad_request(client):
    payload = _sample(1.0)
    payload['acceleration_x'] = 10 ** 400

    response = client.post('/api/earthquakes/event', json=payload)

    assert response.status_code == 400
    assert response.get_json()['error'] == 'Invalid input'


def test_vibration_threshold_checked_against_stored_earthquake_threshold(admin_client):
    response = admin_client.put('/api/config', json={'vibration_threshold': 20})
    assert response.status_code == 400
    assert 'vibration_threshold' in response.get_json()['details']

    response = admin_client.put('/api/config', json={'earthquake_threshold': 3})
    assert response.status_code == 400
    assert 'earthquake_threshold' in response.get_json()['details']

    response = admin_client.put('/api/config', json={'vibration_threshold': 10})
    assert response.status_code == 200
    assert response.get_json()['config']['vibration_threshold'] == 10.0
