from drawit.server import get_game


def test_health(client):
    resp = client.get('/api/health')
    assert resp.status_code == 200
    assert resp.get_json() == {'status': 'ok', 'rooms': 0}


def test_create_and_fetch_room(client, flask_app):
    resp = client.post('/api/rooms', json={'name': 'Friday night', 'isPrivate': True, 'password': 'pw'})
    assert resp.status_code == 201
    body = resp.get_json()
    code = body['roomCode']
    assert body['room']['name'] == 'Friday night'
    assert 'password' not in body['room']

    fetched = client.get(f'/api/rooms/{code.lower()}')
    assert fetched.status_code == 200
    assert fetched.get_json()['code'] == code
    assert get_game(flask_app).registry.get_room(code).password == 'pw'


def test_listing_only_shows_public_rooms(client):
    client.post('/api/rooms', json={'name': 'Open'})
    client.post('/api/rooms', json={'name': 'Closed', 'isPrivate': True, 'password': 'pw'})

    rooms = client.get('/api/rooms').get_json()['rooms']

    assert [r['name'] for r in rooms] == ['Open']


def test_create_room_requires_name(client):
    resp = client.post('/api/rooms', json={'name': '   '})
    assert resp.status_code == 400
    assert resp.get_json() == {'error': 'invalid_payload'}


def test_unknown_room_is_404(client):
    resp = client.get('/api/rooms/ZZZZZZ')
    assert resp.status_code == 404
    assert resp.get_json() == {'error': 'room_not_found'}


def test_create_room_rejects_non_object_body(client):
    resp = client.post('/api/rooms', json=['Friday night'])
    assert resp.status_code == 400
    assert resp.get_json() == {'error': 'invalid_payload'}
