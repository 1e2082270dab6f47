"""End-to-end tests through the HTTP API."""

import pytest

from utils.errors import UnavailableError


def put_profile(client, auth_headers, user_id, **fields):
    response = client.put('/api/profile', json=fields, headers=auth_headers(user_id, display_name=fields.get('first_name')))
    assert response.status_code == 200, response.get_json()
    return response.get_json()['profile']


def swipe(client, auth_headers, user_id, target_id, direction):
    response = client.post('/api/swipes', json={'to_user_id': target_id, 'direction': direction},
                           headers=auth_headers(user_id))
    assert response.status_code == 200, response.get_json()
    return response.get_json()


class TestHealth:

    def test_health(self, client):
        response = client.get('/api/health')
        assert response.status_code == 200
        assert response.get_json()['status'] == 'healthy'
        assert response.headers['X-Request-ID']

    def test_request_id_is_echoed(self, client):
        response = client.get('/api/health', headers={'X-Request-ID': 'abc-123'})
        assert response.headers['X-Request-ID'] == 'abc-123'


class TestMatchScenarios:

    def test_mutual_like_then_chat(self, client, auth_headers):
        put_profile(client, auth_headers, 'user_1', first_name='Ulla', gender='female', looking_for='all')
        put_profile(client, auth_headers, 'user_2', first_name='Uwe', gender='male', looking_for='female')

        feed = client.get('/api/feed', headers=auth_headers('user_2')).get_json()
        assert [p['id'] for p in feed['profiles']] == ['user_1']
        assert feed['exhausted'] is False

        first = swipe(client, auth_headers, 'user_2', 'user_1', 'like')
        assert first['match'] is None
        assert first['event'] is None

        second = swipe(client, auth_headers, 'user_1', 'user_2', 'like')
        assert second['duplicate'] is False
        assert second['match']['user1_id'] == 'user_1'
        assert second['match']['user2_id'] == 'user_2'
        assert second['event']['type'] == 'match'
        assert second['event']['counterpart']['id'] == 'user_2'
        match_id = second['match']['id']

        sent = client.post(f'/api/matches/{match_id}/messages', json={'content': 'hi'},
                           headers=auth_headers('user_1'))
        assert sent.status_code == 201
        message = sent.get_json()['message']

        listed = client.get(f'/api/matches/{match_id}/messages', headers=auth_headers('user_2')).get_json()
        assert [(m['sender_id'], m['content']) for m in listed['messages']] == [('user_1', 'hi')]

        matches = client.get('/api/matches', headers=auth_headers('user_2')).get_json()['matches']
        assert len(matches) == 1
        assert matches[0]['counterpart']['id'] == 'user_1'
        assert matches[0]['last_activity_at'] == message['created_at']
        assert matches[0]['unread_count'] == 1

        read = client.post(f'/api/matches/{match_id}/read', headers=auth_headers('user_2'))
        assert read.get_json() == {'updated': 1}

        # Feed is exhausted for both now
        assert client.get('/api/feed', headers=auth_headers('user_2')).get_json()['exhausted'] is True

    def test_dislike_then_like_is_no_match(self, client, auth_headers):
        put_profile(client, auth_headers, 'user_3', first_name='Tom')
        put_profile(client, auth_headers, 'user_4', first_name='Tia')

        swipe(client, auth_headers, 'user_3', 'user_4', 'dislike')
        result = swipe(client, auth_headers, 'user_4', 'user_3', 'like')

        assert result['match'] is None
        assert client.get('/api/matches', headers=auth_headers('user_3')).get_json()['matches'] == []

    def test_repeat_like_reports_existing_match(self, client, auth_headers):
        put_profile(client, auth_headers, 'user_5', first_name='Ada')
        put_profile(client, auth_headers, 'user_6', first_name='Ben')
        swipe(client, auth_headers, 'user_5', 'user_6', 'like')
        created = swipe(client, auth_headers, 'user_6', 'user_5', 'like')

        replay = swipe(client, auth_headers, 'user_6', 'user_5', 'like')

        assert replay['duplicate'] is True
        assert replay['match']['id'] == created['match']['id']

    def test_profile_update_refreshes_counterpart_view(self, client, auth_headers):
        put_profile(client, auth_headers, 'user_7', first_name='Cleo')
        put_profile(client, auth_headers, 'user_8', first_name='Dan')
        swipe(client, auth_headers, 'user_7', 'user_8', 'like')
        swipe(client, auth_headers, 'user_8', 'user_7', 'like')

        put_profile(client, auth_headers, 'user_7', bio='New bio')

        matches = client.get('/api/matches', headers=auth_headers('user_8')).get_json()['matches']
        assert matches[0]['counterpart']['bio'] == 'New bio'


class TestErrorResponses:

    def test_profile_not_created_yet(self, client, auth_headers):
        response = client.get('/api/profile', headers=auth_headers('user_99'))
        assert response.status_code == 404
        body = response.get_json()
        assert body['code'] == 'not_found'
        assert body['retryable'] is False
        assert body['request_id']

    def test_feed_without_profile_is_empty(self, client, auth_headers):
        feed = client.get('/api/feed', headers=auth_headers('user_99')).get_json()
        assert feed == {'profiles': [], 'exhausted': True}

    def test_bad_limit(self, client, auth_headers):
        response = client.get('/api/feed?limit=many', headers=auth_headers('user_99'))
        assert response.status_code == 400

    def test_invalid_direction(self, client, auth_headers):
        put_profile(client, auth_headers, 'user_1', first_name='Ann')
        put_profile(client, auth_headers, 'user_2', first_name='Bob')
        response = client.post('/api/swipes', json={'to_user_id': 'user_2', 'direction': 'maybe'},
                               headers=auth_headers('user_1'))
        assert response.status_code == 400
        assert response.get_json()['code'] == 'invalid_input'

    def test_non_json_body(self, client, auth_headers):
        response = client.post('/api/swipes', data='like', headers=auth_headers('user_1'))
        assert response.status_code == 400

    def test_unknown_match(self, client, auth_headers):
        response = client.get('/api/matches/4242/messages', headers=auth_headers('user_1'))
        assert response.status_code == 404

    def test_non_participant_message(self, client, auth_headers):
        for user_id, name in (('user_1', 'Ann'), ('user_2', 'Bob'), ('user_3', 'Eve')):
            put_profile(client, auth_headers, user_id, first_name=name)
        swipe(client, auth_headers, 'user_1', 'user_2', 'like')
        match_id = swipe(client, auth_headers, 'user_2', 'user_1', 'like')['match']['id']

        response = client.post(f'/api/matches/{match_id}/messages', json={'content': 'hey'},
                               headers=auth_headers('user_3'))
        assert response.status_code == 403
        assert response.get_json()['code'] == 'unauthorized'

        empty = client.post(f'/api/matches/{match_id}/messages', json={'content': '   '},
                            headers=auth_headers('user_1'))
        assert empty.status_code == 400

    def test_unavailable_is_retryable(self, client, auth_headers, services, monkeypatch):
        def broken(*args, **kwargs):
            raise UnavailableError('Profile store unavailable')

        monkeypatch.setattr(services.feed_service, 'next_batch', broken)
        response = client.get('/api/feed', headers=auth_headers('user_1'))

        assert response.status_code == 503
        assert response.get_json()['retryable'] is True

    def test_xss_in_query_is_blocked(self, client, auth_headers):
        response = client.get('/api/feed?limit=<script>', headers=auth_headers('user_1'))
        assert response.status_code == 400

    def test_unknown_origin_is_rejected(self, client):
        response = client.get('/api/health', headers={'Origin': 'https://evil.example'})
        assert response.status_code == 403
