# Overview: Pytest coverage for signup, signin, signout and profile endpoints.

from junkshop.models import SecurityEvent, SessionToken
from junkshop.services.session_service import SESSION_IDLE_TIMEOUT, create_session, hash_token
from junkshop.time_utils import utcnow


TEST_PASSWORD = "Password123"


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


class TestSignup:
    def test_signup_with_business_makes_owner(self, client, db_session):
        response = client.post('/api/auth/signup', json={
            'email': 'Founder@Example.com',
            'name': 'Founder',
            'password': TEST_PASSWORD,
            'business_name': 'Founder Scrap',
        })

        assert response.status_code == 201
        body = response.json
        assert body['token']
        assert body['role'] == 'owner'
        assert body['business']['name'] == 'Founder Scrap'
        assert body['profile']['email'] == 'founder@example.com'
        assert body['permissions']['can_manage_settings'] is True

    def test_signup_without_business_lands_in_default(self, client, db_session, app):
        response = client.post('/api/auth/signup', json={
            'email': 'walkin@example.com',
            'name': 'Walk In',
            'password': TEST_PASSWORD,
        })

        assert response.status_code == 201
        assert response.json['business']['id'] == app.config['DEFAULT_BUSINESS_ID']
        assert response.json['role'] == 'employee'

    def test_weak_password_rejected(self, client, db_session):
        response = client.post('/api/auth/signup', json={
            'email': 'weak@example.com',
            'name': 'Weak',
            'password': 'short',
        })
        assert response.status_code == 400
        assert response.json['details']['field'] == 'password'

    def test_duplicate_email_rejected(self, client, owner_a):
        response = client.post('/api/auth/signup', json={
            'email': owner_a.email,
            'name': 'Again',
            'password': TEST_PASSWORD,
        })
        assert response.status_code == 400


class TestSignin:
    def test_signin_returns_token_and_context(self, client, owner_a, business_a):
        response = client.post('/api/auth/signin', json={'email': owner_a.email, 'password': TEST_PASSWORD})

        assert response.status_code == 200
        assert response.json['token']
        assert response.json['business']['id'] == business_a.id
        assert response.json['role'] == 'owner'

    def test_bad_password_logged(self, client, owner_a, db_session):
        response = client.post('/api/auth/signin', json={'email': owner_a.email, 'password': 'Wrong12345'})

        assert response.status_code == 401
        assert db_session.query(SecurityEvent).filter_by(event_type='SIGNIN_FAILED').count() == 1

    def test_missing_fields(self, client, db_session):
        response = client.post('/api/auth/signin', json={'email': 'x@example.com'})
        assert response.status_code == 400


class TestSessions:
    def test_profile_requires_token(self, client, db_session):
        assert client.get('/api/auth/profile').status_code == 401

    def test_profile_with_token(self, client, employee_a, headers_for):
        response = client.get('/api/auth/profile', headers=headers_for(employee_a))

        assert response.status_code == 200
        assert response.json['profile']['id'] == employee_a.id
        assert response.json['role'] == 'employee'
        assert response.json['permissions']['can_manage_transactions'] is True

    def test_invalid_token(self, client, db_session):
        response = client.get('/api/auth/profile', headers=auth_headers('not-a-token'))
        assert response.status_code == 401

    def test_signout_revokes(self, client, employee_a):
        _, token = create_session(profile_id=employee_a.id)

        assert client.post('/api/auth/signout', headers=auth_headers(token)).status_code == 200
        assert client.get('/api/auth/profile', headers=auth_headers(token)).status_code == 401

    def test_idle_session_expires(self, client, employee_a, db_session):
        session, token = create_session(profile_id=employee_a.id)
        session.last_used_at = utcnow() - SESSION_IDLE_TIMEOUT - SESSION_IDLE_TIMEOUT
        db_session.commit()

        assert client.get('/api/auth/profile', headers=auth_headers(token)).status_code == 401
        stored = db_session.query(SessionToken).filter_by(token_hash=hash_token(token)).one()
        assert stored.is_revoked

    def test_token_stored_hashed(self, employee_a, db_session):
        session, token = create_session(profile_id=employee_a.id)
        assert session.token_hash != token
        assert session.token_hash == hash_token(token)

    def test_removed_member_gets_403(self, client, owner_a, employee_a, business_a, headers_for, services):
        headers = headers_for(employee_a)
        services.directory.remove_user_from_business(owner_a, business_a.id, employee_a.id)

        assert client.get('/api/auth/profile', headers=headers).status_code == 403
