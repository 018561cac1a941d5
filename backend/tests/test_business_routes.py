# Overview: Pytest coverage for business, member and invitation HTTP endpoints.

from junkshop.models import BusinessInvitation, BusinessUser


class TestBusinessRoutes:
    def test_create_business(self, client, owner_a, headers_for):
        response = client.post('/api/businesses', json={'name': 'Second Yard'}, headers=headers_for(owner_a))

        assert response.status_code == 201
        assert response.json['business']['name'] == 'Second Yard'
        assert response.json['membership']['role'] == 'owner'
        assert owner_a.current_business_id == response.json['business']['id']

    def test_create_business_needs_name(self, client, owner_a, headers_for):
        response = client.post('/api/businesses', json={}, headers=headers_for(owner_a))
        assert response.status_code == 400

    def test_list_my_businesses(self, client, owner_a, business_a, headers_for):
        response = client.get('/api/businesses', headers=headers_for(owner_a))

        assert response.status_code == 200
        assert [b['business']['id'] for b in response.json['businesses']] == [business_a.id]
        assert response.json['businesses'][0]['is_current'] is True

    def test_current_business(self, client, manager_a, business_a, headers_for):
        response = client.get('/api/businesses/current', headers=headers_for(manager_a))

        assert response.status_code == 200
        assert response.json['business']['id'] == business_a.id
        assert response.json['role'] == 'manager'

    def test_owner_updates_settings(self, client, owner_a, headers_for):
        response = client.patch(
            '/api/businesses/current',
            json={'address': '12 Scrap Lane'},
            headers=headers_for(owner_a),
        )
        assert response.status_code == 200
        assert response.json['business']['address'] == '12 Scrap Lane'

    def test_manager_cannot_update_settings(self, client, manager_a, headers_for):
        response = client.patch('/api/businesses/current', json={'phone': '1'}, headers=headers_for(manager_a))
        assert response.status_code == 403

    def test_switch_requires_membership(self, client, owner_a, business_b, headers_for):
        response = client.post(
            '/api/businesses/switch',
            json={'business_id': business_b.id},
            headers=headers_for(owner_a),
        )
        assert response.status_code == 403

    def test_switch_changes_next_request(self, client, owner_a, business_b, headers_for, db_session):
        db_session.add(BusinessUser(business_id=business_b.id, profile_id=owner_a.id, role='viewer'))
        db_session.commit()
        headers = headers_for(owner_a)

        switched = client.post('/api/businesses/switch', json={'business_id': business_b.id}, headers=headers)
        current = client.get('/api/businesses/current', headers=headers)

        assert switched.status_code == 200
        assert switched.json['role'] == 'viewer'
        assert current.json['business']['id'] == business_b.id

    def test_switch_needs_business_id(self, client, owner_a, headers_for):
        response = client.post('/api/businesses/switch', json={}, headers=headers_for(owner_a))
        assert response.status_code == 400
        assert response.json['details']['field'] == 'business_id'


class TestMemberRoutes:
    def test_list_members(self, client, owner_a, employee_a, headers_for):
        response = client.get('/api/businesses/members', headers=headers_for(owner_a))

        assert response.status_code == 200
        assert {m['email'] for m in response.json['members']} == {owner_a.email, employee_a.email}

    def test_viewer_cannot_list_members(self, client, viewer_a, headers_for):
        response = client.get('/api/businesses/members', headers=headers_for(viewer_a))
        assert response.status_code == 403

    def test_change_role(self, client, owner_a, employee_a, headers_for):
        response = client.patch(
            f'/api/businesses/members/{employee_a.id}',
            json={'role': 'manager'},
            headers=headers_for(owner_a),
        )
        assert response.status_code == 200
        assert response.json['member']['role'] == 'manager'

    def test_employee_cannot_change_roles(self, client, employee_a, employee_a2, headers_for):
        response = client.patch(
            f'/api/businesses/members/{employee_a2.id}',
            json={'role': 'manager'},
            headers=headers_for(employee_a),
        )
        assert response.status_code == 403

    def test_remove_member(self, client, owner_a, employee_a, headers_for):
        response = client.delete(f'/api/businesses/members/{employee_a.id}', headers=headers_for(owner_a))

        assert response.status_code == 200
        assert response.json['member']['is_active'] is False


class TestInvitationRoutes:
    def test_invite_and_accept(self, client, owner_a, business_a, make_profile, headers_for, db_session):
        invited = client.post(
            '/api/businesses/invitations',
            json={'email': 'joiner@example.com', 'role': 'employee'},
            headers=headers_for(owner_a),
        )
        assert invited.status_code == 201
        token = invited.json['invitation']['token']

        # The joiner has no business yet; accepting only needs a signed-in profile
        joiner = make_profile('joiner')
        accepted = client.post('/api/invitations/accept', json={'token': token}, headers=headers_for(joiner))

        assert accepted.status_code == 200
        assert accepted.json['member']['business_id'] == business_a.id
        assert accepted.json['member']['role'] == 'employee'

        replay = client.post('/api/invitations/accept', json={'token': token}, headers=headers_for(joiner))
        assert replay.status_code == 400

    def test_list_hides_token(self, client, owner_a, headers_for, services, business_a):
        services.directory.invite_user(owner_a, business_a.id, 'one@example.com', 'viewer')

        response = client.get('/api/businesses/invitations', headers=headers_for(owner_a))

        assert response.status_code == 200
        assert len(response.json['invitations']) == 1
        assert 'token' not in response.json['invitations'][0]

    def test_list_all_statuses(self, client, owner_a, headers_for, services, business_a):
        invitation = services.directory.invite_user(owner_a, business_a.id, 'one@example.com', 'viewer')
        services.directory.cancel_invitation(owner_a, invitation.id)

        pending = client.get('/api/businesses/invitations', headers=headers_for(owner_a))
        everything = client.get('/api/businesses/invitations?status=all', headers=headers_for(owner_a))

        assert pending.json['invitations'] == []
        assert [i['status'] for i in everything.json['invitations']] == ['cancelled']

    def test_cancel(self, client, owner_a, headers_for, services, business_a, db_session):
        invitation = services.directory.invite_user(owner_a, business_a.id, 'one@example.com', 'viewer')

        response = client.post(f'/api/businesses/invitations/{invitation.id}/cancel', headers=headers_for(owner_a))

        assert response.status_code == 200
        assert db_session.get(BusinessInvitation, invitation.id).status == 'cancelled'

    def test_viewer_cannot_invite(self, client, viewer_a, headers_for):
        response = client.post(
            '/api/businesses/invitations',
            json={'email': 'x@example.com', 'role': 'viewer'},
            headers=headers_for(viewer_a),
        )
        assert response.status_code == 403

    def test_accept_requires_token(self, client, make_profile, headers_for):
        response = client.post('/api/invitations/accept', json={}, headers=headers_for(make_profile('someone')))
        assert response.status_code == 400
