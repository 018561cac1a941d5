# Overview: Pytest coverage for the health endpoint.


def test_health_reports_database(client, owner_a):
    response = client.get('/health')

    assert response.status_code == 200
    assert response.json['status'] == 'healthy'
    details = response.json['checks']['database']['details']
    assert details['businesses'] == 1
    assert details['profiles'] == 1
