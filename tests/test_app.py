import pytest

from app import create_app
from Config import load_config


@pytest.fixture
def client():
    app = create_app(load_config())
    app.config["TESTING"] = True
    return app.test_client()


def test_health(client):
    response = client.get('/health')
    assert response.status_code == 200
    assert response.get_json() == {'status': 'ok'}


def test_simulate_counted_program(client):
    response = client.post('/simulate', json={'program': "2\nLOAD R1, M1\nADD R2, R1, R3\n"})
    assert response.status_code == 200
    data = response.get_json()
    assert data['cycles'] == 10
    assert data['stall_cycles'] == 4
    assert [i['text'] for i in data['instructions']] == ["LOAD R1, M1", "ADD R2, R1, R3"]
    assert data['instructions'][1]['ID'] == 7
    assert data['trace'][0]['hazard'] == "RAW"


def test_simulate_instruction_list(client):
    response = client.post('/simulate', json={'instructions': ["ADD R1, R2, R3"]})
    assert response.status_code == 200
    assert response.get_json()['cycles'] == 5


def test_simulate_empty_list(client):
    response = client.post('/simulate', json={'instructions': []})
    assert response.status_code == 200
    assert response.get_json()['cycles'] == 0


def test_latency_override_per_request(client):
    body = {'instructions': ["STORE R1, M1", "LOAD R2, M2"], 'latencies': {'memory_unit': 3}}
    assert client.post('/simulate', json=body).get_json()['cycles'] == 9
    # the override does not leak into later requests
    body.pop('latencies')
    assert client.post('/simulate', json=body).get_json()['cycles'] == 8


@pytest.mark.parametrize("body", [
    {},
    {'program': "2\nLOAD R1, M1\n"},
    {'program': "1\nJMP L1\n"},
    {'program': 5},
    {'instructions': "ADD R1, R2, R3"},
    {'instructions': ["ADD R1, R2, R3"], 'latencies': {'fetch': 2}},
    {'instructions': ["ADD R1, R2, R3"], 'latencies': [1]},
])
def test_bad_requests(client, body):
    response = client.post('/simulate', json=body)
    assert response.status_code == 400
    assert 'error' in response.get_json()


def test_non_json_body(client):
    response = client.post('/simulate', data="1\nADD R1, R2, R3", content_type="text/plain")
    assert response.status_code == 400
