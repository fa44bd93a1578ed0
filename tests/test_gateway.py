import asyncio
import io
import json
from urllib.error import HTTPError, URLError

import pytest

from sectionorder import api as api_module
from sectionorder.api import ApiClient
from sectionorder.config import Config
from sectionorder.errors import GatewayUnavailable, ReorderRejected
from sectionorder.gateway import ConfigReorderGateway, HttpReorderGateway, gateway_from_config
from sectionorder.persist import ReorderBatch


class FakeResponse:
    def __init__(self, body: bytes):
        self._body = body

    def read(self):
        return self._body

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


@pytest.fixture
def captured(monkeypatch):
    """Replace ``urlopen`` and record the requests it receives."""
    requests = []
    replies = []

    def fake_urlopen(request, timeout=None):
        requests.append((request, timeout))
        reply = replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return FakeResponse(reply)

    monkeypatch.setattr(api_module, 'urlopen', fake_urlopen)
    return requests, replies


def _http_error(code, body):
    return HTTPError('http://api.test/subjects/reorder', code, 'Unprocessable', {}, io.BytesIO(body))


def test_http_gateway_posts_section_and_orders(subjects, captured):
    requests, replies = captured
    replies.append(json.dumps({'success': True, 'message': 'Subjects reordered successfully'}).encode())
    client = ApiClient('http://api.test/', token='secret', timeout=4)
    gateway = HttpReorderGateway(client, '12')

    asyncio.run(gateway.submit_reorder(ReorderBatch.from_items(subjects[:2])))

    request, timeout = requests[0]
    assert request.full_url == 'http://api.test/subjects/reorder'
    assert request.get_method() == 'POST'
    assert request.get_header('Authorization') == 'Bearer secret'
    assert timeout == 4
    assert json.loads(request.data) == {
        'class_section_id': '12',
        'subject_orders': [{'id': 'math', 'order': 1}, {'id': 'algebra', 'order': 2}],
    }


def test_http_gateway_raises_when_server_reports_failure(subjects, captured):
    _, replies = captured
    replies.append(json.dumps({'success': False, 'message': 'Subject locked'}).encode())
    gateway = HttpReorderGateway(ApiClient('http://api.test'), '12')

    with pytest.raises(ReorderRejected, match='Subject locked'):
        asyncio.run(gateway.submit_reorder(ReorderBatch.from_items(subjects)))


def test_http_error_maps_to_rejected_with_server_message(captured):
    _, replies = captured
    replies.append(_http_error(422, json.dumps({'message': 'Invalid order'}).encode()))
    client = ApiClient('http://api.test')

    with pytest.raises(ReorderRejected) as excinfo:
        client.request_json('POST', '/subjects/reorder', payload={})

    assert excinfo.value.status == 422
    assert excinfo.value.message == 'Invalid order'


def test_unreachable_server_maps_to_gateway_unavailable(captured):
    _, replies = captured
    replies.append(URLError('connection refused'))
    client = ApiClient('http://api.test')

    with pytest.raises(GatewayUnavailable):
        client.request_json('GET', '/subjects')


def test_invalid_json_is_rejected(captured):
    _, replies = captured
    replies.append(b'<html>')

    with pytest.raises(ReorderRejected):
        ApiClient('http://api.test').request_json('GET', '/subjects')


def test_empty_body_returns_none(captured):
    _, replies = captured
    replies.append(b'')

    assert ApiClient('http://api.test').request_json('POST', '/subjects/reorder', payload={}) is None


def test_query_params_are_encoded(captured):
    requests, replies = captured
    replies.append(b'[]')

    ApiClient('http://api.test').request_json('GET', 'subjects', params={'class_section_id': 3})

    assert requests[0][0].full_url == 'http://api.test/subjects?class_section_id=3'


def test_config_gateway_merges_orders(subjects, config_path):
    config = Config()
    config.set_subject_orders('12', {'history': 9})
    gateway = ConfigReorderGateway(config, '12')

    asyncio.run(gateway.submit_reorder(ReorderBatch.from_items(subjects[3:])))

    assert config.get_subject_orders('12') == {'history': 9, 'english': 4, 'science': 5}


def test_gateway_from_config_picks_backend(config_path):
    config = Config()
    assert isinstance(gateway_from_config(config, '1'), ConfigReorderGateway)

    config.set_setting('api.base_url', 'http://api.test')
    gateway = gateway_from_config(config, '1')
    assert isinstance(gateway, HttpReorderGateway)
    assert gateway.client.base_url == 'http://api.test'
