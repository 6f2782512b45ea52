from datetime import datetime, timezone
from unittest.mock import Mock, patch

import pytest

from exceptions import UpstreamFetchError
from ingest.github import ISSUE_QUERY, GitHubClient


def _resp(status=200, body=None):
    resp = Mock()
    resp.status_code = status
    resp.headers = {}
    resp.text = ''
    resp.json.return_value = body
    return resp


@pytest.fixture(autouse=True)
def _no_sleep():
    with patch('ingest.retry.time.sleep'):
        yield


def _client(*responses):
    session = Mock()
    session.headers = {}
    session.request.side_effect = list(responses)
    return GitHubClient('tok', 'MicrosoftEdge', 'WebView2Feedback', session=session), session


def test_headers_carry_token():
    client, session = _client()
    assert session.headers['Authorization'] == 'Bearer tok'


def test_get_issue_posts_graphql_with_variables():
    issue = {'body': 'AB#1', 'author': {'login': 'a'}}
    client, session = _client(_resp(body={'data': {'repository': {'issue': issue}}}))
    assert client.get_issue(42) == issue
    args, kwargs = session.request.call_args
    assert args == ('POST', 'https://api.github.com/graphql')
    assert kwargs['json']['query'] == ISSUE_QUERY
    assert kwargs['json']['variables'] == {'owner': 'MicrosoftEdge', 'repo': 'WebView2Feedback', 'number': 42}


def test_get_issue_graphql_errors_raise():
    client, _ = _client(_resp(body={'errors': [{'message': 'Could not resolve to an Issue'}], 'data': None}))
    with pytest.raises(UpstreamFetchError, match='Could not resolve'):
        client.get_issue(1)


def test_get_issue_missing_issue_raises():
    client, _ = _client(_resp(body={'data': {'repository': {'issue': None}}}))
    with pytest.raises(UpstreamFetchError):
        client.get_issue(1)


def test_list_open_issues_paginates_and_skips_pull_requests():
    page1 = [
        {'number': 1, 'title': 'one', 'updated_at': '2024-01-01T00:00:00Z', 'labels': [{'name': 'tracked'}]},
        {'number': 2, 'title': 'pr', 'updated_at': '2024-01-02T00:00:00Z', 'pull_request': {'url': 'x'}},
    ]
    page2 = [{'number': 3, 'title': 'three', 'updated_at': '2024-01-03T10:30:00Z', 'labels': []}]
    client, session = _client(_resp(body=page1), _resp(body=page2))
    issues = client.list_open_issues(['tracked', 'feedback'], per_page=2)
    assert [i.number for i in issues] == [1, 3]
    assert issues[0].labels == ['tracked']
    assert issues[1].updated_at == datetime(2024, 1, 3, 10, 30, tzinfo=timezone.utc)
    first_params = session.request.call_args_list[0][1]['params']
    assert first_params == {'state': 'open', 'per_page': 2, 'page': 1, 'labels': 'tracked,feedback'}
    assert session.request.call_args_list[1][1]['params']['page'] == 2


def test_list_open_issues_without_labels():
    client, session = _client(_resp(body=[]))
    assert client.list_open_issues() == []
    assert 'labels' not in session.request.call_args[1]['params']
