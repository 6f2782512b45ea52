import json
import os

import pytest

import cli
from exceptions import UpstreamFetchError
from normalize.models import Score
from sync import SyncOutcome

ENV = {
    'GH_PAT': 'ghp',
    'GH_OWNER': 'MicrosoftEdge',
    'GH_REPO': 'WebView2Feedback',
    'ADO_ORG': 'microsoft',
    'ADO_PAT': 'adopat',
}


@pytest.fixture
def env(monkeypatch):
    for name in ('GITHUB_ACTIONS', 'GITHUB_EVENT_PATH', 'GH_TEST_ID', 'GH_TRACKED_LABELS', 'ONLY_TEST_GH', 'ADO_AREA_PATH',
                 'ADO_PROJECT', 'BATCH_LIMIT', 'GITHUB_TOKEN'):
        monkeypatch.delenv(name, raising=False)
    for name in list(os.environ):
        if name.startswith('COEFF_'):
            monkeypatch.delenv(name, raising=False)
    for name, value in ENV.items():
        monkeypatch.setenv(name, value)
    return monkeypatch


@pytest.fixture
def captured(env):
    calls = {}

    def fake_run_sync(config, github, ado, max_workers=4):
        calls['config'] = config
        calls['github'] = github
        calls['ado'] = ado
        calls['max_workers'] = max_workers
        return calls.get('outcomes', [SyncOutcome(1, SyncOutcome.UPDATED, work_item_id=5, score=Score(16, 0))])

    env.setattr(cli, 'run_sync', fake_run_sync)
    return calls


def test_single_issue_flag(captured):
    assert cli.main(['--issue', '42', '--max-workers', '2']) == 0
    assert captured['config'].issue_number == 42
    assert captured['max_workers'] == 2
    assert captured['github'].owner == 'MicrosoftEdge'
    assert captured['ado'].org == 'microsoft'


def test_bulk_overrides(captured):
    assert cli.main(['--labels', 'tracked,feedback', '--batch-limit', '3']) == 0
    config = captured['config']
    assert config.issue_number is None
    assert config.tracked_labels == ['tracked', 'feedback']
    assert config.batch_limit == 3


def test_dry_run_without_ado(captured, env):
    env.delenv('ADO_ORG')
    env.delenv('ADO_PAT')
    assert cli.main(['--dry-run']) == 0
    assert captured['config'].dry_run is True
    assert captured['ado'] is None


def test_partial_failures_still_exit_zero(captured):
    captured['outcomes'] = [SyncOutcome(1, SyncOutcome.FAILED, error='boom'), SyncOutcome(2, SyncOutcome.NO_LINK)]
    assert cli.main([]) == 0


def test_summary_output(captured, capsys):
    assert cli.main(['--summary']) == 0
    out = json.loads(capsys.readouterr().out)
    assert out['outcomes'] == {'updated': 1}
    assert out['issues'][0]['score'] == '16'


def test_unhandled_error_exits_non_zero(env):
    def failing_run_sync(*args, **kwargs):
        raise UpstreamFetchError('GitHub is down', source='github', status=502)

    env.setattr(cli, 'run_sync', failing_run_sync)
    assert cli.main(['--issue', '1']) == 1


def test_missing_configuration_is_a_usage_error(env):
    env.delenv('GH_PAT')
    with pytest.raises(SystemExit) as exc:
        cli.main([])
    assert exc.value.code == 2


def test_retry_flags_are_applied(captured, env):
    seen = {}
    env.setattr(cli, 'configure_retry', lambda **kwargs: seen.update(kwargs))
    assert cli.main(['--max-retries', '5', '--backoff-base', '0.1']) == 0
    assert seen['max_retries'] == 5
    assert seen['backoff_base'] == 0.1
