"""
tests/core/test_runner.py - TrampleRunner 통합 테스트

Organizations / STS / 리소스 조회를 대역으로 바꾸고 실제 상태 파일과
결과 디렉토리를 사용합니다.
"""

import json
import threading
from unittest.mock import MagicMock, patch

import pytest

from core.config import TrampleConfig
from core.exceptions import AssumeRoleError, OrgAccessError
from core.inventory import ResourceKind
from core.org import NodeKind, OrganizationInfo, OrgNode
from core.parallel import RetryConfig
from core.runner import TrampleRunner
from core.state import Outcome, read_state

NO_WAIT = RetryConfig(max_retries=2, base_delay=0.0, jitter=False)

RESULT_KEYS = {
    ResourceKind.S3: "Buckets",
    ResourceKind.EC2: "Reservations",
    ResourceKind.IAM: "Users",
    ResourceKind.LAMBDA: "Functions",
    ResourceKind.RDS: "DBInstances",
}


@pytest.fixture
def prod_org(fake_org_factory):
    """root → Prod → [111, 222]"""
    org = fake_org_factory(
        ous={"r-root": [("ou-prod", "Prod")]},
        accounts={"ou-prod": ["111111111111", "222222222222"]},
    )
    org.describe_organization = MagicMock(return_value=OrganizationInfo(id="o-test"))
    org.get_root = MagicMock(return_value=OrgNode(id="r-root", name="Root", kind=NodeKind.ROOT))
    return org


@pytest.fixture
def fetch_calls():
    return []


@pytest.fixture
def fake_fetchers(client_error, fetch_calls):
    """111은 S3에만 데이터, 222는 모든 서비스 권한 없음"""

    def make(kind):
        def fetch(session, region=None, **client_kwargs):
            fetch_calls.append((session.account_id, kind.value))
            if session.account_id == "222222222222":
                raise client_error("AccessDenied")
            if kind is ResourceKind.S3:
                return {"Buckets": [{"Name": "prod-logs"}], "Owner": {"ID": "abc"}}
            return {RESULT_KEYS[kind]: []}

        return fetch, f"op_{kind.value}"

    fetchers = {kind: make(kind) for kind in ResourceKind}
    with patch.dict("core.inventory.services.KIND_FETCHERS", fetchers):
        yield fetchers


def _creds_for(account_id, role_name, retry_config=None, cancel_event=None):
    creds = MagicMock()
    creds.is_expired.return_value = False
    creds.create_session.return_value = MagicMock(account_id=account_id)
    return creds


@pytest.fixture
def broker():
    mock_broker = MagicMock()
    mock_broker.acquire_with_retry.side_effect = _creds_for
    with patch("core.runner.CredentialBroker", return_value=mock_broker):
        yield mock_broker


@pytest.fixture
def config(tmp_path):
    return TrampleConfig(output_dir=str(tmp_path / "out"), max_workers=2, retry=NO_WAIT)


def _run(config, org, cancel_event=None, session_region=None):
    with patch("core.runner.OrganizationsClient", return_value=org):
        runner = TrampleRunner(config, session=MagicMock(region_name=session_region), cancel_event=cancel_event)
        return runner, runner.run()


class TestProdScenario:
    """111: S3만 데이터, 222: 전부 권한 없음"""

    def test_artifacts_and_state(self, config, prod_org, fake_fetchers, broker, tmp_path):
        _, summary = _run(config, prod_org)

        out = tmp_path / "out"
        artifacts = sorted(p.name for p in out.glob("*.json") if p.name != "trample_state.json")
        assert artifacts == ["o-test_Prod_111111111111_s3.json"]
        assert json.loads((out / artifacts[0]).read_text())["Buckets"][0]["Name"] == "prod-logs"

        state = read_state(out / "trample_state.json")
        for kind in ResourceKind:
            assert state.outcomes[("111111111111", kind.value)] is Outcome.DONE
            assert state.outcomes[("222222222222", kind.value)] is Outcome.DENIED

        assert summary.org_id == "o-test"
        assert summary.done == 5
        assert summary.denied == 5
        assert summary.failed == 0
        assert summary.artifacts_written == 1
        assert summary.accounts_processed == 2
        assert summary.has_failures is False

    def test_denied_errors_collected(self, config, prod_org, fake_fetchers, broker):
        runner, _ = _run(config, prod_org)

        by_account = runner.errors.get_by_account()
        assert list(by_account) == ["222222222222"]
        assert len(by_account["222222222222"]) == 5

    def test_resume_skips_completed_accounts(self, config, prod_org, fake_fetchers, broker, fetch_calls):
        _, first = _run(config, prod_org)
        fetch_calls.clear()

        resumed = TrampleConfig(
            output_dir=config.output_dir,
            resume=first.state_path,
            max_workers=2,
            retry=NO_WAIT,
        )
        _, second = _run(resumed, prod_org)

        assert fetch_calls == []
        assert second.accounts_skipped == 2
        assert second.accounts_processed == 0
        assert second.done == 5

    def test_region_passed_to_sessions(self, config, prod_org, fake_fetchers, broker):
        config.region = "us-west-2"
        creds = MagicMock()
        creds.is_expired.return_value = False
        creds.create_session.return_value = MagicMock(account_id="111111111111")
        broker.acquire_with_retry.side_effect = None
        broker.acquire_with_retry.return_value = creds

        _run(config, prod_org)

        creds.create_session.assert_called_with("us-west-2")

    def test_profile_region_used_when_region_unset(self, config, prod_org, fake_fetchers, broker):
        """--region 미지정 시 관리 계정 프로파일의 리전 사용"""
        creds = MagicMock()
        creds.is_expired.return_value = False
        creds.create_session.return_value = MagicMock(account_id="111111111111")
        broker.acquire_with_retry.side_effect = None
        broker.acquire_with_retry.return_value = creds

        _run(config, prod_org, session_region="us-east-1")

        creds.create_session.assert_called_with("us-east-1")


class TestRunFailures:
    """실패 범위"""

    def test_org_access_error_is_fatal(self, config, prod_org, broker):
        prod_org.describe_organization.side_effect = OrgAccessError("describe_organization")

        with pytest.raises(OrgAccessError):
            _run(config, prod_org)

    def test_assume_role_failure_leaves_kinds_unattempted(self, config, prod_org, fake_fetchers, broker, tmp_path):
        def acquire(account_id, role_name, retry_config=None, cancel_event=None):
            if account_id == "111111111111":
                raise AssumeRoleError(account_id, role_name, category="access_denied", error_code="AccessDenied")
            return _creds_for(account_id, role_name)

        broker.acquire_with_retry.side_effect = acquire

        _, summary = _run(config, prod_org)

        state = read_state(tmp_path / "out" / "trample_state.json")
        assert not any(key[0] == "111111111111" for key in state.outcomes)
        assert summary.accounts_failed == ["111111111111"]
        assert summary.has_failures is True

    def test_write_failure_records_failed(self, config, prod_org, fake_fetchers, broker, tmp_path):
        with patch("core.runner.ResultWriter.write", side_effect=OSError("disk full")):
            _, summary = _run(config, prod_org)

        state = read_state(tmp_path / "out" / "trample_state.json")
        assert state.outcomes[("111111111111", "s3")] is Outcome.FAILED
        assert state.outcomes[("111111111111", "ec2")] is Outcome.DONE
        assert summary.failed == 1
        assert summary.artifacts_written == 0

    def test_listing_failure_is_counted(self, config, prod_org, fake_fetchers, broker):
        prod_org.failing = {("ou-prod", "accounts")}

        _, summary = _run(config, prod_org)

        assert summary.listing_failures == 1
        assert summary.accounts_processed == 0

    def test_cancelled_before_start(self, config, prod_org, fake_fetchers, broker, fetch_calls):
        cancel = threading.Event()
        cancel.set()

        _, summary = _run(config, prod_org, cancel_event=cancel)

        assert summary.cancelled is True
        assert fetch_calls == []


class TestOpenState:
    """상태 파일 선택"""

    def test_corrupt_resume_file_raises(self, config, prod_org, broker, tmp_path):
        from core.exceptions import CorruptStateError

        state_file = tmp_path / "broken.json"
        state_file.write_text("{broken\n{broken\n")
        config.resume = str(state_file)

        with pytest.raises(CorruptStateError):
            _run(config, prod_org)

    def test_fresh_on_corrupt_starts_over(self, config, prod_org, fake_fetchers, broker, tmp_path):
        state_file = tmp_path / "broken.json"
        state_file.write_text("{broken\n{broken\n")
        config.resume = str(state_file)
        config.fresh_on_corrupt = True

        _, summary = _run(config, prod_org)

        assert summary.state_path == str(state_file)
        assert read_state(state_file).org_id == "o-test"

    def test_missing_resume_file_starts_fresh(self, config, prod_org, fake_fetchers, broker, tmp_path):
        config.resume = str(tmp_path / "nowhere" / "state.json")

        _, summary = _run(config, prod_org)

        assert summary.done == 5
