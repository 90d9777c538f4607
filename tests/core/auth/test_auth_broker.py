"""
tests/core/auth/test_auth_broker.py - CredentialBroker 테스트
"""

from unittest.mock import MagicMock, patch

import pytest

from core.auth.broker import CredentialBroker, build_role_arn
from core.exceptions import AssumeRoleError
from core.parallel import RetryConfig

NO_WAIT = RetryConfig(max_retries=2, base_delay=0.0, jitter=False)


@pytest.fixture
def broker(mock_sts_client):
    with patch("core.auth.broker.get_client", return_value=mock_sts_client):
        yield CredentialBroker(MagicMock(), session_name="TestSession", duration_seconds=900)


class TestBuildRoleArn:
    def test_default_partition(self):
        assert build_role_arn("111111111111", "AuditRole") == "arn:aws:iam::111111111111:role/AuditRole"

    def test_other_partition(self):
        assert build_role_arn("111111111111", "R", "aws-cn") == "arn:aws-cn:iam::111111111111:role/R"


class TestAcquire:
    """단일 AssumeRole 호출"""

    def test_returns_scoped_credentials(self, broker, mock_sts_client):
        creds = broker.acquire("111111111111", "OrganizationAccountAccessRole")

        assert creds.account_id == "111111111111"
        assert creds.access_key == "ASIATEST123"
        mock_sts_client.assume_role.assert_called_once_with(
            RoleArn="arn:aws:iam::111111111111:role/OrganizationAccountAccessRole",
            RoleSessionName="TestSession",
            DurationSeconds=900,
        )

    def test_each_account_gets_its_own_credentials(self, broker, mock_sts_client):
        """계정 간 자격 증명 캐싱 없음"""
        first = broker.acquire("111111111111", "R")
        second = broker.acquire("222222222222", "R")

        assert first is not second
        assert mock_sts_client.assume_role.call_count == 2

    def test_access_denied_raises(self, broker, mock_sts_client, client_error):
        mock_sts_client.assume_role.side_effect = client_error("AccessDenied")

        with pytest.raises(AssumeRoleError) as exc_info:
            broker.acquire("111111111111", "R")

        assert exc_info.value.category == "access_denied"
        assert exc_info.value.error_code == "AccessDenied"
        assert exc_info.value.account_id == "111111111111"

    def test_rate_limit_timeout_raises_throttling(self, mock_sts_client):
        limiter = MagicMock()
        limiter.acquire.return_value = False
        with patch("core.auth.broker.get_client", return_value=mock_sts_client):
            broker = CredentialBroker(MagicMock(), rate_limiter=limiter)

        with pytest.raises(AssumeRoleError) as exc_info:
            broker.acquire("111111111111", "R")

        assert exc_info.value.category == "throttling"
        mock_sts_client.assume_role.assert_not_called()


class TestAcquireWithRetry:
    """재시도"""

    def test_throttling_retried(self, broker, mock_sts_client, client_error):
        success = mock_sts_client.assume_role.return_value
        mock_sts_client.assume_role.side_effect = [client_error("Throttling"), success]

        creds = broker.acquire_with_retry("111111111111", "R", retry_config=NO_WAIT)

        assert creds.account_id == "111111111111"
        assert mock_sts_client.assume_role.call_count == 2

    def test_access_denied_not_retried(self, broker, mock_sts_client, client_error):
        mock_sts_client.assume_role.side_effect = client_error("AccessDenied")

        with pytest.raises(AssumeRoleError):
            broker.acquire_with_retry("111111111111", "R", retry_config=NO_WAIT)

        mock_sts_client.assume_role.assert_called_once()

    def test_exhausted_retries(self, broker, mock_sts_client, client_error):
        mock_sts_client.assume_role.side_effect = client_error("ThrottlingException")

        with pytest.raises(AssumeRoleError) as exc_info:
            broker.acquire_with_retry("111111111111", "R", retry_config=NO_WAIT)

        assert exc_info.value.category == "throttling"
        assert mock_sts_client.assume_role.call_count == 3
