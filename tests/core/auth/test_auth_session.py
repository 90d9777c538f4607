# tests/core/auth/test_auth_session.py
"""
core/auth/session.py 단위 테스트
"""

from unittest.mock import MagicMock, patch

from core.auth import get_session


class TestGetSession:
    def test_profile_and_region_forwarded(self):
        with patch("core.auth.session.boto3.Session") as mock_cls:
            mock_cls.return_value = MagicMock(region_name="us-east-1")

            session = get_session("mgmt", "us-east-1")

        mock_cls.assert_called_once_with(profile_name="mgmt", region_name="us-east-1")
        assert session.region_name == "us-east-1"

    def test_default_credential_chain(self):
        with patch("core.auth.session.boto3.Session") as mock_cls:
            get_session()

        mock_cls.assert_called_once_with(profile_name=None, region_name=None)
