"""
tests/conftest.py - pytest 공통 픽스처

AWS API 모킹과 테스트 헬퍼를 제공합니다.

Usage:
    def test_something(mock_sts_client, fake_org):
        # mock_sts_client: AssumeRole 응답이 설정된 STS 클라이언트
        # fake_org: 메모리 내 조직 트리를 흉내내는 Organizations 클라이언트
        pass
"""

import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock, patch

import pytest

# 프로젝트 루트를 sys.path에 추가
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))


# =============================================================================
# 환경 설정
# =============================================================================


@pytest.fixture(autouse=True)
def setup_test_environment():
    """테스트 환경 설정"""
    os.environ.setdefault("AWS_DEFAULT_REGION", "ap-northeast-2")
    os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
    os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")

    yield


@pytest.fixture(autouse=True)
def reset_shared_rate_limiters():
    """서비스별 공유 rate limiter 초기화"""
    from core.parallel.rate_limiter import reset_rate_limiters

    reset_rate_limiters()
    yield
    reset_rate_limiters()


# =============================================================================
# AWS 모킹 픽스처
# =============================================================================


@pytest.fixture
def mock_boto3_session():
    """boto3.Session 모킹"""
    with patch("boto3.Session") as mock_session_class:
        mock_session = MagicMock()
        mock_session_class.return_value = mock_session

        mock_session.client.return_value = MagicMock()
        mock_session.region_name = "ap-northeast-2"

        yield mock_session


@pytest.fixture
def mock_sts_client():
    """STS 클라이언트 모킹"""
    mock_client = MagicMock()

    mock_client.get_caller_identity.return_value = {
        "UserId": "AIDATEST123",
        "Account": "123456789012",
        "Arn": "arn:aws:iam::123456789012:user/test-user",
    }

    mock_client.assume_role.return_value = {
        "Credentials": {
            "AccessKeyId": "ASIATEST123",
            "SecretAccessKey": "test-secret",
            "SessionToken": "test-token",
            "Expiration": datetime.now(timezone.utc) + timedelta(hours=1),
        }
    }

    yield mock_client


# =============================================================================
# 조직 트리 픽스처
# =============================================================================


class FakeOrganizationsClient:
    """메모리 내 조직 트리 기반 OrganizationsClient 대역

    OrgTreeWalker가 사용하는 list_ous_for_parent / list_accounts_for_parent만
    구현합니다. failing에 등록된 (parent_id, "ous"|"accounts")는 ListingError를 발생시킵니다.

    Args:
        ous: parent_id → [(ou_id, ou_name), ...]
        accounts: parent_id → [account_id, ...]
    """

    def __init__(
        self,
        ous: Dict[str, List[tuple]],
        accounts: Dict[str, List[str]],
        failing: Optional[set] = None,
    ):
        self.ous = ous
        self.accounts = accounts
        self.failing = failing or set()
        self.calls: List[tuple] = []

    def list_ous_for_parent(self, parent):
        from core.exceptions import ListingError
        from core.org.types import NodeKind, OrgNode

        self.calls.append((parent.id, "ous"))
        if (parent.id, "ous") in self.failing:
            raise ListingError(parent.id, "list_organizational_units_for_parent", "AccessDenied")
        parent_name = parent.name if parent.kind == NodeKind.OU else None
        return [
            OrgNode(id=ou_id, name=name, kind=NodeKind.OU, parent_id=parent.id, parent_name=parent_name)
            for ou_id, name in sorted(self.ous.get(parent.id, []))
        ]

    def list_accounts_for_parent(self, parent):
        from core.exceptions import ListingError
        from core.org.types import NodeKind, OrgNode

        self.calls.append((parent.id, "accounts"))
        if (parent.id, "accounts") in self.failing:
            raise ListingError(parent.id, "list_accounts_for_parent", "AccessDenied")
        parent_name = parent.name if parent.kind == NodeKind.OU else None
        return [
            OrgNode(
                id=account_id,
                name=f"acct-{account_id}",
                kind=NodeKind.ACCOUNT,
                parent_id=parent.id,
                parent_name=parent_name,
                status="ACTIVE",
            )
            for account_id in sorted(self.accounts.get(parent.id, []))
        ]


@pytest.fixture
def fake_org_factory():
    """임의 트리용 FakeOrganizationsClient 생성자"""
    return FakeOrganizationsClient


@pytest.fixture
def fake_org():
    """root → Prod(ou-prod: 111, 222), Dev(ou-dev: 333 + Sandbox(ou-sbx: 444)), root 직속 999"""
    return FakeOrganizationsClient(
        ous={
            "r-root": [("ou-prod", "Prod"), ("ou-dev", "Dev")],
            "ou-dev": [("ou-sbx", "Sandbox")],
        },
        accounts={
            "r-root": ["999999999999"],
            "ou-prod": ["111111111111", "222222222222"],
            "ou-dev": ["333333333333"],
            "ou-sbx": ["444444444444"],
        },
    )


# =============================================================================
# 유틸리티 함수
# =============================================================================


def create_mock_response(
    data: Dict[str, Any],
    next_token: Optional[str] = None,
) -> Dict[str, Any]:
    """페이지네이션 응답 생성 헬퍼"""
    response = data.copy()
    if next_token:
        response["NextToken"] = next_token
    return response


def create_mock_client_error(
    error_code: str,
    error_message: str = "Test error",
    operation_name: str = "TestOperation",
) -> Exception:
    """ClientError 생성 헬퍼"""
    from botocore.exceptions import ClientError

    return ClientError(
        {
            "Error": {
                "Code": error_code,
                "Message": error_message,
            }
        },
        operation_name,
    )


def create_paginator(pages: List[Dict[str, Any]]) -> MagicMock:
    """지정한 페이지들을 돌려주는 paginator 모킹"""
    paginator = MagicMock()
    paginator.paginate.return_value = pages
    return paginator


@pytest.fixture
def client_error():
    """ClientError 생성 헬퍼 픽스처"""
    return create_mock_client_error


@pytest.fixture
def paginator_factory():
    """paginator 모킹 헬퍼 픽스처"""
    return create_paginator


# =============================================================================
# moto 통합
# =============================================================================


@pytest.fixture
def aws_credentials():
    """moto 사용 시 AWS 자격 증명 설정"""
    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_SECURITY_TOKEN"] = "testing"
    os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = "ap-northeast-2"


@pytest.fixture
def moto_session(aws_credentials):
    """moto를 사용한 boto3 세션 (모든 서비스 모킹)"""
    moto = pytest.importorskip("moto")

    with moto.mock_aws():
        import boto3

        yield boto3.Session(region_name="ap-northeast-2")
