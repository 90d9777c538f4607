"""
tests/core/inventory/test_inventory_services.py - 리소스 종류별 조회 함수 테스트
"""

from unittest.mock import MagicMock, patch

import pytest

from core.inventory import KIND_FETCHERS, ResourceKind, has_resources
from core.inventory.services import (
    describe_db_instances,
    describe_instances,
    list_buckets,
    list_functions,
    list_principals,
)


class TestHasResources:
    """결과 비어 있음 판단"""

    def test_empty_lists(self):
        assert has_resources({"Users": [], "Roles": []}) is False

    def test_any_non_empty_list(self):
        assert has_resources({"Users": [], "Roles": [{"RoleName": "r"}]}) is True

    def test_owner_alone_is_empty(self):
        """S3 Owner만 있는 응답은 결과 없음"""
        assert has_resources({"Buckets": [], "Owner": {"ID": "abc"}}) is False


class TestKindFetchers:
    def test_every_kind_has_fetcher(self):
        assert set(KIND_FETCHERS) == set(ResourceKind)


class TestFetchersWithMoto:
    """moto 기반 조회"""

    def test_list_buckets(self, moto_session):
        s3 = moto_session.client("s3", region_name="us-east-1")
        s3.create_bucket(Bucket="trample-test-bucket")

        payload = list_buckets(moto_session)

        assert [b["Name"] for b in payload["Buckets"]] == ["trample-test-bucket"]
        assert "ResponseMetadata" not in payload

    def test_list_principals(self, moto_session):
        iam = moto_session.client("iam")
        iam.create_user(UserName="alice")

        payload = list_principals(moto_session)

        assert [u["UserName"] for u in payload["Users"]] == ["alice"]
        assert "Roles" in payload

    def test_describe_instances_empty(self, moto_session):
        payload = describe_instances(moto_session, region="ap-northeast-2")

        assert payload == {"Reservations": []}
        assert has_resources(payload) is False


class TestPagination:
    """여러 페이지 병합"""

    @pytest.mark.parametrize(
        "fetcher, result_key",
        [
            (list_functions, "Functions"),
            (describe_db_instances, "DBInstances"),
            (describe_instances, "Reservations"),
        ],
    )
    def test_pages_are_merged(self, fetcher, result_key, paginator_factory):
        client = MagicMock()
        client.get_paginator.return_value = paginator_factory(
            [{result_key: [{"id": 1}]}, {result_key: [{"id": 2}]}, {}]
        )

        with patch("core.inventory.services.get_client", return_value=client):
            payload = fetcher(MagicMock(), region="us-west-2")

        assert payload == {result_key: [{"id": 1}, {"id": 2}]}

    def test_region_and_timeouts_forwarded(self, paginator_factory):
        client = MagicMock()
        client.get_paginator.return_value = paginator_factory([])
        session = MagicMock()

        with patch("core.inventory.services.get_client", return_value=client) as mock_get_client:
            list_functions(session, region="eu-west-1", connect_timeout=3, read_timeout=7)

        mock_get_client.assert_called_once_with(
            session, "lambda", region_name="eu-west-1", connect_timeout=3, read_timeout=7
        )
