"""
tests/core/test_core_exceptions.py - core/exceptions.py 테스트
"""

import pytest

from core.exceptions import (
    AssumeRoleError,
    ConfigError,
    CorruptStateError,
    ListingError,
    OrgAccessError,
    ResourceQueryError,
    StateError,
    StateLockedError,
    TrampleError,
    format_error_for_user,
    is_access_denied,
    is_not_found,
    is_throttling,
)


class TestHierarchy:
    """예외 계층 구조"""

    @pytest.mark.parametrize(
        "error",
        [
            OrgAccessError("list_roots"),
            ListingError("ou-1", "list_accounts_for_parent"),
            AssumeRoleError("111111111111", "R"),
            ResourceQueryError("111111111111", "s3", "list_buckets"),
            StateError("state.json", "x"),
            ConfigError("max_workers", "x"),
        ],
    )
    def test_all_are_trample_errors(self, error):
        assert isinstance(error, TrampleError)

    def test_state_subclasses(self):
        assert isinstance(CorruptStateError("state.json", line_no=3), StateError)
        assert isinstance(StateLockedError("state.json"), StateError)


class TestMessages:
    """메시지와 상세 정보"""

    def test_org_access_error_includes_code(self, client_error):
        error = OrgAccessError("describe_organization", cause=client_error("AWSOrganizationsNotInUseException"))

        assert error.error_code == "AWSOrganizationsNotInUseException"
        assert "describe_organization" in str(error)

    def test_resource_query_error_from_client_error(self, client_error):
        error = ResourceQueryError.from_client_error(
            "111111111111", "s3", "list_buckets", client_error("AccessDenied", "no s3")
        )

        assert error.error_code == "AccessDenied"
        assert "111111111111/s3" in error.message
        assert "no s3" in error.message
        assert error.details["resource_kind"] == "s3"

    def test_listing_error_from_client_error(self, client_error):
        error = ListingError.from_client_error("ou-prod", "list_accounts_for_parent", client_error("Throttling"))

        assert error.parent_id == "ou-prod"
        assert error.error_code == "Throttling"

    def test_corrupt_state_line_number(self):
        error = CorruptStateError("state.json", line_no=7)

        assert "7번째 줄" in str(error)
        assert error.details["path"] == "state.json"

    def test_to_dict(self):
        cause = ValueError("bad")
        d = ConfigError("max_workers", "범위 초과", cause=cause).to_dict()

        assert d["error_type"] == "ConfigError"
        assert d["cause"] == "bad"
        assert d["details"]["config_key"] == "max_workers"


class TestPredicates:
    """is_access_denied / is_throttling / is_not_found"""

    def test_client_errors(self, client_error):
        assert is_access_denied(client_error("UnauthorizedOperation"))
        assert is_throttling(client_error("RequestLimitExceeded"))
        assert is_not_found(client_error("NoSuchEntity"))
        assert not is_access_denied(client_error("Throttling"))

    def test_domain_errors(self):
        assert is_access_denied(AssumeRoleError("1", "R", error_code="AccessDenied"))
        assert is_throttling(ListingError("ou-1", "op", error_code="TooManyRequestsException"))

    def test_plain_exception(self):
        assert not is_access_denied(ValueError("AccessDenied"))


class TestFormatErrorForUser:
    def test_trample_error(self):
        assert format_error_for_user(StateLockedError("s.json")) == str(StateLockedError("s.json"))

    def test_friendly_client_error(self, client_error):
        assert "만료" in format_error_for_user(client_error("ExpiredToken"))

    def test_unknown_client_error(self, client_error):
        assert format_error_for_user(client_error("Weird", "strange")) == "Weird: strange"
