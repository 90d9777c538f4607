"""
core/exceptions.py - 통합 예외 계층 구조

조직 탐색과 계정별 리소스 수집 과정에서 사용되는 예외 클래스들을 정의합니다.
예외마다 영향 범위(scope)가 정해져 있으며, 계정/리소스 종류 단위의 에러는
자신의 범위를 넘어 전파되지 않습니다.

예외 계층 구조:
    TrampleError (베이스)
    ├── OrgAccessError      (치명적 - Organizations 접근 불가, 즉시 중단)
    ├── AssumeRoleError     (계정 단위 - 재시도 후 계정 스킵)
    ├── ListingError        (OU 단위 - 해당 목록 조회만 스킵, 형제 OU 계속)
    ├── ResourceQueryError  (리소스 종류 단위 - 해당 종류만 스킵)
    ├── StateError          (실행 상태 파일)
    │   ├── CorruptStateError
    │   └── StateLockedError
    └── ConfigError         (설정 관련)

Usage:
    from core.exceptions import ResourceQueryError, is_access_denied

    try:
        payload = list_buckets(session)
    except ClientError as e:
        raise ResourceQueryError.from_client_error(account_id, "s3", "list_buckets", e)
"""

from typing import Any, Dict, Optional

# =============================================================================
# 베이스 예외
# =============================================================================


class TrampleError(Exception):
    """trample 기본 예외 클래스

    모든 커스텀 예외의 베이스 클래스입니다.

    Attributes:
        message: 에러 메시지
        cause: 원인 예외 (체이닝용)
        details: 추가 상세 정보
    """

    def __init__(
        self,
        message: str,
        cause: Optional[Exception] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.details = details or {}

    def __str__(self) -> str:
        if self.cause:
            return f"{self.message}: {self.cause}"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """예외 정보를 딕셔너리로 반환"""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "cause": str(self.cause) if self.cause else None,
            "details": self.details,
        }


def _client_error_parts(error: Exception) -> tuple[Optional[str], Optional[str]]:
    """ClientError 형식 예외에서 (Code, Message) 추출"""
    response = getattr(error, "response", None)
    if not isinstance(response, dict):
        return None, None
    error_info = response.get("Error", {})
    return error_info.get("Code"), error_info.get("Message")


# =============================================================================
# 조직 탐색 관련 예외
# =============================================================================


class OrgAccessError(TrampleError):
    """Organizations API 접근 자체가 불가능한 경우 (치명적)"""

    def __init__(self, operation: str, cause: Optional[Exception] = None):
        error_code, _ = _client_error_parts(cause) if cause else (None, None)
        message = f"AWS Organizations 접근 실패 [{operation}]"
        if error_code:
            message = f"{message} ({error_code})"
        super().__init__(message, cause)
        self.operation = operation
        self.error_code = error_code
        self.details.update({"operation": operation, "error_code": error_code})


class ListingError(TrampleError):
    """OU 하위 목록 조회 실패 (OU 단위 복구 가능)"""

    def __init__(
        self,
        parent_id: str,
        operation: str,
        error_code: Optional[str] = None,
        cause: Optional[Exception] = None,
    ):
        message = f"목록 조회 실패 [{parent_id}] {operation}"
        if error_code:
            message = f"{message} ({error_code})"
        super().__init__(message, cause)
        self.parent_id = parent_id
        self.operation = operation
        self.error_code = error_code
        self.details.update(
            {
                "parent_id": parent_id,
                "operation": operation,
                "error_code": error_code,
            }
        )

    @classmethod
    def from_client_error(cls, parent_id: str, operation: str, client_error: Exception) -> "ListingError":
        """botocore.exceptions.ClientError로부터 생성"""
        error_code, _ = _client_error_parts(client_error)
        return cls(parent_id, operation, error_code=error_code, cause=client_error)


# =============================================================================
# 계정/리소스 관련 예외
# =============================================================================


class AssumeRoleError(TrampleError):
    """계정 역할 전환(AssumeRole) 실패 (계정 단위 복구 가능)

    Attributes:
        account_id: 대상 계정 ID
        role_name: 전환하려던 역할 이름
        category: 에러 카테고리 문자열 (access_denied, throttling 등)
        error_code: AWS 에러 코드
    """

    def __init__(
        self,
        account_id: str,
        role_name: str,
        category: str = "unknown",
        error_code: Optional[str] = None,
        cause: Optional[Exception] = None,
    ):
        message = f"역할 전환 실패 [{account_id}] {role_name}"
        if error_code:
            message = f"{message} ({error_code})"
        super().__init__(message, cause)
        self.account_id = account_id
        self.role_name = role_name
        self.category = category
        self.error_code = error_code
        self.details.update(
            {
                "account_id": account_id,
                "role_name": role_name,
                "category": category,
                "error_code": error_code,
            }
        )


class ResourceQueryError(TrampleError):
    """리소스 종류별 조회 실패 (리소스 종류 단위 복구 가능)"""

    def __init__(
        self,
        account_id: str,
        resource_kind: str,
        operation: str,
        error_code: Optional[str] = None,
        error_message: Optional[str] = None,
        cause: Optional[Exception] = None,
    ):
        message = f"리소스 조회 실패 [{account_id}/{resource_kind}] {operation}"
        if error_code:
            message = f"{message} ({error_code})"
        if error_message:
            message = f"{message}: {error_message}"
        super().__init__(message, cause)
        self.account_id = account_id
        self.resource_kind = resource_kind
        self.operation = operation
        self.error_code = error_code
        self.details.update(
            {
                "account_id": account_id,
                "resource_kind": resource_kind,
                "operation": operation,
                "error_code": error_code,
            }
        )

    @classmethod
    def from_client_error(
        cls,
        account_id: str,
        resource_kind: str,
        operation: str,
        client_error: Exception,
    ) -> "ResourceQueryError":
        """botocore.exceptions.ClientError로부터 생성

        Args:
            account_id: AWS 계정 ID
            resource_kind: 리소스 종류 (s3, ec2 등)
            operation: API 작업 이름
            client_error: ClientError 예외

        Returns:
            ResourceQueryError 인스턴스
        """
        error_code, error_message = _client_error_parts(client_error)
        return cls(
            account_id=account_id,
            resource_kind=resource_kind,
            operation=operation,
            error_code=error_code,
            error_message=error_message,
            cause=client_error,
        )


# =============================================================================
# 실행 상태 관련 예외
# =============================================================================


class StateError(TrampleError):
    """실행 상태 파일 관련 예외"""

    def __init__(self, path: str, message: str, cause: Optional[Exception] = None):
        super().__init__(f"상태 파일 오류 [{path}]: {message}", cause)
        self.path = path
        self.details["path"] = path


class CorruptStateError(StateError):
    """상태 파일이 존재하지만 해석할 수 없는 경우"""

    def __init__(self, path: str, line_no: int = 0, cause: Optional[Exception] = None):
        reason = "파싱할 수 없습니다"
        if line_no:
            reason = f"{line_no}번째 줄을 파싱할 수 없습니다"
        super().__init__(path, reason, cause)
        self.line_no = line_no
        self.details["line_no"] = line_no


class StateLockedError(StateError):
    """다른 실행이 이미 상태 파일을 점유한 경우"""

    def __init__(self, path: str, cause: Optional[Exception] = None):
        super().__init__(path, "다른 실행이 이미 사용 중입니다", cause)


# =============================================================================
# 설정 관련 예외
# =============================================================================


class ConfigError(TrampleError):
    """설정 관련 예외"""

    def __init__(
        self,
        key: str,
        message: str,
        cause: Optional[Exception] = None,
    ):
        full_message = f"설정 오류 [{key}]: {message}"
        super().__init__(full_message, cause)
        self.config_key = key
        self.details["config_key"] = key


# =============================================================================
# 예외 유틸리티 함수
# =============================================================================

ACCESS_DENIED_CODES = {
    "AccessDenied",
    "AccessDeniedException",
    "UnauthorizedAccess",
    "UnauthorizedOperation",
    "AuthorizationError",
    "AWSOrganizationsNotInUseException",
}

THROTTLING_CODES = {
    "Throttling",
    "ThrottlingException",
    "RequestLimitExceeded",
    "TooManyRequestsException",
    "RateExceeded",
}

NOT_FOUND_CODES = {
    "ResourceNotFoundException",
    "NotFoundException",
    "NoSuchEntity",
    "NoSuchBucket",
    "ParentNotFoundException",
}


def _error_code_of(error: Exception) -> Optional[str]:
    if isinstance(error, TrampleError):
        return getattr(error, "error_code", None)
    error_code, _ = _client_error_parts(error)
    return error_code


def is_access_denied(error: Exception) -> bool:
    """액세스 거부 오류인지 확인

    Args:
        error: 확인할 예외

    Returns:
        액세스 거부 오류이면 True
    """
    return _error_code_of(error) in ACCESS_DENIED_CODES


def is_throttling(error: Exception) -> bool:
    """스로틀링 오류인지 확인"""
    return _error_code_of(error) in THROTTLING_CODES


def is_not_found(error: Exception) -> bool:
    """리소스를 찾을 수 없는 오류인지 확인"""
    return _error_code_of(error) in NOT_FOUND_CODES


def format_error_for_user(error: Exception) -> str:
    """사용자에게 표시할 에러 메시지 포맷팅

    Args:
        error: 예외

    Returns:
        사용자 친화적인 에러 메시지
    """
    if isinstance(error, TrampleError):
        return str(error)

    error_code, error_message = _client_error_parts(error)
    if error_code:
        friendly_messages = {
            "AccessDenied": "권한이 없습니다. IAM 정책을 확인하세요.",
            "ExpiredToken": "인증 토큰이 만료되었습니다. 다시 로그인하세요.",
            "InvalidClientTokenId": "잘못된 자격 증명입니다.",
            "Throttling": "요청이 너무 많습니다. 잠시 후 다시 시도하세요.",
        }
        return friendly_messages.get(error_code, f"{error_code}: {error_message or error}")

    return str(error)
