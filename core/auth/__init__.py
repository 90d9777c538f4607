# core/auth/__init__.py
"""
계정별 자격 증명 모듈 (core/auth)

조직의 각 계정에 대해 역할을 전환(AssumeRole)하여 해당 계정에만 유효한
임시 자격 증명을 발급합니다. 자격 증명은 작업 단위로 전달되며
프로세스 전역 상태(환경 변수 등)로 내보내지 않습니다.

사용 예시:
    from core.auth import CredentialBroker, get_session

    broker = CredentialBroker(get_session("mgmt"))
    with broker.acquire_with_retry("111111111111", "OrganizationAccountAccessRole") as creds:
        s3 = creds.create_session().client("s3")

Note:
    이 모듈은 Lazy Import 패턴을 사용합니다.
"""

__all__ = [
    "ScopedCredentials",
    "CredentialBroker",
    "build_role_arn",
    "get_session",
]

_IMPORT_MAPPING = {
    "ScopedCredentials": (".types", "ScopedCredentials"),
    "CredentialBroker": (".broker", "CredentialBroker"),
    "build_role_arn": (".broker", "build_role_arn"),
    "get_session": (".session", "get_session"),
}


def __getattr__(name: str):
    """Lazy import - 실제 사용 시점에만 모듈 로드"""
    if name in _IMPORT_MAPPING:
        module_name, attr_name = _IMPORT_MAPPING[name]
        import importlib

        module = importlib.import_module(module_name, __name__)
        return getattr(module, attr_name)

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
