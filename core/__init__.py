# core/__init__.py
"""
core - trample 인프라

조직 탐색, 계정별 자격 증명, 리소스 수집, 실행 상태를 포함하는 최상위 패키지입니다.

아키텍처:
    core/
    ├── auth/           # 계정별 임시 자격 증명 (AssumeRole)
    ├── org/            # Organizations 트리 탐색
    ├── inventory/      # 리소스 종류별 조회 + 수집기
    ├── state/          # 재개 가능한 실행 상태 (JSONL 저널)
    ├── output/         # 결과 파일 저장
    ├── parallel/       # 병렬 처리 (executor, retry, rate limiter, errors)
    ├── runner.py       # 실행 오케스트레이션
    ├── config.py       # 중앙 설정 관리
    └── exceptions.py   # 통합 예외 계층

Usage:
    # 설정 사용
    from core.config import TrampleConfig, get_default_region
    config = TrampleConfig.load("trample.yaml", {"max_workers": 20})

    # 실행
    from core.runner import TrampleRunner
    summary = TrampleRunner(config).run()

    # 예외 처리
    from core.exceptions import OrgAccessError, is_access_denied
"""

__all__: list[str] = [
    # 서브패키지
    "auth",
    "inventory",
    "org",
    "output",
    "parallel",
    "state",
    # 모듈
    "config",
    "exceptions",
    "runner",
]
