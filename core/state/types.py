"""
core/state/types.py - 실행 상태 타입

- Outcome: (계정, 리소스 종류) 처리 결과
- RunState: 재개 가능한 실행의 진행 상태
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum


class Outcome(Enum):
    """(계정, 리소스 종류) 처리 결과

    키가 없으면 "시도하지 않음"을 의미합니다.
    DONE/DENIED는 완료로 간주되어 재개 시 다시 조회하지 않고,
    FAILED는 재개 시 다시 시도합니다.
    """

    DONE = "done"  # 조회 성공 (결과가 비어 있어도 DONE)
    DENIED = "denied"  # 권한 없음
    FAILED = "failed"  # 재시도 소진 또는 예상치 못한 오류

    @property
    def is_complete(self) -> bool:
        return self in (Outcome.DONE, Outcome.DENIED)


@dataclass
class RunState:
    """실행 진행 상태

    Attributes:
        outcomes: {(account_id, resource_kind): Outcome}
        visited_ou_ids: 하위 목록 조회가 끝난 컨테이너(ROOT/OU) ID
        org_id: 상태가 속한 Organization ID
        started_at: 최초 실행 시각 (ISO 8601)
    """

    outcomes: dict[tuple[str, str], Outcome] = field(default_factory=dict)
    visited_ou_ids: set[str] = field(default_factory=set)
    org_id: str | None = None
    started_at: str | None = None

    @property
    def completed_account_resource_kinds(self) -> set[tuple[str, str]]:
        """완료된 (account_id, resource_kind) 쌍 (DONE + DENIED)"""
        return {key for key, outcome in self.outcomes.items() if outcome.is_complete}

    def is_complete(self, account_id: str, resource_kind: str) -> bool:
        outcome = self.outcomes.get((account_id, resource_kind))
        return outcome is not None and outcome.is_complete

    def is_account_complete(self, account_id: str, resource_kinds: Iterable[str]) -> bool:
        return all(self.is_complete(account_id, kind) for kind in resource_kinds)

    def counts(self) -> dict[Outcome, int]:
        result = {outcome: 0 for outcome in Outcome}
        for outcome in self.outcomes.values():
            result[outcome] += 1
        return result
