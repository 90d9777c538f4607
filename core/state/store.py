"""
core/state/store.py - 재개 가능한 실행 상태 저장소

(계정, 리소스 종류)별 처리 결과와 조회가 끝난 OU를 JSON Lines 저널로 기록합니다.

파일 형식 (한 줄에 JSON 객체 하나):
    {"type": "header", "version": 1, "org_id": "o-xxx", "started_at": "..."}
    {"type": "outcome", "account_id": "111111111111", "kind": "s3", "outcome": "done"}
    {"type": "ou", "id": "ou-abcd-1234"}

내구성:
    - record()는 한 줄을 append + flush + os.fsync 한 뒤에 반환합니다.
    - 기록 도중 중단되어 마지막 줄이 잘린 경우 로드 시 무시합니다.
      그 외 해석할 수 없는 줄은 CorruptStateError입니다.
    - 로드 시 저널을 압축합니다 (임시 파일 → fsync → os.replace → 디렉토리 fsync).

동시성:
    - 프로세스 간: ``filelock`` 으로 ``<path>.lock`` 을 즉시(timeout=0) 점유합니다.
      이미 점유되어 있으면 StateLockedError.
    - 스레드 간: 모든 변경은 threading.Lock으로 직렬화됩니다.

사용법:
    from core.state import Outcome, RunStateStore

    with RunStateStore.load("trample_state.json") as store:
        if not store.is_complete("111111111111", "s3"):
            ...
            store.record("111111111111", "s3", Outcome.DONE)
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path
from typing import IO, Any

from filelock import FileLock, Timeout

from core.exceptions import CorruptStateError, StateError, StateLockedError

from .types import Outcome, RunState

logger = logging.getLogger(__name__)

STATE_VERSION = 1


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _parse_line(path: str, line_no: int, line: str) -> dict[str, Any]:
    try:
        entry = json.loads(line)
    except json.JSONDecodeError as e:
        raise CorruptStateError(path, line_no=line_no, cause=e) from e
    if not isinstance(entry, dict) or "type" not in entry:
        raise CorruptStateError(path, line_no=line_no)
    return entry


def _apply_entry(state: RunState, path: str, line_no: int, entry: dict[str, Any]) -> None:
    entry_type = entry["type"]
    try:
        if entry_type == "header":
            if entry.get("version") != STATE_VERSION:
                raise CorruptStateError(path, line_no=line_no)
            state.org_id = entry.get("org_id")
            state.started_at = entry.get("started_at")
        elif entry_type == "outcome":
            key = (str(entry["account_id"]), str(entry["kind"]))
            state.outcomes[key] = Outcome(entry["outcome"])
        elif entry_type == "ou":
            state.visited_ou_ids.add(str(entry["id"]))
        else:
            raise CorruptStateError(path, line_no=line_no)
    except (KeyError, ValueError) as e:
        raise CorruptStateError(path, line_no=line_no, cause=e) from e


def read_state(path: str | Path) -> RunState:
    """상태 파일을 읽어 RunState 반환 (잠금 없음)

    파일이 없으면 빈 상태를 반환합니다.

    Raises:
        CorruptStateError: 파일이 존재하지만 해석할 수 없는 경우
    """
    path = Path(path)
    state = RunState()
    if not path.exists():
        return state

    try:
        raw = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise CorruptStateError(str(path), cause=e) from e

    lines = raw.split("\n")
    # 마지막 요소는 개행으로 끝나지 않은 (잘렸을 수 있는) 줄
    complete_lines, tail = lines[:-1], lines[-1]

    seen_header = False
    for idx, line in enumerate(complete_lines, start=1):
        if not line.strip():
            continue
        entry = _parse_line(str(path), idx, line)
        # 첫 항목은 반드시 헤더
        if not seen_header and entry["type"] != "header":
            raise CorruptStateError(str(path), line_no=idx)
        seen_header = True
        _apply_entry(state, str(path), idx, entry)

    if tail.strip():
        tail_no = len(complete_lines) + 1
        try:
            entry = json.loads(tail)
        except json.JSONDecodeError:
            logger.warning(f"상태 파일 마지막 줄이 잘려 있어 무시합니다: {path} ({tail_no}번째 줄)")
        else:
            if not isinstance(entry, dict) or "type" not in entry:
                raise CorruptStateError(str(path), line_no=tail_no)
            if not seen_header and entry["type"] != "header":
                raise CorruptStateError(str(path), line_no=tail_no)
            _apply_entry(state, str(path), tail_no, entry)

    return state


def _fsync_directory(directory: Path) -> None:
    if os.name == "nt":
        return
    fd = os.open(str(directory), os.O_RDONLY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


class RunStateStore:
    """실행 상태 저장소 (단일 프로세스 소유)

    RunStateStore.load()로 생성합니다. 생성된 저장소는 파일 잠금을 보유하며
    close() 또는 with 블록 종료 시 해제합니다.
    """

    def __init__(self, path: Path, state: RunState, lock: FileLock):
        self.path = path
        self._state = state
        self._file_lock = lock
        self._lock = threading.Lock()
        self._fh: IO[str] | None = None
        self._closed = False

    # =========================================================================
    # 생성
    # =========================================================================

    @classmethod
    def load(
        cls,
        path: str | Path,
        *,
        fresh: bool = False,
        org_id: str | None = None,
    ) -> RunStateStore:
        """상태 파일을 점유하고 로드

        Args:
            path: 상태 파일 경로 (없으면 빈 상태로 시작)
            fresh: True면 기존 내용을 무시하고 새로 시작
            org_id: 현재 Organization ID (기존 상태와 다르면 StateError)

        Raises:
            StateLockedError: 다른 실행이 이미 점유 중
            CorruptStateError: 파일을 해석할 수 없음 (fresh=False일 때)
            StateError: 다른 Organization의 상태 파일이거나 파일 입출력 실패
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        lock = FileLock(str(path) + ".lock", timeout=0)
        try:
            lock.acquire()
        except Timeout as e:
            raise StateLockedError(str(path), cause=e) from e

        try:
            state = RunState() if fresh else read_state(path)
            if org_id and state.org_id and state.org_id != org_id:
                raise StateError(
                    str(path),
                    f"다른 Organization의 상태 파일입니다 (파일: {state.org_id}, 현재: {org_id})",
                )
            state.org_id = state.org_id or org_id
            state.started_at = state.started_at or _now_iso()

            store = cls(path, state, lock)
            store._compact()
            store._fh = open(path, "a", encoding="utf-8")
        except BaseException:
            lock.release()
            raise

        counts = state.counts()
        logger.info(
            f"실행 상태 로드: {path} (완료 {counts[Outcome.DONE]}, 거부 {counts[Outcome.DENIED]}, "
            f"실패 {counts[Outcome.FAILED]}, 조회된 OU {len(state.visited_ou_ids)})"
        )
        return store

    def _compact(self) -> None:
        """최신 결과만 남기도록 저널을 원자적으로 다시 씀"""
        state = self._state
        fd, tmp_name = tempfile.mkstemp(dir=str(self.path.parent), prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                header = {
                    "type": "header",
                    "version": STATE_VERSION,
                    "org_id": state.org_id,
                    "started_at": state.started_at,
                }
                f.write(json.dumps(header) + "\n")
                for (account_id, kind), outcome in sorted(state.outcomes.items()):
                    f.write(json.dumps(self._outcome_entry(account_id, kind, outcome)) + "\n")
                for ou_id in sorted(state.visited_ou_ids):
                    f.write(json.dumps({"type": "ou", "id": ou_id}) + "\n")
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
            _fsync_directory(self.path.parent)
        except OSError as e:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StateError(str(self.path), "상태 파일 압축 실패", cause=e) from e

    # =========================================================================
    # 기록
    # =========================================================================

    @staticmethod
    def _outcome_entry(account_id: str, kind: str, outcome: Outcome) -> dict[str, Any]:
        return {"type": "outcome", "account_id": account_id, "kind": kind, "outcome": outcome.value}

    def _append(self, entry: dict[str, Any]) -> None:
        if self._fh is None or self._closed:
            raise StateError(str(self.path), "닫힌 상태 저장소에 기록할 수 없습니다")
        try:
            self._fh.write(json.dumps(entry) + "\n")
            self._fh.flush()
            os.fsync(self._fh.fileno())
        except OSError as e:
            raise StateError(str(self.path), f"상태 기록 실패 ({entry.get('type')})", cause=e) from e

    def record(self, account_id: str, resource_kind: str, outcome: Outcome) -> None:
        """처리 결과 기록 (디스크에 반영된 후 반환)"""
        with self._lock:
            self._append(self._outcome_entry(account_id, resource_kind, outcome))
            self._state.outcomes[(account_id, resource_kind)] = outcome
        logger.debug(f"[{account_id}/{resource_kind}] 상태 기록: {outcome.value}")

    def mark_ou_visited(self, ou_id: str) -> None:
        """하위 목록 조회가 끝난 컨테이너 기록"""
        with self._lock:
            if ou_id in self._state.visited_ou_ids:
                return
            self._append({"type": "ou", "id": ou_id})
            self._state.visited_ou_ids.add(ou_id)

    # =========================================================================
    # 조회
    # =========================================================================

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def org_id(self) -> str | None:
        return self._state.org_id

    def is_complete(self, account_id: str, resource_kind: str) -> bool:
        with self._lock:
            return self._state.is_complete(account_id, resource_kind)

    def is_account_complete(self, account_id: str, resource_kinds: Iterable[str]) -> bool:
        with self._lock:
            return self._state.is_account_complete(account_id, resource_kinds)

    def outcome(self, account_id: str, resource_kind: str) -> Outcome | None:
        with self._lock:
            return self._state.outcomes.get((account_id, resource_kind))

    def is_ou_visited(self, ou_id: str) -> bool:
        with self._lock:
            return ou_id in self._state.visited_ou_ids

    def counts(self) -> dict[Outcome, int]:
        with self._lock:
            return self._state.counts()

    # =========================================================================
    # 종료
    # =========================================================================

    def close(self) -> None:
        """파일 핸들과 잠금 해제 (여러 번 호출해도 안전)"""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            if self._fh is not None:
                self._fh.close()
                self._fh = None
            self._file_lock.release()

    def __enter__(self) -> RunStateStore:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
