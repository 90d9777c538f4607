"""
core/output/writer.py - 결과 파일 저장

(계정, 리소스 종류)마다 결과 파일 하나를 출력 디렉토리에 저장합니다.

파일명:
    ``{orgId}_{ouName}_{accountId}_{kind}.json``

- 내용은 원본 payload를 들여쓰기한 JSON입니다 (datetime 등은 문자열로 변환).
- 임시 파일에 쓴 뒤 os.replace로 교체하므로 부분적으로 쓰인 파일이 남지 않습니다.
- ouName의 ``[A-Za-z0-9._-]`` 외 문자는 ``_`` 로 치환합니다.
"""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
from pathlib import Path

from core.inventory.types import ResourceRecord

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def sanitize_name(name: str) -> str:
    """파일명에 안전한 문자만 남김"""
    return _UNSAFE_CHARS.sub("_", name) or "_"


def artifact_name(org_id: str, ou_name: str, account_id: str, kind: str) -> str:
    """결과 파일명 생성"""
    return f"{sanitize_name(org_id)}_{sanitize_name(ou_name)}_{account_id}_{kind}.json"


class ResultWriter:
    """결과 파일 저장기 (상태 없음, 여러 스레드에서 공유 가능)"""

    def __init__(self, output_dir: str | Path):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def path_for(self, record: ResourceRecord) -> Path:
        return self.output_dir / artifact_name(
            record.org_id,
            record.ou_name,
            record.account_id,
            record.resource_kind.value,
        )

    def write(self, record: ResourceRecord) -> Path:
        """결과 파일을 원자적으로 저장

        Returns:
            저장된 파일 경로

        Raises:
            OSError: 파일 저장 실패
        """
        target = self.path_for(record)
        fd, tmp_name = tempfile.mkstemp(dir=str(self.output_dir), prefix=f".{target.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(record.payload, f, indent=2, ensure_ascii=False, default=str)
                f.write("\n")
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, target)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

        logger.info(f"[{record.account_id}/{record.resource_kind.value}] 결과 저장: {target}")
        return target
