"""
cli/headless.py - Headless 실행기

CLI 옵션으로 구성된 TrampleConfig를 받아 조직 인벤토리를 실행하고
종료 코드를 반환합니다.

종료 코드:
    0: 완료 (일부 계정/리소스 종류 실패 포함)
    1: Organizations 접근 불가, 상태 파일 손상/점유, 설정 오류
    130: 사용자 취소 (Ctrl+C)
"""

import logging
import threading

from botocore.exceptions import BotoCoreError

from cli.ui.console import (
    print_error,
    print_error_tree,
    print_info,
    print_success,
    print_summary_table,
    print_warning,
)
from core.config import TrampleConfig
from core.exceptions import CorruptStateError, OrgAccessError, StateError, format_error_for_user
from core.runner import TrampleRunner

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_CANCELLED = 130


class HeadlessRunner:
    """비대화형 실행기"""

    def __init__(self, config: TrampleConfig, runner: TrampleRunner | None = None):
        self.config = config
        self.cancel_event = threading.Event()
        self._runner = runner

    def _get_runner(self) -> TrampleRunner:
        if self._runner is None:
            self._runner = TrampleRunner(self.config, cancel_event=self.cancel_event)
        return self._runner

    def run(self) -> int:
        """실행

        Returns:
            0: 성공, 1: 실패, 130: 취소
        """
        try:
            return self._execute()
        except KeyboardInterrupt:
            self.cancel_event.set()
            print_warning("사용자 취소로 중단되었습니다")
            return EXIT_CANCELLED

    def _execute(self) -> int:
        runner = self._get_runner()
        try:
            summary = runner.run()
        except OrgAccessError as e:
            print_error(f"AWS Organizations에 접근할 수 없습니다. 권한과 Organizations 사용 여부를 확인하세요. ({e})")
            return EXIT_ERROR
        except CorruptStateError as e:
            print_error(f"{format_error_for_user(e)} (--fresh-on-corrupt로 새로 시작할 수 있습니다)")
            return EXIT_ERROR
        except StateError as e:
            print_error(format_error_for_user(e))
            return EXIT_ERROR
        except BotoCoreError as e:
            # 프로파일 없음 등 세션 생성 실패
            print_error(f"AWS 세션 생성 실패: {e}")
            return EXIT_ERROR

        print_summary_table(summary)
        if self.config.verbose:
            print_error_tree(runner.errors)

        if summary.cancelled:
            print_warning(f"중단되었습니다. 이어서 실행: --resume {summary.state_path}")
            return EXIT_CANCELLED

        if summary.has_failures:
            print_info(f"실패한 항목은 --resume {summary.state_path} 로 다시 시도할 수 있습니다")
        print_success(f"완료: 결과 {summary.artifacts_written}개 → {self.config.output_dir}")
        return EXIT_OK


def run_headless(config: TrampleConfig) -> int:
    """Headless 실행 편의 함수

    Returns:
        0: 성공, 1: 실패, 130: 취소
    """
    return HeadlessRunner(config).run()
