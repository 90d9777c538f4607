"""
cli/ui/console.py - Rich 콘솔 유틸리티

일관된 콘솔 출력과 로깅 설정을 위한 함수들
"""

import logging
import platform

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.tree import Tree

from core.parallel import ErrorCollector
from core.runner import RunSummary

# botocore 노이즈 로그 제한
_NOISY_LOGGERS = (
    "botocore",
    "botocore.httpchecksum",
    "botocore.credentials",
    "botocore.loaders",
    "botocore.session",
    "boto3",
    "urllib3",
    "filelock",
)


def get_console(stderr: bool = False) -> Console:
    """Rich Console 인스턴스를 생성하고 반환합니다."""
    is_windows = platform.system().lower() == "windows"

    return Console(
        stderr=stderr,
        color_system="auto",
        highlight=True,
        soft_wrap=True,
        markup=True,
        emoji=not is_windows,
    )


# 전역 콘솔 인스턴스 (결과 출력 / 로그 출력)
console = get_console()
err_console = get_console(stderr=True)


def setup_logging(verbose: bool = False) -> logging.Logger:
    """루트 logger에 Rich 핸들러 설정 (stderr)

    Args:
        verbose: True면 DEBUG, 아니면 INFO

    Returns:
        logging.Logger: 설정된 루트 logger
    """
    root = logging.getLogger()
    level = logging.DEBUG if verbose else logging.INFO

    # 중복 설정 방지
    for handler in list(root.handlers):
        if isinstance(handler, RichHandler):
            root.removeHandler(handler)

    handler = RichHandler(console=err_console, rich_tracebacks=True, show_path=verbose)
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    root.addHandler(handler)
    root.setLevel(level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root


# =============================================================================
# 표준 출력 스타일
# =============================================================================

SYMBOL_SUCCESS = "✓"
SYMBOL_ERROR = "✗"
SYMBOL_WARNING = "!"
SYMBOL_INFO = "•"


def print_success(message: str) -> None:
    """성공 메시지 출력 (초록색 체크마크)"""
    console.print(f"[green]{SYMBOL_SUCCESS} {message}[/green]")


def print_error(message: str) -> None:
    """에러 메시지 출력 (빨간색 X)"""
    console.print(f"[red]{SYMBOL_ERROR} {message}[/red]")


def print_warning(message: str) -> None:
    """경고 메시지 출력 (노란색 경고)"""
    console.print(f"[yellow]{SYMBOL_WARNING} {message}[/yellow]")


def print_info(message: str) -> None:
    console.print(f"[dim]{SYMBOL_INFO} {message}[/dim]")


def print_summary_table(summary: RunSummary) -> None:
    """실행 요약 테이블 출력

    Args:
        summary: TrampleRunner.run() 결과
    """
    table = Table(title=f"실행 요약 ({summary.org_id})", show_header=True, header_style="bold magenta")
    table.add_column("항목")
    table.add_column("값", justify="right")

    table.add_row("[green]DONE[/green] (계정, 종류)", str(summary.done))
    table.add_row("[yellow]DENIED[/yellow] (계정, 종류)", str(summary.denied))
    table.add_row("[red]FAILED[/red] (계정, 종류)", str(summary.failed))
    table.add_row("처리한 계정", str(summary.accounts_processed))
    table.add_row("실패한 계정", str(len(summary.accounts_failed)))
    table.add_row("완료로 건너뛴 계정", str(summary.accounts_skipped))
    table.add_row("목록 조회 실패", str(summary.listing_failures))
    table.add_row("저장한 파일", str(summary.artifacts_written))
    table.add_row("소요 시간", f"{summary.duration_seconds:.1f}초")

    console.print(table)


def print_error_tree(errors: ErrorCollector, title: str = "오류 요약") -> None:
    """수집된 에러를 에러 코드별 계층 트리로 출력

    Example:
        ThrottlingException (2건)
        ├── 111111111111/ec2 describe_instances
        └── 222222222222/rds describe_db_instances
    """
    grouped: dict[str, list[str]] = {}
    for error in errors.errors:
        grouped.setdefault(error.error_code, []).append(f"{error.account_id}/{error.scope} {error.operation}")

    if not grouped:
        return

    tree = Tree(f"[bold yellow]{title}[/bold yellow]")
    for code, items in sorted(grouped.items()):
        branch = tree.add(f"[red]{code}[/red] ({len(items)}건)")
        for item in items:
            branch.add(f"[dim]{item}[/dim]")
    console.print(tree)
