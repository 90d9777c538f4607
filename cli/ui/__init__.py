# cli/ui - 콘솔 출력 컴포넌트 (rich)
"""
콘솔 UI 모듈

CLI 전용 출력 컴포넌트들 (로깅 설정, 메시지, 요약 테이블)
"""

from .console import (
    SYMBOL_ERROR,
    SYMBOL_INFO,
    SYMBOL_SUCCESS,
    SYMBOL_WARNING,
    console,
    err_console,
    get_console,
    print_error,
    print_error_tree,
    print_info,
    print_success,
    print_summary_table,
    print_warning,
    setup_logging,
)

__all__ = [
    "SYMBOL_ERROR",
    "SYMBOL_INFO",
    "SYMBOL_SUCCESS",
    "SYMBOL_WARNING",
    "console",
    "err_console",
    "get_console",
    "print_error",
    "print_error_tree",
    "print_info",
    "print_success",
    "print_summary_table",
    "print_warning",
    "setup_logging",
]
