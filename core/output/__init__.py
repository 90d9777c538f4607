"""
core/output - 결과 파일 저장

Usage:
    from core.output import ResultWriter
"""

from .writer import ResultWriter, artifact_name, sanitize_name

__all__ = [
    "ResultWriter",
    "artifact_name",
    "sanitize_name",
]
