"""
core/auth/session.py - 관리 계정(호출자) 세션 생성

Organizations 조회와 AssumeRole 호출에 사용하는 기본 boto3 Session을 만듭니다.
프로파일을 지정하지 않으면 boto3 기본 자격 증명 체인을 따릅니다.
"""

from __future__ import annotations

import logging

import boto3

logger = logging.getLogger(__name__)


def get_session(profile_name: str | None = None, region_name: str | None = None) -> boto3.Session:
    """기본 boto3 Session 반환

    Args:
        profile_name: AWS 프로파일 이름 (None이면 기본 자격 증명 체인)
        region_name: 기본 리전 (None이면 프로파일/환경 설정값)
    """
    session = boto3.Session(profile_name=profile_name, region_name=region_name)
    logger.debug(f"기본 세션 생성: profile={profile_name or '(default)'}, region={session.region_name}")
    return session
