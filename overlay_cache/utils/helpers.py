"""
공통 유틸리티 함수 모듈

오버레이 캐시 시스템에서 공통으로 사용되는 헬퍼 함수들을 제공합니다.
"""

import os
from pathlib import Path
from typing import Optional, Union


def canonical_path(path: Union[str, Path]) -> str:
    """
    정규 경로 생성

    사용자 디렉토리(~)를 확장하고 절대 경로로 정규화합니다.
    심볼릭 링크는 해석하지 않습니다.

    Args:
        path: 원본 경로

    Returns:
        str: 정규 경로
    """
    return os.path.abspath(os.path.expanduser(str(path)))


def directory_prefix(directory: Union[str, Path]) -> str:
    """
    경로 세그먼트 단위 접두사 생성

    '/ov'는 '/ov/'가 되어 '/ovx/...'와 일치하지 않습니다.

    Args:
        directory: 디렉토리 경로

    Returns:
        str: 구분자로 끝나는 정규 디렉토리 경로
    """
    directory = canonical_path(directory)
    if directory.endswith(os.sep):
        return directory
    return directory + os.sep


def file_mtime(path: Union[str, Path]) -> Optional[float]:
    """
    일반 파일의 수정 시간 조회

    Args:
        path: 파일 경로

    Returns:
        Optional[float]: 수정 시간 (POSIX 초), 일반 파일이 아니면 None
    """
    try:
        stat_result = os.stat(path)
    except OSError:
        return None

    if not os.path.isfile(path):
        return None
    return stat_result.st_mtime


def format_duration(seconds: float) -> str:
    """
    지속 시간을 사람이 읽기 쉬운 형태로 변환

    Args:
        seconds: 초 단위 시간

    Returns:
        str: 형식화된 시간 문자열
    """
    if seconds < 60:
        return f"{seconds:.1f}초"
    elif seconds < 3600:
        minutes = seconds // 60
        seconds = seconds % 60
        return f"{int(minutes)}분 {seconds:.1f}초"
    else:
        hours = seconds // 3600
        minutes = (seconds % 3600) // 60
        seconds = seconds % 60
        return f"{int(hours)}시간 {int(minutes)}분 {seconds:.1f}초"
