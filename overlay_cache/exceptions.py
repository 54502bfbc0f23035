"""
예외 클래스 정의 모듈

오버레이 캐시 시스템에서 사용되는 커스텀 예외들을 정의합니다.
"""

from typing import Optional


class OverlayCacheException(Exception):
    """오버레이 캐시 시스템 기본 예외 클래스"""

    def __init__(self, message: str, error_code: Optional[str] = None):
        """
        예외 초기화

        Args:
            message: 오류 메시지
            error_code: 오류 코드 (선택사항)
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code


class RepositoryNotFoundException(OverlayCacheException):
    """설정에 등록되지 않은 저장소를 조회할 때 발생하는 예외"""

    def __init__(self, repository_name: str, config_path: Optional[str] = None):
        """
        저장소 찾기 실패 예외 초기화

        Args:
            repository_name: 저장소 이름
            config_path: 오버레이 설정 파일 경로
        """
        config_info = f" (설정 파일: {config_path})" if config_path else ""
        message = f"저장소를 찾을 수 없습니다: {repository_name}{config_info}"
        super().__init__(message, "REPOSITORY_NOT_FOUND")
        self.repository_name = repository_name
        self.config_path = config_path


class CategoryNotFoundException(OverlayCacheException):
    """저장소에 카테고리 디렉토리가 없을 때 발생하는 예외"""

    def __init__(self, category: str, repository_name: str):
        """
        카테고리 찾기 실패 예외 초기화

        Args:
            category: 카테고리 이름
            repository_name: 저장소 이름
        """
        message = f"카테고리를 찾을 수 없습니다: {category} (저장소: {repository_name})"
        super().__init__(message, "CATEGORY_NOT_FOUND")
        self.category = category
        self.repository_name = repository_name


class UnknownCategoryException(OverlayCacheException):
    """선언되지 않은 카테고리를 사용할 때 발생하는 예외"""

    def __init__(self, category: str):
        """
        알 수 없는 카테고리 예외 초기화

        Args:
            category: 카테고리 이름
        """
        message = f"알 수 없는 카테고리입니다: {category}"
        super().__init__(message, "UNKNOWN_CATEGORY")
        self.category = category


class ObjectSourceNotFoundException(OverlayCacheException):
    """객체 스크립트 파일이 존재하지 않을 때 발생하는 예외"""

    def __init__(self, path: str):
        """
        객체 소스 찾기 실패 예외 초기화

        Args:
            path: 스크립트 파일 경로
        """
        message = f"객체 스크립트가 존재하지 않습니다: {path}"
        super().__init__(message, "OBJECT_SOURCE_NOT_FOUND")
        self.path = path


class ScriptLoadException(OverlayCacheException):
    """스크립트 실행 또는 객체 추출 실패 시 발생하는 예외"""

    def __init__(self, path: str, error_detail: str):
        """
        스크립트 로드 예외 초기화

        Args:
            path: 스크립트 파일 경로
            error_detail: 오류 상세 정보
        """
        message = f"스크립트 로드 실패: {path} - {error_detail}"
        super().__init__(message, "SCRIPT_LOAD_ERROR")
        self.path = path
        self.error_detail = error_detail


class RepositoryRefreshException(OverlayCacheException):
    """저장소 갱신(원격 동기화) 실패 시 발생하는 예외"""

    def __init__(self, repository_name: str, error_detail: str):
        """
        저장소 갱신 예외 초기화

        Args:
            repository_name: 저장소 이름
            error_detail: 오류 상세 정보
        """
        message = f"저장소 갱신 실패 ({repository_name}): {error_detail}"
        super().__init__(message, "REPOSITORY_REFRESH_ERROR")
        self.repository_name = repository_name
        self.error_detail = error_detail


class RegistryException(OverlayCacheException):
    """객체 레지스트리 저장소 I/O 오류 시 발생하는 예외"""

    def __init__(self, error_detail: str):
        """
        레지스트리 예외 초기화

        Args:
            error_detail: 오류 상세 정보
        """
        message = f"레지스트리 오류: {error_detail}"
        super().__init__(message, "REGISTRY_ERROR")
        self.error_detail = error_detail


class ConfigurationException(OverlayCacheException):
    """설정 오류 시 발생하는 예외"""

    def __init__(self, config_key: str, error_detail: str):
        """
        설정 예외 초기화

        Args:
            config_key: 설정 키
            error_detail: 오류 상세 정보
        """
        message = f"설정 오류: {config_key} - {error_detail}"
        super().__init__(message, "CONFIGURATION_ERROR")
        self.config_key = config_key
        self.error_detail = error_detail
