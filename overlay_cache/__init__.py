"""
오버레이 캐시

여러 저장소에 스크립트로 정의된 보안 객체(권고문, 익스플로잇, 페이로드)를
레지스트리에 캐시하고 파일시스템 변경과 동기화합니다.
"""

__version__ = "0.1.0"
