"""익스플로잇 카테고리 컨텍스트"""

DEFAULT_TIMEOUT = 10
