from overlay_cache.models import ScriptObject

advisory = ScriptObject(
    category="advisory",
    name="CVE-2000-0573",
    version="1.0",
    author="postmodern",
    description="wu-ftpd lreply() 포맷 문자열 취약점 권고문",
)
