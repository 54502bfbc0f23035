from overlay_cache.models import ScriptObject

exploit = ScriptObject(
    category="exploit",
    name="wu-ftpd-site-exec",
    version="0.1",
    author="postmodern",
    description="wu-ftpd SITE EXEC 포맷 문자열 취약점",
    targets=["linux/x86"],
)
