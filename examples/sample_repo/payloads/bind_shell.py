from overlay_cache.models import ScriptObject

payload = ScriptObject(
    category="payload",
    name="bind-shell",
    version="0.2",
    author="postmodern",
    params={"port": 4444},
)
