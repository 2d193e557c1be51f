from __future__ import annotations

from urllib.parse import urlencode


def resolve_asset_url(path: str | None, *, base_url: str, key: str = "") -> str | None:
    """Turns an opaque document path into a display URL.

    A leading "public/" is stripped; the access key, when configured, is
    appended as the `key` query parameter.
    """
    if not path:
        return None
    if path.startswith(("http://", "https://")):
        return path
    clean = path[len("public/"):] if path.startswith("public/") else path
    url = f"{base_url.rstrip('/')}/{clean.lstrip('/')}"
    if key:
        url = f"{url}?{urlencode({'key': key})}"
    return url
