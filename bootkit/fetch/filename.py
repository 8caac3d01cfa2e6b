"""
Determines the local filename for a downloaded payload from its URL and headers.
"""

import posixpath
import re
from urllib.parse import unquote, urlsplit

from pathvalidate import sanitize_filename

from bootkit.exceptions import DownloadFailed, UnsupportedContentType

# URL suffixes that already name an installable artifact
PASS_THROUGH_SUFFIXES = (".zip", ".dmg", ".pkg", ".tar.gz", ".safariextz")

CONTENT_TYPE_FILENAMES = {
    "application/zip": "pkg.zip",
    "application/x-zip-compressed": "pkg.zip",
    "application/x-apple-diskimage": "pkg.dmg",
    "application/x-gzip": "pkg.gz",
    "application/gzip": "pkg.gz",
}

_DISPOSITION_EXT = re.compile(r"filename\*\s*=\s*[\w-]*'[\w-]*'([^;]+)", re.IGNORECASE)
_DISPOSITION = re.compile(r'filename\s*=\s*"?([^";]*)"?', re.IGNORECASE)


def url_basename(url: str) -> str:
    """The last path segment of a URL, percent-decoded."""
    return posixpath.basename(unquote(urlsplit(url).path))


def is_web_page(url: str) -> bool:
    return urlsplit(url).path.lower().endswith(".html")


def parse_content_disposition(header: str | None) -> str | None:
    """
    Extracts a safe bare filename from a Content-Disposition header.

    The RFC 5987 ``filename*=`` form wins over ``filename=``. Any directory
    components the server sent are discarded.
    """
    if not header:
        return None
    match = _DISPOSITION_EXT.search(header) or _DISPOSITION.search(header)
    if not match:
        return None
    raw = unquote(match.group(1).strip())
    name = sanitize_filename(posixpath.basename(raw.replace("\\", "/")))
    return name or None


def resolve_filename(
    url: str, content_type: str | None, content_disposition: str | None
) -> str:
    """
    Resolves the output filename by precedence:

    1. A pass-through URL suffix (.zip, .dmg, .pkg, .tar.gz, .safariextz)
       keeps the URL basename.
    2. A URL ending in .html is a web page, not a binary, and fails.
    3. A ``filename`` token in Content-Disposition.
    4. A name derived from the content type.

    Raises:
        DownloadFailed: If the URL points at an HTML page.
        UnsupportedContentType: If no rule applies.
    """
    path = urlsplit(url).path.lower()
    if path.endswith(PASS_THROUGH_SUFFIXES):
        return sanitize_filename(url_basename(url))
    if is_web_page(url):
        raise DownloadFailed(url, "server returned a web page instead of a file")

    if disposed := parse_content_disposition(content_disposition):
        return disposed

    mimetype = (content_type or "").split(";")[0].strip().lower()
    if mimetype in CONTENT_TYPE_FILENAMES:
        return CONTENT_TYPE_FILENAMES[mimetype]
    if mimetype == "text/plain":
        return sanitize_filename(url_basename(url)) or "pkg.txt"
    raise UnsupportedContentType(url, mimetype or "(none)")
