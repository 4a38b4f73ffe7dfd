import re
import time
from pathlib import PurePath

_SLUG_INVALID = re.compile(r"[^a-z0-9\s_-]")
_WHITESPACE = re.compile(r"\s+")
_DASH_RUN = re.compile(r"-+")
_FILENAME_INVALID = re.compile(r"[^a-zA-Z0-9._-]")
_UNDERSCORE_RUN = re.compile(r"_{2,}")
_EMAIL = re.compile(r"^[a-zA-Z0-9._%+\-]+@[a-zA-Z0-9.\-]+\.[a-zA-Z]{2,}$")
_USERNAME = re.compile(r"^[a-zA-Z0-9_-]{3,50}$")

ALLOWED_MOD_EXTENSIONS = frozenset({".zip", ".rar", ".7z", ".jar", ".dll", ".exe", ".json", ".txt"})

MIME_TYPES: dict[str, str] = {
    ".zip": "application/zip",
    ".rar": "application/x-rar-compressed",
    ".7z": "application/x-7z-compressed",
    ".tar": "application/x-tar",
    ".gz": "application/gzip",
    ".jar": "application/java-archive",
    ".dll": "application/x-msdownload",
    ".exe": "application/x-msdownload",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".json": "application/json",
    ".txt": "text/plain",
}


def slugify(text: str) -> str:
    """Turn a display name into a URL-safe slug; never returns an empty string."""
    slug = _SLUG_INVALID.sub("", text.lower())
    slug = _WHITESPACE.sub("-", slug)
    slug = _DASH_RUN.sub("-", slug).strip("-")
    if not slug:
        slug = f"item-{int(time.time())}"
    return slug


def sanitize_filename(filename: str) -> str:
    name = PurePath(filename.replace("\\", "/")).name
    name = _FILENAME_INVALID.sub("_", name)
    name = _UNDERSCORE_RUN.sub("_", name).strip("_")
    if not name.strip("."):
        return "file"
    return name


def file_extension(filename: str) -> str:
    return PurePath(filename).suffix.lower()


def is_allowed_mod_file(filename: str) -> bool:
    return file_extension(filename) in ALLOWED_MOD_EXTENSIONS


def mime_type_for(filename: str) -> str:
    return MIME_TYPES.get(file_extension(filename), "application/octet-stream")


def is_valid_email(email: str) -> bool:
    return bool(_EMAIL.match(email))


def is_valid_username(username: str) -> bool:
    return bool(_USERNAME.match(username))


def format_file_size(size: int) -> str:
    unit = 1024
    if size < unit:
        return f"{size} B"
    div, exp = unit, 0
    n = size // unit
    while n >= unit:
        div *= unit
        exp += 1
        n //= unit
    return f"{size / div:.1f} {'KMGTPE'[exp]}B"


def client_ip(headers, peer: str | None) -> str:
    """Resolve the caller's address from proxy headers, falling back to the socket peer."""
    if real_ip := headers.get("x-real-ip"):
        return real_ip.strip()
    if forwarded := headers.get("x-forwarded-for"):
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return peer or "unknown"
