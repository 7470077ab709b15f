import re
from pathlib import Path

from backend.app.config import settings
from backend.app.schemas.migrations import FileType, UploadedFile

ALLOWED_EXTENSIONS = {".sql", ".txt", ".tab", ".prc", ".trg", ".ddl"}

_CREATE_PATTERNS: list[tuple[FileType, re.Pattern]] = [
    ("trigger", re.compile(r"\bCREATE\s+(OR\s+REPLACE\s+)?TRIGGER\b", re.IGNORECASE)),
    ("procedure", re.compile(r"\bCREATE\s+(OR\s+REPLACE\s+)?PROC(EDURE)?\b", re.IGNORECASE)),
    ("table", re.compile(r"\bCREATE\s+TABLE\b", re.IGNORECASE)),
]


def get_file_extension(filename: str) -> str:
    return Path(filename).suffix.lower()


def validate_extension(filename: str) -> None:
    ext = get_file_extension(filename)
    if ext not in ALLOWED_EXTENSIONS:
        allowed = ", ".join(sorted(ALLOWED_EXTENSIONS))
        raise ValueError(f"Unsupported file format: {ext or '(none)'}. Allowed: {allowed}")


def decode_source(content: bytes) -> str:
    """Decode uploaded SQL source. Raises ValueError for empty or oversized files."""
    if len(content) == 0:
        raise ValueError("File is empty")
    if len(content) > settings.MAX_UPLOAD_SIZE:
        raise ValueError(f"File exceeds {settings.MAX_UPLOAD_SIZE} byte size limit")
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError:
        # Sybase exports are often not UTF-8
        return content.decode("latin-1")


def detect_file_type(content: str) -> FileType:
    """Classify a source artifact by the kind of object it creates.

    Triggers are checked before procedures since trigger bodies often call procedures.
    """
    for file_type, pattern in _CREATE_PATTERNS:
        if pattern.search(content):
            return file_type
    return "other"


def build_uploaded_file(filename: str, content: bytes) -> UploadedFile:
    validate_extension(filename)
    source = decode_source(content)
    return UploadedFile(name=filename, type=detect_file_type(source), content=source)
