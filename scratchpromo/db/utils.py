from pathlib import Path
from datetime import date, datetime, timezone
from typing import Optional, Union


def resolve_sqlite_url(url: str, project_root: Path) -> str:
    """Resolve 'sqlite:///./relative/path' to an absolute sqlite:/// URL.

    Keeps other URL forms unchanged.
    """
    prefix = "sqlite:///./"
    if not url.startswith(prefix):
        return url
    rel = url[len(prefix) :]
    return f"sqlite:///{(project_root / rel).resolve()}"


def as_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Return ``dt`` as an aware UTC datetime.

    SQLite drops tzinfo on round-trip, so naive values read back from the
    store are taken to already be UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def dt_iso(dt: Optional[Union[datetime, date]]) -> Optional[str]:
    """Convert a datetime to an ISO 8601 string in UTC, or return None.

    Plain dates are rendered as ``YYYY-MM-DD``.
    """
    if dt is None:
        return None
    if not isinstance(dt, datetime):
        return dt.isoformat()
    return as_utc(dt).isoformat()
