"""Inbox folder scanning, purchase-file parsing, and archive logic."""

import shutil
import uuid
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from pathlib import Path

import frontmatter

from finboard.models import PurchaseRequest


def ensure_dirs(inbox_dir: Path, archive_dir: Path) -> None:
    """Create inbox and archive directories if they don't exist."""
    inbox_dir.mkdir(parents=True, exist_ok=True)
    archive_dir.mkdir(parents=True, exist_ok=True)


def scan_inbox(inbox_dir: Path) -> list[Path]:
    """Return all .md files in inbox_dir, sorted by mtime ascending (oldest first)."""
    files = list(inbox_dir.glob("*.md"))
    return sorted(files, key=lambda p: p.stat().st_mtime)


def parse_file(file_path: Path) -> tuple[str, dict]:
    """Parse a markdown file with optional YAML frontmatter.

    Returns:
        (content, metadata); metadata is {} when there is no frontmatter.
    """
    post = frontmatter.load(str(file_path))
    return post.content.strip(), dict(post.metadata)


def purchase_from_file(file_path: Path, default_currency: str = "$") -> PurchaseRequest:
    """Build a PurchaseRequest from a queued purchase file.

    Frontmatter keys: item, price, category (required); currency, urgency,
    url, description (optional). The body becomes the user context.

    Raises:
        ValueError: If a required key is missing or the price is not a positive number.
    """
    content, meta = parse_file(file_path)
    missing = [key for key in ("item", "price", "category") if key not in meta]
    if missing:
        raise ValueError(f"{file_path.name}: missing frontmatter keys: {', '.join(missing)}")
    try:
        price = Decimal(str(meta["price"]))
    except InvalidOperation as exc:
        raise ValueError(f"{file_path.name}: invalid price {meta['price']!r}") from exc

    return PurchaseRequest(
        id=str(uuid.uuid4()),
        item=str(meta["item"]),
        price=price,
        currency=str(meta.get("currency", default_currency)),
        category=str(meta["category"]),
        urgency=str(meta.get("urgency", "medium")),
        created_at=datetime.now(timezone.utc),
        description=str(meta["description"]) if meta.get("description") else None,
        url=str(meta["url"]) if meta.get("url") else None,
        context=content or None,
    )


def archive_file(file_path: Path, archive_dir: Path, *, failed: bool = False) -> Path:
    """Move file to archive_dir with a timestamp prefix.

    Args:
        file_path: Source file to archive.
        archive_dir: Destination directory.
        failed: If True, prefix filename with "FAILED_".

    Returns:
        Path to the archived file.
    """
    timestamp = datetime.now().strftime("%Y-%m-%dT%H%M")
    prefix = "FAILED_" if failed else ""
    dest = archive_dir / f"{prefix}{timestamp}_{file_path.name}"
    shutil.move(str(file_path), str(dest))
    return dest
