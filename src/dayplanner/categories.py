"""Loading and saving the user's list of event categories."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = (
    "Work",
    "Personal",
    "Family",
    "Health",
    "Education",
    "Entertainment",
    "Other",
)


def load_categories(path: Path) -> List[str]:
    """Read one category per line, falling back to the defaults if the file is missing."""

    if not path.exists():
        return list(DEFAULT_CATEGORIES)
    return [line.strip() for line in path.read_text(encoding="utf-8").splitlines() if line.strip()]


def save_categories(path: Path, categories: Iterable[str]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(categories), encoding="utf-8")
    logger.debug("Saved categories to %s", path)
