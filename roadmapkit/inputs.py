"""Discovery and validation of weekly input documents."""

from __future__ import annotations

import logging
import re
from pathlib import Path, PurePosixPath
from typing import List, Tuple

logger = logging.getLogger("roadmapkit.inputs")

TEMPLATES_DIR = "templates"
MIN_CONTENT_LENGTH = 200

_WEEK_PATTERN = re.compile(r"^\d{4}-W\d{2}$")
_WEEKLY_DIR_PATTERN = re.compile(r"weekly/(\d{4}-W\d{2})")
_PLACEHOLDER_PATTERN = re.compile(r"\[.*?\]")
_PLACEHOLDER_MARKERS = ("YYYY", "Name", "Date", "Subject")


def is_valid_week(week: str) -> bool:
    return bool(_WEEK_PATTERN.match(week or ""))


def classify_input(rel_path: str) -> str:
    """Input type of a path relative to the inputs directory."""
    lowered = rel_path.replace("\\", "/").lower()
    if lowered.startswith("baseline"):
        return "baseline"
    if "email" in lowered:
        return "emails"
    if "meeting" in lowered:
        return "meetings"
    if "status" in lowered:
        return "status"
    return "notes"


def extract_week(rel_path: str) -> str:
    """The ``YYYY-WXX`` folder a weekly input lives in, else ``baseline``."""
    match = _WEEKLY_DIR_PATTERN.search(rel_path.replace("\\", "/"))
    return match.group(1) if match else "baseline"


def validate_input(content: str, input_type: str) -> List[str]:
    """Warnings for inputs that still look like unfilled templates."""
    warnings: List[str] = []

    unfilled = [
        placeholder
        for placeholder in _PLACEHOLDER_PATTERN.findall(content)
        if any(marker in placeholder for marker in _PLACEHOLDER_MARKERS)
    ]
    if unfilled:
        warnings.append(f"Has {len(unfilled)} unfilled placeholder(s): {', '.join(unfilled[:3])}")

    if len(content) < MIN_CONTENT_LENGTH:
        warnings.append("Very short content - may be an empty template")

    if input_type == "status" and not any(
        marker in content for marker in ("KPI", "Payment Success", "payment_success")
    ):
        warnings.append("Status file missing KPI section")

    return warnings


def scan_inputs(inputs_dir: Path) -> List[Path]:
    """All Markdown files under ``inputs_dir``, skipping template folders.

    A missing directory yields an empty list.
    """
    inputs_dir = Path(inputs_dir)
    if not inputs_dir.is_dir():
        logger.info(f"No inputs directory at {inputs_dir}")
        return []
    found: List[Path] = []
    for path in sorted(inputs_dir.rglob("*.md")):
        relative = PurePosixPath(path.relative_to(inputs_dir).as_posix())
        if TEMPLATES_DIR in relative.parts[:-1]:
            logger.debug(f"Skipping template {relative}")
            continue
        found.append(path)
    return found


def read_documents(directory: Path, root: Path) -> List[Tuple[str, str]]:
    """``(relative name, content)`` pairs for the Markdown files in ``directory``."""
    directory = Path(directory)
    if not directory.is_dir():
        return []
    documents = []
    for path in sorted(directory.glob("*.md")):
        documents.append((path.relative_to(root).as_posix(), path.read_text(encoding="utf-8")))
    return documents
