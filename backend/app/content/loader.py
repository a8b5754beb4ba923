"""Load static curriculum files from the content directory."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Union

from .models import SUBJECT_IDS, ContentImportError, ContentSources

logger = logging.getLogger(__name__)

# Prompt copy that previously lived inline in the lesson components.
DEFAULT_PROMPTS: Dict[str, Any] = {
    "global": {
        "encouragement": [
            "Great job! Keep up the excellent work!",
            "You're doing amazing! Take a deep breath and continue.",
            "Wonderful progress! Remember to stay mindful and focused.",
        ],
        "hints": {
            "math": "Think step by step. What do you know? What are you trying to find?",
            "reading": "Read the passage carefully. Look for key words and phrases.",
            "science": "Consider what you observe. What patterns do you notice?",
        },
    }
}


def _read_json(path: Path) -> Any:
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def load_manifest(content_dir: Path) -> Dict[str, Dict[str, Dict[str, Any]]]:
    try:
        manifest = _read_json(content_dir / "manifest.json")
    except (OSError, json.JSONDecodeError) as exc:
        raise ContentImportError(f"Failed to load manifest.json: {exc}") from exc
    if not isinstance(manifest, dict):
        raise ContentImportError("Failed to load manifest.json: expected an object")
    return manifest


def load_skills(content_dir: Path) -> Dict[str, List[str]]:
    try:
        skills = _read_json(content_dir / "skills.json")
    except (OSError, json.JSONDecodeError) as exc:
        raise ContentImportError(f"Failed to load skills.json: {exc}") from exc
    if not isinstance(skills, dict):
        raise ContentImportError("Failed to load skills.json: expected an object")
    return skills


def load_diagnostic_banks(content_dir: Path) -> Dict[str, List[Dict[str, Any]]]:
    """Load per-subject diagnostic banks; unreadable banks are treated as empty."""

    banks: Dict[str, List[Dict[str, Any]]] = {}
    for subject in SUBJECT_IDS:
        path = content_dir / "diagnostic" / f"{subject}-v1.json"
        try:
            bank = _read_json(path)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Could not load %s diagnostic bank: %s", subject, exc)
            bank = []
        banks[subject] = bank if isinstance(bank, list) else []
    return banks


def load_content_sources(content_dir: Union[str, Path]) -> ContentSources:
    directory = Path(content_dir)
    return ContentSources(
        manifest=load_manifest(directory),
        skills=load_skills(directory),
        diagnostic_banks=load_diagnostic_banks(directory),
        prompts=DEFAULT_PROMPTS,
    )


__all__ = [
    "DEFAULT_PROMPTS",
    "load_content_sources",
    "load_diagnostic_banks",
    "load_manifest",
    "load_skills",
]
