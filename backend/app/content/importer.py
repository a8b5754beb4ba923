"""Import static curriculum content into the content database."""
from __future__ import annotations

import logging
import re
import sys
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple
from uuid import NAMESPACE_URL, uuid5

from .models import ContentSources, ImportStats
from .store import ContentStore

logger = logging.getLogger(__name__)

SUBJECTS: Tuple[Dict[str, str], ...] = (
    {
        "id": "math",
        "title": "Mathematics",
        "description": "Number sense, operations, algebra, geometry, and data analysis",
    },
    {
        "id": "reading",
        "title": "Reading & Language Arts",
        "description": "Phonics, fluency, comprehension, and writing",
    },
    {
        "id": "science",
        "title": "Science",
        "description": "Physical, life, earth, and space sciences",
    },
    {
        "id": "social-studies",
        "title": "Social Studies",
        "description": "History, geography, civics, and economics",
    },
)

DIAGNOSTIC_META = {"min_items": 5, "max_items": 20, "target_precision": 0.3, "adaptive": True}

_ID_NAMESPACE = uuid5(NAMESPACE_URL, "content-import")


def stable_id(*parts: Any) -> str:
    """Deterministic UUID so repeated imports update rows instead of duplicating them."""

    return str(uuid5(_ID_NAMESPACE, "/".join(str(part) for part in parts)))


def course_id(subject_id: str, grade_id: str) -> str:
    return f"{subject_id}-{grade_id}"


def course_title(grade_id: str) -> str:
    if grade_id == "K":
        return "Kindergarten"
    if grade_id == "HS":
        return "High School"
    return f"Grade {grade_id}"


def course_order(grade_id: str) -> int:
    if grade_id == "K":
        return 0
    if grade_id == "HS":
        return 13
    try:
        return int(grade_id)
    except ValueError:
        return 99


def skill_title(skill_id: str) -> str:
    return re.sub(r"\b\w", lambda match: match.group(0).upper(), skill_id.replace("_", " "))


def standard_framework(code: str) -> str:
    framework = "CCSS-M"
    if "HS-" in code:
        framework = "NGSS"
    if "D2." in code:
        framework = "C3"
    if "RF." in code or "RL." in code:
        framework = "CCSS-ELA"
    return framework


def iter_units(manifest: Dict[str, Dict[str, Dict[str, Any]]]) -> Iterator[Tuple[str, str, str, Dict[str, Any]]]:
    for subject_id, grades in manifest.items():
        for grade_id, units in grades.items():
            for unit_slug, unit in units.items():
                yield subject_id, grade_id, unit_slug, unit


def iter_lessons(manifest: Dict[str, Dict[str, Dict[str, Any]]]) -> Iterator[Tuple[str, str, str, Dict[str, Any]]]:
    for subject_id, grade_id, unit_slug, unit in iter_units(manifest):
        for lesson in unit.get("lessons") or []:
            yield subject_id, grade_id, unit_slug, lesson


_dataclass_kwargs = {"slots": True} if sys.version_info >= (3, 10) else {}


@dataclass(**_dataclass_kwargs)
class ContentImporter:
    """Builds content records in dependency order and writes them to the store.

    In dry-run mode every record is still built and counted, but nothing is
    written and no ids are read back from the store.
    """

    store: ContentStore
    dry_run: bool = False
    stats: ImportStats = field(default_factory=ImportStats)

    def run(self, sources: ContentSources) -> ImportStats:
        logger.info("Starting content import%s", " (dry run)" if self.dry_run else "")
        self.import_subjects()
        self.import_courses(sources.manifest)
        self.import_units(sources.manifest)
        self.import_lessons(sources.manifest)
        self.import_skills(sources.manifest, sources.skills)
        self.import_standards(sources.manifest)
        self.import_activities(sources.manifest)
        self.import_diagnostics(sources.diagnostic_banks)
        self.import_prompts(sources.prompts)
        return self.stats

    def _write(self, table: str, rows: List[Dict[str, Any]], *, on_conflict: Optional[str] = None) -> None:
        if self.dry_run or not rows:
            return
        self.store.upsert(table, rows, on_conflict=on_conflict)

    def _report(self, label: str, count: int) -> None:
        logger.info("%s %s %s", "Would import" if self.dry_run else "Imported", count, label)

    def import_subjects(self) -> None:
        subjects = [dict(subject) for subject in SUBJECTS]
        self._write("content_subjects", subjects, on_conflict="id")
        self.stats.subjects = len(subjects)
        self._report("subjects", len(subjects))

    def import_courses(self, manifest: Dict[str, Dict[str, Dict[str, Any]]]) -> None:
        courses = [
            {
                "id": course_id(subject_id, grade_id),
                "subject_id": subject_id,
                "type": "course" if grade_id == "HS" else "grade",
                "title": course_title(grade_id),
                "short_title": grade_id,
                "order_index": course_order(grade_id),
            }
            for subject_id, grades in manifest.items()
            for grade_id in grades
        ]
        self._write("content_courses", courses, on_conflict="id")
        self.stats.courses = len(courses)
        self._report("courses", len(courses))

    def import_units(self, manifest: Dict[str, Dict[str, Dict[str, Any]]]) -> None:
        units: List[Dict[str, Any]] = []
        order: Dict[Tuple[str, str], int] = {}
        for subject_id, grade_id, unit_slug, unit in iter_units(manifest):
            index = order.get((subject_id, grade_id), 0)
            order[(subject_id, grade_id)] = index + 1
            units.append(
                {
                    "id": stable_id("unit", subject_id, grade_id, unit_slug),
                    "subject_id": subject_id,
                    "course_id": course_id(subject_id, grade_id),
                    "slug": unit_slug,
                    "title": unit.get("title") or unit_slug,
                    "description": unit.get("description"),
                    "order_index": index,
                }
            )
        self._write("content_units", units, on_conflict="subject_id,course_id,slug")
        self.stats.units = len(units)
        self._report("units", len(units))

    def _unit_ids(self) -> Dict[str, str]:
        if self.dry_run:
            return {}
        rows = self.store.select("content_units", ["id", "subject_id", "course_id", "slug"])
        return {f"{row['course_id']}/{row['slug']}": row["id"] for row in rows}

    def import_lessons(self, manifest: Dict[str, Dict[str, Dict[str, Any]]]) -> None:
        unit_ids = self._unit_ids()
        lessons: List[Dict[str, Any]] = []
        for subject_id, grade_id, unit_slug, lesson in iter_lessons(manifest):
            unit_key = f"{course_id(subject_id, grade_id)}/{unit_slug}"
            unit_id = unit_ids.get(unit_key) or stable_id("unit", subject_id, grade_id, unit_slug)
            skills = lesson.get("skills") or []
            lessons.append(
                {
                    "id": lesson["id"],
                    "unit_id": unit_id,
                    "title": lesson.get("title") or lesson["id"],
                    "minutes": lesson.get("minutes") or 10,
                    "difficulty": lesson.get("difficulty") or 0.0,
                    "summary": f"{lesson.get('title') or lesson['id']} - {', '.join(skills) or 'Practice lesson'}",
                }
            )
        self._write("content_lessons", lessons, on_conflict="id")
        self.stats.lessons = len(lessons)
        self._report("lessons", len(lessons))

    def import_skills(
        self,
        manifest: Dict[str, Dict[str, Dict[str, Any]]],
        prerequisites: Dict[str, List[str]],
    ) -> None:
        skill_subjects: Dict[str, str] = {}
        for subject_id, _grade_id, _unit_slug, lesson in iter_lessons(manifest):
            for skill_id in lesson.get("skills") or []:
                skill_subjects[skill_id] = subject_id

        skills = [
            {
                "id": skill_id,
                "subject_id": subject_id,
                "title": skill_title(skill_id),
                "description": f"Learning objective: {skill_id}",
            }
            for skill_id, subject_id in skill_subjects.items()
        ]
        self._write("content_skills", skills, on_conflict="id")

        prereqs = [
            {"skill_id": skill_id, "prereq_skill_id": prereq_id}
            for skill_id, prereq_ids in prerequisites.items()
            for prereq_id in prereq_ids or []
        ]
        self._write("content_skill_prereqs", prereqs, on_conflict="skill_id,prereq_skill_id")

        self.stats.skills = len(skills)
        self._report("skills", len(skills))

    def import_standards(self, manifest: Dict[str, Dict[str, Dict[str, Any]]]) -> None:
        codes: Dict[str, None] = {}
        for _subject_id, _grade_id, _unit_slug, lesson in iter_lessons(manifest):
            for code in lesson.get("standards") or []:
                codes.setdefault(code, None)

        standards = [
            {
                "code": code,
                "framework": standard_framework(code),
                "title": f"Standard {code}",
                "description": f"Learning standard: {code}",
            }
            for code in codes
        ]
        self._write("content_standards", standards, on_conflict="code")
        self.stats.standards = len(standards)
        self._report("standards", len(standards))

    def import_activities(self, manifest: Dict[str, Dict[str, Dict[str, Any]]]) -> None:
        activities: List[Dict[str, Any]] = []
        for _subject_id, _grade_id, _unit_slug, lesson in iter_lessons(manifest):
            title = lesson.get("title") or lesson["id"]
            skills = lesson.get("skills") or []
            activities.append(
                {
                    "id": stable_id("activity", lesson["id"], "instruction"),
                    "lesson_id": lesson["id"],
                    "kind": "instruction",
                    "content": {
                        "schema": 1,
                        "blocks": [
                            {
                                "type": "instruction",
                                "markdown": f"# {title}\n\nWelcome to this lesson on {title}. Let's learn together!",
                            }
                        ],
                    },
                    "order_index": 0,
                }
            )
            activities.append(
                {
                    "id": stable_id("activity", lesson["id"], "practice"),
                    "lesson_id": lesson["id"],
                    "kind": "practice",
                    "content": {
                        "schema": 1,
                        "blocks": [
                            {
                                "type": "practice",
                                "items": [
                                    {
                                        "type": "mcq",
                                        "stem": f"Practice question for {title}",
                                        "choices": ["Option A", "Option B", "Option C"],
                                        "answer": "Option A",
                                        "explanation": "This is the correct answer because...",
                                        "skill_id": skills[0] if skills else None,
                                        "difficulty": lesson.get("difficulty"),
                                    }
                                ],
                            }
                        ],
                    },
                    "order_index": 1,
                }
            )
        self._write("content_activities", activities, on_conflict="id")
        self.stats.activities = len(activities)
        self._report("activities", len(activities))

    def import_diagnostics(self, banks: Dict[str, List[Dict[str, Any]]]) -> None:
        forms: List[Dict[str, Any]] = []
        items: List[Dict[str, Any]] = []
        for subject, bank in banks.items():
            if not bank:
                continue
            form_id = f"{subject}-diagnostic"
            forms.append(
                {
                    "id": form_id,
                    "subject_id": subject,
                    "label": f"{subject[:1].upper()}{subject[1:]} Diagnostic",
                    "description": f"Adaptive diagnostic assessment for {subject}",
                    "meta": dict(DIAGNOSTIC_META),
                }
            )
            for index, item in enumerate(bank):
                external_id = item.get("id") if isinstance(item, dict) else None
                items.append(
                    {
                        "id": stable_id("diagnostic", form_id, external_id or index),
                        "form_id": form_id,
                        "external_id": external_id,
                        "order_index": index,
                        "item": item,
                    }
                )

        self._write("content_diagnostic_forms", forms, on_conflict="id")
        self._write("content_diagnostic_items", items, on_conflict="id")
        self.stats.diagnostic_forms = len(forms)
        self.stats.diagnostic_items = len(items)
        logger.info(
            "%s %s diagnostic forms, %s items",
            "Would import" if self.dry_run else "Imported",
            len(forms),
            len(items),
        )

    def import_prompts(self, prompts: Dict[str, Any]) -> None:
        global_prompts = prompts.get("global") or {}
        templates: List[Dict[str, Any]] = []
        for index, text in enumerate(global_prompts.get("encouragement") or []):
            templates.append(
                {
                    "id": stable_id("prompt", "encouragement", index),
                    "scope": "global",
                    "ref_id": None,
                    "version": 1,
                    "name": "encouragement",
                    "template": text,
                    "meta": {"variables": ["student_name"]},
                }
            )
        for subject, hint in (global_prompts.get("hints") or {}).items():
            templates.append(
                {
                    "id": stable_id("prompt", "hint_template", subject),
                    "scope": "global",
                    "ref_id": subject,
                    "version": 1,
                    "name": "hint_template",
                    "template": hint,
                    "meta": {"variables": ["question", "skill"]},
                }
            )
        self._write("content_prompt_templates", templates, on_conflict="id")
        self.stats.prompts = len(templates)
        self._report("prompt templates", len(templates))


__all__ = [
    "ContentImporter",
    "SUBJECTS",
    "course_id",
    "skill_title",
    "stable_id",
    "standard_framework",
]
