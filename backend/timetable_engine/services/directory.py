from __future__ import annotations

import re

from timetable_engine.schemas.directory import DirectoryPayload, Section, Teacher, TeacherAssignment

ROMAN_TO_ARABIC: dict[str, int] = {
    "I": 1, "II": 2, "III": 3, "IV": 4, "V": 5, "VI": 6,
    "VII": 7, "VIII": 8, "IX": 9, "X": 10, "XI": 11, "XII": 12,
}

GRADE_PREFIX = re.compile(r"^\s*(?:grade\s*)?(\d{1,2}|[IVX]+(?![A-Za-z]))", re.IGNORECASE)


def grade_number(code: str | None) -> int | None:
    """Read the grade from a section name or grade code: "IV A" -> 4, "9A" -> 9."""
    match = GRADE_PREFIX.match(code or "")
    if match is None:
        return None
    token = match.group(1).upper()
    if token.isdigit():
        return int(token)
    return ROMAN_TO_ARABIC.get(token)


def _same(a: str | None, b: str | None) -> bool:
    return (a or "").strip() == (b or "").strip()


class SchoolDirectory:
    """Read-only view of wings, sections, class teachers and subject loads.

    The data belongs to an external collaborator; the engine only asks it which
    sections exist and who anchors each homeroom.
    """

    def __init__(self, payload: DirectoryPayload | None = None) -> None:
        self._sections: dict[str, Section] = {}
        self._teachers: dict[str, Teacher] = {}
        self._assignments: list[TeacherAssignment] = []
        self._payload = DirectoryPayload()
        if payload is not None:
            self.replace(payload)

    def replace(self, payload: DirectoryPayload) -> None:
        self._payload = payload
        self._sections = {section.id.strip(): section for section in payload.sections}
        self._teachers = {teacher.id.strip(): teacher for teacher in payload.teachers}
        self._assignments = list(payload.assignments)

    @property
    def payload(self) -> DirectoryPayload:
        return self._payload

    @property
    def has_sections(self) -> bool:
        return bool(self._sections)

    def has_section(self, section_id: str) -> bool:
        # An empty directory means the universe of sections is not known yet.
        if not self._sections:
            return True
        return section_id.strip() in self._sections

    def section_ids(self, wing_id: str | None = None) -> list[str]:
        return sorted(
            section.id
            for section in self._sections.values()
            if wing_id is None or section.wing_id == wing_id
        )

    def section_name(self, section_id: str) -> str:
        section = self._sections.get(section_id.strip())
        return section.name or section.id if section is not None else section_id

    def grade_of_section(self, section_id: str) -> int | None:
        return grade_number(self.section_name(section_id))

    def teacher(self, teacher_id: str) -> Teacher | None:
        return self._teachers.get(teacher_id.strip())

    def homeroom_teachers(self) -> list[Teacher]:
        return [teacher for teacher in self._teachers.values() if teacher.class_teacher_of]

    def homeroom_teacher_of(self, section_id: str) -> Teacher | None:
        for teacher in self._teachers.values():
            if teacher.class_teacher_of and _same(teacher.class_teacher_of, section_id):
                return teacher
        return None

    def homeroom_section_of(self, teacher_id: str) -> str | None:
        teacher = self.teacher(teacher_id)
        if teacher is None or not teacher.class_teacher_of:
            return None
        return teacher.class_teacher_of.strip()

    def assignment_for(self, teacher_id: str, grade: int) -> TeacherAssignment | None:
        for assignment in self._assignments:
            if not _same(assignment.teacher_id, teacher_id):
                continue
            if grade_number(assignment.grade) == grade:
                return assignment
        return None
