"""
Report module for the Course Watcher pipeline.

Renders the courses found in a run as one Telegram message using the
legacy Markdown parse mode (bold labels and [text](url) links).
"""

import re
from typing import Optional, Sequence

from course_watcher.models import CourseRecord


MESSAGE_HEADER = "¡Hay cursos nuevos!"

COURSE_BLOCK = (
    "*Curso {number}:*\n"
    "Título: {title}\n"
    "Lugar: {location}\n"
    "Período: {period}\n"
    "Horario: {schedule}\n"
    "Plazas: {available_slots}\n"
    "Costo: {cost}\n"
    "[Ver más]({address})\n"
)

# Characters with meaning in Telegram's legacy Markdown
_MARKDOWN_SPECIAL = re.compile(r"([_*`\[])")


def escape_markdown(text: str) -> str:
    """
    Escape text so Telegram renders it literally.

    Args:
        text: Raw field value.

    Returns:
        Text with Markdown control characters backslash-escaped.
    """
    return _MARKDOWN_SPECIAL.sub(r"\\\1", text)


def format_course_block(number: int, course: CourseRecord) -> str:
    """
    Format one course as a numbered message block.

    Args:
        number: 1-based position of the course in the message.
        course: Course to render. Empty fields render as empty values.

    Returns:
        Block text ending with a newline.
    """
    return COURSE_BLOCK.format(
        number=number,
        title=escape_markdown(course.title),
        location=escape_markdown(course.location),
        period=escape_markdown(course.period),
        schedule=escape_markdown(course.schedule),
        available_slots=escape_markdown(course.available_slots),
        cost=escape_markdown(course.cost),
        address=course.address.replace(")", "%29"),
    )


def format_new_courses_message(courses: Sequence[CourseRecord]) -> Optional[str]:
    """
    Build the notification for the courses found in a run.

    Args:
        courses: New courses in the order they were found.

    Returns:
        Message text, or None when there is nothing to announce.
    """
    if not courses:
        return None

    blocks = [
        format_course_block(number, course)
        for number, course in enumerate(courses, 1)
    ]
    return f"{MESSAGE_HEADER}\n\n" + "\n".join(blocks) + "\n"
