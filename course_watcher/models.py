"""
Data model for the Course Watcher pipeline.
"""

from dataclasses import asdict, dataclass
from typing import Dict


@dataclass
class CourseRecord:
    """
    One course published in the catalog.

    Attributes:
        address: Absolute URL of the course detail page. Unique key.
        title: Course title. Never empty for an extracted record.
        location: "Lugar de impartición" value, empty if not on the page.
        period: "Período de impartición" value, empty if not on the page.
        schedule: "Horario de impartición" value, empty if not on the page.
        available_slots: "Plazas disponibles" value, empty if not on the page.
        cost: "Importe" value, empty if not on the page.
    """
    address: str
    title: str
    location: str = ""
    period: str = ""
    schedule: str = ""
    available_slots: str = ""
    cost: str = ""

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)
