"""Engineering section inference for specification items."""

from __future__ import annotations

# Sections a specification can be uploaded under
SECTIONS: tuple[str, ...] = (
    "Отопление",
    "Вентиляция",
    "ВК",
    "Тепломеханика/ИТП",
    "Автоматизация",
    "Кондиционирование",
    "Электрика",
    "Слаботочка",
)

NO_SECTION = "Без раздела"

# Checked in order; first keyword hit decides
SECTION_RULES: dict[str, tuple[str, ...]] = {
    "Электрика": (
        "кабель", "провод", "автомат", "щит", "розетк", "выключател",
        "светильник", "лампа", "узо", "рубильник",
    ),
    "ВК": (
        "труба", "задвижк", "кран", "клапан", "фильтр", "насос",
        "водосчётчик", "водосчетчик", "смесител", "унитаз", "раковин",
    ),
    "Вентиляция": (
        "вентилятор", "диффузор", "воздуховод", "решётк", "решетк",
        "клапан воздуш", "заслонк", "рекуператор",
    ),
    "Отопление": (
        "радиатор", "котёл", "котел", "конвектор", "теплосчётчик",
        "теплосчетчик", "термостат", "коллектор",
    ),
}


def detect_section(name: str, characteristics: str | None = None) -> str | None:
    """Guess the section of an item from its name and characteristics."""
    text = f"{name} {characteristics or ''}".lower()
    for section, keywords in SECTION_RULES.items():
        if any(keyword in text for keyword in keywords):
            return section
    return None
