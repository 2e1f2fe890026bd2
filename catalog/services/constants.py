"""Static lookup tables and limits used by the TMDb formatter.

Tables are wrapped in ``MappingProxyType`` so nothing can reassign entries at
runtime.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Final, NamedTuple

IMAGE_BASE_URL: Final = "https://image.tmdb.org/t/p/"
TMDB_SITE_URL: Final = "https://www.themoviedb.org"

SIZE_ORIGINAL: Final = "original"
SIZE_W1280: Final = "w1280"
SIZE_W500: Final = "w500"
SIZE_W185: Final = "w185"

TARGET_IMAGE_LANGUAGE: Final = "ru"
FALLBACK_IMAGE_LANGUAGE: Final = "en"

MAX_ARRAY_ITEMS: Final = 50
MAX_FACTS_COUNT: Final = 5
MAX_CAST_MEMBERS: Final = 20
MAX_KNOWN_FOR_TITLES: Final = 10
MAX_SEARCH_RESULTS: Final = 20

MIN_DATE_YEAR: Final = 1800
MAX_DATE_YEAR: Final = 2100

CERTIFICATION_REGION: Final = "US"


class Profession(NamedTuple):
    code: str
    label: str


ACTOR: Final = Profession("actor", "актер")
DIRECTOR: Final = Profession("director", "режиссер")
WRITER: Final = Profession("writer", "сценарист")
PRODUCER: Final = Profession("producer", "продюсер")

PROFESSION_MAP = MappingProxyType(
    {
        "Director": DIRECTOR,
        "Writer": WRITER,
        "Screenplay": WRITER,
        "Producer": PRODUCER,
        "Executive Producer": PRODUCER,
    }
)

WRITING_DEPARTMENT: Final = "Writing"

MOVIE_AGE_RATINGS = MappingProxyType(
    {
        "G": 0,
        "PG": 6,
        "PG-13": 13,
        "R": 17,
        "NC-17": 18,
    }
)

TV_AGE_RATINGS = MappingProxyType(
    {
        "TV-Y": 0,
        "TV-Y7": 7,
        "TV-G": 0,
        "TV-PG": 10,
        "TV-14": 14,
        "TV-MA": 17,
    }
)

TYPE_TRANSLATIONS = MappingProxyType(
    {
        "animated-series": "Анимационный сериал",
        "anime": "Аниме",
        "cartoon": "Мультфильм",
        "movie": "Фильм",
        "tv-series": "Сериал",
        "person": "Персона",
    }
)

DEPARTMENT_PROFESSIONS = MappingProxyType(
    {
        "Acting": "Актёр",
        "Directing": "Режиссёр",
        "Writing": "Сценарист",
        "Production": "Продюсер",
        "Camera": "Оператор",
        "Editing": "Монтажёр",
        "Sound": "Звукорежиссёр",
        "Art": "Художник",
        "Costume & Make-Up": "Костюмер",
    }
)

GENDER_LABELS = MappingProxyType({1: "Женский", 2: "Мужской"})
GENDER_UNKNOWN_LABEL: Final = "Не указан"

FINISHED_SERIES_STATUSES = frozenset({"Ended", "Canceled"})
SERIES_FINISHED_LABEL: Final = "Завершен"
SERIES_RUNNING_LABEL: Final = "В эфире"
MOVIE_RELEASED_LABEL: Final = "Вышел"

# Order matters: "&amp;" is decoded before "&lt;"/"&gt;".
HTML_ENTITIES = MappingProxyType(
    {
        "&laquo;": "«",
        "&raquo;": "»",
        "&ldquo;": '"',
        "&rdquo;": '"',
        "&lsquo;": "'",
        "&rsquo;": "'",
        "&quot;": '"',
        "&amp;": "&",
        "&lt;": "<",
        "&gt;": ">",
        "&nbsp;": " ",
        "&ndash;": "–",
        "&mdash;": "—",
        "&hellip;": "…",
    }
)
