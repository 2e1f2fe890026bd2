"""Project canonical records into flat, template-ready field maps.

The output of ``create_presentation_record`` is consumed by note templates,
so every key is always present regardless of the record kind. Text that ends
up inside ``[[...]]`` cross-references is stripped of colons.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Iterable, Sequence

from catalog.core.config import PersonPaths
from catalog.services.constants import (
    FINISHED_SERIES_STATUSES,
    GENDER_LABELS,
    GENDER_UNKNOWN_LABEL,
    MAX_ARRAY_ITEMS,
    MAX_DATE_YEAR,
    MIN_DATE_YEAR,
    MOVIE_RELEASED_LABEL,
    SERIES_FINISHED_LABEL,
    SERIES_RUNNING_LABEL,
    TMDB_SITE_URL,
    TYPE_TRANSLATIONS,
)
from catalog.services.formatter import combine_names_for_aliases, process_facts
from catalog.services.models import (
    CanonicalRecord,
    Credit,
    MovieDetails,
    PersonDetails,
    RecordKind,
    Season,
    SeriesDetails,
)

PresentationRecord = dict[str, Any]

_WHITESPACE_RE = re.compile(r"\s+")


class FormatType(str, Enum):
    SHORT_VALUE = "short"
    LONG_TEXT = "long"
    URL = "url"
    LINK = "link"
    LINK_WITH_PATH = "link_with_path"
    LINK_ID_WITH_PATH = "link_id_with_path"


@dataclass(frozen=True, slots=True)
class PersonRef:
    name: str
    id: int | None = None


@dataclass(slots=True)
class RoleBuckets:
    directors: list[PersonRef] = field(default_factory=list)
    actors: list[PersonRef] = field(default_factory=list)
    writers: list[PersonRef] = field(default_factory=list)
    producers: list[PersonRef] = field(default_factory=list)


_ROLE_ATTRIBUTES = {
    "director": "directors",
    "actor": "actors",
    "writer": "writers",
    "producer": "producers",
}


def clean_text(text: str | None) -> str:
    """Remove colons (reserved by link syntax) and surrounding whitespace."""

    if not text:
        return ""
    return text.replace(":", "").strip()


def _id_link(ref: PersonRef, folder_path: str | None) -> str:
    name = clean_text(ref.name)
    if ref.id and folder_path and folder_path.strip():
        return f'"[[{folder_path}/{ref.id}|{name}]]"'
    if ref.id:
        return f'"[[{ref.id}|{name}]]"'
    return f'"[[{name}]]"'


def format_array(
    items: Iterable[str | PersonRef],
    format_type: FormatType,
    folder_path: str | None = None,
    max_items: int = MAX_ARRAY_ITEMS,
) -> list[str]:
    """Render a list of values for one template field in the given mode."""

    if format_type is FormatType.LINK_ID_WITH_PATH:
        refs = [
            item for item in items
            if isinstance(item, PersonRef) and item.name and item.name.strip()
        ]
        return [_id_link(ref, folder_path) for ref in refs[:max_items]]

    values = [item.name if isinstance(item, PersonRef) else item for item in items]
    values = [value for value in values if isinstance(value, str) and value.strip()][:max_items]

    if format_type is FormatType.SHORT_VALUE:
        cleaned = [clean_text(value) for value in values]
        return [value for value in cleaned if value]
    if format_type is FormatType.LONG_TEXT:
        return [f'"{_WHITESPACE_RE.sub(" ", value).strip()}"' for value in values]
    if format_type is FormatType.URL:
        return [value.strip() for value in values]
    if format_type is FormatType.LINK:
        return [f'"[[{clean_text(value)}]]"' for value in values]
    if format_type is FormatType.LINK_WITH_PATH:
        if folder_path and folder_path.strip():
            return [f'"[[{folder_path}/{clean_text(value)}]]"' for value in values]
        return [f'"[[{clean_text(value)}]]"' for value in values]
    return values


def format_date(raw: str | None) -> str:
    """Normalize a date string to ``YYYY-MM-DD``; implausible years give ``""``."""

    if not raw:
        return ""
    try:
        parsed = datetime.fromisoformat(raw[:10]).date()
    except ValueError:
        return ""
    if not MIN_DATE_YEAR <= parsed.year <= MAX_DATE_YEAR:
        return ""
    return parsed.isoformat()


def create_image_link(image_path: str | None) -> list[str]:
    if not image_path or not image_path.strip():
        return []
    if not image_path.startswith("http"):
        return [f"![[{image_path}]]"]
    return [f"![]({image_path})"]


def translate_type(kind: str) -> str:
    return TYPE_TRANSLATIONS.get(kind, kind)


def capitalize_first_letter(text: str) -> str:
    return text[:1].upper() + text[1:]


def calculate_seasons_data(seasons: Sequence[Season]) -> tuple[int, int]:
    """Return the season count and the rounded-up average episodes per season."""

    if not seasons:
        return 0, 0
    total_episodes = sum(season.episodes_count for season in seasons)
    return len(seasons), math.ceil(total_episodes / len(seasons))


def extract_people(persons: Iterable[Credit]) -> RoleBuckets:
    buckets = RoleBuckets()
    for person in persons:
        if not person.name or not person.profession_code:
            continue
        attribute = _ROLE_ATTRIBUTES.get(person.profession_code)
        if attribute is None:
            continue
        getattr(buckets, attribute).append(PersonRef(name=person.name, id=person.id))
    return buckets


def _rounded(value: float) -> float:
    return round(value, 1) if value else 0


def _tmdb_link(record: CanonicalRecord) -> str:
    return f"{TMDB_SITE_URL}/{record.kind.api_path}/{record.id}"


def _common_fields(record: CanonicalRecord) -> PresentationRecord:
    genres = [capitalize_first_letter(genre) for genre in record.genres]
    poster_url = record.poster.url if record.poster else ""
    cover_url = record.backdrop.url if record.backdrop else ""
    logo_url = record.logo.url if record.logo else ""
    return {
        "id": record.id,
        "kind": record.kind.value,
        "type": format_array([translate_type(record.kind.value)], FormatType.SHORT_VALUE),
        "name": format_array([record.name], FormatType.SHORT_VALUE),
        "alternative_name": format_array([record.alternative_name], FormatType.SHORT_VALUE),
        "en_name": format_array([record.en_name], FormatType.SHORT_VALUE),
        "name_for_file": clean_text(record.name),
        "alternative_name_for_file": clean_text(record.alternative_name),
        "en_name_for_file": clean_text(record.en_name),
        "year": record.year,
        "description": format_array([record.description], FormatType.LONG_TEXT),
        "short_description": format_array([record.short_description], FormatType.LONG_TEXT),
        "slogan": format_array([record.slogan], FormatType.LONG_TEXT),
        "tmdb_link": format_array([_tmdb_link(record)], FormatType.URL),
        "poster_url": format_array([poster_url], FormatType.URL),
        "cover_url": format_array([cover_url], FormatType.URL),
        "logo_url": format_array([logo_url], FormatType.URL),
        "poster_markdown": create_image_link(poster_url),
        "cover_markdown": create_image_link(cover_url),
        "logo_markdown": create_image_link(logo_url),
        "genres": format_array(genres, FormatType.SHORT_VALUE),
        "genres_links": format_array(genres, FormatType.LINK),
        "countries": format_array(record.countries, FormatType.SHORT_VALUE),
        "countries_links": format_array(record.countries, FormatType.LINK),
        "rating_tmdb": _rounded(record.rating.tmdb),
        "rating_imdb": _rounded(record.rating.imdb),
        "votes_tmdb": record.votes.tmdb,
        "votes_imdb": record.votes.imdb,
        "imdb_id": format_array([record.external_ids.imdb], FormatType.SHORT_VALUE),
        "tmdb_id": record.external_ids.tmdb,
        "premiere_world": format_array([format_date(record.premiere)], FormatType.SHORT_VALUE),
        "facts": format_array(process_facts(record.facts), FormatType.LONG_TEXT),
        "all_names": format_array(
            _all_names(record),
            FormatType.SHORT_VALUE,
        ),
        "all_names_string": format_array([alt.name for alt in record.names], FormatType.SHORT_VALUE),
    }


def _all_names(record: CanonicalRecord) -> list[str]:
    if isinstance(record.details, PersonDetails):
        return combine_names_for_aliases([record.name], record.details.also_known_as)
    return [record.name]


def _people_fields(buckets: RoleBuckets, paths: PersonPaths) -> PresentationRecord:
    fields: PresentationRecord = {}
    for role, people, folder in (
        ("directors", buckets.directors, paths.directors),
        ("actors", buckets.actors, paths.actors),
        ("writers", buckets.writers, paths.writers),
        ("producers", buckets.producers, paths.producers),
    ):
        fields[role] = format_array(people, FormatType.SHORT_VALUE)
        fields[f"{role}_links"] = format_array(people, FormatType.LINK)
        fields[f"{role}_links_with_path"] = format_array(people, FormatType.LINK_WITH_PATH, folder)
        fields[f"{role}_ids_with_path"] = format_array(people, FormatType.LINK_ID_WITH_PATH, folder)
    return fields


def _title_fields(record: CanonicalRecord, paths: PersonPaths) -> PresentationRecord:
    details = record.details
    fields = _people_fields(extract_people(record.persons), paths)

    if isinstance(details, SeriesDetails):
        seasons_count, episodes_per_season = calculate_seasons_data(details.seasons)
        is_complete = (
            SERIES_FINISHED_LABEL if details.status in FINISHED_SERIES_STATUSES else SERIES_RUNNING_LABEL
        )
        fields.update(
            movie_length=0,
            is_series=True,
            series_length=details.episode_length,
            total_series_length=details.total_length,
            is_complete=is_complete,
            seasons_count=seasons_count,
            series_in_season_count=episodes_per_season,
            age_rating=details.age_rating,
            rating_mpaa=format_array([details.rating_mpaa], FormatType.SHORT_VALUE),
            status=format_array([details.status], FormatType.SHORT_VALUE),
            budget_value=0,
            budget_currency=[],
            fees_world_value=0,
            fees_world_currency=[],
            release_years_start=record.year,
            release_years_end=details.end_year or 0,
            networks=format_array(details.networks, FormatType.SHORT_VALUE),
            networks_links=format_array(details.networks, FormatType.LINK),
        )
    elif isinstance(details, MovieDetails):
        fields.update(
            movie_length=details.length,
            is_series=False,
            series_length=0,
            total_series_length=0,
            is_complete=MOVIE_RELEASED_LABEL,
            seasons_count=0,
            series_in_season_count=0,
            age_rating=details.age_rating,
            rating_mpaa=format_array([details.rating_mpaa], FormatType.SHORT_VALUE),
            status=[],
            budget_value=details.budget.value if details.budget else 0,
            budget_currency=format_array(
                [details.budget.currency if details.budget else ""], FormatType.SHORT_VALUE
            ),
            fees_world_value=details.fees_world.value if details.fees_world else 0,
            fees_world_currency=format_array(
                [details.fees_world.currency if details.fees_world else ""], FormatType.SHORT_VALUE
            ),
            release_years_start=0,
            release_years_end=0,
            networks=[],
            networks_links=[],
        )
    else:
        raise TypeError(f"Unsupported title details: {type(details).__name__}")

    fields.update(
        production_companies=format_array(record.production_companies, FormatType.SHORT_VALUE),
        production_companies_links=format_array(record.production_companies, FormatType.LINK),
    )
    return fields


def _empty_title_fields() -> PresentationRecord:
    fields: PresentationRecord = _people_fields(RoleBuckets(), PersonPaths())
    fields.update(
        movie_length=0,
        is_series=False,
        series_length=0,
        total_series_length=0,
        is_complete="",
        seasons_count=0,
        series_in_season_count=0,
        age_rating=0,
        rating_mpaa=[],
        status=[],
        budget_value=0,
        budget_currency=[],
        fees_world_value=0,
        fees_world_currency=[],
        release_years_start=0,
        release_years_end=0,
        networks=[],
        networks_links=[],
        production_companies=[],
        production_companies_links=[],
    )
    return fields


def _sex_label(gender: int) -> str:
    return GENDER_LABELS.get(gender, GENDER_UNKNOWN_LABEL)


def _person_fields(record: CanonicalRecord, details: PersonDetails) -> PresentationRecord:
    known_for = [title.name for title in details.known_for]
    return {
        "sex": format_array([_sex_label(details.gender)], FormatType.SHORT_VALUE),
        "birthday": format_array([format_date(details.birthday)], FormatType.SHORT_VALUE),
        "death": format_array([format_date(details.deathday)], FormatType.SHORT_VALUE),
        "birth_place": format_array([details.birth_place], FormatType.SHORT_VALUE),
        "death_place": format_array([details.death_place], FormatType.SHORT_VALUE),
        "hometown": format_array([details.hometown or details.birth_place], FormatType.SHORT_VALUE),
        "also_known_as": format_array(details.also_known_as, FormatType.SHORT_VALUE),
        "biography": format_array([record.description], FormatType.LONG_TEXT),
        "homepage": format_array([record.homepage], FormatType.URL),
        "known_for_department": format_array([details.known_for_department], FormatType.SHORT_VALUE),
        "profession": format_array([details.profession], FormatType.SHORT_VALUE),
        "popularity": record.rating.tmdb,
        "external_ids": format_array([record.external_ids.imdb], FormatType.SHORT_VALUE),
        "known_for": format_array(known_for, FormatType.SHORT_VALUE),
        "known_for_links": format_array(known_for, FormatType.LINK),
    }


def _empty_person_fields() -> PresentationRecord:
    return {
        "sex": [],
        "birthday": [],
        "death": [],
        "birth_place": [],
        "death_place": [],
        "hometown": [],
        "also_known_as": [],
        "biography": [],
        "homepage": [],
        "known_for_department": [],
        "profession": [],
        "popularity": 0,
        "external_ids": [],
        "known_for": [],
        "known_for_links": [],
    }


def create_presentation_record(
    record: CanonicalRecord,
    *,
    paths: PersonPaths | None = None,
    user_rating: float | None = None,
) -> PresentationRecord:
    """Build the flat field map for one canonical record.

    Person-only and title-only blocks are both always present; the block that
    does not apply to ``record.kind`` holds empty values.
    """

    paths = paths or PersonPaths()
    fields = _common_fields(record)
    if record.kind is RecordKind.PERSON:
        fields.update(_empty_title_fields())
        fields.update(_person_fields(record, record.details))
    else:
        fields.update(_title_fields(record, paths))
        fields.update(_empty_person_fields())
    if user_rating is not None:
        fields["user_rating"] = user_rating
    return fields
