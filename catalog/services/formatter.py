"""Convert raw TMDb movie, TV and person payloads into canonical records.

Every helper here tolerates missing or ``None`` payload parts: absent scalars
become ``""`` or ``0`` and absent collections become empty lists, so no
conversion raises on sparse upstream data.
"""

from __future__ import annotations

import logging
import re
from types import MappingProxyType
from typing import Any, Callable, Iterable, Mapping, Sequence

from catalog.services.constants import (
    ACTOR,
    CERTIFICATION_REGION,
    DEPARTMENT_PROFESSIONS,
    FALLBACK_IMAGE_LANGUAGE,
    HTML_ENTITIES,
    IMAGE_BASE_URL,
    MAX_CAST_MEMBERS,
    MAX_FACTS_COUNT,
    MAX_KNOWN_FOR_TITLES,
    MOVIE_AGE_RATINGS,
    PROFESSION_MAP,
    SIZE_ORIGINAL,
    SIZE_W185,
    SIZE_W500,
    SIZE_W1280,
    TARGET_IMAGE_LANGUAGE,
    TV_AGE_RATINGS,
    WRITER,
    WRITING_DEPARTMENT,
    Profession,
)
from catalog.services.models import (
    AltName,
    CanonicalRecord,
    Credit,
    ExternalIds,
    Fact,
    ImageRef,
    Money,
    MovieDetails,
    PersonDetails,
    Rating,
    RecordKind,
    RelatedTitle,
    Season,
    SeriesDetails,
    Votes,
)

logger = logging.getLogger(__name__)

Payload = Mapping[str, Any]

_PREVIEW_SIZES = {"poster": SIZE_W500, "logo": SIZE_W500, "backdrop": SIZE_W1280}

_LATIN_NAME_RE = re.compile(r"[A-Za-z\s\-'\".,()]+")
_MIDDLE_INITIAL_RE = re.compile(r"\b[A-Z]\.\s*")
_WHITESPACE_RE = re.compile(r"\s+")
_HTML_TAG_RE = re.compile(r"<[^>]*>")
_HTML_ENTITY_REF_RE = re.compile(r"&#?\w+;")


def build_image_url(path: str, size: str) -> str:
    return f"{IMAGE_BASE_URL}{size}{path}"


def build_image_ref(path: str | None, role: str = "poster") -> ImageRef | None:
    if not path:
        return None
    return ImageRef(
        url=build_image_url(path, SIZE_ORIGINAL),
        preview_url=build_image_url(path, _PREVIEW_SIZES.get(role, SIZE_W500)),
    )


def extract_best_image(images: Sequence[Payload] | None, role: str = "poster") -> ImageRef | None:
    """Pick the image tagged with the target language, then English, then the first one."""

    if not images:
        return None
    chosen = (
        _first_with_language(images, TARGET_IMAGE_LANGUAGE)
        or _first_with_language(images, FALLBACK_IMAGE_LANGUAGE)
        or images[0]
    )
    return build_image_ref(chosen.get("file_path"), role)


def _first_with_language(images: Iterable[Payload], language: str) -> Payload | None:
    for image in images:
        if image.get("iso_639_1") == language:
            return image
    return None


def _pick_image(
    images: Sequence[Payload] | None,
    fallback_path: str | None,
    role: str,
) -> ImageRef | None:
    # The images endpoint wins; the details payload path is only a fallback.
    return extract_best_image(images, role) or build_image_ref(fallback_path, role)


def parse_year(raw: Any) -> int:
    """Return the year from the first four characters of a date string, or 0."""

    if not raw:
        return 0
    try:
        return int(str(raw)[:4])
    except ValueError:
        return 0


def _names(items: Iterable[Payload] | None) -> list[str]:
    return [item["name"] for item in items or [] if item.get("name")]


def classify_crew_member(member: Payload) -> Profession | None:
    """Map a crew entry to a profession: exact job, then Writing department, else drop."""

    profession = PROFESSION_MAP.get(member.get("job") or "")
    if profession is not None:
        return profession
    if member.get("department") == WRITING_DEPARTMENT:
        return WRITER
    return None


def _credit(member: Payload, profession: Profession) -> Credit:
    name = member.get("name") or ""
    profile_path = member.get("profile_path")
    return Credit(
        id=member.get("id") or 0,
        name=name,
        original_name=member.get("original_name") or name,
        profession=profession.label,
        profession_code=profession.code,
        photo=build_image_url(profile_path, SIZE_W185) if profile_path else None,
    )


def convert_credits_to_persons(credits: Payload | None) -> list[Credit]:
    credits = credits or {}
    persons = [_credit(member, ACTOR) for member in (credits.get("cast") or [])[:MAX_CAST_MEMBERS]]
    for member in credits.get("crew") or []:
        profession = classify_crew_member(member)
        if profession is None:
            continue
        persons.append(_credit(member, profession))
    return persons


def _region_entry(payload: Payload | None) -> Payload | None:
    if not payload:
        return None
    for entry in payload.get("results") or []:
        if entry.get("iso_3166_1") == CERTIFICATION_REGION:
            return entry
    return None


def extract_mpaa_rating(release_dates: Payload | None) -> str:
    """Return the US certification string of a movie, e.g. ``"PG-13"``."""

    entry = _region_entry(release_dates)
    if entry is None:
        return ""
    nested = entry.get("release_dates") or []
    if not nested:
        return ""
    return nested[0].get("certification") or ""


def extract_age_rating(release_dates: Payload | None) -> int:
    return MOVIE_AGE_RATINGS.get(extract_mpaa_rating(release_dates), 0)


def extract_tv_rating_label(content_ratings: Payload | None) -> str:
    entry = _region_entry(content_ratings)
    if entry is None:
        return ""
    return entry.get("rating") or ""


def extract_tv_age_rating(content_ratings: Payload | None) -> int:
    return TV_AGE_RATINGS.get(extract_tv_rating_label(content_ratings), 0)


def _base_name(name: str) -> str:
    collapsed = _WHITESPACE_RE.sub(" ", name)
    without_initials = _MIDDLE_INITIAL_RE.sub("", collapsed)
    return _WHITESPACE_RE.sub(" ", without_initials).strip()


def are_similar_names(first: str, second: str) -> bool:
    """Treat two names as the same person when one contains the other.

    This is deliberately loose: "Lee" and "Bruce Lee" count as similar.
    """

    norm_first = _WHITESPACE_RE.sub(" ", first.lower()).strip()
    norm_second = _WHITESPACE_RE.sub(" ", second.lower()).strip()
    return norm_first in norm_second or norm_second in norm_first


def extract_english_names_only(names: Iterable[Any] | None) -> list[str]:
    """Keep Latin-script names and fold spelling variants into the first one seen."""

    if not names:
        return []
    unique: list[str] = []
    seen_bases: list[str] = []
    for name in names:
        if not isinstance(name, str):
            continue
        trimmed = name.strip()
        if not _LATIN_NAME_RE.fullmatch(trimmed):
            continue
        base = _base_name(trimmed)
        if any(are_similar_names(base, seen) for seen in seen_bases):
            continue
        unique.append(trimmed)
        seen_bases.append(base)
    return unique


def combine_names_for_aliases(main_names: Iterable[str], aliases: Iterable[str]) -> list[str]:
    combined = list(main_names)
    for alias in aliases:
        if not alias:
            continue
        if any(existing and are_similar_names(alias, existing) for existing in combined):
            continue
        combined.append(alias)
    return [name for name in combined if name and name.strip()]


def _known_for_score(item: Payload) -> float:
    return (item.get("popularity") or 0) + (item.get("vote_count") or 0) * 0.1


def _related_title(item: Payload) -> RelatedTitle:
    original = item.get("original_title") or item.get("original_name") or ""
    return RelatedTitle(
        id=item.get("id") or 0,
        name=item.get("title") or item.get("name") or "",
        alternative_name=original,
        en_name=original,
        kind=RecordKind.from_media_type(item.get("media_type")),
        poster=build_image_ref(item.get("poster_path")),
        rating=item.get("vote_average") or 0.0,
        year=parse_year(item.get("release_date") or item.get("first_air_date")),
    )


def extract_known_for_titles(credits: Payload | None) -> list[RelatedTitle]:
    """Rank a person's credits by popularity plus a tenth of the vote count."""

    if not credits:
        return []
    merged = [*(credits.get("cast") or []), *(credits.get("crew") or [])]
    # sorted() is stable with reverse=True, so ties keep source order
    ranked = sorted(merged, key=_known_for_score, reverse=True)[:MAX_KNOWN_FOR_TITLES]
    return [_related_title(item) for item in ranked]


def strip_html_tags(text: str) -> str:
    clean = _HTML_TAG_RE.sub("", text)
    for entity, char in HTML_ENTITIES.items():
        clean = clean.replace(entity, char)
    clean = _HTML_ENTITY_REF_RE.sub("", clean)
    return clean.strip()


def process_facts(facts: Iterable[Fact]) -> list[str]:
    """Drop spoilers and blanks, keep the first few, and strip markup."""

    kept = [fact for fact in facts if not fact.spoiler and fact.value and fact.value.strip()]
    return [strip_html_tags(fact.value) for fact in kept[:MAX_FACTS_COUNT]]


def extract_country_from_birth_place(birth_place: str) -> str:
    # "City, State, Country" -> "Country"
    parts = [part.strip() for part in birth_place.split(",")]
    return parts[-1] or birth_place


def map_department_to_profession(department: str) -> str:
    return DEPARTMENT_PROFESSIONS.get(department, department)


def _alternative_titles(entries: Iterable[Payload] | None) -> list[AltName]:
    return [
        AltName(name=entry.get("title") or "", type=entry.get("type") or "")
        for entry in entries or []
    ]


def _money(value: Any) -> Money | None:
    return Money(value=value) if value else None


def convert_movie(details: Payload | None, credits: Payload | None, images: Payload | None) -> CanonicalRecord:
    details = details or {}
    images = images or {}
    release_date = details.get("release_date") or None
    title = details.get("title") or ""
    original_title = details.get("original_title") or ""
    vote_average = details.get("vote_average") or 0.0
    vote_count = details.get("vote_count") or 0
    external_ids = details.get("external_ids") or {}
    release_dates = details.get("release_dates")

    return CanonicalRecord(
        id=details.get("id") or 0,
        kind=RecordKind.MOVIE,
        name=title,
        alternative_name=original_title,
        en_name=original_title if details.get("original_language") == "en" else title,
        year=parse_year(release_date),
        premiere=release_date,
        description=details.get("overview") or "",
        short_description=details.get("tagline") or "",
        slogan=details.get("tagline") or "",
        homepage=details.get("homepage") or "",
        genres=_names(details.get("genres")),
        countries=_names(details.get("production_countries")),
        names=_alternative_titles((details.get("alternative_titles") or {}).get("titles")),
        production_companies=_names(details.get("production_companies")),
        poster=_pick_image(images.get("posters"), details.get("poster_path"), "poster"),
        backdrop=_pick_image(images.get("backdrops"), details.get("backdrop_path"), "backdrop"),
        logo=extract_best_image(images.get("logos"), "logo"),
        persons=convert_credits_to_persons(credits),
        # TMDb has no IMDb score; the secondary slot mirrors the TMDb values.
        rating=Rating(tmdb=vote_average, imdb=vote_average),
        votes=Votes(tmdb=vote_count, imdb=vote_count),
        external_ids=ExternalIds(
            imdb=details.get("imdb_id") or external_ids.get("imdb_id") or "",
            tmdb=details.get("id") or 0,
        ),
        details=MovieDetails(
            length=details.get("runtime") or 0,
            age_rating=extract_age_rating(release_dates),
            rating_mpaa=extract_mpaa_rating(release_dates),
            budget=_money(details.get("budget")),
            fees_world=_money(details.get("revenue")),
        ),
    )


def convert_series(details: Payload | None, credits: Payload | None, images: Payload | None) -> CanonicalRecord:
    details = details or {}
    images = images or {}
    first_air_date = details.get("first_air_date") or None
    name = details.get("name") or ""
    original_name = details.get("original_name") or ""
    run_times = details.get("episode_run_time") or []
    episode_length = run_times[0] if run_times else 0
    vote_average = details.get("vote_average") or 0.0
    vote_count = details.get("vote_count") or 0
    content_ratings = details.get("content_ratings")
    seasons = [
        Season(number=season["season_number"], episodes_count=season.get("episode_count") or 0)
        for season in details.get("seasons") or []
        # season 0 holds specials
        if (season.get("season_number") or 0) > 0
    ]

    return CanonicalRecord(
        id=details.get("id") or 0,
        kind=RecordKind.SERIES,
        name=name,
        alternative_name=original_name,
        en_name=original_name if details.get("original_language") == "en" else name,
        year=parse_year(first_air_date),
        premiere=first_air_date,
        description=details.get("overview") or "",
        short_description=details.get("tagline") or "",
        slogan=details.get("tagline") or "",
        homepage=details.get("homepage") or "",
        genres=_names(details.get("genres")),
        countries=_names(details.get("production_countries")),
        names=_alternative_titles((details.get("alternative_titles") or {}).get("results")),
        production_companies=_names(details.get("production_companies")),
        poster=_pick_image(images.get("posters"), details.get("poster_path"), "poster"),
        backdrop=_pick_image(images.get("backdrops"), details.get("backdrop_path"), "backdrop"),
        logo=extract_best_image(images.get("logos"), "logo"),
        persons=convert_credits_to_persons(credits),
        rating=Rating(tmdb=vote_average, imdb=vote_average),
        votes=Votes(tmdb=vote_count, imdb=vote_count),
        external_ids=ExternalIds(
            imdb=(details.get("external_ids") or {}).get("imdb_id") or "",
            tmdb=details.get("id") or 0,
        ),
        details=SeriesDetails(
            episode_length=episode_length,
            total_length=(details.get("number_of_episodes") or 0) * episode_length,
            status=details.get("status") or "",
            seasons=seasons,
            end_year=parse_year(details.get("last_air_date")) or None,
            age_rating=extract_tv_age_rating(content_ratings),
            rating_mpaa=extract_tv_rating_label(content_ratings),
            networks=_names(details.get("networks")),
        ),
    )


def _english_biography(details: Payload) -> str:
    translations = (details.get("translations") or {}).get("translations") or []
    for translation in translations:
        if translation.get("iso_639_1") == FALLBACK_IMAGE_LANGUAGE:
            return (translation.get("data") or {}).get("biography") or ""
    return ""


def convert_person(details: Payload | None, credits: Payload | None, images: Payload | None) -> CanonicalRecord:
    details = details or {}
    images = images or {}
    name = details.get("name") or ""
    original_name = details.get("original_name") or name
    birthday = details.get("birthday") or None
    birth_place = details.get("place_of_birth") or ""
    department = details.get("known_for_department") or "Acting"
    also_known_as = [alias for alias in details.get("also_known_as") or [] if isinstance(alias, str)]

    biography = details.get("biography") or ""
    if not biography:
        biography = _english_biography(details)
        if biography:
            logger.debug("Using English biography for person %s", details.get("id"))

    return CanonicalRecord(
        id=details.get("id") or 0,
        kind=RecordKind.PERSON,
        name=name,
        alternative_name=original_name,
        en_name=original_name,
        year=parse_year(birthday),
        premiere=birthday,
        description=biography,
        short_description=biography.split("\n")[0],
        homepage=details.get("homepage") or "",
        countries=[extract_country_from_birth_place(birth_place)] if birth_place else [],
        names=[AltName(name=alias, type="alternative") for alias in also_known_as],
        poster=_pick_image(images.get("profiles"), details.get("profile_path"), "poster"),
        backdrop=extract_best_image(images.get("tagged_images"), "backdrop"),
        rating=Rating(tmdb=details.get("popularity") or 0.0),
        external_ids=ExternalIds(
            imdb=details.get("imdb_id") or (details.get("external_ids") or {}).get("imdb_id") or "",
            tmdb=details.get("id") or 0,
        ),
        details=PersonDetails(
            birthday=birthday,
            deathday=details.get("deathday") or None,
            birth_place=birth_place,
            death_place=details.get("place_of_death") or details.get("death_place") or "",
            hometown=birth_place,
            gender=details.get("gender") or 0,
            also_known_as=extract_english_names_only(also_known_as),
            known_for=extract_known_for_titles(credits),
            known_for_department=department,
            profession=map_department_to_profession(department),
        ),
    )


Converter = Callable[[Payload | None, Payload | None, Payload | None], CanonicalRecord]

CONVERTERS: Mapping[RecordKind, Converter] = MappingProxyType(
    {
        RecordKind.MOVIE: convert_movie,
        RecordKind.SERIES: convert_series,
        RecordKind.PERSON: convert_person,
    }
)
