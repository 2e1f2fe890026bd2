"""Shared dataclasses for the service layer.

``CanonicalRecord`` is a tagged union: a core shared by every kind plus a
``details`` payload whose type is fixed by ``kind``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union


class RecordKind(str, Enum):
    MOVIE = "movie"
    SERIES = "tv-series"
    PERSON = "person"

    @property
    def api_path(self) -> str:
        """Path segment used by TMDb endpoints and site links."""

        return _API_PATHS[self]

    @classmethod
    def from_media_type(cls, media_type: str | None) -> "RecordKind":
        if media_type == "tv":
            return cls.SERIES
        if media_type == "person":
            return cls.PERSON
        return cls.MOVIE


_API_PATHS = {
    RecordKind.MOVIE: "movie",
    RecordKind.SERIES: "tv",
    RecordKind.PERSON: "person",
}


def _freeze(instance: object, *names: str) -> None:
    # callers may pass lists; stored collections are always tuples
    for name in names:
        object.__setattr__(instance, name, tuple(getattr(instance, name) or ()))


@dataclass(frozen=True, slots=True)
class ImageRef:
    url: str
    preview_url: str


@dataclass(frozen=True, slots=True)
class AltName:
    name: str
    type: str = ""


@dataclass(frozen=True, slots=True)
class Credit:
    """A cast or crew member with the profession assigned during conversion."""

    id: int
    name: str
    original_name: str
    profession: str
    profession_code: str
    photo: str | None = None


@dataclass(frozen=True, slots=True)
class Rating:
    tmdb: float = 0.0
    imdb: float = 0.0


@dataclass(frozen=True, slots=True)
class Votes:
    tmdb: int = 0
    imdb: int = 0


@dataclass(frozen=True, slots=True)
class ExternalIds:
    imdb: str = ""
    tmdb: int = 0


@dataclass(frozen=True, slots=True)
class Money:
    value: int
    currency: str = "USD"


@dataclass(frozen=True, slots=True)
class Fact:
    value: str
    spoiler: bool = False


@dataclass(frozen=True, slots=True)
class Season:
    number: int
    episodes_count: int


@dataclass(frozen=True, slots=True)
class RelatedTitle:
    """Compact reference to a movie or series a person is known for."""

    id: int
    name: str
    alternative_name: str
    en_name: str
    kind: RecordKind
    poster: ImageRef | None = None
    rating: float = 0.0
    year: int = 0


@dataclass(frozen=True, slots=True)
class MovieDetails:
    length: int = 0
    age_rating: int = 0
    rating_mpaa: str = ""
    budget: Money | None = None
    fees_world: Money | None = None


@dataclass(frozen=True, slots=True)
class SeriesDetails:
    episode_length: int = 0
    total_length: int = 0
    status: str = ""
    seasons: tuple[Season, ...] = ()
    end_year: int | None = None
    age_rating: int = 0
    rating_mpaa: str = ""
    networks: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        _freeze(self, "seasons", "networks")


@dataclass(frozen=True, slots=True)
class PersonDetails:
    birthday: str | None = None
    deathday: str | None = None
    birth_place: str = ""
    death_place: str = ""
    hometown: str = ""
    gender: int = 0
    also_known_as: tuple[str, ...] = ()
    known_for: tuple[RelatedTitle, ...] = ()
    known_for_department: str = ""
    profession: str = ""

    def __post_init__(self) -> None:
        _freeze(self, "also_known_as", "known_for")


KindDetails = Union[MovieDetails, SeriesDetails, PersonDetails]

_DETAILS_TYPES: dict[RecordKind, type] = {
    RecordKind.MOVIE: MovieDetails,
    RecordKind.SERIES: SeriesDetails,
    RecordKind.PERSON: PersonDetails,
}


@dataclass(frozen=True, slots=True)
class CanonicalRecord:
    """Unified movie / series / person record produced by the formatter."""

    id: int
    kind: RecordKind
    details: KindDetails
    name: str = ""
    alternative_name: str = ""
    en_name: str = ""
    year: int = 0
    premiere: str | None = None
    description: str = ""
    short_description: str = ""
    slogan: str = ""
    homepage: str = ""
    genres: tuple[str, ...] = ()
    countries: tuple[str, ...] = ()
    names: tuple[AltName, ...] = ()
    production_companies: tuple[str, ...] = ()
    facts: tuple[Fact, ...] = ()
    poster: ImageRef | None = None
    backdrop: ImageRef | None = None
    logo: ImageRef | None = None
    persons: tuple[Credit, ...] = ()
    rating: Rating = field(default_factory=Rating)
    votes: Votes = field(default_factory=Votes)
    external_ids: ExternalIds = field(default_factory=ExternalIds)

    def __post_init__(self) -> None:
        expected = _DETAILS_TYPES[self.kind]
        if not isinstance(self.details, expected):
            raise ValueError(
                f"{self.kind.value} record requires {expected.__name__}, "
                f"got {type(self.details).__name__}"
            )
        _freeze(self, "genres", "countries", "names", "production_companies", "facts", "persons")


@dataclass(frozen=True, slots=True)
class SuggestItem:
    """Compact search result handed to the search UI."""

    id: int
    name: str
    secondary_label: str
    kind: RecordKind
    year: int = 0
    poster: ImageRef | None = None
    rating: float = 0.0


@dataclass(frozen=True, slots=True)
class ImageInfo:
    url: str
    preview_url: str | None = None
    language: str | None = None


@dataclass(frozen=True, slots=True)
class ImageBuckets:
    posters: list[ImageInfo] = field(default_factory=list)
    backdrops: list[ImageInfo] = field(default_factory=list)
    logos: list[ImageInfo] = field(default_factory=list)
