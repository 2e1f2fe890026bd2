"""Async TMDb client: search, record assembly and image listing."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Mapping

import httpx

from catalog.core.config import PersonPaths, get_settings
from catalog.core.validation import is_valid_record_id, is_valid_search_query, is_valid_token
from catalog.services.constants import (
    IMAGE_BASE_URL,
    MAX_SEARCH_RESULTS,
    SIZE_ORIGINAL,
    SIZE_W185,
    SIZE_W500,
)
from catalog.services.formatter import CONVERTERS, build_image_ref, build_image_url, parse_year
from catalog.services.models import (
    CanonicalRecord,
    ImageBuckets,
    ImageInfo,
    ImageRef,
    RecordKind,
    SuggestItem,
)
from catalog.services.presentation import PresentationRecord, create_presentation_record


logger = logging.getLogger(__name__)


class TMDbError(Exception):
    """Base exception for TMDb-related failures."""


class TMDbInvalidInput(TMDbError):
    """Raised before any request when a token, query or id is malformed."""


class TMDbNotFound(TMDbError):
    """Raised when a search yields no ranked results."""


class TMDbUpstreamFailure(TMDbError):
    """Raised on transport errors, non-2xx responses or undecodable bodies."""


class TMDbPartialDataUnavailable(TMDbError):
    """Recorded when a best-effort helper degrades to an empty result."""


@dataclass(frozen=True, slots=True)
class ImageListing:
    """Image buckets plus the failure that emptied them, if any."""

    buckets: ImageBuckets
    failure: TMDbPartialDataUnavailable | None = None

    @property
    def degraded(self) -> bool:
        return self.failure is not None


@dataclass(frozen=True, slots=True)
class TokenCheck:
    """Outcome of a token check plus the error that made it fail, if any."""

    valid: bool
    failure: TMDbError | None = None


@dataclass(frozen=True, slots=True)
class _RecordEndpoints:
    details: str
    append_to_response: str
    credits: str
    images: str


_ENDPOINTS = {
    RecordKind.MOVIE: _RecordEndpoints(
        details="/movie/{id}",
        append_to_response="release_dates,alternative_titles,external_ids",
        credits="/movie/{id}/credits",
        images="/movie/{id}/images",
    ),
    RecordKind.SERIES: _RecordEndpoints(
        details="/tv/{id}",
        append_to_response="content_ratings,alternative_titles,external_ids",
        credits="/tv/{id}/credits",
        images="/tv/{id}/images",
    ),
    RecordKind.PERSON: _RecordEndpoints(
        details="/person/{id}",
        append_to_response="external_ids,translations",
        credits="/person/{id}/combined_credits",
        images="/person/{id}/images",
    ),
}

# The images endpoint filters by the request language unless told otherwise.
_IMAGE_LANGUAGES = "ru,en,null"


def calculate_relevance_score(item: dict[str, Any], query: str) -> float:
    """Score a search hit: exact, prefix and substring bonuses add up, plus popularity."""

    normalized_query = query.lower().strip()
    name = (item.get("name") or item.get("title") or "").lower()

    score = 0.0
    if name == normalized_query:
        score += 1000
    if name.startswith(normalized_query):
        score += 500
    if normalized_query in name:
        score += 250
    score += (item.get("popularity") or 0) * 2
    return score


def _profile_thumbnail(path: str | None) -> ImageRef | None:
    # search lists only need small portraits
    if not path:
        return None
    return ImageRef(url=build_image_url(path, SIZE_W500), preview_url=build_image_url(path, SIZE_W185))


def to_suggest_item(item: dict[str, Any], kind: RecordKind) -> SuggestItem:
    if kind is RecordKind.PERSON:
        return SuggestItem(
            id=item.get("id") or 0,
            name=item.get("name") or "",
            secondary_label=item.get("known_for_department") or "Acting",
            kind=kind,
            year=0,
            poster=_profile_thumbnail(item.get("profile_path")),
            rating=item.get("popularity") or 0.0,
        )
    if kind is RecordKind.SERIES:
        name, original, released = item.get("name"), item.get("original_name"), item.get("first_air_date")
    else:
        name, original, released = item.get("title"), item.get("original_title"), item.get("release_date")
    return SuggestItem(
        id=item.get("id") or 0,
        name=name or "",
        secondary_label=original or "",
        kind=kind,
        year=parse_year(released),
        poster=build_image_ref(item.get("poster_path")),
        rating=item.get("vote_average") or 0.0,
    )


def _image_infos(entries: list[dict[str, Any]] | None) -> list[ImageInfo]:
    infos = []
    for entry in entries or []:
        path = entry.get("file_path")
        url = f"{IMAGE_BASE_URL}{SIZE_ORIGINAL}{path}" if path else ""
        if not url.strip():
            continue
        infos.append(ImageInfo(url=url, language=entry.get("iso_639_1") or None))
    return infos


class TMDbClient:
    """TMDb HTTP client using bearer token auth."""

    def __init__(
        self,
        *,
        base_url: str | None = None,
        language: str | None = None,
        timeout: float | None = None,
        paths: PersonPaths | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self.base_url = (base_url or settings.tmdb_base_url).rstrip("/")
        self.language = language or settings.tmdb_language
        self.timeout = timeout if timeout is not None else settings.tmdb_timeout
        self.paths = paths or settings.person_paths()
        self._transport = transport

    async def _request(
        self, path: str, token: str, *, params: dict[str, Any] | None = None
    ) -> Mapping[str, Any]:
        if not is_valid_token(token):
            raise TMDbInvalidInput("TMDb API token is missing or malformed")
        url = f"{self.base_url}{path}"
        query: dict[str, Any] = {"language": self.language}
        if params:
            query.update({k: v for k, v in params.items() if v is not None and v != ""})
        headers = {"accept": "application/json", "Authorization": f"Bearer {token.strip()}"}
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                response = await client.get(url, params=query, headers=headers)
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                raise TMDbUpstreamFailure(
                    f"TMDb request {path} failed with status {exc.response.status_code}"
                ) from exc
            except httpx.HTTPError as exc:
                raise TMDbUpstreamFailure(f"TMDb request {path} failed") from exc
        try:
            payload = response.json()
        except ValueError as exc:
            raise TMDbUpstreamFailure(f"TMDb request {path} returned invalid JSON") from exc
        # every endpoint used here answers with a JSON object
        if not isinstance(payload, Mapping):
            raise TMDbUpstreamFailure(f"TMDb request {path} returned an unexpected body")
        return payload

    async def search_by_query(
        self,
        query: str,
        token: str,
        *,
        kind: RecordKind = RecordKind.PERSON,
    ) -> list[SuggestItem]:
        """Search TMDb and return suggestions ranked by relevance to the query."""

        if not is_valid_search_query(query):
            raise TMDbInvalidInput("Search query must be a non-empty name or title")

        payload = await self._request(
            f"/search/{kind.api_path}",
            token,
            params={"query": query.strip(), "page": 1},
        )
        results = payload.get("results") or []
        logger.debug("TMDb search payload: %s", payload)

        scored = [(calculate_relevance_score(item, query), item) for item in results]
        # stable sort keeps API order among equal scores
        ranked = sorted(scored, key=lambda pair: pair[0], reverse=True)[:MAX_SEARCH_RESULTS]
        if not ranked:
            raise TMDbNotFound(f"Nothing found for '{query}'. Try changing the query.")

        logger.info("TMDb search for %r returned %d suggestions", query, len(ranked))
        return [to_suggest_item(item, kind) for _, item in ranked]

    async def fetch_canonical_record(
        self,
        record_id: int,
        token: str,
        *,
        kind: RecordKind = RecordKind.PERSON,
    ) -> CanonicalRecord:
        """Fetch details, credits and images concurrently and convert them."""

        if not is_valid_record_id(record_id):
            raise TMDbInvalidInput(f"Invalid TMDb id: {record_id!r}")
        if not is_valid_token(token):
            raise TMDbInvalidInput("TMDb API token is required to load a record")

        endpoints = _ENDPOINTS[kind]
        image_params = None if kind is RecordKind.PERSON else {"include_image_language": _IMAGE_LANGUAGES}
        # gather raises the first failure; no partial record is built
        details, credits, images = await asyncio.gather(
            self._request(
                endpoints.details.format(id=record_id),
                token,
                params={"append_to_response": endpoints.append_to_response},
            ),
            self._request(endpoints.credits.format(id=record_id), token),
            self._request(endpoints.images.format(id=record_id), token, params=image_params),
        )
        logger.debug("TMDb details payload: %s", details)
        return CONVERTERS[kind](details, credits, images)

    async def get_record_by_id(
        self,
        record_id: int,
        token: str,
        *,
        kind: RecordKind = RecordKind.PERSON,
        user_rating: float | None = None,
    ) -> PresentationRecord:
        record = await self.fetch_canonical_record(record_id, token, kind=kind)
        logger.info("Loaded TMDb %s %s", kind.value, record_id)
        return create_presentation_record(record, paths=self.paths, user_rating=user_rating)

    async def check_token(self, token: str) -> TokenCheck:
        """Check the token locally, then with one lightweight request to /configuration."""

        if not is_valid_token(token):
            return TokenCheck(valid=False, failure=TMDbInvalidInput("TMDb API token is missing or malformed"))
        try:
            await self._request("/configuration", token)
        except TMDbUpstreamFailure as exc:
            return TokenCheck(valid=False, failure=exc)
        return TokenCheck(valid=True)

    async def validate_token(self, token: str) -> bool:
        check = await self.check_token(token)
        if check.failure is not None:
            logger.warning("TMDb token check failed: %s (cause: %s)", check.failure, check.failure.__cause__)
        return check.valid

    async def _collect_images(self, record_id: int, token: str, kind: RecordKind) -> ImageListing:
        endpoint = _ENDPOINTS[kind].images.format(id=record_id)
        params = None if kind is RecordKind.PERSON else {"include_image_language": _IMAGE_LANGUAGES}
        try:
            images = await self._request(endpoint, token, params=params)
        except TMDbError as exc:
            failure = TMDbPartialDataUnavailable(f"Images for {kind.value} {record_id} are unavailable")
            failure.__cause__ = exc
            return ImageListing(buckets=ImageBuckets(), failure=failure)

        if kind is RecordKind.PERSON:
            buckets = ImageBuckets(
                posters=_image_infos(images.get("profiles")),
                backdrops=_image_infos(images.get("tagged_images")),
                logos=[],
            )
        else:
            buckets = ImageBuckets(
                posters=_image_infos(images.get("posters")),
                backdrops=_image_infos(images.get("backdrops")),
                logos=_image_infos(images.get("logos")),
            )
        return ImageListing(buckets=buckets)

    async def list_images_by_id(
        self,
        record_id: int,
        token: str,
        *,
        kind: RecordKind = RecordKind.PERSON,
    ) -> ImageBuckets:
        """Return every image for a record; failures yield empty buckets."""

        listing = await self._collect_images(record_id, token, kind)
        if listing.degraded:
            logger.warning("%s (cause: %s)", listing.failure, listing.failure.__cause__)
        return listing.buckets
