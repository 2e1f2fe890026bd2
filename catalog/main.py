"""FastAPI entrypoint exposing TMDb search, records and image listings."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Query, status
from pydantic import BaseModel

from catalog.core.auth import get_api_token
from catalog.core.logging_config import configure_logging
from catalog.services.models import ImageBuckets, ImageInfo, ImageRef, RecordKind, SuggestItem
from catalog.services.tmdb import TMDbClient, TMDbError, TMDbInvalidInput, TMDbNotFound


@asynccontextmanager
async def lifespan(_: FastAPI):
    """Configure logging before serving."""

    configure_logging()
    yield


app = FastAPI(title="TMDb Catalog Service", lifespan=lifespan)


def get_tmdb_client() -> TMDbClient:
    return TMDbClient()


class ImageRefResponse(BaseModel):
    url: str
    preview_url: str


class SuggestionResponse(BaseModel):
    id: int
    name: str
    secondary_label: str
    kind: RecordKind
    year: int = 0
    poster: ImageRefResponse | None = None
    rating: float = 0.0


class ImageInfoResponse(BaseModel):
    url: str
    preview_url: str | None = None
    language: str | None = None


class ImageBucketsResponse(BaseModel):
    posters: list[ImageInfoResponse]
    backdrops: list[ImageInfoResponse]
    logos: list[ImageInfoResponse]


class TokenValidationResponse(BaseModel):
    valid: bool


@app.get("/search", response_model=list[SuggestionResponse])
async def search(
    query: str = Query(..., description="Person name or title to look up"),
    kind: RecordKind = RecordKind.PERSON,
    token: str = Depends(get_api_token),
    client: TMDbClient = Depends(get_tmdb_client),
) -> list[SuggestionResponse]:
    try:
        items = await client.search_by_query(query, token, kind=kind)
    except TMDbInvalidInput as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    except TMDbNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except TMDbError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Failed to load data from TMDb.",
        ) from exc
    return [_suggestion_to_response(item) for item in items]


@app.get("/records/{kind}/{record_id}")
async def get_record(
    kind: RecordKind,
    record_id: int,
    user_rating: float | None = None,
    token: str = Depends(get_api_token),
    client: TMDbClient = Depends(get_tmdb_client),
) -> dict[str, Any]:
    try:
        return await client.get_record_by_id(record_id, token, kind=kind, user_rating=user_rating)
    except TMDbInvalidInput as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    except TMDbError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Failed to load data from TMDb.",
        ) from exc


@app.get("/records/{kind}/{record_id}/images", response_model=ImageBucketsResponse)
async def list_images(
    kind: RecordKind,
    record_id: int,
    token: str = Depends(get_api_token),
    client: TMDbClient = Depends(get_tmdb_client),
) -> ImageBucketsResponse:
    buckets = await client.list_images_by_id(record_id, token, kind=kind)
    return _buckets_to_response(buckets)


@app.post("/token/validate", response_model=TokenValidationResponse)
async def validate_token(
    token: str = Depends(get_api_token),
    client: TMDbClient = Depends(get_tmdb_client),
) -> TokenValidationResponse:
    return TokenValidationResponse(valid=await client.validate_token(token))


def _image_ref_to_response(ref: ImageRef | None) -> ImageRefResponse | None:
    if ref is None:
        return None
    return ImageRefResponse(url=ref.url, preview_url=ref.preview_url)


def _suggestion_to_response(item: SuggestItem) -> SuggestionResponse:
    return SuggestionResponse(
        id=item.id,
        name=item.name,
        secondary_label=item.secondary_label,
        kind=item.kind,
        year=item.year,
        poster=_image_ref_to_response(item.poster),
        rating=item.rating,
    )


def _image_info_to_response(info: ImageInfo) -> ImageInfoResponse:
    return ImageInfoResponse(url=info.url, preview_url=info.preview_url, language=info.language)


def _buckets_to_response(buckets: ImageBuckets) -> ImageBucketsResponse:
    return ImageBucketsResponse(
        posters=[_image_info_to_response(info) for info in buckets.posters],
        backdrops=[_image_info_to_response(info) for info in buckets.backdrops],
        logos=[_image_info_to_response(info) for info in buckets.logos],
    )
