"""TMDb metadata collaborator over httpx."""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional

import httpx

from movie_night.core.config import settings
from movie_night.core.errors import (
    MetadataLookupError,
    MovieNotFoundOnTmdbError,
)
from movie_night.models.movies import Movie, MovieCandidate

logger = logging.getLogger(__name__)


def _parse_release_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return datetime.strptime(value, '%Y-%m-%d').date()
    except (ValueError, TypeError):
        return None


def _format_budget(value: Any) -> str:
    try:
        budget = int(value or 0)
    except (TypeError, ValueError):
        budget = 0
    if budget <= 0:
        return '-'
    return f'${budget:,}'


def _to_candidate(item: Dict[str, Any]) -> MovieCandidate:
    return MovieCandidate(
        tmdb_id=item['id'],
        title=item.get('title') or '',
        original_title=item.get('original_title') or '',
        popularity=float(item.get('popularity') or 0.0),
        release_date=item.get('release_date') or None,
    )


def _to_movie(data: Dict[str, Any]) -> Movie:
    genres = ', '.join(
        genre['name'] for genre in data.get('genres') or []
        if genre.get('name'))
    return Movie(
        title=data.get('title') or '',
        original_title=data.get('original_title') or '',
        original_language=data.get('original_language') or '',
        tmdb_id=data['id'],
        overview=data.get('overview') or '',
        poster_path=data.get('poster_path'),
        release_date=_parse_release_date(data.get('release_date')),
        genres=genres or '-',
        runtime=data.get('runtime') or None,
        budget=_format_budget(data.get('budget')),
    )


class TmdbClient:
    """Search and fetch movies; never caches beyond a single call."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None) -> None:
        self._client = client or httpx.AsyncClient(
            base_url=settings.tmdb_base_url,
            timeout=httpx.Timeout(settings.tmdb_timeout),
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get(self, path: str, **params: Any) -> Dict[str, Any]:
        params.setdefault('language', settings.tmdb_language)
        params['api_key'] = settings.tmdb_api_key
        try:
            response = await self._client.get(path, params=params)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as error:
            status = error.response.status_code
            logger.warning('tmdb_request_failed', extra={
                'path': path, 'status': status})
            if status == 404:
                raise MovieNotFoundOnTmdbError(path) from error
            raise MetadataLookupError(
                f'TMDb answered {status} for {path}') from error
        except httpx.RequestError as error:
            logger.warning('tmdb_request_failed', extra={
                'path': path, 'err': str(error)})
            raise MetadataLookupError(str(error) or repr(error)) from error
        except ValueError as error:
            logger.warning('tmdb_bad_response', extra={
                'path': path, 'err': str(error)})
            raise MetadataLookupError(
                f'TMDb sent an unreadable answer for {path}') from error
        if not isinstance(data, dict):
            raise MetadataLookupError(
                f'TMDb sent an unexpected answer for {path}')
        return data

    @staticmethod
    def _convert(path: str, mapper, payload):
        # ValidationError тоже ValueError
        try:
            return mapper(payload)
        except (KeyError, TypeError, AttributeError, ValueError) as error:
            logger.warning('tmdb_bad_response', extra={
                'path': path, 'err': repr(error)})
            raise MetadataLookupError(
                f'TMDb sent an incomplete movie for {path}') from error

    async def _search(self, path: str, key: str,
                      **params: Any) -> List[MovieCandidate]:
        data = await self._get(path, **params)
        items = data.get(key) or []
        if not isinstance(items, list):
            raise MetadataLookupError(
                f'TMDb sent an unexpected answer for {path}')
        return [self._convert(path, _to_candidate, item) for item in items]

    async def search_by_title(self, title: str) -> List[MovieCandidate]:
        return await self._search(
            '/search/movie', 'results', query=title, include_adult='false')

    async def search_by_external_reference_id(
            self,
            imdb_id: str) -> List[MovieCandidate]:
        return await self._search(
            f'/find/{imdb_id}', 'movie_results', external_source='imdb_id')

    async def fetch_by_id(self, tmdb_id: int) -> Movie:
        path = f'/movie/{tmdb_id}'
        return self._convert(path, _to_movie, await self._get(path))
