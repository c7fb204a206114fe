"""Small formatting/parsing helpers shared by the engines and renderers."""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Optional

from movie_night.core.config import settings
from movie_night.core.errors import InvalidDateError

DATE_FORMAT = '%d.%m.%Y'
_DATE_RE = re.compile(r'\d{1,2}\.\d{1,2}\.\d{4}')


def parse_day_month_year(text: str) -> date:
    """Parse the fixed ``dd.mm.yyyy`` argument format."""
    value = text.strip()
    if not _DATE_RE.fullmatch(value):
        raise InvalidDateError(value)
    try:
        return datetime.strptime(value, DATE_FORMAT).date()
    except ValueError as error:
        raise InvalidDateError(value) from error


def is_day_month_year(text: str) -> bool:
    try:
        parse_day_month_year(text)
    except InvalidDateError:
        return False
    return True


def format_timestamp(value: Optional[datetime | date]) -> str:
    if value is None:
        return '-'
    return value.strftime('%A, ' + DATE_FORMAT)


def format_date(value: Optional[datetime | date]) -> str:
    if value is None:
        return '-'
    return value.strftime(DATE_FORMAT)


def pad_id(entry_id: Optional[int]) -> str:
    if entry_id is None:
        return '----'
    return f'{entry_id:0>4}'


def movie_link(tmdb_id: int) -> str:
    return f'{settings.tmdb_movie_url}{tmdb_id}'


def watch_link(tmdb_id: int) -> str:
    return settings.watch_link_template.format(tmdb_id=tmdb_id)


def poster_link(poster_path: Optional[str]) -> Optional[str]:
    if not poster_path:
        return None
    return f'{settings.tmdb_poster_url}{poster_path}'


def plural(count: int, singular: str, many: str) -> str:
    return singular if count == 1 else many
