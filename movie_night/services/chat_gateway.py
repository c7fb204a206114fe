"""Outbound side of the chat transport collaborator.

The gateway process owns the platform connection; we talk to it over plain
HTTP. Sends, edits and reactions are best-effort: a failure is logged (and
reported to Sentry) and returned as ``None`` / ``False``, never raised.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from movie_night.core.config import settings
from movie_night.core.sentry import capture_collaborator_error
from movie_night.core.trace import get_trace_id
from movie_night.models.events import FormattedMessage, RoleInfo

logger = logging.getLogger(__name__)


class ChatGateway:

    def __init__(self, client: Optional[httpx.AsyncClient] = None) -> None:
        headers = {}
        if settings.chat_gateway_token:
            headers['Authorization'] = f'Bearer {settings.chat_gateway_token}'
        self._client = client or httpx.AsyncClient(
            base_url=settings.chat_gateway_url,
            timeout=httpx.Timeout(settings.chat_gateway_timeout),
            headers=headers,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _call(
            self,
            method: str,
            path: str,
            payload: Optional[Dict[str, Any]] = None,
    ) -> Optional[Dict[str, Any]]:
        trace_id = get_trace_id()
        headers = {'X-Trace-Id': trace_id} if trace_id else None
        try:
            response = await self._client.request(
                method, path, json=payload, headers=headers)
            response.raise_for_status()
            data = response.json() if response.content else {}
        except (httpx.HTTPError, ValueError) as error:
            # ValueError: 2xx, но тело не JSON (например, страница прокси)
            return self._failed(method, path, error)
        if not isinstance(data, dict):
            return self._failed(method, path, ValueError(
                f'unexpected body type {type(data).__name__}'))
        return data

    @staticmethod
    def _failed(method: str, path: str, error: Exception) -> None:
        logger.warning('chat_gateway_send_failed', extra={
            'method': method, 'path': path, 'err': str(error)})
        capture_collaborator_error(error, 'chat_gateway')
        return None

    async def send_message(self, channel_id: str, text: str) -> Optional[str]:
        data = await self._call(
            'POST', '/messages', {'channel_id': channel_id, 'text': text})
        return data.get('message_id') if data else None

    async def send_formatted_message(
            self,
            channel_id: str,
            message: FormattedMessage) -> Optional[str]:
        """Send a rich message; returns its id or None when delivery failed."""
        data = await self._call('POST', '/messages', {
            'channel_id': channel_id,
            'embed': message.model_dump(exclude_none=True),
        })
        return data.get('message_id') if data else None

    async def edit_formatted_message(
            self,
            channel_id: str,
            message_id: str,
            message: FormattedMessage) -> bool:
        data = await self._call(
            'PATCH',
            f'/messages/{channel_id}/{message_id}',
            {'embed': message.model_dump(exclude_none=True)},
        )
        return data is not None

    async def add_reaction(
            self,
            channel_id: str,
            message_id: str,
            emoji: str) -> bool:
        data = await self._call('PUT', '/reactions', {
            'channel_id': channel_id,
            'message_id': message_id,
            'emoji': emoji,
        })
        return data is not None

    async def remove_reaction(
            self,
            channel_id: str,
            message_id: str,
            emoji: str,
            user_id: Optional[str] = None) -> bool:
        """Remove one user's reaction, or the bot's own when user_id is None."""
        data = await self._call('DELETE', '/reactions', {
            'channel_id': channel_id,
            'message_id': message_id,
            'emoji': emoji,
            'user_id': user_id,
        })
        return data is not None

    async def lookup_roles(self, user_id: str) -> RoleInfo:
        data = await self._call('GET', f'/members/{user_id}/roles')
        if not data:
            # нет ответа: считаем, что ролей нет (админку не выдаём)
            return RoleInfo()
        try:
            return RoleInfo.model_validate(data)
        except ValidationError as error:
            self._failed('GET', f'/members/{user_id}/roles', error)
            return RoleInfo()
