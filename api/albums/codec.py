"""
JSON in and out of the album routes with exact prices.

Request bodies are decoded with JSON numbers as `Decimal`, and responses
write `Decimal` values back as JSON numbers with the same digits. The
default FastAPI path goes through `float` on both sides.
"""

from __future__ import annotations

import json
import re
from decimal import Decimal
from typing import Any, Callable
from uuid import uuid4

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute
from pydantic import BaseModel


class DecimalJSONRequest(Request):
    async def json(self) -> Any:
        if not hasattr(self, "_json"):
            self._json = json.loads(await self.body(), parse_float=Decimal)
        return self._json


class DecimalJSONRoute(APIRoute):
    def get_route_handler(self) -> Callable:
        original_route_handler = super().get_route_handler()

        async def route_handler(request: Request) -> Response:
            return await original_route_handler(DecimalJSONRequest(request.scope, request.receive))

        return route_handler


class DecimalJSONResponse(JSONResponse):
    """
    Renders pydantic models (None fields dropped) and plain JSON values.

    Each Decimal is swapped for a per-response token before `json.dumps`,
    then the quoted token is replaced by the number's text.
    """

    def render(self, content: Any) -> bytes:
        token = uuid4().hex
        numbers: list[str] = []

        def prepare(value: Any) -> Any:
            if isinstance(value, BaseModel):
                return prepare(value.model_dump(exclude_none=True))
            if isinstance(value, dict):
                return {key: prepare(item) for key, item in value.items()}
            if isinstance(value, (list, tuple)):
                return [prepare(item) for item in value]
            if isinstance(value, Decimal):
                numbers.append(str(value))
                return f"{token}:{len(numbers) - 1}"
            return value

        text = json.dumps(prepare(content), ensure_ascii=False, allow_nan=False, separators=(",", ":"))
        if numbers:
            text = re.sub(f'"{token}:(\\d+)"', lambda m: numbers[int(m.group(1))], text)
        return text.encode("utf-8")
