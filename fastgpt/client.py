"""FastGPT API client: one POST per question, mapped onto the query error taxonomy."""

import logging
import time
from dataclasses import dataclass, field

import httpx
from pydantic import BaseModel, ValidationError

from fastgpt.errors import AuthError, MalformedResponse, NetworkError, ServerError
from fastgpt.session.state import RequestPayload

logger = logging.getLogger(__name__)


class Meta(BaseModel):
    id: str = ""
    node: str = ""
    ms: int = 0


class Reference(BaseModel):
    title: str
    url: str
    snippet: str = ""


class Data(BaseModel):
    output: str
    references: list[Reference] = []
    tokens: int = 0


class FastGPTResponse(BaseModel):
    meta: Meta = Meta()
    data: Data


@dataclass
class QueryResult:
    answer: str
    references: list[Reference] = field(default_factory=list)
    raw: str = ""           # response body, verbatim
    meta: Meta = field(default_factory=Meta)
    tokens: int = 0


def _api_error_message(body: dict) -> str | None:
    """Kagi reports failures as {"error": [{"code": ..., "msg": ...}]}."""
    errors = body.get("error")
    if not errors or not isinstance(errors, list):
        return None
    parts = []
    for err in errors:
        if isinstance(err, dict):
            parts.append(f"{err.get('code', '?')}: {err.get('msg', '')}".strip())
        else:
            parts.append(str(err))
    return "; ".join(parts)


class FastGPTClient:
    def __init__(
        self,
        api_key: str,
        api_url: str = "https://kagi.com/api/v0/fastgpt",
        timeout: float = 60.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.api_key = api_key
        self.api_url = api_url
        self._client = httpx.Client(timeout=timeout, transport=transport)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "FastGPTClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def ask(self, payload: RequestPayload, *, cache: bool = True, references: bool = True,
            history_limit: int = 0) -> QueryResult:
        """
        Send one question with its context.
        Raises AuthError, NetworkError, ServerError or MalformedResponse.
        """
        query = payload.to_query(history_limit)
        body = {"query": query, "cache": cache, "web_search": True}
        headers = {"Authorization": f"Bot {self.api_key}"}

        t0 = time.perf_counter()
        logger.debug(
            f"POST {self.api_url}: {len(payload.files)} file(s), "
            f"{len(payload.messages)} message(s), query={len(query)} chars, cache={cache}"
        )
        try:
            resp = self._client.post(self.api_url, json=body, headers=headers)
        except httpx.TimeoutException as e:
            raise NetworkError(f"Request timed out: {e}") from e
        except httpx.RequestError as e:
            raise NetworkError(f"Failed to send request to FastGPT API: {e}") from e
        logger.debug(f"POST {self.api_url}: status={resp.status_code} in {time.perf_counter() - t0:.3f}s")

        if resp.status_code in (401, 403):
            raise AuthError(f"Invalid or missing API key ({resp.status_code}): {resp.text}")
        if not resp.is_success:
            raise ServerError(resp.status_code, resp.text)

        try:
            decoded = resp.json()
        except ValueError as e:
            raise MalformedResponse(f"Failed to parse response from FastGPT API: {e}") from e

        if isinstance(decoded, dict) and not decoded.get("data"):
            message = _api_error_message(decoded)
            if message:
                raise ServerError(resp.status_code, message)

        try:
            parsed = FastGPTResponse.model_validate(decoded)
        except ValidationError as e:
            raise MalformedResponse(f"Unexpected response shape from FastGPT API: {e}") from e

        return QueryResult(
            answer=parsed.data.output,
            references=list(parsed.data.references) if references else [],
            raw=resp.text,
            meta=parsed.meta,
            tokens=parsed.data.tokens,
        )
