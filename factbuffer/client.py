import time

import httpx

from factbuffer.config import Settings
from factbuffer.schemas import Fact


class DeliveryError(RuntimeError):
    pass


class TransportError(DeliveryError):
    def __init__(self, detail: str) -> None:
        super().__init__(f"request failed: {detail}")
        self.detail = detail


class ServerRejectedError(DeliveryError):
    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"status {status_code}: {body}")
        self.status_code = status_code
        self.body = body


def build_form(fact: Fact) -> dict[str, str]:
    # indicator_to_mo_fact_id is always sent as "0", whatever the fact carries.
    return {
        "period_start": fact.period_start,
        "period_end": fact.period_end,
        "period_key": fact.period_key,
        "indicator_to_mo_id": str(fact.indicator_to_mo_id),
        "indicator_to_mo_fact_id": "0",
        "value": str(fact.value),
        "fact_time": fact.fact_time,
        "is_plan": "1" if fact.is_plan else "0",
        "auth_user_id": str(fact.auth_user_id),
        "comment": fact.comment,
    }


class FactClient:
    def __init__(self, settings: Settings, http_client: httpx.Client | None = None) -> None:
        self.endpoint_url = settings.endpoint_url
        self.auth_token = settings.auth_token
        self.timeout_seconds = settings.request_timeout_seconds
        self._owns_http_client = http_client is None
        self.http_client = http_client or httpx.Client(timeout=settings.request_timeout_seconds)

    def attempt(self, fact: Fact) -> None:
        try:
            request = self.http_client.build_request(
                "POST",
                self.endpoint_url,
                data=build_form(fact),
                headers={
                    "Content-Type": "application/x-www-form-urlencoded",
                    "Authorization": f"Bearer {self.auth_token}",
                },
                timeout=self.timeout_seconds,
            )
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as exc:
            raise TransportError(f"could not build request: {exc}") from exc

        deadline = time.monotonic() + self.timeout_seconds
        try:
            response = self.http_client.send(request, stream=True)
            try:
                body = self._read_body(response, deadline)
            finally:
                response.close()
        except httpx.HTTPError as exc:
            raise TransportError(str(exc) or type(exc).__name__) from exc

        if response.status_code != httpx.codes.OK:
            raise ServerRejectedError(response.status_code, body)

    def _read_body(self, response: httpx.Response, deadline: float) -> str:
        # One deadline covers the whole attempt; httpx timeouts only bound each read.
        chunks: list[bytes] = []
        self._check_deadline(deadline)
        for chunk in response.iter_bytes():
            chunks.append(chunk)
            self._check_deadline(deadline)
        return b"".join(chunks).decode(response.charset_encoding or "utf-8", errors="replace")

    def _check_deadline(self, deadline: float) -> None:
        if time.monotonic() > deadline:
            raise TransportError(f"timed out after {self.timeout_seconds}s")

    def close(self) -> None:
        if self._owns_http_client:
            self.http_client.close()
