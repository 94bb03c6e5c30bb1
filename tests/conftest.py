from collections.abc import Callable, Generator
from pathlib import Path

import httpx
import pytest
from sqlalchemy.orm import Session, sessionmaker

from factbuffer.client import FactClient
from factbuffer.config import Settings
from factbuffer.ledger import build_session_factory


@pytest.fixture()
def test_settings(tmp_path: Path) -> Settings:
    return Settings(
        app_name="factbuffer",
        log_level="INFO",
        database_url=f"sqlite:///{tmp_path / 'test.db'}",
        endpoint_url="http://facts.test/_api/facts/save_fact",
        auth_token="test-token",
        max_attempts=3,
        retry_delay_seconds=0,
        request_timeout_seconds=5,
        max_workers=0,
        input_dir=str(tmp_path / "data" / "input"),
        schedule_hour_utc=2,
        schedule_minute_utc=0,
    )


@pytest.fixture()
def session_factory(test_settings: Settings) -> sessionmaker[Session]:
    return build_session_factory(test_settings.database_url)


@pytest.fixture()
def mock_client(test_settings: Settings) -> Generator[Callable[..., FactClient], None, None]:
    http_clients: list[httpx.Client] = []

    def build(handler: Callable[[httpx.Request], httpx.Response]) -> FactClient:
        http_client = httpx.Client(transport=httpx.MockTransport(handler))
        http_clients.append(http_client)
        return FactClient(test_settings, http_client=http_client)

    yield build

    for http_client in http_clients:
        http_client.close()
