import logging
from unittest.mock import AsyncMock, patch

import pytest
from temporalio.service import RPCError, RPCStatusCode

from fleet.worker import get_temporal_client_with_retries, setup_logging


def _unavailable() -> RPCError:
    return RPCError("connection refused", RPCStatusCode.UNAVAILABLE, b"")


@pytest.mark.asyncio
async def test_connect_retries_until_temporal_answers() -> None:
    client = object()
    with patch(
        "fleet.worker.Client.connect",
        new_callable=AsyncMock,
        side_effect=[_unavailable(), client],
    ) as connect, patch(
        "fleet.worker.asyncio.sleep", new_callable=AsyncMock
    ) as sleep:
        result = await get_temporal_client_with_retries(
            "temporal:7233", attempts=3, delay=1
        )

    assert result is client
    assert connect.await_count == 2
    sleep.assert_awaited_once_with(1)


@pytest.mark.asyncio
async def test_connect_gives_up_after_last_attempt() -> None:
    with patch(
        "fleet.worker.Client.connect",
        new_callable=AsyncMock,
        side_effect=[_unavailable(), _unavailable()],
    ), patch("fleet.worker.asyncio.sleep", new_callable=AsyncMock) as sleep:
        with pytest.raises(RPCError):
            await get_temporal_client_with_retries(
                "temporal:7233", attempts=2, delay=1
            )

    assert sleep.await_count == 1


def test_setup_logging_reads_environment(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("LIBRARY_LOG_LEVEL", "error")

    setup_logging()

    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("urllib3").level == logging.ERROR


def test_setup_logging_ignores_unknown_level(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("LOG_LEVEL", "chatty")
    monkeypatch.delenv("LIBRARY_LOG_LEVEL", raising=False)

    setup_logging()

    assert logging.getLogger().level == logging.INFO
    assert logging.getLogger("urllib3").level == logging.WARNING
