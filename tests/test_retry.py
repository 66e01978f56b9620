import httpx
import pytest

from oncall_copilot.errors import RateLimitedError
from oncall_copilot.retry import is_rate_limited, with_retry

from fakes import RecordingSleep


class Flaky:
    def __init__(self, failures, value="ok"):
        self.failures = list(failures)
        self.value = value
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.failures:
            raise self.failures.pop(0)
        return self.value


def _status_error(status: int, body: str = "") -> httpx.HTTPStatusError:
    request = httpx.Request("POST", "https://oracle.test/generate")
    response = httpx.Response(status, request=request, text=body)
    return httpx.HTTPStatusError(f"status {status}", request=request, response=response)


@pytest.mark.asyncio
async def test_recovers_after_rate_limits_with_increasing_delays():
    sleep = RecordingSleep()
    operation = Flaky([RateLimitedError(), RateLimitedError(), RateLimitedError()])

    result = await with_retry(operation, max_attempts=5, initial_delay=2.0, sleep=sleep)

    assert result == "ok"
    assert operation.calls == 4
    assert sleep.delays == pytest.approx([2.0, 3.0, 4.5])
    assert all(later > earlier for earlier, later in zip(sleep.delays, sleep.delays[1:]))


@pytest.mark.asyncio
async def test_exhaustion_propagates_last_failure():
    sleep = RecordingSleep()
    failures = [RateLimitedError(f"limited {i}") for i in range(5)]
    operation = Flaky(failures)

    with pytest.raises(RateLimitedError) as info:
        await with_retry(operation, max_attempts=5, initial_delay=1.0, sleep=sleep)

    assert str(info.value) == "limited 4"
    assert operation.calls == 5
    assert len(sleep.delays) == 4


@pytest.mark.asyncio
async def test_other_failures_are_not_retried():
    sleep = RecordingSleep()
    error = ValueError("boom")
    operation = Flaky([error])

    with pytest.raises(ValueError) as info:
        await with_retry(operation, sleep=sleep)

    assert info.value is error
    assert operation.calls == 1
    assert sleep.delays == []


@pytest.mark.asyncio
async def test_http_429_is_retried():
    sleep = RecordingSleep()
    operation = Flaky([_status_error(429)], value={"text": "done"})

    assert await with_retry(operation, initial_delay=0.5, sleep=sleep) == {"text": "done"}
    assert sleep.delays == [0.5]


def test_rate_limit_detection():
    class QuotaError(Exception):
        status = 429

    assert is_rate_limited(RateLimitedError())
    assert is_rate_limited(_status_error(429))
    assert is_rate_limited(_status_error(500, '{"error": {"status": "RESOURCE_EXHAUSTED"}}'))
    assert is_rate_limited(RuntimeError("429 RESOURCE_EXHAUSTED: quota exceeded"))
    assert is_rate_limited(QuotaError("quota"))
    assert not is_rate_limited(_status_error(500, "internal"))
    assert not is_rate_limited(ValueError("bad input"))
