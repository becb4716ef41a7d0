from __future__ import annotations

from datetime import timedelta

import pytest

from src.genjobs.config import PollingPolicy
from src.genjobs.generation.generation_errors import (
    JobCancelledError,
    PollFatalError,
    ProviderTransportError,
    TimeoutExceeded,
)
from src.genjobs.generation.generation_models import (
    ExtractionStrategy,
    FailureReason,
    PollAttempt,
    PollOutcome,
)
from src.genjobs.orchestration.clock import CancellationToken
from src.genjobs.orchestration.extractors import ResultExtractor
from src.genjobs.orchestration.poller import OperationPoller, response_preview
from src.genjobs.providers.providers_base import ProviderResponse

from tests.mocks.providers import (
    VIDEO_BASE64,
    VIDEO_BYTES,
    FakeClock,
    MockProviderScenario,
    ScriptedProvider,
    ok,
    status,
)

pytestmark = pytest.mark.unit

READY = ok({"predictions": [{"video": VIDEO_BASE64}]})


def _poller(
    provider: ScriptedProvider, policy: PollingPolicy | None = None
) -> tuple[OperationPoller, FakeClock]:
    clock = FakeClock()
    poller = OperationPoller(
        provider=provider,
        extractor=ResultExtractor(provider=provider),
        policy=policy or PollingPolicy(),
        clock=clock,
    )
    return poller, clock


@pytest.mark.asyncio
async def test_success_after_two_pending_polls(submitted_job) -> None:
    """Initial wait, then one interval between attempts, none after success."""

    provider = ScriptedProvider.for_scenario(MockProviderScenario.SUCCESS)
    poller, clock = _poller(provider)
    attempts: list[PollAttempt] = []

    artifact = await poller.run(submitted_job, job_id="job-1", on_attempt=attempts.append)

    assert artifact.payload == VIDEO_BYTES
    assert artifact.source_strategy is ExtractionStrategy.PREDICTION_FIELD
    assert clock.sleeps == [120.0, 10.0, 10.0]
    assert len(provider.poll_calls) == 3
    assert [a.outcome for a in attempts] == [
        PollOutcome.PENDING,
        PollOutcome.PENDING,
        PollOutcome.SUCCEEDED,
    ]
    assert [a.index for a in attempts] == [1, 2, 3]


@pytest.mark.asyncio
async def test_attempt_timestamps_follow_the_injected_clock(submitted_job) -> None:
    provider = ScriptedProvider.for_scenario(MockProviderScenario.SUCCESS)
    poller, clock = _poller(provider)
    attempts: list[PollAttempt] = []

    await poller.run(submitted_job, job_id="job-1", on_attempt=attempts.append)

    assert attempts[0].at == clock.epoch + timedelta(seconds=120)
    assert [b.at - a.at for a, b in zip(attempts, attempts[1:])] == [
        timedelta(seconds=10),
        timedelta(seconds=10),
    ]


@pytest.mark.asyncio
async def test_poll_uses_operation_id_and_job_token(submitted_job) -> None:
    provider = ScriptedProvider(polls=[READY])
    poller, _ = _poller(provider)

    await poller.run(submitted_job, job_id="job-1")

    operation_id, token, timeout = provider.poll_calls[0]
    assert operation_id == "op-123"
    assert token == "token-abc"
    assert timeout == pytest.approx(PollingPolicy().budget_seconds - 120.0)


@pytest.mark.asyncio
async def test_never_ready_times_out_within_attempts_and_budget(submitted_job) -> None:
    provider = ScriptedProvider.for_scenario(MockProviderScenario.TIMEOUT)
    policy = PollingPolicy()
    poller, clock = _poller(provider, policy)

    with pytest.raises(TimeoutExceeded) as exc_info:
        await poller.run(submitted_job, job_id="job-1")

    assert exc_info.value.reason is FailureReason.TIMEOUT_EXCEEDED
    assert exc_info.value.attempts == policy.max_attempts
    assert len(provider.poll_calls) == policy.max_attempts
    assert clock.now <= policy.budget_seconds
    # initial wait plus one interval between each pair of attempts
    assert len(clock.sleeps) == policy.max_attempts


@pytest.mark.asyncio
@pytest.mark.parametrize("code", [400, 404, 409, 425, 429])
async def test_not_ready_statuses_keep_polling(submitted_job, code: int) -> None:
    provider = ScriptedProvider(polls=[status(code), status(code), READY])
    poller, _ = _poller(provider)

    artifact = await poller.run(submitted_job, job_id="job-1")

    assert artifact.payload == VIDEO_BYTES
    assert len(provider.poll_calls) == 3


@pytest.mark.asyncio
@pytest.mark.parametrize("code", [401, 403, 500, 503])
async def test_fatal_status_stops_immediately(submitted_job, code: int) -> None:
    provider = ScriptedProvider(polls=[status(code, "denied"), READY])
    poller, clock = _poller(provider)

    with pytest.raises(PollFatalError) as exc_info:
        await poller.run(submitted_job, job_id="job-1")

    assert exc_info.value.upstream_status == code
    assert exc_info.value.attempts == 1
    assert exc_info.value.reason is FailureReason.PROVIDER_ERROR
    assert len(provider.poll_calls) == 1
    assert clock.sleeps == [120.0]


@pytest.mark.asyncio
async def test_operation_error_in_body_is_fatal(submitted_job) -> None:
    provider = ScriptedProvider(
        polls=[ok({"done": True, "error": {"code": 3, "message": "prompt blocked"}})]
    )
    poller, _ = _poller(provider)

    with pytest.raises(PollFatalError, match="prompt blocked"):
        await poller.run(submitted_job, job_id="job-1")


@pytest.mark.asyncio
async def test_transport_error_is_transient(submitted_job) -> None:
    provider = ScriptedProvider(polls=[ProviderTransportError("reset by peer"), READY])
    poller, _ = _poller(provider)

    artifact = await poller.run(submitted_job, job_id="job-1")

    assert artifact.payload == VIDEO_BYTES
    assert len(provider.poll_calls) == 2


@pytest.mark.asyncio
async def test_caller_deadline_shorter_than_initial_wait(submitted_job) -> None:
    provider = ScriptedProvider(polls=[READY])
    poller, clock = _poller(provider)

    with pytest.raises(TimeoutExceeded) as exc_info:
        await poller.run(submitted_job, job_id="job-1", deadline_seconds=60)

    assert exc_info.value.attempts == 0
    assert provider.poll_calls == []
    assert clock.sleeps == []


@pytest.mark.asyncio
async def test_caller_deadline_caps_attempts(submitted_job) -> None:
    provider = ScriptedProvider(poll_default=ok({}))
    poller, clock = _poller(provider)

    with pytest.raises(TimeoutExceeded) as exc_info:
        await poller.run(submitted_job, job_id="job-1", deadline_seconds=150)

    assert len(provider.poll_calls) == 3
    assert exc_info.value.attempts == 3
    assert clock.now <= 150


@pytest.mark.asyncio
async def test_cancelled_before_start_makes_no_calls(submitted_job) -> None:
    provider = ScriptedProvider(polls=[READY])
    poller, _ = _poller(provider)
    token = CancellationToken()
    token.cancel("client_disconnected")

    with pytest.raises(JobCancelledError) as exc_info:
        await poller.run(submitted_job, job_id="job-1", cancel=token)

    assert exc_info.value.reason is FailureReason.CANCELLED
    assert provider.poll_calls == []


@pytest.mark.asyncio
async def test_cancel_during_interval_stops_loop(submitted_job) -> None:
    provider = ScriptedProvider(poll_default=ok({}))
    poller, clock = _poller(provider)
    token = CancellationToken()

    def cancel_on_second_sleep(_seconds: float) -> None:
        if len(clock.sleeps) == 2:
            token.cancel("client_disconnected")

    clock.on_sleep = cancel_on_second_sleep

    with pytest.raises(JobCancelledError) as exc_info:
        await poller.run(submitted_job, job_id="job-1", cancel=token)

    assert exc_info.value.attempts == 1
    assert len(provider.poll_calls) == 1


@pytest.mark.asyncio
async def test_custom_policy_short_intervals(submitted_job) -> None:
    provider = ScriptedProvider(poll_default=status(404))
    policy = PollingPolicy(initial_delay_seconds=0, interval_seconds=1, max_attempts=5)
    poller, clock = _poller(provider, policy)

    with pytest.raises(TimeoutExceeded):
        await poller.run(submitted_job, job_id="job-1")

    assert len(provider.poll_calls) == 5
    assert clock.sleeps == [0, 1, 1, 1, 1]
    assert clock.now == 4


def test_response_preview_masks_payloads() -> None:
    response = ProviderResponse(
        status_code=200, body={"predictions": [{"video": VIDEO_BASE64}], "done": True}
    )

    preview = response_preview(response)

    assert VIDEO_BASE64 not in preview
    assert f"<{len(VIDEO_BASE64)} chars>" in preview
