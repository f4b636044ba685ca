"""Unit tests for the generation orchestrator.

All providers are replaced by ``FakeGenerate`` instances from conftest, so no
network traffic occurs. Tests cover:

- the single-generation pipeline (validation order, defaults, normalization)
- error wrapping of adapter failures
- batch fan-out: ordering, isolation, progress reporting, empty batches
"""

import asyncio

import pytest

from pixelmuse.core.errors import (
    AdapterError,
    EmptyResultError,
    InvalidInputError,
    MissingCredentialError,
    ModelNotFoundError,
    ProviderAuthenticationError,
    ProviderError,
    ProviderRateLimitError,
)
from pixelmuse.core.models import BatchFailure, BatchSuccess
from pixelmuse.core.orchestrator import GenerationOrchestrator

# ============================================================================
# Single generation
# ============================================================================


class TestGenerateOne:
    """Tests for GenerationOrchestrator.generate_one."""

    @pytest.mark.asyncio
    async def test_returns_normalized_result(self, orchestrator, credentials, fake_generate):
        """A successful call returns the first image as a GenerationResult."""
        fake_generate.revised_prompt = "a very red fox"

        result = await orchestrator.generate_one(
            "fake-model", "a red fox", "512x512", credentials=credentials
        )

        assert result.image_ref == "https://images.example.com/a-red-fox.png"
        assert result.is_inline is False
        assert (result.width, result.height) == (512, 512)
        assert result.model == "fake-model"
        assert result.provider == "Fake"
        assert result.revised_prompt == "a very red fox"
        assert result.prompt == "a red fox"
        assert result.size == "512x512"
        assert result.generated_at.tzinfo is not None

    @pytest.mark.asyncio
    async def test_inline_images_are_tagged(self, orchestrator, credentials, fake_generate):
        """Inline payloads keep their is_inline tag."""
        fake_generate.inline = True

        result = await orchestrator.generate_one("fake-model", "a fox", credentials=credentials)

        assert result.is_inline is True
        assert result.image_ref.startswith("data:image/png;base64,")

    @pytest.mark.asyncio
    async def test_request_is_normalized(self, orchestrator, credentials, fake_generate):
        """The adapter receives a trimmed prompt, parsed size, count=1 and the credential."""
        await orchestrator.generate_one(
            "fake-model", "  a red fox  ", "1024x1024", credentials=credentials
        )

        request = fake_generate.calls[0]
        assert request.prompt == "a red fox"
        assert request.size.width == 1024
        assert request.size.height == 1024
        assert request.count == 1
        assert request.credential == "fake-key"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("prompt", ["", "   ", "\n\t"])
    async def test_empty_prompt_rejected(self, orchestrator, credentials, fake_generate, prompt):
        """Blank prompts fail before any adapter call."""
        with pytest.raises(InvalidInputError):
            await orchestrator.generate_one("fake-model", prompt, credentials=credentials)
        assert fake_generate.calls == []

    @pytest.mark.asyncio
    async def test_unknown_model(self, orchestrator, credentials):
        """Unknown model ids raise ModelNotFoundError."""
        with pytest.raises(ModelNotFoundError, match="no-such-model"):
            await orchestrator.generate_one("no-such-model", "a fox", credentials=credentials)

    @pytest.mark.asyncio
    async def test_missing_credential_names_provider(self, orchestrator, fake_generate):
        """A missing key fails with the provider name and never reaches the adapter."""
        with pytest.raises(MissingCredentialError) as exc_info:
            await orchestrator.generate_one("fake-model", "a fox", credentials={"Other": "k"})

        assert exc_info.value.provider == "Fake"
        assert "Fake" in str(exc_info.value)
        assert fake_generate.calls == []

    @pytest.mark.asyncio
    async def test_unsupported_size_rejected(self, orchestrator, credentials, fake_generate):
        """A size outside supported_sizes is an input error."""
        with pytest.raises(InvalidInputError, match="999x999"):
            await orchestrator.generate_one(
                "fake-model", "a fox", "999x999", credentials=credentials
            )
        assert fake_generate.calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("size", [None, "", "  "])
    async def test_missing_size_uses_default(self, orchestrator, credentials, fake_generate, size):
        """No size falls back to the model's default_size."""
        result = await orchestrator.generate_one(
            "fake-model", "a fox", size, credentials=credentials
        )

        assert result.size == "1024x1024"
        assert fake_generate.calls[0].size.value == "1024x1024"

    @pytest.mark.asyncio
    async def test_auto_size_passed_through(self, orchestrator, credentials, fake_generate):
        """The 'auto' size parses to an auto ImageSize."""
        await orchestrator.generate_one("fake-model", "a fox", "auto", credentials=credentials)

        assert fake_generate.calls[0].size.is_auto

    @pytest.mark.asyncio
    async def test_known_option_value_forwarded(self, orchestrator, credentials, fake_generate):
        """Declared options with legal values reach the adapter."""
        await orchestrator.generate_one(
            "fake-model", "a fox", extra_options={"style": "fancy"}, credentials=credentials
        )

        assert dict(fake_generate.calls[0].options) == {"style": "fancy"}

    @pytest.mark.asyncio
    async def test_unknown_option_key_ignored(self, orchestrator, credentials, fake_generate):
        """Undeclared option names are dropped, not rejected."""
        await orchestrator.generate_one(
            "fake-model",
            "a fox",
            extra_options={"background": "transparent", "style": "plain"},
            credentials=credentials,
        )

        assert dict(fake_generate.calls[0].options) == {"style": "plain"}

    @pytest.mark.asyncio
    async def test_unknown_option_value_rejected(self, orchestrator, credentials, fake_generate):
        """Illegal values for a declared option are input errors."""
        with pytest.raises(InvalidInputError, match="style"):
            await orchestrator.generate_one(
                "fake-model", "a fox", extra_options={"style": "gaudy"}, credentials=credentials
            )
        assert fake_generate.calls == []

    @pytest.mark.asyncio
    async def test_empty_result(self, orchestrator, credentials, fake_generate):
        """A response with zero images is an EmptyResultError."""
        fake_generate.empty_prompts.add("a fox")

        with pytest.raises(EmptyResultError):
            await orchestrator.generate_one("fake-model", "a fox", credentials=credentials)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error, kind",
        [
            (ProviderAuthenticationError("bad key", provider="Fake", status_code=401), "authentication"),
            (ProviderRateLimitError("slow down", provider="Fake", status_code=429), "rate_limit"),
            (ProviderError("boom", provider="Fake", status_code=500), "generic"),
        ],
    )
    async def test_provider_errors_wrapped_with_kind(
        self, orchestrator, credentials, fake_generate, error, kind
    ):
        """Adapter failures surface as AdapterError with the kind preserved."""
        fake_generate.failures["a fox"] = error

        with pytest.raises(AdapterError) as exc_info:
            await orchestrator.generate_one("fake-model", "a fox", credentials=credentials)

        assert exc_info.value.kind == kind
        assert exc_info.value.cause is error
        assert exc_info.value.provider == "Fake"

    @pytest.mark.asyncio
    async def test_unexpected_adapter_exception_is_generic(
        self, orchestrator, credentials, fake_generate
    ):
        """Non-provider exceptions from an adapter become generic AdapterErrors."""
        fake_generate.failures["a fox"] = RuntimeError("socket exploded")

        with pytest.raises(AdapterError, match="socket exploded") as exc_info:
            await orchestrator.generate_one("fake-model", "a fox", credentials=credentials)

        assert exc_info.value.kind == "generic"

    @pytest.mark.asyncio
    async def test_no_retry_on_failure(self, orchestrator, credentials, fake_generate):
        """A failing adapter is called exactly once."""
        fake_generate.failures["a fox"] = ProviderRateLimitError("busy", provider="Fake")

        with pytest.raises(AdapterError):
            await orchestrator.generate_one("fake-model", "a fox", credentials=credentials)

        assert len(fake_generate.calls) == 1

    @pytest.mark.asyncio
    async def test_credentials_not_mutated(self, orchestrator, credentials):
        """The caller's credential mapping is left untouched."""
        snapshot = dict(credentials)

        await orchestrator.generate_one("fake-model", "a fox", credentials=credentials)

        assert credentials == snapshot


# ============================================================================
# Batch generation
# ============================================================================


class TestGenerateBatch:
    """Tests for GenerationOrchestrator.generate_batch."""

    @pytest.mark.asyncio
    async def test_outcomes_follow_input_order(self, orchestrator, credentials, fake_generate):
        """Outcomes are in prompt order even when completion order is reversed."""
        prompts = ["p0", "p1", "p2", "p3"]
        fake_generate.delays = {"p0": 0.08, "p1": 0.06, "p2": 0.04, "p3": 0.0}

        outcomes = await orchestrator.generate_batch(
            "fake-model", prompts, credentials=credentials
        )

        assert fake_generate.completion_order == ["p3", "p2", "p1", "p0"]
        assert [o.display_prompt for o in outcomes] == prompts
        assert all(isinstance(o, BatchSuccess) for o in outcomes)
        assert [o.result.prompt for o in outcomes] == prompts

    @pytest.mark.asyncio
    async def test_units_run_concurrently(self, orchestrator, credentials, fake_generate):
        """All units are in flight at the same time when unbounded."""
        prompts = [f"p{i}" for i in range(5)]
        fake_generate.delays = {p: 0.02 for p in prompts}

        await orchestrator.generate_batch("fake-model", prompts, credentials=credentials)

        assert fake_generate.max_in_flight == 5

    @pytest.mark.asyncio
    async def test_failure_is_isolated(self, orchestrator, credentials, fake_generate):
        """One failing unit yields one BatchFailure; the others still succeed."""
        prompts = ["p0", "p1", "p2", "p3"]
        fake_generate.failures["p2"] = ProviderError("boom", provider="Fake")

        outcomes = await orchestrator.generate_batch(
            "fake-model", prompts, credentials=credentials
        )

        assert len(outcomes) == 4
        assert [o.ok for o in outcomes] == [True, True, False, True]
        failure = outcomes[2]
        assert isinstance(failure, BatchFailure)
        assert failure.original_prompt == "p2"
        assert "boom" in failure.error_message
        assert isinstance(failure.error, AdapterError)

    @pytest.mark.asyncio
    async def test_invalid_unit_does_not_abort_batch(self, orchestrator, credentials):
        """A line that is only a directive fails alone with InvalidInputError."""
        outcomes = await orchestrator.generate_batch(
            "fake-model", ["a fox", "#$lonely"], credentials=credentials
        )

        assert outcomes[0].ok is True
        assert isinstance(outcomes[1].error, InvalidInputError)

    @pytest.mark.asyncio
    async def test_missing_credential_fails_every_unit(self, orchestrator, fake_generate):
        """Without a key every unit fails, each with the provider named."""
        outcomes = await orchestrator.generate_batch(
            "fake-model", ["p0", "p1"], credentials={}
        )

        assert [o.ok for o in outcomes] == [False, False]
        assert all(isinstance(o.error, MissingCredentialError) for o in outcomes)
        assert all("Fake" in o.error_message for o in outcomes)
        assert fake_generate.calls == []

    @pytest.mark.asyncio
    async def test_progress_is_monotonic_and_complete(
        self, orchestrator, credentials, fake_generate
    ):
        """Progress fires once per unit, never decreases, and ends at n."""
        prompts = ["p0", "p1", "p2", "p3", "p4"]
        fake_generate.delays = {"p0": 0.03, "p3": 0.01}
        fake_generate.failures["p1"] = ProviderError("boom", provider="Fake")
        seen: list[tuple[int, int]] = []

        await orchestrator.generate_batch(
            "fake-model",
            prompts,
            credentials=credentials,
            on_progress=lambda done, total: seen.append((done, total)),
        )

        counts = [done for done, _ in seen]
        assert len(seen) == 5
        assert counts == sorted(counts)
        assert counts == [1, 2, 3, 4, 5]
        assert {total for _, total in seen} == {5}

    @pytest.mark.asyncio
    async def test_async_progress_callback(self, orchestrator, credentials):
        """Coroutine progress callbacks are awaited."""
        seen: list[int] = []

        async def on_progress(done: int, total: int) -> None:
            await asyncio.sleep(0)
            seen.append(done)

        await orchestrator.generate_batch(
            "fake-model", ["p0", "p1"], credentials=credentials, on_progress=on_progress
        )

        assert seen == [1, 2]

    @pytest.mark.asyncio
    async def test_failing_progress_callback_keeps_outcomes(
        self, orchestrator, credentials, fake_generate
    ):
        """A raising progress callback neither aborts the batch nor loses outcomes."""
        prompts = ["p0", "p1", "p2"]
        fake_generate.delays = {"p1": 0.02, "p2": 0.04}
        seen: list[int] = []

        def on_progress(done: int, total: int) -> None:
            seen.append(done)
            if done == 1:
                raise RuntimeError("ui broke")

        outcomes = await orchestrator.generate_batch(
            "fake-model", prompts, credentials=credentials, on_progress=on_progress
        )

        assert [o.display_prompt for o in outcomes] == prompts
        assert all(o.ok for o in outcomes)
        assert fake_generate.completion_order == ["p0", "p1", "p2"]
        assert fake_generate.in_flight == 0
        assert seen == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_unexpected_unit_exception_becomes_failure(
        self, orchestrator, credentials, monkeypatch
    ):
        """Non-generation exceptions in a unit are captured like any other failure."""
        original = orchestrator.generate_one

        async def generate_one(model_id, prompt, *args, **kwargs):
            if prompt == "p1":
                raise KeyError("boom")
            return await original(model_id, prompt, *args, **kwargs)

        monkeypatch.setattr(orchestrator, "generate_one", generate_one)

        outcomes = await orchestrator.generate_batch(
            "fake-model", ["p0", "p1"], credentials=credentials
        )

        assert [o.ok for o in outcomes] == [True, False]
        assert isinstance(outcomes[1].error, KeyError)
        assert "boom" in outcomes[1].error_message

    @pytest.mark.asyncio
    async def test_filename_directive_is_extracted(self, orchestrator, credentials, fake_generate):
        """The #$name directive is stripped from the prompt and surfaced separately."""
        outcomes = await orchestrator.generate_batch(
            "fake-model", ["a red fox #$fox1", "a blue fox"], credentials=credentials
        )

        first, second = outcomes
        assert first.original_prompt == "a red fox #$fox1"
        assert first.display_prompt == "a red fox"
        assert first.suggested_filename == "fox1"
        assert second.display_prompt == "a blue fox"
        assert second.suggested_filename is None
        assert [c.prompt for c in fake_generate.calls] == ["a red fox", "a blue fox"]

    @pytest.mark.asyncio
    async def test_blank_lines_dropped(self, orchestrator, credentials, fake_generate):
        """Blank lines do not become units of work."""
        outcomes = await orchestrator.generate_batch(
            "fake-model", "p0\n\n   \np1\n", credentials=credentials
        )

        assert [o.display_prompt for o in outcomes] == ["p0", "p1"]
        assert len(fake_generate.calls) == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("prompts", ["", "  \n\t\n", ["", "   "], []])
    async def test_empty_batch_rejected_before_dispatch(
        self, orchestrator, credentials, fake_generate, prompts
    ):
        """A batch with no usable lines fails without invoking the adapter."""
        progress: list[int] = []

        with pytest.raises(InvalidInputError):
            await orchestrator.generate_batch(
                "fake-model",
                prompts,
                credentials=credentials,
                on_progress=lambda done, total: progress.append(done),
            )

        assert fake_generate.calls == []
        assert progress == []

    @pytest.mark.asyncio
    async def test_size_and_options_apply_to_every_unit(
        self, orchestrator, credentials, fake_generate
    ):
        """Batch-wide size and options reach each request."""
        await orchestrator.generate_batch(
            "fake-model",
            ["p0", "p1"],
            "512x512",
            {"style": "fancy"},
            credentials=credentials,
        )

        assert {c.size.value for c in fake_generate.calls} == {"512x512"}
        assert all(dict(c.options) == {"style": "fancy"} for c in fake_generate.calls)


class TestConcurrencyCap:
    """Tests for the optional max_concurrency bound."""

    def test_invalid_cap_rejected(self, fake_registry):
        """A cap below one is a programming error."""
        with pytest.raises(ValueError):
            GenerationOrchestrator(fake_registry, max_concurrency=0)

    @pytest.mark.asyncio
    async def test_cap_limits_in_flight_units(self, fake_registry, credentials, fake_generate):
        """No more than max_concurrency units run at once, and order is kept."""
        orchestrator = GenerationOrchestrator(fake_registry, max_concurrency=2)
        prompts = [f"p{i}" for i in range(6)]
        fake_generate.delays = {p: 0.01 for p in prompts}

        outcomes = await orchestrator.generate_batch(
            "fake-model", prompts, credentials=credentials
        )

        assert fake_generate.max_in_flight == 2
        assert [o.display_prompt for o in outcomes] == prompts
