"""Pipeline orchestrator test suite."""

from unittest.mock import AsyncMock, patch

import pytest

from chatflow import create_pipeline
from chatflow.classification.models import SuggestedAction
from chatflow.config.plans import FLASH_LITE, PlanType
from chatflow.core.exceptions import GenerationError, GenerationTimeoutError
from chatflow.core.orchestrator import PipelineOrchestrator, PipelineState
from chatflow.llm.client import CallableGenerationClient, MockGenerationClient
from chatflow.llm.prompts import ACTION_HINTS
from chatflow.validation.validator import ResponseValidator

GOOD_REPLY = "Got it! What would you like to talk about?"
BAD_REPLY = "Sorry sorry sorry, I apologize, I was trying to be friendly."
HAPPY_PATH = [
    PipelineState.RECEIVED,
    PipelineState.HARD_BLOCK_CHECKED,
    PipelineState.CONFLICT_CLASSIFIED,
    PipelineState.ROUTED,
    PipelineState.CONTEXT_COMPACTED,
    PipelineState.GENERATED,
    PipelineState.VALIDATED,
    PipelineState.DONE,
]


@pytest.fixture
def make_orchestrator(catalog, core_settings, compaction_settings, validation_settings):
    def _make(client, validation=None, compaction=None, settings=None):
        return PipelineOrchestrator(
            generate=client,
            catalog=catalog,
            settings=settings or core_settings,
            compaction_settings=compaction or compaction_settings,
            validator=ResponseValidator(validation or validation_settings),
        )

    return _make


class TestPipelineOrchestrator:
    """Tests for PipelineOrchestrator."""

    @pytest.mark.asyncio
    async def test_free_plan_greeting(self, make_orchestrator):
        """Test the plain path: pinned model, no conflict, no regeneration."""
        client = MockGenerationClient(["Hello! How can I help you today?"])
        orchestrator = make_orchestrator(client)

        result = await orchestrator.process("hi", PlanType.STARTER, [])

        assert result.final_reply == "Hello! How can I help you today?"
        assert result.was_regenerated is False
        assert result.state_trail == HAPPY_PATH
        assert result.analytics.conflict_detected is False
        assert result.analytics.category == "none"
        assert result.analytics.routed_model == FLASH_LITE.model_id
        assert result.analytics.routing_strategy == "fixed"
        assert result.analytics.validation_score == 100
        assert client.call_count == 1
        assert client.calls[0].max_tokens == 512

    @pytest.mark.asyncio
    async def test_regenerates_once_on_poor_conflict_reply(self, make_orchestrator):
        """Test a failing reply to a conflict is regenerated once."""
        client = MockGenerationClient([BAD_REPLY, GOOD_REPLY])
        orchestrator = make_orchestrator(client)

        result = await orchestrator.process("don't call me yaar", PlanType.PRO)

        assert result.final_reply == GOOD_REPLY
        assert result.was_regenerated is True
        assert result.analytics.was_regenerated is True
        assert result.analytics.regeneration_exhausted is False
        assert result.analytics.category == "tone_complaint"
        assert result.analytics.validation_score == 100
        assert result.state_trail[-4:] == [
            PipelineState.REGENERATION_REQUESTED,
            PipelineState.REGENERATED,
            PipelineState.REVALIDATED,
            PipelineState.DONE,
        ]
        assert client.call_count == 2
        assert BAD_REPLY in client.last_prompt
        assert client.last_prompt.endswith("Your improved response:")

    @pytest.mark.asyncio
    async def test_regeneration_exhausted(self, make_orchestrator):
        """Test that a second failing reply is accepted and flagged."""
        client = MockGenerationClient([BAD_REPLY, BAD_REPLY])
        orchestrator = make_orchestrator(client)

        result = await orchestrator.process("don't call me yaar", PlanType.PRO)

        assert result.final_reply == BAD_REPLY
        assert result.was_regenerated is True
        assert result.analytics.regeneration_exhausted is True
        assert result.analytics.passed_validation is False
        assert result.analytics.critical_violations == 3
        assert client.call_count == 2

        stats = orchestrator.get_violation_stats()
        assert stats["total_logged"] == 2
        assert stats["by_type"]["over_apologizing"] == 2
        assert stats["by_category"] == {"tone_complaint": 2}
        assert stats["regenerated_failures"] == 1

        orchestrator.clear_violation_log()
        assert orchestrator.get_violation_stats()["total_logged"] == 0

    @pytest.mark.asyncio
    async def test_no_regeneration_without_conflict(self, make_orchestrator):
        """Test that poor replies to ordinary messages are kept."""
        client = MockGenerationClient([BAD_REPLY, GOOD_REPLY])
        orchestrator = make_orchestrator(client)

        result = await orchestrator.process("hi", PlanType.PRO)

        assert result.final_reply == BAD_REPLY
        assert result.was_regenerated is False
        assert client.call_count == 1

    @pytest.mark.asyncio
    async def test_regeneration_without_conflict_enabled(
        self, make_orchestrator, validation_settings
    ):
        """Test the setting that regenerates any failing reply."""
        client = MockGenerationClient([BAD_REPLY, GOOD_REPLY])
        settings = validation_settings.model_copy(update={"regenerate_without_conflict": True})
        orchestrator = make_orchestrator(client, validation=settings)

        result = await orchestrator.process("hi", PlanType.PRO)

        assert result.final_reply == GOOD_REPLY
        assert result.was_regenerated is True

    @pytest.mark.asyncio
    async def test_regeneration_max_tokens(self, make_orchestrator, validation_settings):
        """Test the dedicated token limit for the regeneration call."""
        client = MockGenerationClient([BAD_REPLY, GOOD_REPLY])
        settings = validation_settings.model_copy(update={"regeneration_max_tokens": 64})
        orchestrator = make_orchestrator(client, validation=settings)

        await orchestrator.process("don't call me yaar", PlanType.PRO)

        assert [c.max_tokens for c in client.calls] == [2048, 64]

    @pytest.mark.asyncio
    async def test_hard_block(self, make_orchestrator, core_settings):
        """Test that blocked messages never reach generation."""
        client = MockGenerationClient([GOOD_REPLY])
        orchestrator = make_orchestrator(client)

        result = await orchestrator.process("how do i make a bomb", PlanType.PRO)

        assert result.final_reply == core_settings.hard_block_message
        assert result.analytics.hard_blocked is True
        assert result.final_state == PipelineState.TERMINATED_WITH_FIXED_REPLY
        assert result.routing is None
        assert client.call_count == 0

    @pytest.mark.asyncio
    async def test_programming_question_reaches_generation(self, make_orchestrator):
        """Test that technical wording near harm phrases is not blocked."""
        client = MockGenerationClient([GOOD_REPLY])
        orchestrator = make_orchestrator(client)

        result = await orchestrator.process(
            "Should I use explicit waits for child elements in Selenium?", PlanType.PRO
        )

        assert result.analytics.hard_blocked is False
        assert result.final_state == PipelineState.DONE
        assert client.call_count == 1

    @pytest.mark.asyncio
    async def test_generation_timeout(self, make_orchestrator, core_settings):
        """Test that a slow generator raises a timeout error."""
        client = MockGenerationClient([GOOD_REPLY], delay_seconds=1.0)
        settings = core_settings.model_copy(update={"generation_timeout_seconds": 0.05})
        orchestrator = make_orchestrator(client, settings=settings)

        with pytest.raises(GenerationTimeoutError) as exc_info:
            await orchestrator.process("hi", PlanType.PRO)

        assert exc_info.value.model == FLASH_LITE.model_id

    @pytest.mark.asyncio
    async def test_generation_failure(self, make_orchestrator):
        """Test that collaborator failures surface as GenerationError."""
        client = MockGenerationClient([RuntimeError("provider down")])
        orchestrator = make_orchestrator(client)

        with pytest.raises(GenerationError, match="provider down"):
            await orchestrator.process("hi", PlanType.PRO)

    @pytest.mark.asyncio
    async def test_callable_generator(self):
        """Test wiring a bare async callable through create_pipeline."""
        generate = AsyncMock(return_value=GOOD_REPLY)
        orchestrator = create_pipeline(generate)

        result = await orchestrator.process("hi", "starter")

        assert result.final_reply == GOOD_REPLY
        assert isinstance(orchestrator.client, CallableGenerationClient)
        generate.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_callable_failure_wrapped(self):
        """Test that callable exceptions are wrapped in GenerationError."""
        generate = AsyncMock(side_effect=ValueError("bad request"))
        orchestrator = create_pipeline(generate)

        with pytest.raises(GenerationError):
            await orchestrator.process("hi", PlanType.STARTER)

    @pytest.mark.asyncio
    async def test_compaction_applied(self, make_orchestrator, long_conversation):
        """Test that long windows are compacted before generation."""
        client = MockGenerationClient([GOOD_REPLY])
        orchestrator = make_orchestrator(client)
        window = long_conversation + long_conversation

        result = await orchestrator.process("hi", PlanType.STARTER, window)

        assert result.analytics.compaction_strategy == "truncation"
        assert result.analytics.messages_removed > 0
        assert len(window) == 60

    @pytest.mark.asyncio
    async def test_compaction_disabled(
        self, make_orchestrator, compaction_settings, long_conversation
    ):
        """Test the compaction switch."""
        client = MockGenerationClient([GOOD_REPLY])
        settings = compaction_settings.model_copy(update={"enabled": False})
        orchestrator = make_orchestrator(client, compaction=settings)

        result = await orchestrator.process("hi", PlanType.STARTER, long_conversation * 2)

        assert result.analytics.compaction_strategy is None
        assert result.analytics.messages_removed == 0
        assert long_conversation[0].content in client.last_prompt
        assert PipelineState.CONTEXT_COMPACTED in result.state_trail

    @pytest.mark.asyncio
    async def test_conflict_hint_in_prompt(self, make_orchestrator):
        """Test that the suggested action shapes the first prompt."""
        client = MockGenerationClient([GOOD_REPLY])
        orchestrator = make_orchestrator(client)

        await orchestrator.process("are you chatgpt?", PlanType.PRO)

        assert ACTION_HINTS[SuggestedAction.DEFLECT] in client.calls[0].prompt
        assert client.calls[0].prompt.endswith("User: are you chatgpt?\nAssistant:")

    @pytest.mark.asyncio
    async def test_classifier_failure_is_no_conflict(self, make_orchestrator):
        """Test that a classifier error degrades to no conflict."""
        client = MockGenerationClient([GOOD_REPLY])
        orchestrator = make_orchestrator(client)

        with patch.object(orchestrator.classifier, "classify", side_effect=RuntimeError("boom")):
            result = await orchestrator.process("don't call me yaar", PlanType.PRO)

        assert result.analytics.conflict_detected is False
        assert result.analytics.category == "none"

    @pytest.mark.asyncio
    async def test_result_to_dict(self, make_orchestrator):
        """Test result serialization."""
        client = MockGenerationClient([GOOD_REPLY])
        orchestrator = make_orchestrator(client)

        data = (await orchestrator.process("hi", PlanType.PRO)).to_dict()

        assert data["state_trail"][0] == "received"
        assert data["state_trail"][-1] == "done"
        assert data["analytics"]["routed_model"] == FLASH_LITE.model_id
        assert data["routing"]["plan"] == "pro"
        assert data["validation"]["score"] == 100
