"""Unit tests for the context assembler"""

import pytest

import flint.core.engine as engine_module
from flint import ContextAssembler, FlintConfig, SemanticMemoryService
from flint.core.errors import (
    BackendUnavailableError,
    GenerationTimeoutError,
    SemanticUnavailableError,
    UserActivationRequiredError,
)
from flint.services import Availability, AvailabilityCache, MockCapabilityProvider

SOLAR_DOC = (
    "# Solar Guide\n\n"
    "Solar panels convert sunlight into electricity.\n\n"
    "## Installation\n\n"
    "Mount the panels on a south facing roof."
)
NOTES = ["Use metric units for solar panels", "Always mention the cat's name"]


class UnavailableMemory:
    async def filter_for_ai(self, documents, query, options=None):
        raise SemanticUnavailableError("no vocabulary")


def test_assembler_initialization(default_config):
    """Test that the assembler initializes correctly."""
    provider = MockCapabilityProvider()
    assembler = ContextAssembler(default_config, provider=provider)
    assert assembler.config == default_config
    assert assembler.availability_cache.ttl == default_config.availability_ttl


@pytest.mark.asyncio
async def test_assemble_prompt(default_config):
    assembler = ContextAssembler(default_config)
    payload = await assembler.assemble("continue writing", SOLAR_DOC, len(SOLAR_DOC), NOTES)

    assert not payload.degraded
    assert payload.notes == NOTES
    assert "CONTEXT BEFORE CURSOR:" in payload.context
    assert 'Continue writing about: "Installation"' in payload.instructions
    assert payload.prompt.endswith("Task: continue writing\n\nWrite:")
    assert payload.total_chars == len(payload.prompt) <= default_config.max_prompt_chars
    assert payload.metrics.notes_total == 2


@pytest.mark.asyncio
async def test_notes_filtered_semantically(default_config):
    assembler = ContextAssembler(default_config, memory_service=SemanticMemoryService())
    notes = await assembler.filter_pinned_notes(
        NOTES, "write about solar panels Solar panels convert sunlight into electricity."
    )
    assert notes == ["Use metric units for solar panels"]


@pytest.mark.asyncio
async def test_notes_unfiltered_when_semantics_unavailable(default_config):
    assembler = ContextAssembler(default_config, memory_service=UnavailableMemory())
    assert await assembler.filter_pinned_notes(NOTES, "solar") == NOTES


@pytest.mark.asyncio
async def test_degrades_to_local_window(monkeypatch, default_config):
    def broken(*args, **kwargs):
        raise RuntimeError("sectioning failed")

    monkeypatch.setattr(engine_module, "assemble_context", broken)
    assembler = ContextAssembler(default_config)

    payload = await assembler.assemble("continue", SOLAR_DOC, 20)

    assert payload.degraded
    assert payload.instructions == ""
    assert "Solar panels" in payload.context
    assert len(payload.prompt) <= default_config.max_prompt_chars


@pytest.mark.asyncio
async def test_prompt_budget_drops_notes_first(long_article):
    config = FlintConfig(max_prompt_chars=900)
    notes = [f"Guideline number {i} " + "detail " * 20 for i in range(10)]
    assembler = ContextAssembler(config)

    payload = await assembler.assemble("continue", long_article, 300, notes)

    assert len(payload.prompt) <= 900
    assert len(payload.notes) < len(notes)
    assert payload.notes == notes[: len(payload.notes)]


@pytest.mark.asyncio
async def test_tiny_prompt_budget_still_holds(long_article):
    config = FlintConfig(max_prompt_chars=120)
    payload = await ContextAssembler(config).assemble("continue", long_article, 300, NOTES)
    assert len(payload.prompt) <= 120
    assert payload.notes == []


class TestGenerate:
    @pytest.mark.asyncio
    async def test_generates_text(self, default_config):
        provider = MockCapabilityProvider(response="More text.")
        assembler = ContextAssembler(default_config, provider=provider)

        text = await assembler.generate("continue", SOLAR_DOC, len(SOLAR_DOC))

        assert text == "More text."
        assert provider.prompts[0].endswith("Task: continue\n\nWrite:")

    @pytest.mark.asyncio
    async def test_no_provider(self, default_config):
        with pytest.raises(BackendUnavailableError):
            await ContextAssembler(default_config).generate("continue", SOLAR_DOC, 0)

    @pytest.mark.asyncio
    async def test_unavailable(self, default_config):
        provider = MockCapabilityProvider(status=Availability.UNAVAILABLE)
        with pytest.raises(BackendUnavailableError):
            await ContextAssembler(default_config, provider=provider).generate("continue", SOLAR_DOC, 0)
        assert provider.prompts == []

    @pytest.mark.asyncio
    async def test_after_download_requires_user_activation(self, default_config):
        provider = MockCapabilityProvider(status=Availability.AFTER_DOWNLOAD)
        assembler = ContextAssembler(default_config, provider=provider)

        with pytest.raises(UserActivationRequiredError):
            await assembler.generate("continue", SOLAR_DOC, 0)
        assert await assembler.generate("continue", SOLAR_DOC, 0, user_activated=True)

    @pytest.mark.asyncio
    async def test_timeout(self):
        config = FlintConfig(generation_timeout=0.01)
        provider = MockCapabilityProvider(delay=1.0)
        with pytest.raises(GenerationTimeoutError):
            await ContextAssembler(config, provider=provider).generate("continue", SOLAR_DOC, 0)

    @pytest.mark.asyncio
    async def test_backend_errors_pass_through(self, default_config):
        provider = MockCapabilityProvider(error=RuntimeError("model crashed"))
        with pytest.raises(RuntimeError, match="model crashed"):
            await ContextAssembler(default_config, provider=provider).generate("continue", SOLAR_DOC, 0)

    @pytest.mark.asyncio
    async def test_availability_is_cached(self, default_config, fake_clock):
        provider = MockCapabilityProvider()
        cache = AvailabilityCache(provider, ttl=60.0, clock=fake_clock)
        assembler = ContextAssembler(default_config, provider=provider, availability_cache=cache)

        await assembler.generate("one", SOLAR_DOC, 0)
        await assembler.generate("two", SOLAR_DOC, 0)
        assert provider.availability_calls == 1


@pytest.mark.asyncio
async def test_remember_and_search(default_config):
    assembler = ContextAssembler(default_config, memory_service=SemanticMemoryService())
    memory_id = await assembler.remember("solar panels on the roof")

    results = await assembler.search_memory("solar panels")
    assert [r.id for r in results] == [memory_id]


@pytest.mark.asyncio
async def test_memory_helpers_without_service(default_config):
    assembler = ContextAssembler(default_config)
    assert await assembler.remember("anything") is None
    assert await assembler.search_memory("anything") == []


@pytest.mark.asyncio
async def test_semantic_filtering_can_be_disabled(default_config):
    assembler = ContextAssembler(default_config, memory_service=SemanticMemoryService())
    payload = await assembler.assemble(
        "write about solar panels", SOLAR_DOC, len(SOLAR_DOC), NOTES, enable_semantic_filtering=False
    )
    assert payload.notes == NOTES


class TestRewrite:
    TEXT = "Solar panels convert sunlight into electricity."

    @pytest.mark.asyncio
    async def test_notes_filtered_against_instruction_and_text(self, default_config):
        provider = MockCapabilityProvider(response="Rewritten.")
        assembler = ContextAssembler(
            default_config, memory_service=SemanticMemoryService(), provider=provider
        )

        assert await assembler.rewrite(self.TEXT, "make it formal", NOTES) == "Rewritten."

        [prompt] = provider.prompts
        assert "Audience and tone guidance:\n- Use metric units for solar panels" in prompt
        assert "cat's name" not in prompt
        assert f'Text to edit:\n"{self.TEXT}"' in prompt

    @pytest.mark.asyncio
    async def test_filtering_disabled_keeps_every_note(self, default_config):
        provider = MockCapabilityProvider()
        assembler = ContextAssembler(
            default_config, memory_service=SemanticMemoryService(), provider=provider
        )

        await assembler.rewrite(self.TEXT, "make it formal", NOTES, enable_semantic_filtering=False)

        assert all(note in provider.prompts[0] for note in NOTES)

    @pytest.mark.asyncio
    async def test_notes_dropped_to_fit_prompt(self):
        provider = MockCapabilityProvider()
        assembler = ContextAssembler(FlintConfig(max_prompt_chars=120), provider=provider)

        await assembler.rewrite("teh cat", "Fix spelling", ["Guideline " + "detail " * 30])

        assert provider.prompts == ['Fix spelling\n\nText to edit:\n"teh cat"\n\nEdited version:']

    @pytest.mark.asyncio
    async def test_requires_backend(self, default_config):
        with pytest.raises(BackendUnavailableError):
            await ContextAssembler(default_config).rewrite("teh cat", "Fix spelling")
