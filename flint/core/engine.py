"""Top-level context assembler: prompt building, generation and rewriting."""

from typing import Any, Dict, List, Optional, Sequence

from flint.analysis.document_analysis import (
    analyze_cursor_context,
    build_context_instructions,
    detect_document_type,
)
from flint.core.context_engine import assemble_context
from flint.core.errors import (
    BackendUnavailableError,
    SemanticUnavailableError,
    UserActivationRequiredError,
)
from flint.core.models import (
    AssembledContext,
    FlintConfig,
    PromptPayload,
    ScoredMemoryItem,
    SemanticSearchOptions,
)
from flint.phases.phase1_local_window import get_local_context
from flint.phases.phase5_compression import format_context_for_prompt
from flint.semantic.service import SemanticMemoryService
from flint.services.generation import (
    Availability,
    AvailabilityCache,
    CapabilityProvider,
    generate_with_timeout,
)
from flint.services.prompts import build_generate_prompt, build_rewrite_prompt
from flint.utils import AssemblyMetrics, PerformanceTracker, get_logger

logger = get_logger(__name__)


def _clean_notes(notes: Optional[Sequence[str]]) -> List[str]:
    return [note for note in notes or [] if note and note.strip()]


class ContextAssembler:
    """Builds prompts from lexical context, document analysis and pinned notes."""

    def __init__(
        self,
        config: Optional[FlintConfig] = None,
        memory_service: Optional[SemanticMemoryService] = None,
        provider: Optional[CapabilityProvider] = None,
        availability_cache: Optional[AvailabilityCache] = None,
    ):
        """
        Initialize the assembler.

        Args:
            config: Budgets and thresholds
            memory_service: Optional semantic memory used to filter pinned
                notes; without it every note is kept
            provider: Optional generative backend used by ``generate``
            availability_cache: Optional cache in front of ``provider``;
                one with ``config.availability_ttl`` is created when omitted
        """
        self.config = config or FlintConfig()
        self.memory_service = memory_service
        self.provider = provider
        if availability_cache is None and provider is not None:
            availability_cache = AvailabilityCache(provider, ttl=self.config.availability_ttl)
        self.availability_cache = availability_cache
        self.last_metrics: Optional[AssemblyMetrics] = None

    async def filter_pinned_notes(self, notes: Sequence[str], query: str) -> List[str]:
        """
        Keep the pinned notes most relevant to ``query``.

        Falls back to the unfiltered notes when semantic filtering is not
        available.
        """
        notes = _clean_notes(notes)
        if not notes or self.memory_service is None:
            return notes

        documents = [{"id": f"note-{i}", "text": note} for i, note in enumerate(notes)]
        options = SemanticSearchOptions(
            top_k=self.config.semantic_top_k,
            min_semantic_score=self.config.semantic_min_score,
            max_jaccard_score=self.config.notes_max_jaccard,
        )
        try:
            results = await self.memory_service.filter_for_ai(documents, query, options)
        except SemanticUnavailableError as e:
            logger.warn(f"Semantic filtering unavailable, using all notes: {e}")
            return notes
        except Exception as e:
            logger.error("Semantic filtering failed, using all notes", error=e)
            return notes

        by_id = {doc["id"]: doc["text"] for doc in documents}
        filtered = [by_id[result.id] for result in results]
        logger.debug(f"Filtered {len(notes)} notes -> {len(filtered)} relevant notes")
        return filtered

    def _fallback_context(self, full_text: str, cursor_pos: int) -> AssembledContext:
        """Local window only, trimmed to the context budget."""
        window = min(self.config.local_window, self.config.context_char_budget)
        local = get_local_context(full_text or "", cursor_pos, window)
        return AssembledContext(
            local_context=local.text,
            related_chunks=[],
            total_chars=len(local.text),
            cursor_offset=local.cursor_offset,
        )

    def _fit_prompt(
        self,
        instruction: str,
        context: AssembledContext,
        instructions: str,
        notes: List[str],
        nearest_heading: Optional[str],
        project_title: Optional[str],
        date_time: Optional[str],
    ):
        """Render the prompt, shedding notes, then related sections, then local text."""
        limit = self.config.max_prompt_chars
        notes = list(notes)

        def render(formatted: str) -> str:
            return build_generate_prompt(
                instruction,
                formatted,
                instructions=instructions,
                notes=notes,
                nearest_heading=nearest_heading,
                project_title=project_title,
                date_time=date_time,
            )

        formatted = format_context_for_prompt(context)
        prompt = render(formatted)
        while notes and len(prompt) > limit:
            notes.pop()
            prompt = render(formatted)

        if len(prompt) > limit:
            # Two newlines separate the context block from its neighbours
            room = limit - len(render("")) - 2
            formatted = format_context_for_prompt(context, max_chars=room) if room > 0 else ""
            prompt = render(formatted)

        if len(prompt) > limit:
            logger.warn(f"Prompt still {len(prompt)} chars after trimming, truncating to {limit}")
            prompt = prompt[:limit]

        return prompt, formatted, notes

    async def assemble(
        self,
        instruction: str,
        full_text: str,
        cursor_pos: int,
        pinned_notes: Optional[Sequence[str]] = None,
        project_title: Optional[str] = None,
        date_time: Optional[str] = None,
        enable_semantic_filtering: bool = True,
    ) -> PromptPayload:
        """
        Assemble the prompt for a generation request.

        Args:
            instruction: What the user asked for
            full_text: Full document text
            cursor_pos: Cursor offset
            pinned_notes: Caller-supplied guidance notes
            project_title: Optional document title
            date_time: Optional current date and time as display text
            enable_semantic_filtering: Filter pinned notes by relevance;
                when False every note is offered to the prompt

        Returns:
            PromptPayload whose prompt never exceeds ``max_prompt_chars``.
            ``degraded`` is set when only the local window could be used.
        """
        metrics = AssemblyMetrics()
        degraded = False
        instructions = ""
        nearest_heading = None

        with PerformanceTracker(metrics):
            try:
                context = assemble_context(full_text, cursor_pos, config=self.config, metrics=metrics)
                doc_type = detect_document_type(full_text)
                cursor_context = analyze_cursor_context(full_text, cursor_pos)
                instructions = build_context_instructions(doc_type, cursor_context)
                nearest_heading = cursor_context.nearest_heading
            except Exception as e:
                logger.error("Context assembly failed, falling back to local window", error=e)
                context = self._fallback_context(full_text, cursor_pos)
                degraded = True

            notes = _clean_notes(pinned_notes)
            if enable_semantic_filtering:
                notes = await self.filter_pinned_notes(
                    notes, f"{instruction} {context.local_context}"
                )
            prompt, formatted, notes = self._fit_prompt(
                instruction,
                context,
                instructions,
                notes,
                nearest_heading,
                project_title,
                date_time,
            )

        metrics.notes_total = len(pinned_notes or [])
        metrics.notes_used = len(notes)
        metrics.degraded = degraded
        self.last_metrics = metrics
        logger.debug(
            f"Assembled prompt: {len(prompt)} chars, {len(notes)} notes, degraded={degraded}"
        )

        return PromptPayload(
            prompt=prompt,
            context=formatted,
            instructions=instructions,
            notes=notes,
            total_chars=len(prompt),
            degraded=degraded,
            metrics=metrics,
        )

    async def generate(
        self,
        instruction: str,
        full_text: str,
        cursor_pos: int,
        pinned_notes: Optional[Sequence[str]] = None,
        user_activated: bool = False,
        project_title: Optional[str] = None,
        enable_semantic_filtering: bool = True,
    ) -> str:
        """
        Assemble a prompt and send it to the generative backend.

        Raises:
            BackendUnavailableError: no provider, or the provider is unavailable
            UserActivationRequiredError: the backend needs a download that
                only an explicit user action may start
            GenerationTimeoutError: the backend did not answer in time

        Errors raised by the backend itself pass through unchanged.
        """
        await self._require_backend(user_activated)
        payload = await self.assemble(
            instruction,
            full_text,
            cursor_pos,
            pinned_notes,
            project_title=project_title,
            enable_semantic_filtering=enable_semantic_filtering,
        )
        logger.info(f"Generating with {payload.total_chars} char prompt")
        return await generate_with_timeout(
            self.provider, payload.prompt, self.config.generation_timeout
        )

    async def rewrite(
        self,
        text: str,
        instruction: str,
        pinned_notes: Optional[Sequence[str]] = None,
        enable_semantic_filtering: bool = True,
        user_activated: bool = False,
        date_time: Optional[str] = None,
    ) -> str:
        """
        Rewrite ``text`` following ``instruction``.

        Pinned notes are matched against the instruction and the text itself
        and passed along as audience and tone guidance. Notes are dropped from
        the end while the prompt exceeds ``max_prompt_chars``; the text is
        always sent whole.

        Raises:
            Same as ``generate``.
        """
        await self._require_backend(user_activated)

        notes = _clean_notes(pinned_notes)
        if enable_semantic_filtering:
            notes = await self.filter_pinned_notes(notes, f"{instruction} {text}")

        prompt = build_rewrite_prompt(text, instruction, notes=notes, date_time=date_time)
        while notes and len(prompt) > self.config.max_prompt_chars:
            notes.pop()
            prompt = build_rewrite_prompt(text, instruction, notes=notes, date_time=date_time)
        if len(prompt) > self.config.max_prompt_chars:
            logger.warn(
                f"Rewrite prompt is {len(prompt)} chars, over the "
                f"{self.config.max_prompt_chars} char limit"
            )

        logger.info(f"Rewriting {len(text)} chars with {len(notes)} notes")
        return await generate_with_timeout(self.provider, prompt, self.config.generation_timeout)

    async def _require_backend(self, user_activated: bool) -> None:
        if self.provider is None or self.availability_cache is None:
            raise BackendUnavailableError("No generative backend configured")

        status = await self.availability_cache.get()
        if status is Availability.UNAVAILABLE:
            raise BackendUnavailableError("Generative backend is unavailable")
        if status is Availability.AFTER_DOWNLOAD and not user_activated:
            raise UserActivationRequiredError(
                "Generative backend must be downloaded; a user action is required"
            )

    async def remember(self, text: str, metadata: Optional[Dict[str, Any]] = None) -> Optional[str]:
        """Store ``text`` in semantic memory; returns the memory id, or None on failure."""
        if self.memory_service is None:
            return None
        try:
            memory = await self.memory_service.add_memory(text, metadata)
        except Exception as e:
            logger.error("Failed to remember text", error=e)
            return None
        return memory.id

    async def search_memory(self, query: str, top_k: int = 5) -> List[ScoredMemoryItem]:
        if self.memory_service is None:
            return []
        try:
            return await self.memory_service.search(query, SemanticSearchOptions(top_k=top_k))
        except Exception as e:
            logger.error("Memory search failed", error=e)
            return []
