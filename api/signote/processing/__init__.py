"""LLM processing - note extraction, goal inference and persistence."""

from signote.processing.extraction import (
    CEODetection,
    ExtractedAction,
    ExtractedTopic,
    ExtractionError,
    ExtractionResult,
    GoalInferrer,
    InferredGoal,
    NoteExtractor,
    get_goal_inferrer,
    get_note_extractor,
    normalize_key,
    reset_goal_inferrer,
    reset_note_extractor,
)
from signote.processing.ingest import IngestResult, process_note, store_extraction
from signote.processing.llm import (
    LLMProvider,
    LLMProviderBase,
    LLMResult,
    LLMService,
    OllamaLLMProvider,
    OpenAILLMProvider,
    get_llm_service,
    reset_llm_service,
)

__all__ = [
    # Extraction
    "CEODetection",
    "ExtractedAction",
    "ExtractedTopic",
    "ExtractionError",
    "ExtractionResult",
    "NoteExtractor",
    "get_note_extractor",
    "normalize_key",
    "reset_note_extractor",
    # Goal inference
    "GoalInferrer",
    "InferredGoal",
    "get_goal_inferrer",
    "reset_goal_inferrer",
    # Ingest
    "IngestResult",
    "process_note",
    "store_extraction",
    # LLM
    "LLMProvider",
    "LLMProviderBase",
    "LLMResult",
    "LLMService",
    "OllamaLLMProvider",
    "OpenAILLMProvider",
    "get_llm_service",
    "reset_llm_service",
]
