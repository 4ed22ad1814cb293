"""prompt-condenser: shrink natural-language prompts before they reach a language model."""

from prompt_condenser.codec import (
    DecodeAnalysis,
    DecodeResult,
    SymbolicCodec,
    SymbolicText,
    SymbolOccurrence,
)
from prompt_condenser.dictionary import (
    SymbolCategory,
    SymbolDictionary,
    SymbolEntry,
    default_dictionary,
)
from prompt_condenser.errors import DictionaryLoadConflict, InvalidInputError
from prompt_condenser.pipeline import (
    CompressionPipeline,
    CompressionResult,
    CompressionStage,
    compress,
)
from prompt_condenser.preprocessor import HybridPreprocessor, normalize
from prompt_condenser.pruner import (
    SCORER_REGISTRY,
    ImportancePruner,
    ScoringWeights,
    TokenScore,
    analyze_prompt,
    get_scorer,
    register_scorer,
)
from prompt_condenser.tokens import count_tokens, estimate_tokens, stats

__all__ = [
    "compress",
    "normalize",
    "analyze_prompt",
    "CompressionPipeline",
    "CompressionResult",
    "CompressionStage",
    "SymbolicCodec",
    "SymbolicText",
    "SymbolOccurrence",
    "DecodeAnalysis",
    "DecodeResult",
    "SymbolDictionary",
    "SymbolEntry",
    "SymbolCategory",
    "default_dictionary",
    "HybridPreprocessor",
    "ImportancePruner",
    "ScoringWeights",
    "TokenScore",
    "SCORER_REGISTRY",
    "register_scorer",
    "get_scorer",
    "InvalidInputError",
    "DictionaryLoadConflict",
    "count_tokens",
    "estimate_tokens",
    "stats",
]
