"""Pipeline orchestrator: preprocessor -> pruner -> symbolic codec.

Each stage's output is kept only if it is no longer than its input; otherwise
the stage falls back to its input, so the final text is never longer than
the prompt.  The overall semantic score is the weakest of the layer scores.

A strategy picks which layers run: ``pipeline`` runs all three, while
``hybrid``, ``pruner`` and ``codec`` run that layer alone under the same
fallback rule.
"""

import logging
from dataclasses import asdict, dataclass, field
from typing import Iterable

from prompt_condenser.codec import DecodeResult, SymbolicCodec, UsedSymbol
from prompt_condenser.dictionary import SymbolDictionary, default_dictionary
from prompt_condenser.errors import InvalidInputError, require_ratio, require_text
from prompt_condenser.metrics import CompressionRecord, MetricsRecorder, NoopRecorder, timer
from prompt_condenser.preprocessor import HybridPreprocessor, retention_score
from prompt_condenser.pruner import ImportancePruner, ScoringWeights, get_scorer
from prompt_condenser.tokens import estimate_tokens, reduction_pct, tokens_saved

logger = logging.getLogger("prompt_condenser")

STAGE_NAMES = ("hybrid", "pruner", "codec")
STRATEGIES = {
    "pipeline": STAGE_NAMES,
    "hybrid": ("hybrid",),
    "pruner": ("pruner",),
    "codec": ("codec",),
}
DEFAULT_STRATEGY = "pipeline"


def require_strategy(value) -> str:
    """Return *value* if it names a strategy, else raise InvalidInputError."""
    if not isinstance(value, str) or value not in STRATEGIES:
        valid = ", ".join(STRATEGIES)
        raise InvalidInputError(f"strategy must be one of: {valid}, got {value!r}")
    return value


@dataclass
class CompressionStage:
    name: str
    text: str
    length: int
    cumulative_ratio_percent: float


@dataclass
class CompressionResult:
    original: str
    compressed: str
    stages: list[CompressionStage]
    per_layer: dict[str, float]
    total_compression_ratio: float
    total_tokens_saved: int
    overall_semantic_score: float
    layer_semantic_scores: dict[str, float] = field(default_factory=dict)
    used_symbols: list[UsedSymbol] = field(default_factory=list)
    decoding_hint: str = ""
    floor_reached: bool = False
    strategy: str = DEFAULT_STRATEGY

    def as_dict(self) -> dict:
        return asdict(self)


class CompressionPipeline:
    """Chains the three stages and reports the journey.

    Usage:
        pipeline = CompressionPipeline()
        result = pipeline.compress("Could you please explain how to create a database table?")
        result.compressed, result.total_compression_ratio
        pipeline.compress(prompt, strategy="codec")   # symbols only
    """

    def __init__(
        self,
        dictionary: SymbolDictionary | None = None,
        preprocessor: HybridPreprocessor | None = None,
        pruner: ImportancePruner | None = None,
        codec: SymbolicCodec | None = None,
        metrics: MetricsRecorder | None = None,
        default_ratio: float = 0.5,
    ):
        self.dictionary = dictionary if dictionary is not None else default_dictionary()
        self.preprocessor = preprocessor or HybridPreprocessor()
        self.pruner = pruner or ImportancePruner()
        self.codec = codec or SymbolicCodec(self.dictionary)
        self.metrics = metrics or NoopRecorder()
        self.default_ratio = require_ratio(default_ratio, "default_ratio")

    @classmethod
    def from_config(cls, config, metrics: MetricsRecorder | None = None) -> "CompressionPipeline":
        """Build a pipeline from a CondenserConfig."""
        if config.dictionary_path:
            dictionary = SymbolDictionary.from_file(config.dictionary_path)
        else:
            dictionary = default_dictionary()
        scorer = get_scorer(config.scorer, ScoringWeights.from_mapping(config.weights))
        return cls(
            dictionary=dictionary,
            preprocessor=HybridPreprocessor(config.extra_fillers),
            pruner=ImportancePruner(scorer),
            metrics=metrics,
            default_ratio=config.target_ratio,
        )

    @staticmethod
    def _keep_if_smaller(name: str, before: str, after: str) -> tuple[str, bool]:
        if len(after) > len(before):
            logger.info("stage=%s fallback input_chars=%d output_chars=%d", name, len(before), len(after))
            return before, True
        return after, False

    def _record_failure(self, strategy: str, exc: Exception, elapsed: float) -> None:
        self.metrics.record_compression(CompressionRecord(
            strategy=strategy,
            original_tokens=0,
            compressed_tokens=0,
            compression_ratio=0.0,
            tokens_saved=0,
            processing_time=elapsed,
            semantic_score=0.0,
            success=False,
            error_type=type(exc).__name__,
        ))

    def compress(
        self,
        prompt: str,
        target_ratio: float | None = None,
        strategy: str = DEFAULT_STRATEGY,
    ) -> CompressionResult:
        """Run the layers *strategy* names on *prompt*.

        Raises:
            InvalidInputError: *prompt* is not a string, *target_ratio* is
                not a number in (0, 1], or *strategy* is unknown.
        """
        with timer() as elapsed:
            try:
                require_text(prompt, "prompt")
                ratio = require_ratio(self.default_ratio if target_ratio is None else target_ratio)
                require_strategy(strategy)
            except InvalidInputError as exc:
                label = strategy if isinstance(strategy, str) and strategy in STRATEGIES else "unknown"
                self._record_failure(label, exc, elapsed())
                raise

            text = prompt
            stages: list[CompressionStage] = []
            per_layer: dict[str, float] = {}
            layer_scores: dict[str, float] = {}
            used: list[UsedSymbol] = []
            floor_reached = False

            for name in STRATEGIES[strategy]:
                before = text
                if name == "hybrid":
                    pre = self.preprocessor.preprocess(before)
                    after, score = pre.text, pre.semantic_score
                elif name == "pruner":
                    pruned = self.pruner.compress(before, ratio)
                    after, score = pruned.compressed, pruned.semantic_score
                else:
                    symbolic = self.codec.compress(before)
                    after = symbolic.symbolic_text
                    score = retention_score(before, self.codec.decode(after))

                text, fell_back = self._keep_if_smaller(name, before, after)
                if fell_back:
                    score = 100.0
                elif name == "pruner":
                    floor_reached = pruned.floor_reached
                elif name == "codec":
                    used = symbolic.used_symbols

                layer_scores[name] = score
                per_layer[name] = reduction_pct(len(before), len(text))
                stages.append(CompressionStage(
                    name=name,
                    text=text,
                    length=len(text),
                    cumulative_ratio_percent=len(text) / len(prompt) * 100.0 if prompt else 0.0,
                ))

            result = CompressionResult(
                original=prompt,
                compressed=text,
                stages=stages,
                per_layer=per_layer,
                total_compression_ratio=reduction_pct(len(prompt), len(text)),
                total_tokens_saved=tokens_saved(prompt, text),
                overall_semantic_score=min(layer_scores.values()),
                layer_semantic_scores=layer_scores,
                used_symbols=used,
                decoding_hint=self.codec.generate_decoding_hint(text),
                floor_reached=floor_reached,
                strategy=strategy,
            )
            seconds = elapsed()

        self._emit(result, seconds)
        return result

    def _emit(self, result: CompressionResult, seconds: float) -> None:
        self.metrics.record_compression(CompressionRecord(
            strategy=result.strategy,
            original_tokens=estimate_tokens(result.original),
            compressed_tokens=estimate_tokens(result.compressed),
            compression_ratio=result.total_compression_ratio,
            tokens_saved=result.total_tokens_saved,
            processing_time=seconds,
            semantic_score=result.overall_semantic_score,
        ))
        for used in result.used_symbols:
            self.metrics.record_symbol_usage(used.symbol, used.concept, used.count)
        if result.floor_reached:
            self.metrics.record_floor_reached(result.strategy)

        logger.info(
            "compressed strategy=%s input_chars=%d output_chars=%d ratio=%.1f semantic=%.1f symbols=%d elapsed=%.4fs",
            result.strategy, len(result.original), len(result.compressed),
            result.total_compression_ratio, result.overall_semantic_score,
            len(result.used_symbols), seconds,
        )

    def compress_many(
        self,
        prompts: Iterable[str],
        target_ratio: float | None = None,
        strategy: str = DEFAULT_STRATEGY,
    ) -> list[CompressionResult]:
        return [self.compress(p, target_ratio, strategy) for p in prompts]

    def decode(self, text: str) -> DecodeResult:
        return self.codec.decode_with_details(text)


_default_pipeline = None


def compress(prompt: str, target_ratio: float = 0.5, strategy: str = DEFAULT_STRATEGY) -> CompressionResult:
    """Compress *prompt* with a shared default pipeline."""
    global _default_pipeline
    if _default_pipeline is None:
        _default_pipeline = CompressionPipeline()
    return _default_pipeline.compress(prompt, target_ratio, strategy)
