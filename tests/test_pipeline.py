"""Tests for the pipeline orchestrator."""

import json
import math

import pytest

from prompt_condenser.config import CondenserConfig
from prompt_condenser.errors import InvalidInputError
from prompt_condenser.pipeline import STRATEGIES, CompressionPipeline, compress
from prompt_condenser.preprocessor import PreprocessResult

PARAGRAPH = (
    "I want to learn web development so that I can build my own websites. "
    "Could you please explain which programming language I should start with, "
    "how HTML and CSS work together, and which tools a beginner really needs "
    "to create a small portfolio website?"
)


class FakeRecorder:
    def __init__(self):
        self.records = []
        self.symbols = []
        self.floors = []

    def record_compression(self, record):
        self.records.append(record)

    def record_symbol_usage(self, symbol, concept, count=1):
        self.symbols.append((symbol, concept, count))

    def record_floor_reached(self, strategy):
        self.floors.append(strategy)


class GrowingPreprocessor:
    """Returns text longer than its input, forcing the stage to fall back."""

    def preprocess(self, text):
        return PreprocessResult(text=text + " and then some more", semantic_score=10.0)


class TestCompress:
    def test_web_development_paragraph(self):
        assert len(PARAGRAPH) == 250
        result = compress(PARAGRAPH)
        assert result.total_compression_ratio > 0
        assert len(result.compressed) < 250
        assert [s.name for s in result.stages] == ["hybrid", "pruner", "codec"]
        lengths = [s.length for s in result.stages]
        assert lengths == sorted(lengths, reverse=True)
        assert lengths[0] <= 250

    def test_stage_bookkeeping(self):
        result = compress(PARAGRAPH, 0.6)
        for stage in result.stages:
            assert stage.length == len(stage.text)
            assert stage.cumulative_ratio_percent == pytest.approx(stage.length / len(PARAGRAPH) * 100)
        assert result.stages[-1].text == result.compressed
        assert result.total_tokens_saved == math.ceil((len(PARAGRAPH) - len(result.compressed)) / 4)
        assert result.total_compression_ratio == pytest.approx(100 - len(result.compressed) / len(PARAGRAPH) * 100)

    def test_weakest_link_semantic_score(self):
        result = compress(PARAGRAPH)
        assert set(result.layer_semantic_scores) == {"hybrid", "pruner", "codec"}
        assert result.overall_semantic_score == min(result.layer_semantic_scores.values())
        assert 0 <= result.overall_semantic_score <= 100

    def test_deterministic(self):
        assert compress(PARAGRAPH, 0.4) == compress(PARAGRAPH, 0.4)

    def test_serialized_result_is_byte_identical(self):
        first = json.dumps(compress(PARAGRAPH, 0.5).as_dict(), ensure_ascii=False)
        second = json.dumps(compress(PARAGRAPH, 0.5).as_dict(), ensure_ascii=False)
        assert first == second
        assert "processing_seconds" not in compress(PARAGRAPH, 0.5).as_dict()

    @pytest.mark.parametrize("ratio", [0.1, 0.25, 0.5, 0.75, 1.0])
    def test_never_longer(self, ratio):
        for prompt in (PARAGRAPH, "x", "Hi!", "delete file", "   spaced   out   "):
            assert len(compress(prompt, ratio).compressed) <= len(prompt)

    def test_symbols_and_hint(self):
        result = compress("Please create a database table", 1.0)
        assert result.compressed == "作 a 庫 table"
        assert [(u.symbol, u.concept) for u in result.used_symbols] == [("作", "create"), ("庫", "database")]
        assert result.decoding_hint == "[symbols] 作=create; 庫=database"
        assert result.layer_semantic_scores["codec"] == 100.0

    def test_empty_prompt(self):
        result = compress("")
        assert result.compressed == ""
        assert result.total_compression_ratio == 0.0
        assert result.total_tokens_saved == 0
        assert [s.length for s in result.stages] == [0, 0, 0]
        assert all(s.cumulative_ratio_percent == 0.0 for s in result.stages)

    def test_as_dict_is_json_serializable(self):
        payload = json.dumps(compress(PARAGRAPH).as_dict(), ensure_ascii=False)
        assert '"stages"' in payload

    @pytest.mark.parametrize("prompt", [None, 12, b"bytes"])
    def test_invalid_prompt(self, prompt):
        with pytest.raises(InvalidInputError):
            compress(prompt)

    def test_invalid_ratio(self):
        with pytest.raises(InvalidInputError):
            compress(PARAGRAPH, 0)


class TestFallback:
    def test_growing_stage_falls_back(self):
        pipeline = CompressionPipeline(preprocessor=GrowingPreprocessor())
        result = pipeline.compress("delete file", 1.0)
        assert result.stages[0].text == "delete file"
        assert result.per_layer["hybrid"] == 0.0
        assert result.layer_semantic_scores["hybrid"] == 100.0
        assert result.compressed == "削簿"


class TestMetrics:
    def test_one_record_per_invocation(self):
        rec = FakeRecorder()
        pipeline = CompressionPipeline(metrics=rec)
        pipeline.compress("Please create a database table", 1.0)
        pipeline.compress(PARAGRAPH)
        assert len(rec.records) == 2
        first = rec.records[0]
        assert first.success is True
        assert first.strategy == "pipeline"
        assert first.original_tokens == math.ceil(len("Please create a database table") / 4)
        assert ("作", "create", 1) in rec.symbols

    def test_failed_record_on_invalid_input(self):
        rec = FakeRecorder()
        pipeline = CompressionPipeline(metrics=rec)
        with pytest.raises(InvalidInputError):
            pipeline.compress(None)
        assert len(rec.records) == 1
        assert rec.records[0].success is False
        assert rec.records[0].error_type == "InvalidInputError"

    def test_floor_reported(self):
        rec = FakeRecorder()
        result = CompressionPipeline(metrics=rec).compress("Hello there", 0.1)
        assert result.floor_reached is True
        assert rec.floors == ["pipeline"]


class TestPipelineExtras:
    def test_compress_many(self):
        results = CompressionPipeline().compress_many(["delete file", PARAGRAPH], 0.5)
        assert len(results) == 2
        assert results[0].original == "delete file"

    def test_decode(self):
        pipeline = CompressionPipeline()
        decoded = pipeline.decode(pipeline.compress("Please create a database table", 1.0).compressed)
        assert decoded.decoded == "create a database table"

    def test_default_ratio_used(self):
        pipeline = CompressionPipeline(default_ratio=1.0)
        assert pipeline.compress("sort the list").compressed == "順 the list"

    def test_invalid_default_ratio(self):
        with pytest.raises(InvalidInputError):
            CompressionPipeline(default_ratio=2)

    def test_from_config(self, tmp_path):
        path = tmp_path / "symbols.yaml"
        path.write_text(
            '- symbol: "Ω"\n  concept: "kubernetes cluster"\n  category: infrastructure\n',
            encoding="utf-8",
        )
        config = CondenserConfig(
            target_ratio=1.0,
            dictionary_path=str(path),
            extra_fillers=["as per usual"],
        )
        pipeline = CompressionPipeline.from_config(config)
        result = pipeline.compress("As per usual, restart the kubernetes cluster")
        assert result.compressed == "restart the Ω"


class TestStrategies:
    def test_known_strategies(self):
        assert set(STRATEGIES) == {"pipeline", "hybrid", "pruner", "codec"}

    def test_pipeline_is_default(self):
        result = compress("Please create a database table", 1.0)
        assert result.strategy == "pipeline"
        assert result == compress("Please create a database table", 1.0, strategy="pipeline")

    def test_hybrid_only(self):
        result = compress("Could you please explain this?", 1.0, strategy="hybrid")
        assert result.compressed == "explain this?"
        assert [s.name for s in result.stages] == ["hybrid"]
        assert set(result.per_layer) == {"hybrid"}
        assert result.used_symbols == []
        assert result.strategy == "hybrid"

    def test_pruner_only(self):
        result = compress("Write a Python function that sorts a list.", 0.5, strategy="pruner")
        assert result.compressed == "Write Python function list."
        assert [s.name for s in result.stages] == ["pruner"]
        assert result.overall_semantic_score == pytest.approx(70.0)
        assert result.decoding_hint == ""

    def test_codec_only(self):
        result = compress("Please create a database table", 0.1, strategy="codec")
        assert result.compressed == "Please 作 a 庫 table"
        assert [s.name for s in result.stages] == ["codec"]
        assert result.decoding_hint == "[symbols] 作=create; 庫=database"
        assert result.floor_reached is False

    def test_single_layer_falls_back(self):
        pipeline = CompressionPipeline(preprocessor=GrowingPreprocessor())
        result = pipeline.compress("delete file", 1.0, strategy="hybrid")
        assert result.compressed == "delete file"
        assert result.layer_semantic_scores == {"hybrid": 100.0}

    @pytest.mark.parametrize("strategy", ["ultra", "", None, 3])
    def test_unknown_strategy(self, strategy):
        with pytest.raises(InvalidInputError, match="strategy"):
            compress(PARAGRAPH, 0.5, strategy=strategy)

    @pytest.mark.parametrize("strategy", sorted(STRATEGIES))
    def test_never_longer(self, strategy):
        for prompt in (PARAGRAPH, "x", "delete file", "Thanks!"):
            assert len(compress(prompt, 0.3, strategy=strategy).compressed) <= len(prompt)

    def test_compress_many_passes_strategy(self):
        results = CompressionPipeline().compress_many(["delete file"], 1.0, strategy="codec")
        assert results[0].strategy == "codec"
        assert results[0].compressed == "削簿"


class TestStrategyMetrics:
    @pytest.mark.parametrize("strategy", sorted(STRATEGIES))
    def test_record_labelled_with_strategy(self, strategy):
        rec = FakeRecorder()
        CompressionPipeline(metrics=rec).compress(PARAGRAPH, 0.5, strategy=strategy)
        assert [r.strategy for r in rec.records] == [strategy]
        assert rec.records[0].processing_time >= 0

    def test_floor_labelled_with_strategy(self):
        rec = FakeRecorder()
        CompressionPipeline(metrics=rec).compress("Hello there", 0.1, strategy="pruner")
        assert rec.floors == ["pruner"]

    def test_unknown_strategy_recorded_as_failure(self):
        rec = FakeRecorder()
        with pytest.raises(InvalidInputError):
            CompressionPipeline(metrics=rec).compress(PARAGRAPH, 0.5, strategy="ultra")
        assert rec.records[0].success is False
        assert rec.records[0].strategy == "unknown"
