"""
server.py: MCP tool server exposing prompt compression to agents.

Tools:
    compress_prompt  compress a prompt with the full pipeline or a single layer
    decode_symbols   expand symbols back to concepts, with analysis and a legend
    list_symbols     browse or search the symbol dictionary
    analyze_prompt   per-word importance scores from the pruner

Configuration (environment variables, or a JSON/YAML file via CONDENSER_CONFIG):
    TARGET_RATIO       default pruning target in (0, 1] (default: 0.5)
    SYMBOL_DICTIONARY  path to a replacement symbol dictionary (default: packaged)
    EXTRA_FILLERS      comma-separated phrases the preprocessor also strips
    PRUNER_SCORER      registered scorer name (default: heuristic)
    PRUNER_WEIGHTS     comma-separated name:value scoring weight overrides
    CONDENSER_HOST     bind host (default: 0.0.0.0)
    CONDENSER_PORT     bind port (default: 9000)
    METRICS_ENABLED    expose Prometheus metrics (default: false)
    METRICS_PORT       metrics port (default: 9090)

Usage:
    prompt-condenser-server
    CONDENSER_CONFIG=config.yaml prompt-condenser-server
"""

import logging
import sys
from dataclasses import asdict

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError

from prompt_condenser.config import CondenserConfig
from prompt_condenser.dictionary import SymbolCategory
from prompt_condenser.errors import InvalidInputError
from prompt_condenser.metrics import create_recorder
from prompt_condenser.pipeline import DEFAULT_STRATEGY, CompressionPipeline

logger = logging.getLogger("prompt_condenser")


class CondenserService:
    """Tool handlers. Validation failures surface to the client as ToolError."""

    def __init__(self, pipeline: CompressionPipeline):
        self.pipeline = pipeline

    def compress_prompt(
        self, prompt: str, target_ratio: float | None = None, strategy: str = DEFAULT_STRATEGY
    ) -> dict:
        """Compress a prompt: normalize it, prune low-importance words, then substitute symbols.

        strategy is "pipeline" (all three layers) or one of "hybrid", "pruner",
        "codec" to run only that layer. Returns the compressed text, the
        per-stage journey, ratios and a decoding hint.
        """
        try:
            result = self.pipeline.compress(prompt, target_ratio, strategy)
        except InvalidInputError as exc:
            raise ToolError(str(exc)) from exc
        return result.as_dict()

    def decode_symbols(self, text: str) -> dict:
        """Expand compact symbols in text back into their concept phrases."""
        try:
            result = self.pipeline.decode(text)
        except InvalidInputError as exc:
            raise ToolError(str(exc)) from exc
        return asdict(result)

    def list_symbols(self, category: str | None = None, query: str | None = None) -> dict:
        """List dictionary symbols, optionally filtered by category and/or a search query."""
        dictionary = self.pipeline.dictionary
        if category:
            try:
                SymbolCategory(category)
            except ValueError:
                valid = ", ".join(c.value for c in SymbolCategory)
                raise ToolError(f"unknown category {category!r}; valid categories are: {valid}") from None
            entries = list(dictionary.entries_by_category(category))
        else:
            entries = list(dictionary.all_entries())
        if query:
            matches = set(dictionary.search(query))
            entries = [e for e in entries if e in matches]
        return {
            "count": len(entries),
            "symbols": [
                {"symbol": e.symbol, "concept": e.concept, "category": e.category.value,
                 "description": e.description}
                for e in entries
            ],
        }

    def analyze_prompt(self, prompt: str) -> list[dict]:
        """Importance score of every word in the prompt (higher = more likely kept)."""
        try:
            scores = self.pipeline.pruner.analyze_prompt(prompt)
        except InvalidInputError as exc:
            raise ToolError(str(exc)) from exc
        return [{"token": s.token, "score": round(s.score, 4)} for s in scores]


def build_server(pipeline: CompressionPipeline | None = None) -> FastMCP:
    service = CondenserService(pipeline or CompressionPipeline())
    app = FastMCP(name="prompt-condenser")
    app.tool(service.compress_prompt)
    app.tool(service.decode_symbols)
    app.tool(service.list_symbols)
    app.tool(service.analyze_prompt)
    return app


def main():
    logging.basicConfig(
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        level=logging.INFO,
        stream=sys.stderr,
    )
    config = CondenserConfig.load()
    metrics = create_recorder(enabled=config.metrics_enabled, port=config.metrics_port)
    pipeline = CompressionPipeline.from_config(config, metrics)
    app = build_server(pipeline)

    logger.info(
        "starting host=%s port=%d target_ratio=%s scorer=%s dictionary=%s symbols=%d metrics=%s",
        config.host, config.port, config.target_ratio, config.scorer,
        config.dictionary_path or "(packaged)", len(pipeline.dictionary),
        f"http://0.0.0.0:{config.metrics_port}/metrics" if config.metrics_enabled else "off",
    )

    app.run(transport="streamable-http", host=config.host, port=config.port)


if __name__ == "__main__":
    main()
