"""Command-line interface: compress, decode or analyze a prompt from a file or stdin."""

import argparse
import json
import sys
from dataclasses import asdict

from prompt_condenser.config import CondenserConfig
from prompt_condenser.errors import InvalidInputError
from prompt_condenser.pipeline import DEFAULT_STRATEGY, STRATEGIES, CompressionPipeline
from prompt_condenser.tokens import stats


def _read_input(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    with open(path, encoding="utf-8") as f:
        return f.read()


def _print_stats(orig: str, result: str, label: str = "Compression") -> None:
    s = stats(orig, result)
    print(f"=== {label} Stats ({s['method']}) ===", file=sys.stderr)
    print(f"Original:  {s['orig_chars']:>8,} chars  ({s['orig_tok']:,} tokens)", file=sys.stderr)
    print(f"Output:    {s['cond_chars']:>8,} chars  ({s['cond_tok']:,} tokens)", file=sys.stderr)
    print(f"Reduction: {s['char_pct']}% chars, {s['tok_pct']}% tokens", file=sys.stderr)
    print(f"{'=' * 42}", file=sys.stderr)


def _symbols_listing(pipeline: CompressionPipeline, category: str) -> str:
    if not category:
        return pipeline.codec.dictionary_prompt()
    entries = pipeline.dictionary.entries_by_category(category)
    if not entries:
        raise InvalidInputError(f"no symbols in category {category!r}")
    return "\n".join(f"{e.symbol}\t{e.concept}\t{e.description}" for e in entries)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Shrink a natural-language prompt: normalize, prune, then substitute symbols."
    )
    parser.add_argument(
        "input", nargs="?", default="-",
        help="Input text file (default: stdin, or use '-' explicitly)"
    )
    parser.add_argument(
        "-o", "--output", default=None,
        help="Output file (default: stdout)"
    )
    parser.add_argument(
        "-q", "--quiet", action="store_true",
        help="Suppress compression stats on stderr"
    )
    parser.add_argument(
        "-r", "--ratio", type=float, default=None,
        help="Pruning target: fraction of words to keep, in (0, 1] (default: TARGET_RATIO or 0.5)"
    )
    parser.add_argument(
        "-s", "--strategy", choices=list(STRATEGIES), default=DEFAULT_STRATEGY,
        help="Layers to run: pipeline (all), or hybrid, pruner or codec alone (default: pipeline)"
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "-d", "--decode", action="store_true",
        help="Expand symbols in the input back into concept phrases"
    )
    mode.add_argument(
        "-a", "--analyze", action="store_true",
        help="Print the importance score of every word instead of compressing"
    )
    mode.add_argument(
        "--symbols", nargs="?", const="", default=None, metavar="CATEGORY",
        help="Print the symbol legend (optionally one category) and exit"
    )
    parser.add_argument(
        "--json", action="store_true",
        help="Emit the full result as JSON"
    )
    args = parser.parse_args(argv)

    pipeline = CompressionPipeline.from_config(CondenserConfig.load())

    try:
        if args.symbols is not None:
            output = _symbols_listing(pipeline, args.symbols)
        else:
            raw = _read_input(args.input)
            if args.decode:
                decoded = pipeline.decode(raw)
                output = json.dumps(asdict(decoded), ensure_ascii=False, indent=2) if args.json else decoded.decoded
            elif args.analyze:
                scores = pipeline.pruner.analyze_prompt(raw)
                if args.json:
                    output = json.dumps([s._asdict() for s in scores], ensure_ascii=False, indent=2)
                else:
                    output = "\n".join(f"{s.score:8.4f}  {s.token}" for s in scores)
            else:
                result = pipeline.compress(raw, args.ratio, args.strategy)
                output = json.dumps(result.as_dict(), ensure_ascii=False, indent=2) if args.json else result.compressed
                if not args.quiet:
                    _print_stats(raw, result.compressed)
                    if result.floor_reached:
                        print("note: pruning floor reached before the target ratio", file=sys.stderr)
    except InvalidInputError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(output)
        if not args.quiet:
            print(f"→ {args.output}", file=sys.stderr)
    else:
        print(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
