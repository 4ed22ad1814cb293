"""
codec.py: reversible symbolic substitution against a SymbolDictionary.

Compression replaces whole concept phrases with their symbols:

    "create a database table"  ->  "作 a 庫 table"

Decoding expands every recognized symbol back to its canonical concept and
leaves anything it does not recognize untouched. For every dictionary entry
taken on its own, ``decode(compress(entry.concept).symbolic_text)`` returns
the concept.
"""

import re
from collections import Counter
from dataclasses import dataclass, field

from prompt_condenser.dictionary import SymbolDictionary, SymbolEntry, default_dictionary
from prompt_condenser.errors import require_text


@dataclass(frozen=True)
class UsedSymbol:
    symbol: str
    concept: str
    count: int = 1


@dataclass
class SymbolicText:
    """Output of SymbolicCodec.compress()."""
    symbolic_text: str
    used_symbols: list[UsedSymbol] = field(default_factory=list)

    @property
    def substitutions(self) -> int:
        return sum(u.count for u in self.used_symbols)


@dataclass(frozen=True)
class SymbolOccurrence:
    symbol: str
    concept: str
    position: int


@dataclass
class DecodeAnalysis:
    total_symbols: int
    unique_symbols: int
    categories: dict[str, int]
    coverage_percent: float


@dataclass
class DecodeResult:
    original: str
    decoded: str
    symbols_found: list[SymbolOccurrence]
    analysis: DecodeAnalysis
    decoding_hint: str
    expansion_ratio: int


def _is_word_char(ch: str) -> bool:
    return ch.isalnum() or ch == "_"


def _concept_pattern(concept: str) -> re.Pattern:
    words = concept.split()
    body = r"\s+".join(re.escape(w) for w in words)
    return re.compile(rf"(?<!\w){body}(?!\w)", re.IGNORECASE)


class SymbolicCodec:
    """Compress, decode and inspect symbolic text.

    The dictionary is injected (the packaged one when omitted) and only read.
    """

    def __init__(self, dictionary: SymbolDictionary | None = None):
        self.dictionary = dictionary if dictionary is not None else default_dictionary()

        # Longest phrase first; ties broken alphabetically so the scan order
        # never depends on dictionary file order.
        ordered = sorted(
            self.dictionary.all_entries(),
            key=lambda e: (-len(e.concept), e.concept.lower()),
        )
        self._concept_patterns: list[tuple[SymbolEntry, re.Pattern]] = [
            (e, _concept_pattern(e.concept)) for e in ordered
        ]

        symbols = sorted(self.dictionary.symbols, key=lambda s: (-len(s), s))
        self._symbol_re = re.compile("|".join(re.escape(s) for s in symbols)) if symbols else None

    # ── compression ──────────────────────────────────────────────────────────

    def _claim_spans(self, text: str) -> list[tuple[int, int, SymbolEntry]]:
        """Greedy longest-match: each concept claims non-overlapping spans."""
        taken = bytearray(len(text))
        claimed = []
        for entry, pattern in self._concept_patterns:
            for m in pattern.finditer(text):
                start, end = m.span()
                if any(taken[start:end]):
                    continue
                taken[start:end] = b"\x01" * (end - start)
                claimed.append((start, end, entry))
        claimed.sort(key=lambda c: c[0])
        return claimed

    def compress(self, text: str) -> SymbolicText:
        """Replace dictionary concepts in *text* with their symbols."""
        require_text(text)
        claimed = self._claim_spans(text)
        if not claimed:
            return SymbolicText(symbolic_text=text)

        parts: list[str] = []
        counts: Counter = Counter()
        first_seen: dict[str, SymbolEntry] = {}
        pos = 0
        for start, end, entry in claimed:
            gap = text[pos:start]
            # a lone space between two symbols is implied; decode restores it
            if parts and gap == " ":
                gap = ""
            parts.append(gap)
            parts.append(entry.symbol)
            counts[entry.symbol] += 1
            first_seen.setdefault(entry.symbol, entry)
            pos = end
        parts.append(text[pos:])

        used = [
            UsedSymbol(symbol=sym, concept=entry.concept, count=counts[sym])
            for sym, entry in first_seen.items()
        ]
        return SymbolicText(symbolic_text="".join(parts), used_symbols=used)

    def suggest_symbols(self, text: str) -> list[SymbolEntry]:
        """Every entry whose concept appears in *text*, overlaps included."""
        require_text(text)
        return [e for e, pattern in self._concept_patterns if pattern.search(text)]

    # ── decoding ─────────────────────────────────────────────────────────────

    def decode(self, text: str) -> str:
        """Expand recognized symbols to concepts; unknown text passes through."""
        require_text(text)
        if self._symbol_re is None:
            return text

        out: list[str] = []
        pos = 0
        last_was_symbol = False
        for m in self._symbol_re.finditer(text):
            plain = text[pos:m.start()]
            if plain:
                if last_was_symbol and _is_word_char(plain[0]):
                    out.append(" ")
                out.append(plain)
                last_was_symbol = False
            if out and (last_was_symbol or _is_word_char(out[-1][-1])):
                out.append(" ")
            out.append(self.dictionary.lookup_by_symbol(m.group()).concept)
            last_was_symbol = True
            pos = m.end()

        tail = text[pos:]
        if tail:
            if last_was_symbol and _is_word_char(tail[0]):
                out.append(" ")
            out.append(tail)
        return "".join(out)

    def get_symbol_details(self, text: str) -> list[SymbolOccurrence]:
        require_text(text)
        if self._symbol_re is None:
            return []
        return [
            SymbolOccurrence(
                symbol=m.group(),
                concept=self.dictionary.lookup_by_symbol(m.group()).concept,
                position=m.start(),
            )
            for m in self._symbol_re.finditer(text)
        ]

    def contains_symbols(self, text: str) -> bool:
        require_text(text)
        return self._symbol_re is not None and self._symbol_re.search(text) is not None

    def analyze_symbols(self, text: str) -> DecodeAnalysis:
        """Symbol counts per category and the share of characters that are symbols."""
        occurrences = self.get_symbol_details(text)
        categories: dict[str, int] = {}
        for occ in occurrences:
            cat = self.dictionary.lookup_by_symbol(occ.symbol).category.value
            categories[cat] = categories.get(cat, 0) + 1
        symbol_chars = sum(len(o.symbol) for o in occurrences)
        return DecodeAnalysis(
            total_symbols=len(occurrences),
            unique_symbols=len({o.symbol for o in occurrences}),
            categories=categories,
            coverage_percent=symbol_chars / len(text) * 100 if text else 0.0,
        )

    def generate_decoding_hint(self, text: str) -> str:
        """Legend of only the symbols present in *text*, e.g. ``[symbols] 作=create; 庫=database``."""
        seen: dict[str, str] = {}
        for occ in self.get_symbol_details(text):
            seen.setdefault(occ.symbol, occ.concept)
        if not seen:
            return ""
        return "[symbols] " + "; ".join(f"{s}={c}" for s, c in seen.items())

    def decode_with_details(self, text: str) -> DecodeResult:
        decoded = self.decode(text)
        return DecodeResult(
            original=text,
            decoded=decoded,
            symbols_found=self.get_symbol_details(text),
            analysis=self.analyze_symbols(text),
            decoding_hint=self.generate_decoding_hint(text),
            expansion_ratio=round(len(decoded) / len(text) * 100) if text else 0,
        )

    def dictionary_prompt(self) -> str:
        """Full legend, grouped by category, for priming a model once per session."""
        lines = [
            f"Symbol dictionary ({len(self.dictionary)} entries). "
            "Each symbol stands for the phrase after '='; read symbols as those phrases.",
        ]
        for cat in self.dictionary.categories():
            entries = self.dictionary.entries_by_category(cat)
            lines.append("")
            lines.append(f"## {cat.value} ({len(entries)})")
            lines.append(" ".join(f"{e.symbol}={e.concept}" for e in entries))
        return "\n".join(lines)
