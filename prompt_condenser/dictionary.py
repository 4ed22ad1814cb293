"""Symbol dictionary: the immutable symbol <-> concept catalog.

Built once from a fixed source list (the packaged ``data/symbols.yaml`` by
default) and never mutated afterwards, so a single instance can be shared by
every codec and request without locking.
"""

import functools
import re
from dataclasses import dataclass
from enum import Enum
from importlib import resources
from types import MappingProxyType
from typing import Any, Iterable

import yaml

from prompt_condenser.errors import DictionaryLoadConflict


class SymbolCategory(str, Enum):
    ACTION = "action"
    TYPE = "type"
    MODIFIER = "modifier"
    QUANTIFIER = "quantifier"
    LOGIC = "logic"
    INFRASTRUCTURE = "infrastructure"
    PROGRAMMING = "programming"
    DOMAIN = "domain"
    TIME = "time"
    STATUS = "status"


@dataclass(frozen=True)
class SymbolEntry:
    """One symbol and the canonical concept phrase it stands for."""
    symbol: str
    concept: str
    category: SymbolCategory
    description: str = ""


def concept_key(phrase: str) -> str:
    """Lookup key for a concept phrase: lower-cased, whitespace collapsed."""
    return re.sub(r"\s+", " ", phrase).strip().lower()


def _coerce_entry(raw: Any, index: int) -> SymbolEntry:
    if isinstance(raw, SymbolEntry):
        return raw
    if not isinstance(raw, dict):
        raise DictionaryLoadConflict(f"entry {index}: expected a mapping, got {type(raw).__name__}")
    symbol = raw.get("symbol")
    concept = raw.get("concept")
    if not isinstance(symbol, str) or not symbol or symbol.isspace():
        raise DictionaryLoadConflict(f"entry {index}: symbol must be a non-empty string")
    if not isinstance(concept, str) or not concept.strip():
        raise DictionaryLoadConflict(f"entry {index} ({symbol!r}): concept must be a non-empty string")
    try:
        category = SymbolCategory(raw.get("category", ""))
    except ValueError:
        valid = ", ".join(c.value for c in SymbolCategory)
        raise DictionaryLoadConflict(
            f"entry {index} ({symbol!r}): unknown category {raw.get('category')!r}; "
            f"valid categories are: {valid}"
        ) from None
    return SymbolEntry(
        symbol=symbol,
        concept=re.sub(r"\s+", " ", concept).strip(),
        category=category,
        description=str(raw.get("description") or ""),
    )


class SymbolDictionary:
    """Read-only catalog of SymbolEntry records.

    Usage:
        d = SymbolDictionary([{"symbol": "庫", "concept": "database", "category": "infrastructure"}])
        d.lookup_by_concept("Database").symbol   # "庫"

    Raises DictionaryLoadConflict on construction when two entries share a
    symbol or a concept, or when an entry is malformed.
    """

    def __init__(self, entries: Iterable[SymbolEntry | dict]):
        by_symbol: dict[str, SymbolEntry] = {}
        by_concept: dict[str, SymbolEntry] = {}
        ordered: list[SymbolEntry] = []

        for i, raw in enumerate(entries):
            entry = _coerce_entry(raw, i)
            if entry.symbol in by_symbol:
                raise DictionaryLoadConflict(
                    f"duplicate symbol {entry.symbol!r}: "
                    f"{by_symbol[entry.symbol].concept!r} and {entry.concept!r}"
                )
            key = concept_key(entry.concept)
            if key in by_concept:
                raise DictionaryLoadConflict(
                    f"duplicate concept {entry.concept!r}: "
                    f"{by_concept[key].symbol!r} and {entry.symbol!r}"
                )
            by_symbol[entry.symbol] = entry
            by_concept[key] = entry
            ordered.append(entry)

        self._entries = tuple(ordered)
        self._by_symbol = MappingProxyType(by_symbol)
        self._by_concept = MappingProxyType(by_concept)
        by_category: dict[SymbolCategory, tuple[SymbolEntry, ...]] = {}
        for cat in SymbolCategory:
            members = tuple(e for e in ordered if e.category is cat)
            if members:
                by_category[cat] = members
        self._by_category = MappingProxyType(by_category)

    @classmethod
    def from_file(cls, path: str) -> "SymbolDictionary":
        """Load entries from a YAML (or JSON) file holding a list of mappings."""
        with open(path, encoding="utf-8") as f:
            return cls._from_text(f.read(), source=path)

    @classmethod
    def _from_text(cls, text: str, source: str) -> "SymbolDictionary":
        try:
            raw = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise DictionaryLoadConflict(f"{source}: not valid YAML/JSON: {exc}") from exc
        if isinstance(raw, dict) and "symbols" in raw:
            raw = raw["symbols"]
        if not isinstance(raw, list):
            raise DictionaryLoadConflict(f"{source}: expected a list of symbol entries")
        return cls(raw)

    # ── lookups ──────────────────────────────────────────────────────────────

    def lookup_by_symbol(self, symbol: str) -> SymbolEntry | None:
        return self._by_symbol.get(symbol)

    def lookup_by_concept(self, phrase: str) -> SymbolEntry | None:
        return self._by_concept.get(concept_key(phrase))

    def entries_by_category(self, category: SymbolCategory | str) -> tuple[SymbolEntry, ...]:
        try:
            cat = SymbolCategory(category)
        except ValueError:
            return ()
        return self._by_category.get(cat, ())

    def all_entries(self) -> tuple[SymbolEntry, ...]:
        return self._entries

    def categories(self) -> list[SymbolCategory]:
        """Categories that have at least one entry, in declaration order."""
        return list(self._by_category)

    def search(self, query: str) -> list[SymbolEntry]:
        """Entries whose concept or description contains *query* (case-insensitive)."""
        q = query.strip().lower()
        if not q:
            return []
        return [
            e for e in self._entries
            if q in e.concept.lower() or q in e.description.lower()
        ]

    @property
    def symbols(self) -> frozenset[str]:
        return frozenset(self._by_symbol)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, symbol: object) -> bool:
        return symbol in self._by_symbol

    def __iter__(self):
        return iter(self._entries)


@functools.lru_cache(maxsize=1)
def default_dictionary() -> SymbolDictionary:
    """The packaged dictionary, loaded on first use and shared afterwards."""
    text = resources.files("prompt_condenser").joinpath("data/symbols.yaml").read_text(encoding="utf-8")
    return SymbolDictionary._from_text(text, source="prompt_condenser/data/symbols.yaml")
