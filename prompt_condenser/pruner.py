"""Importance pruner: drop the least important words until a size target is met.

The prompt is split into whitespace-delimited units. Each kept unit is scored
by a pluggable ``TokenScorer``; the lowest-scoring unit is removed and the
units whose context it changed are re-scored, until at most
``target_ratio * n`` units remain. Removal never goes below
``max(1, ceil(0.5 * target_ratio * n))`` units.

Scorers are looked up by name in ``SCORER_REGISTRY``; add more with
``register_scorer()``.
"""

import heapq
import logging
import math
import re
from bisect import bisect_left
from collections import Counter
from dataclasses import dataclass, fields
from typing import Callable, Mapping, NamedTuple, Protocol

from prompt_condenser.errors import require_ratio, require_text

logger = logging.getLogger("prompt_condenser")

STOPWORDS = frozenset({
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of",
    "with", "by", "from", "up", "about", "into", "through", "during", "is",
    "are", "was", "were", "be", "been", "being", "have", "has", "had", "do",
    "does", "did", "will", "would", "should", "could", "may", "might", "must",
    "can", "this", "that", "these", "those", "too", "also", "it", "its", "as",
    "so", "than", "then", "there", "their", "they", "them", "we", "our", "you",
    "your", "i", "me", "my", "he", "she", "his", "her", "which", "who", "what",
})

FLOOR_FRACTION = 0.5
SEMANTIC_LOSS_PER_REMOVED = 0.6

_EDGE_PUNCT_RE = re.compile(r"^\W+|\W+$")
_SENTENCE_END_RE = re.compile(r"[.!?]+[\"')\]]*$")


@dataclass
class ScoringWeights:
    """Weights for the heuristic scorer. Higher score means more important."""
    stopword: float = 0.2
    content: float = 1.0
    number: float = 1.2
    proper_noun: float = 1.3
    long_word_bonus: float = 0.2     # content words longer than 6 chars
    symbol: float = 0.5              # units without letters or digits
    boundary_boost: float = 0.5      # position weight is 1 + boost / (1 + distance)
    repeat_discount: float = 0.5     # multiplied in once per earlier occurrence

    @classmethod
    def from_mapping(cls, values: Mapping[str, float] | None) -> "ScoringWeights":
        """Build weights from a partial mapping; unknown names raise ValueError."""
        if not values:
            return cls()
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ValueError(
                f"unknown scoring weight(s): {', '.join(unknown)}; "
                f"valid names are: {', '.join(sorted(known))}"
            )
        return cls(**{k: float(v) for k, v in values.items()})


@dataclass(frozen=True)
class TokenContext:
    """Where a unit sits among the currently kept units."""
    boundary_distance: int     # units to the nearest edge of its sentence
    prior_occurrences: int     # earlier kept units with the same key
    sentence_initial: bool     # first unit of its sentence in the original prompt
    frequency: int = 1         # occurrences of the key in the original prompt


class TokenScorer(Protocol):
    def score(self, token: str, context: TokenContext) -> float: ...


class TokenScore(NamedTuple):
    token: str
    score: float


def token_key(token: str) -> str:
    """Lower-cased core of a unit with surrounding punctuation stripped."""
    return _EDGE_PUNCT_RE.sub("", token).lower()


class HeuristicScorer:
    """Word class, sentence position and repetition, combined multiplicatively."""

    def __init__(self, weights: ScoringWeights | None = None):
        self.weights = weights or ScoringWeights()

    def base_score(self, token: str, context: TokenContext) -> float:
        w = self.weights
        core = _EDGE_PUNCT_RE.sub("", token)
        key = core.lower()
        if not key:
            return w.symbol
        if any(ch.isdigit() for ch in key):
            return w.number
        if key in STOPWORDS:
            return w.stopword
        base = w.content
        if core[0].isupper() and not context.sentence_initial:
            base = w.proper_noun
        if len(key) > 6:
            base += w.long_word_bonus
        return base

    def position_weight(self, context: TokenContext) -> float:
        return 1.0 + self.weights.boundary_boost / (1 + context.boundary_distance)

    def score(self, token: str, context: TokenContext) -> float:
        return (
            self.base_score(token, context)
            * self.position_weight(context)
            * self.weights.repeat_discount ** context.prior_occurrences
        )


class FrequencyScorer(HeuristicScorer):
    """Like HeuristicScorer, but terms frequent in the prompt weigh less overall."""

    def score(self, token: str, context: TokenContext) -> float:
        return (
            self.base_score(token, context)
            * self.position_weight(context)
            / max(1, context.frequency)
        )


SCORER_REGISTRY: dict[str, Callable[[ScoringWeights], TokenScorer]] = {
    "heuristic": HeuristicScorer,
    "frequency": FrequencyScorer,
}


def register_scorer(name: str, factory: Callable[[ScoringWeights], TokenScorer]) -> None:
    """Make a scorer available by *name*; an existing name is replaced."""
    SCORER_REGISTRY[name] = factory


def get_scorer(name: str = "heuristic", weights: ScoringWeights | None = None) -> TokenScorer:
    """Instantiate the scorer registered under *name*.

    Raises:
        ValueError: No scorer has that name.
    """
    try:
        factory = SCORER_REGISTRY[name]
    except KeyError:
        names = ", ".join(sorted(SCORER_REGISTRY))
        raise ValueError(f"unknown scorer {name!r}; registered scorers: {names}") from None
    return factory(weights or ScoringWeights())


# ── pruning ──────────────────────────────────────────────────────────────────

@dataclass
class PruneResult:
    compressed: str
    compression_ratio: float      # character reduction, percent
    semantic_score: float
    original_tokens: int
    kept_tokens: int
    floor_reached: bool = False


class _Unit(NamedTuple):
    key: str
    sentence: int
    sentence_initial: bool


def _split_units(prompt: str) -> tuple[list[str], list[_Unit]]:
    texts = prompt.split()
    units = []
    sentence = 0
    initial = True
    for text in texts:
        units.append(_Unit(token_key(text), sentence, initial))
        initial = False
        if _SENTENCE_END_RE.search(text):
            sentence += 1
            initial = True
    return texts, units


def semantic_estimate(removed: int, total: int) -> float:
    """100 for nothing removed, falling linearly to 40 when everything goes."""
    if total <= 0:
        return 100.0
    fraction = removed / total
    return min(100.0, max(0.0, 100.0 * (1.0 - SEMANTIC_LOSS_PER_REMOVED * fraction)))


class _Layout:
    """Positions of the kept units, indexed by sentence and by key."""

    def __init__(self, units: list[_Unit]):
        self.units = units
        self.frequency = Counter(u.key for u in units)
        self.sentences: dict[int, list[int]] = {}
        self.peers: dict[str, list[int]] = {}
        for i, u in enumerate(units):
            self.sentences.setdefault(u.sentence, []).append(i)
            self.peers.setdefault(u.key, []).append(i)

    def context(self, i: int) -> TokenContext:
        unit = self.units[i]
        members = self.sentences[unit.sentence]
        pos = bisect_left(members, i)
        return TokenContext(
            boundary_distance=min(pos, len(members) - 1 - pos),
            prior_occurrences=bisect_left(self.peers[unit.key], i),
            sentence_initial=unit.sentence_initial,
            frequency=self.frequency[unit.key],
        )

    def remove(self, i: int) -> tuple[int | None, set[int]]:
        """Drop unit *i*; return its previous sentence-mate and the units whose context changed."""
        unit = self.units[i]
        members = self.sentences[unit.sentence]
        pos = bisect_left(members, i)
        del members[pos]
        peers = self.peers[unit.key]
        k = bisect_left(peers, i)
        del peers[k]

        # later units with the same key lose one prior occurrence
        changed = set(peers[k:])
        # boundary distance shifts only between the gap and the sentence middle
        lo, hi = sorted((pos, len(members) // 2))
        changed.update(members[lo:hi + 1])
        previous = members[pos - 1] if pos > 0 else None
        return previous, changed


class ImportancePruner:
    """Deterministic, re-scoring pruner over whitespace units.

    The cheapest unit sits on top of a heap; entries whose score went stale
    after a removal are skipped when popped. Only the units whose context
    changed are re-scored.
    """

    def __init__(self, scorer: TokenScorer | None = None):
        self.scorer = scorer or HeuristicScorer()

    def analyze_prompt(self, prompt: str) -> list[TokenScore]:
        """Score every unit of *prompt* without removing anything."""
        require_text(prompt, "prompt")
        texts, units = _split_units(prompt)
        layout = _Layout(units)
        return [TokenScore(texts[i], self.scorer.score(texts[i], layout.context(i))) for i in range(len(units))]

    def compress(self, prompt: str, target_ratio: float = 0.5) -> PruneResult:
        require_text(prompt, "prompt")
        ratio = require_ratio(target_ratio)
        texts, units = _split_units(prompt)
        n = len(units)
        if n == 0:
            return PruneResult(prompt, 0.0, 100.0, 0, 0)

        target = math.floor(ratio * n + 1e-9)
        floor = max(1, math.ceil(FLOOR_FRACTION * ratio * n - 1e-9))
        floor_reached = False

        layout = _Layout(units)
        scores = {i: self.scorer.score(texts[i], layout.context(i)) for i in range(n)}
        # ties go to the later unit
        heap = [(s, -i) for i, s in scores.items()]
        heapq.heapify(heap)

        while len(scores) > target:
            if len(scores) <= floor:
                floor_reached = True
                break
            score, neg = heapq.heappop(heap)
            victim = -neg
            if scores.get(victim) != score:
                continue
            del scores[victim]

            previous, changed = layout.remove(victim)
            trailing = _SENTENCE_END_RE.search(texts[victim])
            if trailing and previous is not None:
                texts[previous] = texts[previous].rstrip(",;:") + trailing.group()
                changed.add(previous)

            for i in changed:
                scores[i] = self.scorer.score(texts[i], layout.context(i))
                heapq.heappush(heap, (scores[i], -i))

        kept = sorted(scores)
        if len(kept) == n:
            compressed = prompt
        else:
            compressed = " ".join(texts[i] for i in kept)

        removed = n - len(kept)
        result = PruneResult(
            compressed=compressed,
            compression_ratio=100.0 - len(compressed) / len(prompt) * 100.0,
            semantic_score=semantic_estimate(removed, n),
            original_tokens=n,
            kept_tokens=len(kept),
            floor_reached=floor_reached,
        )
        if floor_reached:
            logger.info("pruning floor reached target_ratio=%s units=%d kept=%d", ratio, n, len(kept))
        return result


def compress(prompt: str, target_ratio: float = 0.5) -> PruneResult:
    return ImportancePruner().compress(prompt, target_ratio)


def analyze_prompt(prompt: str) -> list[TokenScore]:
    return ImportancePruner().analyze_prompt(prompt)
