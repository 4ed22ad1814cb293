"""Hybrid preprocessor: the cheap first pass of the pipeline.

Rewrites wordy constructions to short ones, turns common questions into
directives and passive "is X-ed by" into the bare verb, abbreviates long
technical terms, strips filler words and politeness preambles, tightens
punctuation spacing, collapses whitespace and drops sentences that repeat an
earlier one. Every rewrite makes the text strictly shorter, and ``normalize``
repeats the pass until nothing changes, so
``normalize(normalize(t)) == normalize(t)``.

Filler words are only removed as whole words: ``just-in-time`` survives.
A prompt made only of filler is returned unchanged rather than emptied.
"""

import re
from dataclasses import dataclass, field
from typing import Iterable

from prompt_condenser.errors import require_text


FILLER_WORDS = (
    "actually", "basically", "essentially", "literally", "really", "very",
    "quite", "just", "simply", "merely", "perhaps", "maybe", "possibly",
    "somewhat", "rather", "fairly", "absolutely", "totally", "completely",
    "definitely", "certainly", "surely", "truly", "honestly", "obviously",
    "clearly", "please", "kindly",
)

FILLER_PHRASES = (
    "as a matter of fact", "it goes without saying that", "it goes without saying",
    "needless to say", "as far as I know", "to tell you the truth",
    "in a nutshell", "long story short", "at the end of the day",
    "when all is said and done", "for all intents and purposes",
    "in my opinion", "I think that", "I believe that", "it seems that",
    "it appears that", "it should be noted that", "thank you in advance",
    "thanks in advance", "thank you", "thanks",
)

# (pattern, replacement) applied in order; replacements may use groups
REDUNDANT_PATTERNS = (
    (r"\b(?:please|kindly)\s+(help|assist|provide|give|show)\b", r"\1"),
    (r"\b(?:can|could|would)\s+you\s+(?:please\s+)?", ""),
    (r"\bI\s+(?:would\s+like|want|need)\s+(?:you\s+)?to\s+", ""),
    (r"\bin\s+order\s+to\b", "to"),
    (r"\bdue\s+to\s+the\s+fact\s+that\b", "because"),
    (r"\bfor\s+the\s+purpose\s+of\b", "for"),
    (r"\bat\s+this\s+point\s+in\s+time\b", "now"),
    (r"\bin\s+the\s+event\s+that\b", "if"),
    (r"\bit\s+is\s+important\s+to\s+note\s+that\b", "note:"),
)

VERBOSE_TO_CONCISE = {
    "provide a comprehensive summary of": "summarize",
    "provide a comprehensive summary": "summarize",
    "conduct an analysis of": "analyze",
    "conduct an analysis": "analyze",
    "perform a calculation": "calculate",
    "make a determination": "determine",
    "give consideration to": "consider",
    "take into consideration": "consider",
    "take into account": "consider",
    "with respect to": "regarding",
    "with regard to": "regarding",
    "in relation to": "about",
    "in reference to": "about",
    "for the reason that": "because",
    "in spite of the fact that": "although",
    "until such time as": "until",
    "in the near future": "soon",
    "at the present time": "now",
    "in the majority of cases": "usually",
    "has the ability to": "can",
    "is able to": "can",
    "is capable of": "can",
    "in the process of": "currently",
    "a large number of": "many",
    "a small number of": "few",
    "a number of": "several",
    "the majority of": "most",
    "make use of": "use",
    "put into effect": "implement",
    "bring to an end": "end",
    "come to a conclusion": "conclude",
    "reach a decision": "decide",
    "have an effect on": "affect",
    "have an impact on": "impact",
    "make an attempt to": "try to",
    "give an indication of": "indicate",
    "provide assistance to": "help",
    "offer resistance to": "resist",
}

# question -> directive; each replacement is shorter than what it replaces
QUESTION_PATTERNS = (
    (r"(?<![\w-])(?:how\s+do|how\s+can)\s+I\s+([^.!?]+?)\?", r"\1."),
    (r"(?<![\w-])what\s+is\s+([^.!?]+?)\?", r"Define \1."),
    (r"(?<![\w-])why\s+does\s+([^.!?]+?)\?", r"Explain \1."),
)

PASSIVE_PATTERN = r"(?<![\w-])(?:is|are|was|were)\s+(\w+ed)\s+by(?![\w-])"

# Dictionary concepts ("user interface", "machine learning") stay out of this
# table so the codec still sees them.
ABBREVIATIONS = {
    "application programming interface": "API",
    "database management system": "DBMS",
    "user experience": "UX",
    "artificial intelligence": "AI",
    "for example": "e.g.",
    "and so on": "etc.",
}

DUPLICATE_SIMILARITY = 0.7
DUPLICATE_MIN_WORDS = 3

_KEY_TERM_RE = re.compile(r"[^\W\d_]{4,}")
_WORD_RE = re.compile(r"\w+")
_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+")
_LEADING_ARTICLE_RE = re.compile(r"([.!?])\s+(?:The|An|A)\s+")
_SPACE_BEFORE_PUNCT_RE = re.compile(r"\s+([,.;:!?])")
_REPEATED_COMMA_RE = re.compile(r",(?:\s*,)+")
_LEADING_PUNCT_RE = re.compile(r"^[\s,;:]+")
_WS_RE = re.compile(r"\s+")


def _phrase_re(phrase: str) -> str:
    return r"\s+".join(re.escape(w) for w in phrase.split())


def _whole(body: str) -> str:
    """Match *body* only as whole words; a hyphen joins words."""
    return rf"(?<![\w-])(?:{body})(?![\w-])"


def jaccard(a: set[str], b: set[str]) -> float:
    if not a and not b:
        return 0.0
    return len(a & b) / len(a | b)


def drop_repeated_sentences(text: str, removed: list[str] | None = None) -> str:
    """Remove sentences whose word overlap with an earlier kept one exceeds 0.7.

    Sentences of fewer than three words are always kept. Text with nothing to
    drop is returned unchanged.
    """
    sentences = _SENTENCE_SPLIT_RE.split(text)
    if len(sentences) < 2:
        return text
    kept: list[str] = []
    seen: list[set[str]] = []
    dropped = False
    for sentence in sentences:
        words = _WORD_RE.findall(sentence.lower())
        bag = set(words)
        if len(words) >= DUPLICATE_MIN_WORDS and any(
            jaccard(bag, prior) > DUPLICATE_SIMILARITY for prior in seen
        ):
            dropped = True
            if removed is not None:
                removed.append(sentence)
            continue
        kept.append(sentence)
        if len(words) >= DUPLICATE_MIN_WORDS:
            seen.append(bag)
    return " ".join(kept) if dropped else text


def key_terms(text: str) -> set[str]:
    """Lower-cased words of four or more letters, fillers excluded."""
    return {w.lower() for w in _KEY_TERM_RE.findall(text)} - set(FILLER_WORDS)


def retention_score(before: str, after: str) -> float:
    """Percentage of *before*'s key terms still present in *after*.

    A text with no key terms retains everything (100).
    """
    terms = key_terms(before)
    if not terms:
        return 100.0
    kept = terms & key_terms(after)
    return len(kept) / len(terms) * 100.0


@dataclass
class PreprocessResult:
    text: str
    removed: list[str] = field(default_factory=list)
    ratio: float = 0.0
    semantic_score: float = 100.0


class HybridPreprocessor:
    """Normalization pass. *extra_fillers* are removed like the built-in phrases."""

    def __init__(self, extra_fillers: Iterable[str] = ()):
        self.extra_fillers = tuple(f.strip() for f in extra_fillers if f and f.strip())

        self._patterns = [
            (re.compile(p, re.IGNORECASE), r, p) for p, r in REDUNDANT_PATTERNS
        ]
        for verbose in sorted(VERBOSE_TO_CONCISE, key=len, reverse=True):
            self._patterns.append((
                re.compile(_whole(_phrase_re(verbose)), re.IGNORECASE),
                VERBOSE_TO_CONCISE[verbose],
                verbose,
            ))
        self._patterns.extend(
            (re.compile(p, re.IGNORECASE), r, p) for p, r in QUESTION_PATTERNS
        )
        self._patterns.append((re.compile(PASSIVE_PATTERN, re.IGNORECASE), r"\1", "passive voice"))
        self._patterns.append((_LEADING_ARTICLE_RE, r"\1 ", "leading article"))
        for term in sorted(ABBREVIATIONS, key=len, reverse=True):
            self._patterns.append((
                re.compile(_whole(_phrase_re(term)), re.IGNORECASE),
                ABBREVIATIONS[term],
                term,
            ))

        phrases = sorted(FILLER_PHRASES + self.extra_fillers, key=len, reverse=True)
        alternation = "|".join(_phrase_re(p) for p in phrases)
        self._phrase_re = re.compile(_whole(alternation) + ",?", re.IGNORECASE)
        words = "|".join(re.escape(w) for w in FILLER_WORDS)
        self._filler_re = re.compile(_whole(words) + ",?", re.IGNORECASE)

    def _pass(self, text: str, removed: list[str]) -> str:
        for pattern, replacement, label in self._patterns:
            text, n = pattern.subn(replacement, text)
            if n:
                removed.append(label)

        def _drop(m):
            removed.append(m.group().rstrip(","))
            return ""

        text = self._phrase_re.sub(_drop, text)
        text = self._filler_re.sub(_drop, text)

        text = _SPACE_BEFORE_PUNCT_RE.sub(r"\1", text)
        text = _REPEATED_COMMA_RE.sub(",", text)
        text = _LEADING_PUNCT_RE.sub("", text)
        text = _WS_RE.sub(" ", text).strip()
        return drop_repeated_sentences(text, removed)

    def normalize(self, text: str) -> str:
        return self.preprocess(text).text

    def preprocess(self, text: str) -> PreprocessResult:
        require_text(text)
        removed: list[str] = []
        current = text
        while True:
            nxt = self._pass(current, removed)
            if nxt == current:
                break
            current = nxt

        # nothing but filler: keep the prompt rather than return an empty shell
        if _WORD_RE.search(text) and not _WORD_RE.search(current):
            return PreprocessResult(text=text)

        ratio = 100.0 - len(current) / len(text) * 100.0 if text else 0.0
        return PreprocessResult(
            text=current,
            removed=removed,
            ratio=ratio,
            semantic_score=retention_score(text, current),
        )


_default = None


def _default_preprocessor() -> HybridPreprocessor:
    global _default
    if _default is None:
        _default = HybridPreprocessor()
    return _default


def normalize(text: str) -> str:
    """Normalize *text* with the built-in filler and rewrite lists."""
    return _default_preprocessor().normalize(text)


def preprocess(text: str) -> PreprocessResult:
    return _default_preprocessor().preprocess(text)
