"""Token estimation and compression stats.

Two counters live here:
  * ``estimate_tokens``: the fixed 4-characters-per-token heuristic the
    pipeline uses for all of its own arithmetic (stable across machines).
  * ``count_tokens``: a real BPE count via tiktoken when the encoding can be
    loaded, used only for reporting.
"""

import math

try:
    import tiktoken
    _enc = tiktoken.get_encoding("cl100k_base")
    def count_tokens(text: str) -> int:
        return len(_enc.encode(text))
    TOKEN_METHOD = "tiktoken/cl100k_base"
except Exception:
    def count_tokens(text: str) -> int:
        return len(text) // 4
    TOKEN_METHOD = "len/4 estimate"


CHARS_PER_TOKEN = 4


def estimate_tokens(text: str) -> int:
    """Approximate token count: ceil(len(text) / 4)."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def tokens_saved(original: str, compressed: str) -> int:
    return math.ceil((len(original) - len(compressed)) / CHARS_PER_TOKEN)


def reduction_pct(before: int, after: int) -> float:
    """Percentage reduction from *before* to *after* (0 when before is 0)."""
    if before <= 0:
        return 0.0
    return 100.0 - after / before * 100.0


# ── stats ────────────────────────────────────────────────────────────────────

def stats(orig: str, cond: str, orig_tok: int | None = None) -> dict:
    oc, cc = len(orig), len(cond)
    ot = orig_tok if orig_tok is not None else count_tokens(orig)
    ct = count_tokens(cond)
    return {
        "orig_chars": oc, "cond_chars": cc,
        "orig_tok": ot, "cond_tok": ct,
        "char_pct": round((1 - cc/oc)*100, 1) if oc else 0,
        "tok_pct": round((1 - ct/ot)*100, 1) if ot else 0,
        "method": TOKEN_METHOD,
    }
