"""Fuzzy text matching for noisy OCR output.

Two scorers share the same normalisation:

- ``token_match_score`` (strict): every target word must appear in the OCR text
  with at most one character of edit distance. Used for quest objectives.
- ``loose_match_score``: substring containment, then per-word containment for
  words of three or more characters. Used for short map names that OCR tends to
  read verbatim.
"""

import re
from typing import Callable, Iterable, List, Optional, Tuple, TypeVar

T = TypeVar("T")

_NON_ALNUM = re.compile(r"[^a-z0-9\s]")

# Strict matcher tolerates one OCR slip per word
MAX_TOKEN_DISTANCE = 1
# Loose matcher ignores short words like "of" and "the"
LOOSE_MIN_TOKEN_LEN = 3


def normalize(text: str) -> str:
    """Lowercase and drop everything except ASCII letters, digits and whitespace."""
    return _NON_ALNUM.sub("", (text or "").lower()).strip()


def tokenize(text: str) -> List[str]:
    return [token for token in normalize(text).split() if token]


def edit_distance(a: str, b: str) -> int:
    """Levenshtein distance: minimum single-character inserts, deletes and substitutions."""
    m, n = len(a), len(b)
    if m == 0:
        return n
    if n == 0:
        return m

    dp = [[0] * (n + 1) for _ in range(m + 1)]
    for i in range(m + 1):
        dp[i][0] = i
    for j in range(n + 1):
        dp[0][j] = j

    for i in range(1, m + 1):
        for j in range(1, n + 1):
            cost = 0 if a[i - 1] == b[j - 1] else 1
            dp[i][j] = min(
                dp[i - 1][j] + 1,
                dp[i][j - 1] + 1,
                dp[i - 1][j - 1] + cost,
            )
    return dp[m][n]


def token_match_score(ocr_text: str, target: str) -> float:
    """Share of target words found in the OCR text within MAX_TOKEN_DISTANCE edits."""
    ocr_tokens = tokenize(ocr_text)
    target_tokens = tokenize(target)
    if not target_tokens:
        return 0.0

    matched = 0
    for token in target_tokens:
        if any(edit_distance(candidate, token) <= MAX_TOKEN_DISTANCE for candidate in ocr_tokens):
            matched += 1
    return matched / len(target_tokens)


def loose_match_score(ocr_text: str, name: str) -> float:
    """Containment-based score for short names; 1.0 when either text contains the other."""
    ocr = normalize(ocr_text)
    target = normalize(name)
    if not ocr or not target:
        return 0.0
    if target in ocr or ocr in target:
        return 1.0

    ocr_tokens = [t for t in ocr.split() if len(t) >= LOOSE_MIN_TOKEN_LEN]
    name_tokens = [t for t in target.split() if len(t) >= LOOSE_MIN_TOKEN_LEN]
    if not name_tokens:
        return 0.0

    matched = 0
    for token in name_tokens:
        if any(candidate in token or token in candidate for candidate in ocr_tokens):
            matched += 1
    return matched / len(name_tokens)


def best_match(
    text: str,
    candidates: Iterable[T],
    key: Callable[[T], str],
    scorer: Callable[[str, str], float] = loose_match_score,
    threshold: float = 0.0,
) -> Optional[Tuple[T, float]]:
    """Highest scoring candidate strictly above threshold; earlier candidates win ties."""
    best: Optional[Tuple[T, float]] = None
    for candidate in candidates:
        score = scorer(text, key(candidate))
        if score > threshold and (best is None or score > best[1]):
            best = (candidate, score)
    return best
