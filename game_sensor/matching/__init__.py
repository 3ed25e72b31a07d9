# Fuzzy matching shared by map detection and quest auto-tracking
from .fuzzy import (
    best_match,
    edit_distance,
    loose_match_score,
    normalize,
    token_match_score,
    tokenize,
)

__all__ = [
    "best_match",
    "edit_distance",
    "loose_match_score",
    "normalize",
    "token_match_score",
    "tokenize",
]
