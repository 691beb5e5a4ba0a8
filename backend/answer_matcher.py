"""
Answer Matching

Decides whether a typed guess names the song (or artist) being played.
Tolerant of case, whitespace and punctuation, and of answers that leave
off a short part of the title.

Functions in this module are stateless and never raise.
"""

import re
import logging

logger = logging.getLogger(__name__)

# Minimum length ratio (shorter / longer) for a substring answer to count
SUBSTRING_MATCH_RATIO = 0.7

# . , / # ! $ % ^ & * ; : { } = - _ ` ~ ( )
PUNCTUATION_PATTERN = re.compile(r"[.,/#!$%^&*;:{}=\-_`~()]")
WHITESPACE_PATTERN = re.compile(r"\s+")


def normalize_answer(text: str) -> str:
    """
    Normalize text for answer comparison

    Trims, lowercases, collapses whitespace runs, then strips punctuation.
    Whitespace is collapsed before punctuation is removed, so "a - b"
    keeps two spaces ("a  b").
    """
    if not text:
        return ""

    text = text.strip().lower()
    text = WHITESPACE_PATTERN.sub(' ', text)
    return PUNCTUATION_PATTERN.sub('', text)


def is_match(guess: str, target: str) -> bool:
    """
    Check if a guess matches the target title or artist name

    Examples:
        "bodyslam" vs "Bodyslam!!" -> True (case and punctuation ignored)
        "คิด" vs "คิดถึง" -> False (only half of the title)

    Args:
        guess: What the player typed
        target: The correct answer

    Returns:
        True if the normalized strings are equal, or one contains the other
        and covers at least 70% of its length
    """
    if not guess or not target:
        return False

    norm_guess = normalize_answer(guess)
    norm_target = normalize_answer(target)

    # All-punctuation input
    if not norm_guess or not norm_target:
        return False

    if norm_guess == norm_target:
        return True

    if norm_guess in norm_target or norm_target in norm_guess:
        shorter = min(len(norm_guess), len(norm_target))
        longer = max(len(norm_guess), len(norm_target))
        return shorter / longer >= SUBSTRING_MATCH_RATIO

    return False
