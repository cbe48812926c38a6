import re

SPAM_PATTERNS = (
    re.compile(r"\b(viagra|cialis|lottery|winner|click here|buy now)\b", re.IGNORECASE),
    re.compile(r"\b(www\.|https?://)\S+\.\S+", re.IGNORECASE),
    re.compile(r"(.)\1{10,}"),
    re.compile(r"[A-Z][A-Z\s]{18,}[A-Z]"),
)

MIN_WORDS = 3
MAX_WORDS = 500
SUSPICION_THRESHOLD = 2


def spam_score(message: str) -> int:
    return sum(1 for pattern in SPAM_PATTERNS if pattern.search(message))


def is_spam(message: str) -> bool:
    """
    Heuristic guestbook spam check.

    A message is spam when it is too short or too long, or when at least two
    of the patterns (keywords, links, repeated characters, shouting) match.
    """
    word_count = len(message.split())
    if word_count < MIN_WORDS or word_count > MAX_WORDS:
        return True

    return spam_score(message) >= SUSPICION_THRESHOLD
