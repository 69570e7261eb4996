from typing import List, Optional
from textblob import TextBlob
from nltk.tokenize import RegexpTokenizer

STOP_WORDS = frozenset(['the', 'is', 'in', 'and', 'of', 'to', 'a'])
MIN_KEYWORD_LENGTH = 4

_tokenizer = RegexpTokenizer(r'\w+')


def analyze_sentiment(text: Optional[str]) -> float:
    """
    Scores the polarity of text between -1 (unfavorable) and 1 (favorable).
    Empty or missing text is neutral.
    """
    if not text or not text.strip():
        return 0.0
    return round(TextBlob(text).sentiment.polarity, 4)


def extract_keywords(text: Optional[str]) -> List[str]:
    """
    Lower-cases and tokenizes text, keeping tokens longer than three
    characters that are not stop words. Repeated tokens are kept in order.
    """
    if not text:
        return []
    tokens = _tokenizer.tokenize(text.lower())
    return [word for word in tokens if len(word) >= MIN_KEYWORD_LENGTH and word not in STOP_WORDS]


def extract_hostname(url: Optional[str]) -> str:
    """Short source label for a URL: 'https://www.example.com/a' -> 'example'."""
    if not url:
        return 'Unknown'
    hostname = url.split('/')[2] if '//' in url else url.split('/')[0]
    hostname = hostname.split(':')[0].split('?')[0]
    parts = hostname.split('.')
    return parts[-2] if len(parts) > 2 else parts[0]
