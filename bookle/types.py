"""
Labels and fixed game constants.
"""

from typing import Literal

AttributeStatus = Literal["correct", "partial", "incorrect"]
GameStatus = Literal["active", "won", "lost"]
AttributeType = Literal["date", "text", "number"]
StorageBackend = Literal["database", "memory", "hosted"]

MAX_ATTEMPTS = 8

# Attribute keys on a Guess, in the order a guess row is displayed
ATTRIBUTE_KEYS = (
    "publicationYear",
    "genre",
    "authorsCountry",
    "pages",
    "author",
    "originalLanguage",
    "historicalPeriod",
)

# Reveal priority, highest first
REVEAL_ORDER = (
    "Publication Year",
    "Genre",
    "Pages",
    "Author's Country",
    "Original Language",
    "Historical Period",
    "Author",
)
