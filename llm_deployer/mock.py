"""
Offline mock responder.

Used by the inference gateway whenever the real server cannot answer.
Category matching is deterministic; only the template pick within a
category is random, and the random source is injectable.
"""

import random
import re
from typing import Dict, List, Optional, Tuple

EXCERPT_LENGTH = 25

# Keyword plus common inflections ("thanks", "helpful"), whole words only
KEYWORD_PATTERN = r"\b{}(?:s|ful)?\b"

# Ordered: the first matching keyword wins
CATEGORIES: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("hello", (
        "Hello! How can I help you today?",
        "Hi there! What would you like to talk about?",
        "Hello! Nice to meet you. What's on your mind?",
    )),
    ("how are you", (
        "I'm doing well, thanks for asking! How about you?",
        "All systems running smoothly. How can I help?",
        "I'm great, thank you! What can I do for you?",
    )),
    ("what is", (
        "That's a great question. I'm running in offline mode, so I can only give a short answer right now.",
        "Good question! Once a local model is available I can explain it in detail.",
        "I'd love to explain that, but no language model is reachable at the moment.",
    )),
    ("help", (
        "I'm here to help! Tell me what you need.",
        "Sure, I can help. What are you working on?",
        "Happy to help. Could you give me a bit more detail?",
    )),
    ("thank", (
        "You're welcome!",
        "Glad I could help!",
        "Anytime! Let me know if you need anything else.",
    )),
)

GENERIC_TEMPLATES: Tuple[str, ...] = (
    "I received your message: \"{excerpt}\". No local model is available, so this is an offline reply.",
    "You said \"{excerpt}\". I'll be able to answer properly once the model server is running.",
    "Interesting! Regarding \"{excerpt}\", I'm in offline mode right now.",
)


def excerpt(prompt: str) -> str:
    return prompt.strip()[:EXCERPT_LENGTH]


class MockResponder:
    """Keyword-matched canned replies. Never fails, never touches the network."""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()
        self.categories: Dict[str, Tuple[str, ...]] = dict(CATEGORIES)
        self.patterns = [
            (keyword, re.compile(KEYWORD_PATTERN.format(re.escape(keyword))))
            for keyword, _ in CATEGORIES
        ]

    def categorize(self, prompt: str) -> Optional[str]:
        """First keyword category appearing as a word in the prompt, or None."""
        text = (prompt or "").lower()
        for keyword, pattern in self.patterns:
            if pattern.search(text):
                return keyword
        return None

    def candidates(self, prompt: str) -> List[str]:
        """Every reply reply() could return for this prompt."""
        category = self.categorize(prompt)
        if category is not None:
            return list(self.categories[category])
        snippet = excerpt(prompt or "")
        return [t.format(excerpt=snippet) for t in GENERIC_TEMPLATES]

    def reply(self, prompt: str) -> str:
        return self.rng.choice(self.candidates(prompt))


_default = MockResponder()


def mock_reply(prompt: str, rng: Optional[random.Random] = None) -> str:
    """Plausible offline reply for a prompt."""
    if rng is not None:
        return MockResponder(rng).reply(prompt)
    return _default.reply(prompt)
