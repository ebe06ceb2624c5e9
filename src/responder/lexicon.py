"""Lexicon config: every word table and canned reply the cascade consumes.

One ``Lexicon`` instance feeds the guards, FAQ, topic, follow-up, sentiment,
ranking and fallback stages.  The built-in defaults can be overridden by a
YAML file (``LEXICON_PATH``); keys missing from the file keep their defaults.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import yaml
from pydantic import BaseModel, Field

from src.responder.tokenizer import STOPWORDS

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)


class FaqEntry(BaseModel):
    """Canned answer fired when any trigger substring appears in the input."""

    triggers: list[str]
    response: str


class Topic(BaseModel):
    """Keyword group with a pool of canned responses."""

    name: str
    keywords: list[str]
    responses: list[str]


class FollowUp(BaseModel):
    """Regex over the raw input and a ``str.format`` template over its named groups."""

    pattern: str
    template: str


class SentimentResponses(BaseModel):
    negative: list[str] = Field(default_factory=lambda: ["Sorry if that upset you 😢"])
    positive: list[str] = Field(default_factory=lambda: ["Yay, that makes me happy! 😊"])
    excited: list[str] = Field(default_factory=lambda: ["Wow!! That's so cool! 🤩"])


def _default_faq() -> list[FaqEntry]:
    return [
        FaqEntry(
            triggers=["creator", "who made you", "who built you", "your dad", "سازنده", "ساخته"],
            response=(
                "My dad is Sobhan! You can find him as mr.sinre on Discord "
                "or as Sobhan-SRZA on GitHub: https://srza.ir"
            ),
        ),
        FaqEntry(
            triggers=["your boss", "آقات", "آقا بالا سر"],
            response="My boss is Shayan.",
        ),
    ]


def _default_topics() -> list[Topic]:
    return [
        Topic(
            name="greeting",
            keywords=["hi", "hello", "hey", "سلام"],
            responses=["Hi friend! What's up?", "Hello! I'm here 😊"],
        ),
        Topic(
            name="farewell",
            keywords=["bye", "goodbye", "خداحافظ"],
            responses=["Bye! Have a great day.", "See you later 👋"],
        ),
        Topic(
            name="thanks",
            keywords=["thanks", "thank", "مرسی"],
            responses=["You're welcome!", "Anytime 😉"],
        ),
        Topic(
            name="games",
            keywords=["game", "games", "play", "بازی"],
            responses=["I love games! Want to play tag?", "Games are the best!"],
        ),
        Topic(
            name="cartoons",
            keywords=["cartoon", "cartoons", "کارتون"],
            responses=["Cartoons are my favourite thing to watch!"],
        ),
    ]


def _default_follow_ups() -> list[FollowUp]:
    return [
        FollowUp(pattern=r"\bi went to (?P<place>\w+(?: \w+)?)", template="How was {place}?"),
        FollowUp(
            pattern=r"\bi (?:ate|had) (?P<food>\w+(?: \w+)?)",
            template="Was the {food} yummy?",
        ),
        FollowUp(
            pattern=r"\bi(?: am|'m) going to (?P<plan>\w+(?: \w+)?)",
            template="Cool! Tell me how {plan} goes.",
        ),
    ]


class Lexicon(BaseModel):
    """All word tables and canned responses, in priority order where order matters."""

    stopwords: list[str] = Field(default_factory=lambda: sorted(STOPWORDS))

    # Guards
    sensitive_words: list[str] = Field(
        default_factory=lambda: ["suicide", "kill myself", "self harm", "password", "خودکشی"]
    )
    sensitive_response: str = "That sounds serious. Please talk to a grown-up you trust."
    insult_words: list[str] = Field(
        default_factory=lambda: ["stupid", "idiot", "dumb", "shut up", "احمق", "خفه"]
    )
    insult_response: str = "That's not nice. Let's be friends instead 🙁"
    forbidden_questions: list[str] = Field(
        default_factory=lambda: ["are you a bot", "are you a robot", "are you ai", "رباتی"]
    )
    forbidden_response: str = "Me? I'm just a kid! 😅"

    # Canned tables
    faq: list[FaqEntry] = Field(default_factory=_default_faq)
    topics: list[Topic] = Field(default_factory=_default_topics)
    follow_ups: list[FollowUp] = Field(default_factory=_default_follow_ups)
    joke_triggers: list[str] = Field(default_factory=lambda: ["joke", "funny", "جوک"])
    jokes: list[str] = Field(
        default_factory=lambda: [
            "Why did the cookie go to the doctor? Because it felt crummy!",
            "What do you call a sleeping dinosaur? A dino-snore!",
            "Why can't a bicycle stand up by itself? It's two tired!",
        ]
    )

    # Sentiment
    positive_words: list[str] = Field(
        default_factory=lambda: ["good", "great", "love", "happy", "nice", "awesome", "خوب", "عالی"]
    )
    negative_words: list[str] = Field(
        default_factory=lambda: ["bad", "sad", "hate", "angry", "ugly", "problem", "بد", "ناراحت"]
    )
    excited_words: list[str] = Field(
        default_factory=lambda: ["wow", "amazing", "yay", "omg", "هورا"]
    )
    question_words: list[str] = Field(
        default_factory=lambda: [
            "what", "why", "how", "who", "where", "when", "چرا", "چطور", "کیست", "چیست",
        ]
    )  # fmt: skip
    negations: list[str] = Field(default_factory=lambda: ["not", "no", "never", "نه"])
    intensifiers: list[str] = Field(default_factory=lambda: ["very", "really", "so", "خیلی"])
    question_markers: list[str] = Field(default_factory=lambda: ["?", "؟"])
    sentiment_responses: SentimentResponses = Field(default_factory=SentimentResponses)

    # Web search and knowledge rendering
    web_reply_prefix: str = "I found this online: "
    web_snippet_length: int = 100
    knowledge_joiner: str = "; "
    source_weights: dict[str, float] = Field(
        default_factory=lambda: {"wikipedia": 3.0, "duckduckgo": 2.0}
    )

    # Generic fallback template: "<subject> <verb> <noun> 😊"
    template_subjects: list[str] = Field(default_factory=lambda: ["I", "We", "You"])
    template_verbs: list[str] = Field(default_factory=lambda: ["really like", "know", "laughed at"])
    template_nouns: list[str] = Field(default_factory=lambda: ["cartoons", "sweets", "games"])
    # Learned words ending in one of these count as verbs in the template.
    verb_suffixes: list[str] = Field(default_factory=lambda: ["م", "ی", "ing", "ed"])
    fallback_reply: str = "I'm just a kid, I don't get it 😅"

    @property
    def stopword_set(self) -> frozenset[str]:
        return frozenset(self.stopwords)


def load_lexicon(path: Path | None = None) -> Lexicon:
    """Build a Lexicon from *path* (YAML) layered over the defaults.

    A missing file logs a warning and returns the defaults.  Malformed YAML
    or invalid values raise, since a broken lexicon is a deployment error.
    """
    if path is None:
        return Lexicon()
    if not path.exists():
        logger.warning("Lexicon file not found at %s, using built-in defaults", path)
        return Lexicon()

    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        msg = f"Lexicon file must contain a mapping, got {type(data).__name__}"
        raise ValueError(msg)
    lexicon = Lexicon.model_validate(data)
    logger.info(
        "Loaded lexicon from %s (%d FAQ entries, %d topics)",
        path,
        len(lexicon.faq),
        len(lexicon.topics),
    )
    return lexicon
