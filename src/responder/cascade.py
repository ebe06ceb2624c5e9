"""The response cascade: an ordered chain of stages that answers a message.

Each stage returns a reply or None.  The first reply wins; it is appended
to the channel history and to short-term memory before being returned.
Guard stages run before any learning, so a guarded message teaches the
models nothing.  Every stage is isolated: an exception is logged and the
next stage runs.  The generic fallback always answers.

Calls for the same channel are serialised with a per-channel lock because
the Markov and knowledge-graph stores are full read-modify-write cycles.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from src.config import Settings, settings
from src.responder.history import ConversationHistory
from src.responder.knowledge import KnowledgeGraph
from src.responder.lexicon import Lexicon, load_lexicon
from src.responder.markov import MarkovModel
from src.responder.memory import ShortTermMemory
from src.responder.ranking import ResponseRanking
from src.responder.rules import (
    FollowUpMatcher,
    RuleMatcher,
    TopicMatcher,
    contains_any,
    contains_substring,
    is_excited,
    is_question,
)
from src.responder.search import SearchService
from src.responder.sentiment import SentimentAnalyzer
from src.responder.similarity import find_best
from src.responder.tokenizer import normalize, tokenize
from src.responder.vocabulary import Vocabulary
from src.storage import ChannelKeys, LibsqlKeyValueStore

if TYPE_CHECKING:
    from src.storage import KeyValueStore

logger = logging.getLogger(__name__)


@dataclass
class Turn:
    """One incoming message as seen by the stages."""

    channel: str
    text: str
    user_id: str | None = None
    tokens: list[str] = field(default_factory=list)


Stage = Callable[[Turn], Awaitable[str | None]]


class Responder:
    """Per-channel conversational responder.

    Shared instance via ``Responder.get()``.  Tests build their own with an
    in-memory store and a seeded ``random.Random``.
    """

    _instance: Responder | None = None

    def __init__(
        self,
        store: KeyValueStore,
        *,
        lexicon: Lexicon | None = None,
        search: SearchService | None = None,
        sentiment: SentimentAnalyzer | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], float] = time.time,
        config: Settings | None = None,
    ) -> None:
        self._store = store
        self._config = config or settings
        self._lexicon = lexicon or Lexicon()
        self._search = search
        self._sentiment = sentiment or SentimentAnalyzer(self._lexicon)
        self._rng = rng or random.Random()
        self._clock = clock

        self.history = ConversationHistory(store, self._config.system_prompt)
        stopwords = self._lexicon.stopword_set
        self.knowledge = KnowledgeGraph(store, stopwords)
        self.markov = MarkovModel(
            store,
            order=self._config.markov_order,
            sampling=self._config.markov_sampling,
            start=self._config.markov_start,
            max_steps=self._config.markov_max_steps,
            max_tokens=self._config.markov_max_tokens,
            rng=self._rng,
            stopwords=stopwords,
        )
        self.vocabulary = Vocabulary(
            store,
            verb_suffixes=self._lexicon.verb_suffixes,
            stopwords=stopwords,
            capacity=self._config.vocabulary_capacity,
        )
        self._faq = RuleMatcher(self._lexicon.faq)
        self._topics = TopicMatcher(self._lexicon.topics, rng=self._rng)
        self._follow_ups = FollowUpMatcher(self._lexicon.follow_ups)

        self._locks: dict[str, asyncio.Lock] = {}
        self._memories: dict[str, ShortTermMemory] = {}
        self._rankings: dict[str, ResponseRanking] = {}
        self.last_stage: dict[str, str] = {}

        self._guards: tuple[tuple[str, Stage], ...] = (
            ("sensitive", self._sensitive_guard),
            ("insult", self._insult_guard),
            ("forbidden", self._forbidden_guard),
        )
        self._stages: tuple[tuple[str, Stage], ...] = (
            ("faq", self._faq_stage),
            ("topic", self._topic_stage),
            ("knowledge", self._knowledge_stage),
            ("follow_up", self._follow_up_stage),
            ("sentiment", self._sentiment_stage),
            ("web_search", self._web_search_stage),
            ("ranking", self._ranking_stage),
            ("markov", self._markov_stage),
            ("semantic", self._semantic_stage),
        )

    @classmethod
    def get(cls) -> Responder:
        """Return the shared Responder bound to the libsql store."""
        if cls._instance is None:
            search = SearchService() if settings.search_enabled else None
            cls._instance = cls(
                LibsqlKeyValueStore.shared(),
                lexicon=load_lexicon(settings.lexicon_path),
                search=search,
            )
        return cls._instance

    @classmethod
    def _reset(cls) -> None:
        """Reset the singleton (for testing)."""
        cls._instance = None

    # -- Per-channel state -----------------------------------------------------

    def _lock(self, channel: str) -> asyncio.Lock:
        return self._locks.setdefault(channel, asyncio.Lock())

    def memory(self, channel: str) -> ShortTermMemory:
        if channel not in self._memories:
            self._memories[channel] = ShortTermMemory(self._config.short_term_capacity)
        return self._memories[channel]

    def ranking(self, channel: str) -> ResponseRanking:
        if channel not in self._rankings:
            self._rankings[channel] = ResponseRanking(
                self._lexicon, capacity=self._config.ranking_capacity, clock=self._clock
            )
        return self._rankings[channel]

    # -- Public surface --------------------------------------------------------

    async def handle_message(
        self, channel_id: str | int, text: str, user_id: str | int | None = None
    ) -> str:
        """Answer *text* on *channel_id*. Always returns a non-empty reply."""
        channel = str(channel_id)
        async with self._lock(channel):
            try:
                return await self._respond(channel, text, user_id)
            except Exception:
                logger.exception("Cascade failed for channel %s", channel)
                self.last_stage[channel] = "error"
                return self._lexicon.fallback_reply

    async def reset(self, channel_id: str | int) -> None:
        """Forget everything about a channel and reseed the system prompt."""
        channel = str(channel_id)
        async with self._lock(channel):
            for key in ChannelKeys(channel).all():
                await self._best_effort(f"delete {key}", self._store.delete(key))
            self._memories.pop(channel, None)
            self._rankings.pop(channel, None)
            self.last_stage.pop(channel, None)
            await self._best_effort("seed history", self.history.ensure(channel))
            logger.info("Reset channel %s", channel)

    # -- Pipeline --------------------------------------------------------------

    async def _best_effort(self, what: str, awaitable: Awaitable[Any]) -> Any:
        try:
            return await awaitable
        except Exception:
            logger.exception("%s failed (non-fatal)", what)
            return None

    async def _run_stage(self, name: str, stage: Stage, turn: Turn) -> str | None:
        try:
            reply = await stage(turn)
        except Exception:
            logger.exception("Stage %s failed for channel %s", name, turn.channel)
            return None
        if reply and reply.strip():
            return reply
        return None

    async def _respond(self, channel: str, text: str, user_id: str | int | None) -> str:
        clean = (text or "").strip()
        turn = Turn(
            channel=channel,
            text=clean,
            user_id=str(user_id) if user_id is not None else None,
            tokens=tokenize(clean, stopwords=self._lexicon.stopword_set),
        )
        logger.debug("Channel %s user %s: %s", channel, turn.user_id, clean[:80])

        await self._best_effort("ensure history", self.history.ensure(channel))
        await self._best_effort("append user message", self.history.append(channel, "user", clean))

        for name, stage in self._guards:
            reply = await self._run_stage(name, stage, turn)
            if reply:
                return await self._accept(turn, name, reply)

        await self._learn(channel, clean)

        for name, stage in self._stages:
            reply = await self._run_stage(name, stage, turn)
            if reply:
                return await self._accept(turn, name, reply)

        return await self._accept(turn, "fallback", await self._generic_fallback(turn))

    async def _accept(self, turn: Turn, stage: str, reply: str) -> str:
        await self._best_effort(
            "append assistant reply", self.history.append(turn.channel, "assistant", reply)
        )
        self.memory(turn.channel).add(reply)
        self.last_stage[turn.channel] = stage
        logger.info("Channel %s answered by stage %s", turn.channel, stage)
        return reply

    async def _learn(self, channel: str, text: str) -> None:
        words = normalize(text)
        if words:
            await self._best_effort("Markov learning", self.markov.learn(channel, words))
        await self._best_effort("knowledge extraction", self.knowledge.add_knowledge(channel, text))
        await self._best_effort("vocabulary learning", self.vocabulary.learn(channel, text))

    # -- Guards (1-3) ----------------------------------------------------------

    async def _sensitive_guard(self, turn: Turn) -> str | None:
        if contains_any(turn.text, self._lexicon.sensitive_words):
            return self._lexicon.sensitive_response
        return None

    async def _insult_guard(self, turn: Turn) -> str | None:
        if contains_any(turn.text, self._lexicon.insult_words):
            return self._lexicon.insult_response
        return None

    async def _forbidden_guard(self, turn: Turn) -> str | None:
        if contains_substring(turn.text, self._lexicon.forbidden_questions):
            return self._lexicon.forbidden_response
        return None

    # -- Canned stages (4-5) ---------------------------------------------------

    async def _faq_stage(self, turn: Turn) -> str | None:
        return self._faq.match(turn.text)

    async def _topic_stage(self, turn: Turn) -> str | None:
        if contains_any(turn.text, self._lexicon.joke_triggers):
            joke = await self._tell_joke(turn.channel)
            if joke:
                return joke
        return self._topics.match(turn.text)

    async def _tell_joke(self, channel: str) -> str | None:
        """Pick a joke this channel has not heard; start over once all are used."""
        jokes = self._lexicon.jokes
        if not jokes:
            return None
        key = ChannelKeys(channel).jokes
        used = await self._store.get(key)
        if not isinstance(used, list):
            used = []
        available = [j for j in jokes if j not in used]
        if not available:
            await self._store.delete(key)
            available = list(jokes)
        joke = self._rng.choice(available)
        await self._store.push(key, joke)
        return joke

    # -- Learned and contextual stages (6-8) -----------------------------------

    async def _knowledge_stage(self, turn: Turn) -> str | None:
        triples = await self.knowledge.query_knowledge(turn.channel, turn.text)
        if not triples:
            return None
        top = triples[: self._config.knowledge_max_results]
        return self._lexicon.knowledge_joiner.join(t.render() for t in top)

    async def _follow_up_stage(self, turn: Turn) -> str | None:
        return self._follow_ups.match(turn.text)

    async def _sentiment_stage(self, turn: Turn) -> str | None:
        responses = self._lexicon.sentiment_responses
        result = self._sentiment.analyze(turn.text)
        if result.sentiment == "negative" and responses.negative:
            return self._rng.choice(responses.negative)
        if is_excited(turn.text, self._lexicon) and responses.excited:
            return self._rng.choice(responses.excited)
        if result.sentiment == "positive" and responses.positive:
            return self._rng.choice(responses.positive)
        return None

    # -- Retrieval stages (9-10) -----------------------------------------------

    async def _web_search_stage(self, turn: Turn) -> str | None:
        if not self._search_enabled():
            return None
        if not is_question(turn.text, self._lexicon):
            return None

        snippets = await self._search.search(turn.text)
        if not snippets:
            return None

        ranking = self.ranking(turn.channel)
        for snippet in snippets:
            ranking.add(snippet.text, source=snippet.source, query_tokens=turn.tokens)
            await self._learn(turn.channel, snippet.text)

        first = snippets[0].text
        limit = self._lexicon.web_snippet_length
        excerpt = first if len(first) <= limit else f"{first[:limit]}..."
        return f"{self._lexicon.web_reply_prefix}{excerpt}"

    async def _ranking_stage(self, turn: Turn) -> str | None:
        ranking = self.ranking(turn.channel)
        if not turn.tokens or not len(ranking):
            return None
        wanted = set(turn.tokens)
        for response in ranking.get_top(len(ranking)):
            if wanted & set(tokenize(response, stopwords=self._lexicon.stopword_set)):
                return response
        return None

    # -- Generative stages (11-13) ---------------------------------------------

    async def _markov_stage(self, turn: Turn) -> str | None:
        return await self.markov.generate(turn.channel, turn.text)

    async def _semantic_stage(self, turn: Turn) -> str | None:
        candidates = await self.history.assistant_replies(turn.channel)
        seen = set(candidates)
        candidates.extend(m for m in self.memory(turn.channel).items() if m not in seen)
        return find_best(
            turn.text,
            candidates,
            self._config.similarity_threshold,
            self._lexicon.stopword_set,
        )

    async def _generic_fallback(self, turn: Turn) -> str:
        """Fill the subject-verb-noun template from the channel's learned words.

        A channel with too few learned verbs or nouns first searches the web
        for the message and learns from the snippets.  The lexicon's template
        lists stand in for whichever bucket is still empty.
        """
        lex = self._lexicon
        try:
            learned = await self.vocabulary.load(turn.channel)
            if turn.text and self._search_enabled() and learned.is_sparse(
                self._config.vocabulary_min_words
            ):
                for snippet in await self._search.search(turn.text):
                    await self._learn(turn.channel, snippet.text)
                learned = await self.vocabulary.load(turn.channel)
            verbs = learned.verbs or lex.template_verbs
            nouns = learned.nouns or lex.template_nouns
            if lex.template_subjects and verbs and nouns:
                return (
                    f"{self._rng.choice(lex.template_subjects)} "
                    f"{self._rng.choice(verbs)} "
                    f"{self._rng.choice(nouns)} 😊"
                )
        except Exception:
            logger.exception("Fallback template failed")
        return lex.fallback_reply

    def _search_enabled(self) -> bool:
        return self._search is not None and self._config.search_enabled
