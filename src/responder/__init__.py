"""Response cascade: tokenizer, learned models, matchers and the orchestrator."""

from src.responder.cascade import Responder
from src.responder.knowledge import KnowledgeGraph, Triple, extract_triples
from src.responder.lexicon import Lexicon, load_lexicon
from src.responder.markov import MarkovEntry, MarkovModel
from src.responder.memory import ShortTermMemory
from src.responder.ranking import ResponseRanking
from src.responder.search import SearchService, Snippet
from src.responder.sentiment import SentimentAnalyzer, SentimentResult
from src.responder.vocabulary import LearnedWords, Vocabulary

__all__ = [
    "KnowledgeGraph",
    "LearnedWords",
    "Lexicon",
    "MarkovEntry",
    "MarkovModel",
    "Responder",
    "ResponseRanking",
    "SearchService",
    "SentimentAnalyzer",
    "SentimentResult",
    "ShortTermMemory",
    "Snippet",
    "Triple",
    "Vocabulary",
    "extract_triples",
    "load_lexicon",
]
