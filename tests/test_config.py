"""Tests for Settings configuration model."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from src.config import DEFAULT_SYSTEM_PROMPT, Settings


class TestGetAllowedUserIds:
    def test_parses_comma_separated(self):
        s = Settings(allowed_user_ids="123,456,789")
        assert s.get_allowed_user_ids() == {123, 456, 789}

    def test_handles_spaces(self):
        s = Settings(allowed_user_ids=" 123 , 456 ")
        assert s.get_allowed_user_ids() == {123, 456}

    def test_empty_string_returns_empty_set(self):
        s = Settings(allowed_user_ids="")
        assert s.get_allowed_user_ids() == set()

    def test_single_id(self):
        s = Settings(allowed_user_ids="42")
        assert s.get_allowed_user_ids() == {42}


class TestDefaults:
    def test_default_platform(self):
        assert Settings().chat_platform == "cli"

    def test_default_database_path(self):
        assert Settings().database_path == Path("data/bache.db")

    def test_default_http_port(self):
        assert Settings().http_port == 8080

    def test_default_system_prompt(self):
        assert Settings().system_prompt == DEFAULT_SYSTEM_PROMPT

    def test_markov_defaults(self):
        s = Settings()
        assert s.markov_order == 2
        assert s.markov_sampling == "weighted"
        assert s.markov_start == "first"
        assert s.markov_max_tokens == 15

    def test_similarity_threshold_default(self):
        assert Settings().similarity_threshold == 0.3

    def test_capacities(self):
        s = Settings()
        assert s.short_term_capacity == 5
        assert s.ranking_capacity == 50
        assert s.knowledge_max_results == 3

    def test_search_enabled_default(self):
        assert Settings().search_enabled is True

    def test_lexicon_path_unset(self):
        assert Settings().lexicon_path is None

    def test_wikipedia_defaults_to_persian(self):
        assert Settings().wikipedia_api_url == "https://fa.wikipedia.org/w/api.php"

    def test_vocabulary_defaults(self):
        s = Settings()
        assert s.vocabulary_min_words == 5
        assert s.vocabulary_capacity == 500


class TestValidation:
    def test_similarity_threshold_bounds(self):
        with pytest.raises(ValidationError):
            Settings(similarity_threshold=0.9)
        with pytest.raises(ValidationError):
            Settings(similarity_threshold=0.1)

    def test_markov_sampling_choices(self):
        with pytest.raises(ValidationError):
            Settings(markov_sampling="beam")

    def test_markov_max_tokens_minimum(self):
        with pytest.raises(ValidationError):
            Settings(markov_max_tokens=2)

    def test_unknown_platform(self):
        with pytest.raises(ValidationError):
            Settings(chat_platform="slack")


class TestExtraForbidden:
    def test_unknown_env_var_raises(self):
        with pytest.raises(ValueError, match="extra_forbidden"):
            Settings(**{"nonexistent_field": "value"})
