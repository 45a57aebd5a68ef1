"""Tests for the lexicon-driven sentiment and category stages."""

import pytest

from metaprobe.enrichment.category import CategoryClassifier
from metaprobe.enrichment.lexicons import DEFAULT_LEXICONS, Lexicons, load_lexicons
from metaprobe.enrichment.sentiment import SentimentAnalyzer
from metaprobe.protocols import MetadataRecord

URL = "https://example.com/"


def record(title: str = "", description: str = "", keywords=()) -> MetadataRecord:
    return MetadataRecord(url=URL, title=title, description=description, keywords=tuple(keywords))


@pytest.mark.unit
class TestSentimentAnalyzer:
    def test_positive(self):
        result = SentimentAnalyzer().analyze(record("Amazing planner", "The best way to plan."))
        assert result.overall == "positive"
        assert result.tone == "positive"
        assert result.confidence == 1.0
        assert result.emotions == {"positive": 2, "negative": 0}
        assert result.recommendations == ()

    def test_negative_with_mixed_signals(self):
        result = SentimentAnalyzer().analyze(record("Terrible and awful", "but the support is great"))
        assert result.overall == "negative"
        assert result.confidence == 0.67
        assert result.recommendations == (
            "Consider using more positive language",
            "Highlight benefits and value propositions",
            "Consider making the tone more consistent",
        )

    def test_call_to_action_without_lexicon_words_is_neutral(self):
        result = SentimentAnalyzer().analyze(record(description="Buy X now!!! Click here!!!"))
        assert result.overall == "neutral"
        assert result.confidence == 0.5
        assert result.recommendations

    def test_tie_is_neutral(self):
        assert SentimentAnalyzer().analyze_text("great but bad").overall == "neutral"

    def test_whole_tokens_only(self):
        # "badge" and "greatness" are not lexicon words
        result = SentimentAnalyzer().analyze_text("badge of greatness")
        assert result.emotions == {"positive": 0, "negative": 0}

    def test_custom_lexicon(self):
        lexicons = Lexicons(positive_words=("delightful",), negative_words=("meh",))
        assert SentimentAnalyzer(lexicons).analyze_text("A delightful app").overall == "positive"
        assert SentimentAnalyzer(lexicons).analyze_text("Amazing app").overall == "neutral"


@pytest.mark.unit
class TestCategoryClassifier:
    def test_primary_and_secondary(self):
        result = CategoryClassifier().classify(
            record("Task manager for developers", "Organize your workflow and code with an API")
        )
        assert result.primary == "productivity"
        assert result.secondary == "development"
        assert result.confidence == 1.0
        assert result.tags == ("task", "organize", "workflow", "code", "api")
        assert result.industry == "Productivity Software"

    def test_word_boundaries(self):
        # "manager" must not match "manage"
        result = CategoryClassifier().classify(record("Manager"))
        assert result.primary == "general"

    def test_ties_follow_table_order(self):
        result = CategoryClassifier().classify(record("Design for business"))
        assert result.primary == "design"
        assert result.secondary == "business"
        assert result.confidence == pytest.approx(1 / 3, abs=1e-4)

    def test_weak_runner_up_is_not_secondary(self):
        result = CategoryClassifier().classify(
            record("Fitness and nutrition", "Exercise plans for health and wellness", keywords=["money"])
        )
        assert result.primary == "health"
        assert result.secondary is None
        assert result.tags == ("health", "fitness", "wellness", "exercise", "nutrition")

    def test_keywords_are_considered(self):
        result = CategoryClassifier().classify(record("Untitled", keywords=["tutorial", "course"]))
        assert result.primary == "education"
        assert result.industry == "Education"

    def test_no_match_is_general(self):
        result = CategoryClassifier().classify(record("Hello world"))
        assert result.primary == "general"
        assert result.secondary is None
        assert result.confidence == 0.0
        assert result.tags == ()
        assert result.industry == "General"

    def test_custom_table(self):
        lexicons = Lexicons(categories={"gardening": ("plant", "soil")}, industries={"general": "General"})
        result = CategoryClassifier(lexicons).classify(record("Plant care", "Soil tips"))
        assert result.primary == "gardening"
        assert result.industry == "General"


@pytest.mark.unit
class TestLexicons:
    def test_industry_for_unknown_category(self):
        assert Lexicons().industry_for("astronomy") == "General"

    def test_from_mapping_overrides_only_given_tables(self):
        lexicons = Lexicons.from_mapping({"stopwords": ["Foo"], "categories": {"food": ["recipe"]}})
        assert lexicons.stopwords == frozenset({"foo"})
        assert dict(lexicons.categories) == {"food": ("recipe",)}
        assert lexicons.positive_words == Lexicons().positive_words

    def test_from_yaml(self, tmp_path):
        path = tmp_path / "lexicons.yaml"
        path.write_text("positive_words: [stellar]\naction_words: [grab]\n", encoding="utf-8")
        lexicons = Lexicons.from_yaml(path)
        assert lexicons.positive_words == ("stellar",)
        assert lexicons.action_words == ("grab",)

    def test_from_yaml_requires_mapping(self, tmp_path):
        path = tmp_path / "lexicons.yaml"
        path.write_text("- just\n- a list\n", encoding="utf-8")
        with pytest.raises(ValueError):
            Lexicons.from_yaml(path)

    def test_load_lexicons_defaults_to_builtin_tables(self):
        assert load_lexicons(None) is DEFAULT_LEXICONS
        assert load_lexicons("") is DEFAULT_LEXICONS

    def test_load_lexicons_from_file(self, tmp_path):
        path = tmp_path / "lexicons.yaml"
        path.write_text("negative_words: [meh]\n", encoding="utf-8")
        lexicons = load_lexicons(str(path))
        assert lexicons.negative_words == ("meh",)
        assert lexicons.positive_words == DEFAULT_LEXICONS.positive_words
