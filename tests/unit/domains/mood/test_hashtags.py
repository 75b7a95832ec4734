"""Tests for hashtag extraction and the hashtag index."""

from __future__ import annotations

from datetime import date

from moodlens.domains.mood.domain_logic.hashtags import extract_hashtags, hashtag_index
from moodlens.domains.mood.domain_logic.models import Category, CategoryGroup, DailySeries


class TestExtractHashtags:
    def test_empty_and_none(self):
        assert extract_hashtags("") == frozenset()
        assert extract_hashtags(None) == frozenset()

    def test_case_folded_and_deduplicated(self):
        assert extract_hashtags("#Work then more #WORK and #work") == {"work"}

    def test_strips_leading_and_trailing_separators(self):
        assert extract_hashtags("#_tired_ and #late-") == {"tired", "late"}

    def test_inner_hyphen_kept(self):
        assert extract_hashtags("#long-walk") == {"long-walk"}

    def test_separator_only_token_dropped(self):
        assert extract_hashtags("#__ #--") == frozenset()

    def test_hash_inside_word_is_not_a_tag(self):
        assert extract_hashtags("Learning C# today") == frozenset()
        assert extract_hashtags("issue##12") == frozenset()

    def test_punctuation_ends_tag(self):
        assert extract_hashtags("Great day (#family), truly!") == {"family"}

    def test_unicode_word_characters(self):
        assert extract_hashtags("#Café") == {"café"}


class TestHashtagIndex:
    def _series(self, *days: set[str]) -> DailySeries:
        start = date(2026, 3, 1)
        return DailySeries(
            dates=tuple(date.fromordinal(start.toordinal() + i) for i in range(len(days))),
            flags=tuple(
                frozenset(Category(CategoryGroup.HASHTAG, t) for t in tags) for tags in days
            ),
        )

    def test_counts_days_most_frequent_first(self):
        series = self._series({"rain"}, {"rain", "work"}, {"alpha"}, {"rain"}, {"work"})
        index = hashtag_index(series)
        assert list(index.items()) == [("rain", 3), ("work", 2), ("alpha", 1)]

    def test_ignores_registry_categories(self):
        series = DailySeries(
            dates=(date(2026, 3, 1),),
            flags=(frozenset({Category(CategoryGroup.ACTIVITY, "walking")}),),
        )
        assert hashtag_index(series) == {}

    def test_empty_series(self):
        assert hashtag_index(DailySeries()) == {}
