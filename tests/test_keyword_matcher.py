"""Tests for keyword matching."""

from conftest import make_memory

from memory_friend.services.keyword_matcher import extract_keywords, match_memories_by_keyword


class TestExtractKeywords:
    """Tests for question tokenization."""

    def test_strips_punctuation_and_lowercases(self):
        assert extract_keywords('Where are my KEYS?') == ['where', 'keys']

    def test_drops_words_of_three_characters_or_fewer(self):
        assert extract_keywords('Did I eat the pie') == []

    def test_only_listed_punctuation_is_removed(self):
        """Apostrophes and other characters stay part of the word."""
        assert extract_keywords("What's Anna's number!") == ["what's", "anna's", 'number']


class TestMatchMemoriesByKeyword:
    """Tests for memory filtering."""

    def test_matches_raw_text_substring(self):
        memories = [make_memory('I left the car keys on the hook'), make_memory('Lunch with Bob')]
        result = match_memories_by_keyword('Where are my keys?', memories)
        assert result == [memories[0]]

    def test_matches_tags_case_insensitively(self):
        memory = make_memory('Put it in the drawer', tags=['Passport'])
        assert match_memories_by_keyword('Where is the passport', [memory]) == [memory]

    def test_keyword_may_be_part_of_a_tag(self):
        memory = make_memory('Blue pills after dinner', tags=['medications'])
        assert match_memories_by_keyword('medication schedule', [memory]) == [memory]

    def test_preserves_input_order(self):
        newest = make_memory('Doctor visit on Monday', minutes_ago=1)
        older = make_memory('Doctor said walk more', minutes_ago=60)
        assert match_memories_by_keyword('what did the doctor say', [newest, older]) == [newest, older]

    def test_no_keywords_yields_empty_result(self):
        memories = [make_memory('who am I and how do you do')]
        assert match_memories_by_keyword('Who am I?', memories) == []

    def test_no_matching_memory(self):
        memories = [make_memory('Gardening on Sunday', tags=['garden'])]
        assert match_memories_by_keyword('Where is my wallet?', memories) == []
