"""Unit tests for the search/sort query pipeline."""

import pytest
from prompt_mix.models import Mix, SortOption
from prompt_mix.query import filter_mixes, sort_mixes, process_mixes


def make_mix(id, title, created_at=0, prompt="", negative_prompt=None):
    return Mix(
        id=str(id),
        url=f"https://example.com/{id}.jpg",
        title=title,
        prompt=prompt,
        negative_prompt=negative_prompt,
        created_at=created_at,
    )


@pytest.fixture
def pair():
    a = make_mix("a", "Zeta", created_at=100, prompt="neon city at night")
    b = make_mix("b", "Alpha", created_at=200, prompt="misty forest", negative_prompt="Zombies")
    return [a, b]


@pytest.fixture
def library():
    return [
        make_mix(1, "Mountain Cinematic", 300, "golden hour, volumetric lighting", "blur, haze"),
        make_mix(2, "river valley", 100, "floating islands, dreamlike"),
        make_mix(3, "Cyberpunk Street", 500, "neon rain, reflections", "daylight"),
        make_mix(4, "beach", 200, "turquoise water", None),
        make_mix(5, "Ábaco", 400, "wooden beads"),
    ]


class TestFilter:
    def test_empty_query_passes_everything(self, library):
        assert filter_mixes(library, "") == library

    def test_whitespace_query_passes_everything(self, library):
        assert filter_mixes(library, "   \t") == library

    def test_title_match_case_insensitive(self, library):
        result = filter_mixes(library, "CYBER")
        assert [m.id for m in result] == ["3"]

    def test_prompt_match(self, library):
        result = filter_mixes(library, "dreamlike")
        assert [m.id for m in result] == ["2"]

    def test_negative_prompt_match(self, library):
        result = filter_mixes(library, "HAZE")
        assert [m.id for m in result] == ["1"]

    def test_missing_negative_prompt_is_ignored(self, library):
        assert filter_mixes(library, "nothing matches this") == []

    def test_property_any_field(self, library):
        for q in ["a", "ne", "ll", "water", "day"]:
            expected = [
                m for m in library
                if q in m.title.lower()
                or q in m.prompt.lower()
                or (m.negative_prompt and q in m.negative_prompt.lower())
            ]
            assert filter_mixes(library, q) == expected

    def test_does_not_mutate_input(self, library):
        before = list(library)
        filter_mixes(library, "neon")
        assert library == before


class TestSort:
    def test_newest(self, library):
        ids = [m.id for m in sort_mixes(library, SortOption.NEWEST)]
        assert ids == ["3", "5", "1", "4", "2"]

    def test_oldest_is_reverse_of_newest(self, library):
        newest = sort_mixes(library, "newest")
        oldest = sort_mixes(library, "oldest")
        assert oldest == list(reversed(newest))

    def test_a_z_ignores_case(self, library):
        titles = [m.title for m in sort_mixes(library, "a-z")]
        assert titles.index("beach") < titles.index("Cyberpunk Street")
        assert titles.index("Mountain Cinematic") < titles.index("river valley")

    def test_a_z_places_accented_titles_alphabetically(self):
        mixes = [make_mix(1, "Zeta"), make_mix(2, "river"), make_mix(3, "Ábaco"), make_mix(4, "Éclair")]
        titles = [m.title for m in sort_mixes(mixes, "a-z")]
        assert titles == ["Ábaco", "Éclair", "river", "Zeta"]

    def test_accented_title_in_library(self, library):
        titles = [m.title for m in sort_mixes(library, "a-z")]
        assert titles[0] == "Ábaco"
        assert titles[-1] == "river valley"

    def test_z_a_is_reverse_of_a_z(self, library):
        assert sort_mixes(library, "z-a") == list(reversed(sort_mixes(library, "a-z")))

    def test_unknown_option_keeps_order(self, library):
        assert sort_mixes(library, "by-vibes") == library

    def test_input_not_reordered(self, library):
        before = [m.id for m in library]
        sort_mixes(library, "a-z")
        assert [m.id for m in library] == before


class TestProcess:
    def test_newest(self, pair):
        a, b = pair
        assert process_mixes(pair, "", "newest") == [b, a]

    def test_a_z(self, pair):
        a, b = pair
        assert process_mixes(pair, "", "a-z") == [b, a]

    def test_search_independent_of_sort(self, pair):
        a, _ = pair
        for option in SortOption:
            assert process_mixes(pair, "zet", option) == [a]

    def test_search_reaches_negative_prompt(self, pair):
        _, b = pair
        assert process_mixes(pair, "zomb", "newest") == [b]
