"""Tests for reconciling normalizer output with consolidated entries."""

import logging

import pytest
from conftest import make_source
from grocery_planner.models import ConsolidatedEntry, MealType, NormalizedItem, NormalizedResult
from grocery_planner.normalizer import NormalizationError
from grocery_planner.reconciler import (
    NO_MATCH,
    PARTIAL_WORD,
    SAME_NAME,
    TOKEN_SUBSET,
    WHOLE_WORDS,
    best_result,
    dedupe_sources,
    flatten,
    format_meal_counts,
    format_sources_markdown,
    match_score,
    reconcile,
    summarize_sources,
    tokenize,
)


def _entry(name: str, slots: list[tuple[str, dict]]) -> ConsolidatedEntry:
    """Build an entry from (quantity, make_source kwargs) pairs."""
    entry = ConsolidatedEntry(name=name)
    for qty, kwargs in slots:
        source = make_source(quantity=qty, **kwargs)
        entry.quantities.append(qty)
        entry.original.append(source.original_text)
        entry.sources.append(source)
    return entry


def _oracle(*results: tuple[str, str]):
    calls = []

    def oracle(lines):
        calls.append(list(lines))
        return [NormalizedResult(name, total, 1) for name, total in results]

    oracle.calls = calls
    return oracle


class TestFlatten:
    def test_numeric_quantity_goes_first(self):
        entry = _entry("pasta", [("400 g", {"text": "200 g pasta"})])
        assert [t for t, _ in flatten([entry])] == ["400 g pasta"]

    def test_text_quantity_goes_last(self):
        entry = _entry("Sale", [("q.b.", {"text": "Sale q.b."})])
        assert [t for t, _ in flatten([entry])] == ["Sale q.b."]

    def test_empty_quantity_is_just_the_name(self):
        entry = _entry("Basilico", [("", {"text": "Basilico"})])
        assert [t for t, _ in flatten([entry])] == ["Basilico"]

    def test_one_line_per_slot_with_back_pointer(self):
        entry = _entry("pasta", [
            ("200 g", {"assignment_id": 1}),
            ("100 g", {"assignment_id": 2}),
        ])
        lines = flatten([entry])
        assert [t for t, _ in lines] == ["200 g pasta", "100 g pasta"]
        assert all(e is entry for _, e in lines)


class TestTokenize:
    def test_strips_accents_punctuation_stopwords(self):
        assert tokenize("Olio d'oliva") == {"olio", "oliva"}
        assert tokenize("Petto di pollo") == {"petto", "pollo"}
        assert tokenize("Caffè, macinato") == {"caffe", "macinato"}
        assert tokenize("Sale e pepe") == {"sale", "pepe"}


class TestMatchScore:
    def test_same_name(self):
        assert match_score("Pasta", "pasta") == SAME_NAME
        assert match_score("Pomodori pelati", "pomodori pelati") == SAME_NAME

    def test_same_tokens_in_any_order(self):
        assert match_score("Pollo petto", "petto di pollo") == SAME_NAME

    def test_whole_words(self):
        assert match_score("Pomodori", "pomodori pelati") == WHOLE_WORDS
        assert match_score("Olio extravergine d'oliva", "olio") == WHOLE_WORDS
        assert match_score("Peperoni rossi", "peperoni rossi 2") == WHOLE_WORDS

    def test_token_subset_needs_two_tokens(self):
        assert match_score("Olio d'oliva", "olio extravergine d'oliva") == TOKEN_SUBSET
        assert match_score("Petto pollo", "petto di pollo ruspante") == TOKEN_SUBSET

    def test_partial_word(self):
        assert match_score("Pomodori", "pomodorini") == PARTIAL_WORD
        assert match_score("Pepe", "peperoni rossi 2") == PARTIAL_WORD

    def test_exact_outranks_containment(self):
        assert SAME_NAME > WHOLE_WORDS > TOKEN_SUBSET > PARTIAL_WORD > NO_MATCH

    def test_single_token_subset_is_not_enough(self):
        # Neither a substring nor a shared token
        assert match_score("Sale", "fior di sal") == NO_MATCH
        assert match_score("Panna", "latte intero") == NO_MATCH

    def test_distinct_cuts_do_not_match(self):
        assert match_score("Petto di pollo", "cosce di pollo") == NO_MATCH

    def test_empty_names(self):
        assert match_score("", "pasta") == NO_MATCH


class TestBestResult:
    def _results(self, *names: str) -> list[NormalizedResult]:
        return [NormalizedResult(name, "", 1) for name in names]

    def test_longest_name_wins_ties(self):
        results = self._results("Olio", "Olio extravergine d'oliva")
        # Both names appear as whole words in the entry; the longer one takes it
        assert best_result("olio extravergine d'oliva bio", results) == 1

    def test_earliest_wins_equal_length(self):
        results = self._results("Olio di semi", "Olio di mais")
        assert best_result("olio", results) == 0

    def test_no_match(self):
        assert best_result("basilico", self._results("Pasta")) is None


class TestDedupeSources:
    def test_same_assignment_same_line_collapsed(self):
        s = make_source(assignment_id=1)
        assert dedupe_sources([s, make_source(assignment_id=1)]) == [s]

    def test_distinct_assignments_kept(self):
        a = make_source(assignment_id=1, day=0, meal=MealType.LUNCH)
        b = make_source(assignment_id=2, day=0, meal=MealType.LUNCH)
        assert dedupe_sources([a, b]) == [a, b]

    def test_slot_fallback_without_assignment_id(self):
        a = make_source(assignment_id=None, day=0, meal=MealType.LUNCH)
        b = make_source(assignment_id=None, day=0, meal=MealType.DINNER)
        c = make_source(assignment_id=None, day=0, meal=MealType.LUNCH)
        assert dedupe_sources([a, b, c]) == [a, b]


class TestReconcile:
    def test_single_batched_call(self):
        entries = [
            _entry("pasta", [("200 g", {"assignment_id": 1}), ("100 g", {"assignment_id": 2})]),
            _entry("Sale", [("q.b.", {"assignment_id": 1, "text": "Sale q.b."})]),
        ]
        oracle = _oracle(("Pasta", "300 g"), ("Sale", "q.b."))
        items = reconcile(entries, oracle)

        assert oracle.calls == [["200 g pasta", "100 g pasta", "Sale q.b."]]
        assert [(i.name, i.total_quantity) for i in items] == [("Pasta", "300 g"), ("Sale", "q.b.")]
        assert all(i.normalized and not i.checked and i.id is None for i in items)
        assert len(items[0].sources) == 2

    def test_duplicate_names_first_wins(self, caplog):
        entries = [
            _entry("pomodori pelati", [("400 g", {"text": "Pomodori pelati 400 g"})]),
            _entry("pomodorini", [("250 g", {"text": "Pomodorini 250 g", "assignment_id": 3})]),
        ]
        oracle = _oracle(("Pomodori", "650 g"), ("Pomodori", "400 g"))
        with caplog.at_level(logging.WARNING, logger="grocery_planner"):
            items = reconcile(entries, oracle)

        assert len(items) == 1
        assert items[0].name == "Pomodori"
        assert items[0].total_quantity == "650 g"
        assert "more than once" in caplog.text

    def test_duplicate_names_case_insensitive(self):
        entries = [_entry("sale", [("q.b.", {})])]
        items = reconcile(entries, _oracle(("Sale", "q.b."), ("SALE", "q.b.")))
        assert [i.name for i in items] == ["Sale"]

    def test_group_sources_merged(self):
        entries = [
            _entry("olio extravergine d'oliva", [
                ("2 cucchiai", {"assignment_id": 1, "text": "Olio extravergine d'oliva 2 cucchiai"}),
            ]),
            _entry("olio d'oliva", [
                ("q.b.", {"assignment_id": 2, "text": "Olio d'oliva q.b."}),
            ]),
        ]
        items = reconcile(entries, _oracle(("Olio d'oliva", "2 cucchiai + q.b.")))
        assert len(items) == 1
        assert {s.assignment_id for s in items[0].sources} == {1, 2}

    def test_each_source_in_exactly_one_item_either_order(self):
        entries = [
            _entry("olio", [("q.b.", {"assignment_id": 1, "text": "Olio q.b."})]),
            _entry("olio di semi", [("1 l", {"assignment_id": 2, "text": "Olio di semi 1 l"})]),
        ]
        for order in (("Olio di semi", "Olio"), ("Olio", "Olio di semi")):
            items = reconcile(entries, _oracle(*[(name, "") for name in order]))
            by_name = {i.name: i for i in items}
            assert [s.assignment_id for s in by_name["Olio"].sources] == [1]
            assert [s.assignment_id for s in by_name["Olio di semi"].sources] == [2]

    def test_exact_name_keeps_its_sources_when_listed_second(self):
        entries = [
            _entry("Pomodori", [("200 g", {"assignment_id": 1, "text": "Pomodori 200 g"})]),
            _entry("Pomodori pelati", [
                ("400 g", {"assignment_id": 2, "text": "Pomodori pelati 400 g"}),
            ]),
        ]
        items = reconcile(entries, _oracle(("Pomodori", "200 g"), ("Pomodori pelati", "400 g")))
        by_name = {i.name: i for i in items}
        assert [s.original_text for s in by_name["Pomodori"].sources] == ["Pomodori 200 g"]
        assert [s.original_text for s in by_name["Pomodori pelati"].sources] == [
            "Pomodori pelati 400 g"
        ]

    def test_partial_word_loses_to_whole_words(self):
        entries = [
            _entry("Pepe", [("q.b.", {"assignment_id": 1, "text": "Pepe q.b."})]),
            _entry("Peperoni rossi 2", [("", {"assignment_id": 2, "text": "Peperoni rossi 2"})]),
        ]
        items = reconcile(entries, _oracle(("Pepe", "q.b."), ("Peperoni rossi", "2")))
        by_name = {i.name: i for i in items}
        assert [s.original_text for s in by_name["Pepe"].sources] == ["Pepe q.b."]
        assert [s.original_text for s in by_name["Peperoni rossi"].sources] == ["Peperoni rossi 2"]

    def test_repeated_meals_not_collapsed(self):
        entries = [_entry("pasta", [
            ("200 g", {"assignment_id": 1, "day": 0, "meal": MealType.LUNCH}),
            ("200 g", {"assignment_id": 2, "day": 0, "meal": MealType.LUNCH}),
        ])]
        items = reconcile(entries, _oracle(("Pasta", "400 g")))
        assert len(items[0].sources) == 2

    def test_unmatched_result_has_no_sources(self):
        entries = [_entry("pasta", [("200 g", {})])]
        items = reconcile(entries, _oracle(("Pasta", "200 g"), ("Acqua", "1 l")))
        assert items[1].name == "Acqua"
        assert items[1].sources is None

    def test_oracle_error_propagates(self):
        def failing(lines):
            raise NormalizationError("boom")

        with pytest.raises(NormalizationError, match="boom"):
            reconcile([_entry("pasta", [("200 g", {})])], failing)

    def test_empty_input_skips_oracle(self):
        oracle = _oracle(("Pasta", "1 g"))
        assert reconcile([], oracle) == []
        assert oracle.calls == []


class TestSummarizeSources:
    def _item(self) -> NormalizedItem:
        return NormalizedItem(
            name="Pasta",
            total_quantity="500 g",
            sources=[
                make_source(recipe_id=2, recipe_name="Pasta al pesto", assignment_id=1,
                            meal=MealType.LUNCH, quantity="200 g"),
                make_source(recipe_id=2, recipe_name="Pasta al pesto", assignment_id=2,
                            meal=MealType.DINNER, quantity="200 g"),
                make_source(recipe_id=1, recipe_name="Amatriciana", assignment_id=None,
                            meal=MealType.LUNCH, quantity="100 g"),
            ],
        )

    def test_groups_by_recipe_sorted_by_name(self):
        usages = summarize_sources(self._item())
        assert [u.recipe_name for u in usages] == ["Amatriciana", "Pasta al pesto"]
        pesto = usages[1]
        assert pesto.meal_count == 2
        assert pesto.meal_type_counts[MealType.LUNCH] == 1
        assert pesto.meal_type_counts[MealType.DINNER] == 1
        assert pesto.quantities == ["200 g", "200 g"]

    def test_meal_counts_text(self):
        assert format_meal_counts(
            {MealType.BREAKFAST: 0, MealType.LUNCH: 2, MealType.DINNER: 1}
        ) == "2 pranzi + 1 cene"
        assert format_meal_counts({m: 0 for m in MealType}) == ""

    def test_markdown(self):
        text = format_sources_markdown(self._item())
        assert "**Totale:** 500 g" in text
        assert "Usato in (2 pranzi + 1 cene):" in text
        assert "- Pasta al pesto (1 pranzi + 1 cene): 200 g" in text

    def test_bare_count_gets_item_name(self):
        item = NormalizedItem(
            name="Uova", total_quantity="6",
            sources=[make_source(quantity="6", recipe_name="Frittata")],
        )
        assert "- Frittata (1 pranzi): 6 uova" in format_sources_markdown(item)
