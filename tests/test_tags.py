"""Built-in tag tests, rendered end to end."""

from __future__ import annotations

import pytest

from liqpy.errors import ParseError
from liqpy.tags import default_tags


class TestVariables:
    def test_assign(self, render) -> None:
        assert render("{% assign x = 'a' | upcase %}{{ x }}") == "A"

    def test_capture(self, render) -> None:
        assert render("{% capture g %}Hi {{ n }}{% endcapture %}[{{ g }}]", n="Bo") == "[Hi Bo]"

    def test_assign_in_loop_is_visible_after_it(self, render) -> None:
        assert render("{% for i in (1..2) %}{% assign last = i %}{% endfor %}{{ last }}") == "2"

    def test_increment_and_decrement(self, render) -> None:
        source = "{% increment c %}{% increment c %}|{% decrement d %}{% decrement d %}"
        assert render(source) == "01|-1-2"

    def test_counters_are_separate_from_variables(self, render) -> None:
        assert render("{% assign c = 10 %}{% increment c %}{{ c }}") == "010"


class TestConditionals:
    SOURCE = "{% if n > 5 %}big{% elsif n > 2 %}mid{% else %}small{% endif %}"

    @pytest.mark.parametrize(("n", "expected"), [(9, "big"), (3, "mid"), (1, "small")])
    def test_if_branches(self, render, n: int, expected: str) -> None:
        assert render(self.SOURCE, n=n) == expected

    @pytest.mark.parametrize(("value", "expected"), [("", "t"), (0, "t"), ([], "t"), (None, "f"), (False, "f")])
    def test_only_nil_and_false_are_falsy(self, render, value, expected: str) -> None:
        assert render("{% if x %}t{% else %}f{% endif %}", x=value) == expected

    def test_unless(self, render) -> None:
        source = "{% unless a %}no{% else %}yes{% endunless %}"
        assert render(source, a=False) == "no"
        assert render(source, a=True) == "yes"

    def test_empty_keyword(self, render) -> None:
        assert render("{% if xs == empty %}e{% endif %}", xs=[]) == "e"

    def test_blank_keyword(self, render) -> None:
        assert render("{% if s == blank %}b{% endif %}", s="   ") == "b"

    def test_contains(self, render) -> None:
        assert render("{% if 'abc' contains 'b' %}y{% endif %}") == "y"
        assert render("{% if tags contains 'x' %}y{% else %}n{% endif %}", tags=["a"]) == "n"

    def test_and_or(self, render) -> None:
        assert render("{% if true and false or true %}y{% else %}n{% endif %}") == "y"

    def test_number_is_not_boolean(self, render) -> None:
        assert render("{% if 1 == true %}y{% else %}n{% endif %}") == "n"

    def test_case(self, render) -> None:
        source = "{% case c %}{% when 'r' %}red{% when 'g', 'b' %}gb{% else %}other{% endcase %}"
        assert render(source, c="b") == "gb"
        assert render(source, c="r") == "red"
        assert render(source, c="x") == "other"

    def test_case_when_or(self, render) -> None:
        assert render("{% case 2 %}{% when 1 or 2 %}hit{% endcase %}") == "hit"


class TestLoops:
    def test_forloop_object(self, render) -> None:
        source = "{% for x in xs %}{{ forloop.index }}:{{ x }}{% unless forloop.last %},{% endunless %}{% endfor %}"
        assert render(source, xs=["a", "b", "c"]) == "1:a,2:b,3:c"

    def test_rindex_and_length(self, render) -> None:
        source = "{% for x in (1..3) %}{{ forloop.rindex0 }}/{{ forloop.length }} {% endfor %}"
        assert render(source) == "2/3 1/3 0/3 "

    def test_limit_and_offset(self, render) -> None:
        assert render("{% for i in (1..10) limit: 3 offset: 2 %}{{ i }}{% endfor %}") == "345"

    def test_reversed(self, render) -> None:
        assert render("{% for i in (1..3) reversed %}{{ i }}{% endfor %}") == "321"

    def test_else_on_empty(self, render) -> None:
        assert render("{% for x in xs %}{{ x }}{% else %}none{% endfor %}", xs=[]) == "none"

    def test_missing_collection_uses_else(self, render) -> None:
        assert render("{% for x in nope %}{{ x }}{% else %}none{% endfor %}") == "none"

    def test_break_and_continue(self, render) -> None:
        source = (
            "{% for i in (1..5) %}"
            "{% if i == 2 %}{% continue %}{% endif %}"
            "{% if i == 4 %}{% break %}{% endif %}"
            "{{ i }}"
            "{% endfor %}"
        )
        assert render(source) == "13"

    def test_break_keeps_output_so_far(self, render) -> None:
        assert render("{% for i in (1..3) %}a{% break %}b{% endfor %}") == "a"

    def test_mapping_iterates_pairs(self, render) -> None:
        source = "{% for p in h %}{{ p[0] }}={{ p[1] }};{% endfor %}"
        assert render(source, h={"a": 1, "b": 2}) == "a=1;b=2;"

    def test_parentloop(self, render) -> None:
        source = (
            "{% for a in (1..2) %}{% for b in (1..2) %}"
            "{{ forloop.parentloop.index }}{{ b }} "
            "{% endfor %}{% endfor %}"
        )
        assert render(source) == "11 12 21 22 "

    def test_loop_variable_does_not_leak(self, render) -> None:
        assert render("{% for x in (1..2) %}{% endfor %}[{{ x }}]") == "[]"

    def test_range_from_variables(self, render) -> None:
        assert render("{% for i in (a..b) %}{{ i }}{% endfor %}", a=2, b=4) == "234"

    def test_tablerow(self, render) -> None:
        expected = (
            '<tr class="row1">\n'
            '<td class="col1">1</td><td class="col2">2</td></tr>\n'
            '<tr class="row2"><td class="col1">3</td></tr>\n'
        )
        assert render("{% tablerow i in (1..3) cols: 2 %}{{ i }}{% endtablerow %}") == expected

    def test_tablerow_loop_object(self, render) -> None:
        source = "{% tablerow i in (1..2) %}{{ tablerowloop.col }}{% endtablerow %}"
        assert render(source) == '<tr class="row1">\n<td class="col1">1</td><td class="col2">2</td></tr>\n'

    def test_cycle(self, render) -> None:
        assert render("{% for i in (1..4) %}{% cycle 'a', 'b', 'c' %}{% endfor %}") == "abca"

    def test_cycle_groups(self, render) -> None:
        source = "{% cycle 'g': 'x', 'y' %}{% cycle 'g': 'x', 'y' %}{% cycle 'x', 'y' %}"
        assert render(source) == "xyx"


class TestVerbatim:
    def test_raw(self, render) -> None:
        assert render("{% raw %}{{ x }}{% endraw %}") == "{{ x }}"

    def test_comment(self, render) -> None:
        assert render("a{% comment %}{{ x }}{% endcomment %}b") == "ab"

    def test_whitespace_control(self, render) -> None:
        assert render("{% if true -%}\n  yes\n{%- endif %}") == "yes"


class TestCatalogue:
    def test_builtin_names(self) -> None:
        assert default_tags().names() == sorted(
            [
                "assign",
                "break",
                "capture",
                "case",
                "continue",
                "cycle",
                "decrement",
                "for",
                "if",
                "include",
                "increment",
                "tablerow",
                "unless",
            ]
        )

    def test_each_registry_is_fresh(self) -> None:
        first = default_tags()
        first.register("x", object())
        assert "x" not in default_tags()

    def test_for_needs_in(self, render) -> None:
        with pytest.raises(ParseError, match="expected 'in'"):
            render("{% for x xs %}{% endfor %}")
