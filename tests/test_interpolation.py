"""Parameter interpolation tests."""

from orchestrapi.executor.interpolation import (
    ParameterTemplate,
    interpolate,
    parse_reference,
    referenced_steps,
)

RESULTS = {
    "step1": {"results": [{"id": 693134, "title": "Dune: Part Two"}, {"id": 1, "title": "B"}]},
    "step2": {"genres": [{"id": 878, "name": "Science Fiction"}], "1": "string key"},
}


def test_value_without_token_is_returned_unchanged() -> None:
    assert interpolate("plain text", RESULTS) == "plain text"
    assert interpolate(42, RESULTS) == 42
    assert interpolate(None, RESULTS) is None
    assert interpolate(True, RESULTS) is True


def test_maps_are_rebuilt_not_mutated() -> None:
    params = {"query": {"query": "{{step1.results.0.title}}", "page": 1}}
    rendered = interpolate(params, RESULTS)

    assert rendered == {"query": {"query": "Dune: Part Two", "page": 1}}
    assert params == {"query": {"query": "{{step1.results.0.title}}", "page": 1}}
    assert rendered is not params
    assert rendered["query"] is not params["query"]


def test_whole_token_is_replaced_by_the_value_itself() -> None:
    assert interpolate("{{step1.results.0.id}}", RESULTS) == 693134
    assert interpolate("{{step1.results.0}}", RESULTS) == {"id": 693134, "title": "Dune: Part Two"}
    assert interpolate("{{step2.genres}}", RESULTS) == [{"id": 878, "name": "Science Fiction"}]


def test_whitespace_inside_braces_is_allowed() -> None:
    assert interpolate("{{ step1.results.0.id }}", RESULTS) == 693134
    assert interpolate("  {{step1.results.0.id}}  ", RESULTS) == 693134


def test_embedded_token_is_replaced_by_text() -> None:
    assert interpolate("movie-{{step1.results.0.id}}", RESULTS) == "movie-693134"
    assert interpolate("genres: {{step2.genres.0}}", RESULTS) == (
        'genres: {"id": 878, "name": "Science Fiction"}'
    )


def test_bracket_and_dot_indexes_are_equivalent() -> None:
    assert interpolate("{{step1.results[1].title}}", RESULTS) == "B"
    assert interpolate("{{step1.results.1.title}}", RESULTS) == "B"


def test_numeric_segment_is_a_key_on_maps() -> None:
    assert interpolate("{{step2.1}}", RESULTS) == "string key"


def test_only_first_token_is_substituted() -> None:
    value = "{{step1.results.0.id}} and {{step2.genres.0.id}}"
    assert interpolate(value, RESULTS) == "693134 and {{step2.genres.0.id}}"


def test_unresolvable_references_leave_value_unchanged() -> None:
    for value in (
        "{{step1.results.5.id}}",
        "{{step1.missing}}",
        "{{unknown.results.0.id}}",
        "{{step1.results.0.id.deeper}}",
        "{{step 1.results}}",
        "{{}}",
        "{{step1.results.x}}",
    ):
        assert interpolate(value, RESULTS) == value


def test_sequences_keep_their_type() -> None:
    assert interpolate(["{{step1.results.0.id}}", "x"], RESULTS) == [693134, "x"]
    assert interpolate(("{{step1.results.0.id}}",), RESULTS) == (693134,)


def test_parse_reference() -> None:
    ref = parse_reference("id={{step1.results[0].id}}")
    assert ref is not None
    assert ref.step_id == "step1"
    assert ref.path == ".results[0].id"
    assert ref.whole is False

    assert parse_reference("no token") is None
    assert parse_reference("{{1step.x}}") is None


def test_referenced_steps_in_declaration_order() -> None:
    params = {
        "path": {"movie_id": "{{search.results.0.id}}"},
        "query": {"with_genres": "{{genres.genres.0.id}}", "again": "{{search.total}}"},
    }
    assert referenced_steps(params) == ["search", "genres"]
    assert referenced_steps({"query": {"q": "text"}}) == []


def test_template_renders_against_different_results() -> None:
    template = ParameterTemplate({"path": {"movie_id": "{{step1.id}}"}})
    assert template.render({}) == {"path": {"movie_id": "{{step1.id}}"}}
    assert template.render({"step1": {"id": 7}}) == {"path": {"movie_id": 7}}
