from conftest import FakeGenerator

from codeindex.llm.query_expand import expand_query, parse_variants


def test_parse_plain_json_array():
    assert parse_variants('["find user", "lookup account"]') == ["find user", "lookup account"]


def test_parse_array_wrapped_in_prose_or_fences():
    assert parse_variants('Sure! ["a b", "c d"] Hope this helps.') == ["a b", "c d"]
    assert parse_variants('```json\n["x y"]\n```') == ["x y"]


def test_parse_rejects_non_lists_and_drops_non_strings():
    assert parse_variants('{"q": "x"}') == []
    assert parse_variants("no array here") == []
    assert parse_variants('["ok", 3, "", null]') == ["ok"]


def test_expand_prepends_original_query():
    gen = FakeGenerator(content='["load customer", "fetch client record"]')
    out = expand_query(gen, "get user")
    assert out == ["get user", "load customer", "fetch client record"]
    assert gen.calls == [{"max_tokens": 200, "temperature": 0.3}]
    assert '"get user"' in gen.prompts[0]


def test_expand_deduplicates():
    gen = FakeGenerator(content='["get user", "load customer", "load customer"]')
    assert expand_query(gen, "get user") == ["get user", "load customer"]


def test_expand_falls_back_on_failure():
    assert expand_query(FakeGenerator(error="timeout"), "q") == ["q"]
    assert expand_query(FakeGenerator(raises=True), "q") == ["q"]
    assert expand_query(FakeGenerator(content="not json"), "q") == ["q"]
    assert expand_query(FakeGenerator(content="[broken"), "q") == ["q"]
