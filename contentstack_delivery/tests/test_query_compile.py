# tests/test_query_compile.py
import json
from unittest.mock import MagicMock

import pytest

from contentstack_delivery.errors import (
    ContractViolation,
    InvalidFieldPath,
    MissingArgument,
    UnboundRequest,
)
from contentstack_delivery.query.request import Query, RequestOptions, WireParameters


@pytest.fixture
def query():
    return Query("product")


def test_where_compiles_to_query_key(query):
    wire = query.where("title", "Women").compile()
    assert wire.to_dict() == {"query": {"title": "Women"}}


def test_empty_query_compiles_to_nothing(query):
    assert query.compile().to_dict() == {}


def test_limit_zero_is_sent_and_default_skip_is_not(query):
    wire = query.limit(0).compile()
    assert "limit" in wire
    assert wire["limit"] == 0
    assert "skip" not in wire


def test_skip_only_when_positive(query):
    assert "skip" not in query.skip(0).compile()
    assert query.skip(20).compile()["skip"] == 20


@pytest.mark.parametrize("bad", [-1, 1.5, "3", True, None])
def test_limit_and_skip_validation(query, bad):
    with pytest.raises(ContractViolation):
        query.limit(bad)
    with pytest.raises(ContractViolation):
        query.skip(bad)


def test_single_sort_last_call_wins(query):
    wire = query.ascending("created_at").descending("title").compile()
    assert wire["sort"] == {"title": -1}


def test_except_takes_precedence_over_only(query):
    wire = query.only(["title", "url", "price"]).exclude(["price"]).compile().to_dict()
    assert wire["only[BASE][]"] == ["title", "url"]
    assert wire["except[BASE][]"] == ["price"]


def test_only_scope_emptied_by_except_is_omitted(query):
    wire = query.only(["price"]).exclude(["price"]).compile().to_dict()
    assert "only[BASE][]" not in wire
    assert wire["except[BASE][]"] == ["price"]


def test_projection_duplicates_collapse(query):
    wire = query.only("title").only(["title", "url"]).compile()
    assert wire["only[BASE][]"] == ["title", "url"]


def test_reference_projection_adds_include(query):
    wire = (
        query.only_with_reference(["title"], "categories")
        .exclude_with_reference(["uid"], "brand")
        .include_reference(["categories", "brand.logo"])
        .compile()
        .to_dict()
    )
    assert wire["only[categories][]"] == ["title"]
    assert wire["except[brand][]"] == ["uid"]
    assert wire["include[]"] == ["categories", "brand", "brand.logo"]


def test_include_content_type_removes_raw_include_schema(query):
    wire = query.add_param("include_schema", True).include_content_type().compile()
    assert "include_schema" not in wire
    assert wire["include_content_type"] is True


def test_include_schema_after_include_content_type_is_a_no_op(query):
    wire = query.include_content_type().include_schema().compile()
    assert "include_schema" not in wire
    assert wire["include_content_type"] is True


def test_deprecated_include_schema_alone(query):
    assert query.include_schema().compile()["include_schema"] is True


def test_raw_params_never_override_canonical_keys(query):
    wire = query.limit(3).add_param("limit", 50).add_param("custom_flag", "x").compile()
    assert wire["limit"] == 3
    assert wire["custom_flag"] == "x"


def test_add_param_validation(query):
    with pytest.raises(InvalidFieldPath):
        query.add_param("bad key", 1)
    with pytest.raises(MissingArgument):
        query.add_param("ok_key", None)
    query.add_param("only[BASE][]", ["title"]).remove_param("only[BASE][]")
    assert query.compile().to_dict() == {}


def test_flags_and_misc(query):
    wire = (
        query.locale("fr-fr")
        .include_fallback()
        .include_metadata()
        .include_embedded_items()
        .include_branch()
        .include_owner()
        .include_reference_content_type_uid()
        .include_count()
        .tags(["sale", " ", "new"])
        .search("wom")
        .compile()
        .to_dict()
    )
    assert wire["locale"] == "fr-fr"
    assert wire["include_embedded_items[]"] == ["BASE"]
    assert wire["tags"] == "sale,new"
    assert wire["typeahead"] == "wom"
    for flag in (
        "include_fallback",
        "include_metadata",
        "include_branch",
        "include_owner",
        "include_reference_content_type_uid",
        "include_count",
    ):
        assert wire[flag] is True


def test_compile_is_pure(query):
    query.where("title", "Women").contained_in("tags", ["a"])
    first = query.compile()
    second = query.compile()
    assert first == second

    leaked = first["query"]
    leaked["tags"]["$in"].append("b")
    assert query.compile()["query"] == {"title": "Women", "tags": {"$in": ["a"]}}


def test_snapshot_is_isolated_from_later_edits(query):
    wire = query.where("title", "Women").compile()
    query.where("title", "Men").limit(5)
    assert wire.to_dict() == {"query": {"title": "Women"}}


def test_wire_parameters_is_read_only():
    wire = WireParameters({"a": [1]})
    with pytest.raises(TypeError):
        wire["a"] = 2  # type: ignore[index]


def test_to_request_params_encoding(query):
    pairs = (
        query.where("title", "Women")
        .descending("created_at")
        .include_reference(["a", "b"])
        .include_count()
        .compile()
        .to_request_params()
    )
    assert ("query", json.dumps({"title": "Women"}, separators=(",", ":"))) in pairs
    assert ("desc", "created_at") in pairs
    assert [v for k, v in pairs if k == "include[]"] == ["a", "b"]
    assert ("include_count", "true") in pairs


def test_find_requires_a_bound_query(query):
    with pytest.raises(UnboundRequest):
        query.find()


def test_find_one_overrides_limit_without_mutating():
    owner = MagicMock()
    q = Query("product", owner=owner).limit(10)
    q.find_one()

    wire = owner.run_query.call_args[0][0]
    assert wire["limit"] == 1
    assert owner.run_query.call_args.kwargs["single"] is True
    assert q.compile()["limit"] == 10


def test_find_passes_compiled_snapshot():
    owner = MagicMock()
    callback = MagicMock()
    Query("product", owner=owner).where("title", "x").find(callback)
    owner.run_query.assert_called_once()
    args, kwargs = owner.run_query.call_args
    assert args[0].to_dict() == {"query": {"title": "x"}}
    assert args[1] is callback
    assert kwargs["single"] is False


def test_query_requires_content_type_uid():
    with pytest.raises(MissingArgument):
        Query("")


def test_request_options_compile_without_query_keys():
    opts = RequestOptions().only(["title"]).locale("en-us")
    assert opts.compile().to_dict() == {"only[BASE][]": ["title"], "locale": "en-us"}
