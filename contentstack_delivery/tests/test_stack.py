# tests/test_stack.py
import json
from unittest.mock import MagicMock

import pytest

from conftest import FakeTransport, json_response
from contentstack_delivery.errors import ContractViolation, InvalidFieldPath, MissingArgument
from contentstack_delivery.http.retry import RetryOptions
from contentstack_delivery.models.results import AssetsResult, Entry, GlobalFieldsResult, QueryResult
from contentstack_delivery.query.filters import FilterTree
from contentstack_delivery.services.stack import stack

BASE = "https://cdn.contentstack.io/v3"


@pytest.mark.parametrize(
    "args",
    [("", "token", "production"), ("key", None, "production"), ("key", "token", "")],
)
def test_missing_credentials_raise(args):
    with pytest.raises(MissingArgument):
        stack(*args, transport=FakeTransport())


def test_stack_headers_and_endpoint(cs_stack):
    assert cs_stack.headers == {
        "api_key": "blt_api_key",
        "access_token": "cs_delivery_token",
        "environment": "production",
    }
    assert cs_stack.endpoint == BASE
    assert cs_stack.retry_options.is_frozen()


def test_branch_header_and_region_endpoint():
    with stack("k", "t", "dev", branch="feature-x", region="eu", transport=FakeTransport()) as s:
        assert s.headers["branch"] == "feature-x"
        assert s.endpoint == "https://eu-cdn.contentstack.com/v3"


def test_given_retry_options_are_frozen():
    opts = RetryOptions().set_retry_limit(1)
    with stack("k", "t", "dev", retry_options=opts, transport=FakeTransport()) as s:
        assert s.retry_options is opts
    with pytest.raises(ContractViolation):
        opts.set_retry_limit(2)


def test_headers_are_copied_on_create(cs_stack, transport):
    early = cs_stack.content_type("product")
    cs_stack.set_header("x-extra", "1")
    late = cs_stack.content_type("product")

    assert "x-extra" not in early.headers
    assert late.headers["x-extra"] == "1"

    early.entry("blt1").fetch().result(timeout=5)
    assert "x-extra" not in transport.calls[0].headers


def test_entry_fetch(cs_stack, transport):
    transport.queue(json_response(200, {"entry": {"uid": "blt1", "title": "Hello"}}))
    callback = MagicMock()
    entry_request = cs_stack.content_type("product").entry("blt1").only(["title"]).locale("en-us")
    entry_request.set_header("access_token", "override")

    outcome = entry_request.fetch(callback).result(timeout=5)

    call = transport.calls[0]
    assert call.url == f"{BASE}/content_types/product/entries/blt1"
    assert ("only[BASE][]", "title") in call.params
    assert ("environment", "production") in call.params
    assert call.headers["access_token"] == "override"
    assert outcome.result.title == "Hello"
    callback.assert_called_once_with(outcome.result, None)


def test_query_find(cs_stack, transport):
    transport.queue(json_response(200, {"entries": [{"uid": "a"}, {"uid": "b"}], "count": 2}))
    query = cs_stack.content_type("product").query().where("title", "Women").include_count()

    outcome = query.find().result(timeout=5)

    assert transport.calls[0].url == f"{BASE}/content_types/product/entries"
    assert ("query", '{"title":"Women"}') in transport.calls[0].params
    assert isinstance(outcome.result, QueryResult)
    assert outcome.result.count == 2


def test_find_one_with_no_matches(cs_stack, transport):
    transport.queue(json_response(200, {"entries": []}))
    callback = MagicMock()
    cs_stack.content_type("product").query().where("title", "Nobody").find_one(callback).result(timeout=5)

    assert ("limit", "1") in transport.calls[0].params
    result, error = callback.call_args.args
    assert isinstance(result, Entry) and result.uid is None
    assert error is None


def test_explicit_environment_param_is_not_duplicated(cs_stack, transport):
    cs_stack.content_type("product").query().add_param("environment", "staging").find().result(timeout=5)
    envs = [v for k, v in transport.calls[0].params if k == "environment"]
    assert envs == ["staging"]


def test_content_type_fetch_and_list(cs_stack, transport):
    cs_stack.content_type("product").fetch({"include_global_field_schema": True}).result(timeout=5)
    cs_stack.get_content_types({"include_count": True}).result(timeout=5)

    assert transport.calls[0].url == f"{BASE}/content_types/product"
    assert ("include_global_field_schema", "true") in transport.calls[0].params
    assert transport.calls[1].url == f"{BASE}/content_types"
    assert ("include_count", "true") in transport.calls[1].params


def test_asset_and_asset_library(cs_stack, transport):
    transport.queue(
        json_response(200, {"asset": {"uid": "a1"}}),
        json_response(200, {"assets": [{"uid": "a1"}, {"uid": "a2"}], "count": 2}),
    )
    asset = cs_stack.asset("a1").include_dimension().include_fallback().fetch().result(timeout=5)
    library = (
        cs_stack.asset_library()
        .sort("created_at", ascending=False)
        .include_count()
        .include_relative_url()
        .fetch_all()
        .result(timeout=5)
    )

    assert transport.calls[0].url == f"{BASE}/assets/a1"
    assert ("include_dimension", "true") in transport.calls[0].params
    assert asset.result.uid == "a1"

    assert transport.calls[1].url == f"{BASE}/assets"
    params = transport.calls[1].params
    assert ("desc", "created_at") in params
    assert ("relative_urls", "true") in params
    assert isinstance(library.result, AssetsResult)
    assert library.result.count == 2


def test_global_fields(cs_stack, transport):
    with pytest.raises(MissingArgument):
        cs_stack.global_field().fetch()

    transport.queue(json_response(200, {"global_fields": [{"uid": "seo"}]}))
    outcome = cs_stack.global_field().include_global_field_schema().include_branch().find_all().result(timeout=5)
    assert transport.calls[0].url == f"{BASE}/global_fields"
    assert ("include_global_field_schema", "true") in transport.calls[0].params
    assert isinstance(outcome.result, GlobalFieldsResult)

    cs_stack.global_field("seo").fetch().result(timeout=5)
    assert transport.calls[1].url == f"{BASE}/global_fields/seo"


@pytest.mark.parametrize("factory", ["content_type", "asset"])
def test_uid_required(cs_stack, factory):
    with pytest.raises(MissingArgument):
        getattr(cs_stack, factory)("")


def test_entry_uid_required(cs_stack):
    with pytest.raises(MissingArgument):
        cs_stack.content_type("product").entry(None)


def test_image_transform(cs_stack):
    url = "https://images.contentstack.io/v3/assets/blt/img.png"
    assert cs_stack.image_transform(url, {}) == url
    assert cs_stack.image_transform(url, {"width": 100, "height": 50}) == f"{url}?width=100&height=50"
    with pytest.raises(ContractViolation):
        cs_stack.image_transform("img.png", {"width": 1})


def test_remove_header(cs_stack):
    cs_stack.set_header("x-extra", "1").remove_header("x-extra")
    assert "x-extra" not in cs_stack.headers


def test_close_releases_transport():
    transport = FakeTransport()
    with stack("k", "t", "dev", transport=transport) as s:
        pass
    assert transport.closed
    with pytest.raises(ContractViolation):
        s.content_type("product").query().find()


def test_taxonomy_find(cs_stack, transport):
    transport.queue(json_response(200, {"entries": [{"uid": "a"}], "count": 1}))
    outcome = (
        cs_stack.taxonomy()
        .contained_in("taxonomies.color", ["red", "blue"])
        .exists("taxonomies.size")
        .equal_and_below("taxonomies.region", "emea", levels=2)
        .find()
        .result(timeout=5)
    )

    call = transport.calls[0]
    assert call.url == f"{BASE}/taxonomies/entries"
    query = json.loads(dict(call.params)["query"])
    assert query == {
        "taxonomies.color": {"$in": ["red", "blue"]},
        "taxonomies.size": {"$exists": True},
        "taxonomies.region": {"$eq_below": "emea", "levels": 2},
    }
    assert ("environment", "production") in call.params
    assert isinstance(outcome.result, QueryResult)
    assert outcome.result.entries[0].uid == "a"


def test_taxonomy_or_of_subtrees(cs_stack):
    wire = (
        cs_stack.taxonomy()
        .or_([FilterTree().where("taxonomies.color", "red"), FilterTree().below("taxonomies.size", "m")])
        .compile()
    )
    assert wire["query"] == {"$or": [{"taxonomies.color": "red"}, {"taxonomies.size": {"$below": "m"}}]}


@pytest.mark.parametrize("bad_key", ["include count", "a&b=c", ""])
def test_passthrough_params_keys_are_validated(cs_stack, transport, bad_key):
    with pytest.raises(InvalidFieldPath):
        cs_stack.content_type("product").fetch({bad_key: True})
    with pytest.raises(InvalidFieldPath):
        cs_stack.get_content_types({bad_key: True})
    assert transport.calls == []
