"""Tests for the Akeneo REST client.

Feature: akeneo-migrator
"""

import json
from unittest.mock import Mock, patch

import pytest
import requests
import structlog
from hypothesis import given, settings, strategies as st

from akeneo_migrator.client.akeneo_client import (
    MAX_PAGE_SIZE,
    AkeneoClient,
    format_api_errors,
)
from akeneo_migrator.errors import NotFoundError, TransportError, ValidationError

log = structlog.stdlib.get_logger()

HOST = "https://source.example.com"


def response(status_code: int, body=None, text: str = "") -> Mock:
    mock = Mock(status_code=status_code, text=text or json.dumps(body))
    mock.json.return_value = body
    return mock


def token_response(access_token: str = "token-1", expires_in: int = 3600) -> Mock:
    return response(200, {"access_token": access_token, "expires_in": expires_in})


def make_client(*responses: Mock) -> tuple[AkeneoClient, Mock]:
    session = Mock(spec=requests.Session)
    session.post.return_value = token_response()
    session.request.side_effect = list(responses)
    client = AkeneoClient(
        host=HOST + "/",
        client_id="client",
        secret="secret",
        username="admin",
        password="admin",
        session=session,
    )
    return client, session


def test_first_call_authenticates_with_password_grant():
    client, session = make_client(response(200, {"identifier": "SKU-1"}))

    assert client.get_product("SKU-1") == {"identifier": "SKU-1"}

    session.post.assert_called_once()
    url = session.post.call_args.args[0]
    kwargs = session.post.call_args.kwargs
    assert url == HOST + "/api/oauth/v1/token"
    assert kwargs["json"]["grant_type"] == "password"
    assert kwargs["auth"] == ("client", "secret")

    method, request_url = session.request.call_args.args
    assert method == "GET"
    assert request_url == HOST + "/api/rest/v1/products/SKU-1"
    assert session.request.call_args.kwargs["headers"]["Authorization"] == "Bearer token-1"


def test_token_is_reused_until_close_to_expiry():
    client, session = make_client(response(200, {}), response(200, {}))

    client.get_product_model("M1")
    client.get_product_model("M2")

    assert session.post.call_count == 1


def test_short_lived_token_is_renewed_before_each_call():
    client, session = make_client(response(200, {}), response(200, {}))
    session.post.return_value = token_response(expires_in=60)

    client.get_product("A")
    client.get_product("B")

    assert session.post.call_count == 2


def test_rejected_token_triggers_one_reauthentication():
    client, session = make_client(response(401, {}), response(200, {"code": "M1"}))

    assert client.get_product_model("M1") == {"code": "M1"}
    assert session.post.call_count == 2


def test_failed_authentication_raises_transport_error():
    client, session = make_client()
    session.post.return_value = response(401, text="invalid_grant")

    with pytest.raises(TransportError, match="authentication error: 401"):
        client.authenticate()


def test_keys_are_url_encoded():
    client, session = make_client(response(200, {}))

    client.get_product("SKU 1/red")

    assert session.request.call_args.args[1] == HOST + "/api/rest/v1/products/SKU%201%2Fred"


@pytest.mark.parametrize(
    ("method", "kind"),
    [("get_product", "product"), ("get_product_model", "product model")],
)
def test_missing_resource_raises_not_found(method, kind):
    client, _ = make_client(response(404, {"message": "Not found"}))

    with pytest.raises(NotFoundError) as info:
        getattr(client, method)("GONE")

    assert info.value.key == "GONE"
    assert info.value.kind == kind


def test_server_errors_are_retried():
    client, session = make_client(response(503, text="busy"), response(200, {"code": "M1"}))

    with patch("akeneo_migrator.utils.retry.time.sleep"):
        assert client.get_product_model("M1") == {"code": "M1"}

    assert session.request.call_count == 2


def test_network_failure_becomes_transport_error():
    session = Mock(spec=requests.Session)
    session.post.return_value = token_response()
    session.request.side_effect = requests.ConnectionError("connection refused")
    client = AkeneoClient(HOST, "client", "secret", "admin", "admin", session=session)

    with patch("akeneo_migrator.utils.retry.time.sleep"):
        with pytest.raises(TransportError, match="connection refused"):
            client.get_product("SKU-1")


@given(
    st.integers(min_value=0, max_value=6),
    st.integers(min_value=0, max_value=5),
)
@settings(max_examples=30, deadline=None)
def test_property_14_pagination_follows_next_links(extra_pages: int, items_per_page: int):
    """Property 14: Pagination completeness.

    Every page is yielded in order by following ``_links.next.href`` until a
    page without a next link.

    **Feature: akeneo-migrator, Property 14: Pagination completeness**
    """
    pages = []
    for number in range(extra_pages + 1):
        body = {
            "_embedded": {
                "items": [{"identifier": f"P{number}-{i}"} for i in range(items_per_page)]
            },
            "_links": {},
        }
        if number < extra_pages:
            body["_links"]["next"] = {"href": f"{HOST}/api/rest/v1/products?page={number + 1}"}
        pages.append(response(200, body))
    client, session = make_client(*pages)

    yielded = list(client.iter_products({"updated": []}, limit=250))

    assert len(yielded) == extra_pages + 1
    assert [item["identifier"] for page in yielded for item in page] == [
        f"P{number}-{i}" for number in range(extra_pages + 1) for i in range(items_per_page)
    ]

    first_params = session.request.call_args_list[0].kwargs["params"]
    assert first_params["limit"] == MAX_PAGE_SIZE
    assert first_params["pagination_type"] == "search_after"
    assert json.loads(first_params["search"]) == {"updated": []}
    for call in session.request.call_args_list[1:]:
        assert call.kwargs["params"] is None


def test_pages_are_fetched_lazily():
    first = response(
        200,
        {
            "_embedded": {"items": [{"code": "M1"}]},
            "_links": {"next": {"href": HOST + "/next"}},
        },
    )
    client, session = make_client(first)

    pages = client.iter_product_models({})
    assert session.request.call_count == 0
    assert next(pages) == [{"code": "M1"}]
    assert session.request.call_count == 1


@pytest.mark.parametrize("status_code", [200, 201, 204])
def test_patch_accepts_success_codes(status_code):
    client, session = make_client(response(status_code, text=" "))

    client.patch_product("SKU-1", {"identifier": "SKU-1", "enabled": True})

    method, url = session.request.call_args.args
    assert method == "PATCH"
    assert url == HOST + "/api/rest/v1/products/SKU-1"
    assert json.loads(session.request.call_args.kwargs["data"]) == {
        "identifier": "SKU-1",
        "enabled": True,
    }


def test_unprocessable_patch_raises_validation_error_with_details():
    body = {
        "code": 422,
        "message": "Validation failed",
        "errors": [{"property": "values", "message": "The value is not valid"}],
    }
    client, _ = make_client(response(422, body))

    with pytest.raises(ValidationError) as info:
        client.patch_product_model("M1", {"code": "M1"})

    assert str(info.value) == (
        "validation error in M1: Validation failed. Details: Field 'values': The value is not valid"
    )
    assert info.value.field_errors == [("values", "The value is not valid")]


def test_other_patch_failures_raise_transport_error():
    client, _ = make_client(response(500, text="boom"))

    with pytest.raises(TransportError) as info:
        client.patch_product("SKU-1", {})

    assert info.value.status_code == 500
    assert str(info.value) == "error updating SKU-1: 500 - boom"


def test_format_api_errors_without_details():
    assert format_api_errors("Validation failed.", []) == "Validation failed."


def undecodable_response(status_code: int = 200, text: str = "<html>maintenance</html>") -> Mock:
    mock = Mock(status_code=status_code, text=text)
    mock.json.side_effect = requests.exceptions.JSONDecodeError("Expecting value", text, 0)
    return mock


def test_undecodable_body_becomes_transport_error_without_retry():
    client, session = make_client(undecodable_response())

    with patch("akeneo_migrator.utils.retry.time.sleep") as sleep:
        with pytest.raises(TransportError, match="not JSON") as info:
            client.get_product_model("M1")

    assert info.value.status_code == 200
    assert session.request.call_count == 1
    sleep.assert_not_called()


def test_listing_page_of_the_wrong_shape_becomes_transport_error():
    client, _ = make_client(response(200, ["not", "a", "page"]))

    with pytest.raises(TransportError, match="expected dict"):
        next(client.iter_products({}))


@pytest.mark.parametrize(
    "token_body",
    [{"expires_in": 3600}, {"access_token": "", "expires_in": 3600}, {"access_token": None}],
)
def test_token_response_without_access_token_raises_transport_error(token_body):
    client, session = make_client()
    session.post.return_value = response(200, token_body)

    with pytest.raises(TransportError, match="no access_token"):
        client.get_product("SKU-1")

    session.request.assert_not_called()


def test_token_response_that_is_not_json_raises_transport_error():
    client, session = make_client()
    session.post.return_value = undecodable_response()

    with pytest.raises(TransportError, match="authentication request returned a body that is not JSON"):
        client.authenticate()


def test_token_response_with_invalid_expiry_raises_transport_error():
    client, session = make_client()
    session.post.return_value = response(200, {"access_token": "token-1", "expires_in": "soon"})

    with pytest.raises(TransportError, match="invalid expires_in"):
        client.authenticate()


def test_unprocessable_patch_with_undecodable_body_keeps_the_text():
    client, _ = make_client(undecodable_response(422, text="Unprocessable"))

    with pytest.raises(ValidationError) as info:
        client.patch_product("SKU-1", {})

    assert str(info.value) == "validation error in SKU-1: Unprocessable"
    assert info.value.field_errors == []


def test_unprocessable_patch_with_list_body_keeps_the_text():
    client, _ = make_client(response(422, [{"message": "odd"}], text="odd body"))

    with pytest.raises(ValidationError, match="validation error in SKU-1: odd body"):
        client.patch_product("SKU-1", {})


@pytest.mark.parametrize(
    ("method", "args", "path"),
    [
        ("get_family", ("shoes",), "/api/rest/v1/families/shoes"),
        ("get_attribute", ("color",), "/api/rest/v1/attributes/color"),
        ("get_category", ("master",), "/api/rest/v1/categories/master"),
        ("get_reference_entity", ("brands",), "/api/rest/v1/reference-entities/brands"),
    ],
)
def test_catalog_entities_are_fetched_by_code(method, args, path):
    client, session = make_client(response(200, {"code": args[0]}))

    assert getattr(client, method)(*args) == {"code": args[0]}
    assert session.request.call_args.args == ("GET", HOST + path)


@pytest.mark.parametrize(
    ("method", "kind"),
    [
        ("get_family", "family"),
        ("get_attribute", "attribute"),
        ("get_category", "category"),
        ("get_reference_entity", "reference entity"),
        ("get_reference_entity_attributes", "reference entity"),
    ],
)
def test_missing_catalog_entity_raises_not_found(method, kind):
    client, _ = make_client(response(404, {"message": "Not found"}))

    with pytest.raises(NotFoundError) as info:
        getattr(client, method)("GONE")

    assert info.value.kind == kind


def test_reference_entity_attributes_are_a_plain_list():
    attributes = [{"code": "label"}, {"code": "photo"}]
    client, session = make_client(response(200, attributes))

    assert client.get_reference_entity_attributes("brands") == attributes
    assert session.request.call_args.args[1] == HOST + "/api/rest/v1/reference-entities/brands/attributes"


def test_sub_collections_page_without_search_or_pagination_type():
    client, session = make_client(
        response(
            200,
            {
                "_embedded": {"items": [{"code": "by_size"}]},
                "_links": {"next": {"href": HOST + "/api/rest/v1/families/shoes/variants?page=2"}},
            },
        ),
        response(200, {"_embedded": {"items": [{"code": "by_color"}]}, "_links": {}}),
    )

    pages = list(client.iter_family_variants("shoes"))

    assert pages == [[{"code": "by_size"}], [{"code": "by_color"}]]
    first = session.request.call_args_list[0]
    assert first.args[1] == HOST + "/api/rest/v1/families/shoes/variants"
    assert first.kwargs["params"] == {"limit": MAX_PAGE_SIZE}


@pytest.mark.parametrize(
    ("method", "args", "path"),
    [
        ("patch_family", ("shoes",), "/api/rest/v1/families/shoes"),
        ("patch_family_variant", ("shoes", "by_size"), "/api/rest/v1/families/shoes/variants/by_size"),
        ("patch_attribute", ("color",), "/api/rest/v1/attributes/color"),
        ("patch_attribute_option", ("color", "red"), "/api/rest/v1/attributes/color/options/red"),
        ("patch_category", ("master",), "/api/rest/v1/categories/master"),
        ("patch_reference_entity", ("brands",), "/api/rest/v1/reference-entities/brands"),
        (
            "patch_reference_entity_attribute",
            ("brands", "label"),
            "/api/rest/v1/reference-entities/brands/attributes/label",
        ),
        (
            "patch_reference_entity_record",
            ("brands", "acme"),
            "/api/rest/v1/reference-entities/brands/records/acme",
        ),
    ],
)
def test_catalog_entities_are_upserted_with_patch(method, args, path):
    client, session = make_client(response(204, text=" "))

    getattr(client, method)(*args, {"code": args[-1]})

    assert session.request.call_args.args == ("PATCH", HOST + path)
    assert json.loads(session.request.call_args.kwargs["data"]) == {"code": args[-1]}


def test_rejected_record_names_the_record():
    body = {"message": "Validation failed", "errors": [{"property": "values", "message": "bad"}]}
    client, _ = make_client(response(422, body))

    with pytest.raises(ValidationError, match="validation error in record acme: Validation failed"):
        client.patch_reference_entity_record("brands", "acme", {"code": "acme"})
