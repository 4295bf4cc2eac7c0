"""Thin requests-based client for the Akeneo PIM REST API."""

import json
import time
from typing import Any, Generator
from urllib.parse import quote

import requests
import structlog

from akeneo_migrator.errors import NotFoundError, TransportError, ValidationError
from akeneo_migrator.utils.retry import exponential_backoff_retry

log = structlog.stdlib.get_logger()

API_PREFIX = "/api/rest/v1"
PRODUCTS_PATH = f"{API_PREFIX}/products"
PRODUCT_MODELS_PATH = f"{API_PREFIX}/product-models"
FAMILIES_PATH = f"{API_PREFIX}/families"
ATTRIBUTES_PATH = f"{API_PREFIX}/attributes"
CATEGORIES_PATH = f"{API_PREFIX}/categories"
REFERENCE_ENTITIES_PATH = f"{API_PREFIX}/reference-entities"
TOKEN_PATH = "/api/oauth/v1/token"

# Renew the access token this many seconds before it expires
TOKEN_REFRESH_MARGIN = 5 * 60

# Largest page size accepted by the API
MAX_PAGE_SIZE = 100


def _segment(value: str) -> str:
    return quote(value, safe="")


def decode_json(response: requests.Response, what: str, expected: type = dict) -> Any:
    """
    Decode a response body, mapping anything unusable to TransportError.

    A proxy error page or a truncated body can come back with a success
    status, so the status code alone does not make the body trustworthy.

    Args:
        response: Response with a success status
        what: Short description of the request, used in the error message
        expected: Type the decoded body must have

    Raises:
        TransportError: If the body is not JSON or not of the expected type
    """
    try:
        body = response.json()
    except ValueError as e:
        raise TransportError(
            f"{what} returned a body that is not JSON: {e}", status_code=response.status_code
        ) from e
    if not isinstance(body, expected):
        raise TransportError(
            f"{what} returned a JSON {type(body).__name__}, expected {expected.__name__}",
            status_code=response.status_code,
        )
    return body


class AkeneoClient:
    """Client for one Akeneo instance.

    Authenticates with the OAuth2 password grant, renews the token before it
    expires and maps HTTP failures onto the migrator's error taxonomy.
    """

    def __init__(
        self,
        host: str,
        client_id: str,
        secret: str,
        username: str,
        password: str,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ):
        """
        Initialize the client. No request is sent until the first API call.

        Args:
            host: Base URL of the Akeneo instance
            client_id: API connection client id
            secret: API connection secret
            username: API user name
            password: API user password
            timeout: Timeout in seconds for each HTTP request
            session: Optional requests session (a new one is created if None)
        """
        self._host = host.rstrip("/")
        self._client_id = client_id
        self._secret = secret
        self._username = username
        self._password = password
        self._timeout = timeout
        self._session = session or requests.Session()
        self._access_token: str | None = None
        self._token_expiry: float = 0.0

        log.info("akeneo_client_initialized", host=self._host)

    @property
    def host(self) -> str:
        return self._host

    def authenticate(self) -> None:
        """Obtain a new access token.

        Raises:
            TransportError: If the token endpoint is unreachable, refuses the
                credentials or answers without a usable token
        """
        try:
            response = self._session.post(
                self._host + TOKEN_PATH,
                json={
                    "grant_type": "password",
                    "username": self._username,
                    "password": self._password,
                },
                auth=(self._client_id, self._secret),
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            raise TransportError(f"authentication request failed: {e}") from e

        if response.status_code != 200:
            raise TransportError(
                f"authentication error: {response.status_code} - {response.text}",
                status_code=response.status_code,
            )

        token = decode_json(response, "authentication request")
        access_token = token.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            raise TransportError("authentication response has no access_token")
        try:
            expires_in = float(token.get("expires_in", 3600))
        except (TypeError, ValueError):
            raise TransportError(
                f"authentication response has an invalid expires_in: {token.get('expires_in')!r}"
            ) from None

        self._access_token = access_token
        self._token_expiry = time.monotonic() + expires_in

        log.info("akeneo_client_authenticated", host=self._host)

    def _ensure_valid_token(self) -> None:
        if self._access_token is None or time.monotonic() >= self._token_expiry - TOKEN_REFRESH_MARGIN:
            self.authenticate()

    def _request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        """Send an authenticated request, re-authenticating once on 401."""
        self._ensure_valid_token()

        for attempt in range(2):
            headers = {
                "Authorization": f"Bearer {self._access_token}",
                "Content-Type": "application/json",
            }
            try:
                response = self._session.request(
                    method, url, headers=headers, timeout=self._timeout, **kwargs
                )
            except requests.RequestException as e:
                raise TransportError(f"{method} {url} failed: {e}") from e

            if response.status_code == 401 and attempt == 0:
                log.info("akeneo_token_rejected", host=self._host)
                self.authenticate()
                continue
            return response

        return response

    @exponential_backoff_retry(max_retries=3, base_delay=1.0, max_delay=60.0)
    def _get_json(
        self, url: str, params: dict[str, Any] | None = None, expected: type = dict
    ) -> Any:
        response = self._request("GET", url, params=params)

        if response.status_code == 404:
            raise NotFoundError(url.rsplit("/", 1)[-1], kind="resource")
        if response.status_code != 200:
            raise TransportError(
                f"GET {url} returned {response.status_code} - {response.text}",
                status_code=response.status_code,
            )
        return decode_json(response, f"GET {url}", expected)

    def _get_resource(self, path: str, key: str, kind: str) -> dict[str, Any]:
        try:
            return self._get_json(self._host + path)
        except NotFoundError:
            raise NotFoundError(key, kind=kind) from None

    def get_product(self, identifier: str) -> dict[str, Any]:
        """Fetch one product.

        Raises:
            NotFoundError: If no product has this identifier
            TransportError: On network or HTTP failures
        """
        return self._get_resource(f"{PRODUCTS_PATH}/{_segment(identifier)}", identifier, "product")

    def get_product_model(self, code: str) -> dict[str, Any]:
        """Fetch one product model.

        Raises:
            NotFoundError: If no product model has this code
            TransportError: On network or HTTP failures
        """
        return self._get_resource(f"{PRODUCT_MODELS_PATH}/{_segment(code)}", code, "product model")

    def get_family(self, code: str) -> dict[str, Any]:
        return self._get_resource(f"{FAMILIES_PATH}/{_segment(code)}", code, "family")

    def get_attribute(self, code: str) -> dict[str, Any]:
        return self._get_resource(f"{ATTRIBUTES_PATH}/{_segment(code)}", code, "attribute")

    def get_category(self, code: str) -> dict[str, Any]:
        return self._get_resource(f"{CATEGORIES_PATH}/{_segment(code)}", code, "category")

    def get_reference_entity(self, code: str) -> dict[str, Any]:
        return self._get_resource(
            f"{REFERENCE_ENTITIES_PATH}/{_segment(code)}", code, "reference entity"
        )

    def get_reference_entity_attributes(self, entity_code: str) -> list[dict[str, Any]]:
        """Fetch the attribute definitions of a reference entity.

        This endpoint is not paginated: the API answers with a plain list.

        Raises:
            NotFoundError: If the reference entity does not exist
            TransportError: On network or HTTP failures
        """
        try:
            return self._get_json(
                f"{self._host}{REFERENCE_ENTITIES_PATH}/{_segment(entity_code)}/attributes",
                expected=list,
            )
        except NotFoundError:
            raise NotFoundError(entity_code, kind="reference entity") from None

    def iter_pages(
        self,
        path: str,
        search: dict[str, Any] | None = None,
        limit: int = MAX_PAGE_SIZE,
        pagination_type: str | None = "search_after",
    ) -> Generator[list[dict[str, Any]], None, None]:
        """
        Yield the items of a listing one page at a time.

        Only the current page is held in memory; the next page is requested
        when the consumer asks for it, following ``_links.next.href``.

        Args:
            path: Collection path
            search: Optional Akeneo search filter
            limit: Page size, capped at the API maximum
            pagination_type: Pagination mode sent to the API, None to omit it
                (endpoints that only support the default mode)

        Yields:
            Lists of raw items

        Raises:
            TransportError: If a page cannot be fetched or decoded
        """
        url: str | None = self._host + path
        params: dict[str, Any] | None = {"limit": min(limit, MAX_PAGE_SIZE)}
        if search is not None:
            params["search"] = json.dumps(search)
        if pagination_type is not None:
            params["pagination_type"] = pagination_type
        page_number = 0

        while url:
            data = self._get_json(url, params)
            embedded = data.get("_embedded") or {}
            items = embedded.get("items") or []
            page_number += 1
            log.debug("akeneo_page_fetched", path=path, page=page_number, items=len(items))

            yield items

            url = ((data.get("_links") or {}).get("next") or {}).get("href")
            params = None

    def iter_products(
        self, search: dict[str, Any], limit: int = MAX_PAGE_SIZE
    ) -> Generator[list[dict[str, Any]], None, None]:
        return self.iter_pages(PRODUCTS_PATH, search, limit)

    def iter_product_models(
        self, search: dict[str, Any], limit: int = MAX_PAGE_SIZE
    ) -> Generator[list[dict[str, Any]], None, None]:
        return self.iter_pages(PRODUCT_MODELS_PATH, search, limit)

    def iter_family_variants(self, family_code: str) -> Generator[list[dict[str, Any]], None, None]:
        return self.iter_pages(
            f"{FAMILIES_PATH}/{_segment(family_code)}/variants", pagination_type=None
        )

    def iter_attribute_options(
        self, attribute_code: str
    ) -> Generator[list[dict[str, Any]], None, None]:
        return self.iter_pages(
            f"{ATTRIBUTES_PATH}/{_segment(attribute_code)}/options", pagination_type=None
        )

    def iter_reference_entity_records(
        self, entity_code: str
    ) -> Generator[list[dict[str, Any]], None, None]:
        # Records only support cursor pagination, which is the default for this endpoint
        return self.iter_pages(
            f"{REFERENCE_ENTITIES_PATH}/{_segment(entity_code)}/records", pagination_type=None
        )

    def patch_product(self, identifier: str, payload: dict[str, Any]) -> None:
        """Create or update a product."""
        self._patch(f"{PRODUCTS_PATH}/{_segment(identifier)}", identifier, payload)

    def patch_product_model(self, code: str, payload: dict[str, Any]) -> None:
        """Create or update a product model."""
        self._patch(f"{PRODUCT_MODELS_PATH}/{_segment(code)}", code, payload)

    def patch_family(self, code: str, payload: dict[str, Any]) -> None:
        self._patch(f"{FAMILIES_PATH}/{_segment(code)}", code, payload)

    def patch_family_variant(
        self, family_code: str, variant_code: str, payload: dict[str, Any]
    ) -> None:
        self._patch(
            f"{FAMILIES_PATH}/{_segment(family_code)}/variants/{_segment(variant_code)}",
            f"variant {variant_code}",
            payload,
        )

    def patch_attribute(self, code: str, payload: dict[str, Any]) -> None:
        self._patch(f"{ATTRIBUTES_PATH}/{_segment(code)}", code, payload)

    def patch_attribute_option(
        self, attribute_code: str, option_code: str, payload: dict[str, Any]
    ) -> None:
        self._patch(
            f"{ATTRIBUTES_PATH}/{_segment(attribute_code)}/options/{_segment(option_code)}",
            f"option {option_code}",
            payload,
        )

    def patch_category(self, code: str, payload: dict[str, Any]) -> None:
        self._patch(f"{CATEGORIES_PATH}/{_segment(code)}", code, payload)

    def patch_reference_entity(self, code: str, payload: dict[str, Any]) -> None:
        self._patch(f"{REFERENCE_ENTITIES_PATH}/{_segment(code)}", code, payload)

    def patch_reference_entity_attribute(
        self, entity_code: str, attribute_code: str, payload: dict[str, Any]
    ) -> None:
        self._patch(
            f"{REFERENCE_ENTITIES_PATH}/{_segment(entity_code)}/attributes/{_segment(attribute_code)}",
            f"attribute {attribute_code}",
            payload,
        )

    def patch_reference_entity_record(
        self, entity_code: str, record_code: str, payload: dict[str, Any]
    ) -> None:
        self._patch(
            f"{REFERENCE_ENTITIES_PATH}/{_segment(entity_code)}/records/{_segment(record_code)}",
            f"record {record_code}",
            payload,
        )

    def _patch(self, path: str, key: str, payload: dict[str, Any]) -> None:
        """
        Send an upsert.

        Raises:
            ValidationError: If the API answers 422 (payload rejected)
            TransportError: On any other failure
        """
        response = self._request("PATCH", self._host + path, data=json.dumps(payload))

        if response.status_code in (200, 201, 204):
            return

        if response.status_code == 422:
            try:
                body = decode_json(response, f"PATCH {path}")
            except TransportError:
                body = {"message": response.text}
            field_errors = [
                (str(error.get("property", "")), str(error.get("message", "")))
                for error in body.get("errors") or []
                if isinstance(error, dict)
            ]
            raise ValidationError(
                f"validation error in {key}: {format_api_errors(str(body.get('message', '')), field_errors)}",
                field_errors=field_errors,
            )

        raise TransportError(
            f"error updating {key}: {response.status_code} - {response.text}",
            status_code=response.status_code,
        )


def format_api_errors(message: str, field_errors: list[tuple[str, str]]) -> str:
    """Render an API error message with its field-level details."""
    if not field_errors:
        return message
    details = "; ".join(f"Field '{prop}': {msg}" for prop, msg in field_errors)
    return f"{message}. Details: {details}"
