"""
Unit tests for the CMS GraphQL client.
"""
import json

import httpx
import pytest

from internal.domain.errors import DuplicateConflict, RemoteError
from internal.domain.value_objects import EntityKind, Locale
from internal.infrastructure.cms.client import CMSClient, classify_errors


def localizations(*refs):
    return {"data": [{"id": ref_id, "attributes": {"locale": locale}} for ref_id, locale in refs]}


def parameter_type_node(node_id="1", name="Колір", locale="uk", peers=()):
    return {
        "id": node_id,
        "attributes": {
            "name": name,
            "slug": "kolir",
            "locale": locale,
            "localizations": localizations(*peers),
        },
    }


class Backend:
    """Records requests and answers with queued responses."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        if isinstance(response, httpx.Response):
            return response
        return httpx.Response(200, json=response)

    @property
    def last_body(self):
        return json.loads(self.requests[-1].content)


@pytest.fixture
def backend():
    return Backend()


@pytest.fixture
def client(backend):
    """Client over a mock transport; it connects on first request."""
    return CMSClient("https://cms.example.com/", "secret", transport=httpx.MockTransport(backend))


class TestClassifyErrors:
    """Tests for GraphQL error classification."""

    def test_is_exists_detail(self):
        """Test the structured flag marks a duplicate and carries the id."""
        errors = [{
            "message": "This attribute must be unique",
            "extensions": {"exception": {"details": {"isExists": True, "existingId": 17}}},
        }]

        error = classify_errors(errors)

        assert isinstance(error, DuplicateConflict)
        assert error.existing_id == "17"

    def test_conflict_code(self):
        """Test the CONFLICT extension code marks a duplicate."""
        error = classify_errors([{"message": "Conflict", "extensions": {"code": "CONFLICT"}}])

        assert isinstance(error, DuplicateConflict)

    @pytest.mark.parametrize("message", ["This locale is already used", "Entry already exists"])
    def test_conflict_messages(self, message):
        """Test known conflict messages mark a duplicate."""
        assert isinstance(classify_errors([{"message": message}]), DuplicateConflict)

    def test_http_conflict(self):
        """Test a 409 status marks a duplicate."""
        assert isinstance(classify_errors([{"message": "Nope"}], status_code=409), DuplicateConflict)

    def test_other_errors(self):
        """Test everything else is a remote error with joined messages."""
        error = classify_errors([{"message": "Forbidden"}, {"message": "Invalid"}], status_code=403)

        assert type(error) is RemoteError
        assert error.message == "Forbidden; Invalid"
        assert error.status_code == 403


class TestExecute:
    """Tests for request and response handling."""

    @pytest.mark.asyncio
    async def test_request_shape(self, client, backend):
        """Test documents are posted to /graphql with a bearer token."""
        backend.responses.append({"data": {"ok": True}})

        data = await client.execute("query { ok }", {"a": 1})

        request = backend.requests[0]
        assert data == {"ok": True}
        assert request.method == "POST"
        assert str(request.url) == "https://cms.example.com/graphql"
        assert request.headers["Authorization"] == "Bearer secret"
        assert backend.last_body == {"query": "query { ok }", "variables": {"a": 1}}

    @pytest.mark.asyncio
    async def test_graphql_errors(self, client, backend):
        """Test a GraphQL errors payload is raised."""
        backend.responses.append({"data": None, "errors": [{"message": "Forbidden"}]})

        with pytest.raises(RemoteError, match="Forbidden"):
            await client.execute("query { ok }")

    @pytest.mark.asyncio
    async def test_http_error_status(self, client, backend):
        """Test a non-2xx response without errors is raised."""
        backend.responses.append(httpx.Response(502, text="Bad Gateway"))

        with pytest.raises(RemoteError) as exc_info:
            await client.execute("query { ok }")

        assert exc_info.value.status_code == 502
        assert exc_info.value.payload == "Bad Gateway"

    @pytest.mark.asyncio
    async def test_http_conflict_status(self, client, backend):
        """Test a bare 409 is a duplicate conflict."""
        backend.responses.append(httpx.Response(409, json={}))

        with pytest.raises(DuplicateConflict):
            await client.execute("mutation { x }")

    @pytest.mark.asyncio
    async def test_transport_error(self, client, backend):
        """Test a transport failure is wrapped."""
        backend.responses.append(httpx.ConnectError("connection refused"))

        with pytest.raises(RemoteError, match="CMS request failed"):
            await client.execute("query { ok }")

    @pytest.mark.asyncio
    async def test_missing_data(self, client, backend):
        """Test a response without data is malformed."""
        backend.responses.append({"unexpected": True})

        with pytest.raises(RemoteError, match="without data"):
            await client.execute("query { ok }")

    @pytest.mark.asyncio
    async def test_connection_reused(self, client, backend):
        """Test the lazily opened connection serves later requests."""
        backend.responses.extend([{"data": {"ok": True}}, {"data": {"ok": False}}])

        first = await client.connect()
        await client.execute("query { ok }")
        await client.execute("query { ok }")

        assert await client.connect() is first
        assert len(backend.requests) == 2
        await client.close()


class TestReads:
    """Tests for read operations."""

    @pytest.mark.asyncio
    async def test_get_by_natural_key(self, client, backend):
        """Test the natural key is sent as filter variables and mapped."""
        backend.responses.append({"data": {"parameterTypes": {"data": [
            parameter_type_node(peers=[("2", "ru")]),
        ]}}})

        entity = await client.get_by_natural_key(EntityKind.PARAMETER_TYPE, "Колір", Locale.UK)

        assert backend.last_body["variables"] == {"name": "Колір", "locale": "uk"}
        assert entity.id == "1"
        assert entity.name == "Колір"
        assert entity.peer_id(Locale.RU) == "2"

    @pytest.mark.asyncio
    async def test_get_by_natural_key_miss(self, client, backend):
        """Test an empty result is None."""
        backend.responses.append({"data": {"parameterValues": {"data": []}}})

        entity = await client.get_by_natural_key(
            EntityKind.PARAMETER_VALUE, ("Червоний", "7"), "uk"
        )

        assert entity is None
        assert backend.last_body["variables"] == {
            "value": "Червоний",
            "parameterTypeId": "7",
            "locale": "uk",
        }

    @pytest.mark.asyncio
    async def test_list_page(self, client, backend):
        """Test listing maps items and pagination meta."""
        backend.responses.append({"data": {"parameterTypes": {
            "data": [parameter_type_node("1"), parameter_type_node("3", name="Розмір")],
            "meta": {"pagination": {"total": 5, "page": 2, "pageSize": 2, "pageCount": 3}},
        }}})

        page = await client.list_page(EntityKind.PARAMETER_TYPE, Locale.UK, 2, 2)

        assert backend.last_body["variables"] == {
            "locale": "uk",
            "pagination": {"page": 2, "pageSize": 2},
        }
        assert [item.name for item in page.items] == ["Колір", "Розмір"]
        assert (page.page, page.page_count, page.total) == (2, 3, 5)
        assert not page.is_last

    @pytest.mark.asyncio
    async def test_get_localization_id(self, client, backend):
        """Test the peer id is read from the record's localizations."""
        backend.responses.append({"data": {"parameterType": {"data":
            parameter_type_node(peers=[("2", "ru")]),
        }}})

        assert await client.get_localization_id(EntityKind.PARAMETER_TYPE, "1", Locale.RU) == "2"

    @pytest.mark.asyncio
    async def test_get_localization_id_of_relation(self, client, backend):
        """Test relation-only kinds are resolved from the raw node."""
        backend.responses.append({"data": {"subcategory": {"data": {
            "id": "5",
            "attributes": {"locale": "uk", "localizations": localizations(("6", "ru"))},
        }}}})

        assert await client.get_localization_id(EntityKind.SUBCATEGORY, "5", "ru") == "6"

    @pytest.mark.asyncio
    async def test_get_localization_id_missing_record(self, client, backend):
        """Test a missing record has no peer."""
        backend.responses.append({"data": {"product": {"data": None}}})

        assert await client.get_localization_id(EntityKind.PRODUCT, "404", "ru") is None

    @pytest.mark.asyncio
    async def test_product_mapping(self, client, backend):
        """Test a product node with relations is mapped."""
        backend.responses.append({"data": {"products": {"data": [{
            "id": "10",
            "attributes": {
                "part_number": "KBL-3X25",
                "title": "Кабель мідний",
                "retail": 125.5,
                "currency": "UAH",
                "in_stock": 12,
                "locale": "uk",
                "additional_images": [{"link": "https://s3/kbl_2.jpg"}],
                "subcategory": {"data": {"id": "4"}},
                "product_types": {"data": [{"id": "8"}]},
                "product_parameters": {"data": [{
                    "id": "30",
                    "attributes": {"locale": "uk", "parameter_value": {"data": {"id": "20"}}},
                }]},
                "localizations": localizations(("11", "ru")),
            },
        }]}}})

        product = await client.get_by_natural_key(EntityKind.PRODUCT, "KBL-3X25", "uk")

        assert product.part_number == "KBL-3X25"
        assert str(product.retail) == "125.5"
        assert product.in_stock == 12
        assert product.additional_images == ["https://s3/kbl_2.jpg"]
        assert product.subcategory_id == "4"
        assert product.product_type_ids == ["8"]
        assert [(p.product_id, p.parameter_value_id) for p in product.parameters] == [("10", "20")]
        assert product.peer_id("ru") == "11"

    @pytest.mark.asyncio
    async def test_malformed_record(self, client, backend):
        """Test a record the mapper cannot read is a remote error."""
        backend.responses.append({"data": {"parameterTypes": {"data": [{"attributes": {}}]}}})

        with pytest.raises(RemoteError, match="Malformed"):
            await client.get_by_natural_key(EntityKind.PARAMETER_TYPE, "Колір", "uk")


class TestWrites:
    """Tests for write operations."""

    @pytest.mark.asyncio
    async def test_create(self, client, backend):
        """Test a created record is published and mapped."""
        backend.responses.append({"data": {"createParameterType": {"data":
            parameter_type_node("9"),
        }}})

        entity = await client.create(
            EntityKind.PARAMETER_TYPE, {"name": "Колір", "slug": "kolir"}, Locale.UK
        )

        variables = backend.last_body["variables"]
        assert entity.id == "9"
        assert variables["locale"] == "uk"
        assert variables["data"]["name"] == "Колір"
        assert variables["data"]["publishedAt"].endswith("Z")

    @pytest.mark.asyncio
    async def test_create_localization(self, client, backend):
        """Test the peer is created against the source id."""
        backend.responses.append({"data": {"createParameterTypeLocalization": {"data":
            parameter_type_node("2", name="Цвет", locale="ru", peers=[("1", "uk")]),
        }}})

        peer = await client.create_localization(
            EntityKind.PARAMETER_TYPE, "1", Locale.RU, {"name": "Цвет", "slug": "kolir"}
        )

        variables = backend.last_body["variables"]
        assert (variables["id"], variables["locale"]) == ("1", "ru")
        assert peer.locale == Locale.RU
        assert peer.peer_id(Locale.UK) == "1"

    @pytest.mark.asyncio
    async def test_create_localization_conflict(self, client, backend):
        """Test an existing peer surfaces as a duplicate conflict."""
        backend.responses.append({"data": None, "errors": [{"message": "This locale is already used"}]})

        with pytest.raises(DuplicateConflict):
            await client.create_localization(EntityKind.PARAMETER_TYPE, "1", "ru", {"name": "Цвет"})

    @pytest.mark.asyncio
    async def test_create_product_parameter(self, client, backend):
        """Test a link is created from the product and value ids."""
        backend.responses.append({"data": {"createProductParameter": {"data": {
            "id": "31",
            "attributes": {
                "locale": "ru",
                "product": {"data": {"id": "11"}},
                "parameter_value": {"data": {"id": "21"}},
            },
        }}}})

        link = await client.create_product_parameter("11", "21", Locale.RU)

        data = backend.last_body["variables"]["data"]
        assert (data["product"], data["parameter_value"]) == ("11", "21")
        assert (link.id, link.product_id, link.parameter_value_id) == ("31", "11", "21")

    @pytest.mark.asyncio
    async def test_list_product_parameters(self, client, backend):
        """Test join records of a product are listed."""
        backend.responses.append({"data": {"productParameters": {"data": [{
            "id": "30",
            "attributes": {"locale": "uk", "parameter_value": {"data": {"id": "20"}}},
        }]}}})

        links = await client.list_product_parameters("10", Locale.UK)

        assert backend.last_body["variables"] == {"productId": "10", "locale": "uk"}
        assert [(link.product_id, link.parameter_value_id) for link in links] == [("10", "20")]

    @pytest.mark.asyncio
    async def test_update_fields(self, client, backend):
        """Test fields are written to one record by id."""
        backend.responses.append({"data": {"updateProduct": {"data": {
            "id": "11",
            "attributes": {"part_number": "KBL-3X25", "title": "Кабель медный", "locale": "ru",
                           "retail": 130, "in_stock": 5},
        }}}})

        product = await client.update_fields(
            EntityKind.PRODUCT, "11", {"retail": 130.0, "in_stock": 5}
        )

        body = backend.last_body
        assert "updateProduct(id: $id, data: $data)" in body["query"]
        assert body["variables"] == {"id": "11", "data": {"retail": 130.0, "in_stock": 5}}
        assert (product.id, product.locale, product.in_stock) == ("11", Locale.RU, 5)

    @pytest.mark.asyncio
    async def test_update_fields_missing_record(self, client, backend):
        """Test an update that returns no record is a remote error."""
        backend.responses.append({"data": {"updateProduct": {"data": None}}})

        with pytest.raises(RemoteError, match="updateProduct returned no record"):
            await client.update_fields(EntityKind.PRODUCT, "404", {"in_stock": 1})
