"""
Integration tests for API endpoints.
"""

import pytest
from sqlalchemy import func, select

from bookstore.storage import Order, OrderItem

pytestmark = pytest.mark.asyncio


async def create_genre(client, headers, name):
    response = await client.post("/genre", json={"name": name}, headers=headers)
    return response.json()["data"]


async def create_book(client, headers, genre_id, **overrides):
    payload = {
        "title": "Untitled",
        "writer": "Anonymous",
        "publisher": "Press",
        "publication_year": 2001,
        "price": 10.0,
        "stock_quantity": 5,
        "genre_id": genre_id,
    }
    payload.update(overrides)
    response = await client.post("/books", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    async def test_health_check(self, client):
        """Health check runs without a token."""
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert "uptime" in data["data"]
        assert "timestamp" in data["data"]

    async def test_health_check_alias(self, client):
        response = await client.get("/health-check")

        assert response.status_code == 200

    async def test_root_requires_token(self, client, auth_headers):
        anonymous = await client.get("/")
        signed_in = await client.get("/", headers=auth_headers)

        assert anonymous.status_code == 401
        assert signed_in.status_code == 200
        assert signed_in.json()["name"] == "Bookstore API"

    async def test_request_id_echoed(self, client):
        response = await client.get("/health", headers={"X-Request-ID": "abc-123"})

        assert response.headers["X-Request-ID"] == "abc-123"

    async def test_request_id_generated_when_absent(self, client, auth_headers):
        first = await client.get("/books", headers=auth_headers)
        second = await client.get("/books", headers=auth_headers)

        assert len(first.headers["X-Request-ID"]) == 12
        assert first.headers["X-Request-ID"] != second.headers["X-Request-ID"]

    async def test_error_responses_carry_request_id(self, client):
        response = await client.get("/books", headers={"X-Request-ID": "trace-me"})

        assert response.status_code == 401
        assert response.headers["X-Request-ID"] == "trace-me"

    async def test_unknown_route(self, client):
        response = await client.get("/nowhere")

        assert response.status_code == 404
        assert response.json() == {"error": "Endpoint not found"}


class TestAuthEndpoints:
    """Tests for registration, login and token checks."""

    async def test_register(self, client):
        response = await client.post(
            "/auth/register",
            json={"email": "new@example.com", "password": "pw"},
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["email"] == "new@example.com"
        assert data["username"] == "Anonymous"
        assert "hashed_password" not in data

    async def test_register_duplicate_email(self, client, user_credentials):
        await client.post("/auth/register", json=user_credentials)
        response = await client.post("/auth/register", json=user_credentials)

        assert response.status_code == 409
        assert response.json()["success"] is False

    async def test_register_invalid_email(self, client):
        response = await client.post(
            "/auth/register",
            json={"email": "not-an-email", "password": "pw"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"

    async def test_login_wrong_password(self, client, user_credentials):
        await client.post("/auth/register", json=user_credentials)
        response = await client.post(
            "/auth/login",
            json={"email": user_credentials["email"], "password": "wrong"},
        )

        assert response.status_code == 401

    async def test_me(self, client, auth_headers, user_credentials):
        response = await client.get("/auth/me", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["data"]["email"] == user_credentials["email"]

    async def test_missing_token(self, client):
        response = await client.get("/books")

        assert response.status_code == 401
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "UNAUTHORIZED"

    async def test_invalid_token(self, client):
        response = await client.get("/genre", headers={"Authorization": "Bearer garbage"})

        assert response.status_code == 401

    async def test_non_bearer_scheme(self, client):
        response = await client.get("/genre", headers={"Authorization": "Basic abc"})

        assert response.status_code == 401


class TestGenreEndpoints:
    """Tests for genre endpoints."""

    async def test_create_then_duplicate(self, client, auth_headers):
        """Same active name: one 201, then one 409."""
        first = await client.post("/genre", json={"name": "Poetry"}, headers=auth_headers)
        second = await client.post("/genre", json={"name": "Poetry"}, headers=auth_headers)

        assert first.status_code == 201
        assert second.status_code == 409
        assert second.json()["error"] == "CONFLICT"

    async def test_delete_then_recreate_restores_id(self, client, auth_headers):
        created = await client.post("/genre", json={"name": "Poetry"}, headers=auth_headers)
        genre_id = created.json()["data"]["id"]

        deleted = await client.delete(f"/genre/{genre_id}", headers=auth_headers)
        assert deleted.status_code == 200

        recreated = await client.post("/genre", json={"name": "Poetry"}, headers=auth_headers)

        assert recreated.status_code == 200
        assert recreated.json()["data"]["id"] == genre_id
        assert recreated.json()["data"]["deleted_at"] is None

    async def test_list_hides_deleted(self, client, auth_headers):
        kept = await create_genre(client, auth_headers, "Kept")
        gone = await create_genre(client, auth_headers, "Gone")
        await client.delete(f"/genre/{gone['id']}", headers=auth_headers)

        response = await client.get("/genre", headers=auth_headers)

        ids = [g["id"] for g in response.json()["data"]]
        assert kept["id"] in ids
        assert gone["id"] not in ids

    async def test_get_deleted_genre(self, client, auth_headers):
        genre = await create_genre(client, auth_headers, "Gone")
        await client.delete(f"/genre/{genre['id']}", headers=auth_headers)

        response = await client.get(f"/genre/{genre['id']}", headers=auth_headers)

        assert response.status_code == 404

    async def test_rename(self, client, auth_headers):
        genre = await create_genre(client, auth_headers, "Sci-Fi")

        response = await client.patch(
            f"/genre/{genre['id']}",
            json={"name": "Science Fiction"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["data"]["name"] == "Science Fiction"

    async def test_rename_onto_existing(self, client, auth_headers):
        await create_genre(client, auth_headers, "Drama")
        genre = await create_genre(client, auth_headers, "Comedy")

        response = await client.patch(
            f"/genre/{genre['id']}",
            json={"name": "Drama"},
            headers=auth_headers,
        )

        assert response.status_code == 409

    async def test_create_blank_name(self, client, auth_headers):
        response = await client.post("/genre", json={"name": "   "}, headers=auth_headers)

        assert response.status_code == 400


class TestBookEndpoints:
    """Tests for book CRUD endpoints."""

    async def test_create_book(self, client, auth_headers, api_genre, sample_book_data):
        response = await client.post(
            "/books",
            json={**sample_book_data, "genre_id": api_genre["id"]},
            headers=auth_headers,
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["title"] == "Dune"
        assert data["genre"] == {"id": api_genre["id"], "name": "Fiction"}

    async def test_create_with_missing_genre(self, client, auth_headers, sample_book_data):
        response = await client.post(
            "/books",
            json={**sample_book_data, "genre_id": "missing"},
            headers=auth_headers,
        )

        assert response.status_code == 404
        assert response.json()["error"] == "INVALID_REFERENCE"

    @pytest.mark.parametrize("stock", [-1, 1.5, "many", True])
    async def test_create_rejects_bad_stock(self, client, auth_headers, api_genre, sample_book_data, stock):
        response = await client.post(
            "/books",
            json={**sample_book_data, "genre_id": api_genre["id"], "stock_quantity": stock},
            headers=auth_headers,
        )

        assert response.status_code == 400

    @pytest.mark.parametrize("stock", [-3, 2.5, None, False])
    async def test_update_rejects_bad_stock(self, client, auth_headers, api_book, stock):
        response = await client.patch(
            f"/books/{api_book['id']}",
            json={"stock_quantity": stock},
            headers=auth_headers,
        )

        assert response.status_code == 400

    @pytest.mark.parametrize("price", ["Infinity", "inf", "-inf", "NaN"])
    async def test_create_rejects_non_finite_price(self, client, auth_headers, api_genre, sample_book_data, price):
        response = await client.post(
            "/books",
            json={**sample_book_data, "genre_id": api_genre["id"], "price": price},
            headers=auth_headers,
        )

        assert response.status_code == 400

    @pytest.mark.parametrize("price", ["Infinity", "NaN"])
    async def test_update_rejects_non_finite_price(self, client, auth_headers, api_book, price):
        response = await client.patch(
            f"/books/{api_book['id']}",
            json={"price": price},
            headers=auth_headers,
        )

        assert response.status_code == 400

    @pytest.mark.parametrize("param", ["minPrice", "maxPrice"])
    async def test_list_rejects_non_finite_price_filter(self, client, auth_headers, param):
        response = await client.get("/books", params={param: "inf"}, headers=auth_headers)

        assert response.status_code == 400

    async def test_numeric_strings_accepted(self, client, auth_headers, api_genre, sample_book_data):
        response = await client.post(
            "/books",
            json={
                **sample_book_data,
                "genre_id": api_genre["id"],
                "price": "19.99",
                "stock_quantity": "4",
            },
            headers=auth_headers,
        )

        assert response.status_code == 201
        assert response.json()["data"]["price"] == 19.99
        assert response.json()["data"]["stock_quantity"] == 4

    async def test_publication_year_in_future(self, client, auth_headers, api_genre, sample_book_data):
        response = await client.post(
            "/books",
            json={**sample_book_data, "genre_id": api_genre["id"], "publication_year": 99999},
            headers=auth_headers,
        )

        assert response.status_code == 400

    async def test_duplicate_title(self, client, auth_headers, api_book, api_genre, sample_book_data):
        response = await client.post(
            "/books",
            json={**sample_book_data, "genre_id": api_genre["id"]},
            headers=auth_headers,
        )

        assert response.status_code == 409

    async def test_partial_update(self, client, auth_headers, api_book):
        response = await client.patch(
            f"/books/{api_book['id']}",
            json={"price": 0, "stock_quantity": 0},
            headers=auth_headers,
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["price"] == 0
        assert data["stock_quantity"] == 0
        assert data["title"] == api_book["title"]
        assert data["description"] == api_book["description"]

    async def test_update_title_collision(self, client, auth_headers, api_book, api_genre):
        other = await create_book(client, auth_headers, api_genre["id"], title="Emma")

        response = await client.patch(
            f"/books/{other['id']}",
            json={"title": api_book["title"]},
            headers=auth_headers,
        )

        assert response.status_code == 409

    async def test_update_to_missing_genre(self, client, auth_headers, api_book):
        response = await client.patch(
            f"/books/{api_book['id']}",
            json={"genre_id": "missing"},
            headers=auth_headers,
        )

        assert response.status_code == 404

    async def test_restore_overwrites_fields(self, client, auth_headers, api_book, api_genre, sample_book_data):
        await client.delete(f"/books/{api_book['id']}", headers=auth_headers)

        payload = {**sample_book_data, "genre_id": api_genre["id"], "price": 30.0}
        payload.pop("description")
        response = await client.post("/books", json=payload, headers=auth_headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["id"] == api_book["id"]
        assert data["price"] == 30.0
        assert data["description"] is None

    async def test_get_deleted_book(self, client, auth_headers, api_book):
        await client.delete(f"/books/{api_book['id']}", headers=auth_headers)

        response = await client.get(f"/books/{api_book['id']}", headers=auth_headers)
        again = await client.delete(f"/books/{api_book['id']}", headers=auth_headers)

        assert response.status_code == 404
        assert again.status_code == 404

    async def test_list_filters_and_sorting(self, client, auth_headers, api_genre):
        genre_id = api_genre["id"]
        await create_book(client, auth_headers, genre_id, title="Cheap Tricks", price=5.0, publication_year=1990)
        await create_book(client, auth_headers, genre_id, title="Middle Road", price=15.0, publication_year=2000)
        await create_book(client, auth_headers, genre_id, title="Dear Diary", price=25.0, writer="Jane Trick")

        response = await client.get(
            "/books",
            params={"search": "trick", "sortBy": "price", "sortOrder": "asc"},
            headers=auth_headers,
        )

        data = response.json()["data"]
        assert [b["title"] for b in data["items"]] == ["Cheap Tricks", "Dear Diary"]
        assert data["pagination"] == {"page": 1, "limit": 10, "total": 2, "total_pages": 1}

        response = await client.get(
            "/books",
            params={"minPrice": 10, "maxPrice": 20},
            headers=auth_headers,
        )
        assert [b["title"] for b in response.json()["data"]["items"]] == ["Middle Road"]

        response = await client.get("/books", params={"year": 1990}, headers=auth_headers)
        assert [b["title"] for b in response.json()["data"]["items"]] == ["Cheap Tricks"]

    async def test_list_pagination(self, client, auth_headers, api_genre):
        for i in range(3):
            await create_book(client, auth_headers, api_genre["id"], title=f"Volume {i}")

        response = await client.get(
            "/books",
            params={"page": 2, "limit": 2, "sortBy": "title", "sortOrder": "asc"},
            headers=auth_headers,
        )

        data = response.json()["data"]
        assert [b["title"] for b in data["items"]] == ["Volume 2"]
        assert data["pagination"]["total"] == 3
        assert data["pagination"]["total_pages"] == 2

    @pytest.mark.parametrize("params", [{"page": 10**18}, {"limit": 1000}, {"page": 0}, {"limit": 0}])
    @pytest.mark.parametrize("path", ["/books", "/books/genre/any", "/transactions"])
    async def test_list_rejects_out_of_range_paging(self, client, auth_headers, path, params):
        response = await client.get(path, params=params, headers=auth_headers)

        assert response.status_code == 400

    async def test_list_accepts_largest_page_size(self, client, auth_headers, api_book):
        response = await client.get("/books", params={"limit": 100}, headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["data"]["pagination"]["limit"] == 100

    async def test_unknown_sort_field_falls_back(self, client, auth_headers, api_book):
        response = await client.get("/books", params={"sortBy": "nonsense"}, headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["data"]["pagination"]["total"] == 1

    async def test_list_by_genre(self, client, auth_headers, api_book, api_genre):
        other = await create_genre(client, auth_headers, "Other")
        await create_book(client, auth_headers, other["id"], title="Elsewhere")

        response = await client.get(f"/books/genre/{api_genre['id']}", headers=auth_headers)

        assert response.status_code == 200
        assert [b["id"] for b in response.json()["data"]["items"]] == [api_book["id"]]

    async def test_list_by_missing_genre(self, client, auth_headers):
        response = await client.get("/books/genre/missing", headers=auth_headers)

        assert response.status_code == 404


class TestCatalogScenario:
    """Genre and book delete ordering."""

    async def test_fiction_and_dune(self, client, auth_headers, sample_book_data):
        fiction = await client.post("/genre", json={"name": "Fiction"}, headers=auth_headers)
        assert fiction.status_code == 201
        fiction_id = fiction.json()["data"]["id"]

        dune = await client.post(
            "/books",
            json={**sample_book_data, "genre_id": fiction_id},
            headers=auth_headers,
        )
        assert dune.status_code == 201
        dune_id = dune.json()["data"]["id"]

        blocked = await client.delete(f"/genre/{fiction_id}", headers=auth_headers)
        assert blocked.status_code == 409

        removed_book = await client.delete(f"/books/{dune_id}", headers=auth_headers)
        assert removed_book.status_code == 200

        removed_genre = await client.delete(f"/genre/{fiction_id}", headers=auth_headers)
        assert removed_genre.status_code == 200


class TestTransactionEndpoints:
    """Tests for transaction endpoints."""

    async def test_create_transaction_totals(self, client, auth_headers, api_genre):
        cheap = await create_book(client, auth_headers, api_genre["id"], title="Ten", price=10.0)
        pricey = await create_book(client, auth_headers, api_genre["id"], title="Twenty", price=20.0)

        response = await client.post(
            "/transactions",
            json={"items": [
                {"book_id": cheap["id"], "quantity": 2},
                {"book_id": pricey["id"], "quantity": 1},
            ]},
            headers=auth_headers,
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["total_amount"] == 40.0
        assert data["average_price"] == 15.0
        assert len(data["items"]) == 2
        assert {item["book"]["title"] for item in data["items"]} == {"Ten", "Twenty"}

    async def test_missing_book_writes_nothing(self, client, auth_headers, api_book, db_session):
        response = await client.post(
            "/transactions",
            json={"items": [
                {"book_id": api_book["id"], "quantity": 1},
                {"book_id": "missing", "quantity": 1},
            ]},
            headers=auth_headers,
        )

        assert response.status_code == 404
        orders = (await db_session.execute(select(func.count(Order.id)))).scalar_one()
        items = (await db_session.execute(select(func.count(OrderItem.id)))).scalar_one()
        assert orders == 0
        assert items == 0

    async def test_missing_user(self, client, auth_headers, api_book):
        response = await client.post(
            "/transactions",
            json={"user_id": "missing", "items": [{"book_id": api_book["id"], "quantity": 1}]},
            headers=auth_headers,
        )

        assert response.status_code == 404
        assert response.json()["error"] == "INVALID_REFERENCE"

    @pytest.mark.parametrize("items", [[], [{"book_id": "x", "quantity": 0}], [{"book_id": "x", "quantity": 1.5}]])
    async def test_invalid_items(self, client, auth_headers, items):
        response = await client.post("/transactions", json={"items": items}, headers=auth_headers)

        assert response.status_code == 400

    async def test_ordered_book_cannot_be_deleted(self, client, auth_headers, api_book):
        await client.post(
            "/transactions",
            json={"items": [{"book_id": api_book["id"], "quantity": 1}]},
            headers=auth_headers,
        )

        response = await client.delete(f"/books/{api_book['id']}", headers=auth_headers)

        assert response.status_code == 409

    async def test_get_transaction(self, client, auth_headers, api_book):
        created = await client.post(
            "/transactions",
            json={"items": [{"book_id": api_book["id"], "quantity": 3}]},
            headers=auth_headers,
        )
        order_id = created.json()["data"]["id"]

        response = await client.get(f"/transactions/{order_id}", headers=auth_headers)
        missing = await client.get("/transactions/missing", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["data"]["total_amount"] == api_book["price"] * 3
        assert missing.status_code == 404

    async def test_list_sorted_by_amount(self, client, auth_headers, api_genre):
        cheap = await create_book(client, auth_headers, api_genre["id"], title="Cheap", price=1.0)
        pricey = await create_book(client, auth_headers, api_genre["id"], title="Pricey", price=100.0)
        for book in (cheap, pricey, cheap):
            await client.post(
                "/transactions",
                json={"items": [{"book_id": book["id"], "quantity": 1}]},
                headers=auth_headers,
            )

        response = await client.get(
            "/transactions",
            params={"orderByAmount": "desc", "limit": 2},
            headers=auth_headers,
        )

        data = response.json()["data"]
        assert [o["total_amount"] for o in data["items"]] == [100.0, 1.0]
        assert data["pagination"]["total"] == 3

    async def test_list_sorted_by_average_price(self, client, auth_headers, api_genre):
        books = {}
        for title, price in (("Two", 2.0), ("Eight", 8.0), ("Twenty", 20.0)):
            books[title] = await create_book(client, auth_headers, api_genre["id"], title=title, price=price)
        for titles in (("Twenty",), ("Two", "Eight"), ("Twenty", "Two")):
            await client.post(
                "/transactions",
                json={"items": [{"book_id": books[t]["id"], "quantity": 1} for t in titles]},
                headers=auth_headers,
            )

        response = await client.get("/transactions", params={"orderByPrice": "asc"}, headers=auth_headers)

        items = response.json()["data"]["items"]
        assert [o["average_price"] for o in items] == [5.0, 11.0, 20.0]
        assert [o["total_amount"] for o in items] == [10.0, 22.0, 20.0]

    async def test_list_search(self, client, auth_headers, api_book):
        created = await client.post(
            "/transactions",
            json={"items": [{"book_id": api_book["id"], "quantity": 1}]},
            headers=auth_headers,
        )
        order_id = created.json()["data"]["id"]

        by_username = await client.get("/transactions", params={"search": "EAD"}, headers=auth_headers)
        by_id = await client.get("/transactions", params={"search": order_id[:8]}, headers=auth_headers)
        no_match = await client.get("/transactions", params={"search": "zzz"}, headers=auth_headers)

        assert [o["id"] for o in by_username.json()["data"]["items"]] == [order_id]
        assert [o["id"] for o in by_id.json()["data"]["items"]] == [order_id]
        assert no_match.json()["data"]["pagination"]["total"] == 0
        assert no_match.json()["data"]["items"] == []

    async def test_list_scoped_to_caller(self, client, auth_headers, api_book):
        await client.post(
            "/transactions",
            json={"items": [{"book_id": api_book["id"], "quantity": 1}]},
            headers=auth_headers,
        )

        await client.post("/auth/register", json={"email": "other@example.com", "password": "pw"})
        login = await client.post("/auth/login", json={"email": "other@example.com", "password": "pw"})
        other_headers = {"Authorization": f"Bearer {login.json()['data']['token']}"}

        mine = await client.get("/transactions", headers=auth_headers)
        theirs = await client.get("/transactions", headers=other_headers)

        assert mine.json()["data"]["pagination"]["total"] == 1
        assert theirs.json()["data"]["pagination"]["total"] == 0

    async def test_statistics(self, client, auth_headers):
        genre_a = await create_genre(client, auth_headers, "A")
        genre_b = await create_genre(client, auth_headers, "B")
        book_a = await create_book(client, auth_headers, genre_a["id"], title="Alpha", price=10.0)
        book_b = await create_book(client, auth_headers, genre_b["id"], title="Beta", price=20.0)

        await client.post(
            "/transactions",
            json={"items": [
                {"book_id": book_a["id"], "quantity": 1},
                {"book_id": book_b["id"], "quantity": 1},
            ]},
            headers=auth_headers,
        )
        await client.post(
            "/transactions",
            json={"items": [{"book_id": book_a["id"], "quantity": 1}]},
            headers=auth_headers,
        )

        response = await client.get("/transactions/statistics", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["total_transactions"] == 2
        assert data["average_transaction_value"] == 20.0
        assert data["top_genre"] == {"genre": "A", "count": 2}
        assert data["least_genre"] == {"genre": "B", "count": 1}

    async def test_statistics_empty(self, client, auth_headers):
        response = await client.get("/transactions/statistics", headers=auth_headers)

        data = response.json()["data"]
        assert data["total_transactions"] == 0
        assert data["top_genre"] is None
