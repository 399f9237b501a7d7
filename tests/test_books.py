from bookmarket.models import Book, Order


def test_book_crud(client):
    created = client.post("/books", json={"title": "Dune", "author": "Frank Herbert", "price": 9.5})
    book_id = created.json()["insertedId"]

    assert client.get(f"/books/{book_id}").json()["status"] == "published"

    updated = client.put(f"/books/{book_id}", json={"price": 11})
    assert updated.json()["matchedCount"] == 1

    books = client.get("/books").json()
    assert len(books) == 1
    assert books[0]["price"] == 11
    assert books[0]["author"] == "Frank Herbert"

    assert client.get("/books/missing").status_code == 404
    assert client.put("/books/missing", json={"price": 3}).status_code == 404


def test_delete_book_cascades_to_its_orders(client, db, add_user, add_book, add_order, auth_header):
    add_user("admin@example.com", role="admin")
    book_id = add_book()
    other_book_id = add_book(title="Emma")
    add_order(book_id=book_id)
    add_order(book_id=book_id)
    kept_id = add_order(book_id=other_book_id)

    response = client.delete(f"/books/{book_id}", headers=auth_header("admin@example.com"))

    assert response.status_code == 200
    assert response.json()["deletedOrders"] == 2
    db.expire_all()
    assert db.get(Book, book_id) is None
    assert db.get(Book, other_book_id) is not None
    assert [o.id for o in db.query(Order).all()] == [kept_id]


def test_delete_unknown_book_removes_nothing(client, db, add_user, add_order, auth_header):
    add_user("admin@example.com", role="admin")
    add_order(book_id="ghost")

    response = client.delete("/books/ghost", headers=auth_header("admin@example.com"))

    assert response.status_code == 404
    assert db.query(Order).count() == 1


def test_delete_book_rolls_back_when_orders_fail(client, db, mocker, add_user, add_book, add_order, auth_header):
    from sqlalchemy.exc import OperationalError

    add_user("admin@example.com", role="admin")
    book_id = add_book()
    add_order(book_id=book_id)
    mocker.patch("bookmarket.stores.OrderStore.delete_for_book",
                 side_effect=OperationalError("DELETE FROM orders", {}, Exception("disk I/O error")))

    response = client.delete(f"/books/{book_id}", headers=auth_header("admin@example.com"))

    assert response.status_code == 500
    db.expire_all()
    assert db.get(Book, book_id) is not None
    assert db.query(Order).count() == 1


def test_delete_book_requires_admin(client, add_user, add_book, auth_header):
    add_user("librarian@example.com", role="librarian")
    book_id = add_book()

    response = client.delete(f"/books/{book_id}", headers=auth_header("librarian@example.com"))

    assert response.status_code == 403


def test_admin_sets_book_status(client, db, add_user, add_book, auth_header):
    add_user("admin@example.com", role="admin")
    book_id = add_book()
    headers = auth_header("admin@example.com")

    response = client.patch(f"/books/status/{book_id}", json={"status": "unpublished"}, headers=headers)

    assert response.status_code == 200
    db.expire_all()
    assert db.get(Book, book_id).status == "unpublished"

    bad = client.patch(f"/books/status/{book_id}", json={"status": "hidden"}, headers=headers)
    assert bad.status_code == 400


def test_wishlist(client):
    added = client.post("/wishlist", json={"bookId": "b1", "bookName": "Dune", "email": "reader@example.com"})
    item_id = added.json()["insertedId"]

    items = client.get("/wishlist/reader@example.com").json()
    assert [i["bookId"] for i in items] == ["b1"]

    assert client.delete(f"/wishlist/{item_id}").json()["deletedCount"] == 1
    assert client.delete(f"/wishlist/{item_id}").status_code == 404
    assert client.get("/wishlist/reader@example.com").json() == []


def test_update_book_with_no_fields(client, add_book):
    book_id = add_book()

    response = client.put(f"/books/{book_id}", json={})

    assert response.status_code == 200
    assert response.json()["matchedCount"] == 1
    assert response.json()["modifiedCount"] == 0
    assert client.put("/books/missing", json={}).status_code == 404


def test_update_book_rejects_clearing_required_fields(client, db, add_book):
    book_id = add_book()

    no_title = client.put(f"/books/{book_id}", json={"title": None})
    no_price = client.put(f"/books/{book_id}", json={"price": None})

    assert no_title.status_code == 400
    assert no_title.json()["error"] == "validation"
    assert no_price.status_code == 400
    db.expire_all()
    assert db.get(Book, book_id).title == "Dune"
