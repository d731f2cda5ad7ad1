from uuid import uuid4

from app.models.book import Book
from conftest import FakeResult, entity_handler, make_book, make_user


def test_list_books_merges_owned_and_assigned(client, store, current_user):
    store.users[current_user.id] = current_user
    other = store.add_user("Other")
    mine = store.add_book(current_user, "Alpha")
    shared = store.add_book(other, "Beta")
    store.grant(current_user, shared, mine)

    resp = client.get("/api/v1/books")

    assert resp.status_code == 200
    books = resp.json()["books"]
    assert [(b["name"], b["isOwner"]) for b in books] == [("Alpha", True), ("Beta", False)]
    assert books[0]["userId"] == str(current_user.id)
    assert books[1]["userId"] == str(other.id)


def test_create_book_trims_name(client, fake_db, current_user):
    resp = client.post("/api/v1/books", json={"name": "  Main Branch  "})

    assert resp.status_code == 201
    book = resp.json()["book"]
    assert book["name"] == "Main Branch"
    assert book["userId"] == str(current_user.id)
    assert fake_db.committed is True
    assert isinstance(fake_db.added[0], Book)


def test_create_book_requires_name(client, fake_db):
    resp = client.post("/api/v1/books", json={"name": "   "})

    assert resp.status_code == 400
    assert resp.json()["error"] == "name: Book name is required"
    assert fake_db.added == []


def test_rename_owned_book(client, fake_db, current_user):
    book = make_book(owner=current_user, name="Old")
    fake_db.on_execute(entity_handler(Book, FakeResult(scalar=book)))

    resp = client.put(f"/api/v1/books/{book.id}", json={"name": "New"})

    assert resp.status_code == 200
    assert resp.json()["book"]["name"] == "New"
    assert book.name == "New"
    assert fake_db.committed is True


def test_rename_missing_book_is_not_found(client, fake_db):
    resp = client.put(f"/api/v1/books/{uuid4()}", json={"name": "New"})

    assert resp.status_code == 404
    assert resp.json()["error"] == "Book not found"


def test_delete_owned_book(client, fake_db, current_user):
    book = make_book(owner=current_user)
    fake_db.on_execute(entity_handler(Book, FakeResult(scalar=book)))

    resp = client.delete(f"/api/v1/books/{book.id}")

    assert resp.status_code == 200
    assert resp.json() == {"message": "Book deleted successfully"}
    assert fake_db.deleted == [book]


def test_delete_someone_elses_book_is_not_found(client, fake_db):
    # owner filter in the query yields no row for a foreign book
    foreign = make_book(owner=make_user())

    resp = client.delete(f"/api/v1/books/{foreign.id}")

    assert resp.status_code == 404
    assert fake_db.deleted == []
