import pytest
from flask import Flask
from sqlalchemy import Column, ForeignKey, Integer, String, Table, create_engine
from sqlalchemy.orm import declarative_base, relationship, scoped_session, sessionmaker

import jadoc
from jadoc import (
    Cardinality,
    IncludedRelationshipExtractor,
    IncludeLookupSetter,
    JadocAPI,
    QueryParamsBuilder,
    ResourceNotFoundError,
    ResourceRegistry,
)
from jadoc.sqla import SQLAlchemyRelationshipRepository, SQLAlchemyRepository, descriptor_from_model, register_model

Base = declarative_base()

book_readers = Table(
    "book_readers",
    Base.metadata,
    Column("book_id", Integer, ForeignKey("books.id"), primary_key=True),
    Column("reader_id", Integer, ForeignKey("readers.id"), primary_key=True),
)


class Author(Base):
    __tablename__ = "authors"
    id = Column(Integer, primary_key=True)
    name = Column(String, default="")
    books = relationship("Book", back_populates="author")


class Book(Base):
    __tablename__ = "books"
    id = Column(Integer, primary_key=True)
    title = Column(String, default="")
    author_id = Column(Integer, ForeignKey("authors.id"))
    author = relationship("Author", back_populates="books")
    readers = relationship("Reader", secondary=book_readers)


class Reader(Base):
    __tablename__ = "readers"
    id = Column(Integer, primary_key=True)
    name = Column(String, default="")


@pytest.fixture
def session():
    engine = create_engine("sqlite://")
    Base.metadata.create_all(engine)
    session = scoped_session(sessionmaker(bind=engine))
    author = Author(name="Ursula")
    session.add_all(
        [
            Book(title="The Dispossessed", author=author),
            Book(title="The Lathe of Heaven", author=author),
            Book(title="Solaris"),
            Reader(name="reader 1"),
            Reader(name="reader 2"),
        ]
    )
    session.commit()
    yield session
    session.remove()


@pytest.fixture
def registry(session) -> ResourceRegistry:
    registry = ResourceRegistry(service_url="http://localhost")
    for model in (Author, Book, Reader):
        register_model(registry, session, model)
    return registry


@pytest.fixture
def client(registry: ResourceRegistry):
    app = Flask("jadoc_sqla")
    JadocAPI(app, registry)
    return app.test_client()


def test_descriptor_from_model() -> None:
    descriptor = descriptor_from_model(Book, include_by_default=["author"])

    assert descriptor.resource_type == "books"
    assert descriptor.id_field.name == "id"
    assert descriptor.id_field.type is int
    assert [attr_field.name for attr_field in descriptor.attribute_fields] == ["title", "author_id"]
    author = descriptor.find_relationship_field("author")
    readers = descriptor.find_relationship_field("readers")
    assert author.target == "authors"
    assert author.cardinality is Cardinality.TO_ONE
    assert author.include_by_default
    assert readers.cardinality is Cardinality.TO_MANY


def test_type_names() -> None:
    descriptor = descriptor_from_model(Book, type_names={Book: "Book", Author: "Author"})

    assert descriptor.resource_type == "Book"
    assert descriptor.find_relationship_field("author").target == "Author"


def test_repository_find_all(session) -> None:
    repository = SQLAlchemyRepository(session, Book)
    params = QueryParamsBuilder().build({"filter[books][author_id]": "1", "sort[books][title]": "desc", "page[limit]": "1"})

    books = repository.find_all(None, params)

    assert [book.title for book in books] == ["The Lathe of Heaven"]
    assert books.meta == {"total": 2}
    assert [book.id for book in repository.find_all([3, 1])] == [1, 3]


def test_repository_save_and_delete(session) -> None:
    repository = SQLAlchemyRepository(session, Reader)

    reader = repository.save(Reader(name="reader 3"))
    assert repository.find_one(reader.id).name == "reader 3"

    repository.delete(reader.id)
    assert repository.find_one(reader.id) is None
    with pytest.raises(ResourceNotFoundError):
        repository.delete(reader.id)


def test_relationship_repository(session) -> None:
    repository = SQLAlchemyRelationshipRepository(session, Book, Reader)
    book = session.get(Book, 1)

    repository.add_relations(book, [1, 2], "readers")
    assert sorted(reader.id for reader in repository.find_many_targets(1, "readers")) == [1, 2]

    repository.remove_relations(book, [1], "readers")
    assert [reader.id for reader in repository.find_many_targets(1, "readers")] == [2]

    repository.set_relations(book, [], "readers")
    assert repository.find_many_targets(1, "readers") == []


def test_to_one_relationship_repository(session) -> None:
    repository = SQLAlchemyRelationshipRepository(session, Book, Author)
    book = session.get(Book, 3)

    repository.set_relation(book, 1, "author")
    assert repository.find_one_target(3, "author").name == "Ursula"
    repository.set_relation(book, None, "author")
    assert repository.find_one_target(3, "author") is None
    with pytest.raises(ResourceNotFoundError):
        repository.set_relation(book, 42, "author")


def test_api(client, session) -> None:
    document = client.get("/books/1?include[books]=author").get_json(force=True)

    assert document["data"]["attributes"]["title"] == "The Dispossessed"
    assert document["data"]["relationships"]["author"]["data"] == {"type": "authors", "id": "1"}
    assert document["included"][0]["attributes"]["name"] == "Ursula"
    assert document["included"][0]["links"]["self"] == "http://localhost/authors/1"


def test_api_post_and_relationships(client, session) -> None:
    headers = {"Content-Type": "application/vnd.api+json"}
    payload = {"data": {"type": "books", "attributes": {"title": "Kindred"}, "relationships": {"readers": {"data": [{"type": "readers", "id": "2"}]}}}}

    response = client.post("/books", json=payload, headers=headers)
    assert response.status_code == 201
    book_id = int(response.get_json(force=True)["data"]["id"])
    assert [reader.name for reader in session.get(Book, book_id).readers] == ["reader 2"]

    response = client.patch(f"/books/{book_id}/relationships/author", json={"data": {"type": "authors", "id": "1"}}, headers=headers)
    assert response.status_code == 204
    assert session.get(Book, book_id).author.name == "Ursula"

    response = client.get("/authors/1/relationships/books")
    assert {identifier["id"] for identifier in response.get_json(force=True)["data"]} == {"1", "2", str(book_id)}


def test_api_delete(client, session) -> None:
    assert client.delete("/readers/1").status_code == 204
    assert session.get(Reader, 1) is None
    assert client.delete("/readers/1").status_code == 404


def test_sqlalchemy_registry_is_processed_by_one_thread(registry: ResourceRegistry) -> None:
    assert jadoc.JADOC.INCLUSION_WORKERS > 1
    assert not registry.thread_safe
    assert IncludedRelationshipExtractor(registry).workers == 1
    assert IncludedRelationshipExtractor(registry, workers=4).workers == 1
    assert IncludeLookupSetter(registry).workers == 1


def test_api_include_collection_with_default_config(client, session, monkeypatch: pytest.MonkeyPatch) -> None:
    def no_threads(*args, **kwargs):
        raise AssertionError("the session must only be used by the request thread")

    monkeypatch.setattr("jadoc.inclusion.ThreadPoolExecutor", no_threads)
    session.get(Book, 1).readers = [session.get(Reader, 1)]
    session.get(Book, 2).readers = [session.get(Reader, 1), session.get(Reader, 2)]
    session.commit()

    document = client.get("/books?include[books]=readers,author").get_json(force=True)

    assert sorted(book["id"] for book in document["data"]) == ["1", "2", "3"]
    assert sorted((resource["type"], resource["id"]) for resource in document["included"]) == [
        ("authors", "1"),
        ("readers", "1"),
        ("readers", "2"),
    ]
