"""
Example: Serving annotated resource classes over ASGI.

Resource metadata is inherited the JAX-RS way: ``BookResource`` declares no
verbs of its own, it picks them up from the ``BookCatalog`` interface, while
the class path comes from ``CatalogBase``. Parameter bindings are
not inherited, so they are declared on the implementing methods.

Run with:
    uvicorn examples.asgi_example:app --reload

Then try:
    curl http://localhost:8000/library/books/1
    curl -X POST -H 'Content-Type: application/json' \
        -d '{"title": "Dune", "author": "Frank Herbert"}' http://localhost:8000/library/books
"""

import logging
from typing import Annotated, Dict, List, Optional, Protocol

from pydantic import BaseModel

from resourcemachine import (
    GET,
    POST,
    Consumes,
    Path,
    PathParam,
    Produces,
    QueryParam,
    ResourceApplication,
    Response,
)

logging.basicConfig(level=logging.INFO)


class Book(BaseModel):
    title: str
    author: str


class BookCatalog(Protocol):
    @GET
    @Produces("application/json")
    def list(self, author: Optional[str]) -> List[Book]: ...

    @GET
    @Path("{id}")
    @Produces("application/json", "text/plain")
    def get(self, id: int) -> Book: ...

    @POST
    @Consumes("application/json")
    def create(self, book: Book) -> Response: ...


@Path("books")
class CatalogBase:
    pass


class BookResource(CatalogBase, BookCatalog):
    """Session-scoped so the in-memory store survives between requests."""

    def __init__(self):
        self.books: Dict[int, Book] = {1: Book(title="Neuromancer", author="William Gibson")}

    def list(self, author: Annotated[Optional[str], QueryParam("author")]):
        return [b for b in self.books.values() if author is None or b.author == author]

    def get(self, id: Annotated[int, PathParam("id")]):
        book = self.books.get(id)
        if book is None:
            return Response(404, '{"error": "Book not found"}', content_type="application/json")
        return book

    def create(self, book: Book):
        book_id = max(self.books, default=0) + 1
        self.books[book_id] = book
        return Response(201, book.model_dump_json(), headers={"Location": f"/library/books/{book_id}"},
                        content_type="application/json")


resource_app = ResourceApplication(application_path="library")
resource_app.add_resource(BookResource, scope="session")


@resource_app.on_startup
def announce():
    for route in resource_app.routes:
        logging.getLogger(__name__).info(f"{route.method.value} {route.path}")


app = resource_app.asgi()
