"""Library example - the shared "Library" backend served as React pages.

Routes:

- `/` - server-rendered overview, props loaded per request
- `/books/{book_id}` - prerendered at build time, one file per book
- `/about` - prerendered once, no props
- `/dashboard` - client-only shell
- `/account` - redirects to `/` unless `?user=` is given
- `/api/books` - plain JSON endpoint

Development::

    LITESTAR_PAGES_DEV=1 litestar --app-dir examples/library run

Production::

    litestar --app-dir examples/library pages build
    litestar --app-dir examples/library run
"""

from pathlib import Path

from litestar import Litestar, Request, get
from msgspec import Struct

from litestar_pages import PageRedirect, PagesConfig, PagesPlugin, PathConfig, StaticPathData, page

here = Path(__file__).parent


class Book(Struct):
    id: int
    title: str
    author: str
    year: int
    tags: list[str]


BOOKS: list[Book] = [
    Book(id=1, title="Async Python", author="C. Developer", year=2024, tags=["python", "async"]),
    Book(id=2, title="Type-Safe Web", author="J. Dev", year=2025, tags=["typescript", "api"]),
    Book(id=3, title="Frontend Patterns", author="A. Designer", year=2023, tags=["frontend", "ux"]),
]


async def load_home(request: Request) -> dict:
    """Props of the overview page."""
    return {
        "headline": "One backend, many pages",
        "featured": {"id": BOOKS[0].id, "title": BOOKS[0].title},
        "totalBooks": len(BOOKS),
        "query": request.query_params.get("q", ""),
    }


def load_account(request: Request) -> dict:
    user = request.query_params.get("user")
    if not user:
        raise PageRedirect("/")
    return {"user": user}


async def book_paths() -> list[StaticPathData]:
    """Every book page prerendered by ``litestar pages build``."""
    return [
        StaticPathData(
            path=f"/books/{book.id}",
            props={"id": book.id, "title": book.title, "author": book.author, "year": book.year},
        )
        for book in BOOKS
    ]


@get("/api/books")
async def books() -> list[Book]:
    return BOOKS


pages = PagesPlugin(
    config=PagesConfig(
        pages=[
            page("/", "pages/home.tsx", loader=load_home, name="home"),
            page("/books/{book_id:int}", "pages/book.tsx", static=True, static_data=book_paths),
            page("/about", "pages/about.tsx", static=True),
            page("/dashboard", "pages/dashboard.tsx", client_only=True),
            page("/account", "pages/account.tsx", loader=load_account),
        ],
        paths=PathConfig(root=here),
    )
)

app = Litestar(route_handlers=[books], plugins=[pages], debug=True)
