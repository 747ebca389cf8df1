"""Drive mirror + foods — FastAPI backend."""

from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse, Response
from pydantic import BaseModel

from app import config, database
from app.content import ContentCache, DocumentService
from app.drive_client import DriveClient
from app.errors import InvalidQueryError, NotFoundError
from app.foods import (
    DEFAULT_LIST_LIMIT,
    DEFAULT_SEARCH_LIMIT,
    FoodService,
    parse_fields,
    parse_pagination,
)
from app.search import search_tree
from app.structure import StructureCache
from app.topics import list_topics


# ── Lifespan (startup / shutdown) ────────────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup ── load + validate config (sys.exit on error)
    settings = config.load()
    database.init_db()

    # ConfigurationError here aborts startup
    client = DriveClient.from_key_file(
        settings.drive_key_path, timeout=settings.drive_timeout_seconds
    )
    content_cache = ContentCache(settings.content_cache_bytes)
    app.state.structure = StructureCache(
        client,
        settings.drive_folder_id,
        content_cache,
        refresh_interval=settings.refresh_interval_seconds,
    )
    app.state.documents = DocumentService(client, content_cache)
    app.state.foods = FoodService(settings.foods_cache_ttl_seconds)
    try:
        yield
    finally:
        await client.aclose()


# ── App ──────────────────────────────────────────────────────────────────────

app = FastAPI(title="Drive Mirror", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(config.cors_origins()),
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Dependencies ─────────────────────────────────────────────────────────────


def get_structure_cache(request: Request) -> StructureCache:
    return request.app.state.structure


def get_document_service(request: Request) -> DocumentService:
    return request.app.state.documents


def get_food_service(request: Request) -> FoodService:
    return request.app.state.foods


@app.get("/health", response_class=PlainTextResponse)
async def health() -> str:
    return "Server is running smoothly"


# ── Drive API ────────────────────────────────────────────────────────────────


@app.get("/api/drive/structure")
async def api_structure(
    cache: StructureCache = Depends(get_structure_cache),
) -> list[dict]:
    """Return the topic → subtopic → post view of the Drive tree."""
    tree = await cache.get_structure()
    return list_topics(tree)


@app.get("/api/cached/structure")
async def api_cached_structure(
    cache: StructureCache = Depends(get_structure_cache),
) -> list[dict]:
    """Return the full nested Drive hierarchy (folders with their contents)."""
    tree = await cache.get_structure()
    return [node.to_dict() for node in tree.nested()]


@app.post("/api/cached/structure")
async def api_cached_structure_refresh(
    cache: StructureCache = Depends(get_structure_cache),
) -> dict:
    return await cache.refresh_cache()


@app.get("/api/drive/folder/{folder_id}")
async def api_folder(
    folder_id: str, cache: StructureCache = Depends(get_structure_cache)
) -> list[dict]:
    """Return one level of a folder's children."""
    children = await cache.get_folder_contents(folder_id)
    return [child.to_dict() for child in children]


@app.get("/api/drive/file/html/{file_id}")
async def api_file_html(
    file_id: str, documents: DocumentService = Depends(get_document_service)
) -> Response:
    """Return a Google Docs document exported as HTML."""
    html = await documents.get_html(file_id)
    return Response(content=html, media_type="text/html")


@app.post("/api/drive/invalidate-cache")
async def api_invalidate_cache(
    cache: StructureCache = Depends(get_structure_cache),
) -> dict:
    cache.invalidate()
    return {"message": "Cache invalidated successfully."}


@app.post("/api/drive/refresh-cache")
async def api_refresh_cache(
    cache: StructureCache = Depends(get_structure_cache),
) -> dict:
    return await cache.refresh_cache()


@app.get("/api/drive/search")
async def api_drive_search(
    query: str | None = None, cache: StructureCache = Depends(get_structure_cache)
) -> dict:
    """Search file names in the cached tree (503 until it has been built)."""
    if not query or not query.strip():
        raise InvalidQueryError("Query parameter is required.")
    results = search_tree(query, cache.get_cached_structure())
    return {"results": [r.to_dict() for r in results]}


# ── Foods API ────────────────────────────────────────────────────────────────


class NutrientsRequest(BaseModel):
    nutrients: list[str] = []


def _parse_id(raw: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise InvalidQueryError("Invalid ID parameter.") from None


@app.get("/api/foods")
async def api_foods(
    fields: str | None = None,
    limit: str | None = None,
    offset: str | None = None,
    foods: FoodService = Depends(get_food_service),
) -> list[dict]:
    page_limit, page_offset = parse_pagination(limit, offset, DEFAULT_LIST_LIMIT)
    return foods.list_foods(parse_fields(fields), page_limit, page_offset)


@app.get("/api/foods/search")
async def api_foods_search(
    query: str | None = None,
    fields: str | None = None,
    limit: str | None = None,
    offset: str | None = None,
    foods: FoodService = Depends(get_food_service),
) -> list[dict]:
    if not query:
        raise InvalidQueryError("Query parameter 'query' is required.")
    page_limit, page_offset = parse_pagination(limit, offset, DEFAULT_SEARCH_LIMIT)
    return foods.search_foods(query, parse_fields(fields), page_limit, page_offset)


@app.delete("/api/foods/{food_id}")
async def api_delete_food(
    food_id: str, foods: FoodService = Depends(get_food_service)
) -> dict:
    deleted = foods.delete_food(_parse_id(food_id))
    if deleted is None:
        raise NotFoundError("Food item not found.")
    return deleted


@app.post("/api/foods/{food_id}/nutrients")
async def api_food_nutrients(
    food_id: str,
    body: NutrientsRequest,
    foods: FoodService = Depends(get_food_service),
) -> dict:
    parsed_id = _parse_id(food_id)
    if not body.nutrients:
        raise InvalidQueryError("Nutrients must be a non-empty array.")
    data = foods.get_nutrients(parsed_id, body.nutrients)
    if data is None:
        raise NotFoundError("Food item not found.")
    return {"nutrients": data}
