"""
FastAPI backend: REST API over ContactService.
Run with uvicorn: uvicorn api.main:app --reload
"""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from repo root (when run from repo root or from Docker)
for path in (
    Path(__file__).resolve().parent.parent.parent / ".env",
    Path.cwd() / ".env",
):
    if path.exists():
        load_dotenv(path)
        break

from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from neo4j import GraphDatabase
from pydantic import BaseModel

from kith import build_service
from kith.application import AggregateSnapshot, ContactService
from kith.domain import (
    ExceptionType,
    ImProtocol,
    MalformedNameError,
    NotFoundError,
    PresenceStatus,
    StorageError,
    StructuredName,
)
from kith.infrastructure import InMemoryRowStorage, Neo4jRowStorage, ensure_constraints

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=logging.INFO,
)
logger = logging.getLogger(__name__)

STORAGE_MEMORY = "memory"
STORAGE_NEO4J = "neo4j"


def _get_driver():
    uri = os.environ.get("NEO4J_URI", "bolt://localhost:7687").strip()
    user = os.environ.get("NEO4J_USER", "neo4j").strip()
    password = os.environ.get("NEO4J_PASSWORD", "password").strip()
    return GraphDatabase.driver(uri, auth=(user, password))


def _default_region() -> str | None:
    return os.environ.get("KITH_DEFAULT_REGION", "").strip().upper() or None


def _build_app_service(app: FastAPI) -> ContactService:
    backend = os.environ.get("KITH_STORAGE", STORAGE_MEMORY).strip().lower()
    if backend == STORAGE_NEO4J:
        app.state.driver = _get_driver()
        ensure_constraints(app.state.driver)
        owner = os.environ.get("KITH_OWNER_ID", "default").strip() or "default"
        logger.info("Using Neo4j storage (owner=%s)", owner)
        return build_service(Neo4jRowStorage(app.state.driver, owner=owner))
    if backend != STORAGE_MEMORY:
        raise RuntimeError(f"Unknown KITH_STORAGE: {backend!r}")
    logger.info("Using in-memory storage")
    return build_service(InMemoryRowStorage())


def get_service(app: FastAPI) -> ContactService:
    if getattr(app.state, "service", None) is None:
        app.state.service = _build_app_service(app)
    return app.state.service


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.driver = None
    app.state.service = None
    try:
        get_service(app)
        yield
    finally:
        if getattr(app.state, "driver", None) is not None:
            app.state.driver.close()


app = FastAPI(title="Kith API", lifespan=lifespan)


@app.exception_handler(NotFoundError)
async def _not_found(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(MalformedNameError)
async def _malformed_name(request: Request, exc: MalformedNameError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(StorageError)
async def _storage_error(request: Request, exc: StorageError):
    logger.error("Storage error: %s", exc)
    return JSONResponse(status_code=503, content={"detail": "Storage unavailable"})


# --- REST: health ---


@app.get("/health")
def health():
    return {"status": "ok"}


# --- REST: models ---


class StructuredNameBody(BaseModel):
    display_name: str | None = None
    prefix: str | None = None
    given: str | None = None
    middle: str | None = None
    family: str | None = None
    suffix: str | None = None


class ImHandleBody(BaseModel):
    protocol: ImProtocol
    handle: str


class PhoneBody(BaseModel):
    phone_number: str
    default_region: str | None = None


class PreferencesBody(BaseModel):
    send_to_voicemail: bool
    custom_ringtone: str | None = None


class ExceptionBody(BaseModel):
    type: ExceptionType
    contact_a: str
    contact_b: str


class PresenceBody(BaseModel):
    protocol: ImProtocol
    handle: str
    status: PresenceStatus


class AggregateItem(BaseModel):
    aggregate_id: str
    member_ids: list[str]
    send_to_voicemail: bool
    custom_ringtone: str | None = None
    display_name: str | None = None
    presence: PresenceStatus | None = None


def _aggregate_item(s: AggregateSnapshot) -> AggregateItem:
    return AggregateItem(
        aggregate_id=s.aggregate_id,
        member_ids=list(s.member_ids),
        send_to_voicemail=s.send_to_voicemail,
        custom_ringtone=s.custom_ringtone,
        display_name=s.display_name,
        presence=s.presence,
    )


def _name_dict(name: StructuredName | None) -> dict | None:
    if name is None:
        return None
    return {
        "display_name": name.display_name,
        "prefix": name.prefix,
        "given": name.given,
        "middle": name.middle,
        "family": name.family,
        "suffix": name.suffix,
    }


# --- REST: contacts ---


@app.post("/contacts")
def create_contact(request: Request):
    service = get_service(request.app)
    contact_id = service.create_contact()
    return JSONResponse(
        content={
            "contact_id": contact_id,
            "aggregate_id": service.query_aggregate_id(contact_id),
        },
        status_code=201,
    )


@app.delete("/contacts/{contact_id}", status_code=204)
def delete_contact(contact_id: str, request: Request):
    get_service(request.app).remove_contact(contact_id)


@app.get("/contacts/{contact_id}/aggregate")
def get_contact_aggregate(contact_id: str, request: Request):
    service = get_service(request.app)
    return _aggregate_item(service.query_aggregate(service.query_aggregate_id(contact_id)))


@app.put("/contacts/{contact_id}/name")
def put_contact_name(contact_id: str, body: StructuredNameBody, request: Request):
    fields = body.model_dump(exclude_none=True)
    name = get_service(request.app).insert_structured_name(contact_id, fields)
    return _name_dict(name)


@app.get("/contacts/{contact_id}/name")
def get_contact_name(contact_id: str, request: Request):
    return _name_dict(get_service(request.app).get_structured_name(contact_id))


@app.post("/contacts/{contact_id}/im", status_code=201)
def add_im_handle(contact_id: str, body: ImHandleBody, request: Request):
    try:
        im = get_service(request.app).insert_im_handle(contact_id, body.protocol, body.handle)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return {"protocol": int(im.protocol), "handle": im.handle}


@app.post("/contacts/{contact_id}/phones", status_code=201)
def add_phone(contact_id: str, body: PhoneBody, request: Request):
    region = (body.default_region or "").strip().upper() or _default_region()
    try:
        number = get_service(request.app).insert_phone(contact_id, body.phone_number, region)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return {"phone_number": number}


# --- REST: aggregates ---


@app.get("/aggregates")
def list_aggregates(request: Request):
    return [_aggregate_item(s) for s in get_service(request.app).list_aggregates()]


@app.get("/aggregates/{aggregate_id}")
def get_aggregate(aggregate_id: str, request: Request):
    return _aggregate_item(get_service(request.app).query_aggregate(aggregate_id))


@app.patch("/aggregates/{aggregate_id}")
def update_aggregate(aggregate_id: str, body: PreferencesBody, request: Request):
    service = get_service(request.app)
    # A ringtone left out of the body is left unchanged; an explicit null clears it.
    if "custom_ringtone" in body.model_fields_set:
        count = service.update_preferences(
            aggregate_id, body.send_to_voicemail, body.custom_ringtone
        )
    else:
        count = service.update_preferences(aggregate_id, body.send_to_voicemail)
    return {"updated": count}


# --- REST: aggregation exceptions ---


@app.post("/aggregation-exceptions")
def post_aggregation_exception(body: ExceptionBody, request: Request):
    try:
        aggregate_id = get_service(request.app).apply_exception(
            body.type, body.contact_a, body.contact_b
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return {"aggregate_id": aggregate_id}


@app.get("/aggregation-exceptions")
def list_aggregation_exceptions(request: Request):
    return [
        {
            "type": e.type.value,
            "contact_a": e.contact_a,
            "contact_b": e.contact_b,
            "created_at": e.created_at.isoformat(),
        }
        for e in get_service(request.app).list_exceptions()
    ]


# --- REST: presence ---


@app.post("/presence")
def post_presence(body: PresenceBody, request: Request):
    try:
        row = get_service(request.app).insert_presence(body.protocol, body.handle, body.status)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return {"protocol": int(row.protocol), "handle": row.handle, "status": int(row.status)}
