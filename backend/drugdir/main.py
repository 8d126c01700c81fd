import logging
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import httpx

from . import config
from .credentials import CredentialStore, login as check_login, register as save_registration
from .errors import CredentialError, RegistrationError
from .models import (
    Credential,
    DirectoryResponse,
    DrugRecord,
    LoginRequest,
    LoginResponse,
    RegistrationErrors,
)
from .session import ClickCounter, DirectorySession


# Logging
logger = logging.getLogger("drug_directory")
# enable a config:
if not logger.handlers:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")

# FastAPI setup
app = FastAPI(title="Drug Event Directory")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# One directory screen per process; created on first use, on the event loop
_http: Optional[httpx.AsyncClient] = None
_directory: Optional[DirectorySession] = None
_counter = ClickCounter()


def get_store() -> CredentialStore:
    return CredentialStore(config.CREDENTIAL_STORE_PATH)


async def get_counter() -> ClickCounter:
    return _counter


async def get_directory() -> DirectorySession:
    global _http, _directory
    if _directory is None:
        _http = httpx.AsyncClient(timeout=config.HTTP_TIMEOUT)
        _directory = DirectorySession(_http, on_select=_counter.increment)
    return _directory


@app.on_event("startup")
def _log_endpoint():
    logger.info(f"openFDA endpoint: {config.OPENFDA_EVENT_URL} attempts={config.FETCH_ATTEMPTS}")


@app.on_event("shutdown")
async def _close_http():
    global _http, _directory
    if _http is not None:
        await _http.aclose()
    _http = None
    _directory = None


# Account endpoints
@app.post("/register", status_code=201, responses={422: {"model": RegistrationErrors}})
def register(credential: Credential, store: CredentialStore = Depends(get_store)):
    try:
        save_registration(store, credential)
    except RegistrationError as e:
        return JSONResponse(status_code=422, content=RegistrationErrors(errors=e.errors).model_dump())
    return {"username": credential.username}


@app.post("/login", response_model=LoginResponse)
def login(req: LoginRequest, store: CredentialStore = Depends(get_store)):
    try:
        user = check_login(store, req.username, req.password)
    except CredentialError as e:
        logger.info(f"login refused for {req.username!r}: {e}")
        raise HTTPException(status_code=401, detail=str(e))
    return LoginResponse(username=user.username, welcome=f"Welcome, {user.username}!")


# Directory endpoints
@app.get("/drugs", response_model=DirectoryResponse)
async def drugs(
    search: str = "",
    directory: DirectorySession = Depends(get_directory),
    counter: ClickCounter = Depends(get_counter),
):
    state = await directory.search(search)
    return DirectoryResponse(state=state, clicks=counter.count)


@app.get("/drugs/state", response_model=DirectoryResponse)
async def drugs_state(
    directory: DirectorySession = Depends(get_directory),
    counter: ClickCounter = Depends(get_counter),
):
    return DirectoryResponse(state=directory.state, clicks=counter.count)


@app.post("/drugs/select", response_model=DirectoryResponse)
async def select(
    record: DrugRecord,
    directory: DirectorySession = Depends(get_directory),
    counter: ClickCounter = Depends(get_counter),
):
    directory.select(record)
    return DirectoryResponse(state=directory.state, clicks=counter.count)


@app.post("/drugs/dismiss", response_model=DirectoryResponse)
async def dismiss(
    directory: DirectorySession = Depends(get_directory),
    counter: ClickCounter = Depends(get_counter),
):
    directory.dismiss()
    return DirectoryResponse(state=directory.state, clicks=counter.count)


# Health check endpoint
@app.get("/health")
def health():
    return {"status": "ok", "endpoint": config.OPENFDA_EVENT_URL}
