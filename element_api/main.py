import logging
import os
import time
import uuid
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import BaseModel, Field
from starlette.exceptions import HTTPException as StarletteHTTPException

from element_api import insertion, llm_client, oauth
from element_api.errors import ConfigurationError, ElementApiError, MethodNotAllowed, MissingHtml, MissingPrompt
from element_api.fallback import fallback

if not logging.getLogger().handlers:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

log = logging.getLogger(__name__)

app = FastAPI(title="AI Element Builder")

allow_origins = [o.strip() for o in os.getenv("ALLOW_ORIGINS", "*").split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    rid = str(uuid.uuid4())
    start = time.time()
    request.state.request_id = rid
    response = None
    try:
        response = await call_next(request)
        return response
    finally:
        dur_ms = int((time.time() - start) * 1000)
        log.info(
            "rid=%s method=%s path=%s status=%s dur_ms=%d",
            rid,
            request.method,
            request.url.path,
            getattr(response, "status_code", "?"),
            dur_ms,
        )


@app.exception_handler(ElementApiError)
async def element_api_error_handler(request: Request, exc: ElementApiError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 405:
        payload = MethodNotAllowed().to_payload()
    else:
        payload = {"error": str(exc.detail)}
    return JSONResponse(status_code=exc.status_code, content=payload, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    first = next(iter(exc.errors()), {})
    loc = ".".join(str(p) for p in first.get("loc", ()) if p != "body") or "(body)"
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request body", "error_description": f"{loc}: {first.get('msg', 'invalid')}"},
    )


class GenerateElementRequest(BaseModel):
    prompt: Optional[str] = Field(default=None, description="Free-text description of the element")
    elementType: Optional[str] = Field(default=None, description="button, header, card, form or generic")


class ExchangeRequest(BaseModel):
    code: Optional[str] = Field(default=None, description="OAuth authorization code")
    state: Optional[str] = Field(default=None, description="Opaque value echoed back as site_id")


class ElementTreeRequest(BaseModel):
    html: Optional[str] = None
    css: Optional[str] = ""


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/llm/status")
def llm_status_endpoint() -> Dict[str, Any]:
    return llm_client.status()


@app.post("/api/generate-element")
def generate_element_endpoint(req: GenerateElementRequest):
    """
    Always 200 once a prompt is present: a missing completion key or any AI
    failure degrades to the template fallback for the same prompt and type.
    """
    if not (req.prompt or "").strip():
        raise MissingPrompt()
    try:
        element = llm_client.generate_element(req.prompt, req.elementType)
    except ConfigurationError as e:
        log.error("generate-element: %s; serving template fallback", e)
        element = fallback(req.prompt, req.elementType)
    return JSONResponse(element.to_payload())


@app.post("/api/auth/exchange")
def auth_exchange_endpoint(req: ExchangeRequest, request: Request):
    result = oauth.exchange_code(req.code, req.state, method=request.method)
    return JSONResponse(result.model_dump())


@app.get("/api/auth/login")
def auth_login(state: Optional[str] = None):
    return RedirectResponse(oauth.build_authorize_url(state), status_code=307)


@app.post("/api/element-tree")
def element_tree_endpoint(req: ElementTreeRequest):
    """Native-insertion payload for the designer extension: attributed tree + style rules."""
    if not (req.html or "").strip():
        raise MissingHtml()
    tree = insertion.html_to_tree(req.html)
    rules = insertion.parse_css_rules(req.css or "")
    return {"element": tree.to_dict(), "styles": [r.to_dict() for r in rules]}
