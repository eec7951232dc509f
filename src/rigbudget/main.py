from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from dotenv import load_dotenv

from .config import ROOT, Settings
from .data.audit import build_audit_sink
from .data.catalog import load_catalog
from .errors import InvalidRequest, MalformedOracleReply, NegotiationExhausted, OracleTransportError
from .fps import FpsEstimator
from .graph import BuildNegotiator
from .llm.oracle import ChatOracle
from .schemas import BuildRequest, BuildResponse, ErrorResponse, FpsRequest, FpsResponse

load_dotenv(ROOT / ".env")

settings = Settings.from_env()
catalog = load_catalog(settings.catalog_path)
audit_sink = build_audit_sink(settings.audit_db_path)
oracle = ChatOracle.from_settings(settings)
negotiator = BuildNegotiator.from_settings(settings, oracle, catalog, audit_sink=audit_sink)
fps_estimator = FpsEstimator(oracle)

app = FastAPI(title="rigbudget")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error(status_code: int, body: ErrorResponse) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


@app.exception_handler(NegotiationExhausted)
def negotiation_exhausted_handler(_request: Request, exc: NegotiationExhausted):
    return _error(
        422,
        ErrorResponse(
            error="negotiation_exhausted",
            detail=str(exc),
            attempts=exc.attempts,
            reason=exc.last_outcome,
        ),
    )


@app.exception_handler(OracleTransportError)
def oracle_transport_handler(_request: Request, exc: OracleTransportError):
    return _error(502, ErrorResponse(error="oracle_transport", detail=str(exc), reason=exc.reason))


@app.exception_handler(MalformedOracleReply)
def malformed_reply_handler(_request: Request, exc: MalformedOracleReply):
    return _error(502, ErrorResponse(error="malformed_oracle_reply", detail=str(exc)))


@app.exception_handler(InvalidRequest)
def invalid_request_handler(_request: Request, exc: InvalidRequest):
    return _error(400, ErrorResponse(error="invalid_request", detail=str(exc)))


@app.post("/api/build")
def build(payload: BuildRequest):
    result = negotiator.generate(payload.budget)
    return BuildResponse.from_result(result).model_dump(by_alias=True)


@app.post("/api/fps")
def fps(payload: FpsRequest):
    estimates = fps_estimator.estimate(payload.component_names, payload.game_names)
    return FpsResponse(fps=estimates).model_dump()


@app.get("/api/products")
def list_products():
    return [p.model_dump(by_alias=True) for p in catalog.all_products()]


@app.get("/api/health")
def health():
    return {
        "status": "ok",
        "products": len(catalog),
        "provider": settings.llm_provider,
        "model_name": settings.llm_model,
        "llm_configured": oracle.configured,
    }
