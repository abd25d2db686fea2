"""HTTP control API for a running simulator.

Run:
    python -m tools.control_server
or
    uvicorn --factory tools.control_server:create_app
then e.g.
    curl -X POST localhost:8000/api/load -d '{"path": "data/sample.xml"}'
    curl -X POST localhost:8000/api/start
"""
import asyncio
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

PROJ_ROOT = Path(__file__).resolve().parents[1]
if str(PROJ_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJ_ROOT))
from config import load_simulator_config
from replay.errors import ConfigurationError, InitializationError
from replay.simulator import Simulator

import logging
logger = logging.getLogger(__name__)


async def _body(request: Request) -> Dict[str, Any]:
    try:
        body = await request.json()
    except Exception:
        body = {}
    return body if isinstance(body, dict) else {}


def _fail(e: Exception, status_code: int = 400) -> JSONResponse:
    return JSONResponse({"ok": False, "error": str(e)}, status_code=status_code)


def create_app(sim: Optional[Simulator] = None) -> FastAPI:
    app = FastAPI()
    app.state.simulator = sim if sim is not None else Simulator.from_config(load_simulator_config())

    def _sim() -> Simulator:
        return app.state.simulator

    def _action(name: str):
        async def handler():
            changed = await asyncio.to_thread(getattr(_sim(), name))
            return {"ok": True, "changed": changed, "status": _sim().status()}
        handler.__name__ = f"{name}_simulation"
        return handler

    @app.on_event("shutdown")
    async def _shutdown():
        await asyncio.to_thread(_sim().close)

    @app.get("/api/status")
    async def get_status():
        return {"ok": True, "status": _sim().status()}

    @app.get("/api/fields")
    async def get_fields():
        return {"ok": True, "fields": _sim().field_names()}

    @app.post("/api/load")
    async def load_file(request: Request):
        body = await _body(request)
        path = str(body.get("path") or "").strip()
        if not path:
            return _fail(ValueError("missing 'path'"))
        try:
            fields = await asyncio.to_thread(_sim().load, path)
        except InitializationError as e:
            logger.error(f"Failed to load {path}: {e}")
            return _fail(e)
        return {"ok": True, "fields": fields, "status": _sim().status()}

    for name in ("start", "pause", "resume", "stop"):
        app.post(f"/api/{name}")(_action(name))

    @app.post("/api/frequency")
    async def set_frequency(request: Request):
        body = await _body(request)
        try:
            interval_ms = await asyncio.to_thread(
                _sim().set_frequency,
                body.get("count"),
                body.get("time_count", 1.0),
                body.get("unit", "seconds"),
            )
        except ConfigurationError as e:
            return _fail(e)
        return {"ok": True, "interval_ms": interval_ms, "status": _sim().status()}

    @app.post("/api/throughput")
    async def set_throughput(request: Request):
        body = await _body(request)
        try:
            value = await asyncio.to_thread(_sim().set_throughput, body.get("throughput"))
        except ConfigurationError as e:
            return _fail(e)
        return {"ok": True, "throughput": value}

    @app.post("/api/port")
    async def set_port(request: Request):
        body = await _body(request)
        try:
            value = await asyncio.to_thread(_sim().set_port, body.get("port"))
        except ConfigurationError as e:
            return _fail(e)
        return {"ok": True, "port": value}

    @app.post("/api/time-fields")
    async def set_time_fields(request: Request):
        body = await _body(request)
        fields = body.get("fields")
        if fields is None:
            fields = []
        if not isinstance(fields, (list, str)):
            return _fail(ValueError("'fields' must be a list of field names"))
        fields = await asyncio.to_thread(_sim().set_time_override_fields, fields)
        return {"ok": True, "fields": fields}

    @app.post("/api/verbose")
    async def set_verbose(request: Request):
        body = await _body(request)
        _sim().set_verbose(bool(body.get("verbose")))
        return {"ok": True, "verbose": _sim().verbose()}

    return app


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.INFO)
    cfg = load_simulator_config()
    uvicorn.run(
        "tools.control_server:create_app", factory=True, host=cfg.api_host, port=cfg.api_port, reload=False
    )
