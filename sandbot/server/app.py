"""FastAPI application exposing the dashboard controller as a JSON API."""
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Dict, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from ..commands import DeviceCommand
from ..config import SessionConfig
from ..controller import SandBotController
from ..errors import PreconditionError, SandBotError
from ..geometry import Pattern
from ..rendering import preview_payload, render_preview_svg

COMMANDS = {
    "stop": DeviceCommand.STOP,
    "home": DeviceCommand.HOME,
    "set_home": DeviceCommand.SET_HOME,
}


def _call(fn: Callable[..., Any], *args: Any) -> Any:
    try:
        return fn(*args)
    except PreconditionError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except SandBotError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    except (TypeError, ValueError) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def create_app(controller: Optional[SandBotController] = None) -> FastAPI:
    controller = controller or SandBotController()

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        yield
        controller.close()

    app = FastAPI(title="SandBot Control Server", lifespan=lifespan)
    app.state.controller = controller
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/api/health")
    def health() -> Dict[str, str]:
        return {"status": "ok"}

    @app.get("/api/status")
    def status() -> Dict[str, Any]:
        return controller.snapshot()

    @app.put("/api/config")
    def put_config(payload: Dict[str, Any]) -> Dict[str, Any]:
        current = controller.config
        config = _call(
            lambda: SessionConfig(
                device_address=payload.get("device_address", current.device_address),
                poll_cycle=payload.get("poll_cycle", current.poll_cycle),
                control_mode=payload.get("control_mode", current.control_mode),
                secondary_address=payload.get("secondary_address", current.secondary_address),
            )
        )
        controller.configure(config)
        return {"ok": True, "query": config.to_query()}

    @app.get("/api/files")
    def list_files(search: str = "") -> Dict[str, Any]:
        listing = controller.files
        return {
            "fs_name": listing.fs_name,
            "files": [{"name": f.name, "size": f.size, "size_label": f.size_label, "previewable": f.previewable}
                      for f in listing.search(search)],
        }

    @app.post("/api/files/refresh")
    def refresh_files() -> Dict[str, Any]:
        _call(controller.refresh_files)
        return controller.files.to_dict()

    @app.post("/api/files")
    def upload_file(payload: Dict[str, Any]) -> Dict[str, Any]:
        name = str(payload.get("name") or "")
        if not name:
            raise HTTPException(status_code=400, detail="name is required")
        _call(controller.upload_file, name, str(payload.get("content", "")))
        return {"ok": True}

    @app.post("/api/files/{name}/play")
    def play_file(name: str) -> Dict[str, Any]:
        entry = _call(controller.play_file, name)
        return {"ok": True, "entry": entry.to_dict() if entry else None}

    @app.post("/api/files/{name}/preview")
    def preview_file(name: str) -> Dict[str, Any]:
        pattern = _call(controller.preview_file, name)
        return {"ok": True, "count": len(pattern) if pattern is not None else 0}

    @app.delete("/api/files/{name}")
    def delete_file(name: str) -> Dict[str, Any]:
        _call(controller.delete_file, name)
        return {"ok": True}

    @app.get("/api/pattern")
    def get_pattern() -> Dict[str, Any]:
        data = controller.pattern.to_dict()
        data["name"] = controller.loaded_name
        return data

    @app.post("/api/pattern")
    def post_pattern(payload: Dict[str, Any]) -> Dict[str, Any]:
        name = str(payload.get("name") or "")
        if "text" in payload:
            pattern = controller.load_pattern_text(str(payload["text"]), name)
        else:
            pattern = _call(Pattern.from_dict, payload)
            controller.set_pattern(pattern, name)
        return {"ok": True, "count": len(pattern)}

    @app.delete("/api/pattern")
    def clear_pattern() -> Dict[str, Any]:
        controller.clear_pattern()
        return {"ok": True}

    @app.post("/api/pattern/upload")
    def upload_pattern() -> Dict[str, Any]:
        name = _call(controller.upload_pattern)
        return {"ok": True, "name": name}

    @app.get("/api/pattern/preview")
    def pattern_preview(progress: float = Query(100.0, ge=0.0, le=100.0)) -> Dict[str, Any]:
        return preview_payload(controller.pattern, progress)

    @app.get("/api/pattern/preview.svg")
    def pattern_preview_svg(progress: float = Query(100.0, ge=0.0, le=100.0)) -> Response:
        return Response(render_preview_svg(controller.pattern, progress), media_type="image/svg+xml")

    @app.post("/api/command/play_pause")
    def play_pause() -> Dict[str, Any]:
        action = _call(controller.play_pause)
        return {"ok": True, "action": action.value}

    @app.post("/api/command/{name}")
    def command(name: str) -> Dict[str, Any]:
        cmd = COMMANDS.get(name)
        if cmd is None:
            raise HTTPException(status_code=404, detail=f"Unknown command: {name}")
        _call(controller.command, cmd)
        return {"ok": True}

    @app.get("/api/history")
    def history() -> Dict[str, Any]:
        return {
            "entries": [entry.to_dict() for entry in controller.ledger.entries],
            "playlist": controller.ledger.to_playlist(),
        }

    @app.post("/api/history/playlist")
    def save_playlist(payload: Dict[str, Any]) -> Dict[str, Any]:
        filename = _call(controller.save_playlist, str(payload.get("name") or ""))
        return {"ok": True, "name": filename}

    return app


app = create_app()

__all__ = ["app", "create_app"]
