# login_api/screens.py
from pathlib import Path

from fastapi import HTTPException
from fastapi.responses import Response

from .settings import Settings

def artifact_png_response(name: str, settings: Settings) -> Response:
    root = Path(settings.ARTIFACTS_DIR).resolve()
    path = (root / name).resolve()
    if path.parent != root or path.suffix != ".png":
        raise HTTPException(status_code=400, detail=f"invalid artifact name: {name}")
    try:
        return Response(
            content=path.read_bytes(),
            media_type="image/png",
            headers={"Content-Disposition": f"inline; filename={path.name}"},
        )
    except FileNotFoundError:
        raise HTTPException(status_code=404, detail=f"artifact not found: {name}")
