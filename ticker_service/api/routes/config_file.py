import re
from pathlib import Path

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import PlainTextResponse

from ticker_service.api.deps import get_app_settings
from ticker_service.core.config import Settings

router = APIRouter(tags=["config"])

PLACEHOLDER = "${signer_acc}"
_NON_WORD = re.compile(r"\W", re.ASCII)


def render_config(template: str, signer_acc: str | None) -> str:
    signer = _NON_WORD.sub("", signer_acc or "")
    if not signer:
        return template
    return template.replace(PLACEHOLDER, signer)


@router.get("/config.toml", response_class=PlainTextResponse)
async def config_toml(
    signer_acc: str | None = Query(None, description="Conta do signer; caracteres não alfanuméricos são removidos"),
    settings: Settings = Depends(get_app_settings),
):
    path = Path(settings.config_template_path)
    if not path.is_file():
        raise HTTPException(status_code=404, detail="config template not found")
    return render_config(path.read_text(encoding="utf-8"), signer_acc)
