from fastapi import APIRouter, Depends

from app.core.context import ServiceContext
from app.core.dependencies import get_services
from app.modules.scripts.schemas import GenerateScriptRequest, GenerateScriptResponse
from app.modules.scripts.service import SCRIPT_STYLES, SCRIPT_TYPES

router = APIRouter()


@router.post("/generate-script", response_model=GenerateScriptResponse, tags=["Scripts"])
async def generate_script(
    request: GenerateScriptRequest,
    services: ServiceContext = Depends(get_services),
):
    """
    Draft a script ready to be read by the text-to-speech endpoint.
    """
    result = await services.scripts.generate(
        topic=request.topic,
        script_type=request.type,
        style=request.style,
        duration=request.duration,
    )
    return GenerateScriptResponse(
        script=result.script,
        type=result.type,
        style=result.style,
        wordCount=result.word_count,
        estimatedDuration=result.estimated_duration,
        model=result.model,
    )


@router.get("/script-options", tags=["Scripts"])
async def script_options():
    return {
        "success": True,
        "types": {key: value["name"] for key, value in SCRIPT_TYPES.items()},
        "styles": {key: value["name"] for key, value in SCRIPT_STYLES.items()},
    }
