from __future__ import annotations

from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from core.errors import AllProvidersFailed, ExtractionError, MalformedUrl, UnsupportedPlatform
from core.models import Platform
from core.report import authentication_status

router = APIRouter(prefix="/api", tags=["analysis"])

# The resolver reference is injected by main.py at startup
_resolver = None


def set_resolver(resolver) -> None:
    global _resolver
    _resolver = resolver


def get_resolver():
    if _resolver is None:
        raise HTTPException(503, "Resolver not initialized")
    return _resolver


class AnalyzeRequest(BaseModel):
    videoUrl: str
    platform: str | None = None


def parse_platform_hint(value: str | None) -> Platform | None:
    if not value:
        return None
    for platform in Platform:
        if platform is not Platform.UNKNOWN and platform.value.lower() == value.strip().lower():
            return platform
    raise UnsupportedPlatform(f"platform not supported: {value!r}")


def error_response(status_code: int, error: ExtractionError) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": error.to_dict()},
    )


@router.post("/analyze-video")
async def analyze_video(body: AnalyzeRequest):
    resolver = get_resolver()
    try:
        hint = parse_platform_hint(body.platform)
        result = await resolver.resolve(body.videoUrl, platform=hint)
    except (UnsupportedPlatform, MalformedUrl) as e:
        return error_response(400, e)
    except AllProvidersFailed as e:
        return error_response(502, e)

    return {
        "success": True,
        **result.to_dict(),
        "authenticationStatus": authentication_status(resolver.credentials),
    }
