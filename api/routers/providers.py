from __future__ import annotations

from fastapi import APIRouter, Query

from api.routers.analysis import error_response, get_resolver
from core import platforms
from core.errors import MalformedUrl, UnsupportedPlatform
from core.report import authentication_status

router = APIRouter(prefix="/api", tags=["providers"])


@router.get("/providers")
async def list_providers():
    resolver = get_resolver()
    credentials = resolver.credentials
    chains = {}
    for platform in platforms.supported_platforms():
        chains[platform.value] = [
            {
                "name": adapter.name,
                "dataSource": adapter.data_source,
                "extractionMethod": adapter.extraction_method,
                "requiredCredential": adapter.required_credential,
                "configured": not adapter.required_credential
                or bool(credentials.get(adapter.required_credential)),
                "authentic": adapter.authentic,
                "lastResort": adapter.last_resort,
            }
            for adapter in resolver.chain_for(platform)
        ]
    return {
        "platforms": chains,
        "credentialsAvailable": sorted(credentials.available()),
        "authenticationStatus": authentication_status(credentials),
    }


@router.get("/platforms/detect")
async def detect_platform(url: str = Query(..., min_length=1)):
    try:
        platform = platforms.detect(url)
        video_id = platforms.extract_platform_id(url, platform)
    except (UnsupportedPlatform, MalformedUrl) as e:
        return error_response(400, e)
    return {"url": url, "platform": platform.value, "id": video_id}
