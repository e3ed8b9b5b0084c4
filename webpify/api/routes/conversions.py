"""Routes through which the host reports upload, render and srcset events."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends

from webpify.api.dependencies import get_auth_dependency, get_conversion_components
from webpify.models.asset import (
    AssetMetadata,
    ImageSource,
    ImageSourceRequest,
    LeaseStatusResponse,
    QueueStatusResponse,
    SrcsetRequest,
    SrcsetSource,
    UploadTriggerRequest,
)
from webpify.models.job import normalize_size_key
from webpify.services.container import Components

router = APIRouter(prefix="/conversions", tags=["conversions"], dependencies=[Depends(get_auth_dependency)])


@router.post("/uploads", response_model=AssetMetadata, summary="Convert a fresh upload's renditions")
def convert_upload(
    payload: UploadTriggerRequest,
    components: Components = Depends(get_conversion_components),
) -> AssetMetadata:
    """Convert synchronously and return the metadata the host should store."""

    return components.triggers.on_upload(payload.subject_id, payload.metadata)


@router.post("/image-src", response_model=Optional[ImageSource], summary="Resolve a rendition URL")
def resolve_image_src(
    payload: ImageSourceRequest,
    components: Components = Depends(get_conversion_components),
) -> Optional[ImageSource]:
    """Return the WebP rendition if present, otherwise queue it and return the original."""

    return components.triggers.on_image_src(payload.image, payload.subject_id, payload.size, payload.icon)


@router.post("/srcset", response_model=List[SrcsetSource], summary="Rewrite srcset candidates")
def rewrite_srcset(
    payload: SrcsetRequest,
    components: Components = Depends(get_conversion_components),
) -> List[SrcsetSource]:
    """Point converted candidates at their WebP files."""

    return components.triggers.on_srcset(payload.sources, payload.subject_id)


@router.get("/queue", response_model=QueueStatusResponse, summary="Inspect scheduled conversions")
def queue_status(components: Components = Depends(get_conversion_components)) -> QueueStatusResponse:
    pending = components.queue.list_pending()
    return QueueStatusResponse(
        pending=len(pending),
        ceiling=components.admission.ceiling,
        jobs=[
            {
                "subject_id": entry.job.subject_id,
                "size_key": entry.job.size_key,
                "eta": entry.eta,
            }
            for entry in pending
        ],
    )


@router.get(
    "/leases/{subject_id}/{size_key}",
    response_model=LeaseStatusResponse,
    summary="Check whether a conversion is running",
)
def lease_status(
    subject_id: int,
    size_key: str,
    components: Components = Depends(get_conversion_components),
) -> LeaseStatusResponse:
    return LeaseStatusResponse(
        subject_id=subject_id,
        size_key=normalize_size_key(size_key),
        in_progress=components.leases.in_progress(subject_id, size_key),
    )
