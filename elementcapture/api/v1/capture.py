import mimetypes
from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from elementcapture.api.v1.schemas import ClearResponseSchema, DownloadRequestSchema, DownloadResponseSchema
from elementcapture.application.dto.messages import (
    ElementSelectedMessage,
    SelectionCancelledMessage,
    result_to_message,
)
from elementcapture.application.exceptions import CaptureInputError
from elementcapture.application.ports.result_store import ResultStorePort
from elementcapture.application.use_cases.coordinator import CaptureCoordinator
from elementcapture.application.use_cases.download_result import DownloadResultUseCase
from elementcapture.wiring.dependencies import (
    get_capture_coordinator,
    get_download_use_case,
    get_result_store,
)

router = APIRouter()


@router.post("/render")
async def render(
    req: ElementSelectedMessage,
    coordinator: CaptureCoordinator = Depends(get_capture_coordinator),
) -> dict[str, Any]:
    result = await coordinator.handle_message(req)
    return result_to_message(result).to_wire()


@router.post("/cancelled")
async def cancelled(
    req: SelectionCancelledMessage,
    coordinator: CaptureCoordinator = Depends(get_capture_coordinator),
) -> dict[str, Any]:
    result = await coordinator.handle_message(req)
    return result_to_message(result).to_wire()


@router.get("/results/last")
def get_last_result(store: ResultStorePort = Depends(get_result_store)) -> dict[str, Any]:
    result = store.get_last()
    if result is None:
        raise HTTPException(status_code=404, detail="No stored result")
    return result_to_message(result).to_wire()


@router.delete("/results/last", response_model=ClearResponseSchema)
def clear_last_result(store: ResultStorePort = Depends(get_result_store)):
    store.clear()
    return ClearResponseSchema()


@router.post("/downloads", response_model=DownloadResponseSchema)
def download(
    req: DownloadRequestSchema | None = None,
    uc: DownloadResultUseCase = Depends(get_download_use_case),
):
    try:
        path = uc.execute(filename=req.filename if req else None)
    except CaptureInputError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return DownloadResponseSchema(
        path=str(path),
        filename=path.name,
        mime_type=mimetypes.guess_type(path.name)[0] or "application/octet-stream",
    )
