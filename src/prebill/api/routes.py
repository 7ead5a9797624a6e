"""FastAPI routes for the pre-bill: customer side and shop-owner side."""

import structlog
from fastapi import APIRouter, Depends, Request

from prebill.api.schemas import (
    AddToPrebillRequest,
    AdvancePackingRequest,
    DeleteShopGroupResponse,
    PackingStatusResponse,
    PrebillResponse,
    ShopDetailResponse,
    StatusResponse,
    UpdateQuantityRequest,
)
from prebill.packing.packing import PackingStatus
from prebill.utils.logging import bind_request_context
from prebill.workflow.bill import Bill
from prebill.workflow.coordinator import PrebillService
from prebill.workflow.queue import QueuedPackingRequest, packing_queue

logger = structlog.get_logger(__name__)


async def bind_log_context(request: Request) -> None:
    """Attach the path's session and shop references to every log entry of the request."""
    bind_request_context(**request.path_params)


def get_prebill_service(session_id: str) -> PrebillService:
    """Build the session's service from the configured store and catalog."""
    return PrebillService.for_session(session_id)


def _prebill(service: PrebillService) -> PrebillResponse:
    return PrebillResponse.from_cart(service.cart, service.groups())


# ---------------------------------------------------------------------------
# Pre-bill Router (customer)
# ---------------------------------------------------------------------------
prebill_router = APIRouter(
    prefix="/sessions/{session_id}/prebill",
    tags=["prebill"],
    dependencies=[Depends(bind_log_context)],
)


@prebill_router.get("", response_model=PrebillResponse)
async def get_prebill(service: PrebillService = Depends(get_prebill_service)) -> PrebillResponse:
    return _prebill(service)


@prebill_router.post("/items", response_model=PrebillResponse)
async def add_to_prebill(
    body: AddToPrebillRequest,
    service: PrebillService = Depends(get_prebill_service),
) -> PrebillResponse:
    service.add_to_cart(body.product_ref, body.quantity)
    return _prebill(service)


@prebill_router.put("/items/{product_ref}", response_model=PrebillResponse)
async def update_prebill_quantity(
    product_ref: str,
    body: UpdateQuantityRequest,
    service: PrebillService = Depends(get_prebill_service),
) -> PrebillResponse:
    service.set_quantity(product_ref, body.quantity)
    return _prebill(service)


@prebill_router.delete("/items/{product_ref}", response_model=PrebillResponse)
async def remove_from_prebill(
    product_ref: str,
    service: PrebillService = Depends(get_prebill_service),
) -> PrebillResponse:
    service.remove(product_ref)
    return _prebill(service)


@prebill_router.delete("", response_model=StatusResponse)
async def clear_prebill(service: PrebillService = Depends(get_prebill_service)) -> StatusResponse:
    service.clear()
    return StatusResponse(status="cleared")


@prebill_router.get("/shops/{shop_ref}", response_model=ShopDetailResponse)
async def open_shop_detail(
    shop_ref: str,
    service: PrebillService = Depends(get_prebill_service),
) -> ShopDetailResponse:
    return ShopDetailResponse.from_detail(service.open_shop_detail(shop_ref))


@prebill_router.delete("/shops/{shop_ref}", response_model=DeleteShopGroupResponse)
async def delete_shop_group(
    shop_ref: str,
    service: PrebillService = Depends(get_prebill_service),
) -> DeleteShopGroupResponse:
    removed = service.delete_shop_group(shop_ref)
    return DeleteShopGroupResponse(shop_ref=shop_ref, lines_removed=removed)


@prebill_router.get("/shops/{shop_ref}/bill", response_model=Bill)
async def get_shop_bill(
    shop_ref: str,
    service: PrebillService = Depends(get_prebill_service),
) -> Bill:
    return service.bill(shop_ref)


@prebill_router.post("/shops/{shop_ref}/packing", response_model=PackingStatusResponse)
async def request_packing(
    shop_ref: str,
    service: PrebillService = Depends(get_prebill_service),
) -> PackingStatusResponse:
    status = service.request_packing(shop_ref)
    return PackingStatusResponse(shop_ref=shop_ref, status=status)


@prebill_router.delete("/shops/{shop_ref}/packing", response_model=PackingStatusResponse)
async def cancel_packing(
    shop_ref: str,
    service: PrebillService = Depends(get_prebill_service),
) -> PackingStatusResponse:
    status = service.cancel_packing(shop_ref)
    return PackingStatusResponse(shop_ref=shop_ref, status=status)


# ---------------------------------------------------------------------------
# Packing Router (shop owner)
# ---------------------------------------------------------------------------
packing_router = APIRouter(
    prefix="/shops/{shop_ref}/packing-requests",
    tags=["packing"],
    dependencies=[Depends(bind_log_context)],
)


@packing_router.get("", response_model=list[QueuedPackingRequest])
async def list_packing_requests(
    shop_ref: str,
    status: PackingStatus | None = None,
) -> list[QueuedPackingRequest]:
    """Every session that asked this shop to pack, optionally only those in one state."""
    return packing_queue(shop_ref, status=status)


@packing_router.put("/{session_id}", response_model=PackingStatusResponse)
async def advance_packing(
    shop_ref: str,
    body: AdvancePackingRequest,
    service: PrebillService = Depends(get_prebill_service),
) -> PackingStatusResponse:
    """Move a customer's packing request forward: pending → processing → completed."""
    status = service.advance_packing(shop_ref, body.status)
    return PackingStatusResponse(shop_ref=shop_ref, status=status)
