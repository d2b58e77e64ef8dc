"""
Pricing Router

Live quotes for the booking form and the admin-editable price tables.
Editing the tables never touches existing bookings: their totals are locked.
"""

import logging

from fastapi import APIRouter, Depends, Request

from ..config import settings
from ..schemas.booking import BookingQuoteRequest
from ..schemas.pricing import PriceConfigResponse, PriceConfigUpdate, PriceQuoteResponse
from ..services.booking_service import BookingService
from ..services.inventory_store import InventoryStore
from ..services.price_calculator import PriceConfig, PriceQuote
from ..utils.dependencies import get_booking_service, get_store, require_admin
from ..utils.rate_limiter import limiter, get_rate_limit

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/pricing", tags=["Pricing"])


def quote_to_response(quote: PriceQuote) -> dict:
    data = quote.to_dict()
    data["currency"] = settings.currency
    return data


def config_to_response(config: PriceConfig) -> dict:
    return {
        "currency": settings.currency,
        "rates": [
            {
                "guest_class": guest_class,
                "room_tier": tier,
                "empty_room_rate": rates.empty_room_rate,
                "adult_rate": rates.adult_rate,
                "child_rate": rates.child_rate,
            }
            for (guest_class, tier), rates in sorted(config.rates.items())
        ],
        "bulk": {
            "base_price": config.bulk.base_price,
            "subsidized_adult_rate": config.bulk.subsidized_adult,
            "subsidized_child_rate": config.bulk.subsidized_child,
            "external_adult_rate": config.bulk.external_adult,
            "external_child_rate": config.bulk.external_child,
        },
    }


@router.post("/quote", response_model=PriceQuoteResponse)
@limiter.limit(get_rate_limit("quote"))
async def quote_price(
    request: Request,
    data: BookingQuoteRequest,
    bookings: BookingService = Depends(get_booking_service),
):
    """Price a draft booking without saving anything"""
    return quote_to_response(bookings.quote(data.to_draft()))


@router.get("/config", response_model=PriceConfigResponse)
async def get_price_config(store: InventoryStore = Depends(get_store)):
    return config_to_response(store.price_config.get())


@router.put("/config", response_model=PriceConfigResponse, dependencies=[Depends(require_admin)])
async def update_price_config(data: PriceConfigUpdate, store: InventoryStore = Depends(get_store)):
    with store.transaction("updating price tables"):
        for rate in data.rates:
            store.price_config.set_rate(
                rate.guest_class.value,
                rate.room_tier.value,
                rate.empty_room_rate,
                rate.adult_rate,
                rate.child_rate,
            )
        if data.bulk is not None:
            store.price_config.set_bulk(**data.bulk.model_dump())

    logger.info(f"Price tables updated ({len(data.rates)} rate rows, bulk={'yes' if data.bulk else 'no'})")
    return config_to_response(store.price_config.get())
