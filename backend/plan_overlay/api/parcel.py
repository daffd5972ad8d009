"""POST /api/parcel/*: Maricopa County parcel data."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from plan_overlay.dependencies import get_parcels
from plan_overlay.models.geo import GeoPoint, ParcelData
from plan_overlay.models.requests import ParcelLookupRequest, ParcelSearchRequest
from plan_overlay.services.parcels import MaricopaParcels

router = APIRouter()


@router.post("/parcel/lookup", response_model=ParcelData)
async def lookup(req: ParcelLookupRequest, parcels: MaricopaParcels = Depends(get_parcels)) -> ParcelData:
    parcel = await parcels.lookup(GeoPoint(lat=req.lat, lng=req.lng))
    if parcel is None:
        raise HTTPException(status_code=404, detail="No parcel found at location")
    if req.include_assessor_details and parcel.apn:
        parcel = parcel.model_copy(update={"assessor_details": await parcels.assessor_details(parcel.apn)})
    return parcel


@router.post("/parcel/search")
async def search(req: ParcelSearchRequest, parcels: MaricopaParcels = Depends(get_parcels)) -> dict[str, Any]:
    return await parcels.search(req.query)
