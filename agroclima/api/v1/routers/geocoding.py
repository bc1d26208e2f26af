"""
API router for postal code geocoding.
"""
from fastapi import APIRouter

from agroclima.api.dependencies import GeocodingClientDep
from agroclima.api.v1.models.requests import PostalCodeRequest
from agroclima.api.v1.models.responses import GeocodeResponse
from agroclima.services.domain.request_validator import validate_postal_code


router = APIRouter(prefix="/geocode", tags=["geocoding"])


@router.post(
    "/postalcode",
    response_model=GeocodeResponse,
    summary="Resolve a postal code to coordinates",
    responses={
        400: {"description": "Invalid postal code"},
        404: {"description": "Postal code not found"},
        502: {"description": "Geocoder unavailable"},
    },
)
async def geocode_postal_code(
    request: PostalCodeRequest,
    geocoder: GeocodingClientDep,
) -> GeocodeResponse:
    postal_code = validate_postal_code(request.postal_code)
    latitude, longitude = await geocoder.geocode_postal_code(postal_code)
    return GeocodeResponse(postal_code=postal_code, latitude=latitude, longitude=longitude)
