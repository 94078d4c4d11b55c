# Bike catalogue endpoints.
# The public can browse bikes that are switched on; the admin manages the full catalogue.
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from .. import schemas
from ..booking_service import BookingLifecycleService
from ..deps import get_bike_repository, get_booking_service
from ..rate_limit import rate_limit
from ..repositories import SqlBikeRepository
from .auth import require_admin

# Router namespace for bike APIs
router = APIRouter()


@router.get("/bikes", response_model=schemas.BikeListResponse)
def list_available_bikes(bikes: SqlBikeRepository = Depends(get_bike_repository)) -> schemas.BikeListResponse:
    """List bikes offered for rent, newest first."""
    items = bikes.list(available_only=True)
    return schemas.BikeListResponse(bikes=[schemas.BikeRead.model_validate(b) for b in items], count=len(items))


@router.get("/bikes/{bike_id}/booked-dates", response_model=schemas.BookedDatesResponse)
def booked_dates(
    bike_id: int,
    service: BookingLifecycleService = Depends(get_booking_service),
) -> schemas.BookedDatesResponse:
    """
    Calendar days on which the bike is held by a pending or confirmed booking.

    Whole days are reported even for time-qualified bookings; the date picker
    only works at day granularity.
    """
    days = service.booked_dates(bike_id)
    return schemas.BookedDatesResponse(bike_id=bike_id, booked_dates=days, count=len(days))


# ----------------
# Admin
# ----------------
@router.get("/admin/bikes", response_model=List[schemas.BikeRead], dependencies=[Depends(require_admin)])
def list_bikes(bikes: SqlBikeRepository = Depends(get_bike_repository)):
    return bikes.list()


@router.get("/admin/bikes/{bike_id}", response_model=schemas.BikeRead, dependencies=[Depends(require_admin)])
def get_bike(bike_id: int, bikes: SqlBikeRepository = Depends(get_bike_repository)):
    bike = bikes.get_by_id(bike_id)
    if bike is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Bike not found")
    return bike


@router.post(
    "/admin/bikes",
    response_model=schemas.BikeRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin), Depends(rate_limit("write"))],
)
def create_bike(payload: schemas.BikeCreate, bikes: SqlBikeRepository = Depends(get_bike_repository)):
    return bikes.create(payload.model_dump())


@router.put(
    "/admin/bikes/{bike_id}",
    response_model=schemas.BikeRead,
    dependencies=[Depends(require_admin), Depends(rate_limit("write"))],
)
def update_bike(
    bike_id: int,
    payload: schemas.BikeUpdate,
    bikes: SqlBikeRepository = Depends(get_bike_repository),
):
    # Only fields the client actually sent; explicit nulls do not wipe values
    changes = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
    bike = bikes.update(bike_id, changes)
    if bike is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Bike not found")
    return bike


@router.delete(
    "/admin/bikes/{bike_id}",
    response_model=schemas.BikeDeleteResponse,
    dependencies=[Depends(require_admin), Depends(rate_limit("write"))],
)
def delete_bike(bike_id: int, bikes: SqlBikeRepository = Depends(get_bike_repository)) -> schemas.BikeDeleteResponse:
    bike = bikes.delete(bike_id)
    if bike is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Bike not found")
    return schemas.BikeDeleteResponse(message=f'Bike "{bike.name}" deleted successfully', deleted_id=bike.id)
