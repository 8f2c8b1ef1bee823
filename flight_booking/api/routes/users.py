from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from flight_booking.api.routes.dependencies import get_current_user_id, get_db
from flight_booking.api.schemas.schemas import UserStatisticsResponse
from flight_booking.application.query_service import BookingQueryService

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/statistics", response_model=UserStatisticsResponse)
def user_statistics(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    statistics = BookingQueryService(db).user_statistics(user_id)
    return UserStatisticsResponse(
        confirmed_bookings=statistics.confirmed_bookings,
        completed_trips=statistics.completed_trips,
        cancelled_bookings=statistics.cancelled_bookings,
        total_spent=statistics.total_spent,
        cities_visited=statistics.cities_visited,
    )
